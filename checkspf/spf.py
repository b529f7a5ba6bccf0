# -*- coding: utf-8 -*-
"""Sender Policy framework (SPF) record parsing and expansion"""

from __future__ import annotations

import ipaddress
import logging
import re
from typing import NamedTuple, Optional, Union
from collections.abc import Iterable, Sequence

from checkspf._constants import MAX_DNS_LOOKUPS, SPF_VERSION_TAG
from checkspf.utils import RecordFetcher, normalize_domain

"""Copyright 2019-2025 Sean Whalen

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at

   https://www.apache.org/licenses/LICENSE-2.0

Unless required by applicable law or agreed to in writing, software
distributed under the License is distributed on an "AS IS" BASIS,
WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
See the License for the specific language governing permissions and
limitations under the License."""

SPF_MECHANISM_REGEX_STRING = r"^([+\-~?])?(ip4|ip6|include|all|a|mx)((?:[:/]\S*)?)$"

SPF_MECHANISM_REGEX = re.compile(SPF_MECHANISM_REGEX_STRING, re.IGNORECASE)

SPF_DUAL_CIDR_REGEX = re.compile(r"^(?:/(\d{1,3}))?(?://(\d{1,3}))?$")

DNS_LOOKUP_MECHANISMS = ("include", "a", "mx")

spf_qualifiers: dict[str, str] = {
    "": "pass",
    "?": "neutral",
    "+": "pass",
    "-": "fail",
    "~": "softfail",
}


class SPFError(Exception):
    """Raised when a fatal SPF error occurs"""

    def __init__(self, msg: str, data: Optional[dict] = None):
        """
        Args:
            msg (str): The error message
            data (dict): A dictionary of data to include in the output
        """
        self.data = data
        Exception.__init__(self, msg)


class SPFRecordNotFound(SPFError):
    """Raised when an SPF record could not be found"""

    def __init__(self, msg: str, domain: Optional[str] = None):
        self.domain = domain
        SPFError.__init__(self, msg)


class MultipleSPFTXTRecords(SPFError):
    """Raised when multiple TXT spf1 records are found"""


class SPFMalformedNetwork(SPFError):
    """Raised when an IP address or CIDR block in an SPF record can't be parsed"""


class InvalidIPAddress(SPFError):
    """Raised when the IP address being checked is not a valid IP address"""


class SPFUnknownRecordType(SPFError):
    """Raised when addresses are requested for a record type other than a or mx"""


class SPFTooManyDNSLookups(SPFError):
    """Raised when an SPF record requires too many DNS lookups (10 max)"""

    def __init__(self, *args, **kwargs):
        data = {"dns_lookups": kwargs["dns_lookups"]}
        SPFError.__init__(self, args[0], data=data)


class SPFIncludeLoop(SPFError):
    """Raised when an SPF include loop is detected"""


class Mechanism(NamedTuple):
    """A single term of an SPF record"""

    qualifier: str
    kind: str
    value: str = ""
    prefix: Optional[int] = None
    prefix6: Optional[int] = None


def extract_spf_record(txt_records: Iterable[str]) -> str:
    """
    Finds the one SPF record in a list of TXT records

    Args:
        txt_records (list): TXT records of a domain

    Returns:
        str: The SPF record, unchanged

    Raises:
        :exc:`checkspf.spf.SPFRecordNotFound`
        :exc:`checkspf.spf.MultipleSPFTXTRecords`
    """
    spf_records = []
    for record in txt_records:
        # A version section of "v=spf10" does not match (RFC 7208 § 4.5)
        if record == SPF_VERSION_TAG or record.startswith(f"{SPF_VERSION_TAG} "):
            spf_records.append(record)
    if len(spf_records) == 0:
        raise SPFRecordNotFound("An SPF record does not exist.")
    if len(spf_records) > 1:
        raise MultipleSPFTXTRecords(
            f"The domain has multiple SPF TXT records: {len(spf_records)}"
        )
    return spf_records[0]


def tokenize_spf_record(record: str) -> list[str]:
    """Splits an SPF record into terms, dropping empty ones"""
    return [term for term in record.split(" ") if term != ""]


def parse_mechanism(term: str) -> Mechanism:
    """
    Parses one SPF term

    Terms that are not a supported mechanism are returned with the kind
    ``unknown`` instead of raising an error.

    Args:
        term (str): A single term of an SPF record

    Returns:
        Mechanism: The qualifier, kind, value, and prefix length of the term
    """
    if term.lower() == SPF_VERSION_TAG:
        return Mechanism("pass", "version", term)
    match = SPF_MECHANISM_REGEX.match(term)
    if match is None:
        return Mechanism("pass", "unknown", term)
    qualifier, kind, rest = match.groups()
    qualifier = spf_qualifiers[qualifier or ""]
    kind = kind.lower()
    if kind == "all":
        if rest != "":
            return Mechanism(qualifier, "unknown", term)
        return Mechanism(qualifier, kind)
    if kind in ("ip4", "ip6", "include"):
        # The value is kept verbatim, including any prefix length
        if not rest.startswith(":") or rest == ":":
            return Mechanism(qualifier, "unknown", term)
        return Mechanism(qualifier, kind, rest[1:])
    # a and mx take an optional host and dual-cidr-length (RFC 7208 § 5.6)
    host, slash, cidr = rest.removeprefix(":").partition("/")
    if rest.startswith(":") and host == "":
        return Mechanism(qualifier, "unknown", term)
    cidr_match = SPF_DUAL_CIDR_REGEX.match(slash + cidr)
    if cidr_match is None:
        return Mechanism(qualifier, "unknown", term)
    prefix, prefix6 = cidr_match.groups()
    return Mechanism(
        qualifier,
        kind,
        host,
        int(prefix) if prefix else None,
        int(prefix6) if prefix6 else None,
    )


def parse_spf_record(record: str) -> list[Mechanism]:
    """Parses every term of an SPF record"""
    return [parse_mechanism(term) for term in tokenize_spf_record(record)]


def _get_host_addresses(kind: str, host: str, fetcher: RecordFetcher) -> list[str]:
    if kind == "a":
        return list(fetcher.lookup_ip_addresses(host))
    elif kind == "mx":
        addresses = []
        for mx_host in fetcher.lookup_mx(host):
            addresses += _get_host_addresses("a", mx_host["hostname"], fetcher)
        return addresses
    raise SPFUnknownRecordType(f"Unknown record type for SPF: {kind}")


def resolve_mechanisms(
    domain: str,
    record: str,
    fetcher: RecordFetcher,
    *,
    max_dns_lookups: int = MAX_DNS_LOOKUPS,
) -> list[str]:
    """
    Expands an SPF record into the networks it authorizes

    ``include`` mechanisms are expanded in place, depth first, so the order of
    the returned networks follows the order of the mechanisms.

    Args:
        domain (str): The domain that the SPF record came from
        record (str): An SPF record
        fetcher: The DNS lookups to use for ``include``, ``a``, and ``mx``
        max_dns_lookups (int): The maximum number of DNS querying mechanisms

    Returns:
        list: IP addresses and CIDR blocks

    Raises:
        :exc:`checkspf.spf.SPFIncludeLoop`
        :exc:`checkspf.spf.SPFTooManyDNSLookups`
        :exc:`checkspf.spf.SPFRecordNotFound`
        :exc:`checkspf.spf.MultipleSPFTXTRecords`
        :exc:`checkspf.utils.DNSException`
    """
    domain = normalize_domain(domain)
    networks = []
    dns_lookups = 0
    # Each frame is a domain and the mechanisms of its record left to walk
    stack = [(domain, iter(parse_spf_record(record)))]
    while stack:
        current_domain, mechanisms = stack[-1]
        mechanism = next(mechanisms, None)
        if mechanism is None:
            stack.pop()
            continue
        if mechanism.qualifier != "pass":
            logging.debug(
                f"{current_domain}: skipping {mechanism.qualifier} "
                f"{mechanism.kind} mechanism"
            )
            continue
        if mechanism.kind in DNS_LOOKUP_MECHANISMS:
            dns_lookups += 1
            if dns_lookups > max_dns_lookups:
                raise SPFTooManyDNSLookups(
                    "Parsing the SPF record requires "
                    f"{dns_lookups}/{max_dns_lookups} maximum DNS lookups - "
                    "(RFC 7208 § 4.6.4)",
                    dns_lookups=dns_lookups,
                )
        if mechanism.kind in ("ip4", "ip6"):
            networks.append(mechanism.value)
        elif mechanism.kind == "include":
            include_domain = normalize_domain(mechanism.value)
            chain = [frame[0] for frame in stack]
            if include_domain in chain:
                pointer = " -> ".join(chain + [include_domain])
                raise SPFIncludeLoop(f"Include loop: {pointer}")
            logging.debug(f"{current_domain}: including {include_domain}")
            try:
                include_record = extract_spf_record(fetcher.lookup_txt(include_domain))
            except SPFRecordNotFound:
                raise SPFRecordNotFound(
                    f"{include_domain}: An SPF record does not exist.", include_domain
                )
            stack.append((include_domain, iter(parse_spf_record(include_record))))
        elif mechanism.kind in ("a", "mx"):
            host = normalize_domain(mechanism.value or current_domain)
            for address in _get_host_addresses(mechanism.kind, host, fetcher):
                # The ip4 length never applies to AAAA results
                prefix = mechanism.prefix6 if ":" in address else mechanism.prefix
                if prefix is not None:
                    address = f"{address}/{prefix}"
                networks.append(address)

    return networks


def _to_network(
    network: str,
) -> Union[ipaddress.IPv4Network, ipaddress.IPv6Network]:
    if "/" not in network:
        if ":" not in network:
            network = f"{network}/32"
        else:
            network = f"{network}/128"
    try:
        return ipaddress.ip_network(network, strict=False)
    except ValueError as e:
        raise SPFMalformedNetwork(f"{network} is not a valid network: {e}")


def ip_in_networks(ip_address: str, networks: Sequence[str]) -> bool:
    """
    Checks if an IP address is inside any of the given networks

    Args:
        ip_address (str): An IPv4 or IPv6 address
        networks (list): IP addresses and CIDR blocks

    Returns:
        bool: ``True`` as soon as a network contains the address

    Raises:
        :exc:`checkspf.spf.InvalidIPAddress`
        :exc:`checkspf.spf.SPFMalformedNetwork`
    """
    try:
        address = ipaddress.ip_address(ip_address.strip())
    except ValueError:
        raise InvalidIPAddress(f"{ip_address} is not a valid IP address")
    candidates = [address]
    # ::ffff:192.0.2.1 is also checked as 192.0.2.1
    if address.version == 6 and address.ipv4_mapped is not None:
        candidates.append(address.ipv4_mapped)
    for network in networks:
        network = _to_network(network)
        if any(candidate in network for candidate in candidates):
            return True
    return False
