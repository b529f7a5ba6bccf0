# -*- coding: utf-8 -*-
"""DNS and email address utility functions"""

from __future__ import annotations

import logging
import re
import unicodedata
from email.utils import parseaddr
from typing import Optional, Protocol, TypedDict
from collections.abc import Sequence

import dns.exception
import dns.resolver
from dns.nameserver import Nameserver
from email_validator import EmailNotValidError, validate_email

from checkspf._constants import DEFAULT_DNS_TIMEOUT, DEFAULT_DNS_TIMEOUT_RETRIES

"""Copyright 2019-2023 Sean Whalen

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at

   https://www.apache.org/licenses/LICENSE-2.0

Unless required by applicable law or agreed to in writing, software
distributed under the License is distributed on an "AS IS" BASIS,
WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
See the License for the specific language governing permissions and
limitations under the License."""

ZERO_WIDTH_RE = re.compile(r"[\u200B-\u200D\uFEFF]")  # includes ZWSP, ZWNJ, ZWJ, BOM


class MXHost(TypedDict):
    hostname: str
    preference: int


class DNSException(Exception):
    """Raised when a general DNS error occurs"""

    def __init__(self, error):
        if isinstance(error, dns.exception.Timeout):
            error.kwargs["timeout"] = round(error.kwargs["timeout"], 1)
        Exception.__init__(self, error)


class DNSExceptionNXDOMAIN(DNSException):
    """Raised when a NXDOMAIN DNS error (RCODE:3) occurs"""


class InvalidEmailAddress(ValueError):
    """Raised when a string is not a usable email address"""


class RecordFetcher(Protocol):
    """The DNS lookups needed to expand an SPF record"""

    def lookup_txt(self, name: str) -> list[str]: ...

    def lookup_ip_addresses(self, name: str) -> list[str]: ...

    def lookup_mx(self, name: str) -> list[MXHost]: ...


def normalize_domain(domain: str) -> str:
    """
    Normalize an input domain by removing zero-width characters, a trailing
    dot, and lowering it

    Args:
        domain (str): A domain or subdomain

    Returns:
        str: A normalized domain
    """
    domain = unicodedata.normalize("NFC", domain)
    domain = ZERO_WIDTH_RE.sub("", domain)
    return domain.strip().rstrip(".").lower()


def get_domain_from_email(address: str) -> str:
    """
    Returns the lowercase domain of an email address

    Both ``user@example.com`` and ``Name <user@example.com>`` are accepted.
    The syntax of the address itself is checked with ``email_validator``;
    deliverability is not.

    Args:
        address (str): An email address, optionally with a display name

    Returns:
        str: The domain part of the address

    Raises:
        :exc:`checkspf.utils.InvalidEmailAddress`
    """
    _, parsed_address = parseaddr(address)
    parsed_address = parsed_address.strip()
    if parsed_address == "":
        raise InvalidEmailAddress(f"{address!r} is not a valid email address")
    # parseaddr drops spaces and unbalanced brackets instead of failing
    stripped = address.strip()
    if "<" in stripped or ">" in stripped:
        if not stripped.endswith(f"<{parsed_address}>"):
            raise InvalidEmailAddress(f"{address!r} is not a valid email address")
    elif stripped != parsed_address:
        raise InvalidEmailAddress(f"{address!r} is not a valid email address")
    try:
        validated = validate_email(parsed_address, check_deliverability=False)
    except EmailNotValidError as e:
        raise InvalidEmailAddress(f"{address!r} is not a valid email address: {e}")
    return validated.domain.lower()


def query_dns(
    domain: str,
    record_type: str,
    *,
    nameservers: Optional[Sequence[str | Nameserver]] = None,
    resolver: Optional[dns.resolver.Resolver] = None,
    timeout: float = DEFAULT_DNS_TIMEOUT,
    timeout_retries: int = DEFAULT_DNS_TIMEOUT_RETRIES,
    _attempt: int = 0,
) -> list[str]:
    """
    Queries DNS

    Args:
        domain (str): The domain or subdomain to query about
        record_type (str): The record type to query for
        nameservers (list): A list of one or more nameservers to use
        resolver (dns.resolver.Resolver): A resolver object to use for DNS
                                          requests
        timeout (float): Sets the DNS timeout in seconds
        timeout_retries (int): The number of times to reattempt a query after a timeout

    Returns:
        list: A list of answers
    """
    domain = normalize_domain(domain)
    record_type = record_type.upper()
    if not resolver:
        resolver = dns.resolver.Resolver()
        timeout = float(timeout)
        if nameservers is not None:
            resolver.nameservers = nameservers
        resolver.timeout = timeout
        resolver.lifetime = timeout
    try:
        answers = resolver.resolve(domain, record_type, lifetime=timeout)
    except dns.resolver.LifetimeTimeout as e:
        _attempt += 1
        if _attempt > timeout_retries:
            raise e
        logging.debug(f"Timeout querying {record_type} for {domain}, retrying")
        return query_dns(
            domain,
            record_type,
            nameservers=nameservers,
            resolver=resolver,
            timeout=timeout,
            timeout_retries=timeout_retries,
            _attempt=_attempt,
        )
    if record_type == "TXT":
        # Join each sequence of byte chunks into a single bytes object
        resource_records = [b"".join(r.strings) for r in answers if r.strings]
        records = []
        for r in resource_records:
            try:
                r = r.decode()
            except UnicodeDecodeError:
                r = "Undecodable characters"
            records.append(r)
    else:
        records = list(
            map(
                lambda r: r.to_text().rstrip("."),
                answers,
            )
        )
    return records


def get_txt_records(
    domain: str,
    *,
    nameservers: Optional[Sequence[str | Nameserver]] = None,
    resolver: Optional[dns.resolver.Resolver] = None,
    timeout: float = DEFAULT_DNS_TIMEOUT,
    timeout_retries: int = DEFAULT_DNS_TIMEOUT_RETRIES,
) -> list[str]:
    """
    Queries DNS for TXT records

    Args:
        domain (str): A domain name
        nameservers (list): A list of nameservers to query
        resolver (dns.resolver.Resolver): A resolver object to use for DNS
                                          requests
        timeout (float): number of seconds to wait for an answer from DNS
        timeout_retries (int): The number of times to reattempt a query after a timeout

    Returns:
        list: A list of TXT records, empty if the domain has none

    Raises:
        :exc:`checkspf.utils.DNSException`

    """
    logging.debug(f"Getting TXT records for {domain}")
    try:
        records = query_dns(
            domain,
            "TXT",
            nameservers=nameservers,
            resolver=resolver,
            timeout=timeout,
            timeout_retries=timeout_retries,
        )
    except dns.resolver.NXDOMAIN:
        raise DNSExceptionNXDOMAIN(f"The domain {domain} does not exist.")
    except dns.resolver.NoAnswer:
        records = []
    except Exception as error:
        raise DNSException(error)

    return records


def get_a_records(
    domain: str,
    *,
    nameservers: Optional[Sequence[str | Nameserver]] = None,
    resolver: Optional[dns.resolver.Resolver] = None,
    timeout: float = DEFAULT_DNS_TIMEOUT,
    timeout_retries: int = DEFAULT_DNS_TIMEOUT_RETRIES,
) -> list[str]:
    """
    Queries DNS for the addresses an SPF ``a`` mechanism matches

    A records are queried before AAAA records and the answers are kept in
    DNS order; only the ``mx`` lookup sorts its results.

    Args:
        domain (str): A domain name
        nameservers (list): A list of nameservers to query
        resolver (dns.resolver.Resolver): A resolver object to use for DNS
                                          requests
        timeout (float): number of seconds to wait for an answer from DNS
        timeout_retries (int): The number of times to reattempt a query after a timeout

    Returns:
        list: A list of IPv4 addresses followed by IPv6 addresses

    Raises:
        :exc:`checkspf.utils.DNSException`
    """
    addresses = []
    for record_type in ("A", "AAAA"):
        try:
            logging.debug(f"Getting {record_type} records for {domain}")
            addresses += query_dns(
                domain,
                record_type,
                nameservers=nameservers,
                resolver=resolver,
                timeout=timeout,
                timeout_retries=timeout_retries,
            )
        except dns.resolver.NXDOMAIN:
            raise DNSExceptionNXDOMAIN(f"The domain {domain} does not exist.")
        except dns.resolver.NoAnswer:
            # An IPv4-only or IPv6-only host
            pass
        except Exception as error:
            raise DNSException(error)

    return addresses


def get_mx_records(
    domain: str,
    *,
    nameservers: Optional[Sequence[str | Nameserver]] = None,
    resolver: Optional[dns.resolver.Resolver] = None,
    timeout: float = DEFAULT_DNS_TIMEOUT,
    timeout_retries: int = DEFAULT_DNS_TIMEOUT_RETRIES,
) -> list[MXHost]:
    """
    Queries DNS for the Mail Exchange hosts an SPF ``mx`` mechanism expands

    Hosts are sorted by preference, then hostname, so the addresses of the
    most preferred host are checked first. A null MX record (RFC 7505)
    gives an empty list.

    Args:
        domain (str): A domain name
        nameservers (list): A list of nameservers to query
        resolver (dns.resolver.Resolver): A resolver object to use for DNS
                                          requests
        timeout (float): number of seconds to wait for an answer from DNS
        timeout_retries (int): The number of times to reattempt a query after a timeout

    Returns:
        list: A list of ``dicts``; each containing a ``preference``
                        integer and a ``hostname``

    Raises:
        :exc:`checkspf.utils.DNSException`

    """
    hosts = []
    try:
        logging.debug(f"Getting MX records for {domain}")
        answers = query_dns(
            domain,
            "MX",
            nameservers=nameservers,
            resolver=resolver,
            timeout=timeout,
            timeout_retries=timeout_retries,
        )
        if answers == ["0 "]:
            logging.debug('"No Service" MX record found')
            return []
        for record in answers:
            record = record.split(" ")
            preference = int(record[0])
            hostname = record[1].rstrip(".").strip().lower()
            hosts.append({"preference": preference, "hostname": hostname})
        hosts = sorted(hosts, key=lambda h: (h["preference"], h["hostname"]))
    except dns.resolver.NXDOMAIN:
        raise DNSExceptionNXDOMAIN(f"The domain {domain} does not exist.")
    except dns.resolver.NoAnswer:
        pass
    except Exception as error:
        raise DNSException(error)
    return hosts


class DNSRecordFetcher(object):
    """Performs the TXT, A/AAAA and MX lookups used by SPF checks"""

    def __init__(
        self,
        *,
        nameservers: Optional[Sequence[str | Nameserver]] = None,
        resolver: Optional[dns.resolver.Resolver] = None,
        timeout: float = DEFAULT_DNS_TIMEOUT,
        timeout_retries: int = DEFAULT_DNS_TIMEOUT_RETRIES,
    ):
        """
        Args:
            nameservers (list): A list of nameservers to query
            resolver (dns.resolver.Resolver): A resolver object to use for DNS
                                              requests
            timeout (float): number of seconds to wait for an answer from DNS
            timeout_retries (int): The number of times to reattempt a query
                                   after a timeout
        """
        self.nameservers = nameservers
        self.resolver = resolver
        self.timeout = timeout
        self.timeout_retries = timeout_retries

    def _options(self) -> dict:
        return {
            "nameservers": self.nameservers,
            "resolver": self.resolver,
            "timeout": self.timeout,
            "timeout_retries": self.timeout_retries,
        }

    def lookup_txt(self, name: str) -> list[str]:
        return get_txt_records(name, **self._options())

    def lookup_ip_addresses(self, name: str) -> list[str]:
        return get_a_records(name, **self._options())

    def lookup_mx(self, name: str) -> list[MXHost]:
        return get_mx_records(name, **self._options())
