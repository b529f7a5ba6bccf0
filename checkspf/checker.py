# -*- coding: utf-8 -*-
"""Checks senders against SPF records"""

from __future__ import annotations

import logging
from typing import Optional, TypedDict

from checkspf._constants import MAX_DNS_LOOKUPS
from checkspf.cache import PolicyCache
from checkspf.spf import (
    SPFError,
    SPFRecordNotFound,
    extract_spf_record,
    ip_in_networks,
    resolve_mechanisms,
)
from checkspf.utils import (
    DNSException,
    DNSRecordFetcher,
    RecordFetcher,
    normalize_domain,
)

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


class SenderCheckResult(TypedDict, total=False):
    ip: str
    domain: str
    allowed: bool
    valid: bool
    error: str


class SPFChecker(object):
    """A cached SPF record looker-upper and sender checker"""

    def __init__(
        self,
        fetcher: Optional[RecordFetcher] = None,
        cache: Optional[PolicyCache] = None,
        *,
        max_dns_lookups: int = MAX_DNS_LOOKUPS,
    ):
        """
        Args:
            fetcher: The DNS lookups to use; defaults to a
                     :class:`checkspf.utils.DNSRecordFetcher`
            cache (PolicyCache): Storage for SPF records
            max_dns_lookups (int): The maximum number of DNS querying
                                   mechanisms in a record and its includes
        """
        if fetcher is None:
            fetcher = DNSRecordFetcher()
        if cache is None:
            cache = PolicyCache()
        self.fetcher = fetcher
        self.cache = cache
        self.max_dns_lookups = max_dns_lookups

    def dump_cache(self):
        """Empties the SPF record cache"""
        logging.debug("Dumping the SPF record cache")
        self.cache.clear()

    def lookup_spf_records(self, domain: str) -> list[str]:
        """
        Returns the SPF record of a domain as a one item list, from the cache
        when possible

        Args:
            domain (str): A domain name

        Raises:
            :exc:`checkspf.spf.SPFRecordNotFound`
            :exc:`checkspf.spf.MultipleSPFTXTRecords`
            :exc:`checkspf.utils.DNSException`
        """
        domain = normalize_domain(domain)
        records = self.cache.get(domain)
        if records is not None:
            logging.debug(f"Using the cached SPF record for {domain}")
            return records
        logging.debug(f"Checking for a SPF record on {domain}")
        txt_records = self.fetcher.lookup_txt(domain)
        if len(txt_records) == 0:
            raise SPFRecordNotFound(f"{domain} has no TXT records.", domain)
        try:
            records = [extract_spf_record(txt_records)]
        except SPFRecordNotFound:
            raise SPFRecordNotFound("An SPF record does not exist.", domain)
        self.cache.put(domain, records)
        return records

    def validate(self, ip_address: str, domain: str) -> bool:
        """
        Checks if an IP address may send email for a domain

        A domain without an SPF record has nothing to enforce, so any IP
        address is allowed to send for it.

        Args:
            ip_address (str): The IPv4 or IPv6 address of the sender
            domain (str): The domain the email claims to be from

        Returns:
            bool: ``True`` if the SPF record authorizes the IP address

        Raises:
            :exc:`checkspf.spf.SPFError`
            :exc:`checkspf.utils.DNSException`
        """
        domain = normalize_domain(domain)
        try:
            spf_records = self.lookup_spf_records(domain)
        except SPFRecordNotFound as e:
            logging.debug(f"{domain}: {e}; allowing {ip_address}")
            return True
        spf_record = spf_records[0]
        networks = resolve_mechanisms(
            domain,
            spf_record,
            self.fetcher,
            max_dns_lookups=self.max_dns_lookups,
        )
        allowed = ip_in_networks(ip_address, networks)
        logging.debug(
            f"{domain}: {ip_address} is {'' if allowed else 'not '}authorized "
            f"by {len(networks)} networks"
        )
        return allowed


default_checker = SPFChecker()


def check_sender(
    ip_address: str,
    domain: str,
    *,
    checker: Optional[SPFChecker] = None,
) -> SenderCheckResult:
    """
    Returns a dictionary with the result of an SPF check or an error

    Args:
        ip_address (str): The IPv4 or IPv6 address of the sender
        domain (str): The domain the email claims to be from
        checker (SPFChecker): The checker to use; defaults to the shared one

    Returns:
        dict: A ``dict`` with the following keys:
            - ``ip`` - The IP address
            - ``domain`` - The domain
            - ``allowed`` - The result of the check
            - ``valid`` - ``True`` if the check completed

        If an error occurs, ``allowed`` and ``valid`` are ``False`` and the
        dictionary has an ``error`` key with the error message
    """
    if checker is None:
        checker = default_checker
    domain = normalize_domain(domain)
    results: SenderCheckResult = {
        "ip": ip_address,
        "domain": domain,
        "allowed": False,
        "valid": True,
    }
    try:
        results["allowed"] = checker.validate(ip_address, domain)
    except (SPFError, DNSException) as error:
        results["valid"] = False
        results["error"] = str(error)
    return results
