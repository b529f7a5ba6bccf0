# -*- coding: utf-8 -*-

"""Checks if an IP address may send email for a domain using SPF"""

from __future__ import annotations

import json
import logging
from csv import DictWriter
from io import StringIO
from typing import Optional, Union

import checkspf._constants
from checkspf.cache import PolicyCache
from checkspf.checker import (
    SenderCheckResult,
    SPFChecker,
    check_sender,
    default_checker,
)
from checkspf.spf import (
    InvalidIPAddress,
    MultipleSPFTXTRecords,
    SPFError,
    SPFIncludeLoop,
    SPFMalformedNetwork,
    SPFRecordNotFound,
    SPFTooManyDNSLookups,
    SPFUnknownRecordType,
)
from checkspf.utils import (
    DNSException,
    DNSExceptionNXDOMAIN,
    DNSRecordFetcher,
    InvalidEmailAddress,
    get_domain_from_email,
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


__version__ = checkspf._constants.__version__


def validate(ip_address: str, domain: str) -> bool:
    """
    Checks if an IP address may send email for a domain

    This is the main entry point. If you have an email address, use
    :func:`get_domain_from_email` to get the domain first.

    SPF records are cached in memory for the life of the process. Call
    :func:`dump_cache` if heavy use makes the cache too large.

    Args:
        ip_address (str): The IPv4 or IPv6 address of the sender
        domain (str): The domain the email claims to be from

    Returns:
        bool: ``True`` if the IP address is authorized, or if the domain
        does not have an SPF record

    Raises:
        :exc:`checkspf.spf.SPFError`
        :exc:`checkspf.utils.DNSException`
    """
    return default_checker.validate(ip_address, domain)


def dump_cache():
    """Empties the SPF record cache of the built-in checker"""
    default_checker.dump_cache()


def check_senders(
    ip_address: str,
    domains: list[str],
    *,
    checker: Optional[SPFChecker] = None,
) -> Union[SenderCheckResult, list[SenderCheckResult]]:
    """
    Checks an IP address against the SPF records of one or more domains

    Email addresses are accepted in place of domains.

    Args:
        ip_address (str): The IPv4 or IPv6 address of the sender
        domains (list): Domains or email addresses
        checker (SPFChecker): The checker to use; defaults to the shared one

    Returns:
        A ``dict`` or ``list`` of ``dict`` as returned by
        :func:`checkspf.checker.check_sender`
    """
    results = []
    for domain in domains:
        if "@" in domain:
            try:
                domain = get_domain_from_email(domain)
            except InvalidEmailAddress as error:
                results.append(
                    {
                        "ip": ip_address,
                        "domain": domain,
                        "allowed": False,
                        "valid": False,
                        "error": str(error),
                    }
                )
                continue
        logging.debug(f"Checking: {ip_address} for {domain}")
        results.append(check_sender(ip_address, domain, checker=checker))
    if len(results) == 1:
        results = results[0]

    return results


def results_to_json(
    results: Union[SenderCheckResult, list[SenderCheckResult]],
) -> str:
    """
    Converts a dictionary of results or list of results to a JSON string

    Args:
        results (dict): A dictionary of results

    Returns:
        str: Results in JSON format
    """
    return json.dumps(results, ensure_ascii=False, indent=2)


def results_to_csv(
    results: Union[SenderCheckResult, list[SenderCheckResult]],
) -> str:
    """
    Converts a dictionary of results or list of results to CSV

    Args:
        results (dict): A dictionary of results

    Returns:
        str: A CSV of results
    """
    fields = ["ip", "domain", "allowed", "valid", "error"]
    if type(results) is dict:
        results = [results]
    output = StringIO(newline="\n")
    writer = DictWriter(output, fieldnames=fields)
    writer.writeheader()
    writer.writerows(results)
    output.flush()

    return output.getvalue()


def output_to_file(path: str, content: str):
    """
    Write given content to the given path

    Args:
        path (str): A file path
        content (str): JSON or CSV text
    """
    with open(
        path, "w", newline="\n", encoding="utf-8", errors="ignore"
    ) as output_file:
        output_file.write(content)


__all__ = [
    "DNSException",
    "DNSExceptionNXDOMAIN",
    "DNSRecordFetcher",
    "InvalidEmailAddress",
    "InvalidIPAddress",
    "MultipleSPFTXTRecords",
    "PolicyCache",
    "SPFChecker",
    "SPFError",
    "SPFIncludeLoop",
    "SPFMalformedNetwork",
    "SPFRecordNotFound",
    "SPFTooManyDNSLookups",
    "SPFUnknownRecordType",
    "check_sender",
    "check_senders",
    "default_checker",
    "dump_cache",
    "get_domain_from_email",
    "normalize_domain",
    "output_to_file",
    "results_to_csv",
    "results_to_json",
    "validate",
]
