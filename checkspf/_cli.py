#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Checks if an IP address may send email for one or more domains using SPF"""

from __future__ import annotations

import sys
from argparse import ArgumentParser

import logging

from checkspf import (
    __version__,
    check_senders,
    results_to_json,
    results_to_csv,
    output_to_file,
)
from checkspf._constants import (
    DEFAULT_DNS_TIMEOUT,
    DEFAULT_DNS_TIMEOUT_RETRIES,
    MAX_DNS_LOOKUPS,
)
from checkspf.checker import SPFChecker
from checkspf.utils import DNSRecordFetcher

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


def _main(argv=None):
    """Called when the module in executed"""
    arg_parser = ArgumentParser(description=__doc__)
    arg_parser.add_argument("ip", help="the IPv4 or IPv6 address of the sender")
    arg_parser.add_argument(
        "domain",
        nargs="+",
        help="one or more domains or email addresses",
    )
    arg_parser.add_argument(
        "-f",
        "--format",
        default="json",
        help="specify JSON or CSV screen output format",
    )
    arg_parser.add_argument(
        "-o",
        "--output",
        nargs="+",
        help="one or more file paths to output to "
        "(must end in .json or .csv) "
        "(silences screen output)",
    )
    arg_parser.add_argument(
        "-n", "--nameserver", nargs="+", help="nameservers to query"
    )
    arg_parser.add_argument(
        "-t",
        "--timeout",
        help="number of seconds to wait for an answer from DNS "
        f"(default {DEFAULT_DNS_TIMEOUT})",
        type=float,
        default=DEFAULT_DNS_TIMEOUT,
    )
    arg_parser.add_argument(
        "--timeout-retries",
        help="number of times to reattempt a query after a timeout "
        f"(default {DEFAULT_DNS_TIMEOUT_RETRIES})",
        type=int,
        default=DEFAULT_DNS_TIMEOUT_RETRIES,
    )
    arg_parser.add_argument(
        "--max-lookups",
        help="maximum number of DNS querying mechanisms per check "
        f"(default {MAX_DNS_LOOKUPS})",
        type=int,
        default=MAX_DNS_LOOKUPS,
    )
    arg_parser.add_argument("-v", "--version", action="version", version=__version__)
    arg_parser.add_argument(
        "--debug", action="store_true", help="enable debugging output"
    )

    args = arg_parser.parse_args(argv)

    logging_format = "%(asctime)s - %(levelname)s: %(message)s"
    logging.basicConfig(level=logging.WARNING, format=logging_format)

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)
        logging.debug("Debug output enabled")

    fetcher = DNSRecordFetcher(
        nameservers=args.nameserver,
        timeout=args.timeout,
        timeout_retries=args.timeout_retries,
    )
    checker = SPFChecker(fetcher, max_dns_lookups=args.max_lookups)
    results = check_senders(args.ip, args.domain, checker=checker)

    if args.output is None:
        if args.format.lower() == "csv":
            print(results_to_csv(results))
        else:
            print(results_to_json(results))
    else:
        for path in args.output:
            json_path = path.lower().endswith(".json")
            csv_path = path.lower().endswith(".csv")

            if not json_path and not csv_path:
                logging.error(f"Output path {path} must end in .json or .csv")
            elif json_path:
                output_to_file(path, results_to_json(results))
            elif csv_path:
                output_to_file(path, results_to_csv(results))

    if type(results) is dict:
        results = [results]
    if all(result["allowed"] for result in results):
        return 0
    return 1


def main():
    sys.exit(_main())


if __name__ == "__main__":
    main()
