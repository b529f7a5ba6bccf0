#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Automated tests"""

import io
import os
import unittest
from collections import Counter
from contextlib import redirect_stdout
from unittest import mock

import dns.resolver

import checkspf
import checkspf._cli
import checkspf.cache
import checkspf.checker
import checkspf.spf
import checkspf.utils
from checkspf.spf import Mechanism


class FakeFetcher(object):
    """Answers DNS lookups from dictionaries and counts TXT lookups"""

    def __init__(self, txt=None, addresses=None, mx=None):
        self.txt = txt or {}
        self.addresses = addresses or {}
        self.mx = mx or {}
        self.txt_lookups = Counter()

    def lookup_txt(self, name):
        self.txt_lookups[name] += 1
        if name not in self.txt:
            raise checkspf.utils.DNSExceptionNXDOMAIN(
                f"The domain {name} does not exist."
            )
        return list(self.txt[name])

    def lookup_ip_addresses(self, name):
        return list(self.addresses.get(name, []))

    def lookup_mx(self, name):
        return list(self.mx.get(name, []))


def checker_for(txt=None, addresses=None, mx=None, **kwargs):
    fetcher = FakeFetcher(txt=txt, addresses=addresses, mx=mx)
    return checkspf.SPFChecker(fetcher, **kwargs), fetcher


class StubAnswer(object):
    def __init__(self, text=None, strings=None):
        self.text = text
        self.strings = strings

    def to_text(self):
        return self.text


class StubResolver(object):
    """Stands in for dns.resolver.Resolver"""

    def __init__(self, answers):
        self.answers = answers
        self.queries = []

    def resolve(self, domain, record_type, lifetime=None):
        self.queries.append((domain, record_type))
        answer = self.answers.get((domain, record_type), dns.resolver.NoAnswer())
        if isinstance(answer, Exception):
            raise answer
        return answer


class Test(unittest.TestCase):
    def testEmailParsing(self):
        """The lowercase domain is returned for plain and named addresses"""
        addresses = [
            "cathal@garvey.me",
            "Cathal <cathal@garvey.me>",
            "Cathal <cathalGarvey@garvey.me>",
            "cathal@Garvey.Me",
        ]
        for address in addresses:
            self.assertEqual(checkspf.get_domain_from_email(address), "garvey.me")

    def testInvalidEmailAddress(self):
        """Strings that are not usable email addresses raise InvalidEmailAddress"""
        addresses = [
            "",
            "not an email",
            "cathal@",
            "garvey.me",
            "cathal@garvey.me junk",
            "foo bar@example.com",
            "Name <a@b.com",
        ]
        for address in addresses:
            self.assertRaises(
                checkspf.InvalidEmailAddress,
                checkspf.get_domain_from_email,
                address,
            )

    def testNormalizeDomain(self):
        domain = "\u200bExample.COM."
        self.assertEqual(checkspf.normalize_domain(domain), "example.com")

    def testNoSPFRecordAllows(self):
        """A domain without an SPF record allows any sender"""
        checker, _ = checker_for(
            txt={"example.com": ["google-site-verification=abc123"]}
        )
        self.assertTrue(checker.validate("93.95.224.70", "example.com"))

    def testNoTXTRecordsAllows(self):
        """A domain without any TXT records allows any sender"""
        checker, _ = checker_for(txt={"example.com": []})
        self.assertTrue(checker.validate("93.95.224.70", "example.com"))
        self.assertEqual(len(checker.cache), 0)

    def testMultipleSPFRecords(self):
        """Multiple SPF records raise MultipleSPFTXTRecords"""
        checker, _ = checker_for(
            txt={"example.com": ["v=spf1 ip4:192.0.2.1 -all", "v=spf1 -all"]}
        )
        self.assertRaises(
            checkspf.MultipleSPFTXTRecords,
            checker.validate,
            "192.0.2.1",
            "example.com",
        )

    def testSPF10IsNotSPF1(self):
        """A v=spf10 version section is not an SPF record"""
        self.assertRaises(
            checkspf.SPFRecordNotFound,
            checkspf.spf.extract_spf_record,
            ["v=spf10 ip4:192.0.2.1", "v=DMARC1; p=none"],
        )
        record = checkspf.spf.extract_spf_record(["foo", "v=spf1 -all"])
        self.assertEqual(record, "v=spf1 -all")

    def testCIDRContainment(self):
        """An IP address inside an ip4 CIDR block is allowed"""
        checker, _ = checker_for(
            txt={
                "covered.example": ["v=spf1 ip4:93.95.224.0/24 -all"],
                "uncovered.example": ["v=spf1 ip4:10.0.0.0/8 -all"],
            }
        )
        self.assertTrue(checker.validate("93.95.224.70", "covered.example"))
        self.assertFalse(checker.validate("93.95.224.70", "uncovered.example"))

    def testBareIPAddress(self):
        """An ip4 value without a prefix length only matches that address"""
        checker, _ = checker_for(txt={"example.com": ["v=spf1 ip4:93.95.224.70"]})
        self.assertTrue(checker.validate("93.95.224.70", "example.com"))
        self.assertFalse(checker.validate("93.95.224.71", "example.com"))

    def testIPv6Mechanism(self):
        """ip6 mechanisms authorize IPv6 senders"""
        checker, _ = checker_for(
            txt={"example.com": ["v=spf1 ip6:2001:db8::/32 ip6:2001:db9::25 -all"]}
        )
        self.assertTrue(checker.validate("2001:db8::1", "example.com"))
        self.assertTrue(checker.validate("2001:db9::25", "example.com"))
        self.assertFalse(checker.validate("2001:db9::26", "example.com"))
        self.assertFalse(checker.validate("192.0.2.1", "example.com"))

    def testIncludeRecursion(self):
        """Networks of included domains are authorized"""
        checker, fetcher = checker_for(
            txt={
                "example.com": ["v=spf1 include:other.example -all"],
                "other.example": ["v=spf1 ip4:10.0.0.0/8"],
            }
        )
        self.assertTrue(checker.validate("10.20.30.40", "example.com"))
        self.assertFalse(checker.validate("11.0.0.1", "example.com"))
        self.assertEqual(fetcher.txt_lookups["other.example"], 2)

    def testIncludeOrder(self):
        """Included networks are inlined where the include appears"""
        fetcher = FakeFetcher(
            txt={
                "b.example": ["v=spf1 ip4:2.2.2.2 include:c.example"],
                "c.example": ["v=spf1 ip4:3.3.3.0/24"],
            }
        )
        networks = checkspf.spf.resolve_mechanisms(
            "a.example",
            "v=spf1 ip4:1.1.1.1 include:b.example ip4:4.4.4.4 ~all",
            fetcher,
        )
        self.assertEqual(networks, ["1.1.1.1", "2.2.2.2", "3.3.3.0/24", "4.4.4.4"])

    def testDiamondIncludeIsNotALoop(self):
        """The same domain can be included by two branches"""
        fetcher = FakeFetcher(
            txt={
                "b.example": ["v=spf1 include:d.example"],
                "c.example": ["v=spf1 include:d.example"],
                "d.example": ["v=spf1 ip4:192.0.2.0/24"],
            }
        )
        networks = checkspf.spf.resolve_mechanisms(
            "a.example", "v=spf1 include:b.example include:c.example", fetcher
        )
        self.assertEqual(networks, ["192.0.2.0/24", "192.0.2.0/24"])

    def testIncludeLoop(self):
        """SPF record with include loop raises SPFIncludeLoop"""
        checker, _ = checker_for(
            txt={
                "a.example": ["v=spf1 include:b.example -all"],
                "b.example": ["v=spf1 include:a.example"],
                "self.example": ["v=spf1 include:self.example"],
            }
        )
        self.assertRaises(
            checkspf.SPFIncludeLoop, checker.validate, "192.0.2.1", "a.example"
        )
        self.assertRaises(
            checkspf.SPFIncludeLoop, checker.validate, "192.0.2.1", "self.example"
        )

    def testTooManyDNSLookups(self):
        """More than 10 DNS querying mechanisms raise SPFTooManyDNSLookups"""
        record = "v=spf1" + " a" * 11 + " -all"
        checker, _ = checker_for(
            txt={"example.com": [record]},
            addresses={"example.com": ["192.0.2.1"]},
        )
        with self.assertRaises(checkspf.SPFTooManyDNSLookups) as context:
            checker.validate("192.0.2.1", "example.com")
        self.assertEqual(context.exception.data, {"dns_lookups": 11})

        record = "v=spf1" + " a" * 10 + " -all"
        checker, _ = checker_for(
            txt={"example.com": [record]},
            addresses={"example.com": ["192.0.2.1"]},
        )
        self.assertTrue(checker.validate("192.0.2.1", "example.com"))

    def testTooManyNestedIncludes(self):
        """Lookups made by included records count towards the limit"""
        txt = {}
        for i in range(11):
            txt[f"d{i}.example"] = [f"v=spf1 include:d{i + 1}.example"]
        txt["d11.example"] = ["v=spf1 ip4:192.0.2.1"]
        checker, _ = checker_for(txt=txt)
        self.assertRaises(
            checkspf.SPFTooManyDNSLookups,
            checker.validate,
            "192.0.2.1",
            "d0.example",
        )
        checker, _ = checker_for(txt=txt, max_dns_lookups=11)
        self.assertTrue(checker.validate("192.0.2.1", "d0.example"))

    def testAMechanism(self):
        """a mechanisms authorize the A/AAAA addresses of the domain"""
        checker, _ = checker_for(
            txt={"example.com": ["v=spf1 a -all"]},
            addresses={"example.com": ["192.0.2.10", "2001:db8::10"]},
        )
        self.assertTrue(checker.validate("192.0.2.10", "example.com"))
        self.assertTrue(checker.validate("2001:db8::10", "example.com"))
        self.assertFalse(checker.validate("192.0.2.11", "example.com"))

    def testAMechanismWithDomainAndPrefix(self):
        """a mechanisms can name another host and a prefix length"""
        checker, _ = checker_for(
            txt={"example.com": ["v=spf1 a:mail.example.net/24 -all"]},
            addresses={"mail.example.net": ["198.51.100.7"]},
        )
        self.assertTrue(checker.validate("198.51.100.200", "example.com"))
        self.assertFalse(checker.validate("198.51.101.1", "example.com"))

    def testAMechanismPrefixOnlyAppliesToIPv4(self):
        """An a/24 length leaves AAAA results as single addresses"""
        checker, _ = checker_for(
            txt={"example.com": ["v=spf1 a/24 -all"]},
            addresses={"example.com": ["192.0.2.10", "2001:db8::10"]},
        )
        self.assertTrue(checker.validate("192.0.2.200", "example.com"))
        self.assertTrue(checker.validate("2001:db8::10", "example.com"))
        self.assertFalse(checker.validate("2001:db8::11", "example.com"))
        self.assertFalse(checker.validate("2001:dff:ffff::1", "example.com"))

    def testDualCIDRLength(self):
        """a/24//64 applies each length to its own address family"""
        checker, _ = checker_for(
            txt={"example.com": ["v=spf1 mx/24//64 -all"]},
            mx={"example.com": [{"preference": 10, "hostname": "mx.example.com"}]},
            addresses={"mx.example.com": ["192.0.2.10", "2001:db8::10"]},
        )
        self.assertTrue(checker.validate("192.0.2.200", "example.com"))
        self.assertTrue(checker.validate("2001:db8::ffff", "example.com"))
        self.assertFalse(checker.validate("2001:db8:0:1::10", "example.com"))

    def testAMechanismInIncludeUsesIncludedDomain(self):
        """a mechanisms of an included record resolve the included domain"""
        checker, _ = checker_for(
            txt={
                "example.com": ["v=spf1 include:other.example -all"],
                "other.example": ["v=spf1 a"],
            },
            addresses={
                "example.com": ["192.0.2.1"],
                "other.example": ["203.0.113.5"],
            },
        )
        self.assertTrue(checker.validate("203.0.113.5", "example.com"))
        self.assertFalse(checker.validate("192.0.2.1", "example.com"))

    def testMXMechanism(self):
        """mx mechanisms authorize the addresses of every MX host"""
        checker, _ = checker_for(
            txt={"example.com": ["v=spf1 mx -all"]},
            mx={
                "example.com": [
                    {"preference": 10, "hostname": "mx1.example.com"},
                    {"preference": 20, "hostname": "mx2.example.com"},
                ]
            },
            addresses={
                "mx1.example.com": ["198.51.100.25"],
                "mx2.example.com": ["198.51.100.26", "2001:db8::26"],
            },
        )
        self.assertTrue(checker.validate("198.51.100.25", "example.com"))
        self.assertTrue(checker.validate("2001:db8::26", "example.com"))
        self.assertFalse(checker.validate("198.51.100.27", "example.com"))

    def testQualifiersNeverAuthorize(self):
        """Only mechanisms with a pass qualifier authorize senders"""
        record = (
            "v=spf1 -ip4:192.0.2.1 ~ip4:192.0.2.2 ?ip4:192.0.2.3 "
            "+ip4:192.0.2.4 IP4:192.0.2.5 ~all"
        )
        checker, _ = checker_for(txt={"example.com": [record]})
        for ip_address in ["192.0.2.1", "192.0.2.2", "192.0.2.3"]:
            self.assertFalse(checker.validate(ip_address, "example.com"))
        self.assertTrue(checker.validate("192.0.2.4", "example.com"))
        self.assertTrue(checker.validate("192.0.2.5", "example.com"))

    def testUnknownMechanismsAreSkipped(self):
        """Unsupported terms are ignored"""
        record = (
            "v=spf1 exists:%{i}.spf.example.net ptr redirect=_spf.example.net "
            "ip4:192.0.2.1 -all"
        )
        checker, _ = checker_for(txt={"example.com": [record]})
        self.assertTrue(checker.validate("192.0.2.1", "example.com"))

    def testMalformedNetwork(self):
        """Unparsable networks raise SPFMalformedNetwork"""
        checker, _ = checker_for(
            txt={"example.com": ["v=spf1 ip4:999.1.1.1 -all"]}
        )
        self.assertRaises(
            checkspf.SPFMalformedNetwork,
            checker.validate,
            "192.0.2.1",
            "example.com",
        )

    def testFirstMatchWins(self):
        """Networks after a match are not parsed"""
        networks = ["192.0.2.0/24", "not-a-network"]
        self.assertTrue(checkspf.spf.ip_in_networks("192.0.2.1", networks))
        self.assertRaises(
            checkspf.SPFMalformedNetwork,
            checkspf.spf.ip_in_networks,
            "198.51.100.1",
            networks,
        )

    def testIPv4MappedSender(self):
        """IPv4-mapped IPv6 senders match ip4 networks"""
        networks = ["93.95.224.0/24"]
        self.assertTrue(checkspf.spf.ip_in_networks("::ffff:93.95.224.70", networks))
        self.assertFalse(checkspf.spf.ip_in_networks("::ffff:93.95.225.70", networks))
        self.assertTrue(
            checkspf.spf.ip_in_networks("::ffff:93.95.224.70", ["::ffff:0:0/96"])
        )

    def testInvalidIPAddress(self):
        """An invalid sender IP address raises InvalidIPAddress"""
        self.assertRaises(
            checkspf.InvalidIPAddress,
            checkspf.spf.ip_in_networks,
            "mail.example.com",
            ["192.0.2.1"],
        )

    def testUnknownRecordType(self):
        """Only a and mx records can be expanded into addresses"""
        self.assertRaises(
            checkspf.SPFUnknownRecordType,
            checkspf.spf._get_host_addresses,
            "ptr",
            "example.com",
            FakeFetcher(),
        )

    def testIncludeMissingSPFRecord(self):
        """An include without an SPF record is an error"""
        checker, _ = checker_for(
            txt={
                "example.com": ["v=spf1 include:other.example -all"],
                "other.example": ["some verification string"],
            }
        )
        self.assertRaises(
            checkspf.SPFRecordNotFound,
            checker.validate,
            "192.0.2.1",
            "example.com",
        )

    def testDNSErrorsPropagate(self):
        """DNS errors are raised and nothing is cached"""
        checker, _ = checker_for(
            txt={"example.com": ["v=spf1 include:missing.example -all"]}
        )
        self.assertRaises(
            checkspf.DNSExceptionNXDOMAIN,
            checker.validate,
            "192.0.2.1",
            "nxdomain.example",
        )
        self.assertNotIn("nxdomain.example", checker.cache)
        self.assertRaises(
            checkspf.DNSException,
            checker.validate,
            "192.0.2.1",
            "example.com",
        )

    def testCacheIdempotence(self):
        """Repeated checks of a domain only query its TXT records once"""
        checker, fetcher = checker_for(
            txt={"example.com": ["v=spf1 ip4:192.0.2.0/24 -all"]}
        )
        first = checker.validate("192.0.2.1", "example.com")
        second = checker.validate("192.0.2.1", "Example.COM")
        self.assertTrue(first)
        self.assertEqual(first, second)
        self.assertEqual(fetcher.txt_lookups["example.com"], 1)
        self.assertEqual(
            checker.cache.get("example.com"), ["v=spf1 ip4:192.0.2.0/24 -all"]
        )

    def testDumpCache(self):
        """Dumping the cache causes a fresh TXT lookup"""
        checker, fetcher = checker_for(
            txt={"example.com": ["v=spf1 ip4:192.0.2.0/24 -all"]}
        )
        checker.validate("192.0.2.1", "example.com")
        checker.dump_cache()
        self.assertEqual(len(checker.cache), 0)
        checker.validate("192.0.2.1", "example.com")
        self.assertEqual(fetcher.txt_lookups["example.com"], 2)

    def testPolicyCache(self):
        cache = checkspf.PolicyCache(max_len=None, max_age_seconds=None)
        self.assertIsInstance(cache._records, dict)
        self.assertIsNone(cache.get("example.com"))
        cache.put("example.com", ["v=spf1 -all"])
        self.assertIn("example.com", cache)
        self.assertEqual(cache.get("example.com"), ["v=spf1 -all"])
        cache.clear()
        self.assertEqual(len(cache), 0)

    def testBoundedPolicyCache(self):
        """A maximum length evicts the oldest entries"""
        cache = checkspf.PolicyCache(max_len=2, max_age_seconds=None)
        cache.put("a.example", ["v=spf1 -all"])
        cache.put("b.example", ["v=spf1 -all"])
        cache.put("c.example", ["v=spf1 -all"])
        self.assertNotIn("a.example", cache)
        self.assertIn("c.example", cache)

    def testModuleLevelValidate(self):
        """The shared checker backs validate and dump_cache"""
        fetcher = FakeFetcher(
            txt={
                "vulpinedesigns.co.uk": ["v=spf1 include:_spf.google.com ~all"],
                "_spf.google.com": ["v=spf1 ip4:35.190.247.0/24 ~all"],
                "cathalgarvey.me": ["keybase-site-verification=abc"],
            }
        )
        checkspf.dump_cache()
        with mock.patch.object(checkspf.default_checker, "fetcher", fetcher):
            self.assertFalse(checkspf.validate("93.95.224.70", "vulpinedesigns.co.uk"))
            self.assertTrue(checkspf.validate("93.95.224.70", "cathalgarvey.me"))
            checkspf.validate("93.95.224.70", "vulpinedesigns.co.uk")
            self.assertEqual(fetcher.txt_lookups["vulpinedesigns.co.uk"], 1)
            checkspf.dump_cache()
            checkspf.validate("93.95.224.70", "vulpinedesigns.co.uk")
            self.assertEqual(fetcher.txt_lookups["vulpinedesigns.co.uk"], 2)
        checkspf.dump_cache()

    def testCheckSender(self):
        """check_sender returns errors instead of raising them"""
        checker, _ = checker_for(
            txt={
                "example.com": ["v=spf1 ip4:192.0.2.0/24 -all"],
                "multiple.example": ["v=spf1 -all", "v=spf1 a -all"],
            }
        )
        results = checkspf.check_sender("192.0.2.1", "example.com", checker=checker)
        self.assertEqual(
            results,
            {
                "ip": "192.0.2.1",
                "domain": "example.com",
                "allowed": True,
                "valid": True,
            },
        )
        results = checkspf.check_sender(
            "192.0.2.1", "multiple.example", checker=checker
        )
        self.assertFalse(results["allowed"])
        self.assertFalse(results["valid"])
        self.assertIn("multiple SPF TXT records", results["error"])

    def testCheckSendersWithEmailAddresses(self):
        checker, _ = checker_for(
            txt={"garvey.me": ["v=spf1 ip4:192.0.2.1 -all"]}
        )
        results = checkspf.check_senders(
            "192.0.2.1",
            ["Cathal <cathal@Garvey.Me>", "broken@"],
            checker=checker,
        )
        self.assertEqual(len(results), 2)
        self.assertEqual(results[0]["domain"], "garvey.me")
        self.assertTrue(results[0]["allowed"])
        self.assertFalse(results[1]["valid"])
        csv = checkspf.results_to_csv(results)
        self.assertTrue(csv.startswith("ip,domain,allowed,valid,error"))
        self.assertIn('"garvey.me"', checkspf.results_to_json(results))

    def testParseMechanism(self):
        parse = checkspf.spf.parse_mechanism
        self.assertEqual(parse("v=spf1"), Mechanism("pass", "version", "v=spf1"))
        self.assertEqual(parse("-all"), Mechanism("fail", "all"))
        self.assertEqual(parse("~ALL"), Mechanism("softfail", "all"))
        self.assertEqual(
            parse("IP4:192.0.2.0/24"), Mechanism("pass", "ip4", "192.0.2.0/24")
        )
        self.assertEqual(
            parse("ip6:2001:db8::/32"), Mechanism("pass", "ip6", "2001:db8::/32")
        )
        self.assertEqual(
            parse("?include:_spf.example.net"),
            Mechanism("neutral", "include", "_spf.example.net"),
        )
        self.assertEqual(parse("a"), Mechanism("pass", "a", ""))
        self.assertEqual(
            parse("a:mail.example.com/24"),
            Mechanism("pass", "a", "mail.example.com", 24),
        )
        self.assertEqual(parse("mx/28"), Mechanism("pass", "mx", "", 28))
        self.assertEqual(
            parse("a:mail.example.com/24//64"),
            Mechanism("pass", "a", "mail.example.com", 24, 64),
        )
        self.assertEqual(parse("mx//48"), Mechanism("pass", "mx", "", None, 48))
        for term in ["exists:%{i}.example", "redirect=example.com", "ptr",
                     "include:", "ip4", "allx", "a/", "mx:", "a/24/", "a//x"]:
            self.assertEqual(parse(term).kind, "unknown", term)

    def testTokenizeSPFRecord(self):
        tokens = checkspf.spf.tokenize_spf_record("v=spf1  a   mx -all ")
        self.assertEqual(tokens, ["v=spf1", "a", "mx", "-all"])

    def testQueryTXTRecords(self):
        """TXT record strings are joined and decoded"""
        resolver = StubResolver(
            {
                ("example.com", "TXT"): [
                    StubAnswer(strings=[b"v=spf1 ", b"ip4:192.0.2.1 -all"]),
                    StubAnswer(strings=[b"google-site-verification=abc"]),
                ],
            }
        )
        fetcher = checkspf.DNSRecordFetcher(resolver=resolver)
        self.assertEqual(
            fetcher.lookup_txt("Example.com."),
            ["v=spf1 ip4:192.0.2.1 -all", "google-site-verification=abc"],
        )
        self.assertEqual(fetcher.lookup_txt("empty.example"), [])

    def testQueryNXDOMAIN(self):
        resolver = StubResolver(
            {("missing.example", "TXT"): dns.resolver.NXDOMAIN()}
        )
        fetcher = checkspf.DNSRecordFetcher(resolver=resolver)
        self.assertRaises(
            checkspf.DNSExceptionNXDOMAIN, fetcher.lookup_txt, "missing.example"
        )

    def testQueryMXAndAddresses(self):
        resolver = StubResolver(
            {
                ("example.com", "MX"): [
                    StubAnswer(text="20 MX2.example.com."),
                    StubAnswer(text="10 mx1.example.com."),
                ],
                ("mx1.example.com", "A"): [StubAnswer(text="192.0.2.25")],
                ("mx1.example.com", "AAAA"): [StubAnswer(text="2001:db8::25")],
                ("mx2.example.com", "A"): [StubAnswer(text="192.0.2.26")],
            }
        )
        fetcher = checkspf.DNSRecordFetcher(resolver=resolver)
        self.assertEqual(
            fetcher.lookup_mx("example.com"),
            [
                {"preference": 10, "hostname": "mx1.example.com"},
                {"preference": 20, "hostname": "mx2.example.com"},
            ],
        )
        self.assertEqual(
            fetcher.lookup_ip_addresses("mx1.example.com"),
            ["192.0.2.25", "2001:db8::25"],
        )
        # mx2 only has an A record
        self.assertEqual(fetcher.lookup_ip_addresses("mx2.example.com"), ["192.0.2.26"])
        self.assertEqual(fetcher.lookup_mx("nomx.example"), [])

    def testQueryTimeoutRetries(self):
        """Timeouts are retried before being raised as DNSException"""
        resolver = StubResolver(
            {
                ("slow.example", "TXT"): dns.resolver.LifetimeTimeout(
                    timeout=2.0, errors=[]
                )
            }
        )
        fetcher = checkspf.DNSRecordFetcher(resolver=resolver, timeout_retries=2)
        self.assertRaises(checkspf.DNSException, fetcher.lookup_txt, "slow.example")
        self.assertEqual(len(resolver.queries), 3)

    def testCLI(self):
        """The command line prints results and exits non-zero on a denial"""
        fetcher = FakeFetcher(txt={"example.com": ["v=spf1 ip4:192.0.2.1 -all"]})
        with mock.patch.object(checkspf._cli, "DNSRecordFetcher", return_value=fetcher):
            output = io.StringIO()
            with redirect_stdout(output):
                status = checkspf._cli._main(["192.0.2.1", "example.com"])
            self.assertEqual(status, 0)
            self.assertIn('"allowed": true', output.getvalue())

            output = io.StringIO()
            with redirect_stdout(output):
                status = checkspf._cli._main(
                    ["-f", "csv", "192.0.2.2", "user@example.com"]
                )
            self.assertEqual(status, 1)
            self.assertIn("192.0.2.2,example.com,False,True", output.getvalue())

    @unittest.skipUnless(os.environ.get("CHECKSPF_NETWORK_TESTS"), "no network")
    def testLiveSPFRecords(self):
        """Known domains give the expected results over real DNS"""
        ip = "93.95.224.70"  # mail.1984.is
        checker = checkspf.SPFChecker()
        self.assertFalse(checker.validate(ip, "vulpinedesigns.co.uk"))
        self.assertTrue(checker.validate(ip, "cathalgarvey.me"))


if __name__ == "__main__":
    unittest.main(verbosity=2)
