# -*- coding: utf-8 -*-
"""In-memory storage of SPF records"""

from __future__ import annotations

from typing import Optional

from expiringdict import ExpiringDict

from checkspf._constants import POLICY_CACHE_MAX_AGE_SECONDS, POLICY_CACHE_MAX_LEN

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


class PolicyCache(object):
    """
    Maps domains to their SPF records

    Without limits entries are kept until :meth:`clear` is called, so a long
    running process checking many unique domains grows the cache without
    bound. Setting ``max_len`` or ``max_age_seconds`` stores the entries in an
    :class:`expiringdict.ExpiringDict` instead.

    Not thread safe.
    """

    def __init__(
        self,
        *,
        max_len: Optional[int] = POLICY_CACHE_MAX_LEN,
        max_age_seconds: Optional[int] = POLICY_CACHE_MAX_AGE_SECONDS,
    ):
        self.max_len = max_len
        self.max_age_seconds = max_age_seconds
        self._records = self._new_store()

    def _new_store(self):
        if self.max_len is None and self.max_age_seconds is None:
            return {}
        # ExpiringDict needs both limits
        max_len = self.max_len
        if max_len is None:
            max_len = 2**31
        max_age_seconds = self.max_age_seconds
        if max_age_seconds is None:
            max_age_seconds = 2**31
        return ExpiringDict(max_len=max_len, max_age_seconds=max_age_seconds)

    def get(self, domain: str) -> Optional[list[str]]:
        """Returns the cached SPF records of a domain, or ``None``"""
        return self._records.get(domain)

    def put(self, domain: str, records: list[str]):
        self._records[domain] = list(records)

    def clear(self):
        """Removes every entry"""
        self._records = self._new_store()

    def __contains__(self, domain: str) -> bool:
        return self.get(domain) is not None

    def __len__(self) -> int:
        return len(self._records)
