"""Per-address cache of aggregated balance results."""

from __future__ import annotations

import time
from collections import OrderedDict
from typing import Callable, Protocol

from .constants import CACHE_DURATION_SECONDS, CACHE_MAX_ENTRIES
from .domain import AggregateResult, CacheEntry
from .logger import get_logger

logger = get_logger(__name__)


class BalanceCache(Protocol):
    """Cache keyed by checksum wallet address."""

    ttl: float

    def get(self, address: str) -> CacheEntry | None: ...

    def put(self, address: str, result: AggregateResult) -> CacheEntry: ...

    def age(self, entry: CacheEntry) -> float: ...


class InMemoryBalanceCache:
    """Bounded in-process cache.

    An entry is fresh while its age is below ``ttl``. Stale entries are still
    returned by :meth:`get` (callers decide to bypass them) but are swept on
    every :meth:`put`, and the oldest entries are dropped once
    ``max_entries`` is exceeded.
    """

    def __init__(
        self,
        ttl: float = CACHE_DURATION_SECONDS,
        max_entries: int = CACHE_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ):
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self.ttl = ttl
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, address: object) -> bool:
        return address in self._entries

    def get(self, address: str) -> CacheEntry | None:
        return self._entries.get(address)

    def put(self, address: str, result: AggregateResult) -> CacheEntry:
        """Store ``result`` for ``address``, replacing any previous entry."""
        entry = CacheEntry(result=result, stored_at=self._clock())
        self._entries.pop(address, None)
        self._entries[address] = entry
        self._evict()
        return entry

    def age(self, entry: CacheEntry) -> float:
        return self._clock() - entry.stored_at

    def is_fresh(self, entry: CacheEntry) -> bool:
        return self.age(entry) < self.ttl

    def clear(self) -> None:
        self._entries.clear()

    def _evict(self) -> None:
        stale = [
            address
            for address, entry in self._entries.items()
            if not self.is_fresh(entry)
        ]
        for address in stale:
            del self._entries[address]

        overflow = len(self._entries) - self.max_entries
        for _ in range(max(overflow, 0)):
            self._entries.popitem(last=False)

        if stale or overflow > 0:
            logger.debug(
                "Balance cache evicted %d stale and %d overflow entries",
                len(stale),
                max(overflow, 0),
            )
