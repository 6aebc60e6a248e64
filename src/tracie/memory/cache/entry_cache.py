"""
Fixed-capacity TTL store for one cache domain.

:class:`EntryCache` keeps values in insertion order together with the
timestamp they were written at. An entry is logically gone once
``now - inserted_at > ttl`` even if it is still physically present; reads
check that on access and :meth:`EntryCache.prune` sweeps the rest. When a
new key would exceed ``capacity`` the expired entries are dropped first and
then the oldest live ones. A cache built with ``evict_live=False`` never drops
an unexpired entry; it grows past ``capacity`` instead and logs a warning.

All public methods hold an internal lock for their whole body and never
await, so readers never observe a half-applied write or clear.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Hashable, List

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    value: Any
    inserted_at: float
    ttl: float

    def expired(self, now: float) -> bool:
        if self.ttl <= 0:
            return False
        return now - self.inserted_at > self.ttl


@dataclass(frozen=True)
class CacheStats:
    keys: int
    hits: int
    misses: int

    @property
    def accesses(self) -> int:
        return self.hits + self.misses


class EntryCache:
    """TTL-bounded key/value store with hit/miss accounting."""

    def __init__(
        self,
        name: str,
        *,
        ttl: float,
        capacity: int,
        clock: Callable[[], float] = time.monotonic,
        evict_live: bool = True,
    ) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be > 0")
        self.name = name
        self.ttl = ttl
        self.capacity = capacity
        self.evict_live = evict_live
        self._clock = clock
        self._entries: dict[Hashable, CacheEntry] = {}
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0

    # ------------------------------------------------------------------ #
    # READ helpers
    # ------------------------------------------------------------------ #

    def _live_entry(self, key: Hashable, now: float) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expired(now):
            del self._entries[key]
            return None
        return entry

    def get(self, key: Hashable, default: Any = None) -> Any:
        """Return the live value for ``key`` or ``default``; counts a hit or miss."""

        with self._lock:
            entry = self._live_entry(key, self._clock())
            if entry is None:
                self._misses += 1
                return default
            self._hits += 1
            return entry.value

    def has(self, key: Hashable) -> bool:
        """Return ``True`` if ``key`` holds a live entry. Does not touch stats."""

        with self._lock:
            return self._live_entry(key, self._clock()) is not None

    def keys(self) -> List[Hashable]:
        with self._lock:
            now = self._clock()
            return [k for k, entry in self._entries.items() if not entry.expired(now)]

    def __len__(self) -> int:
        return len(self.keys())

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(keys=len(self.keys()), hits=self._hits, misses=self._misses)

    # ------------------------------------------------------------------ #
    # WRITE helpers
    # ------------------------------------------------------------------ #

    def set(self, key: Hashable, value: Any, ttl: float | None = None) -> None:
        """Store ``value`` under ``key``, restarting its TTL."""

        with self._lock:
            now = self._clock()
            self._entries.pop(key, None)
            self._make_room(now)
            self._entries[key] = CacheEntry(value, now, self.ttl if ttl is None else ttl)

    def add(self, key: Hashable, value: Any, ttl: float | None = None) -> bool:
        """Insert ``value`` only if ``key`` has no live entry; return whether it was inserted."""

        with self._lock:
            now = self._clock()
            if self._live_entry(key, now) is not None:
                return False
            self._make_room(now)
            self._entries[key] = CacheEntry(value, now, self.ttl if ttl is None else ttl)
            return True

    def clear(self) -> int:
        """Drop every entry and return how many were physically removed."""

        with self._lock:
            removed = len(self._entries)
            self._entries.clear()
            return removed

    # ------------------------------------------------------------------ #
    # MAINTENANCE
    # ------------------------------------------------------------------ #

    def prune(self) -> int:
        """Physically remove expired entries; returns the number removed."""

        with self._lock:
            return self._prune_expired(self._clock())

    def _prune_expired(self, now: float) -> int:
        expired = [k for k, entry in self._entries.items() if entry.expired(now)]
        for k in expired:
            del self._entries[k]
        return len(expired)

    def _make_room(self, now: float) -> None:
        if len(self._entries) < self.capacity:
            return
        self._prune_expired(now)
        if not self.evict_live:
            if len(self._entries) == self.capacity:
                logger.warning(
                    "%s cache is over capacity (%d live entries); growing instead of evicting",
                    self.name,
                    self.capacity,
                )
            return
        # Oldest-first eviction relies on dict insertion order; set() re-inserts updated keys.
        while len(self._entries) >= self.capacity:
            oldest = next(iter(self._entries))
            del self._entries[oldest]


__all__ = ["CacheEntry", "CacheStats", "EntryCache"]
