"""Cache coordinator owning one :class:`EntryCache` per domain."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any, Dict, Hashable, Literal

from tracie.config import cache as cache_cfg

from .entry_cache import CacheStats, EntryCache

logger = logging.getLogger(__name__)


class CacheDomain(str, enum.Enum):
    MESSAGES = "messages"
    USERS = "users"
    GROUPS = "groups"
    MEDIA = "media"


ALL: Literal["all"] = "all"


@dataclass(frozen=True)
class CacheSummary:
    total_keys: int
    hits: int
    misses: int

    @property
    def hit_rate(self) -> float:
        return hit_rate(self.hits, self.misses)


def hit_rate(hits: int, misses: int) -> float:
    """Return ``hits / (hits + misses)``, or ``0.0`` when nothing was accessed."""

    total = hits + misses
    if total == 0:
        return 0.0
    return hits / total


def default_caches() -> Dict[CacheDomain, EntryCache]:
    return {
        CacheDomain.MESSAGES: EntryCache(
            CacheDomain.MESSAGES.value, ttl=cache_cfg.MESSAGES_TTL, capacity=cache_cfg.MESSAGES_CAPACITY,
            evict_live=False,
        ),
        CacheDomain.USERS: EntryCache(
            CacheDomain.USERS.value, ttl=cache_cfg.USERS_TTL, capacity=cache_cfg.USERS_CAPACITY
        ),
        CacheDomain.GROUPS: EntryCache(
            CacheDomain.GROUPS.value, ttl=cache_cfg.GROUPS_TTL, capacity=cache_cfg.GROUPS_CAPACITY
        ),
        CacheDomain.MEDIA: EntryCache(
            CacheDomain.MEDIA.value, ttl=cache_cfg.MEDIA_TTL, capacity=cache_cfg.MEDIA_CAPACITY
        ),
    }


class CacheCoordinator:
    """
    Typed front door to the per-domain caches.

    ``clear`` serves both deliberate session resets and emergency memory
    relief; the coordinator does not distinguish the two.
    """

    def __init__(self, caches: Dict[CacheDomain, EntryCache] | None = None) -> None:
        self._caches = caches if caches is not None else default_caches()
        missing = set(CacheDomain) - set(self._caches)
        if missing:
            raise ValueError(f"Missing cache domains: {sorted(d.value for d in missing)}")

    def domain(self, domain: CacheDomain | str) -> EntryCache:
        return self._caches[CacheDomain(domain)]

    # ------------------------------------------------------------------ #
    # Generic accessors
    # ------------------------------------------------------------------ #

    def get(self, domain: CacheDomain | str, key: Hashable, default: Any = None) -> Any:
        return self.domain(domain).get(key, default)

    def set(self, domain: CacheDomain | str, key: Hashable, value: Any) -> None:
        self.domain(domain).set(key, value)

    def has(self, domain: CacheDomain | str, key: Hashable) -> bool:
        return self.domain(domain).has(key)

    def add(self, domain: CacheDomain | str, key: Hashable, value: Any) -> bool:
        return self.domain(domain).add(key, value)

    # ------------------------------------------------------------------ #
    # Typed accessors
    # ------------------------------------------------------------------ #

    def get_user(self, jid: str) -> dict | None:
        return self.get(CacheDomain.USERS, jid)

    def cache_user(self, jid: str, record: dict) -> None:
        self.set(CacheDomain.USERS, jid, record)

    def get_group(self, jid: str) -> dict | None:
        return self.get(CacheDomain.GROUPS, jid)

    def cache_group(self, jid: str, metadata: dict) -> None:
        self.set(CacheDomain.GROUPS, jid, metadata)

    def get_media(self, descriptor: Hashable) -> Any:
        return self.get(CacheDomain.MEDIA, descriptor)

    def cache_media(self, descriptor: Hashable, blob: Any) -> None:
        self.set(CacheDomain.MEDIA, descriptor, blob)

    # ------------------------------------------------------------------ #
    # MAINTENANCE
    # ------------------------------------------------------------------ #

    def clear(self, domain: CacheDomain | str = ALL) -> int:
        """Clear one domain or every domain (``"all"``); idempotent."""

        if domain == ALL:
            return sum(cache.clear() for cache in self._caches.values())
        return self.domain(domain).clear()

    def emergency_clear(self, reason: str) -> int:
        removed = self.clear(ALL)
        logger.warning("Emergency cache clear (%s): dropped %d entries", reason, removed)
        return removed

    def prune_expired(self) -> int:
        return sum(cache.prune() for cache in self._caches.values())

    def stats(self) -> Dict[str, CacheStats]:
        return {d.value: cache.stats() for d, cache in self._caches.items()}

    def summary(self) -> CacheSummary:
        stats = self.stats().values()
        return CacheSummary(
            total_keys=sum(s.keys for s in stats),
            hits=sum(s.hits for s in stats),
            misses=sum(s.misses for s in stats),
        )


__all__ = ["ALL", "CacheCoordinator", "CacheDomain", "CacheSummary", "default_caches", "hit_rate"]
