"""
Short-term multi-domain cache package.

Modules
=======

``entry_cache``
    Defines :class:`~tracie.memory.cache.entry_cache.EntryCache`, a
    fixed-capacity TTL store with hit/miss accounting for one domain.
``coordinator``
    Provides :class:`~tracie.memory.cache.coordinator.CacheCoordinator`, which
    owns the messages/users/groups/media caches and exposes typed accessors,
    bulk clears and aggregate statistics.
``dedup``
    Implements :class:`~tracie.memory.cache.dedup.DedupFilter`, the
    already-processed check backed by the messages domain.
"""

from .coordinator import ALL, CacheCoordinator, CacheDomain, hit_rate
from .dedup import DedupFilter
from .entry_cache import CacheStats, EntryCache

__all__ = [
    "ALL",
    "CacheCoordinator",
    "CacheDomain",
    "CacheStats",
    "DedupFilter",
    "EntryCache",
    "hit_rate",
]
