"""Reject inbound messages that were already processed."""

from __future__ import annotations

import logging

from .coordinator import CacheCoordinator, CacheDomain

logger = logging.getLogger(__name__)

_MARKER = True


class DedupFilter:
    """
    Marker-based duplicate detection on top of the messages domain.

    A marker's presence alone means "seen"; its lifetime is the messages TTL.
    Check-and-insert is a single :meth:`EntryCache.add` call with no
    suspension point, so redelivered copies racing on the event loop see
    exactly one ``False``.
    """

    def __init__(self, caches: CacheCoordinator) -> None:
        self._caches = caches

    def is_duplicate(self, message_id: str) -> bool:
        inserted = self._caches.add(CacheDomain.MESSAGES, message_id, _MARKER)
        if not inserted:
            logger.debug("Dropping duplicate message %s", message_id)
        return not inserted


__all__ = ["DedupFilter"]
