"""
Route revocation signals from ``messages.update`` to the anti-delete collaborator.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from tracie.context import BotContext
from tracie.session.contracts import Session

logger = logging.getLogger(__name__)

# Protocol stub type emitted when a message is revoked for everyone.
REVOKE_STUB_TYPE = 2


def is_removal(update: Mapping[str, Any]) -> bool:
    inner = update.get("update") or {}
    if "message" in inner and inner["message"] is None:
        return True
    return inner.get("messageStubType") == REVOKE_STUB_TYPE


async def handle(ctx: BotContext, session: Session, updates: Iterable[Mapping[str, Any]]) -> None:
    relevant = [u for u in (updates or []) if is_removal(u)]
    if not relevant:
        return

    for update in relevant:
        try:
            await ctx.anti_delete.execute(session, update, ctx.history)
        except Exception:
            key = update.get("key") or {}
            logger.exception("Anti-delete failed for message %s", key.get("id"))
