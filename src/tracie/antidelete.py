"""
Re-post revoked messages.

When a chat member deletes a message for everyone, the bridge reports a
``messages.update`` whose payload drops the content. If the original is
still in :class:`~tracie.memory.history.MessageHistory` it is forwarded to
the owner, or back into the chat when ``ANTIDELETE_IN_CHAT`` is set.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from tracie.config import core
from tracie.formatter import format_timestamp
from tracie.memory.history import MessageHistory
from tracie.session.contracts import Session

logger = logging.getLogger(__name__)

USER_SUFFIX = "@s.whatsapp.net"


def owner_jid(number: str | None) -> str | None:
    if not number:
        return None
    return number if "@" in number else f"{number}{USER_SUFFIX}"


class AntiDelete:
    def __init__(
        self,
        *,
        enabled: bool | None = None,
        in_chat: bool | None = None,
        owner: str | None = None,
    ) -> None:
        self.enabled = core.ANTI_DELETE if enabled is None else enabled
        self.in_chat = core.ANTIDELETE_IN_CHAT if in_chat is None else in_chat
        self.owner = owner_jid(core.OWNER if owner is None else owner)

    async def execute(
        self, session: Session, update: Mapping[str, Any], history: MessageHistory
    ) -> None:
        if not self.enabled:
            return

        key = update.get("key") or {}
        chat_jid, message_id = key.get("remoteJid"), key.get("id")
        original = history.lookup(chat_jid, message_id) if chat_jid and message_id else None
        if original is None:
            logger.info("Revoked message %s in %s is not in history; nothing to restore", message_id, chat_jid)
            return
        if original.from_me:
            return

        target = chat_jid if self.in_chat else self.owner
        if not target:
            logger.info("Revoked message %s from %s (no anti-delete target configured)", message_id, original.sender_jid)
            return

        body = original.text or f"[{original.message_type}]"
        text = (
            "🚮 Deleted message\n"
            f"From: @{original.sender_jid.split('@')[0]} ({original.push_name})\n"
            f"Chat: {chat_jid}\n"
            f"Sent: {format_timestamp(original.timestamp)}\n\n"
            f"{body}"
        )
        await session.send_message(target, {"text": text, "mentions": [original.sender_jid]})
        logger.info("Restored revoked message %s to %s", message_id, target)


__all__ = ["AntiDelete", "owner_jid"]
