"""
Message normalization
=====================
1. Input : raw ``messages.upsert`` entry as delivered by the bridge
   (``{"key": {...}, "message": {...}, "pushName": ..., "messageTimestamp": ...}``).
2. Pick the first content node that is not protocol bookkeeping; its key is
   the message type.
3. Pull the human-readable text from the node (plain conversation, extended
   text, or a media caption).
4. Return :class:`InboundMessage`, or ``None`` for stubs without content.
"""

from __future__ import annotations

import datetime
import math
import time
from typing import Any

from .model import InboundMessage

GROUP_SUFFIX = "@g.us"
TIME_FORMAT = "%Y-%m-%d %H:%M:%S"

# Anything above this is taken to be milliseconds (year 5138 in seconds).
_MAX_SECONDS = 1e11

_BOOKKEEPING_NODES = frozenset(
    {"messageContextInfo", "senderKeyDistributionMessage", "protocolMessage"}
)
_CAPTIONED_NODES = ("imageMessage", "videoMessage", "documentMessage")


def is_group_jid(jid: str) -> bool:
    return jid.endswith(GROUP_SUFFIX)


def to_seconds(raw: Any) -> float:
    """Coerce a protocol timestamp (seconds or milliseconds) to epoch seconds."""

    try:
        value = float(raw)
    except (TypeError, ValueError):
        return time.time()
    if not math.isfinite(value) or value <= 0:
        return time.time()
    while value > _MAX_SECONDS:
        value /= 1000
    return value


def format_timestamp(timestamp: float) -> str:
    try:
        return datetime.datetime.fromtimestamp(timestamp).strftime(TIME_FORMAT)
    except (OverflowError, OSError, ValueError):
        return str(timestamp)


def _content_type(content: dict[str, Any]) -> str | None:
    for key in content:
        if key not in _BOOKKEEPING_NODES:
            return key
    return None


def _extract_text(content: dict[str, Any], message_type: str) -> str:
    if message_type == "conversation":
        return str(content.get("conversation") or "")
    node = content.get(message_type)
    if not isinstance(node, dict):
        return ""
    if message_type == "extendedTextMessage":
        return str(node.get("text") or "")
    if message_type in _CAPTIONED_NODES:
        return str(node.get("caption") or "")
    return ""


def normalize_message(raw: dict[str, Any], own_jid: str | None = None) -> InboundMessage | None:
    """Build an :class:`InboundMessage` from a raw upsert entry."""

    key = raw.get("key") or {}
    message_id = key.get("id")
    chat_jid = key.get("remoteJid")
    content = raw.get("message")
    if not message_id or not chat_jid or not isinstance(content, dict):
        return None

    message_type = _content_type(content)
    if message_type is None:
        return None

    from_me = bool(key.get("fromMe"))
    sender = key.get("participant") or chat_jid
    if from_me and own_jid:
        sender = own_jid

    timestamp = to_seconds(raw.get("messageTimestamp"))

    return InboundMessage(
        id=str(message_id),
        chat_jid=str(chat_jid),
        sender_jid=str(sender),
        push_name=str(raw.get("pushName") or "Unknown"),
        from_me=from_me,
        is_group=is_group_jid(str(chat_jid)),
        message_type=message_type,
        text=_extract_text(content, message_type),
        timestamp=timestamp,
        raw=raw,
    )


__all__ = ["InboundMessage", "format_timestamp", "is_group_jid", "normalize_message", "to_seconds"]
