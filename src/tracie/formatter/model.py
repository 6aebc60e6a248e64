from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class InboundMessage:
    """Normalized view of one inbound protocol message."""

    id: str
    chat_jid: str
    sender_jid: str
    push_name: str
    from_me: bool
    is_group: bool
    message_type: str
    text: str
    timestamp: float
    raw: dict[str, Any] = field(repr=False, compare=False, default_factory=dict)
