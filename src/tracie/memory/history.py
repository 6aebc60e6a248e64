"""
Recent-message history handed to the anti-delete collaborator.

The store keeps the last ``maxlen`` normalized messages keyed by
``(chat_jid, message_id)``. It is in-memory only; durable history lives
outside this process.
"""

from __future__ import annotations

from collections import OrderedDict

from tracie.config import cache as cache_cfg
from tracie.formatter.model import InboundMessage


class MessageHistory:
    """Bounded, insertion-ordered record of recently seen messages."""

    def __init__(self, maxlen: int | None = None) -> None:
        self.maxlen = maxlen if maxlen is not None else cache_cfg.HISTORY_LENGTH
        self._messages: OrderedDict[tuple[str, str], InboundMessage] = OrderedDict()

    def record(self, message: InboundMessage) -> None:
        key = (message.chat_jid, message.id)
        self._messages.pop(key, None)
        self._messages[key] = message
        while len(self._messages) > self.maxlen:
            self._messages.popitem(last=False)

    def lookup(self, chat_jid: str, message_id: str) -> InboundMessage | None:
        return self._messages.get((chat_jid, message_id))

    def clear(self) -> None:
        self._messages.clear()

    def __len__(self) -> int:
        return len(self._messages)


__all__ = ["MessageHistory"]
