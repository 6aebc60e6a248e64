"""
Explicit runtime context.

One :class:`BotContext` is built at startup and handed to every component
that needs the caches, the credential store, or the downstream
collaborators. Nothing in the package reaches for process-wide globals.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping, Protocol

from tracie.formatter.model import InboundMessage
from tracie.memory.cache import CacheCoordinator, DedupFilter
from tracie.memory.history import MessageHistory
from tracie.session.contracts import Session
from tracie.session.credentials import CredentialStore

MessageHandler = Callable[[InboundMessage], Awaitable[None]]


class AntiDeleteHandler(Protocol):
    async def execute(
        self, session: Session, update: Mapping[str, Any], history: MessageHistory
    ) -> None: ...


@dataclass
class BotContext:
    caches: CacheCoordinator
    credentials: CredentialStore
    history: MessageHistory
    message_handler: MessageHandler
    anti_delete: AntiDeleteHandler
    dedup: DedupFilter = field(init=False)

    def __post_init__(self) -> None:
        self.dedup = DedupFilter(self.caches)

    def wipe_state(self) -> None:
        """Drop credentials, every cache domain and the history store."""

        self.credentials.wipe()
        self.caches.clear()
        self.history.clear()


__all__ = ["AntiDeleteHandler", "BotContext", "MessageHandler"]
