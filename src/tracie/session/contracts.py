"""
Boundary between the connection layer and the protocol session.

The protocol itself (handshake, encryption, wire encoding) lives behind
:class:`Session`. Everything in this package talks to the network only
through that interface, so tests substitute small fakes.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, AsyncIterator, Awaitable, Callable, Mapping, Protocol


class EventKind(str, enum.Enum):
    """Closed set of event categories emitted by a session."""

    CONNECTION_UPDATE = "connection.update"
    CREDS_UPDATE = "creds.update"
    MESSAGES_UPSERT = "messages.upsert"
    MESSAGES_UPDATE = "messages.update"
    GROUPS_UPDATE = "groups.update"
    GROUP_PARTICIPANTS_UPDATE = "group-participants.update"


@dataclass(frozen=True)
class Event:
    kind: EventKind
    data: Any


class Session(Protocol):
    """A live, authenticated connection to the messaging network."""

    user: Mapping[str, Any] | None

    def events(self) -> AsyncIterator[Event]: ...

    async def send_message(self, jid: str, content: Mapping[str, Any]) -> Mapping[str, Any]: ...

    async def fetch_group_metadata(self, jid: str) -> dict: ...

    async def fetch_all_groups(self) -> dict[str, dict]: ...

    async def close(self) -> None: ...


# connect(auth_material) -> Session; raises ConnectError.
SessionFactory = Callable[[dict | None], Awaitable[Session]]


__all__ = ["Event", "EventKind", "Session", "SessionFactory"]
