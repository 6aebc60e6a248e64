"""
Event router
============

Each attached session gets one pump task and one worker per
:class:`~tracie.session.contracts.EventKind`:

* the pump reads ``session.events()`` and puts every event on its
  category's bounded queue (a full queue blocks the pump, which is the
  backpressure point);
* each worker drains its queue in arrival order and runs the category
  handler; there is no ordering across categories.

Handler failures are wrapped in :class:`~tracie.errors.TransientHandlerError`
and logged. :class:`~tracie.errors.CredentialPersistError` is the exception:
it is handed to ``on_session_fatal`` so the session gets replaced.

The router only borrows the session. :meth:`EventRouter.detach` is called
before the session is closed and stops every task of that attachment.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict

from tracie.config import connection as conn_cfg
from tracie.context import BotContext
from tracie.errors import CredentialPersistError, TransientHandlerError
from tracie.session.contracts import Event, EventKind, Session

from . import creds_hook, group_hook, message_hook, update_hook

logger = logging.getLogger(__name__)

Handler = Callable[[Session, Any], Awaitable[None]]
FatalCallback = Callable[[Session, BaseException], Awaitable[None]]


@dataclass
class _Attachment:
    session: Session
    queues: Dict[EventKind, asyncio.Queue]
    tasks: list[asyncio.Task] = field(default_factory=list)
    active: bool = True


class EventRouter:
    def __init__(
        self,
        ctx: BotContext,
        *,
        on_connection_update: Handler,
        on_session_fatal: FatalCallback,
        queue_size: int | None = None,
    ) -> None:
        self.ctx = ctx
        self.queue_size = conn_cfg.EVENT_QUEUE_SIZE if queue_size is None else queue_size
        self._on_session_fatal = on_session_fatal
        self._handlers: Dict[EventKind, Handler] = {
            EventKind.CONNECTION_UPDATE: on_connection_update,
            EventKind.CREDS_UPDATE: lambda s, d: creds_hook.handle(ctx, s, d),
            EventKind.MESSAGES_UPSERT: lambda s, d: message_hook.handle(ctx, s, d),
            EventKind.MESSAGES_UPDATE: lambda s, d: update_hook.handle(ctx, s, d),
            EventKind.GROUPS_UPDATE: lambda s, d: group_hook.handle_groups(ctx, s, d),
            EventKind.GROUP_PARTICIPANTS_UPDATE: lambda s, d: group_hook.handle_participants(ctx, s, d),
        }
        missing = set(EventKind) - set(self._handlers)
        if missing:
            raise RuntimeError(f"No handler for event kinds: {sorted(k.value for k in missing)}")
        self._attachment: _Attachment | None = None

    @property
    def session(self) -> Session | None:
        return self._attachment.session if self._attachment else None

    def attach(self, session: Session) -> None:
        if self._attachment is not None:
            raise RuntimeError("Router is already attached to a session; detach it first")

        queues = {kind: asyncio.Queue(maxsize=self.queue_size) for kind in EventKind}
        att = _Attachment(session=session, queues=queues)
        att.tasks.append(asyncio.create_task(self._pump(att), name="router-pump"))
        for kind in EventKind:
            att.tasks.append(asyncio.create_task(self._work(att, kind), name=f"router-{kind.value}"))
        self._attachment = att
        logger.debug("Router attached to session %r", session)

    async def detach(self, *, drain: bool = False, timeout: float = 5.0) -> None:
        """
        Stop routing events for the current session.

        With ``drain`` the pump stops first and already-queued events get up
        to ``timeout`` seconds to finish. Safe to call from inside a handler:
        the calling worker is left to exit on its own.
        """

        att, self._attachment = self._attachment, None
        if att is None:
            return

        current = asyncio.current_task()
        pump = att.tasks[0]
        if pump is not current:
            pump.cancel()
            await asyncio.gather(pump, return_exceptions=True)

        if drain:
            joins = asyncio.gather(*(q.join() for q in att.queues.values()))
            try:
                await asyncio.wait_for(joins, timeout)
            except asyncio.TimeoutError:
                logger.warning("Gave up draining event queues after %.1fs", timeout)

        att.active = False
        others = [t for t in att.tasks[1:] if t is not current]
        for task in others:
            task.cancel()
        await asyncio.gather(*others, return_exceptions=True)
        logger.debug("Router detached from session %r", att.session)

    async def _pump(self, att: _Attachment) -> None:
        async for event in att.session.events():
            if not att.active:
                break
            await att.queues[event.kind].put(event)

    async def _work(self, att: _Attachment, kind: EventKind) -> None:
        queue = att.queues[kind]
        handler = self._handlers[kind]
        while att.active:
            event: Event = await queue.get()
            try:
                await handler(att.session, event.data)
            except CredentialPersistError as exc:
                logger.error("Credential persistence failed; session will be replaced: %s", exc)
                await self._on_session_fatal(att.session, exc)
            except Exception as exc:
                err = TransientHandlerError(kind.value, exc)
                logger.error("%s", err, exc_info=exc)
            finally:
                queue.task_done()


__all__ = ["EventRouter"]
