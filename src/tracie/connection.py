"""
Connection state machine.

::

    DISCONNECTED -> CONNECTING -> CONNECTED
         ^              |             |
         +--------------+-------------+   (failed connect / session closed)

    any state -> CLOSING                  (deliberate shutdown, terminal)

:class:`ConnectionManager` owns the one live session. A close caused by
invalidated credentials wipes the session directory and every cache domain
before reconnecting; any other close or failed connect counts as a failed
attempt. Once attempts exceed ``max_reconnect_attempts`` the caches get an
emergency clear and the counter starts over. Retries use a fixed delay and
at most one reconnect timer is pending at any time.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import time
from typing import Any, Callable, Mapping

from tracie.config import connection as conn_cfg
from tracie.config import core
from tracie.context import BotContext
from tracie.errors import ConnectError, InvalidSessionError
from tracie.event_hooks import connection_hook
from tracie.event_hooks.router import EventRouter
from tracie.formatter import format_timestamp
from tracie.session.contracts import Session, SessionFactory
from tracie.session.reasons import DisconnectReason, describe, invalidates_credentials

logger = logging.getLogger(__name__)


class ConnectionState(enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    CLOSING = "closing"


class ConnectionManager:
    def __init__(
        self,
        ctx: BotContext,
        session_factory: SessionFactory,
        *,
        reconnect_delay: float | None = None,
        startup_retry_delay: float | None = None,
        max_reconnect_attempts: int | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.ctx = ctx
        self._session_factory = session_factory
        self.reconnect_delay = conn_cfg.RECONNECT_DELAY if reconnect_delay is None else reconnect_delay
        self.startup_retry_delay = (
            conn_cfg.STARTUP_RETRY_DELAY if startup_retry_delay is None else startup_retry_delay
        )
        self.max_reconnect_attempts = (
            conn_cfg.MAX_RECONNECT_ATTEMPTS if max_reconnect_attempts is None else max_reconnect_attempts
        )
        self._clock = clock

        self.state = ConnectionState.DISCONNECTED
        self.reconnect_attempts = 0
        self.last_connected_at: float | None = None
        self.session: Session | None = None
        self.router = EventRouter(
            ctx,
            on_connection_update=self._on_connection_update,
            on_session_fatal=self.force_reconnect,
        )
        self._reconnect_task: asyncio.Task | None = None

    @property
    def is_connected(self) -> bool:
        return self.state is ConnectionState.CONNECTED

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_task is not None and not self._reconnect_task.done()

    # ------------------------------------------------------------------ #
    # Connect
    # ------------------------------------------------------------------ #

    async def start(self) -> None:
        """First connect; a failure is already rescheduled, so it is only logged here."""

        try:
            await self.connect()
        except ConnectError:
            logger.info("Initial connect failed; retrying in %.0fs", self.startup_retry_delay)

    async def connect(self) -> Session | None:
        """Establish one session and attach the router to it."""

        if self.state is ConnectionState.CLOSING:
            return None
        if self.state in (ConnectionState.CONNECTING, ConnectionState.CONNECTED):
            logger.debug("connect() ignored while %s", self.state.value)
            return self.session

        self._transition(ConnectionState.CONNECTING)
        auth = self.ctx.credentials.load()
        try:
            session = await self._open_session(auth)
        except ConnectError as exc:
            if self.state is ConnectionState.CLOSING:
                raise
            self._transition(ConnectionState.DISCONNECTED)
            logger.error("Failed to connect: %s", exc)
            if invalidates_credentials(exc.status_code):
                self._reset_session(InvalidSessionError(str(exc), exc.status_code))
            else:
                self._register_failure(self.startup_retry_delay)
            raise

        if self.state is ConnectionState.CLOSING:
            await session.close()
            return None

        self.session = session
        self.router.attach(session)
        return session

    async def _open_session(self, auth: dict | None) -> Session:
        try:
            return await self._session_factory(auth)
        except ConnectError:
            raise
        except Exception as exc:
            raise ConnectError(f"Unexpected error while connecting: {exc!r}") from exc

    # ------------------------------------------------------------------ #
    # Session lifecycle callbacks
    # ------------------------------------------------------------------ #

    async def _on_connection_update(self, session: Session, update: Mapping[str, Any]) -> None:
        await connection_hook.handle(self, session, update)

    async def on_open(self) -> None:
        session = self.session
        if session is None or self.state is ConnectionState.CLOSING:
            return

        self._transition(ConnectionState.CONNECTED)
        self.reconnect_attempts = 0
        self.last_connected_at = self._clock()

        user = session.user or {}
        jid = user.get("id")
        name = user.get("name") or core.BOT_NAME
        logger.info("Connected as: %s (%s)", name, jid)
        if not jid:
            return

        self.ctx.caches.cache_user(
            jid, {"id": jid, "name": name, "isBot": True, "connectedAt": self.last_connected_at}
        )

        stamp = format_timestamp(self.last_connected_at)
        try:
            await session.send_message(
                jid,
                {
                    "image": {"url": core.BOT_IMG},
                    "caption": f"{core.BOT_NAME} connected successfully\n🕒 {stamp}",
                },
            )
            logger.info("Connection notification sent")
        except Exception as exc:
            logger.error("Failed to send connection notification: %s", exc)

    async def on_close(self, status_code: int | None) -> None:
        if self.state is ConnectionState.CLOSING:
            return

        self._transition(ConnectionState.DISCONNECTED)
        logger.warning("Connection closed: %s", describe(status_code))
        await self._drop_session()

        if invalidates_credentials(status_code):
            self._reset_session(InvalidSessionError(describe(status_code), status_code))
        else:
            self._register_failure(self.reconnect_delay)

    async def force_reconnect(self, session: Session, exc: BaseException) -> None:
        """Replace ``session`` after a fatal error outside the close path."""

        if session is not self.session:
            return
        logger.error("Replacing session after fatal error: %s", exc)
        await self.on_close(int(DisconnectReason.RESTART_REQUIRED))

    async def _drop_session(self) -> None:
        session, self.session = self.session, None
        await self.router.detach()
        if session is None:
            return
        try:
            await session.close()
        except Exception as exc:
            logger.warning("Error while closing session: %s", exc)

    # ------------------------------------------------------------------ #
    # Failure handling
    # ------------------------------------------------------------------ #

    def _reset_session(self, err: InvalidSessionError) -> None:
        logger.warning("Clearing session due to %s", err)
        self.ctx.wipe_state()
        self._schedule_reconnect(self.reconnect_delay)

    def _register_failure(self, delay: float) -> None:
        self.reconnect_attempts += 1
        if self.reconnect_attempts > self.max_reconnect_attempts:
            logger.warning(
                "Too many reconnection attempts (%d > %d) - clearing cache",
                self.reconnect_attempts,
                self.max_reconnect_attempts,
            )
            self.ctx.caches.emergency_clear("reconnect storm")
            self.reconnect_attempts = 0
        self._schedule_reconnect(delay)

    def _schedule_reconnect(self, delay: float) -> None:
        if self.state is ConnectionState.CLOSING:
            return
        if self.reconnect_pending:
            logger.debug("Reconnect already scheduled; not stacking another timer")
            return
        logger.info("Reconnecting in %.0fs (attempt %d)", delay, self.reconnect_attempts)
        self._reconnect_task = asyncio.create_task(self._reconnect_after(delay), name="reconnect")

    async def _reconnect_after(self, delay: float) -> None:
        await asyncio.sleep(delay)
        self._reconnect_task = None
        try:
            await self.connect()
        except ConnectError:
            # connect() logged it and scheduled the next attempt
            return

    # ------------------------------------------------------------------ #
    # Shutdown
    # ------------------------------------------------------------------ #

    async def shutdown(self, drain_timeout: float = 5.0) -> None:
        """Stop taking events, let queued ones finish, then close the session."""

        self._transition(ConnectionState.CLOSING)
        task, self._reconnect_task = self._reconnect_task, None
        if task:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        session, self.session = self.session, None
        await self.router.detach(drain=True, timeout=drain_timeout)
        if session is not None:
            await session.close()
        logger.info("Connection shut down")

    def _transition(self, new_state: ConnectionState) -> None:
        if new_state is not self.state:
            logger.debug("Connection state %s -> %s", self.state.value, new_state.value)
            self.state = new_state


__all__ = ["ConnectionManager", "ConnectionState"]
