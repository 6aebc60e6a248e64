"""Process bootstrap: wire the context, connection and maintenance together."""

from __future__ import annotations

import asyncio
import logging
import signal
import time

from tracie.antidelete import AntiDelete
from tracie.clients import bridge
from tracie.connection import ConnectionManager
from tracie.context import AntiDeleteHandler, BotContext, MessageHandler
from tracie.formatter.model import InboundMessage
from tracie.maintenance import MaintenanceScheduler
from tracie.memory.cache import CacheCoordinator
from tracie.memory.history import MessageHistory
from tracie.session.contracts import SessionFactory
from tracie.session.credentials import CredentialStore

logger = logging.getLogger(__name__)


async def log_message(message: InboundMessage) -> None:
    logger.debug("No message handler configured; %s from %s left unhandled", message.id, message.sender_jid)


class BotRuntime:
    """Owns every long-lived component of the bot process."""

    def __init__(
        self,
        *,
        session_factory: SessionFactory = bridge.connect,
        message_handler: MessageHandler = log_message,
        anti_delete: AntiDeleteHandler | None = None,
        caches: CacheCoordinator | None = None,
        credentials: CredentialStore | None = None,
        history: MessageHistory | None = None,
    ) -> None:
        self.ctx = BotContext(
            caches=caches or CacheCoordinator(),
            credentials=credentials or CredentialStore(),
            history=history or MessageHistory(),
            message_handler=message_handler,
            anti_delete=anti_delete or AntiDelete(),
        )
        self.connection = ConnectionManager(self.ctx, session_factory)
        self.scheduler = MaintenanceScheduler(self.ctx, self.connection)
        self.started_at = time.time()
        self._stop_event: asyncio.Event | None = None

    async def start(self) -> None:
        logger.info("Starting bot...")
        await self.connection.start()
        await self.scheduler.start()

    async def stop(self) -> None:
        logger.info("Shutting down...")
        await self.scheduler.stop()
        await self.connection.shutdown()

    def request_stop(self) -> None:
        if self._stop_event is not None:
            self._stop_event.set()

    async def run_forever(self) -> None:
        self._stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.request_stop)
            except (NotImplementedError, RuntimeError):
                logger.debug("Signal handlers unsupported on this platform; relying on KeyboardInterrupt")

        await self.start()
        try:
            await self._stop_event.wait()
        finally:
            await self.stop()

    def status(self) -> dict:
        """Point-in-time health snapshot."""

        conn = self.connection
        return {
            "uptime": time.time() - self.started_at,
            "timestamp": time.time(),
            "connected": conn.is_connected,
            "state": conn.state.value,
            "reconnectAttempts": conn.reconnect_attempts,
            "lastConnectedAt": conn.last_connected_at,
            "cacheStats": {name: vars(s) for name, s in self.ctx.caches.stats().items()},
        }


def run() -> None:
    """Start the bot using configuration from the environment."""

    try:
        asyncio.run(BotRuntime().run_forever())
    except KeyboardInterrupt:
        logger.info("Interrupted")


__all__ = ["BotRuntime", "log_message", "run"]
