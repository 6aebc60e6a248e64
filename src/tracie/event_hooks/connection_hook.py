from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Mapping

from tracie.config import core
from tracie.session.contracts import Session
from tracie.session.reasons import status_code_from

if TYPE_CHECKING:
    from tracie.connection import ConnectionManager

logger = logging.getLogger(__name__)


async def handle(manager: "ConnectionManager", session: Session, update: Mapping[str, Any]) -> None:
    """Translate ``connection.update`` payloads into state machine transitions."""

    if session is not manager.session:
        logger.debug("Ignoring connection update from a replaced session")
        return
    if not isinstance(update, Mapping):
        logger.warning("Ignoring malformed connection update: %r", update)
        return

    qr = update.get("qr")
    if qr:
        if core.PRINT_QR:
            logger.info("QR code received - scan to connect: %s", qr)
        else:
            logger.info("QR code received; interactive login pending")

    state = update.get("connection")
    if state == "close":
        await manager.on_close(status_code_from(update))
    elif state == "open":
        await manager.on_open()
