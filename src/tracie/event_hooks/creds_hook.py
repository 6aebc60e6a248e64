import logging

from tracie.context import BotContext
from tracie.session.contracts import Session

logger = logging.getLogger(__name__)


async def handle(ctx: BotContext, session: Session, creds: dict) -> None:
    """Persist renewed credential material; raises ``CredentialPersistError`` on failure."""

    ctx.credentials.save(creds)
    logger.debug("Persisted renewed credentials to %s", ctx.credentials.path)
