import logging
import time

from tracie.context import BotContext
from tracie.formatter import format_timestamp, normalize_message
from tracie.formatter.model import InboundMessage
from tracie.memory.cache import CacheCoordinator
from tracie.session.contracts import Session

logger = logging.getLogger(__name__)

LIVE_BATCH = "notify"


def _update_sender(caches: CacheCoordinator, message: InboundMessage) -> None:
    existing = caches.get_user(message.sender_jid) or {}
    caches.cache_user(
        message.sender_jid,
        {
            **existing,
            "jid": message.sender_jid,
            "pushname": message.push_name,
            "lastSeen": time.time(),
            "messageCount": existing.get("messageCount", 0) + 1,
        },
    )


def _log_incoming(message: InboundMessage) -> None:
    logger.info(
        "Message from %s in %s | type=%s | %s",
        message.push_name,
        message.chat_jid,
        message.message_type,
        format_timestamp(message.timestamp),
    )


async def handle(ctx: BotContext, session: Session, batch: dict) -> None:
    """Handle a ``messages.upsert`` batch."""

    # 1) Only live deliveries; history syncs and appends are ignored
    if not batch or batch.get("type") != LIVE_BATCH:
        return
    messages = batch.get("messages") or []
    if not messages:
        return
    raw = messages[0]

    # 2) Dedup before any other cache write so redeliveries never double count
    message_id = (raw.get("key") or {}).get("id")
    if not message_id or ctx.dedup.is_duplicate(message_id):
        return

    own_jid = (session.user or {}).get("id")
    message = normalize_message(raw, own_jid)
    if message is None:
        logger.debug("Skipping content-less message %s", message_id)
        return

    # 3) Sender bookkeeping and history
    if not message.from_me:
        _update_sender(ctx.caches, message)
    ctx.history.record(message)
    _log_incoming(message)

    # 4) Downstream handler; its failures stay here
    try:
        await ctx.message_handler(message)
    except Exception:
        logger.exception("Message handler failed for %s", message.id)
