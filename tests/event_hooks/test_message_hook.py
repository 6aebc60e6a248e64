import asyncio

from tracie.event_hooks import message_hook
from tracie.memory.cache import CacheDomain
from fakes import BOT_JID, FakeSession, make_ctx, upsert


def test_live_message_updates_sender_and_reaches_handler(tmp_path):
    ctx = make_ctx(tmp_path)
    session = FakeSession()

    asyncio.run(message_hook.handle(ctx, session, upsert("M1", text="hi there")))

    [message] = ctx.received
    assert (message.id, message.text, message.sender_jid) == ("M1", "hi there", "200@s.whatsapp.net")
    user = ctx.caches.get_user("200@s.whatsapp.net")
    assert user["pushname"] == "Ada"
    assert user["messageCount"] == 1
    assert ctx.history.lookup("200@s.whatsapp.net", "M1") == message


def test_redelivered_message_is_processed_once(tmp_path):
    ctx = make_ctx(tmp_path)
    session = FakeSession()

    async def run():
        await message_hook.handle(ctx, session, upsert("M1"))
        await message_hook.handle(ctx, session, upsert("M1"))

    asyncio.run(run())

    assert len(ctx.received) == 1
    assert ctx.caches.get_user("200@s.whatsapp.net")["messageCount"] == 1


def test_non_live_batches_are_ignored(tmp_path):
    ctx = make_ctx(tmp_path)

    asyncio.run(message_hook.handle(ctx, FakeSession(), upsert("M1", batch_type="append")))

    assert ctx.received == []
    assert not ctx.caches.has(CacheDomain.MESSAGES, "M1")
    assert ctx.caches.summary().total_keys == 0


def test_own_messages_skip_sender_bookkeeping(tmp_path):
    ctx = make_ctx(tmp_path)

    asyncio.run(message_hook.handle(ctx, FakeSession(), upsert("M1", from_me=True)))

    [message] = ctx.received
    assert message.from_me
    assert message.sender_jid == BOT_JID
    assert ctx.caches.get_user("200@s.whatsapp.net") is None


def test_sender_record_keeps_existing_fields_and_counts_up(tmp_path):
    ctx = make_ctx(tmp_path)
    ctx.caches.cache_user("200@s.whatsapp.net", {"groupAction": "add", "messageCount": 4})

    asyncio.run(message_hook.handle(ctx, FakeSession(), upsert("M9", chat="42@g.us")))

    user = ctx.caches.get_user("200@s.whatsapp.net")
    assert user["groupAction"] == "add"
    assert user["messageCount"] == 5
    assert ctx.received[0].is_group


def test_handler_failure_is_contained(tmp_path, caplog):
    async def broken(message):
        raise RuntimeError("downstream exploded")

    ctx = make_ctx(tmp_path, handler=broken)

    asyncio.run(message_hook.handle(ctx, FakeSession(), upsert("M1")))

    assert "Message handler failed for M1" in caplog.text
    assert ctx.caches.get_user("200@s.whatsapp.net")["messageCount"] == 1


def test_content_less_stub_is_marked_seen_but_not_handled(tmp_path):
    ctx = make_ctx(tmp_path)
    batch = upsert("M1")
    batch["messages"][0]["message"] = None

    asyncio.run(message_hook.handle(ctx, FakeSession(), batch))

    assert ctx.received == []
    assert ctx.caches.has(CacheDomain.MESSAGES, "M1")


def test_millisecond_timestamp_is_still_forwarded(tmp_path):
    ctx = make_ctx(tmp_path)
    batch = upsert("M1")
    batch["messages"][0]["messageTimestamp"] = 1_700_000_000_000

    asyncio.run(message_hook.handle(ctx, FakeSession(), batch))

    [message] = ctx.received
    assert message.timestamp == 1_700_000_000.0
    assert ctx.caches.get_user("200@s.whatsapp.net")["messageCount"] == 1
