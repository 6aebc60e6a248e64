import asyncio

from tracie.event_hooks import group_hook
from fakes import FakeSession, make_ctx

GROUP = "42@g.us"


def _meta(*members):
    return {"id": GROUP, "subject": "Chess club", "participants": [{"id": m, "admin": None} for m in members]}


def test_groups_update_merges_into_cached_metadata_without_fetching(tmp_path):
    ctx = make_ctx(tmp_path)
    ctx.caches.cache_group(GROUP, _meta("a@s.whatsapp.net"))
    session = FakeSession()

    asyncio.run(group_hook.handle_groups(ctx, session, [{"id": GROUP, "subject": "Go club"}]))

    cached = ctx.caches.get_group(GROUP)
    assert cached["subject"] == "Go club"
    assert cached["participants"] == [{"id": "a@s.whatsapp.net", "admin": None}]
    assert session.metadata_calls == []


def test_groups_update_fetches_uncached_groups(tmp_path):
    ctx = make_ctx(tmp_path)
    session = FakeSession(metadata={GROUP: _meta("a@s.whatsapp.net")})

    asyncio.run(group_hook.handle_groups(ctx, session, [{"id": GROUP, "announce": True}]))

    assert session.metadata_calls == [GROUP]
    assert ctx.caches.get_group(GROUP)["announce"] is True


def test_failed_fetch_leaves_only_that_group_uncached(tmp_path, caplog):
    ctx = make_ctx(tmp_path)
    session = FakeSession(
        metadata={"bad@g.us": TimeoutError("slow"), GROUP: _meta("a@s.whatsapp.net")}
    )

    asyncio.run(group_hook.handle_groups(ctx, session, [{"id": "bad@g.us"}, {"id": GROUP}]))

    assert ctx.caches.get_group("bad@g.us") is None
    assert ctx.caches.get_group(GROUP) is not None
    assert "Failed to fetch metadata for group bad@g.us" in caplog.text


def test_participant_add_updates_group_and_annotates_known_users_only(tmp_path):
    ctx = make_ctx(tmp_path)
    ctx.caches.cache_group(GROUP, _meta("a@s.whatsapp.net"))
    ctx.caches.cache_user("b@s.whatsapp.net", {"jid": "b@s.whatsapp.net", "messageCount": 2})

    event = {"id": GROUP, "action": "add", "participants": ["b@s.whatsapp.net", "c@s.whatsapp.net"]}
    asyncio.run(group_hook.handle_participants(ctx, FakeSession(), event))

    members = [p["id"] for p in ctx.caches.get_group(GROUP)["participants"]]
    assert members == ["a@s.whatsapp.net", "b@s.whatsapp.net", "c@s.whatsapp.net"]
    known = ctx.caches.get_user("b@s.whatsapp.net")
    assert known["groupAction"] == "add"
    assert known["messageCount"] == 2
    assert "lastGroupActivity" in known
    assert ctx.caches.get_user("c@s.whatsapp.net") is None


def test_participant_event_without_metadata_still_annotates_users(tmp_path):
    ctx = make_ctx(tmp_path)
    ctx.caches.cache_user("b@s.whatsapp.net", {"jid": "b@s.whatsapp.net"})
    session = FakeSession(metadata={GROUP: ConnectionError("offline")})

    event = {"id": GROUP, "action": "remove", "participants": ["b@s.whatsapp.net"]}
    asyncio.run(group_hook.handle_participants(ctx, session, event))

    assert ctx.caches.get_group(GROUP) is None
    assert ctx.caches.get_user("b@s.whatsapp.net")["groupAction"] == "remove"


def test_apply_participant_action_variants():
    meta = _meta("a@s.whatsapp.net", "b@s.whatsapp.net")

    removed = group_hook.apply_participant_action(meta, "remove", ["a@s.whatsapp.net"])
    assert [p["id"] for p in removed["participants"]] == ["b@s.whatsapp.net"]

    promoted = group_hook.apply_participant_action(meta, "promote", [{"id": "b@s.whatsapp.net"}])
    assert promoted["participants"][1]["admin"] == "admin"
    demoted = group_hook.apply_participant_action(promoted, "demote", ["b@s.whatsapp.net"])
    assert demoted["participants"][1]["admin"] is None

    # The input is never mutated
    assert meta["participants"][1]["admin"] is None
    assert group_hook.apply_participant_action(meta, "modify", ["x"]) == meta


def test_participant_event_for_uncached_group_fetches_once_and_caches(tmp_path):
    ctx = make_ctx(tmp_path)
    session = FakeSession(metadata={GROUP: _meta("a@s.whatsapp.net")})

    event = {"id": GROUP, "action": "promote", "participants": ["a@s.whatsapp.net"]}
    asyncio.run(group_hook.handle_participants(ctx, session, event))
    asyncio.run(group_hook.handle_participants(ctx, session, event))

    assert session.metadata_calls == [GROUP]
    assert ctx.caches.get_group(GROUP)["participants"] == [{"id": "a@s.whatsapp.net", "admin": "admin"}]
