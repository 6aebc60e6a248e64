import asyncio

from tracie.event_hooks import update_hook
from fakes import FakeSession, RecordingAntiDelete, make_ctx


def _update(message_id, **inner):
    return {"key": {"id": message_id, "remoteJid": "200@s.whatsapp.net"}, "update": inner}


def test_is_removal_recognises_both_revocation_shapes():
    assert update_hook.is_removal(_update("a", message=None))
    assert update_hook.is_removal(_update("b", messageStubType=2))
    assert not update_hook.is_removal(_update("c", status=3))
    assert not update_hook.is_removal(_update("d", message={"conversation": "edited"}))
    assert not update_hook.is_removal({"key": {"id": "e"}})


def test_only_removals_reach_anti_delete(tmp_path):
    anti_delete = RecordingAntiDelete()
    ctx = make_ctx(tmp_path, anti_delete=anti_delete)

    updates = [_update("a", message=None), _update("b", status=4), _update("c", messageStubType=2)]
    asyncio.run(update_hook.handle(ctx, FakeSession(), updates))

    assert [u["key"]["id"] for u in anti_delete.calls] == ["a", "c"]


def test_one_failing_update_does_not_stop_the_rest(tmp_path, caplog):
    anti_delete = RecordingAntiDelete(fail_ids={"a"})
    ctx = make_ctx(tmp_path, anti_delete=anti_delete)

    updates = [_update("a", message=None), _update("b", message=None)]
    asyncio.run(update_hook.handle(ctx, FakeSession(), updates))

    assert [u["key"]["id"] for u in anti_delete.calls] == ["b"]
    assert "Anti-delete failed for message a" in caplog.text
