"""
Keep the groups domain in step with ``groups.update`` and
``group-participants.update`` events.

Metadata is taken from the cache when present and fetched from the session
otherwise. A failed fetch is logged and the group stays uncached until the
next event or the periodic refresh. Membership changes also annotate users
that are already cached; unknown users are not created.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Iterable, Mapping

from tracie.context import BotContext
from tracie.session.contracts import Session

logger = logging.getLogger(__name__)


async def _resolve_metadata(ctx: BotContext, session: Session, group_id: str) -> dict | None:
    metadata = ctx.caches.get_group(group_id)
    if metadata is not None:
        return metadata
    try:
        return await session.fetch_group_metadata(group_id)
    except Exception as exc:
        logger.error("Failed to fetch metadata for group %s: %s", group_id, exc)
        return None


def _participant_id(participant: Any) -> str:
    if isinstance(participant, Mapping):
        return str(participant.get("id"))
    return str(participant)


def apply_participant_action(metadata: dict, action: str | None, participants: Iterable[Any]) -> dict:
    """Return a copy of ``metadata`` with the membership change applied."""

    changed = {_participant_id(p) for p in participants}
    members = [dict(m) for m in metadata.get("participants") or []]
    known = {m.get("id") for m in members}

    if action == "add":
        members.extend({"id": jid, "admin": None} for jid in sorted(changed - known))
    elif action == "remove":
        members = [m for m in members if m.get("id") not in changed]
    elif action in ("promote", "demote"):
        role = "admin" if action == "promote" else None
        for member in members:
            if member.get("id") in changed:
                member["admin"] = role
    else:
        return dict(metadata)

    return {**metadata, "participants": members}


async def handle_groups(
    ctx: BotContext, session: Session, events: Iterable[Mapping[str, Any]]
) -> None:
    updated: list[tuple[str, dict]] = []
    for event in events or []:
        group_id = event.get("id")
        if not group_id:
            continue
        metadata = await _resolve_metadata(ctx, session, group_id)
        if metadata is None:
            continue
        changes = {k: v for k, v in event.items() if k != "id"}
        updated.append((group_id, {**metadata, **changes}))

    # Write after all fetches so no group is left half-merged across a suspension point
    for group_id, metadata in updated:
        ctx.caches.cache_group(group_id, metadata)

    if updated:
        logger.info("Updated %d group(s)", len(updated))


async def handle_participants(ctx: BotContext, session: Session, event: Mapping[str, Any]) -> None:
    group_id = event.get("id")
    if not group_id:
        return

    metadata = await _resolve_metadata(ctx, session, group_id)
    action = event.get("action")
    participants = list(event.get("participants") or [])

    now = time.time()
    for participant in participants:
        jid = _participant_id(participant)
        existing = ctx.caches.get_user(jid)
        if existing is None:
            continue
        ctx.caches.cache_user(jid, {**existing, "groupAction": action, "lastGroupActivity": now})

    if metadata is not None:
        ctx.caches.cache_group(group_id, apply_participant_action(metadata, action, participants))
        logger.info("Group %s: %s %d participant(s)", group_id, action, len(participants))
