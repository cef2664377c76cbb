"""
Group metadata compaction.

Raw group metadata from the chat provider can carry thousands of
participants and arbitrarily long descriptions. :func:`compact_metadata`
reduces it to a :class:`GroupRecord` holding only what the bot needs
(subject, description, owner, admin ids, participant count, bot admin flag),
truncated to configured lengths. :func:`estimate_size_bytes` attaches a rough
byte cost used for relative budget enforcement, not exact memory measurement.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field, replace
from typing import Any, Iterable, Mapping

MAX_ADMIN_IDS = 50
BASE_RECORD_BYTES = 128
PER_ADMIN_BYTES = 8
PER_PARTICIPANT_BYTES = 8

_ADMIN_FLAGS = (True, "admin", "superadmin")


@dataclass(frozen=True, slots=True)
class GroupRecord:
    """Compact cached summary of one group."""

    id: str
    subject: str = ""
    description: str = ""
    owner: str | None = None
    admin_ids: tuple[str, ...] = ()
    participants_count: int = 0
    is_bot_admin: bool = False
    created_at: float = 0.0
    last_updated_at: float = 0.0
    approx_size_bytes: int = field(default=BASE_RECORD_BYTES, compare=False)


def normalize_jid(jid: Any) -> str:
    """Return ``jid`` as ``user@server`` without device or agent suffixes."""

    text = str(jid or "")
    user_part, sep, server = text.partition("@")
    if not sep:
        return ""
    user = user_part.split(":", 1)[0].split("_", 1)[0]
    if server == "c.us":
        server = "s.whatsapp.net"
    return f"{user}@{server}"


def _utf8_len(value: Any) -> int:
    return len(str(value).encode("utf-8")) if value else 0


def estimate_size_bytes(record: GroupRecord | None) -> int:
    """Heuristic byte cost of ``record`` (base + field lengths + per-admin cost)."""

    if record is None:
        return BASE_RECORD_BYTES
    size = BASE_RECORD_BYTES
    size += _utf8_len(record.id)
    size += _utf8_len(record.subject)
    size += _utf8_len(record.description)
    size += _utf8_len(record.owner)
    for admin in record.admin_ids:
        size += _utf8_len(admin) + PER_ADMIN_BYTES
    size += max(record.participants_count, 0) * PER_PARTICIPANT_BYTES
    return max(size, BASE_RECORD_BYTES)


def with_size(record: GroupRecord) -> GroupRecord:
    """Return ``record`` with ``approx_size_bytes`` recomputed."""

    return replace(record, approx_size_bytes=estimate_size_bytes(record))


def _participant_id(participant: Any) -> str | None:
    if isinstance(participant, str):
        return participant
    if isinstance(participant, Mapping):
        return participant.get("id") or participant.get("jid")
    return None


def _is_admin(participant: Any) -> bool:
    if not isinstance(participant, Mapping):
        return False
    return participant.get("admin") in _ADMIN_FLAGS or participant.get("isAdmin") is True


def _dedupe_capped(ids: Iterable[Any]) -> tuple[str, ...]:
    out: dict[str, None] = {}
    for raw in ids:
        jid = normalize_jid(raw)
        if jid:
            out.setdefault(jid, None)
        if len(out) >= MAX_ADMIN_IDS:
            break
    return tuple(out)


def admin_ids_from_participants(participants: Iterable[Any]) -> tuple[str, ...]:
    """Normalized, deduplicated admin ids (at most 50) from a participant list."""

    return _dedupe_capped(
        pid
        for pid, participant in ((_participant_id(p), p) for p in participants)
        if pid and _is_admin(participant)
    )


def is_admin_member(admin_ids: Iterable[str], bot_jid: str | None) -> bool:
    if not bot_jid:
        return False
    bot = normalize_jid(bot_jid)
    return bool(bot) and bot in admin_ids


def stub_record(jid: str, *, now: float | None = None) -> GroupRecord:
    """Zero-valued record used when no provider can be queried."""

    now = time.time() if now is None else now
    return with_size(GroupRecord(id=jid, created_at=now, last_updated_at=now))


def compact_metadata(
    raw: Mapping[str, Any] | None,
    *,
    jid: str | None = None,
    bot_jid: str | None = None,
    max_subject_len: int = 200,
    max_description_len: int = 500,
    now: float | None = None,
) -> GroupRecord:
    """Build a bounded :class:`GroupRecord` from provider or cached metadata.

    ``raw`` may be the provider's full shape (``participants`` with admin
    flags) or an already compact one (``adminIds``/``participantsCount``).
    When ``bot_jid`` is known, ``is_bot_admin`` is derived from admin
    membership; otherwise the supplied ``isBotAdmin`` flag is kept.
    """

    raw = raw or {}
    now = time.time() if now is None else now

    participants = raw.get("participants")
    if isinstance(participants, (list, tuple)):
        admin_ids = admin_ids_from_participants(participants)
        participants_count = len(participants) or int(raw.get("size") or 0)
    else:
        admin_ids = _dedupe_capped(raw.get("adminIds") or raw.get("admin_ids") or ())
        participants_count = int(
            raw.get("participantsCount") or raw.get("participants_count") or raw.get("size") or 0
        )

    if bot_jid:
        is_bot_admin = is_admin_member(admin_ids, bot_jid)
    else:
        is_bot_admin = bool(raw.get("isBotAdmin") or raw.get("is_bot_admin"))

    owner = raw.get("owner")
    record = GroupRecord(
        id=str(raw.get("id") or raw.get("jid") or jid or ""),
        subject=str(raw.get("subject") or raw.get("name") or "")[:max_subject_len],
        description=str(raw.get("desc") or raw.get("description") or "")[:max_description_len],
        owner=(normalize_jid(owner) or None) if owner else None,
        admin_ids=admin_ids,
        participants_count=participants_count,
        is_bot_admin=is_bot_admin,
        created_at=float(raw.get("createdAt") or raw.get("creation") or now),
        last_updated_at=now,
    )
    return with_size(record)


def merge_update(
    record: GroupRecord,
    partial: Mapping[str, Any],
    *,
    max_subject_len: int = 200,
    max_description_len: int = 500,
    now: float | None = None,
) -> GroupRecord:
    """Merge ``partial`` into ``record``.

    A supplied ``participants`` list replaces ``admin_ids`` with its
    admin-flagged members and resets ``participants_count``.
    """

    now = time.time() if now is None else now
    changes: dict[str, Any] = {"last_updated_at": now}

    subject = partial.get("subject", partial.get("name"))
    if subject is not None:
        changes["subject"] = str(subject)[:max_subject_len]
    description = partial.get("description", partial.get("desc"))
    if description is not None:
        changes["description"] = str(description)[:max_description_len]
    if "owner" in partial:
        changes["owner"] = normalize_jid(partial["owner"]) or None
    admin_ids = partial.get("adminIds", partial.get("admin_ids"))
    if admin_ids is not None:
        changes["admin_ids"] = _dedupe_capped(admin_ids)
    count = partial.get("participantsCount", partial.get("participants_count"))
    if count is not None:
        changes["participants_count"] = int(count)
    flag = partial.get("isBotAdmin", partial.get("is_bot_admin"))
    if flag is not None:
        changes["is_bot_admin"] = bool(flag)
    created = partial.get("createdAt", partial.get("created_at"))
    if created is not None:
        changes["created_at"] = float(created)

    participants = partial.get("participants")
    if isinstance(participants, (list, tuple)):
        changes["admin_ids"] = admin_ids_from_participants(participants)
        changes["participants_count"] = len(participants)

    return with_size(replace(record, **changes))


__all__ = [
    "GroupRecord",
    "MAX_ADMIN_IDS",
    "normalize_jid",
    "estimate_size_bytes",
    "with_size",
    "admin_ids_from_participants",
    "is_admin_member",
    "stub_record",
    "compact_metadata",
    "merge_update",
]
