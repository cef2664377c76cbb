from session_keeper.cache.compactor import (
    BASE_RECORD_BYTES,
    GroupRecord,
    MAX_ADMIN_IDS,
    compact_metadata,
    estimate_size_bytes,
    merge_update,
    normalize_jid,
    stub_record,
)


def test_normalize_jid_strips_device_and_maps_legacy_server():
    assert normalize_jid("123:4@s.whatsapp.net") == "123@s.whatsapp.net"
    assert normalize_jid("123_1:7@s.whatsapp.net") == "123@s.whatsapp.net"
    assert normalize_jid("456@c.us") == "456@s.whatsapp.net"
    assert normalize_jid("G1@g.us") == "G1@g.us"
    assert normalize_jid("no-server") == ""
    assert normalize_jid(None) == ""


def test_compact_keeps_admins_and_counts_participants():
    raw = {
        "id": "G1@g.us",
        "subject": "Team",
        "participants": [{"id": "A@s.whatsapp.net", "admin": "admin"}],
    }

    record = compact_metadata(raw, now=10.0)

    assert record.id == "G1@g.us"
    assert record.subject == "Team"
    assert record.admin_ids == ("A@s.whatsapp.net",)
    assert record.participants_count == 1
    assert record.is_bot_admin is False
    assert record.created_at == 10.0
    assert record.last_updated_at == 10.0


def test_compact_truncates_text_fields():
    raw = {"subject": "s" * 300, "desc": "d" * 600}

    record = compact_metadata(raw, jid="G@g.us", max_subject_len=200, max_description_len=500)

    assert len(record.subject) == 200
    assert len(record.description) == 500
    assert record.id == "G@g.us"


def test_compact_dedupes_and_caps_admin_ids():
    participants = [{"id": f"{n}@s.whatsapp.net", "admin": "admin"} for n in range(60)]
    participants += [
        {"id": "0:3@s.whatsapp.net", "admin": "superadmin"},
        {"id": "plain@s.whatsapp.net", "admin": None},
        "bare@s.whatsapp.net",
    ]

    record = compact_metadata({"participants": participants}, jid="G@g.us")

    assert len(record.admin_ids) == MAX_ADMIN_IDS
    assert len(set(record.admin_ids)) == MAX_ADMIN_IDS
    assert "plain@s.whatsapp.net" not in record.admin_ids
    assert record.participants_count == len(participants)


def test_compact_derives_bot_admin_from_identity():
    raw = {"participants": [{"id": "B@s.whatsapp.net", "admin": "superadmin"}]}

    record = compact_metadata(raw, jid="G@g.us", bot_jid="B:12@s.whatsapp.net")

    assert record.is_bot_admin is True


def test_compact_accepts_already_compact_shape():
    raw = {
        "adminIds": ["A@s.whatsapp.net", "A@s.whatsapp.net"],
        "participantsCount": 7,
        "isBotAdmin": True,
        "owner": "O:1@s.whatsapp.net",
    }

    record = compact_metadata(raw, jid="G@g.us")

    assert record.admin_ids == ("A@s.whatsapp.net",)
    assert record.participants_count == 7
    assert record.is_bot_admin is True
    assert record.owner == "O@s.whatsapp.net"


def test_size_estimate_grows_with_content():
    stub = stub_record("G@g.us", now=0)
    assert stub.approx_size_bytes == BASE_RECORD_BYTES + len("G@g.us")
    assert estimate_size_bytes(None) == BASE_RECORD_BYTES

    bigger = compact_metadata(
        {"subject": "abc", "adminIds": ["A@s.whatsapp.net"], "participantsCount": 2},
        jid="G@g.us",
    )
    expected = (
        BASE_RECORD_BYTES
        + len("G@g.us")
        + 3
        + len("A@s.whatsapp.net") + 8
        + 2 * 8
    )
    assert bigger.approx_size_bytes == expected


def test_merge_update_recomputes_admins_from_participants():
    record = GroupRecord(id="G@g.us", subject="Old", admin_ids=("X@s.whatsapp.net",))

    merged = merge_update(
        record,
        {
            "subject": "New",
            "participants": [
                {"id": "A@s.whatsapp.net", "admin": "admin"},
                {"id": "C@s.whatsapp.net"},
            ],
        },
        now=5.0,
    )

    assert merged.subject == "New"
    assert merged.admin_ids == ("A@s.whatsapp.net",)
    assert merged.participants_count == 2
    assert merged.last_updated_at == 5.0
    assert merged.approx_size_bytes == estimate_size_bytes(merged)


def test_merge_update_leaves_unmentioned_fields():
    record = GroupRecord(id="G@g.us", subject="Keep", description="Desc", participants_count=3)

    merged = merge_update(record, {"isBotAdmin": True}, now=1.0)

    assert merged.subject == "Keep"
    assert merged.description == "Desc"
    assert merged.participants_count == 3
    assert merged.is_bot_admin is True
