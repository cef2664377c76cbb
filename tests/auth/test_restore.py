import asyncio
import json
import os
import stat

import pytest

from session_keeper.auth.codec import encode_file, encode_files
from session_keeper.auth.degrade import fit_to_budget
from session_keeper.auth.payload import FILES_KEY, META_KEY, PersistedPayload
from session_keeper.auth.restore import RestoreClient, resolve_target


def _wire(raw_files):
    return PersistedPayload.from_degrade(fit_to_budget(encode_files(raw_files), 10**9)).to_wire()


def _wire_with_meta(**meta):
    wire = _wire({"creds.json": b"creds"})
    wire[META_KEY].update(meta)
    return wire


def _restore(auth_dir, loaded):
    return asyncio.run(RestoreClient().restore("S1", auth_dir, lambda sid: loaded))


def test_corrupted_entry_names_its_path(tmp_path):
    wire = _wire({"creds.json": b"creds", "keys/noise-key.json": b"noise"})
    wire[FILES_KEY]["keys/noise-key.json"] = encode_file("keys/noise-key.json", b"tampered").encoded

    result = _restore(tmp_path, wire)

    assert result.ok is False
    assert result.reason == "checksum_mismatch:keys/noise-key.json"
    assert result.restored == ["creds.json"]
    assert (tmp_path / "creds.json").read_bytes() == b"creds"
    assert not (tmp_path / "keys" / "noise-key.json").exists()


def test_undecodable_entry_reports_write_failure(tmp_path):
    wire = _wire({"creds.json": b"creds"})
    wire[FILES_KEY]["creds.json"] = "%%%"

    result = _restore(tmp_path, wire)

    assert result.ok is False
    assert result.reason.startswith("write_failed:creds.json:")
    assert not (tmp_path / "creds.json").exists()


def test_refuses_paths_outside_auth_dir(tmp_path):
    auth = tmp_path / "auth"
    wire = _wire({"../evil.json": b"x"})

    result = _restore(auth, wire)

    assert result.reason == "unsafe_path:../evil.json"
    assert not (tmp_path / "evil.json").exists()


@pytest.mark.parametrize(
    "loaded, reason",
    [
        (None, "no_db_row"),
        ({}, "no_selected_files_in_db"),
        ({"creds": {"me": {}}}, "no_selected_files_in_db"),
        ("not json", "no_selected_files_in_db"),
        (b"\xff\xfe", "no_selected_files_in_db"),
        (_wire_with_meta(totalBytes="n/a"), "no_selected_files_in_db"),
        (_wire_with_meta(ts=[1]), "no_selected_files_in_db"),
    ],
)
def test_unusable_loads_are_reported(tmp_path, loaded, reason):
    result = _restore(tmp_path, loaded)

    assert result.ok is False
    assert result.reason == reason
    assert list(tmp_path.iterdir()) == []


def test_load_errors_become_the_reason(tmp_path):
    async def load(session_id):
        raise ConnectionError("db down")

    result = asyncio.run(RestoreClient().restore("S1", tmp_path, load))

    assert result.ok is False
    assert result.reason == "db down"


def test_accepts_wrapped_and_json_payloads(tmp_path):
    wire = _wire({"creds.json": b"creds"})

    wrapped = _restore(tmp_path / "wrapped", {"creds": wire})
    as_text = _restore(tmp_path / "text", json.dumps(wire))

    assert wrapped.ok and as_text.ok
    assert (tmp_path / "text" / "creds.json").read_bytes() == b"creds"


@pytest.mark.skipif(os.name != "posix", reason="POSIX permissions")
def test_restored_files_are_owner_only_and_no_temp_files_remain(tmp_path):
    result = _restore(tmp_path, _wire({"creds.json": b"creds", "keys/pre-key-1.json": b"k"}))

    assert result.ok
    mode = stat.S_IMODE((tmp_path / "creds.json").stat().st_mode)
    assert mode == 0o600
    leftovers = [p.name for p in tmp_path.rglob("*") if ".tmp-" in p.name]
    assert leftovers == []


def test_resolve_target_rejects_escapes(tmp_path):
    assert resolve_target(tmp_path, "keys/pre-key-1.json") == tmp_path / "keys" / "pre-key-1.json"
    assert resolve_target(tmp_path, "/etc/passwd") is None
    assert resolve_target(tmp_path, "keys/../../x") is None
    assert resolve_target(tmp_path, "keys\\x") is None
    assert resolve_target(tmp_path, "") is None
