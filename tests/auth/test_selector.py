import asyncio

from session_keeper.auth.selector import collect_selected_files, is_selected


def _write(root, rel, data=b"{}"):
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)


def test_only_allow_listed_files_are_collected(tmp_path):
    for rel in (
        "creds.json",
        "keys/noise-key.json",
        "keys/pre-key-1.json",
        "keys/signed-pre-key-7.json",
        "pre-key-2.json",
        "app-state-sync-key-AAA.json",
        "session-123.json",
        "notes.txt",
        "backup/creds.json",
    ):
        _write(tmp_path, rel)

    files = asyncio.run(collect_selected_files(tmp_path))

    assert sorted(files) == [
        "creds.json",
        "keys/noise-key.json",
        "keys/pre-key-1.json",
        "keys/signed-pre-key-7.json",
        "pre-key-2.json",
    ]


def test_missing_directory_yields_nothing(tmp_path):
    assert asyncio.run(collect_selected_files(tmp_path / "absent")) == {}


def test_oversized_files_are_skipped(tmp_path):
    _write(tmp_path, "creds.json", b"x" * 10)
    _write(tmp_path, "keys/pre-key-1.json", b"x" * 100)

    files = asyncio.run(collect_selected_files(tmp_path, max_file_bytes=50))

    assert files == {"creds.json": b"x" * 10}


def test_is_selected_patterns():
    assert is_selected("creds.json")
    assert is_selected("keys/pre-key-99.json")
    assert not is_selected("keys/pre-key-99.txt")
    assert not is_selected("keys/sender-key-1.json")
