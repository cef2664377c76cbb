"""
Allow-listed auth file selection.

Only the credentials file and the numbered key files are ever captured; any
other file under the auth directory (logs, caches, app-state syncs) is ignored
regardless of size. Paths are returned relative to the auth directory with
``/`` separators so they are portable across platforms.
"""

from __future__ import annotations

import asyncio
import logging
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Dict

logger = logging.getLogger(__name__)

CREDENTIALS_FILE = "creds.json"
PRIMARY_KEY_FILES = ("keys/noise-key.json", "noise-key.json")

SELECTED_PATTERNS = (
    CREDENTIALS_FILE,
    # both the nested ``keys/`` layout and the older top-level layout
    "keys/noise-key.json",
    "noise-key.json",
    "keys/signed-pre-key-*.json",
    "signed-pre-key-*.json",
    "keys/pre-key-*.json",
    "pre-key-*.json",
)


def is_selected(relative_path: str) -> bool:
    """Return ``True`` if ``relative_path`` matches the allow-list."""

    return any(fnmatchcase(relative_path, pattern) for pattern in SELECTED_PATTERNS)


def _collect(auth_dir: Path, max_file_bytes: int | None) -> Dict[str, bytes]:
    selected: Dict[str, bytes] = {}
    if not auth_dir.is_dir():
        return selected

    for path in sorted(auth_dir.rglob("*")):
        if not path.is_file():
            continue
        rel = path.relative_to(auth_dir).as_posix()
        if not is_selected(rel):
            continue
        size = path.stat().st_size
        if max_file_bytes is not None and size > max_file_bytes:
            logger.warning(
                "Skipping %s (%d bytes exceeds per-file limit of %d)", rel, size, max_file_bytes
            )
            continue
        selected[rel] = path.read_bytes()
    return selected


async def collect_selected_files(
    auth_dir: str | Path, *, max_file_bytes: int | None = None
) -> Dict[str, bytes]:
    """Read every allow-listed file under ``auth_dir``.

    Returns ``{relative_path: raw_bytes}``; empty when the directory does not
    exist. Filesystem access runs in a worker thread.
    """

    return await asyncio.to_thread(_collect, Path(auth_dir), max_file_bytes)


__all__ = [
    "CREDENTIALS_FILE",
    "PRIMARY_KEY_FILES",
    "SELECTED_PATTERNS",
    "is_selected",
    "collect_selected_files",
]
