"""
Checksum-verified restore of persisted auth files.

Each file is decoded, verified against its recorded sha256 and written via a
temporary sibling plus :func:`os.replace`, so a crash never leaves a
half-written credentials file behind. Restoration stops at the first bad
file; files already written are kept.
"""

from __future__ import annotations

import asyncio
import logging
import os
import uuid
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import List

from session_keeper.errors import ChecksumMismatchError, PayloadShapeError, require

from .codec import verify_file
from .payload import PersistedPayload
from .persist import LoadFn, maybe_await

logger = logging.getLogger(__name__)

FILE_MODE = 0o600


@dataclass(frozen=True, slots=True)
class RestoreResult:
    ok: bool
    reason: str | None = None
    restored: List[str] = field(default_factory=list)


def _write_atomic(target: Path, data: bytes, mode: int) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    tmp = target.with_name(f"{target.name}.tmp-{uuid.uuid4().hex}")
    fd = os.open(tmp, os.O_WRONLY | os.O_CREAT | os.O_EXCL, mode)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
        os.replace(tmp, target)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise
    try:
        os.chmod(target, mode)
    except OSError as exc:
        logger.debug("Could not tighten permissions on %s: %s", target, exc)


async def atomic_write_file(target: str | Path, data: bytes, mode: int = FILE_MODE) -> None:
    """Write ``data`` to ``target`` through a temporary sibling and rename."""

    await asyncio.to_thread(_write_atomic, Path(target), data, mode)


def resolve_target(auth_dir: Path, relative_path: str) -> Path | None:
    """Map a payload path into ``auth_dir``; ``None`` if it would escape it."""

    rel = PurePosixPath(relative_path)
    if not relative_path or rel.is_absolute() or ".." in rel.parts or "\\" in relative_path:
        return None
    return auth_dir.joinpath(*rel.parts)


class RestoreClient:
    """Write a persisted payload back into an auth directory."""

    def __init__(self, *, file_mode: int = FILE_MODE) -> None:
        self._file_mode = file_mode

    async def restore(self, session_id: str, auth_dir: str | Path, load: LoadFn) -> RestoreResult:
        """Restore ``session_id``'s files into ``auth_dir``.

        Returns a :class:`RestoreResult`; the reason names the offending path
        when a file fails (``checksum_mismatch:<path>``,
        ``write_failed:<path>:<error>``, ``unsafe_path:<path>``).
        """

        require("session_id", session_id)
        require("auth_dir", auth_dir)
        auth_dir = Path(auth_dir)

        try:
            loaded = await maybe_await(load(session_id))
        except Exception as exc:
            logger.warning("Loading auth payload for session %s failed: %s", session_id, exc)
            return RestoreResult(False, str(exc) or type(exc).__name__)
        if loaded is None:
            return RestoreResult(False, "no_db_row")

        try:
            payload = PersistedPayload.from_loaded(loaded)
        except PayloadShapeError as exc:
            return RestoreResult(False, str(exc))

        restored: List[str] = []
        for rel, encoded in payload.encoded_files.items():
            target = resolve_target(auth_dir, rel)
            if target is None:
                logger.error("Refusing to restore %s outside %s", rel, auth_dir)
                return RestoreResult(False, f"unsafe_path:{rel}", restored)
            try:
                data = verify_file(rel, encoded, payload.checksums.get(rel))
                await atomic_write_file(target, data, self._file_mode)
            except ChecksumMismatchError:
                logger.error("Checksum mismatch restoring %s for session %s", rel, session_id)
                return RestoreResult(False, f"checksum_mismatch:{rel}", restored)
            except (OSError, ValueError) as exc:
                logger.error("Restoring %s for session %s failed: %s", rel, session_id, exc)
                return RestoreResult(False, f"write_failed:{rel}:{exc}", restored)
            restored.append(rel)

        logger.info("Restored %d auth file(s) for session %s", len(restored), session_id)
        return RestoreResult(True, restored=restored)


__all__ = ["RestoreClient", "RestoreResult", "atomic_write_file", "resolve_target"]
