"""
Retrying, round-trip verified persistence of auth files.

:meth:`PersistenceClient.store` never touches the auth directory beyond
reading it: the selected files are encoded into a :class:`PersistedPayload`,
handed to the caller's ``save`` collaborator, read straight back through
``load`` and checksum-verified. Any exception, empty load or mismatch counts
as a failed attempt and is retried with exponential backoff.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable

from session_keeper import config
from session_keeper.config import Persist as PersistSettings
from session_keeper.errors import PayloadShapeError, require

from .codec import encode_files
from .degrade import fit_to_budget
from .payload import PersistedPayload
from .selector import collect_selected_files

logger = logging.getLogger(__name__)

SaveFn = Callable[[str, dict], Any]
LoadFn = Callable[[str], Any]


@dataclass(frozen=True, slots=True)
class PersistResult:
    ok: bool
    reason: str | None = None
    attempts: int = 0
    tier: str | None = None


async def maybe_await(value: Any) -> Any:
    """Await ``value`` if it is awaitable so sync and async collaborators both work."""

    if inspect.isawaitable(value):
        return await value
    return value


def _reason(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


class PersistenceClient:
    """Store auth files through caller-supplied ``save``/``load`` functions."""

    def __init__(
        self,
        settings: PersistSettings | None = None,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._settings = settings or config.persist
        self._sleep = sleep

    async def build_payload(
        self, auth_dir: str | Path, *, max_bytes: int | None = None
    ) -> PersistedPayload | None:
        """Collect, encode and fit the selected files. ``None`` when nothing matched."""

        raw_files = await collect_selected_files(
            auth_dir, max_file_bytes=self._settings.MAX_FILE_BYTES
        )
        if not raw_files:
            return None
        budget = self._settings.MAX_BYTES if max_bytes is None else max_bytes
        result = fit_to_budget(encode_files(raw_files), budget)
        return PersistedPayload.from_degrade(result)

    async def store(
        self,
        session_id: str,
        auth_dir: str | Path,
        save: SaveFn,
        load: LoadFn,
        *,
        attempts: int | None = None,
        backoff_base: float | None = None,
        max_bytes: int | None = None,
    ) -> PersistResult:
        """Persist ``auth_dir``'s selected files for ``session_id``.

        Returns a :class:`PersistResult`; failures are reported, not raised.
        """

        require("session_id", session_id)
        require("auth_dir", auth_dir)
        attempts = self._settings.ATTEMPTS if attempts is None else max(int(attempts), 1)
        backoff_base = self._settings.BACKOFF_BASE if backoff_base is None else backoff_base

        try:
            payload = await self.build_payload(auth_dir, max_bytes=max_bytes)
        except OSError as exc:
            logger.error("Reading auth files under %s for session %s failed: %s", auth_dir, session_id, exc)
            return PersistResult(False, f"collect_failed:{exc}")
        if payload is None:
            logger.warning("No auth files selected under %s for session %s", auth_dir, session_id)
            return PersistResult(False, "no_selected_files")

        wire = payload.to_wire()
        reason = "unknown"
        for attempt in range(attempts):
            try:
                await maybe_await(save(session_id, wire))
                loaded = await maybe_await(load(session_id))
                if loaded is None:
                    raise PayloadShapeError("load_returned_null")
                PersistedPayload.from_loaded(loaded).verify()
            except Exception as exc:
                reason = _reason(exc)
                if attempt + 1 >= attempts:
                    break
                delay = backoff_base * (2 ** attempt)
                logger.warning(
                    "Persist attempt %d/%d for session %s failed (%s); retrying in %.2fs",
                    attempt + 1,
                    attempts,
                    session_id,
                    reason,
                    delay,
                )
                await self._sleep(delay)
                continue

            logger.info(
                "Persisted %d auth file(s) for session %s (tier=%s, %d bytes, attempt %d)",
                len(payload.encoded_files),
                session_id,
                payload.tier,
                payload.total_bytes,
                attempt + 1,
            )
            return PersistResult(True, attempts=attempt + 1, tier=payload.tier)

        logger.error(
            "Persisting auth files for session %s failed after %d attempt(s): %s",
            session_id,
            attempts,
            reason,
        )
        return PersistResult(False, reason, attempts=attempts, tier=payload.tier)


__all__ = ["PersistenceClient", "PersistResult", "maybe_await"]
