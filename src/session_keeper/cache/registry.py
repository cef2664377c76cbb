"""
Top-level bounded collection of per-session cache entries.

The registry runs in one of two mutually exclusive modes:

* count mode (default): at most ``MAX_SESSIONS`` sessions, least recently
  used evicted first;
* byte mode (``MAX_BYTES > 0``): the sum of every session's
  ``approx_bytes`` stays under ``MAX_BYTES``. Entries are re-inserted after
  each mutation via :meth:`SessionCacheRegistry.touch` so their size is
  re-measured.
"""

from __future__ import annotations

import logging
import time
from functools import partial
from typing import Callable, List

from cachetools import Cache, LRUCache

from session_keeper.config import Cache as CacheSettings
from session_keeper.errors import require

from .accounting import SizeAccountant
from .group_store import GroupStore
from .session_state import SessionEntry

logger = logging.getLogger(__name__)


def _entry_size(entry: SessionEntry) -> int:
    return max(entry.approx_bytes, 1)


class _SessionLRU(LRUCache):
    """LRU of session entries that logs registry-level evictions."""

    def popitem(self):
        session_id, entry = super().popitem()
        logger.info(
            "Evicted session cache %s (%d groups, ~%d bytes)",
            session_id,
            len(entry.groups),
            entry.approx_bytes,
        )
        return session_id, entry

    def peek(self, key, default=None):
        try:
            return Cache.__getitem__(self, key)
        except KeyError:
            return default


class SessionCacheRegistry:
    """Creates, bounds and enumerates :class:`SessionEntry` instances."""

    def __init__(
        self,
        settings: CacheSettings,
        accountant: SizeAccountant,
        *,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self._settings = settings
        self._accountant = accountant
        self._timer = timer
        if settings.bounded_by_bytes:
            self._sessions = _SessionLRU(maxsize=settings.MAX_BYTES, getsizeof=_entry_size)
        else:
            self._sessions = _SessionLRU(maxsize=settings.MAX_SESSIONS)

    @property
    def bounded_by_bytes(self) -> bool:
        return self._settings.bounded_by_bytes

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    # ------------------------------------------------------------------ #
    # Lookup
    # ------------------------------------------------------------------ #

    def get(self, session_id: str) -> SessionEntry | None:
        """Return the entry for ``session_id`` (promoting it) or ``None``."""

        require("session_id", session_id)
        return self._sessions.get(session_id)

    def ensure(self, session_id: str) -> SessionEntry:
        """Return the entry for ``session_id``, creating it on first access."""

        entry = self.get(session_id)
        if entry is not None:
            return entry
        entry = self._new_entry(session_id)
        self._store(entry)
        return entry

    def _new_entry(self, session_id: str) -> SessionEntry:
        groups = GroupStore(self._settings.MAX_GROUPS, self._settings.GROUP_TTL, timer=self._timer)
        entry = SessionEntry(session_id, groups)
        groups.on_evict = partial(self._on_group_evicted, entry)
        return entry

    def _on_group_evicted(self, entry: SessionEntry, jid, record, reason: str) -> None:
        self._accountant.release(entry, record)
        logger.debug("Dropped group %s from session %s (%s)", jid, entry.session_id, reason)

    # ------------------------------------------------------------------ #
    # Mutation
    # ------------------------------------------------------------------ #

    def touch(self, entry: SessionEntry) -> None:
        """Re-measure ``entry`` after a mutation (byte mode only)."""

        if not self.bounded_by_bytes:
            return
        if self._sessions.peek(entry.session_id) is not entry:
            # evicted or replaced while the caller held it
            return
        # re-insert under a fresh key so the old size is not counted alongside the new one
        self._sessions.pop(entry.session_id, None)
        self._store(entry)

    def _store(self, entry: SessionEntry) -> None:
        try:
            self._sessions[entry.session_id] = entry
        except ValueError:
            logger.warning(
                "Session %s (~%d bytes) exceeds registry budget of %d bytes; dropping it",
                entry.session_id,
                entry.approx_bytes,
                self._settings.MAX_BYTES,
            )
            self._sessions.pop(entry.session_id, None)

    def delete(self, session_id: str) -> bool:
        require("session_id", session_id)
        return self._sessions.pop(session_id, None) is not None

    def clear(self) -> None:
        self._sessions.clear()

    # ------------------------------------------------------------------ #
    # Enumeration (no LRU promotion)
    # ------------------------------------------------------------------ #

    def session_ids(self) -> List[str]:
        return list(self._sessions.keys())

    def entries(self) -> List[SessionEntry]:
        snapshot = []
        for session_id in list(Cache.__iter__(self._sessions)):
            entry = self._sessions.peek(session_id)
            if entry is not None:
                snapshot.append(entry)
        return snapshot

    @property
    def total_bytes(self) -> int:
        return sum(entry.approx_bytes for entry in self.entries())
