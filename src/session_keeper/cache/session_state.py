"""
Per-session cache state.

A :class:`SessionEntry` bundles one session's :class:`GroupStore`, its map of
inflight fetch tasks and the bookkeeping the janitor reports on. Entries are
created and owned by :class:`~session_keeper.cache.registry.SessionCacheRegistry`.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

from .group_store import GroupStore


@dataclass
class SessionEntry:
    """In-memory state for one cached session."""

    session_id: str
    groups: GroupStore = field(repr=False)
    inflight: dict[str, asyncio.Task] = field(default_factory=dict, repr=False)
    approx_bytes: int = 0
    last_clean_at: float | None = None
    last_evicted: int = 0

    @property
    def group_count(self) -> int:
        return len(self.groups.live_keys())
