"""Group cache manager coordinating sessions, accounting and maintenance."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field, replace
from typing import Any, Callable, List, Mapping

from session_keeper import config
from session_keeper.config import Cache as CacheSettings
from session_keeper.errors import require

from .accounting import SizeAccountant
from .compactor import (
    GroupRecord,
    compact_metadata,
    is_admin_member,
    merge_update,
    stub_record,
    with_size,
)
from .janitor import BackgroundJanitor, MaintenanceObserver
from .provider import bot_identity, metadata_fetcher, participating_fetcher
from .registry import SessionCacheRegistry
from .session_state import SessionEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SessionStats:
    session_id: str
    groups: int = 0
    approx_bytes: int = 0
    last_clean_at: float | None = None
    last_evicted: int = 0


@dataclass(frozen=True, slots=True)
class CacheStats:
    total_sessions: int
    sessions: List[SessionStats] = field(default_factory=list)


def _retrieve_exception(task: asyncio.Task) -> None:
    # every waiter may have been cancelled; the failure is already logged by _fetch
    if not task.cancelled():
        task.exception()


def _session_stats(entry: SessionEntry) -> SessionStats:
    return SessionStats(
        session_id=entry.session_id,
        groups=entry.group_count,
        approx_bytes=entry.approx_bytes,
        last_clean_at=entry.last_clean_at,
        last_evicted=entry.last_evicted,
    )


class GroupCacheManager:
    """Bounded per-session group metadata cache with inflight fetch coalescing.

    One instance owns every session's state and the background janitor.
    Construct it explicitly (``GroupCacheManager(settings)``), call
    :meth:`start` once an event loop is running and :meth:`shutdown` on exit.
    """

    def __init__(
        self,
        settings: CacheSettings | None = None,
        *,
        timer: Callable[[], float] = time.monotonic,
        clock: Callable[[], float] = time.time,
        observer: MaintenanceObserver | None = None,
    ) -> None:
        self._settings = settings or config.cache
        self._clock = clock
        self._accountant = SizeAccountant(
            self._settings.MAX_GROUPS,
            self._settings.PER_SESSION_MAX_BYTES,
            clock=clock,
        )
        self._registry = SessionCacheRegistry(self._settings, self._accountant, timer=timer)
        self._janitor = BackgroundJanitor(
            self._registry,
            self._accountant,
            prune_interval=self._settings.PRUNE_INTERVAL,
            auto_clean_interval=self._settings.AUTO_CLEAN_INTERVAL,
            observer=observer,
        )

    @property
    def settings(self) -> CacheSettings:
        return self._settings

    @property
    def registry(self) -> SessionCacheRegistry:
        return self._registry

    @property
    def janitor(self) -> BackgroundJanitor:
        return self._janitor

    # ------------------------------------------------------------------ #
    # LIFECYCLE
    # ------------------------------------------------------------------ #

    async def start(self) -> None:
        """Start background maintenance on the running loop."""

        await self._janitor.start()

    async def shutdown(self) -> None:
        """Cancel background maintenance and wait for it to stop."""

        await self._janitor.stop()

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    def _compact(self, raw: Mapping[str, Any], jid: str, bot_jid: str | None) -> GroupRecord:
        return compact_metadata(
            raw,
            jid=jid,
            bot_jid=bot_jid,
            max_subject_len=self._settings.MAX_SUBJECT_LEN,
            max_description_len=self._settings.MAX_DESC_LEN,
            now=self._clock(),
        )

    def _put(self, entry: SessionEntry, jid: str, record: GroupRecord, *, touch: bool = True) -> None:
        # an expired previous record is purged (and released) by the store on insert
        previous = entry.groups.get(jid)
        entry.groups[jid] = record
        self._accountant.charge(entry, record, previous)
        if touch:
            self._registry.touch(entry)

    # ------------------------------------------------------------------ #
    # READ helpers
    # ------------------------------------------------------------------ #

    def get(self, session_id: str, jid: str) -> GroupRecord | None:
        """Return the cached record for ``jid`` or ``None``."""

        require("session_id", session_id)
        require("jid", jid)
        entry = self._registry.get(session_id)
        if entry is None:
            return None
        return entry.groups.get(jid)

    def list_jids(self, session_id: str) -> List[str]:
        entry = self._registry.get(session_id)
        if entry is None:
            return []
        return entry.groups.live_keys()

    def list_sessions(self) -> List[str]:
        return self._registry.session_ids()

    # ------------------------------------------------------------------ #
    # WRITE helpers
    # ------------------------------------------------------------------ #

    def set(self, session_id: str, jid: str, metadata: Mapping[str, Any]) -> GroupRecord:
        """Compact ``metadata`` and cache it under ``jid``."""

        require("session_id", session_id)
        require("jid", jid)
        require("metadata", metadata)
        entry = self._registry.ensure(session_id)
        record = self._compact(metadata, jid, None)
        self._put(entry, jid, record)
        return record

    def delete(self, session_id: str, jid: str) -> bool:
        """Drop ``jid``'s record and inflight slot. Returns whether a record existed."""

        require("session_id", session_id)
        require("jid", jid)
        entry = self._registry.get(session_id)
        if entry is None:
            return False
        record = entry.groups.pop(jid, None)
        entry.inflight.pop(jid, None)
        self._accountant.release(entry, record)
        self._registry.touch(entry)
        return record is not None

    def update(self, session_id: str, jid: str, partial: Mapping[str, Any]) -> GroupRecord:
        """Merge ``partial`` into the cached record (creating a stub if absent)."""

        require("session_id", session_id)
        require("jid", jid)
        require("partial", partial)
        entry = self._registry.ensure(session_id)
        now = self._clock()
        current = entry.groups.get(jid) or stub_record(jid, now=now)
        merged = merge_update(
            current,
            partial,
            max_subject_len=self._settings.MAX_SUBJECT_LEN,
            max_description_len=self._settings.MAX_DESC_LEN,
            now=now,
        )
        self._put(entry, jid, merged)
        return merged

    def delete_session(self, session_id: str) -> bool:
        removed = self._registry.delete(session_id)
        if removed:
            logger.info("Deleted session cache %s", session_id)
        return removed

    # ------------------------------------------------------------------ #
    # FETCH
    # ------------------------------------------------------------------ #

    async def get_or_fetch(self, session_id: str, provider: Any, jid: str) -> GroupRecord:
        """Return ``jid``'s record, fetching it from ``provider`` on a miss.

        Concurrent misses for the same ``(session_id, jid)`` share one
        provider call. Fetch errors reach every waiter and leave nothing
        cached, so the next call retries.
        """

        require("session_id", session_id)
        require("jid", jid)
        entry = self._registry.ensure(session_id)

        cached = entry.groups.get(jid)
        if cached is not None:
            return self._refresh_bot_admin(entry, jid, cached, provider)

        task = entry.inflight.get(jid)
        if task is None:
            task = asyncio.create_task(self._fetch(entry, provider, jid))
            task.add_done_callback(_retrieve_exception)
            entry.inflight[jid] = task
        # one waiter being cancelled must not cancel the shared fetch
        return await asyncio.shield(task)

    async def _fetch(self, entry: SessionEntry, provider: Any, jid: str) -> GroupRecord:
        try:
            fetch = metadata_fetcher(provider)
            if fetch is None:
                record = stub_record(jid, now=self._clock())
            else:
                raw = await fetch(jid)
                record = self._compact(raw or {}, jid, bot_identity(provider))
            self._put(entry, jid, record)
            return record
        except Exception as exc:
            logger.warning(
                "Group metadata fetch failed for %s in session %s: %s",
                jid,
                entry.session_id,
                exc,
            )
            raise
        finally:
            if entry.inflight.get(jid) is asyncio.current_task():
                del entry.inflight[jid]

    def _refresh_bot_admin(
        self, entry: SessionEntry, jid: str, cached: GroupRecord, provider: Any
    ) -> GroupRecord:
        bot_jid = bot_identity(provider)
        if not bot_jid:
            return cached
        is_bot_admin = is_admin_member(cached.admin_ids, bot_jid)
        if is_bot_admin == cached.is_bot_admin:
            return cached
        patched = with_size(
            replace(cached, is_bot_admin=is_bot_admin, last_updated_at=self._clock())
        )
        self._put(entry, jid, patched)
        return patched

    async def prefetch_all(self, session_id: str, provider: Any) -> int:
        """Bulk-load up to ``PREFETCH_LIMIT`` participating groups. Returns the count."""

        require("session_id", session_id)
        fetch_all = participating_fetcher(provider)
        limit = self._settings.PREFETCH_LIMIT
        if fetch_all is None or limit <= 0:
            return 0

        entry = self._registry.ensure(session_id)
        groups = await fetch_all()
        bot_jid = bot_identity(provider)

        count = 0
        for jid, raw in (groups or {}).items():
            if count >= limit:
                break
            if not raw:
                continue
            self._put(entry, jid, self._compact(raw, jid, bot_jid), touch=False)
            count += 1

        if count:
            self._registry.touch(entry)
        logger.info("Prefetched %d group(s) for session %s", count, session_id)
        return count

    # ------------------------------------------------------------------ #
    # MAINTENANCE
    # ------------------------------------------------------------------ #

    def clean_session(self, session_id: str) -> int:
        """Enforce per-session budgets now. Returns the number of evicted records."""

        entry = self._registry.get(session_id)
        if entry is None:
            return 0
        evicted = self._accountant.enforce(entry)
        self._registry.touch(entry)
        return evicted

    def clean_all_sessions(self) -> int:
        """Run a full maintenance pass over every session."""

        return self._janitor.run_full_pass().evicted

    # ------------------------------------------------------------------ #
    # DIAGNOSTICS
    # ------------------------------------------------------------------ #

    def session_stats(self, session_id: str) -> SessionStats:
        entry = self._registry.get(session_id)
        if entry is None:
            return SessionStats(session_id=session_id)
        return _session_stats(entry)

    def stats(self) -> CacheStats:
        entries = self._registry.entries()
        return CacheStats(
            total_sessions=len(entries),
            sessions=[_session_stats(entry) for entry in entries],
        )

    def for_session(self, session_id: str) -> "SessionCacheView":
        return SessionCacheView(self, session_id)


class SessionCacheView:
    """The manager's API bound to a single session."""

    def __init__(self, manager: GroupCacheManager, session_id: str) -> None:
        require("session_id", session_id)
        self._manager = manager
        self.session_id = session_id

    def get(self, jid: str) -> GroupRecord | None:
        return self._manager.get(self.session_id, jid)

    def set(self, jid: str, metadata: Mapping[str, Any]) -> GroupRecord:
        return self._manager.set(self.session_id, jid, metadata)

    def delete(self, jid: str) -> bool:
        return self._manager.delete(self.session_id, jid)

    def list_jids(self) -> List[str]:
        return self._manager.list_jids(self.session_id)

    async def get_or_fetch(self, provider: Any, jid: str) -> GroupRecord:
        return await self._manager.get_or_fetch(self.session_id, provider, jid)

    def update(self, jid: str, partial: Mapping[str, Any]) -> GroupRecord:
        return self._manager.update(self.session_id, jid, partial)

    async def prefetch_all(self, provider: Any) -> int:
        return await self._manager.prefetch_all(self.session_id, provider)

    def delete_session(self) -> bool:
        return self._manager.delete_session(self.session_id)

    def list_sessions(self) -> List[str]:
        return self._manager.list_sessions()

    def clean(self) -> int:
        return self._manager.clean_session(self.session_id)

    def stats(self) -> SessionStats:
        return self._manager.session_stats(self.session_id)
