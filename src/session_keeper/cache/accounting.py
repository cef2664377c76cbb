"""
Incremental byte accounting and per-session budget enforcement.

Every mutation charges or releases the affected record's
``approx_size_bytes`` against :attr:`SessionEntry.approx_bytes`, so budgets can
be checked without rescanning. :meth:`SizeAccountant.recalculate` performs the
full rescan the slow maintenance pass uses to correct drift.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from .compactor import GroupRecord
from .session_state import SessionEntry

logger = logging.getLogger(__name__)


class SizeAccountant:
    """Tracks per-session bytes and trims sessions back under their caps."""

    def __init__(
        self,
        max_groups: int,
        max_bytes: int = 0,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.max_groups = max_groups
        self.max_bytes = max_bytes
        self._clock = clock

    # ------------------------------------------------------------------ #
    # Incremental accounting
    # ------------------------------------------------------------------ #

    def charge(
        self,
        entry: SessionEntry,
        record: GroupRecord,
        previous: GroupRecord | None = None,
    ) -> None:
        """Account for ``record`` replacing ``previous`` (if any)."""

        prev_size = previous.approx_size_bytes if previous is not None else 0
        entry.approx_bytes = max(entry.approx_bytes + record.approx_size_bytes - prev_size, 0)

    def release(self, entry: SessionEntry, record: GroupRecord | None) -> None:
        """Account for ``record`` leaving the session."""

        if record is None:
            return
        entry.approx_bytes = max(entry.approx_bytes - record.approx_size_bytes, 0)

    def recalculate(self, entry: SessionEntry) -> int:
        """Recompute ``entry.approx_bytes`` from scratch and return it."""

        total = sum(record.approx_size_bytes for _, record in entry.groups.records())
        if total != entry.approx_bytes:
            logger.debug(
                "Corrected byte drift for session %s: %d -> %d",
                entry.session_id,
                entry.approx_bytes,
                total,
            )
        entry.approx_bytes = total
        return total

    # ------------------------------------------------------------------ #
    # Enforcement
    # ------------------------------------------------------------------ #

    def over_budget(self, entry: SessionEntry) -> bool:
        if len(entry.groups) > self.max_groups:
            return True
        return self.max_bytes > 0 and entry.approx_bytes > self.max_bytes

    def enforce(self, entry: SessionEntry) -> int:
        """Evict least recently used records until ``entry`` is within budget.

        Bytes are released by the store's eviction callback. Returns the
        number of records evicted by this pass.
        """

        # expired records would otherwise count against the cap
        entry.groups.expire()
        evicted = 0
        while self.over_budget(entry):
            try:
                entry.groups.popitem()
            except KeyError:
                break
            evicted += 1

        if evicted:
            entry.last_clean_at = self._clock()
            entry.last_evicted = evicted
            logger.info(
                "Evicted %d group(s) from session %s (now %d groups, ~%d bytes)",
                evicted,
                entry.session_id,
                len(entry.groups),
                entry.approx_bytes,
            )
        return evicted
