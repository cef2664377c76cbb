"""
Background cache maintenance.

Two periodic passes run over every cached session:

* the full pass purges expired records, enforces per-session budgets and then
  recomputes each session's byte total to correct accounting drift;
* the budget pass (optional, usually more frequent) only enforces budgets.

A failure while processing one session is logged and recorded in the pass's
:class:`MaintenanceReport`; the remaining sessions are still processed. Both
passes are :class:`~session_keeper.maintenance.PeriodicPass` handles owned
by the janitor and cancelled by :meth:`BackgroundJanitor.stop`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, List, Tuple

from session_keeper.maintenance import PeriodicPass

from .accounting import SizeAccountant
from .session_state import SessionEntry

if TYPE_CHECKING:  # pragma: no cover - type-checking only
    from .registry import SessionCacheRegistry

logger = logging.getLogger(__name__)

FULL_PASS = "full"
BUDGET_PASS = "budget"


@dataclass
class MaintenanceReport:
    """Outcome of one maintenance pass."""

    pass_name: str
    sessions: int = 0
    expired: int = 0
    evicted: int = 0
    failures: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


MaintenanceObserver = Callable[[MaintenanceReport], None]


class BackgroundJanitor:
    """Schedules and runs the cache maintenance passes."""

    def __init__(
        self,
        registry: "SessionCacheRegistry",
        accountant: SizeAccountant,
        *,
        prune_interval: float,
        auto_clean_interval: float = 0,
        observer: MaintenanceObserver | None = None,
    ) -> None:
        self._registry = registry
        self._accountant = accountant
        self.prune_interval = prune_interval
        self.auto_clean_interval = auto_clean_interval
        self._observer = observer
        self._full_pass = PeriodicPass("group-cache-full-pass", self.run_full_pass, prune_interval)
        self._budget_pass: PeriodicPass[MaintenanceReport] | None = None
        if self.budget_pass_enabled:
            self._budget_pass = PeriodicPass(
                "group-cache-budget-pass", self.run_budget_pass, auto_clean_interval
            )

    @property
    def running(self) -> bool:
        return self._full_pass.running

    @property
    def budget_pass_enabled(self) -> bool:
        return self.auto_clean_interval > 0 and self.auto_clean_interval != self.prune_interval

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    async def start(self) -> None:
        """Schedule the periodic passes on the running loop. Calling twice is a no-op."""

        self._full_pass.start()
        if self._budget_pass is not None:
            self._budget_pass.start()

    async def stop(self) -> None:
        """Cancel scheduled passes and wait for them to finish."""

        await self._full_pass.stop()
        if self._budget_pass is not None:
            await self._budget_pass.stop()

    def last_report(self, pass_name: str = FULL_PASS) -> MaintenanceReport | None:
        """Report from the most recent scheduled run of ``pass_name``."""

        periodic = self._full_pass if pass_name == FULL_PASS else self._budget_pass
        return periodic.last_result if periodic is not None else None

    # ------------------------------------------------------------------ #
    # Passes
    # ------------------------------------------------------------------ #

    def run_full_pass(self) -> MaintenanceReport:
        return self._run(FULL_PASS, self._full_session_pass)

    def run_budget_pass(self) -> MaintenanceReport:
        return self._run(BUDGET_PASS, self._budget_session_pass)

    def _full_session_pass(self, entry: SessionEntry, report: MaintenanceReport) -> None:
        report.expired += len(entry.groups.expire() or ())
        report.evicted += self._accountant.enforce(entry)
        self._accountant.recalculate(entry)

    def _budget_session_pass(self, entry: SessionEntry, report: MaintenanceReport) -> None:
        report.evicted += self._accountant.enforce(entry)

    def _run(
        self,
        pass_name: str,
        session_pass: Callable[[SessionEntry, MaintenanceReport], None],
    ) -> MaintenanceReport:
        report = MaintenanceReport(pass_name)
        for entry in self._registry.entries():
            report.sessions += 1
            try:
                session_pass(entry, report)
                self._registry.touch(entry)
            except Exception as exc:
                logger.exception(
                    "Group cache %s pass failed for session %s", pass_name, entry.session_id
                )
                report.failures.append((entry.session_id, str(exc) or type(exc).__name__))

        if report.evicted or report.expired or report.failures:
            logger.info(
                "Group cache %s pass: %d session(s), %d expired, %d evicted, %d failure(s)",
                pass_name,
                report.sessions,
                report.expired,
                report.evicted,
                len(report.failures),
            )
        self._notify(report)
        return report

    def _notify(self, report: MaintenanceReport) -> None:
        if self._observer is None:
            return
        try:
            self._observer(report)
        except Exception:
            logger.exception("Maintenance observer failed for %s pass", report.pass_name)
