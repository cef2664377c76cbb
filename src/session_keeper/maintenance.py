"""
Cancellable periodic passes.

A :class:`PeriodicPass` owns one :class:`asyncio.Task` that calls a
synchronous pass function every ``interval`` seconds (first run after one
interval). The pass's return value is kept as :attr:`PeriodicPass.last_result`
and handed to ``on_result``; a raising pass is logged and counted, and the
schedule keeps going.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PeriodicPass(Generic[T]):
    def __init__(
        self,
        name: str,
        run_pass: Callable[[], T],
        interval: float,
        *,
        on_result: Callable[[T], None] | None = None,
    ) -> None:
        if interval <= 0:
            raise ValueError(f"{name}: interval must be positive")
        self.name = name
        self.interval = interval
        self._run_pass = run_pass
        self._on_result = on_result
        self._task: asyncio.Task | None = None
        self.runs = 0
        self.failures = 0
        self.last_result: T | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Schedule the pass on the running loop. No-op while already running."""

        if self.running:
            return
        logger.info("Starting %s (interval=%ss)", self.name, self.interval)
        self._task = asyncio.create_task(self._loop(), name=self.name)

    async def stop(self) -> None:
        """Cancel the schedule and wait until the task has finished."""

        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Stopped %s after %d run(s), %d failure(s)", self.name, self.runs, self.failures)

    def run_once(self) -> T | None:
        """Run the pass now, recording its outcome like a scheduled tick."""

        try:
            result = self._run_pass()
        except Exception:
            self.failures += 1
            logger.exception("Periodic %s failed", self.name)
            return None
        self.runs += 1
        self.last_result = result
        if self._on_result is not None:
            try:
                self._on_result(result)
            except Exception:
                logger.exception("Result callback for %s failed", self.name)
        return result

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self.run_once()


__all__ = ["PeriodicPass"]
