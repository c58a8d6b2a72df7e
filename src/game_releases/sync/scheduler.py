"""Periodic background driver for the sync orchestrator."""

import asyncio
from datetime import timedelta

from game_releases.logger import get_logger
from game_releases.sync.orchestrator import SyncOrchestrator, SyncReport


class SyncScheduler:
    """
    Runs a sync pass on a fixed interval until stopped.

    Example:
        >>> scheduler = SyncScheduler(orchestrator, interval=timedelta(hours=6))
        >>> scheduler.start()
        >>> ...
        >>> await scheduler.stop()
    """

    def __init__(
        self,
        orchestrator: SyncOrchestrator,
        interval: timedelta | None = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._interval = interval if interval is not None else timedelta(hours=6)
        if self._interval.total_seconds() <= 0:
            raise ValueError("interval must be positive")
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task[None] | None = None
        self._logger = get_logger(__name__, component="scheduler")
        self.runs_completed = 0
        self.runs_failed = 0
        self.last_report: SyncReport | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task[None]:
        """Spawn the background loop. Calling twice returns the running task."""
        if self._task is not None and not self._task.done():
            return self._task
        self._stop_event.clear()
        self._task = asyncio.create_task(self.run_forever(), name="sync-scheduler")
        return self._task

    async def stop(self) -> None:
        """Stop the loop, cancelling any in-flight pass."""
        self._stop_event.set()
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        self._logger.info("Scheduler stopped")

    async def trigger(self) -> SyncReport:
        """Run one pass now; waits if a scheduled pass is in progress."""
        self._logger.info("Manual sync triggered")
        report = await self._orchestrator.run_once()
        self.last_report = report
        return report

    async def run_forever(self) -> None:
        interval_seconds = self._interval.total_seconds()
        self._logger.info("Scheduler started", interval_seconds=interval_seconds)

        while not self._stop_event.is_set():
            try:
                self.last_report = await self._orchestrator.run_once()
                self.runs_completed += 1
            except Exception:
                self.runs_failed += 1
                self._logger.exception("Scheduled sync failed")

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=interval_seconds)
            except asyncio.TimeoutError:
                continue
