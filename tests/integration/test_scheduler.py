"""Tests for the periodic sync scheduler."""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import uuid4

import pytest

from game_releases.sync import SyncReport, SyncScheduler


def make_report() -> SyncReport:
    now = datetime.now(timezone.utc)
    return SyncReport(run_id=uuid4(), started_at=now, window_start=now, window_end=now)


class StubOrchestrator:
    """Counts passes; optionally fails or blocks."""

    def __init__(self, *, fail_first: bool = False, block: bool = False) -> None:
        self.runs = 0
        self.fail_first = fail_first
        self.block = block
        self.started = asyncio.Event()
        self.cancelled = False

    async def run_once(self, *args: Any) -> SyncReport:
        self.runs += 1
        self.started.set()
        if self.fail_first and self.runs == 1:
            raise RuntimeError("storefront unreachable")
        if self.block:
            try:
                await asyncio.sleep(3600)
            except asyncio.CancelledError:
                self.cancelled = True
                raise
        return make_report()


async def wait_for_runs(orchestrator: StubOrchestrator, runs: int) -> None:
    async def poll() -> None:
        while orchestrator.runs < runs:
            await asyncio.sleep(0.005)

    await asyncio.wait_for(poll(), timeout=2)


class TestSyncScheduler:
    """Tests for SyncScheduler."""

    @pytest.mark.asyncio
    async def test_runs_periodically(self) -> None:
        orchestrator = StubOrchestrator()
        scheduler = SyncScheduler(orchestrator, timedelta(milliseconds=20))  # type: ignore[arg-type]

        scheduler.start()
        await wait_for_runs(orchestrator, 3)
        await scheduler.stop()

        assert scheduler.runs_completed >= 3
        assert scheduler.last_report is not None
        assert not scheduler.is_running

    @pytest.mark.asyncio
    async def test_failed_run_does_not_stop_loop(self) -> None:
        orchestrator = StubOrchestrator(fail_first=True)
        scheduler = SyncScheduler(orchestrator, timedelta(milliseconds=10))  # type: ignore[arg-type]

        scheduler.start()
        await wait_for_runs(orchestrator, 2)
        await scheduler.stop()

        assert scheduler.runs_failed == 1
        assert scheduler.runs_completed >= 1

    @pytest.mark.asyncio
    async def test_stop_during_wait(self) -> None:
        """Stop returns promptly even with a long interval."""
        orchestrator = StubOrchestrator()
        scheduler = SyncScheduler(orchestrator, timedelta(hours=6))  # type: ignore[arg-type]

        scheduler.start()
        await wait_for_runs(orchestrator, 1)
        await asyncio.wait_for(scheduler.stop(), timeout=1)

        assert orchestrator.runs == 1

    @pytest.mark.asyncio
    async def test_stop_cancels_in_flight_run(self) -> None:
        orchestrator = StubOrchestrator(block=True)
        scheduler = SyncScheduler(orchestrator, timedelta(hours=6))  # type: ignore[arg-type]

        scheduler.start()
        await asyncio.wait_for(orchestrator.started.wait(), timeout=1)
        await asyncio.wait_for(scheduler.stop(), timeout=1)

        assert orchestrator.cancelled
        assert scheduler.runs_completed == 0

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self) -> None:
        orchestrator = StubOrchestrator()
        scheduler = SyncScheduler(orchestrator, timedelta(hours=6))  # type: ignore[arg-type]

        first = scheduler.start()
        second = scheduler.start()
        await scheduler.stop()

        assert first is second

    @pytest.mark.asyncio
    async def test_trigger_runs_once(self) -> None:
        orchestrator = StubOrchestrator()
        scheduler = SyncScheduler(orchestrator)  # type: ignore[arg-type]

        report = await scheduler.trigger()

        assert orchestrator.runs == 1
        assert scheduler.last_report is report

    def test_interval_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            SyncScheduler(StubOrchestrator(), timedelta(0))  # type: ignore[arg-type]
