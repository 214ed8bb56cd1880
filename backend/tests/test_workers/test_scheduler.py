"""Tests for the in-process expiration scheduler."""

import asyncio
from datetime import datetime
from unittest.mock import AsyncMock

from membership_access.services.expiration_sweeper import SweepResult
from membership_access.workers.scheduler import ExpirationScheduler


async def _wait_for(predicate, timeout: float = 2.0) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


class TestScheduleFollowup:
    """Only one follow-up is pending at a time; an earlier one wins."""

    async def test_first_request_accepted(self, session_factory):
        scheduler = ExpirationScheduler(session_factory, interval_seconds=3600)
        assert scheduler.schedule_followup(60) is True
        assert scheduler.followup_pending is True

    async def test_later_request_rejected(self, session_factory):
        scheduler = ExpirationScheduler(session_factory, interval_seconds=3600)
        scheduler.schedule_followup(60)
        assert scheduler.schedule_followup(120) is False

    async def test_sooner_request_replaces_pending(self, session_factory):
        scheduler = ExpirationScheduler(session_factory, interval_seconds=3600)
        scheduler.schedule_followup(60)
        assert scheduler.schedule_followup(5) is True


class TestRunOnce:
    async def test_sweeps_in_own_session(self, session_factory, make_membership, recording_sender):
        await make_membership(expires_at=datetime(2024, 1, 31))
        scheduler = ExpirationScheduler(session_factory, interval_seconds=3600)

        result = await scheduler.run_once()

        assert result.processed == 1
        assert scheduler.last_result is result
        assert scheduler.followup_pending is False


class TestLoop:
    async def test_runs_immediately_then_stops(self, session_factory):
        scheduler = ExpirationScheduler(session_factory, interval_seconds=3600, initial_delay=0)
        scheduler.run_once = AsyncMock(return_value=SweepResult())

        scheduler.start()
        assert scheduler.running
        await _wait_for(lambda: scheduler.run_once.await_count == 1)
        await scheduler.stop()

        assert not scheduler.running
        assert scheduler.run_once.await_count == 1

    async def test_followup_wakes_loop(self, session_factory):
        scheduler = ExpirationScheduler(session_factory, interval_seconds=3600, initial_delay=3600)
        scheduler.run_once = AsyncMock(return_value=SweepResult())

        scheduler.start()
        await asyncio.sleep(0)
        assert scheduler.run_once.await_count == 0

        scheduler.schedule_followup(0)
        await _wait_for(lambda: scheduler.run_once.await_count == 1)
        assert scheduler.followup_pending is False
        await scheduler.stop()

    async def test_failed_sweep_keeps_schedule(self, session_factory):
        scheduler = ExpirationScheduler(session_factory, interval_seconds=3600, initial_delay=0)
        scheduler.run_once = AsyncMock(side_effect=RuntimeError("db unavailable"))

        scheduler.start()
        await _wait_for(lambda: scheduler.run_once.await_count == 1)
        assert scheduler.running

        scheduler.schedule_followup(0)
        await _wait_for(lambda: scheduler.run_once.await_count == 2)
        await scheduler.stop()

    async def test_stop_without_start(self, session_factory):
        scheduler = ExpirationScheduler(session_factory)
        await scheduler.stop()
        assert not scheduler.running
