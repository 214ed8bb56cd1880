"""In-process scheduler for the expiration sweep.

Runs the sweep on a fixed interval inside the API process (started from the
FastAPI lifespan) and honours the sweeper's follow-up requests when a batch
came back full. At most one follow-up is pending at a time.
"""

import asyncio
import logging
import math

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from membership_access.config import settings
from membership_access.services.expiration_sweeper import SweepResult, run_expiration_sweep

logger = logging.getLogger(__name__)


class ExpirationScheduler:
    """Recurring expiration sweep with one-off follow-up runs."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        interval_seconds: float | None = None,
        initial_delay: float = 0.0,
    ) -> None:
        self._session_factory = session_factory
        self._interval = max(1.0, float(interval_seconds or settings.sweep_interval_seconds))
        self._initial_delay = max(0.0, initial_delay)
        self._task: asyncio.Task | None = None
        self._stop = asyncio.Event()
        self._wake = asyncio.Event()
        self._followup_at: float | None = None
        self.last_result: SweepResult | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def followup_pending(self) -> bool:
        return self._followup_at is not None

    def schedule_followup(self, delay_seconds: float) -> bool:
        """Request an extra sweep ``delay_seconds`` from now.

        Returns False when an earlier follow-up is already pending.
        """
        target = asyncio.get_running_loop().time() + max(0.0, delay_seconds)
        if self._followup_at is not None and self._followup_at <= target:
            return False
        self._followup_at = target
        self._wake.set()
        logger.info("Expiration follow-up sweep scheduled in %.0fs", delay_seconds)
        return True

    async def run_once(self) -> SweepResult:
        """Run a single sweep in its own session."""
        async with self._session_factory() as db:
            result = await run_expiration_sweep(db, scheduler=self)
        self.last_result = result
        return result

    async def _loop(self) -> None:
        loop = asyncio.get_running_loop()
        next_run = loop.time() + self._initial_delay

        while not self._stop.is_set():
            due = min(next_run, self._followup_at if self._followup_at is not None else math.inf)
            timeout = max(0.0, due - loop.time())
            try:
                await asyncio.wait_for(self._wake.wait(), timeout=timeout)
            except asyncio.TimeoutError:
                pass
            self._wake.clear()

            if self._stop.is_set():
                break

            current = loop.time()
            if self._followup_at is not None and current >= self._followup_at:
                self._followup_at = None
            elif current >= next_run:
                next_run = current + self._interval
            else:
                # Woken early by a new follow-up request
                continue

            try:
                await self.run_once()
            except Exception:
                # Logged here; the schedule keeps going
                logger.exception("Expiration sweep failed")

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._task = asyncio.create_task(self._loop(), name="expiration-sweep")
        logger.info(
            "Expiration scheduler started (interval %.0fs, initial delay %.0fs)",
            self._interval,
            self._initial_delay,
        )

    async def stop(self) -> None:
        if self._task is None:
            return
        self._stop.set()
        self._wake.set()
        await self._task
        self._task = None
        logger.info("Expiration scheduler stopped")
