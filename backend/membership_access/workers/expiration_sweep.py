"""
Cron entry point for the membership expiration sweep.

For deployments that run the sweep from an external scheduler (cron,
Kubernetes CronJob) instead of the in-process ExpirationScheduler.

FLOW:
1. Expire one batch of lapsed-but-active memberships
2. If the batch was full, wait the follow-up delay and run another batch
3. Stop after --max-batches so a single invocation stays bounded

Usage:
    python -m membership_access.workers.expiration_sweep [--max-batches N]
"""

import argparse
import asyncio
import logging
import sys

from membership_access.config import settings
from membership_access.database import async_session_factory, engine
from membership_access.services.expiration_sweeper import SweepResult, run_expiration_sweep

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


class _InlineFollowup:
    """Records follow-up requests so the CLI loop can run them itself."""

    def __init__(self) -> None:
        self.delay: float | None = None

    def schedule_followup(self, delay_seconds: float) -> bool:
        self.delay = delay_seconds
        return True


async def sweep_until_drained(
    session_factory=async_session_factory, *, max_batches: int = 10, sleep=asyncio.sleep
) -> list[SweepResult]:
    """Run sweep batches back to back while each one comes back full."""
    results: list[SweepResult] = []
    for batch in range(max(1, max_batches)):
        followup = _InlineFollowup()
        async with session_factory() as db:
            result = await run_expiration_sweep(db, scheduler=followup)
        results.append(result)
        logger.info("Sweep batch %d finished: %s", batch + 1, result.to_dict())

        if followup.delay is None:
            break
        if batch + 1 < max_batches:
            await sleep(followup.delay)
    else:
        logger.warning("Stopped after %d batches; expired memberships may remain", max_batches)
    return results


async def _main(max_batches: int) -> int:
    try:
        results = await sweep_until_drained(max_batches=max_batches)
    finally:
        await engine.dispose()
    return sum(r.processed for r in results)


def main(argv: list[str] | None = None) -> None:
    """Entry point for running the sweep from the command line."""
    parser = argparse.ArgumentParser(description="Expire lapsed memberships.")
    parser.add_argument("--max-batches", type=int, default=10)
    args = parser.parse_args(argv)

    try:
        processed = asyncio.run(_main(args.max_batches))
        logger.info(
            "Expiration sweep finished: %d memberships expired (batch size %d)",
            processed,
            settings.sweep_batch_size,
        )
        sys.exit(0)
    except Exception:
        logger.exception("Expiration sweep failed")
        sys.exit(1)


if __name__ == "__main__":
    main()
