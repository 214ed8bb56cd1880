"""Expiration sweeper — converges ``status`` for memberships past their expiry.

Each run handles at most one batch. A full batch means more may be waiting,
so the sweeper asks the scheduler for a near-term follow-up run instead of
scanning without bound.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from membership_access.config import settings
from membership_access.errors import PersistenceError
from membership_access.models.membership import Membership
from membership_access.notifications import NotificationSender, get_notification_sender
from membership_access.services import lifecycle
from membership_access.services.membership_store import find_expired_active

logger = logging.getLogger(__name__)


class FollowupScheduler(Protocol):
    def schedule_followup(self, delay_seconds: float) -> bool: ...


@dataclass
class SweepResult:
    """Track sweep run statistics."""

    found: int = 0
    processed: int = 0
    failures: int = 0
    notification_failures: int = 0
    followup_scheduled: bool = False
    details: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "found": self.found,
            "processed": self.processed,
            "failures": self.failures,
            "notification_failures": self.notification_failures,
            "followup_scheduled": self.followup_scheduled,
            "details": list(self.details),
        }


async def _notify_expired(sender: NotificationSender, membership: Membership) -> None:
    await sender.send(
        membership.subject_id,
        "membership_expired",
        {
            "plan_name": f"#{membership.plan_id} ({membership.tier})",
            "expires_at": membership.expires_at.isoformat(sep=" ", timespec="minutes"),
        },
    )


async def run_expiration_sweep(
    db: AsyncSession,
    *,
    batch_size: int | None = None,
    now: datetime | None = None,
    notifier: NotificationSender | None = None,
    scheduler: FollowupScheduler | None = None,
) -> SweepResult:
    """Expire one batch of lapsed-but-active memberships.

    Args:
        db: Database session.
        batch_size: Maximum memberships per run. Defaults to ``settings.sweep_batch_size``.
        now: Evaluation time (naive UTC). Defaults to the current time.
        notifier: Sender for expiration notices. Defaults to the process-wide sender.
        scheduler: Receives the follow-up request when the batch was full.

    Returns:
        Counts for the run. A run that finds nothing is a successful no-op.
    """
    limit = batch_size or settings.sweep_batch_size
    sender = notifier or get_notification_sender()
    result = SweepResult()

    expired = await find_expired_active(db, limit=limit, now=now)
    result.found = len(expired)

    if not expired:
        logger.info("No expired memberships found")
        return result

    # Plain values: a rollback below expires every loaded row
    pending = [(candidate.id, candidate.subject_id) for candidate in expired]

    for membership_id, subject_id in pending:
        try:
            membership = await lifecycle.expire(db, membership_id)
        except (PersistenceError, SQLAlchemyError):
            await db.rollback()
            result.failures += 1
            logger.exception(
                "Failed to expire membership %s (user %s)", membership_id, subject_id
            )
            continue
        if membership is None:
            # Deleted between the scan and the transition
            continue

        result.processed += 1
        result.details.append(f"Membership {membership_id} (user {subject_id}) expired.")

        if not settings.expiration_notifications_enabled:
            continue
        try:
            await _notify_expired(sender, membership)
        except Exception:
            result.notification_failures += 1
            logger.exception(
                "Failed to send expiration notice for membership %s (user %s)",
                membership_id,
                subject_id,
            )

    logger.info(
        "Processed %d of %d expired memberships (%d failures, %d notification failures)",
        result.processed,
        result.found,
        result.failures,
        result.notification_failures,
    )

    if result.found >= limit:
        if scheduler is not None:
            result.followup_scheduled = scheduler.schedule_followup(
                settings.sweep_followup_delay_seconds
            )
        else:
            logger.warning("Full batch of %d expired memberships but no scheduler for follow-up", limit)

    return result


async def run_manual_check(db: AsyncSession, *, now: datetime | None = None) -> SweepResult:
    """Admin-triggered single sweep; never schedules follow-ups."""
    return await run_expiration_sweep(db, now=now)
