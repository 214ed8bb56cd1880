"""Lifecycle manager — revoke / expire / extend / reactivate transitions.

Each transition commits before its event is emitted, so listeners only ever
observe durable state. Not-found memberships return ``None``.
"""

import logging
import uuid
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from membership_access.access.plans import DurationUnit, calculate_expiration, normalize_duration
from membership_access.config import settings
from membership_access.events import EventPayload, MembershipEvent, emit
from membership_access.models.membership import Membership, MembershipStatus
from membership_access.services.membership_store import (
    delete_membership,
    get_membership,
    update_membership,
)
from membership_access.timeutils import utcnow

logger = logging.getLogger(__name__)


async def _emit(event: MembershipEvent, membership: Membership) -> None:
    await emit(
        EventPayload(
            event=event,
            membership_id=membership.id,
            subject_id=membership.subject_id,
            plan_id=membership.plan_id,
            order_id=membership.order_id,
        )
    )


async def revoke(db: AsyncSession, membership_id: uuid.UUID) -> Membership | None:
    """Cancel a membership.

    Active and expired memberships become ``cancelled``. A membership that is
    already cancelled is returned unchanged and no event is emitted.
    """
    membership = await get_membership(db, membership_id)
    if membership is None:
        logger.warning("Cannot revoke membership %s: not found", membership_id)
        return None

    if membership.status == MembershipStatus.CANCELLED.value:
        logger.info("Membership %s already cancelled", membership_id)
        return membership

    membership = await update_membership(db, membership_id, status=MembershipStatus.CANCELLED)
    await db.commit()
    logger.info("Membership %s for user %s revoked", membership.id, membership.subject_id)

    await _emit(MembershipEvent.REVOKED, membership)
    return membership


async def expire(db: AsyncSession, membership_id: uuid.UUID) -> Membership | None:
    """Mark a membership ``expired`` from any state.

    Shared by the admin action and the expiration sweep.
    """
    membership = await update_membership(db, membership_id, status=MembershipStatus.EXPIRED)
    if membership is None:
        logger.warning("Cannot expire membership %s: not found", membership_id)
        return None

    await db.commit()
    logger.info("Membership %s for user %s expired", membership.id, membership.subject_id)

    await _emit(MembershipEvent.EXPIRED, membership)
    return membership


async def extend(
    db: AsyncSession,
    membership_id: uuid.UUID,
    duration: int,
    unit: DurationUnit | str = DurationUnit.DAYS,
    *,
    now: datetime | None = None,
) -> Membership | None:
    """Push ``expires_at`` out by ``duration`` units and force ``active``.

    Unexpired time stacks: the new expiry is measured from the current one.
    A lapsed membership is extended from ``now`` instead.
    """
    unit = DurationUnit(unit)
    duration = normalize_duration(duration)
    now = now or utcnow()

    membership = await get_membership(db, membership_id)
    if membership is None:
        logger.warning("Cannot extend membership %s: not found", membership_id)
        return None

    base = now if membership.expires_at < now else membership.expires_at
    new_expiration = calculate_expiration(base, duration, unit)

    membership = await update_membership(
        db,
        membership_id,
        expires_at=new_expiration,
        status=MembershipStatus.ACTIVE,
    )
    await db.commit()
    logger.info(
        "Membership %s extended by %d %s until %s",
        membership.id,
        duration,
        unit.value,
        new_expiration,
    )

    await _emit(MembershipEvent.EXTENDED, membership)
    return membership


async def reactivate(
    db: AsyncSession,
    membership_id: uuid.UUID,
    *,
    now: datetime | None = None,
    grace_days: int | None = None,
) -> Membership | None:
    """Return a membership to ``active`` for a fixed grace window from now.

    The window is ``settings.reactivation_grace_days`` (30 by default), not
    the plan's own duration.
    """
    now = now or utcnow()
    days = grace_days if grace_days is not None else settings.reactivation_grace_days
    days = normalize_duration(days)

    membership = await get_membership(db, membership_id)
    if membership is None:
        logger.warning("Cannot reactivate membership %s: not found", membership_id)
        return None

    fields = {
        "status": MembershipStatus.ACTIVE,
        "expires_at": now + timedelta(days=days),
    }
    if membership.started_at > now:
        fields["started_at"] = now

    membership = await update_membership(db, membership_id, **fields)
    await db.commit()
    logger.info(
        "Membership %s reactivated for %d days until %s", membership.id, days, membership.expires_at
    )

    await _emit(MembershipEvent.REACTIVATED, membership)
    return membership


async def delete(db: AsyncSession, membership_id: uuid.UUID) -> bool:
    """Administrative hard delete."""
    deleted = await delete_membership(db, membership_id)
    if not deleted:
        logger.warning("Cannot delete membership %s: not found", membership_id)
        return False

    await db.commit()
    logger.info("Membership %s deleted", membership_id)
    return True
