"""Membership store — persistence for membership records (no business rules).

Functions only flush; committing is left to the caller so several store
calls can share one transaction.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import asc, delete, desc, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from membership_access.database import utc_now
from membership_access.errors import PersistenceError
from membership_access.models.membership import Membership, MembershipStatus
from membership_access.timeutils import utcnow

logger = logging.getLogger(__name__)

SORTABLE_COLUMNS = {
    "created_at": Membership.created_at,
    "updated_at": Membership.updated_at,
    "started_at": Membership.started_at,
    "expires_at": Membership.expires_at,
    "status": Membership.status,
    "tier": Membership.tier,
    "subject_id": Membership.subject_id,
    "plan_id": Membership.plan_id,
    "order_id": Membership.order_id,
}

_MUTABLE_FIELDS = {
    "subject_id",
    "plan_id",
    "order_id",
    "tier",
    "status",
    "started_at",
    "expires_at",
}


@dataclass(frozen=True)
class MembershipFilters:
    """Optional equality filters for list/count queries."""

    status: MembershipStatus | str | None = None
    plan_id: int | None = None
    subject_id: int | None = None


def _status_value(status: MembershipStatus | str) -> str:
    return MembershipStatus(status).value


def _apply_filters(stmt, filters: MembershipFilters | None):
    if filters is None:
        return stmt
    if filters.status is not None:
        stmt = stmt.where(Membership.status == _status_value(filters.status))
    if filters.plan_id is not None:
        stmt = stmt.where(Membership.plan_id == filters.plan_id)
    if filters.subject_id is not None:
        stmt = stmt.where(Membership.subject_id == filters.subject_id)
    return stmt


async def create_membership(
    db: AsyncSession,
    *,
    subject_id: int,
    plan_id: int,
    order_id: int,
    started_at: datetime,
    expires_at: datetime,
    tier: str = "standard",
    status: MembershipStatus | str = MembershipStatus.ACTIVE,
) -> Membership:
    """Insert a membership row and return it with its assigned id."""
    if expires_at < started_at:
        raise ValueError("expires_at must not be before started_at")

    membership = Membership(
        subject_id=subject_id,
        plan_id=plan_id,
        order_id=order_id,
        tier=tier,
        status=_status_value(status),
        started_at=started_at,
        expires_at=expires_at,
    )

    try:
        db.add(membership)
        await db.flush()
        await db.refresh(membership)
    except SQLAlchemyError as e:
        raise PersistenceError(f"Failed to create membership for order {order_id}") from e
    return membership


async def get_membership(db: AsyncSession, membership_id: uuid.UUID) -> Membership | None:
    """Look up a membership by id."""
    result = await db.execute(select(Membership).where(Membership.id == membership_id))
    return result.scalar_one_or_none()


async def get_membership_by_order(db: AsyncSession, order_id: int) -> Membership | None:
    """Return the first membership granted by an order, if any."""
    result = await db.execute(
        select(Membership)
        .where(Membership.order_id == order_id)
        .order_by(Membership.created_at.asc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def list_memberships_by_subject(
    db: AsyncSession,
    subject_id: int,
    status: MembershipStatus | str | None = None,
) -> list[Membership]:
    """All memberships of a user, newest first, optionally by status."""
    stmt = select(Membership).where(Membership.subject_id == subject_id)
    if status is not None:
        stmt = stmt.where(Membership.status == _status_value(status))
    result = await db.execute(stmt.order_by(Membership.created_at.desc()))
    return list(result.scalars().all())


async def update_membership(
    db: AsyncSession, membership_id: uuid.UUID, **fields
) -> Membership | None:
    """Apply a partial update. ``updated_at`` is stamped by the database.

    Returns the refreshed membership, or ``None`` if it does not exist.
    """
    unknown = set(fields) - _MUTABLE_FIELDS
    if unknown:
        raise ValueError(f"Cannot update membership fields: {', '.join(sorted(unknown))}")

    membership = await get_membership(db, membership_id)
    if membership is None:
        return None

    started_at = fields.get("started_at", membership.started_at)
    expires_at = fields.get("expires_at", membership.expires_at)
    if expires_at < started_at:
        raise ValueError("expires_at must not be before started_at")

    for key, value in fields.items():
        if key == "status":
            value = _status_value(value)
        setattr(membership, key, value)

    # Always emit an UPDATE, even when no value changed
    membership.updated_at = utc_now()

    try:
        await db.flush()
        await db.refresh(membership)
    except SQLAlchemyError as e:
        raise PersistenceError(f"Failed to update membership {membership_id}") from e
    return membership


async def delete_membership(db: AsyncSession, membership_id: uuid.UUID) -> bool:
    """Hard-delete a membership. Returns False if nothing was deleted."""
    try:
        result = await db.execute(delete(Membership).where(Membership.id == membership_id))
        await db.flush()
    except SQLAlchemyError as e:
        raise PersistenceError(f"Failed to delete membership {membership_id}") from e
    return result.rowcount > 0


async def list_memberships(
    db: AsyncSession,
    filters: MembershipFilters | None = None,
    *,
    limit: int = 20,
    offset: int = 0,
    order_by: str = "created_at",
    order: str = "desc",
) -> list[Membership]:
    """Filtered, paginated, sorted listing for the admin table.

    Unknown sort columns fall back to ``created_at DESC``.
    """
    column = SORTABLE_COLUMNS.get(order_by)
    if column is None:
        column, order = Membership.created_at, "desc"
    direction = asc if order.lower() == "asc" else desc

    stmt = _apply_filters(select(Membership), filters)
    stmt = stmt.order_by(direction(column)).limit(max(limit, 0)).offset(max(offset, 0))
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def count_memberships(db: AsyncSession, filters: MembershipFilters | None = None) -> int:
    stmt = _apply_filters(select(func.count()).select_from(Membership), filters)
    result = await db.execute(stmt)
    return result.scalar_one()


async def find_expired_active(
    db: AsyncSession, limit: int = 100, now: datetime | None = None
) -> list[Membership]:
    """Active memberships whose expiry has passed, soonest expiry first."""
    now = now or utcnow()
    result = await db.execute(
        select(Membership)
        .where(
            Membership.status == MembershipStatus.ACTIVE.value,
            Membership.expires_at <= now,
        )
        .order_by(Membership.expires_at.asc())
        .limit(limit)
    )
    return list(result.scalars().all())
