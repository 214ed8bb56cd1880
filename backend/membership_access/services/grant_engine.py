"""Grant engine — turns a completed order into membership grants.

An order is processed at most once. The ``order_grants`` row is inserted in
the same transaction as the grants, and its primary key rejects a second
concurrent event for the same order. A gateway firing both a "processing"
and a "completed" transition therefore grants once.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from membership_access.access.plans import Plan
from membership_access.errors import PersistenceError
from membership_access.events import EventPayload, MembershipEvent, emit
from membership_access.models.membership import Membership, MembershipStatus
from membership_access.models.order_grant import OrderGrant
from membership_access.schemas.orders import OrderEvent
from membership_access.services.checkout_fields import save_checkout_fields
from membership_access.services.membership_store import create_membership
from membership_access.timeutils import utcnow

logger = logging.getLogger(__name__)


class GrantOutcome(str, Enum):
    GRANTED = "granted"
    DUPLICATE = "duplicate"
    GUEST = "guest"
    NO_MEMBERSHIP_ITEMS = "no_membership_items"
    IGNORED = "ignored"
    FAILED = "failed"


@dataclass
class GrantResult:
    """Per-order outcome of grant processing."""

    order_id: int
    outcome: GrantOutcome
    membership_ids: list[uuid.UUID] = field(default_factory=list)
    failed_products: list[int] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        """True unless every membership line item failed to grant."""
        return self.outcome != GrantOutcome.FAILED


async def is_order_processed(db: AsyncSession, order_id: int) -> bool:
    result = await db.execute(select(OrderGrant.order_id).where(OrderGrant.order_id == order_id))
    return result.scalar_one_or_none() is not None


async def _claim_order(db: AsyncSession, order_id: int, subject_id: int) -> OrderGrant | None:
    """Insert the order's marker row; ``None`` if another event already holds it."""
    claim = OrderGrant(order_id=order_id, subject_id=subject_id, memberships_granted=0)
    try:
        async with db.begin_nested():
            db.add(claim)
            await db.flush()
    except IntegrityError:
        logger.info("Order %s claimed by a concurrent event, skipping", order_id)
        return None
    return claim


async def grant_membership(
    db: AsyncSession,
    subject_id: int,
    plan: Plan,
    order_id: int,
    *,
    now: datetime | None = None,
) -> Membership:
    """Create one active membership for ``plan`` starting at ``now``."""
    now = now or utcnow()
    return await create_membership(
        db,
        subject_id=subject_id,
        plan_id=plan.plan_id,
        order_id=order_id,
        tier=plan.tier,
        status=MembershipStatus.ACTIVE,
        started_at=now,
        expires_at=plan.expiration_from(now),
    )


async def process_order_event(
    db: AsyncSession, event: OrderEvent, *, now: datetime | None = None
) -> GrantResult:
    """Grant memberships for every membership line item on a paid order.

    A line item that fails to persist is logged and skipped; its siblings
    are still granted. If nothing could be granted, the order's marker is
    released so a later event can retry.
    """
    if not event.grants_access:
        logger.debug("Order %s in status %r does not grant access", event.order_id, event.status)
        return GrantResult(order_id=event.order_id, outcome=GrantOutcome.IGNORED)

    if await is_order_processed(db, event.order_id):
        logger.info("Order %s already processed, skipping", event.order_id)
        return GrantResult(order_id=event.order_id, outcome=GrantOutcome.DUPLICATE)

    if event.subject_id is None:
        logger.info("Order %s is a guest checkout; no membership granted", event.order_id)
        return GrantResult(order_id=event.order_id, outcome=GrantOutcome.GUEST)

    items = event.membership_items
    if not items:
        return GrantResult(order_id=event.order_id, outcome=GrantOutcome.NO_MEMBERSHIP_ITEMS)

    claim = await _claim_order(db, event.order_id, event.subject_id)
    if claim is None:
        return GrantResult(order_id=event.order_id, outcome=GrantOutcome.DUPLICATE)

    now = now or utcnow()
    granted: list[tuple[Membership, Plan]] = []
    failed: list[int] = []

    for item in items:
        plan = item.to_plan()
        try:
            async with db.begin_nested():
                membership = await grant_membership(
                    db, event.subject_id, plan, event.order_id, now=now
                )
        except (PersistenceError, SQLAlchemyError, ValueError):
            logger.exception(
                "Failed to grant membership for product %s on order %s",
                item.product_ref,
                event.order_id,
            )
            failed.append(item.product_ref)
            continue
        granted.append((membership, plan))

    if not granted:
        await db.delete(claim)
        await db.commit()
        logger.warning("No memberships granted for order %s; it can be retried", event.order_id)
        return GrantResult(
            order_id=event.order_id, outcome=GrantOutcome.FAILED, failed_products=failed
        )

    claim.memberships_granted = len(granted)
    if event.checkout_fields:
        try:
            async with db.begin_nested():
                await save_checkout_fields(db, event.order_id, event.checkout_fields)
        except PersistenceError:
            logger.exception("Failed to save checkout fields for order %s", event.order_id)

    await db.commit()

    for membership, plan in granted:
        logger.info(
            "Membership %s granted for %r (order %s, user %s)",
            membership.id,
            plan.display_name,
            event.order_id,
            event.subject_id,
        )
        await emit(
            EventPayload(
                event=MembershipEvent.GRANTED,
                membership_id=membership.id,
                subject_id=membership.subject_id,
                plan_id=membership.plan_id,
                order_id=membership.order_id,
            )
        )

    return GrantResult(
        order_id=event.order_id,
        outcome=GrantOutcome.GRANTED,
        membership_ids=[membership.id for membership, _ in granted],
        failed_products=failed,
    )
