"""Entitlement resolver — answers "does this user currently have access?".

Stored ``status`` is only eventually consistent (the expiration sweep
converges it), so every check here also compares ``expires_at`` with the
clock at query time.
"""

import inspect
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from membership_access.models.membership import Membership, MembershipStatus
from membership_access.timeutils import utcnow

logger = logging.getLogger(__name__)

# (has_access, subject_id, plan_id, content_id) -> bool
AccessOverride = Callable[[bool, int, int | None, int | None], bool | Awaitable[bool]]

_access_overrides: list[AccessOverride] = []


def register_access_override(override: AccessOverride) -> None:
    """Layer a custom rule on top of the membership check.

    Overrides run in registration order; each receives the previous result.
    """
    if override not in _access_overrides:
        _access_overrides.append(override)


def unregister_access_override(override: AccessOverride) -> None:
    if override in _access_overrides:
        _access_overrides.remove(override)


def clear_access_overrides() -> None:
    _access_overrides.clear()


def _current_clause(now: datetime):
    return (
        Membership.status == MembershipStatus.ACTIVE.value,
        Membership.expires_at > now,
    )


async def _apply_overrides(
    has_access: bool, subject_id: int, plan_id: int | None, content_id: int | None
) -> bool:
    for override in list(_access_overrides):
        try:
            result = override(has_access, subject_id, plan_id, content_id)
            if inspect.isawaitable(result):
                result = await result
        except Exception:
            logger.exception(
                "Access override %r failed for user %s; denying access", override, subject_id
            )
            return False
        has_access = bool(result)
    return has_access


async def has_access(
    db: AsyncSession,
    subject_id: int | None,
    plan_id: int | None = None,
    *,
    content_id: int | None = None,
    now: datetime | None = None,
) -> bool:
    """Whether ``subject_id`` holds an active, unexpired membership.

    Args:
        db: Database session.
        subject_id: The user to check. Anonymous (``None``/``0``) never has access.
        plan_id: Restrict the check to one membership plan; ``None`` accepts any.
        content_id: The content being gated, passed through to overrides only.
        now: Evaluation time (naive UTC). Defaults to the current time.

    Returns:
        The membership result after all registered overrides have run.
    """
    if not subject_id:
        return False

    now = now or utcnow()
    stmt = (
        select(func.count())
        .select_from(Membership)
        .where(Membership.subject_id == subject_id, *_current_clause(now))
    )
    if plan_id is not None:
        stmt = stmt.where(Membership.plan_id == plan_id)

    result = await db.execute(stmt)
    granted = result.scalar_one() > 0

    return await _apply_overrides(granted, subject_id, plan_id, content_id)


async def all_current_memberships(
    db: AsyncSession, subject_id: int | None, now: datetime | None = None
) -> list[Membership]:
    """Active, unexpired memberships of a user, most recently created first."""
    if not subject_id:
        return []

    now = now or utcnow()
    result = await db.execute(
        select(Membership)
        .where(Membership.subject_id == subject_id, *_current_clause(now))
        .order_by(Membership.created_at.desc())
    )
    return list(result.scalars().all())


async def current_membership(
    db: AsyncSession, subject_id: int | None, now: datetime | None = None
) -> Membership | None:
    """The user's most recently created current membership, if any."""
    memberships = await all_current_memberships(db, subject_id, now=now)
    return memberships[0] if memberships else None
