"""Member-facing access API — entitlement checks for the current caller."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from membership_access.api.deps import get_current_identity, get_current_subject_id, get_db
from membership_access.auth.dependencies import Identity
from membership_access.models.membership import Membership
from membership_access.schemas.membership import AccessCheckResponse, MembershipResponse
from membership_access.services.entitlements import (
    all_current_memberships,
    current_membership,
    has_access,
)

router = APIRouter(prefix="/api/v1/access", tags=["access"])


@router.get("/check", response_model=AccessCheckResponse)
async def check_access(
    plan_id: int | None = Query(None, description="Restrict the check to one plan"),
    content_id: int | None = Query(None, description="Content item being requested"),
    db: AsyncSession = Depends(get_db),
    subject_id: int | None = Depends(get_current_subject_id),
) -> dict:
    """Whether the caller may see gated content. Anonymous callers never do."""
    allowed = await has_access(db, subject_id, plan_id, content_id=content_id)
    return {"has_access": allowed, "plan_id": plan_id}


@router.get("/me/membership", response_model=MembershipResponse | None)
async def my_membership(
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
) -> Membership | None:
    """The caller's newest current membership, or ``null``."""
    return await current_membership(db, identity.subject_id)


@router.get("/me/memberships", response_model=list[MembershipResponse])
async def my_memberships(
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
) -> list[Membership]:
    return await all_current_memberships(db, identity.subject_id)
