"""Admin membership API — listing plus thin wrappers over lifecycle transitions."""

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from membership_access.api.deps import get_db, require_admin
from membership_access.auth.dependencies import Identity
from membership_access.errors import PersistenceError
from membership_access.models.membership import Membership, MembershipStatus
from membership_access.schemas.membership import (
    CheckoutFieldsResponse,
    ExtendRequest,
    MembershipListResponse,
    MembershipResponse,
    SweepResponse,
)
from membership_access.services import lifecycle
from membership_access.services.checkout_fields import get_checkout_fields
from membership_access.services.expiration_sweeper import run_manual_check
from membership_access.services.membership_store import (
    MembershipFilters,
    count_memberships,
    get_membership,
    list_memberships,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/memberships", tags=["memberships"])


def _not_found(membership_id: uuid.UUID) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Membership {membership_id} not found",
    )


def _persistence_failure(action: str, e: PersistenceError) -> HTTPException:
    logger.error("Failed to %s membership: %s", action, e)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed to {action} membership.",
    )


@router.get("", response_model=MembershipListResponse, summary="List memberships")
async def list_all_memberships(
    status_filter: MembershipStatus | None = Query(None, alias="status"),
    plan_id: int | None = Query(None),
    subject_id: int | None = Query(None),
    limit: int = Query(20, ge=1, le=100, description="Pagination limit"),
    offset: int = Query(0, ge=0, description="Pagination offset"),
    order_by: str = Query("created_at"),
    order: str = Query("desc", pattern="^(asc|desc)$"),
    db: AsyncSession = Depends(get_db),
    _admin: Identity = Depends(require_admin),
) -> dict:
    """Return a filtered, paginated page of memberships with the total count."""
    filters = MembershipFilters(status=status_filter, plan_id=plan_id, subject_id=subject_id)
    items = await list_memberships(
        db, filters, limit=limit, offset=offset, order_by=order_by, order=order
    )
    total = await count_memberships(db, filters)
    return {"items": items, "total": total, "limit": limit, "offset": offset}


@router.post("/sweep", response_model=SweepResponse, summary="Run the expiration sweep now")
async def run_sweep(
    db: AsyncSession = Depends(get_db),
    _admin: Identity = Depends(require_admin),
) -> dict:
    result = await run_manual_check(db)
    return result.to_dict()


@router.get(
    "/orders/{order_id}/fields",
    response_model=CheckoutFieldsResponse,
    summary="Checkout fields captured for an order",
)
async def order_checkout_fields(
    order_id: int,
    db: AsyncSession = Depends(get_db),
    _admin: Identity = Depends(require_admin),
) -> dict:
    return {"order_id": order_id, "fields": await get_checkout_fields(db, order_id)}


@router.get("/{membership_id}", response_model=MembershipResponse, summary="Get a membership")
async def get_one_membership(
    membership_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _admin: Identity = Depends(require_admin),
) -> Membership:
    membership = await get_membership(db, membership_id)
    if membership is None:
        raise _not_found(membership_id)
    return membership


@router.post("/{membership_id}/revoke", response_model=MembershipResponse, summary="Revoke a membership")
async def revoke_membership(
    membership_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _admin: Identity = Depends(require_admin),
) -> Membership:
    try:
        membership = await lifecycle.revoke(db, membership_id)
    except PersistenceError as e:
        raise _persistence_failure("revoke", e) from e
    if membership is None:
        raise _not_found(membership_id)
    return membership


@router.post("/{membership_id}/expire", response_model=MembershipResponse, summary="Expire a membership")
async def expire_membership(
    membership_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _admin: Identity = Depends(require_admin),
) -> Membership:
    try:
        membership = await lifecycle.expire(db, membership_id)
    except PersistenceError as e:
        raise _persistence_failure("expire", e) from e
    if membership is None:
        raise _not_found(membership_id)
    return membership


@router.post("/{membership_id}/extend", response_model=MembershipResponse, summary="Extend a membership")
async def extend_membership(
    membership_id: uuid.UUID,
    body: ExtendRequest,
    db: AsyncSession = Depends(get_db),
    _admin: Identity = Depends(require_admin),
) -> Membership:
    try:
        membership = await lifecycle.extend(db, membership_id, body.duration, body.unit)
    except PersistenceError as e:
        raise _persistence_failure("extend", e) from e
    if membership is None:
        raise _not_found(membership_id)
    return membership


@router.post(
    "/{membership_id}/reactivate", response_model=MembershipResponse, summary="Reactivate a membership"
)
async def reactivate_membership(
    membership_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _admin: Identity = Depends(require_admin),
) -> Membership:
    try:
        membership = await lifecycle.reactivate(db, membership_id)
    except PersistenceError as e:
        raise _persistence_failure("reactivate", e) from e
    if membership is None:
        raise _not_found(membership_id)
    return membership


@router.delete("/{membership_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a membership")
async def delete_membership(
    membership_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _admin: Identity = Depends(require_admin),
) -> None:
    try:
        deleted = await lifecycle.delete(db, membership_id)
    except PersistenceError as e:
        raise _persistence_failure("delete", e) from e
    if not deleted:
        raise _not_found(membership_id)
