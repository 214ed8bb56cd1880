"""Pydantic v2 request/response schemas for membership endpoints."""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from membership_access.access.plans import DurationUnit
from membership_access.models.membership import MembershipStatus

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class ExtendRequest(BaseModel):
    """Extend a membership by a duration (non-positive values count as 1)."""

    duration: int = Field(default=30, le=1000)
    unit: DurationUnit = DurationUnit.DAYS


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class MembershipResponse(BaseModel):
    """A membership as shown to admins and members."""

    id: uuid.UUID
    subject_id: int
    plan_id: int
    order_id: int
    tier: str
    status: MembershipStatus
    started_at: datetime
    expires_at: datetime
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MembershipListResponse(BaseModel):
    """Paginated list of memberships."""

    items: list[MembershipResponse]
    total: int
    limit: int
    offset: int


class AccessCheckResponse(BaseModel):
    has_access: bool
    plan_id: int | None = None


class SweepResponse(BaseModel):
    """Result of a manually triggered expiration sweep."""

    found: int
    processed: int
    failures: int = 0
    notification_failures: int
    followup_scheduled: bool
    details: list[str] = Field(default_factory=list)


class CheckoutFieldsResponse(BaseModel):
    order_id: int
    fields: dict[str, str]
