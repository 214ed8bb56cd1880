"""Pydantic v2 schemas for order events sent by the storefront."""

from pydantic import BaseModel, Field, field_validator

from membership_access.access.plans import DEFAULT_TIER, DurationUnit, Plan

# Order statuses that mean the purchase is paid for
GRANTING_STATUSES = frozenset({"processing", "completed"})


class LineItem(BaseModel):
    """One purchased product on an order."""

    product_ref: int
    name: str | None = None
    is_membership_plan: bool = False
    plan_duration: int = 1
    plan_duration_unit: DurationUnit = DurationUnit.DAYS
    plan_tier: str = DEFAULT_TIER

    @field_validator("plan_duration_unit", mode="before")
    @classmethod
    def _default_unit(cls, value):
        return value or DurationUnit.DAYS

    def to_plan(self) -> Plan:
        return Plan(
            plan_id=self.product_ref,
            tier=self.plan_tier,
            duration=self.plan_duration,
            duration_unit=self.plan_duration_unit,
            name=self.name,
        )


class OrderEvent(BaseModel):
    """An order status transition reported by the storefront."""

    order_id: int
    subject_id: int | None = None  # None for guest checkout
    status: str = "completed"
    line_items: list[LineItem] = Field(default_factory=list)
    checkout_fields: dict[str, str] = Field(default_factory=dict)

    @field_validator("subject_id", mode="before")
    @classmethod
    def _guest_as_none(cls, value):
        # Storefronts report guest checkouts as user id 0
        return value or None

    @property
    def grants_access(self) -> bool:
        return self.status in GRANTING_STATUSES

    @property
    def membership_items(self) -> list[LineItem]:
        return [item for item in self.line_items if item.is_membership_plan]


class OrderWebhookResponse(BaseModel):
    status: str
    outcome: str | None = None
    membership_ids: list[str] = Field(default_factory=list)
