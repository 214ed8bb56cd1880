"""Membership model — a time-bounded grant linking a user to a plan."""

from datetime import datetime
from enum import Enum

from sqlalchemy import BigInteger, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from membership_access.database import Base, TimestampMixin, UUIDPrimaryKeyMixin


class MembershipStatus(str, Enum):
    """Stored lifecycle state of a membership."""

    ACTIVE = "active"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class Membership(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A grant created when a membership product is purchased.

    ``status`` is maintained by lifecycle transitions and the expiration
    sweep, so it can lag behind ``expires_at``. Access checks compare
    ``expires_at`` against the clock themselves.
    """

    __tablename__ = "memberships"

    # Platform identifiers (users, products and orders live in the storefront)
    subject_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    plan_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    order_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)

    # Copied from the plan at grant time
    tier: Mapped[str] = mapped_column(String(50), nullable=False, default="standard")
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=MembershipStatus.ACTIVE.value
    )

    started_at: Mapped[datetime] = mapped_column(nullable=False)
    expires_at: Mapped[datetime] = mapped_column(nullable=False)

    __table_args__ = (
        Index("ix_memberships_subject_status", "subject_id", "status"),
        Index("ix_memberships_expires_status", "expires_at", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<Membership(id={self.id}, subject_id={self.subject_id}, plan_id={self.plan_id}, "
            f"status={self.status}, expires_at={self.expires_at})>"
        )
