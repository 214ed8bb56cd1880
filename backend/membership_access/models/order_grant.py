"""Order grant marker — records that an order's memberships were issued."""

from datetime import datetime

from sqlalchemy import BigInteger, Integer
from sqlalchemy.orm import Mapped, mapped_column

from membership_access.database import Base, utc_now


class OrderGrant(Base):
    """One row per storefront order whose membership grants were processed.

    The primary key on ``order_id`` is what stops two completion events for
    the same order from granting twice: the second insert fails.
    """

    __tablename__ = "order_grants"

    order_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    subject_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    memberships_granted: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    processed_at: Mapped[datetime] = mapped_column(server_default=utc_now())

    def __repr__(self) -> str:
        return f"<OrderGrant(order_id={self.order_id}, granted={self.memberships_granted})>"
