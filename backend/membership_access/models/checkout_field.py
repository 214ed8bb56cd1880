"""Checkout field model — custom answers captured at membership checkout."""

from datetime import datetime

from sqlalchemy import BigInteger, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from membership_access.database import Base, utc_now


class CheckoutField(Base):
    """A single key/value captured on the checkout form for an order."""

    __tablename__ = "checkout_fields"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    field_key: Mapped[str] = mapped_column(String(100), nullable=False)
    field_value: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(server_default=utc_now())

    def __repr__(self) -> str:
        return f"<CheckoutField(order_id={self.order_id}, key={self.field_key!r})>"
