"""Checkout field service — custom checkout answers stored per order."""

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from membership_access.errors import PersistenceError
from membership_access.models.checkout_field import CheckoutField

logger = logging.getLogger(__name__)


async def save_checkout_fields(db: AsyncSession, order_id: int, fields: dict[str, str]) -> int:
    """Store non-empty checkout answers for an order. Returns how many were saved."""
    rows = [
        CheckoutField(order_id=order_id, field_key=key, field_value=str(value))
        for key, value in fields.items()
        if value not in (None, "")
    ]
    if not rows:
        return 0

    try:
        db.add_all(rows)
        await db.flush()
    except SQLAlchemyError as e:
        raise PersistenceError(f"Failed to save checkout fields for order {order_id}") from e

    logger.info("Saved %d checkout fields for order %s", len(rows), order_id)
    return len(rows)


async def get_checkout_fields(db: AsyncSession, order_id: int) -> dict[str, str]:
    """Checkout answers for an order as ``{field_key: field_value}``."""
    result = await db.execute(
        select(CheckoutField.field_key, CheckoutField.field_value)
        .where(CheckoutField.order_id == order_id)
        .order_by(CheckoutField.id.asc())
    )
    return {key: value for key, value in result.all()}
