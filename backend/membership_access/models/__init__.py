"""SQLAlchemy models for the membership service.

All models are imported here so that Alembic's autogenerate can discover
them via Base.metadata. If you add a new model, import it in this file.
"""

from membership_access.models.checkout_field import CheckoutField
from membership_access.models.membership import Membership, MembershipStatus
from membership_access.models.order_grant import OrderGrant

__all__ = [
    "CheckoutField",
    "Membership",
    "MembershipStatus",
    "OrderGrant",
]
