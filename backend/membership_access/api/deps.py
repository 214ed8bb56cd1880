"""Shared API dependencies — single import point for all routers.

Re-exports database session, identity and content-gating dependencies so that
router modules can import everything they need from one place::

    from membership_access.api.deps import get_db, require_admin
"""

from membership_access.access.dependencies import require_membership
from membership_access.auth.dependencies import (
    get_current_identity,
    get_current_subject_id,
    get_optional_identity,
    require_admin,
)
from membership_access.database import get_db

__all__ = [
    "get_db",
    "get_optional_identity",
    "get_current_identity",
    "get_current_subject_id",
    "require_admin",
    "require_membership",
]
