"""Content gating dependencies — restrict routes to current members."""

import logging

from fastapi import Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from membership_access.auth.dependencies import get_current_subject_id
from membership_access.config import settings
from membership_access.database import get_db
from membership_access.services.entitlements import has_access

logger = logging.getLogger(__name__)

RESTRICTED_MESSAGE = "This content is for members only. Please purchase a membership to access."


def require_membership(plan_id: int | None = None, content_id: int | None = None):
    """Build a dependency that raises 403 unless the caller has access.

    Usage::

        @router.get("/premium", dependencies=[Depends(require_membership(plan_id=42))])
        async def premium(): ...
    """

    async def _check(
        db: AsyncSession = Depends(get_db),
        subject_id: int | None = Depends(get_current_subject_id),
    ) -> int:
        if await has_access(db, subject_id, plan_id, content_id=content_id):
            return subject_id

        logger.debug("Access denied for user %s (plan %s)", subject_id, plan_id)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "message": RESTRICTED_MESSAGE,
                "plan_id": plan_id,
                "logged_in": subject_id is not None,
                "shop_url": settings.shop_url,
            },
        )

    return _check
