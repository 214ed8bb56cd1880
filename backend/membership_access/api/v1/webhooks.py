"""Order webhook endpoint — receives storefront order events and grants memberships."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from membership_access.access.webhooks import WebhookSignatureError, construct_order_event
from membership_access.api.deps import get_db
from membership_access.schemas.orders import OrderWebhookResponse
from membership_access.services.grant_engine import process_order_event

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/webhooks", tags=["webhooks"])


@router.post("/orders", response_model=OrderWebhookResponse)
async def order_webhook(request: Request, db: AsyncSession = Depends(get_db)) -> dict:
    """Receive an order status change and grant any memberships it carries."""
    # Raw bytes are required for signature verification
    payload = await request.body()
    signature = request.headers.get("x-order-signature")

    try:
        event = construct_order_event(payload, signature)
    except WebhookSignatureError as e:
        logger.warning("Order webhook signature verification failed")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid signature",
        ) from e
    except ValueError as e:
        logger.warning("Invalid order webhook payload")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid payload",
        ) from e

    if not event.grants_access:
        logger.debug("Order %s status %r does not grant access", event.order_id, event.status)
        return {"status": "ignored"}

    logger.info("Processing order event: order=%s status=%s", event.order_id, event.status)
    result = await process_order_event(db, event)
    return {
        "status": "processed",
        "outcome": result.outcome.value,
        "membership_ids": [str(membership_id) for membership_id in result.membership_ids],
    }
