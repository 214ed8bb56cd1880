"""Order webhook parsing — verify and decode storefront order events."""

import base64
import hashlib
import hmac
import logging

from pydantic import ValidationError

from membership_access.config import settings
from membership_access.schemas.orders import OrderEvent

logger = logging.getLogger(__name__)


class WebhookSignatureError(Exception):
    """The payload's HMAC signature did not match the shared secret."""


def sign_payload(payload: bytes, secret: str) -> str:
    """Base64 HMAC-SHA256 of the raw body, as the storefront sends it."""
    digest = hmac.new(secret.encode(), payload, hashlib.sha256).digest()
    return base64.b64encode(digest).decode()


def verify_signature(payload: bytes, signature: str | None, secret: str) -> None:
    if not signature:
        raise WebhookSignatureError("Missing signature header")
    if not hmac.compare_digest(sign_payload(payload, secret), signature):
        raise WebhookSignatureError("Signature mismatch")


def construct_order_event(
    payload: bytes, signature: str | None, secret: str | None = None
) -> OrderEvent:
    """Verify (when a secret is configured) and parse a webhook body.

    Raises:
        WebhookSignatureError: If verification is enabled and fails.
        ValueError: If the body is not a valid order event.
    """
    secret = settings.order_webhook_secret if secret is None else secret
    if secret:
        verify_signature(payload, signature, secret)
    else:
        logger.debug("Order webhook secret not configured; skipping signature check")

    try:
        return OrderEvent.model_validate_json(payload)
    except ValidationError as e:
        raise ValueError(f"Invalid order event payload: {e.error_count()} errors") from e
