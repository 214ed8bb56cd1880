"""Member notifications — templated messages sent on lifecycle changes.

Delivery is best effort. Callers catch and log send errors; a failed
notification never rolls back a membership transition.
"""

import logging
from typing import Protocol

from membership_access.config import settings

logger = logging.getLogger(__name__)

TEMPLATES = {
    "membership_expired": {
        "subject": "Your membership has expired - {site_name}",
        "body": (
            "Hi {display_name},\n\n"
            "Your {plan_name} membership has expired.\n\n"
            "To continue enjoying member benefits, please renew your membership:\n"
            "{shop_url}\n\n"
            "Thank you for being a valued member!\n\n"
            "Best regards,\n{site_name}"
        ),
    },
}

VALID_TEMPLATES = set(TEMPLATES.keys())


class NotificationError(Exception):
    """Raised by a sender when a message could not be delivered."""


class NotificationSender(Protocol):
    async def send(self, subject_id: int, template: str, context: dict[str, str]) -> None: ...


def render(template: str, context: dict[str, str]) -> tuple[str, str]:
    """Render ``(subject, body)`` for a template.

    Missing variables fall back to defaults from settings.
    """
    if template not in VALID_TEMPLATES:
        raise NotificationError(
            f"Invalid template '{template}'. Must be one of: {', '.join(sorted(VALID_TEMPLATES))}"
        )

    template_vars = {
        "display_name": "member",
        "plan_name": "Membership",
        "expires_at": "N/A",
        "site_name": settings.site_name,
        "shop_url": settings.shop_url,
        **context,
    }
    tmpl = TEMPLATES[template]
    return tmpl["subject"].format(**template_vars), tmpl["body"].format(**template_vars)


class LoggingNotificationSender:
    """Renders the message and logs it instead of delivering it.

    The storefront owns user email addresses; deployments wire a sender
    that hands the rendered message to the storefront's mailer.
    """

    async def send(self, subject_id: int, template: str, context: dict[str, str]) -> None:
        subject, body = render(template, context)
        logger.info("Notification sent [%s] to user %s: %s", template, subject_id, subject)
        logger.debug("Notification body for user %s:\n%s", subject_id, body)


_default_sender: NotificationSender = LoggingNotificationSender()


def get_notification_sender() -> NotificationSender:
    return _default_sender


def set_notification_sender(sender: NotificationSender) -> None:
    """Replace the process-wide sender (e.g. with a storefront mailer)."""
    global _default_sender
    _default_sender = sender
