"""Membership domain events — listeners notified after a transition commits.

Listeners are plain callables (sync or async) registered per event type::

    from membership_access.events import MembershipEvent, subscribe

    async def annotate_order(payload):
        ...

    subscribe(MembershipEvent.GRANTED, annotate_order)

``emit`` is only called once the transition is durable. A failing listener
is logged and skipped; it never undoes the transition or blocks the others.
"""

import inspect
import logging
import uuid
from collections import defaultdict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)


class MembershipEvent(str, Enum):
    GRANTED = "membership.granted"
    REVOKED = "membership.revoked"
    EXPIRED = "membership.expired"
    EXTENDED = "membership.extended"
    REACTIVATED = "membership.reactivated"


@dataclass(frozen=True)
class EventPayload:
    """What listeners receive. ``plan_id``/``order_id`` are set on grants."""

    event: MembershipEvent
    membership_id: uuid.UUID
    subject_id: int
    plan_id: int | None = None
    order_id: int | None = None


Listener = Callable[[EventPayload], Awaitable[None] | None]

_listeners: dict[MembershipEvent, list[Listener]] = defaultdict(list)


def subscribe(event: MembershipEvent, listener: Listener) -> None:
    """Register ``listener`` for ``event``. Registering twice is a no-op."""
    if listener not in _listeners[event]:
        _listeners[event].append(listener)


def unsubscribe(event: MembershipEvent, listener: Listener) -> None:
    if listener in _listeners[event]:
        _listeners[event].remove(listener)


def clear_listeners() -> None:
    _listeners.clear()


async def emit(payload: EventPayload) -> int:
    """Invoke every listener for ``payload.event`` in registration order.

    Returns the number of listeners that completed without raising.
    """
    delivered = 0
    for listener in list(_listeners.get(payload.event, ())):
        try:
            result = listener(payload)
            if inspect.isawaitable(result):
                await result
            delivered += 1
        except Exception:
            logger.exception(
                "Listener %r failed for %s (membership %s)",
                listener,
                payload.event.value,
                payload.membership_id,
            )
    return delivered
