# barbershop/notifications.py
"""Outgoing customer/admin notifications.

The engine only decides *that* something must be told to someone; rendering
and SMS delivery belong to whatever ``Notifier`` is plugged in. Delivery is
fire-and-forget: a failing notifier never undoes the state change that
triggered it.
"""

import logging
from enum import Enum
from typing import Any, Dict, Protocol

logger = logging.getLogger(__name__)


class NotifyEvent(str, Enum):
    appointment_created = "appointment_created"
    appointment_created_admin = "appointment_created_admin"
    appointment_approved = "appointment_approved"
    appointment_cancelled_pending = "appointment_cancelled_pending"
    appointment_cancelled_approved = "appointment_cancelled_approved"
    customer_cancelled = "customer_cancelled"
    customer_cancelled_admin = "customer_cancelled_admin"
    admin_appointment_created = "admin_appointment_created"
    override_cancellations_admin = "override_cancellations_admin"
    subscription_created = "subscription_created"
    subscription_cancelled = "subscription_cancelled"
    waitlist_slot_available = "waitlist_slot_available"


class Notifier(Protocol):
    def notify(self, event: NotifyEvent, recipient_phone: str, template_data: Dict[str, Any]) -> bool:
        ...


class LoggingNotifier:
    """Default sink: writes the event to the log instead of sending it."""

    def notify(self, event: NotifyEvent, recipient_phone: str, template_data: Dict[str, Any]) -> bool:
        logger.info("notify event=%s to=%s data=%s", event.value, recipient_phone, template_data)
        return True


def dispatch(notifier: Notifier, event: NotifyEvent, recipient_phone: str, template_data: Dict[str, Any]) -> bool:
    if not recipient_phone:
        logger.debug("Skipping %s: no recipient", event.value)
        return False
    try:
        delivered = notifier.notify(event, recipient_phone, template_data)
    except Exception:
        logger.exception("Notification %s to %s failed", event.value, recipient_phone)
        return False
    if not delivered:
        logger.warning("Notification %s to %s was not delivered", event.value, recipient_phone)
    return bool(delivered)
