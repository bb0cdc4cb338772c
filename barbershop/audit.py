# barbershop/audit.py

import logging
from enum import Enum
from typing import Any, Dict, Optional, Protocol

logger = logging.getLogger(__name__)


class Actor(str, Enum):
    customer = "customer"
    admin = "admin"
    system = "system"


class AuditAction(str, Enum):
    APPOINTMENT_CREATED = "APPOINTMENT_CREATED"
    APPOINTMENT_CREATE_DENIED = "APPOINTMENT_CREATE_DENIED"
    APPOINTMENT_APPROVED = "APPOINTMENT_APPROVED"
    APPOINTMENT_REJECTED = "APPOINTMENT_REJECTED"
    APPOINTMENT_CANCELLED = "APPOINTMENT_CANCELLED"
    APPOINTMENT_CANCEL_DENIED = "APPOINTMENT_CANCEL_DENIED"
    APPOINTMENT_CANCELLED_BY_OVERRIDE = "APPOINTMENT_CANCELLED_BY_OVERRIDE"
    APPOINTMENT_MARKED_DONE = "APPOINTMENT_MARKED_DONE"
    ADMIN_APPOINTMENT_CREATED = "ADMIN_APPOINTMENT_CREATED"
    WORKING_HOUR_UPDATED = "WORKING_HOUR_UPDATED"
    WORKING_HOUR_OVERRIDE_CREATED = "WORKING_HOUR_OVERRIDE_CREATED"
    WORKING_HOUR_OVERRIDE_DELETED = "WORKING_HOUR_OVERRIDE_DELETED"
    BARBER_CREATED = "BARBER_CREATED"
    BARBER_DEACTIVATED = "BARBER_DEACTIVATED"
    SUBSCRIPTION_CREATED = "SUBSCRIPTION_CREATED"
    SUBSCRIPTION_UPDATED = "SUBSCRIPTION_UPDATED"
    SUBSCRIPTION_CANCELLED = "SUBSCRIPTION_CANCELLED"
    SUBSCRIPTION_APPOINTMENTS_GENERATED = "SUBSCRIPTION_APPOINTMENTS_GENERATED"
    CUSTOMER_BANNED = "CUSTOMER_BANNED"
    CUSTOMER_UNBANNED = "CUSTOMER_UNBANNED"
    WAITLIST_JOINED = "WAITLIST_JOINED"
    WAITLIST_NOTIFIED = "WAITLIST_NOTIFIED"


class AuditSink(Protocol):
    def record(self, actor: Actor, action: AuditAction, entity_id: Optional[int], metadata: Dict[str, Any]) -> None:
        ...


class LoggingAuditSink:
    def record(self, actor: Actor, action: AuditAction, entity_id: Optional[int], metadata: Dict[str, Any]) -> None:
        logger.info("audit actor=%s action=%s entity=%s metadata=%s", actor.value, action.value, entity_id, metadata)


def record_audit(
    sink: AuditSink,
    actor: Actor,
    action: AuditAction,
    entity_id: Optional[int] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> None:
    # audit failures never roll back the transition they describe
    try:
        sink.record(actor, action, entity_id, metadata or {})
    except Exception:
        logger.exception("Audit log error (%s %s)", action.value, entity_id)
