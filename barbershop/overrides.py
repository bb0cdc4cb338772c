# barbershop/overrides.py
"""One-off closures of a barber's day.

Creating a closure cancels every active appointment it covers in the same
transaction, so a closure and a booking can never coexist.
"""

import logging
from typing import List, Optional

from .audit import Actor, AuditAction
from .availability import ACTIVE_STATUSES
from .barbers import get_barber
from .context import SchedulingContext
from .core import overlaps, parse_date, parse_time_to_minutes
from .data import TENTATIVE_MINUTES
from .db import atomic
from .errors import NotFoundError, ValidationError
from .models import AppointmentRequest, WorkingHourOverride
from .notifications import NotifyEvent
from .reservations import cancel_in_transaction, slot_for_request
from .schemas import AppointmentStatus, CancelledBy, OverrideResult

logger = logging.getLogger(__name__)

DEFAULT_REASON = "Closed by the shop"


def list_overrides(ctx: SchedulingContext, barber_id: int, day: Optional[str] = None) -> List[WorkingHourOverride]:
    stmt = ctx.select(WorkingHourOverride).where(WorkingHourOverride.barber_id == barber_id)
    if day is not None:
        stmt = stmt.where(WorkingHourOverride.date == day)
    return list(ctx.session.exec(
        stmt.order_by(WorkingHourOverride.date, WorkingHourOverride.start_time)
    ).all())


def _covered_requests(ctx: SchedulingContext, barber_id: int, day: str, start: int, end: int) -> List[AppointmentRequest]:
    requests = ctx.session.exec(
        ctx.select(AppointmentRequest)
        .where(AppointmentRequest.barber_id == barber_id)
        .where(AppointmentRequest.date == day)
        .where(AppointmentRequest.status.in_(ACTIVE_STATUSES))
    ).all()

    covered = []
    for request in requests:
        slot = slot_for_request(ctx, request.id)
        if slot is not None:
            held = (parse_time_to_minutes(slot.start_time), parse_time_to_minutes(slot.end_time))
        else:
            req_start = parse_time_to_minutes(request.requested_start_time)
            held = (req_start, req_start + TENTATIVE_MINUTES)
        if overlaps(start, end, held[0], held[1]):
            covered.append(request)
    return covered


def create_override(
    ctx: SchedulingContext,
    barber_id: int,
    day: str,
    start_time: str,
    end_time: str,
    reason: Optional[str] = None,
    notify_customers: bool = False,
) -> OverrideResult:
    parse_date(day)
    start = parse_time_to_minutes(start_time)
    end = parse_time_to_minutes(end_time)
    if start >= end:
        raise ValidationError("start_time must be before end_time")
    reason = (reason or "").strip() or DEFAULT_REASON
    barber = get_barber(ctx, barber_id)

    cancelled = []
    with atomic(ctx.session):
        ctx.lock_day(barber_id, day)
        covered = _covered_requests(ctx, barber_id, day, start, end)
        override = ctx.add(WorkingHourOverride(
            barber_id=barber_id, date=day, start_time=start_time, end_time=end_time,
            reason=reason, created_at=ctx.local_now(),
        ))
        for request in covered:
            previous = cancel_in_transaction(ctx, request, CancelledBy.system)
            cancelled.append((request, previous))
    ctx.session.refresh(override)

    logger.info("Override %s on %s %s-%s for barber %s cancelled %d appointment(s)",
                override.id, day, start_time, end_time, barber_id, len(cancelled))
    ctx.audit(Actor.admin, AuditAction.WORKING_HOUR_OVERRIDE_CREATED, override.id, {
        "barber_id": barber_id, "date": day, "start_time": start_time, "end_time": end_time,
        "reason": reason, "cancelled_count": len(cancelled),
    })

    notified = 0
    for request, previous in cancelled:
        ctx.session.refresh(request)
        ctx.audit(Actor.system, AuditAction.APPOINTMENT_CANCELLED_BY_OVERRIDE, request.id, {
            "override_id": override.id, "previous_status": previous.value,
        })
        if not notify_customers:
            continue
        event = (NotifyEvent.appointment_cancelled_approved if previous == AppointmentStatus.approved
                 else NotifyEvent.appointment_cancelled_pending)
        if ctx.notify(event, request.customer_phone, {
            "customer_name": request.customer_name,
            "barber_name": barber.name,
            "date": request.date,
            "time": request.requested_start_time,
            "reason": reason,
        }):
            notified += 1

    if notify_customers and cancelled:
        ctx.notify_admin(NotifyEvent.override_cancellations_admin, {
            "barber_name": barber.name,
            "date": day,
            "start_time": start_time,
            "end_time": end_time,
            "cancelled_count": len(cancelled),
        })

    return OverrideResult(override_id=override.id, cancelled_count=len(cancelled), notified_count=notified)


def delete_override(ctx: SchedulingContext, override_id: int) -> None:
    override = ctx.get(WorkingHourOverride, override_id)
    if override is None:
        raise NotFoundError("Override not found")
    details = {"barber_id": override.barber_id, "date": override.date,
               "start_time": override.start_time, "end_time": override.end_time}
    with atomic(ctx.session):
        ctx.session.delete(override)
    ctx.audit(Actor.admin, AuditAction.WORKING_HOUR_OVERRIDE_DELETED, override_id, details)
