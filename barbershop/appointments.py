# barbershop/appointments.py
"""Appointment lifecycle: customer requests, approval, cancellation, admin bookings.

A customer request is created ``pending`` and holds no barber time. Time is
only taken when an admin approves it (or books it directly), inside a
transaction that first locks the barber's day.
"""

import logging
from typing import List, Optional

from .audit import Actor, AuditAction
from .availability import ACTIVE_STATUSES
from .bans import is_banned
from .barbers import get_barber, require_active_barber
from .context import SchedulingContext
from .core import hours_until, is_in_past, minutes_to_time, parse_date, parse_time_to_minutes, today_str
from .data import duration_for_service, validate_duration
from .db import atomic
from .errors import BookingError, ConflictError, NotFoundError, PolicyError, ValidationError
from .models import AppointmentRequest
from .notifications import NotifyEvent
from .phone import normalize_phone, validate_phone
from .reservations import (
    appointment_start_time, cancel_in_transaction, check_transition,
    release_slot, reserve_slot, transition,
)
from .schemas import AdminAppointmentCreate, AppointmentRequestCreate, AppointmentStatus, CancelledBy
from .waitlist import notify_waiting_customers

logger = logging.getLogger(__name__)


# --- queries ---

def get_request(ctx: SchedulingContext, request_id: int) -> AppointmentRequest:
    request = ctx.get(AppointmentRequest, request_id)
    if request is None:
        raise NotFoundError("Appointment not found")
    return request


def list_requests(
    ctx: SchedulingContext,
    barber_id: Optional[int] = None,
    day: Optional[str] = None,
    status: Optional[AppointmentStatus] = None,
) -> List[AppointmentRequest]:
    stmt = ctx.select(AppointmentRequest)
    if barber_id is not None:
        stmt = stmt.where(AppointmentRequest.barber_id == barber_id)
    if day is not None:
        stmt = stmt.where(AppointmentRequest.date == day)
    if status is not None:
        stmt = stmt.where(AppointmentRequest.status == status)
    stmt = stmt.order_by(AppointmentRequest.date, AppointmentRequest.requested_start_time)
    return list(ctx.session.exec(stmt).all())


def find_customer_name(ctx: SchedulingContext, phone: str) -> Optional[str]:
    """Name from the customer's most recent request, for pre-filling forms."""
    normalized = normalize_phone(phone)
    if not normalized:
        return None
    latest = ctx.session.exec(
        ctx.select(AppointmentRequest)
        .where(AppointmentRequest.customer_phone == normalized)
        .order_by(AppointmentRequest.created_at.desc(), AppointmentRequest.id.desc())
    ).first()
    return latest.customer_name if latest else None


def upcoming_requests(ctx: SchedulingContext, stmt) -> List[AppointmentRequest]:
    """Active requests from ``stmt`` whose start is still ahead, nearest first."""
    stmt = (
        stmt.where(AppointmentRequest.status.in_(ACTIVE_STATUSES))
        .where(AppointmentRequest.date >= today_str(ctx.clock))
        .order_by(AppointmentRequest.date, AppointmentRequest.requested_start_time)
    )
    return [
        r for r in ctx.session.exec(stmt).all()
        if not is_in_past(ctx.clock, r.date, r.requested_start_time)
    ]


def _template(request: AppointmentRequest, barber_name: str, **extra) -> dict:
    data = {
        "customer_name": request.customer_name,
        "customer_phone": request.customer_phone,
        "barber_name": barber_name,
        "date": request.date,
        "time": request.requested_start_time,
    }
    data.update(extra)
    return data


# --- customer requests ---

def _requested_duration(data: AppointmentRequestCreate, start: int) -> int:
    # explicit duration, then an explicit end time, then the service length
    service_minutes = duration_for_service(data.service_type)
    if data.duration_minutes is None and not data.requested_end_time:
        return service_minutes

    if data.duration_minutes is not None:
        duration = validate_duration(data.duration_minutes)
    else:
        duration = validate_duration(parse_time_to_minutes(data.requested_end_time) - start)
    if data.requested_end_time and parse_time_to_minutes(data.requested_end_time) != start + duration:
        raise ValidationError("Requested end time does not match the duration")
    return duration


def create_request(ctx: SchedulingContext, data: AppointmentRequestCreate) -> AppointmentRequest:
    phone = validate_phone(data.customer_phone)
    if is_banned(ctx, phone):
        ctx.audit(Actor.customer, AuditAction.APPOINTMENT_CREATE_DENIED, None, {"phone": phone, "reason": "banned"})
        raise PolicyError("You cannot book an appointment at this time")

    if not data.customer_name or not data.customer_name.strip():
        raise ValidationError("Customer name is required")
    parse_date(data.date)
    start = parse_time_to_minutes(data.requested_start_time)

    duration = _requested_duration(data, start)
    end_time = minutes_to_time(start + duration)

    barber = require_active_barber(ctx, data.barber_id)

    if is_in_past(ctx.clock, data.date, data.requested_start_time):
        raise ValidationError("Cannot book a time in the past")

    upcoming = upcoming_requests(ctx, ctx.select(AppointmentRequest).where(AppointmentRequest.customer_phone == phone))
    if upcoming:
        raise ConflictError("You already have an upcoming appointment")

    with atomic(ctx.session):
        request = ctx.add(AppointmentRequest(
            barber_id=barber.id,
            customer_name=data.customer_name.strip(),
            customer_phone=phone,
            customer_email=data.customer_email,
            date=data.date,
            requested_start_time=data.requested_start_time,
            requested_end_time=end_time,
            service_type=data.service_type,
            created_at=ctx.local_now(),
            updated_at=ctx.local_now(),
        ))
    ctx.session.refresh(request)

    logger.info("Appointment request %s created for barber %s on %s %s",
                request.id, barber.id, request.date, request.requested_start_time)
    ctx.audit(Actor.customer, AuditAction.APPOINTMENT_CREATED, request.id, {
        "phone": phone, "barber_id": barber.id, "date": request.date, "time": request.requested_start_time,
    })
    ctx.notify(NotifyEvent.appointment_created, phone, _template(request, barber.name))
    ctx.notify_admin(NotifyEvent.appointment_created_admin, _template(request, barber.name))
    return request


def approve_request(ctx: SchedulingContext, request_id: int, approved_duration_minutes: int) -> AppointmentRequest:
    """Reserve barber time for a request. The first approval of a window wins."""
    validate_duration(approved_duration_minutes)
    request = get_request(ctx, request_id)

    with atomic(ctx.session):
        ctx.lock_day(request.barber_id, request.date)
        ctx.session.refresh(request)
        check_transition(request.status, AppointmentStatus.approved)
        if request.status == AppointmentStatus.approved:
            release_slot(ctx, request)

        start = parse_time_to_minutes(request.requested_start_time)
        end_time = minutes_to_time(start + approved_duration_minutes)
        reserve_slot(ctx, request, request.requested_start_time, end_time)
        request.requested_end_time = end_time
        transition(ctx, request, AppointmentStatus.approved)
    ctx.session.refresh(request)

    barber = get_barber(ctx, request.barber_id)
    logger.info("Appointment %s approved (%s-%s)", request.id, request.requested_start_time, end_time)
    ctx.audit(Actor.admin, AuditAction.APPOINTMENT_APPROVED, request.id, {
        "duration_minutes": approved_duration_minutes, "end_time": end_time,
    })
    ctx.notify(NotifyEvent.appointment_approved, request.customer_phone,
               _template(request, barber.name, end_time=end_time))
    return request


def reject_request(ctx: SchedulingContext, request_id: int) -> AppointmentRequest:
    request = get_request(ctx, request_id)
    with atomic(ctx.session):
        transition(ctx, request, AppointmentStatus.rejected)
    ctx.session.refresh(request)

    logger.info("Appointment %s rejected", request.id)
    ctx.audit(Actor.admin, AuditAction.APPOINTMENT_REJECTED, request.id)
    return request


# --- cancellation ---

def _nearest_subscription_occurrence(ctx: SchedulingContext, subscription_id: int) -> Optional[AppointmentRequest]:
    upcoming = upcoming_requests(
        ctx, ctx.select(AppointmentRequest).where(AppointmentRequest.subscription_id == subscription_id)
    )
    return upcoming[0] if upcoming else None


def _notify_cancellation(ctx: SchedulingContext, request: AppointmentRequest, previous: AppointmentStatus,
                         cancelled_by: CancelledBy, reason: Optional[str] = None) -> None:
    barber = get_barber(ctx, request.barber_id)
    data = _template(request, barber.name, reason=reason or "")
    if cancelled_by == CancelledBy.customer:
        ctx.notify(NotifyEvent.customer_cancelled, request.customer_phone, data)
        ctx.notify_admin(NotifyEvent.customer_cancelled_admin, data)
    elif previous == AppointmentStatus.approved:
        ctx.notify(NotifyEvent.appointment_cancelled_approved, request.customer_phone, data)
    else:
        ctx.notify(NotifyEvent.appointment_cancelled_pending, request.customer_phone, data)


def offer_freed_time(ctx: SchedulingContext, request: AppointmentRequest, freed_time: str) -> None:
    """Tell waitlisted customers about time a cancellation just released."""
    try:
        notify_waiting_customers(ctx, request.barber_id, request.date, freed_time)
    except BookingError as exc:
        logger.warning("Waitlist not notified for appointment %s: %s", request.id, exc.reason)


def cancel_request(ctx: SchedulingContext, request_id: int, cancelled_by: CancelledBy,
                   reason: Optional[str] = None) -> AppointmentRequest:
    request = get_request(ctx, request_id)
    if request.status == AppointmentStatus.cancelled:
        return request
    check_transition(request.status, AppointmentStatus.cancelled)

    actor = Actor(cancelled_by.value)
    start_time = appointment_start_time(ctx, request)
    if is_in_past(ctx.clock, request.date, start_time):
        ctx.audit(actor, AuditAction.APPOINTMENT_CANCEL_DENIED, request.id, {"reason": "past"})
        raise PolicyError("Past appointments cannot be cancelled")

    if request.subscription_id is not None:
        nearest = _nearest_subscription_occurrence(ctx, request.subscription_id)
        if nearest is None or nearest.id != request.id:
            ctx.audit(actor, AuditAction.APPOINTMENT_CANCEL_DENIED, request.id, {
                "reason": "not_nearest_subscription_occurrence", "subscription_id": request.subscription_id,
            })
            raise PolicyError("Only the nearest appointment of a subscription can be cancelled")

    if cancelled_by == CancelledBy.customer and request.status == AppointmentStatus.approved:
        min_hours = ctx.settings.approved_cancel_min_hours
        if hours_until(ctx.clock, request.date, start_time) < min_hours:
            ctx.audit(actor, AuditAction.APPOINTMENT_CANCEL_DENIED, request.id, {"reason": "too_late"})
            raise PolicyError(f"Approved appointments cannot be cancelled less than {min_hours:g} hours before the start")

    with atomic(ctx.session):
        ctx.lock_day(request.barber_id, request.date)
        ctx.session.refresh(request)
        if request.status == AppointmentStatus.cancelled:
            return request
        previous = cancel_in_transaction(ctx, request, cancelled_by)
    ctx.session.refresh(request)

    ctx.audit(actor, AuditAction.APPOINTMENT_CANCELLED, request.id, {
        "previous_status": previous.value, "reason": reason,
    })
    _notify_cancellation(ctx, request, previous, cancelled_by, reason)
    offer_freed_time(ctx, request, start_time)
    return request


def cancel_customer_appointment(ctx: SchedulingContext, phone: str) -> AppointmentRequest:
    """Cancel the caller's nearest upcoming appointment."""
    normalized = validate_phone(phone)
    upcoming = upcoming_requests(
        ctx, ctx.select(AppointmentRequest).where(AppointmentRequest.customer_phone == normalized)
    )
    if not upcoming:
        raise NotFoundError("No upcoming appointment to cancel")
    return cancel_request(ctx, upcoming[0].id, CancelledBy.customer)


# --- admin ---

def create_admin_appointment(ctx: SchedulingContext, data: AdminAppointmentCreate) -> AppointmentRequest:
    """Book straight into ``approved``: request and slot are written together or not at all."""
    phone = validate_phone(data.customer_phone)
    if is_banned(ctx, phone):
        ctx.audit(Actor.admin, AuditAction.APPOINTMENT_CREATE_DENIED, None, {"phone": phone, "reason": "banned"})
        raise PolicyError("This customer is banned")
    if not data.customer_name or not data.customer_name.strip():
        raise ValidationError("Customer name is required")

    parse_date(data.date)
    duration = validate_duration(data.duration_minutes)
    start = parse_time_to_minutes(data.requested_start_time)
    end_time = minutes_to_time(start + duration)
    barber = require_active_barber(ctx, data.barber_id)

    if is_in_past(ctx.clock, data.date, data.requested_start_time):
        raise ValidationError("Cannot book a time in the past")

    with atomic(ctx.session):
        ctx.lock_day(barber.id, data.date)
        request = book_approved(ctx, AppointmentRequest(
            barber_id=barber.id,
            customer_name=data.customer_name.strip(),
            customer_phone=phone,
            customer_email=data.customer_email,
            date=data.date,
            requested_start_time=data.requested_start_time,
        ), end_time)
    ctx.session.refresh(request)

    logger.info("Admin appointment %s booked for barber %s on %s %s-%s",
                request.id, barber.id, request.date, request.requested_start_time, end_time)
    ctx.audit(Actor.admin, AuditAction.ADMIN_APPOINTMENT_CREATED, request.id, {
        "phone": phone, "barber_id": barber.id, "date": request.date,
        "start_time": request.requested_start_time, "end_time": end_time,
    })
    ctx.notify(NotifyEvent.admin_appointment_created, phone, _template(request, barber.name, end_time=end_time))
    return request


def book_approved(ctx: SchedulingContext, request: AppointmentRequest, end_time: str) -> AppointmentRequest:
    """Insert an approved request with its slot. Caller holds the day lock and the transaction."""
    now = ctx.local_now()
    request.status = AppointmentStatus.approved
    request.requested_end_time = end_time
    request.created_at = now
    request.updated_at = now
    ctx.add(request)
    ctx.session.flush()
    reserve_slot(ctx, request, request.requested_start_time, end_time)
    return request


def mark_past_appointments_done(ctx: SchedulingContext) -> int:
    """Move approved appointments that have already started to ``done``."""
    candidates = ctx.session.exec(
        ctx.select(AppointmentRequest)
        .where(AppointmentRequest.status == AppointmentStatus.approved)
        .where(AppointmentRequest.date <= today_str(ctx.clock))
    ).all()

    finished = []
    with atomic(ctx.session):
        for request in candidates:
            if not is_in_past(ctx.clock, request.date, appointment_start_time(ctx, request)):
                continue
            release_slot(ctx, request)
            transition(ctx, request, AppointmentStatus.done)
            finished.append(request.id)

    for request_id in finished:
        ctx.audit(Actor.system, AuditAction.APPOINTMENT_MARKED_DONE, request_id)
    if finished:
        logger.info("%d appointment(s) marked done", len(finished))
    return len(finished)


def deactivate_barber(ctx: SchedulingContext, barber_id: int) -> int:
    """Deactivate a barber and cancel everything still ahead of them. Returns the cancelled count."""
    barber = get_barber(ctx, barber_id)
    upcoming = upcoming_requests(ctx, ctx.select(AppointmentRequest).where(AppointmentRequest.barber_id == barber_id))

    cancelled = []
    with atomic(ctx.session):
        barber.is_active = False
        ctx.session.add(barber)
        for day in sorted({r.date for r in upcoming}):
            ctx.lock_day(barber_id, day)
        for request in upcoming:
            previous = cancel_in_transaction(ctx, request, CancelledBy.system)
            cancelled.append((request, previous))

    logger.info("Barber %s deactivated, %d appointment(s) cancelled", barber_id, len(cancelled))
    ctx.audit(Actor.admin, AuditAction.BARBER_DEACTIVATED, barber_id, {"cancelled_count": len(cancelled)})
    for request, previous in cancelled:
        ctx.session.refresh(request)
        ctx.audit(Actor.system, AuditAction.APPOINTMENT_CANCELLED, request.id, {
            "previous_status": previous.value, "reason": "barber_deactivated",
        })
        _notify_cancellation(ctx, request, previous, CancelledBy.system, "Barber is no longer available")
    return len(cancelled)
