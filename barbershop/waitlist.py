# barbershop/waitlist.py
"""Customers waiting for a half day on a specific date.

When an appointment is cancelled, every active entry whose half of the day
contains the freed start time is notified. This is a membership test, not a
queue: who gets the time is still decided by the normal reservation path.
"""

import logging
from typing import List

from sqlalchemy.exc import IntegrityError

from .audit import Actor, AuditAction
from .barbers import get_barber
from .context import SchedulingContext
from .core import minutes_to_time, parse_date, parse_time_to_minutes
from .db import atomic
from .errors import ConflictError, NotFoundError, ValidationError
from .models import AppointmentWaitlist
from .notifications import NotifyEvent
from .phone import validate_phone
from .schemas import TimeRange, TimeRanges, TimeRangeType, WaitlistCreate, WaitlistStatus
from .working_hours import resolve_hours

logger = logging.getLogger(__name__)


def time_ranges(ctx: SchedulingContext, barber_id: int, day: str) -> TimeRanges:
    """Split the day's resolved hours at their midpoint into morning and evening."""
    get_barber(ctx, barber_id)
    hours = resolve_hours(ctx, barber_id, day)
    if hours is None:
        raise NotFoundError("The barber does not work on this date")

    start = parse_time_to_minutes(hours.start_time)
    end = parse_time_to_minutes(hours.end_time)
    middle = minutes_to_time((start + end) // 2)
    return TimeRanges(
        morning=TimeRange(start=hours.start_time, end=middle),
        evening=TimeRange(start=middle, end=hours.end_time),
    )


def _in_range(minutes: int, time_range: TimeRange, inclusive_end: bool) -> bool:
    start = parse_time_to_minutes(time_range.start)
    end = parse_time_to_minutes(time_range.end)
    if inclusive_end:
        return start <= minutes <= end
    return start <= minutes < end


def join_waitlist(ctx: SchedulingContext, data: WaitlistCreate) -> AppointmentWaitlist:
    phone = validate_phone(data.customer_phone)
    if not data.customer_name or not data.customer_name.strip():
        raise ValidationError("Customer name is required")
    parse_date(data.preferred_date)
    get_barber(ctx, data.barber_id)

    existing = ctx.session.exec(
        ctx.select(AppointmentWaitlist)
        .where(AppointmentWaitlist.customer_phone == phone)
        .where(AppointmentWaitlist.barber_id == data.barber_id)
        .where(AppointmentWaitlist.preferred_date == data.preferred_date)
    ).first()
    if existing is not None:
        raise ConflictError("You already have a waitlist request for this date")

    try:
        with atomic(ctx.session):
            entry = ctx.add(AppointmentWaitlist(
                customer_phone=phone,
                customer_name=data.customer_name.strip(),
                barber_id=data.barber_id,
                preferred_date=data.preferred_date,
                time_range_type=data.time_range_type,
                created_at=ctx.local_now(),
            ))
    except IntegrityError:
        raise ConflictError("You already have a waitlist request for this date")
    ctx.session.refresh(entry)

    ctx.audit(Actor.customer, AuditAction.WAITLIST_JOINED, entry.id, {
        "phone": phone, "barber_id": data.barber_id, "date": data.preferred_date,
        "time_range_type": data.time_range_type.value,
    })
    return entry


def list_waitlist(ctx: SchedulingContext, barber_id: int = None, day: str = None) -> List[AppointmentWaitlist]:
    stmt = ctx.select(AppointmentWaitlist)
    if barber_id is not None:
        stmt = stmt.where(AppointmentWaitlist.barber_id == barber_id)
    if day is not None:
        stmt = stmt.where(AppointmentWaitlist.preferred_date == day)
    return list(ctx.session.exec(stmt.order_by(AppointmentWaitlist.created_at.desc()).limit(100)).all())


def notify_waiting_customers(ctx: SchedulingContext, barber_id: int, day: str, freed_time: str) -> int:
    entries = ctx.session.exec(
        ctx.select(AppointmentWaitlist)
        .where(AppointmentWaitlist.barber_id == barber_id)
        .where(AppointmentWaitlist.preferred_date == day)
        .where(AppointmentWaitlist.status == WaitlistStatus.active)
        .order_by(AppointmentWaitlist.created_at)
    ).all()
    if not entries:
        return 0

    ranges = time_ranges(ctx, barber_id, day)
    freed = parse_time_to_minutes(freed_time)

    matched = []
    for entry in entries:
        if entry.time_range_type == TimeRangeType.morning:
            hit = _in_range(freed, ranges.morning, inclusive_end=False)
        else:
            hit = _in_range(freed, ranges.evening, inclusive_end=True)
        if hit:
            matched.append(entry)

    if not matched:
        return 0

    now = ctx.local_now()
    with atomic(ctx.session):
        for entry in matched:
            entry.status = WaitlistStatus.notified
            entry.notified_at = now
            ctx.session.add(entry)

    for entry in matched:
        ctx.notify(NotifyEvent.waitlist_slot_available, entry.customer_phone, {
            "customer_name": entry.customer_name,
            "date": day,
            "time": freed_time,
        })
        ctx.audit(Actor.system, AuditAction.WAITLIST_NOTIFIED, entry.id, {"date": day, "time": freed_time})

    logger.info("Waitlist: %d customer(s) notified for barber %s on %s %s", len(matched), barber_id, day, freed_time)
    return len(matched)
