# barbershop/working_hours.py
"""Weekly working hours and what they resolve to on a given date."""

import logging
from typing import List, Optional

from .audit import Actor, AuditAction
from .barbers import get_barber
from .context import SchedulingContext
from .core import parse_date, parse_time_to_minutes
from .db import atomic
from .errors import ValidationError
from .models import WorkingHour, WorkingHourOverride
from .schemas import Hours

logger = logging.getLogger(__name__)


def get_working_hour(ctx: SchedulingContext, barber_id: int, day_of_week: int) -> Optional[WorkingHour]:
    return ctx.session.exec(
        ctx.select(WorkingHour)
        .where(WorkingHour.barber_id == barber_id)
        .where(WorkingHour.day_of_week == day_of_week)
    ).first()


def list_working_hours(ctx: SchedulingContext, barber_id: int) -> List[WorkingHour]:
    return list(ctx.session.exec(
        ctx.select(WorkingHour)
        .where(WorkingHour.barber_id == barber_id)
        .order_by(WorkingHour.day_of_week)
    ).all())


def overrides_for_day(ctx: SchedulingContext, barber_id: int, day: str) -> List[WorkingHourOverride]:
    return list(ctx.session.exec(
        ctx.select(WorkingHourOverride)
        .where(WorkingHourOverride.barber_id == barber_id)
        .where(WorkingHourOverride.date == day)
        .order_by(WorkingHourOverride.created_at, WorkingHourOverride.id)
    ).all())


def base_hours(ctx: SchedulingContext, barber_id: int, day: str) -> Optional[Hours]:
    """The weekly hours for the date's weekday, or None when the barber does not work."""
    weekday = parse_date(day).weekday()
    working_hour = get_working_hour(ctx, barber_id, weekday)
    if working_hour is None or not working_hour.is_working:
        return None
    return Hours(start_time=working_hour.start_time, end_time=working_hour.end_time)


def resolve_hours(ctx: SchedulingContext, barber_id: int, day: str) -> Optional[Hours]:
    """Opening window for one date: an override on that date replaces the weekly hours."""
    hours = base_hours(ctx, barber_id, day)
    if hours is None:
        return None
    overrides = overrides_for_day(ctx, barber_id, day)
    if overrides:
        return Hours(start_time=overrides[0].start_time, end_time=overrides[0].end_time)
    return hours


def upsert_working_hour(
    ctx: SchedulingContext,
    barber_id: int,
    day_of_week: int,
    start_time: str,
    end_time: str,
    is_working: bool,
) -> WorkingHour:
    if not (0 <= day_of_week <= 6):
        raise ValidationError("day_of_week must be between 0 and 6")
    if is_working and parse_time_to_minutes(start_time) >= parse_time_to_minutes(end_time):
        raise ValidationError("start_time must be before end_time")

    barber = get_barber(ctx, barber_id)

    # one row per barber and weekday
    with atomic(ctx.session):
        working_hour = get_working_hour(ctx, barber_id, day_of_week)
        if working_hour is None:
            working_hour = ctx.add(WorkingHour(barber_id=barber_id, day_of_week=day_of_week,
                                               start_time=start_time, end_time=end_time,
                                               is_working=is_working))
        else:
            working_hour.start_time = start_time
            working_hour.end_time = end_time
            working_hour.is_working = is_working
            ctx.session.add(working_hour)
    ctx.session.refresh(working_hour)

    ctx.audit(Actor.admin, AuditAction.WORKING_HOUR_UPDATED, working_hour.id, {
        "barber_id": barber_id,
        "barber_name": barber.name,
        "day_of_week": day_of_week,
        "start_time": start_time,
        "end_time": end_time,
        "is_working": is_working,
    })
    return working_hour
