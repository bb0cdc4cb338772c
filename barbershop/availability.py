# barbershop/availability.py
"""Bookable time computation and the overlap primitives shared by every reserving path."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from .barbers import require_active_barber
from .context import SchedulingContext
from .core import (
    minutes_now, minutes_to_time, overlaps,
    parse_date, parse_time_to_minutes, today_str,
)
from .data import FULL_SERVICE_MINUTES, TENTATIVE_MINUTES, validate_duration
from .errors import ConflictError
from .models import AppointmentRequest, AppointmentSlot
from .schemas import AppointmentStatus, TimeButton, TimeSlot
from .working_hours import base_hours, overrides_for_day

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = (AppointmentStatus.pending, AppointmentStatus.approved)


class ReservationKind(str, Enum):
    slot = "slot"            # approved booking holding barber time
    tentative = "tentative"  # pending request, no slot yet
    closure = "closure"      # working hour override


@dataclass(frozen=True)
class Reservation:
    start: int
    end: int
    kind: ReservationKind
    ref_id: Optional[int] = None

    @property
    def duration(self) -> int:
        return self.end - self.start


@dataclass
class ReservationView:
    """Every range of one barber's day that is taken, in minutes."""

    slots: List[Reservation]
    tentative: List[Reservation]
    closures: List[Reservation]

    def ranges(self, include_tentative: bool = True) -> List[Reservation]:
        ranges = self.slots + self.closures
        if include_tentative:
            ranges = ranges + self.tentative
        return ranges

    def first_overlap(self, start: int, end: int, include_tentative: bool = True) -> Optional[Reservation]:
        for reservation in self.ranges(include_tentative):
            if overlaps(start, end, reservation.start, reservation.end):
                return reservation
        return None


def reservation_view(ctx: SchedulingContext, barber_id: int, day: str,
                     exclude_request_id: Optional[int] = None) -> ReservationView:
    slots = ctx.session.exec(
        ctx.select(AppointmentSlot)
        .where(AppointmentSlot.barber_id == barber_id)
        .where(AppointmentSlot.date == day)
    ).all()
    requests = ctx.session.exec(
        ctx.select(AppointmentRequest)
        .where(AppointmentRequest.barber_id == barber_id)
        .where(AppointmentRequest.date == day)
        .where(AppointmentRequest.status.in_(ACTIVE_STATUSES))
    ).all()

    slot_ranges = []
    held_by = set()
    for slot in slots:
        if exclude_request_id is not None and slot.appointment_request_id == exclude_request_id:
            continue
        held_by.add(slot.appointment_request_id)
        slot_ranges.append(Reservation(parse_time_to_minutes(slot.start_time),
                                       parse_time_to_minutes(slot.end_time),
                                       ReservationKind.slot, slot.appointment_request_id))

    tentative = []
    for request in requests:
        if request.id in held_by or request.id == exclude_request_id:
            continue
        start = parse_time_to_minutes(request.requested_start_time)
        tentative.append(Reservation(start, start + TENTATIVE_MINUTES, ReservationKind.tentative, request.id))

    closures = [
        Reservation(parse_time_to_minutes(o.start_time), parse_time_to_minutes(o.end_time),
                    ReservationKind.closure, o.id)
        for o in overrides_for_day(ctx, barber_id, day)
    ]
    return ReservationView(slots=slot_ranges, tentative=tentative, closures=closures)


def find_conflict(ctx: SchedulingContext, barber_id: int, day: str, start_time: str, end_time: str,
                  exclude_request_id: Optional[int] = None) -> Optional[str]:
    """Reason the window cannot be reserved, or None when it is free.

    Only slots and closures count: pending requests never hold capacity.
    """
    view = reservation_view(ctx, barber_id, day, exclude_request_id)
    hit = view.first_overlap(parse_time_to_minutes(start_time), parse_time_to_minutes(end_time),
                             include_tentative=False)
    if hit is None:
        return None
    if hit.kind == ReservationKind.closure:
        return "The selected time range includes closed hours"
    return "The selected time range is already booked"


def ensure_window_free(ctx: SchedulingContext, barber_id: int, day: str, start_time: str, end_time: str,
                       exclude_request_id: Optional[int] = None) -> None:
    reason = find_conflict(ctx, barber_id, day, start_time, end_time, exclude_request_id)
    if reason:
        raise ConflictError(reason)


def compute_available_slots(ctx: SchedulingContext, barber_id: int, day: str) -> List[TimeSlot]:
    """Fixed grid of the barber's slot_duration across the working day."""
    parse_date(day)
    barber = require_active_barber(ctx, barber_id)

    hours = base_hours(ctx, barber_id, day)
    if hours is None:
        return []

    today = today_str(ctx.clock)
    if day < today:
        return []
    current_minutes = minutes_now(ctx.clock) if day == today else -1

    work_start = parse_time_to_minutes(hours.start_time)
    work_end = parse_time_to_minutes(hours.end_time)
    view = reservation_view(ctx, barber_id, day)
    step = barber.slot_duration

    available = []
    current = work_start
    while current + step <= work_end:
        slot_end = current + step
        if current < current_minutes:
            current += step
            continue
        if view.first_overlap(current, slot_end, include_tentative=False) is None:
            available.append(TimeSlot(start_time=minutes_to_time(current), end_time=minutes_to_time(slot_end)))
        current += step

    return available


def compute_time_buttons(ctx: SchedulingContext, barber_id: int, day: str, duration_minutes: int,
                         service_selection_enabled: bool = True) -> List[TimeButton]:
    """Start-time buttons for a 30 or 60 minute booking, disabled ones included.

    Candidates are the half-hour (30) or hour (60) grid inside working hours,
    plus the half hour right after each 30/60 minute booking when it is free,
    so the leftover time behind someone else's appointment stays bookable.
    """
    validate_duration(duration_minutes)
    if not service_selection_enabled:
        duration_minutes = FULL_SERVICE_MINUTES

    parse_date(day)
    require_active_barber(ctx, barber_id)

    hours = base_hours(ctx, barber_id, day)
    if hours is None:
        return []

    today = today_str(ctx.clock)
    if day < today:
        return []

    work_start = parse_time_to_minutes(hours.start_time)
    work_end = parse_time_to_minutes(hours.end_time)
    view = reservation_view(ctx, barber_id, day)

    grid = 30 if duration_minutes == 30 else 60
    first = -(-work_start // grid) * grid
    candidates = set(range(first, work_end, grid))

    for slot in view.slots:
        if slot.duration not in (30, 60):
            continue
        gap_start, gap_end = slot.end, slot.end + 30
        if gap_start < work_start or gap_end > work_end:
            continue
        if view.first_overlap(gap_start, gap_end) is None:
            candidates.add(gap_start)

    if day == today:
        min_allowed = minutes_now(ctx.clock) + ctx.settings.same_day_lead_minutes
        candidates = {c for c in candidates if c >= min_allowed}

    buttons = []
    for start in sorted(candidates):
        end = start + duration_minutes
        disabled = end > work_end or view.first_overlap(start, end) is not None
        buttons.append(TimeButton(time=minutes_to_time(start), disabled=disabled))

    logger.debug("barber=%s date=%s duration=%s -> %d buttons", barber_id, day, duration_minutes, len(buttons))
    return buttons
