# barbershop/reservations.py
"""Slot reservation and status transitions.

These helpers run inside a caller's ``atomic()`` block; they flush but never
commit. Every path that takes or gives back barber time goes through here.
"""

import logging
from typing import Dict, FrozenSet, Optional

from sqlalchemy.exc import IntegrityError

from .availability import ensure_window_free
from .context import SchedulingContext
from .errors import ConflictError, PolicyError
from .models import AppointmentRequest, AppointmentSlot
from .schemas import AppointmentStatus, CancelledBy

logger = logging.getLogger(__name__)

TRANSITIONS: Dict[AppointmentStatus, FrozenSet[AppointmentStatus]] = {
    AppointmentStatus.pending: frozenset({
        AppointmentStatus.approved, AppointmentStatus.rejected, AppointmentStatus.cancelled,
    }),
    # approved -> approved is a re-approval with a new duration
    AppointmentStatus.approved: frozenset({
        AppointmentStatus.approved, AppointmentStatus.done, AppointmentStatus.cancelled,
    }),
    AppointmentStatus.rejected: frozenset(),
    AppointmentStatus.cancelled: frozenset(),
    AppointmentStatus.done: frozenset(),
}

TERMINAL_STATUSES = frozenset(s for s, targets in TRANSITIONS.items() if not targets)


def check_transition(current: AppointmentStatus, target: AppointmentStatus) -> None:
    if target not in TRANSITIONS[current]:
        raise PolicyError(f"Cannot move an appointment from {current.value} to {target.value}")


def transition(ctx: SchedulingContext, request: AppointmentRequest, target: AppointmentStatus,
               cancelled_by: Optional[CancelledBy] = None) -> AppointmentStatus:
    previous = request.status
    check_transition(previous, target)
    request.status = target
    if target == AppointmentStatus.cancelled:
        request.cancelled_by = cancelled_by
    request.updated_at = ctx.local_now()
    ctx.session.add(request)
    return previous


def slot_for_request(ctx: SchedulingContext, request_id: int) -> Optional[AppointmentSlot]:
    return ctx.session.exec(
        ctx.select(AppointmentSlot).where(AppointmentSlot.appointment_request_id == request_id)
    ).first()


def appointment_start_time(ctx: SchedulingContext, request: AppointmentRequest) -> str:
    if request.status == AppointmentStatus.approved:
        slot = slot_for_request(ctx, request.id)
        if slot is not None:
            return slot.start_time
    return request.requested_start_time


def release_slot(ctx: SchedulingContext, request: AppointmentRequest) -> bool:
    slot = slot_for_request(ctx, request.id)
    if slot is None:
        return False
    ctx.session.delete(slot)
    ctx.session.flush()
    return True


def reserve_slot(ctx: SchedulingContext, request: AppointmentRequest, start_time: str, end_time: str) -> AppointmentSlot:
    """Check the window and write the slot. The caller must hold the barber/day lock."""
    ensure_window_free(ctx, request.barber_id, request.date, start_time, end_time,
                       exclude_request_id=request.id)
    try:
        with ctx.session.begin_nested():
            slot = ctx.add(AppointmentSlot(
                barber_id=request.barber_id,
                appointment_request_id=request.id,
                date=request.date,
                start_time=start_time,
                end_time=end_time,
            ))
    except IntegrityError:
        raise ConflictError("The selected time range is already booked")
    return slot


def cancel_in_transaction(ctx: SchedulingContext, request: AppointmentRequest,
                          cancelled_by: CancelledBy) -> AppointmentStatus:
    """Release the slot and mark the request cancelled; returns the previous status."""
    release_slot(ctx, request)
    previous = transition(ctx, request, AppointmentStatus.cancelled, cancelled_by)
    logger.info("Appointment %s cancelled by %s (was %s)", request.id, cancelled_by.value, previous.value)
    return previous
