# barbershop/subscriptions.py
"""Recurring bookings.

A subscription is materialised into ordinary approved appointments, one per
date, through the same reserve path as admin bookings. Dates that collide
with existing bookings or closures are skipped.
"""

import logging
from typing import List, Optional

from .appointments import book_approved, offer_freed_time, upcoming_requests
from .audit import Actor, AuditAction
from .availability import ACTIVE_STATUSES
from .bans import is_banned
from .barbers import get_barber, require_active_barber
from .context import SchedulingContext
from .core import is_in_past, minutes_to_time, parse_date, parse_time_to_minutes, today_str
from .data import validate_duration
from .db import atomic
from .errors import ConflictError, NotFoundError, PolicyError, ValidationError
from .models import AppointmentRequest, Subscription
from .notifications import NotifyEvent
from .phone import validate_phone
from .recurrence import next_occurrences
from .reservations import cancel_in_transaction
from .schemas import (
    CancelledBy, GeneratedOccurrences, RecurrenceType,
    SubscriptionCreate, SubscriptionUpdate,
)

logger = logging.getLogger(__name__)


def _validate_definition(recurrence_type: RecurrenceType, day_of_week: int, week_of_month: Optional[int],
                         start_time: str, duration_minutes: int) -> None:
    if not (1 <= day_of_week <= 7):
        raise ValidationError("day_of_week must be between 1 and 7")
    if recurrence_type == RecurrenceType.monthly:
        if week_of_month is None or not (1 <= week_of_month <= 5):
            raise ValidationError("Monthly subscriptions need a week_of_month between 1 and 5")
    elif week_of_month is not None:
        raise ValidationError("week_of_month is only used by monthly subscriptions")
    validate_duration(duration_minutes)
    minutes_to_time(parse_time_to_minutes(start_time) + duration_minutes)


def get_subscription(ctx: SchedulingContext, subscription_id: int) -> Subscription:
    subscription = ctx.get(Subscription, subscription_id)
    if subscription is None:
        raise NotFoundError("Subscription not found")
    return subscription


def list_subscriptions(ctx: SchedulingContext, barber_id: Optional[int] = None,
                       active_only: bool = False) -> List[Subscription]:
    stmt = ctx.select(Subscription)
    if barber_id is not None:
        stmt = stmt.where(Subscription.barber_id == barber_id)
    if active_only:
        stmt = stmt.where(Subscription.is_active == True)  # noqa: E712
    return list(ctx.session.exec(stmt.order_by(Subscription.created_at.desc())).all())


def materialize_occurrences(ctx: SchedulingContext, subscription: Subscription,
                            dates: List[str]) -> List[AppointmentRequest]:
    """Book every free date; already booked, past or conflicting dates are skipped."""
    existing = {r.date for r in ctx.session.exec(
        ctx.select(AppointmentRequest)
        .where(AppointmentRequest.subscription_id == subscription.id)
        .where(AppointmentRequest.status.in_(ACTIVE_STATUSES))
    ).all()}
    end_time = minutes_to_time(parse_time_to_minutes(subscription.start_time) + subscription.duration_minutes)

    created = []
    with atomic(ctx.session):
        for day in dates:
            if day in existing or is_in_past(ctx.clock, day, subscription.start_time):
                continue
            ctx.lock_day(subscription.barber_id, day)
            try:
                with ctx.session.begin_nested():
                    request = book_approved(ctx, AppointmentRequest(
                        barber_id=subscription.barber_id,
                        customer_name=subscription.customer_name,
                        customer_phone=subscription.customer_phone,
                        date=day,
                        requested_start_time=subscription.start_time,
                        subscription_id=subscription.id,
                    ), end_time)
            except ConflictError as exc:
                logger.info("Subscription %s: %s skipped (%s)", subscription.id, day, exc.reason)
                continue
            created.append(request)

    for request in created:
        ctx.session.refresh(request)
    if created:
        ctx.audit(Actor.system, AuditAction.SUBSCRIPTION_APPOINTMENTS_GENERATED, subscription.id, {
            "created_count": len(created), "dates": [r.date for r in created],
        })
    return created


def create_subscription(ctx: SchedulingContext, data: SubscriptionCreate) -> Subscription:
    phone = validate_phone(data.customer_phone)
    if not data.customer_name or not data.customer_name.strip():
        raise ValidationError("Customer name is required")
    _validate_definition(data.recurrence_type, data.day_of_week, data.week_of_month,
                         data.start_time, data.duration_minutes)

    start_date = parse_date(data.start_date)
    if data.start_date < today_str(ctx.clock):
        raise ValidationError("Start date cannot be in the past")
    if data.end_date is not None and parse_date(data.end_date) < start_date:
        raise ValidationError("End date must be on or after the start date")

    barber = require_active_barber(ctx, data.barber_id)
    if is_banned(ctx, phone):
        raise PolicyError("This customer is banned")

    with atomic(ctx.session):
        subscription = ctx.add(Subscription(
            barber_id=barber.id,
            customer_name=data.customer_name.strip(),
            customer_phone=phone,
            recurrence_type=data.recurrence_type,
            day_of_week=data.day_of_week,
            week_of_month=data.week_of_month,
            start_time=data.start_time,
            duration_minutes=data.duration_minutes,
            start_date=data.start_date,
            end_date=data.end_date,
            created_at=ctx.local_now(),
        ))
    ctx.session.refresh(subscription)

    dates = next_occurrences(subscription, subscription.start_date, ctx.settings.subscription_initial_occurrences)
    created = materialize_occurrences(ctx, subscription, dates)
    ctx.session.refresh(subscription)

    logger.info("Subscription %s created, %d of %d dates booked", subscription.id, len(created), len(dates))
    ctx.audit(Actor.admin, AuditAction.SUBSCRIPTION_CREATED, subscription.id, {
        "phone": phone, "barber_id": barber.id, "recurrence_type": data.recurrence_type.value,
        "created_count": len(created),
    })
    ctx.notify(NotifyEvent.subscription_created, phone, {
        "customer_name": subscription.customer_name,
        "barber_name": barber.name,
        "recurrence_type": subscription.recurrence_type.value,
        "day_of_week": subscription.day_of_week,
        "week_of_month": subscription.week_of_month,
        "time": subscription.start_time,
        "first_date": created[0].date if created else None,
    })
    return subscription


def top_up_subscription(ctx: SchedulingContext, subscription_id: int) -> GeneratedOccurrences:
    subscription = get_subscription(ctx, subscription_id)
    if not subscription.is_active:
        raise PolicyError("Subscription is not active")
    require_active_barber(ctx, subscription.barber_id)

    dates = next_occurrences(subscription, today_str(ctx.clock), ctx.settings.subscription_topup_occurrences)
    created = materialize_occurrences(ctx, subscription, dates)
    return GeneratedOccurrences(
        subscription_id=subscription_id,
        created_count=len(created),
        dates=[r.date for r in created],
    )


def update_subscription(ctx: SchedulingContext, subscription_id: int, changes: SubscriptionUpdate) -> Subscription:
    """Change the recurrence definition. Appointments already booked are left as they are."""
    subscription = get_subscription(ctx, subscription_id)
    updates = changes.model_dump(exclude_unset=True)

    if "customer_phone" in updates:
        updates["customer_phone"] = validate_phone(updates["customer_phone"])
    if "customer_name" in updates:
        if not updates["customer_name"] or not updates["customer_name"].strip():
            raise ValidationError("Customer name is required")
        updates["customer_name"] = updates["customer_name"].strip()

    recurrence_type = updates.get("recurrence_type", subscription.recurrence_type)
    week_of_month = updates.get("week_of_month", subscription.week_of_month)
    if recurrence_type != RecurrenceType.monthly and "recurrence_type" in updates and "week_of_month" not in updates:
        week_of_month = None
        updates["week_of_month"] = None
    _validate_definition(
        RecurrenceType(recurrence_type),
        updates.get("day_of_week", subscription.day_of_week),
        week_of_month,
        updates.get("start_time", subscription.start_time),
        updates.get("duration_minutes", subscription.duration_minutes),
    )
    if updates.get("end_date") is not None and parse_date(updates["end_date"]) < parse_date(subscription.start_date):
        raise ValidationError("End date must be on or after the start date")

    with atomic(ctx.session):
        for key, value in updates.items():
            setattr(subscription, key, value)
        ctx.session.add(subscription)
    ctx.session.refresh(subscription)

    ctx.audit(Actor.admin, AuditAction.SUBSCRIPTION_UPDATED, subscription.id,
              {k: (v.value if hasattr(v, "value") else v) for k, v in updates.items()})
    return subscription


def deactivate_subscription(ctx: SchedulingContext, subscription_id: int) -> Subscription:
    """Stop a subscription and cancel every appointment of it still ahead."""
    subscription = get_subscription(ctx, subscription_id)
    if not subscription.is_active:
        return subscription

    upcoming = upcoming_requests(
        ctx, ctx.select(AppointmentRequest).where(AppointmentRequest.subscription_id == subscription_id)
    )
    with atomic(ctx.session):
        for day in sorted({r.date for r in upcoming}):
            ctx.lock_day(subscription.barber_id, day)
        for request in upcoming:
            cancel_in_transaction(ctx, request, CancelledBy.admin)
        subscription.is_active = False
        ctx.session.add(subscription)
    ctx.session.refresh(subscription)

    logger.info("Subscription %s cancelled, %d appointment(s) released", subscription.id, len(upcoming))
    ctx.audit(Actor.admin, AuditAction.SUBSCRIPTION_CANCELLED, subscription.id, {"cancelled_count": len(upcoming)})
    barber = get_barber(ctx, subscription.barber_id)
    ctx.notify(NotifyEvent.subscription_cancelled, subscription.customer_phone, {
        "customer_name": subscription.customer_name,
        "barber_name": barber.name,
    })
    for request in upcoming:
        offer_freed_time(ctx, request, request.requested_start_time)
    return subscription
