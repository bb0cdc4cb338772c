# barbershop/barbers.py

import logging
from typing import List

from .audit import Actor, AuditAction
from .context import SchedulingContext
from .db import atomic
from .errors import NotFoundError, PolicyError, ValidationError
from .models import Barber
from .schemas import BarberCreate

logger = logging.getLogger(__name__)


def get_barber(ctx: SchedulingContext, barber_id: int) -> Barber:
    barber = ctx.get(Barber, barber_id)
    if barber is None:
        raise NotFoundError("Barber not found")
    return barber


def require_active_barber(ctx: SchedulingContext, barber_id: int) -> Barber:
    barber = get_barber(ctx, barber_id)
    if not barber.is_active:
        raise PolicyError("Barber is not active")
    return barber


def list_barbers(ctx: SchedulingContext, active_only: bool = False) -> List[Barber]:
    stmt = ctx.select(Barber)
    if active_only:
        stmt = stmt.where(Barber.is_active == True)  # noqa: E712
    return list(ctx.session.exec(stmt.order_by(Barber.id)).all())


def create_barber(ctx: SchedulingContext, data: BarberCreate) -> Barber:
    if not data.name or not data.name.strip():
        raise ValidationError("Barber name is required")
    if data.slot_duration <= 0 or data.slot_duration > 240:
        raise ValidationError("slot_duration must be between 1 and 240 minutes")

    with atomic(ctx.session):
        barber = ctx.add(Barber(name=data.name.strip(), slot_duration=data.slot_duration))
    ctx.session.refresh(barber)

    logger.info("Barber %s created", barber.id)
    ctx.audit(Actor.admin, AuditAction.BARBER_CREATED, barber.id, {"name": barber.name})
    return barber
