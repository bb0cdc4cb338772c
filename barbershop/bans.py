# barbershop/bans.py

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import and_, or_

from .audit import Actor, AuditAction
from .context import SchedulingContext
from .db import atomic
from .errors import ConflictError, NotFoundError, ValidationError
from .models import BannedCustomer
from .phone import normalize_phone, validate_phone
from .schemas import BanCreate, BanType

logger = logging.getLogger(__name__)


def _to_local(ctx: SchedulingContext, value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(ctx.clock.tz).replace(tzinfo=None)


def is_banned(ctx: SchedulingContext, phone: str) -> bool:
    normalized = normalize_phone(phone)
    now = ctx.local_now()
    banned = ctx.session.exec(
        ctx.select(BannedCustomer)
        .where(BannedCustomer.customer_phone == normalized)
        .where(BannedCustomer.is_active == True)  # noqa: E712
        .where(or_(
            BannedCustomer.ban_type == BanType.permanent,
            and_(BannedCustomer.ban_type == BanType.temporary, BannedCustomer.banned_until >= now),
        ))
    ).first()
    return banned is not None


def ban_customer(ctx: SchedulingContext, data: BanCreate) -> BannedCustomer:
    phone = validate_phone(data.customer_phone)
    banned_until = _to_local(ctx, data.banned_until)
    if data.ban_type == BanType.temporary and banned_until is None:
        raise ValidationError("A temporary ban needs an end date")

    existing = ctx.session.exec(
        ctx.select(BannedCustomer)
        .where(BannedCustomer.customer_phone == phone)
        .where(BannedCustomer.is_active == True)  # noqa: E712
    ).first()
    if existing is not None:
        raise ConflictError("This customer is already banned")

    with atomic(ctx.session):
        ban = ctx.add(BannedCustomer(
            customer_phone=phone,
            customer_name=data.customer_name,
            reason=data.reason,
            ban_type=data.ban_type,
            banned_at=ctx.local_now(),
            banned_until=banned_until if data.ban_type == BanType.temporary else None,
        ))
    ctx.session.refresh(ban)

    logger.info("Customer %s banned (%s)", phone, data.ban_type.value)
    ctx.audit(Actor.admin, AuditAction.CUSTOMER_BANNED, ban.id, {"phone": phone, "ban_type": data.ban_type.value})
    return ban


def unban_customer(ctx: SchedulingContext, ban_id: int) -> BannedCustomer:
    ban = ctx.get(BannedCustomer, ban_id)
    if ban is None:
        raise NotFoundError("Ban not found")
    with atomic(ctx.session):
        ban.is_active = False
        ctx.session.add(ban)
    ctx.session.refresh(ban)
    ctx.audit(Actor.admin, AuditAction.CUSTOMER_UNBANNED, ban.id, {"phone": ban.customer_phone})
    return ban


def list_banned_customers(ctx: SchedulingContext) -> List[BannedCustomer]:
    return list(ctx.session.exec(
        ctx.select(BannedCustomer)
        .where(BannedCustomer.is_active == True)  # noqa: E712
        .order_by(BannedCustomer.banned_at.desc())
    ).all())
