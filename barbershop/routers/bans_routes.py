# barbershop/routers/bans_routes.py

from typing import List

from fastapi import APIRouter, Depends

from barbershop.bans import ban_customer, list_banned_customers, unban_customer
from barbershop.context import SchedulingContext
from barbershop.deps import get_admin_context
from barbershop.schemas import BanCreate, BanPublic

router = APIRouter(
    prefix="/bans",
    tags=["bans"],
)


@router.post("", response_model=BanPublic, status_code=201)
def add_ban(
    ban: BanCreate,
    ctx: SchedulingContext = Depends(get_admin_context),
):
    return ban_customer(ctx, ban)


@router.get("", response_model=List[BanPublic])
def get_bans(ctx: SchedulingContext = Depends(get_admin_context)):
    return list_banned_customers(ctx)


@router.delete("/{ban_id}", response_model=BanPublic)
def lift_ban(
    ban_id: int,
    ctx: SchedulingContext = Depends(get_admin_context),
):
    return unban_customer(ctx, ban_id)
