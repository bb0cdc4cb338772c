# barbershop/routers/waitlist_routes.py

from typing import List, Optional

from fastapi import APIRouter, Depends

from barbershop.context import SchedulingContext
from barbershop.deps import get_admin_context, get_context
from barbershop.schemas import TimeRanges, WaitlistCreate, WaitlistPublic
from barbershop.waitlist import join_waitlist, list_waitlist, time_ranges

router = APIRouter(
    prefix="/waitlist",
    tags=["waitlist"],
)


@router.post("", response_model=WaitlistPublic, status_code=201)
def join(
    entry: WaitlistCreate,
    ctx: SchedulingContext = Depends(get_context),
):
    return join_waitlist(ctx, entry)


@router.get("/time-ranges/{barber_id}", response_model=TimeRanges)
def get_time_ranges(
    barber_id: int,
    date: str,
    ctx: SchedulingContext = Depends(get_context),
):
    return time_ranges(ctx, barber_id, date)


@router.get("", response_model=List[WaitlistPublic])
def get_waitlist(
    barber_id: Optional[int] = None,
    date: Optional[str] = None,
    ctx: SchedulingContext = Depends(get_admin_context),
):
    return list_waitlist(ctx, barber_id=barber_id, day=date)
