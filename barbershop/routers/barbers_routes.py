# barbershop/routers/barbers_routes.py

from typing import List, Optional

from fastapi import APIRouter, Depends

from barbershop.appointments import deactivate_barber
from barbershop.barbers import create_barber, get_barber, list_barbers
from barbershop.context import SchedulingContext
from barbershop.deps import get_admin_context, get_context
from barbershop.overrides import create_override, delete_override, list_overrides
from barbershop.schemas import (
    BarberCreate, BarberPublic, DeactivateBarberResult,
    OverrideCreate, OverridePublic, OverrideResult,
    WorkingHourPublic, WorkingHourUpdate,
)
from barbershop.working_hours import list_working_hours, upsert_working_hour

router = APIRouter(
    prefix="/barbers",
    tags=["barbers"],
)


@router.get("", response_model=List[BarberPublic])
def get_barbers(
    active_only: bool = True,
    ctx: SchedulingContext = Depends(get_context),
):
    return list_barbers(ctx, active_only=active_only)


@router.post("", response_model=BarberPublic, status_code=201)
def add_barber(
    barber: BarberCreate,
    ctx: SchedulingContext = Depends(get_admin_context),
):
    return create_barber(ctx, barber)


@router.get("/{barber_id}", response_model=BarberPublic)
def read_barber(
    barber_id: int,
    ctx: SchedulingContext = Depends(get_context),
):
    return get_barber(ctx, barber_id)


@router.post("/{barber_id}/deactivate", response_model=DeactivateBarberResult)
def deactivate(
    barber_id: int,
    ctx: SchedulingContext = Depends(get_admin_context),
):
    cancelled = deactivate_barber(ctx, barber_id)
    return {"barber_id": barber_id, "cancelled_count": cancelled}


# --- working hours ---

@router.get("/{barber_id}/working-hours", response_model=List[WorkingHourPublic])
def get_working_hours(
    barber_id: int,
    ctx: SchedulingContext = Depends(get_context),
):
    get_barber(ctx, barber_id)
    return list_working_hours(ctx, barber_id)


@router.put("/{barber_id}/working-hours/{day_of_week}", response_model=WorkingHourPublic)
def set_working_hour(
    barber_id: int,
    day_of_week: int,
    hours: WorkingHourUpdate,
    ctx: SchedulingContext = Depends(get_admin_context),
):
    return upsert_working_hour(
        ctx, barber_id, day_of_week,
        hours.start_time, hours.end_time, hours.is_working,
    )


# --- overrides (closures) ---

@router.get("/{barber_id}/overrides", response_model=List[OverridePublic])
def get_overrides(
    barber_id: int,
    date: Optional[str] = None,
    ctx: SchedulingContext = Depends(get_admin_context),
):
    get_barber(ctx, barber_id)
    return list_overrides(ctx, barber_id, date)


@router.post("/{barber_id}/overrides", response_model=OverrideResult, status_code=201)
def add_override(
    barber_id: int,
    override: OverrideCreate,
    ctx: SchedulingContext = Depends(get_admin_context),
):
    return create_override(
        ctx, barber_id, override.date, override.start_time, override.end_time,
        reason=override.reason, notify_customers=override.notify_customers,
    )


@router.delete("/overrides/{override_id}", status_code=204)
def remove_override(
    override_id: int,
    ctx: SchedulingContext = Depends(get_admin_context),
):
    delete_override(ctx, override_id)
