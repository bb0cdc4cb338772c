# barbershop/routers/availability_routes.py

from fastapi import APIRouter, Depends

from barbershop.availability import compute_available_slots, compute_time_buttons
from barbershop.context import SchedulingContext
from barbershop.data import FULL_SERVICE_MINUTES
from barbershop.deps import get_context
from barbershop.schemas import AvailabilityResponse, TimeButtonsResponse

router = APIRouter(
    prefix="/availability",
    tags=["availability"],
)


@router.get("/{barber_id}", response_model=AvailabilityResponse)
def get_availability(
    barber_id: int,
    date: str,
    ctx: SchedulingContext = Depends(get_context),
):
    slots = compute_available_slots(ctx, barber_id, date)
    return {"barber_id": barber_id, "date": date, "slots": slots}


@router.get("/{barber_id}/buttons", response_model=TimeButtonsResponse)
def get_time_buttons(
    barber_id: int,
    date: str,
    duration_minutes: int = 30,
    service_selection_enabled: bool = True,
    ctx: SchedulingContext = Depends(get_context),
):
    buttons = compute_time_buttons(ctx, barber_id, date, duration_minutes, service_selection_enabled)
    if not service_selection_enabled:
        duration_minutes = FULL_SERVICE_MINUTES
    return {
        "barber_id": barber_id,
        "date": date,
        "duration_minutes": duration_minutes,
        "buttons": buttons,
    }
