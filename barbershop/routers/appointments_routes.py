# barbershop/routers/appointments_routes.py

from typing import List, Optional

from fastapi import APIRouter, Depends

from barbershop.appointments import (
    approve_request, cancel_customer_appointment, cancel_request,
    create_admin_appointment, create_request, find_customer_name,
    get_request, list_requests, mark_past_appointments_done, reject_request,
)
from barbershop.context import SchedulingContext
from barbershop.deps import get_admin_context, get_context
from barbershop.schemas import (
    AdminAppointmentCreate,
    AppointmentPublic,
    AppointmentRequestCreate,
    AppointmentStatus,
    ApproveAppointment,
    CancelAppointment,
    CancelledBy,
    CustomerCancel,
)

router = APIRouter(
    prefix="/appointments",
    tags=["appointments"],
)


# --- customer ---

@router.post("", response_model=AppointmentPublic, status_code=201)
def request_appointment(
    appt: AppointmentRequestCreate,
    ctx: SchedulingContext = Depends(get_context),
):
    return create_request(ctx, appt)


@router.post("/cancel", response_model=AppointmentPublic)
def customer_cancel(
    body: CustomerCancel,
    ctx: SchedulingContext = Depends(get_context),
):
    return cancel_customer_appointment(ctx, body.customer_phone)


@router.get("/customer-name")
def customer_name(
    phone: str,
    ctx: SchedulingContext = Depends(get_context),
):
    return {"customer_name": find_customer_name(ctx, phone)}


# --- admin ---

@router.get("", response_model=List[AppointmentPublic])
def get_appointments(
    barber_id: Optional[int] = None,
    date: Optional[str] = None,
    status: Optional[AppointmentStatus] = None,
    ctx: SchedulingContext = Depends(get_admin_context),
):
    return list_requests(ctx, barber_id=barber_id, day=date, status=status)


@router.post("/admin", response_model=AppointmentPublic, status_code=201)
def admin_appointment(
    appt: AdminAppointmentCreate,
    ctx: SchedulingContext = Depends(get_admin_context),
):
    return create_admin_appointment(ctx, appt)


@router.post("/mark-done")
def mark_done(ctx: SchedulingContext = Depends(get_admin_context)):
    return {"updated": mark_past_appointments_done(ctx)}


@router.get("/{appointment_id}", response_model=AppointmentPublic)
def get_appointment(
    appointment_id: int,
    ctx: SchedulingContext = Depends(get_admin_context),
):
    return get_request(ctx, appointment_id)


@router.post("/{appointment_id}/approve", response_model=AppointmentPublic)
def approve(
    appointment_id: int,
    body: ApproveAppointment,
    ctx: SchedulingContext = Depends(get_admin_context),
):
    return approve_request(ctx, appointment_id, body.approved_duration_minutes)


@router.post("/{appointment_id}/reject", response_model=AppointmentPublic)
def reject(
    appointment_id: int,
    ctx: SchedulingContext = Depends(get_admin_context),
):
    return reject_request(ctx, appointment_id)


@router.post("/{appointment_id}/cancel", response_model=AppointmentPublic)
def admin_cancel(
    appointment_id: int,
    body: CancelAppointment,
    ctx: SchedulingContext = Depends(get_admin_context),
):
    return cancel_request(ctx, appointment_id, CancelledBy.admin, reason=body.reason)
