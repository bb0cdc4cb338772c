# barbershop/models.py

from typing import Optional
from datetime import datetime

from sqlalchemy import Column, DateTime, UniqueConstraint
from sqlmodel import SQLModel, Field

from .schemas import (
    AppointmentStatus, CancelledBy, RecurrenceType, BanType,
    TimeRangeType, WaitlistStatus,
)

# Every table carries tenant_id; dates are ISO "YYYY-MM-DD" strings and
# times are "HH:MM" strings in the shop's timezone.
# Timestamps are naive shop-local datetimes.


def timestamp_column(nullable: bool = False) -> Column:
    return Column(DateTime(timezone=False), nullable=nullable)


class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    tenant_id: str = Field(index=True)
    email: str = Field(index=True, unique=True)
    password_hash: str
    role: str = "admin"


class Barber(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    tenant_id: str = Field(index=True)
    name: str
    is_active: bool = True
    slot_duration: int = 30


class WorkingHour(SQLModel, table=True):
    __table_args__ = (
        UniqueConstraint("tenant_id", "barber_id", "day_of_week", name="uq_working_hour_day"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    tenant_id: str = Field(index=True)
    barber_id: int = Field(foreign_key="barber.id", index=True)
    day_of_week: int  # 0 = Monday ... 6 = Sunday
    start_time: str
    end_time: str
    is_working: bool = True


class WorkingHourOverride(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    tenant_id: str = Field(index=True)
    barber_id: int = Field(foreign_key="barber.id", index=True)
    date: str = Field(index=True)
    start_time: str
    end_time: str
    reason: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now, sa_column=timestamp_column())


class Subscription(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    tenant_id: str = Field(index=True)
    barber_id: int = Field(foreign_key="barber.id", index=True)
    customer_name: str
    customer_phone: str = Field(index=True)
    recurrence_type: RecurrenceType
    day_of_week: int  # 1 = Monday ... 7 = Sunday
    week_of_month: Optional[int] = None
    start_time: str
    duration_minutes: int
    start_date: str
    end_date: Optional[str] = None
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.now, sa_column=timestamp_column())


class AppointmentRequest(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    tenant_id: str = Field(index=True)
    barber_id: int = Field(foreign_key="barber.id", index=True)
    customer_name: str
    customer_phone: str = Field(index=True)
    customer_email: Optional[str] = None
    date: str = Field(index=True)
    requested_start_time: str
    requested_end_time: Optional[str] = None
    service_type: Optional[str] = None
    status: AppointmentStatus = Field(default=AppointmentStatus.pending, index=True)
    cancelled_by: Optional[CancelledBy] = None
    subscription_id: Optional[int] = Field(default=None, foreign_key="subscription.id", index=True)
    created_at: datetime = Field(default_factory=datetime.now, sa_column=timestamp_column())
    updated_at: datetime = Field(default_factory=datetime.now, sa_column=timestamp_column())


class AppointmentSlot(SQLModel, table=True):
    """Barber time actually held by an approved request."""

    __table_args__ = (
        UniqueConstraint("tenant_id", "barber_id", "date", "start_time", name="uq_slot_barber_start"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    tenant_id: str = Field(index=True)
    barber_id: int = Field(foreign_key="barber.id", index=True)
    appointment_request_id: int = Field(foreign_key="appointmentrequest.id", unique=True)
    date: str = Field(index=True)
    start_time: str
    end_time: str


class BarberDayLock(SQLModel, table=True):
    """One row per barber and date; reserving transactions update it first."""

    __table_args__ = (
        UniqueConstraint("tenant_id", "barber_id", "date", name="uq_barber_day_lock"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    tenant_id: str
    barber_id: int
    date: str
    version: int = 0


class BannedCustomer(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    tenant_id: str = Field(index=True)
    customer_phone: str = Field(index=True)
    customer_name: str
    reason: Optional[str] = None
    ban_type: BanType = BanType.permanent
    banned_at: datetime = Field(default_factory=datetime.now, sa_column=timestamp_column())
    banned_until: Optional[datetime] = Field(default=None, sa_column=timestamp_column(nullable=True))
    is_active: bool = True


class AppointmentWaitlist(SQLModel, table=True):
    __table_args__ = (
        UniqueConstraint("tenant_id", "customer_phone", "barber_id", "preferred_date", name="uq_waitlist_entry"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    tenant_id: str = Field(index=True)
    customer_phone: str
    customer_name: str
    barber_id: int = Field(foreign_key="barber.id", index=True)
    preferred_date: str = Field(index=True)
    time_range_type: TimeRangeType
    status: WaitlistStatus = WaitlistStatus.active
    created_at: datetime = Field(default_factory=datetime.now, sa_column=timestamp_column())
    notified_at: Optional[datetime] = Field(default=None, sa_column=timestamp_column(nullable=True))
