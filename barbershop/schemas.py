# barbershop/schemas.py

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class UserRole(str, Enum):
    admin = "admin"


class AppointmentStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    cancelled = "cancelled"
    done = "done"


class CancelledBy(str, Enum):
    customer = "customer"
    admin = "admin"
    system = "system"


class RecurrenceType(str, Enum):
    weekly = "weekly"
    biweekly = "biweekly"
    monthly = "monthly"


class BanType(str, Enum):
    permanent = "permanent"
    temporary = "temporary"


class TimeRangeType(str, Enum):
    morning = "morning"
    evening = "evening"


class WaitlistStatus(str, Enum):
    active = "active"
    notified = "notified"


# --- users / auth ---

class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserPublic(BaseModel):
    id: int
    email: str
    role: UserRole
    tenant_id: str


class UserCreate(BaseModel):
    email: str
    password: str = Field(min_length=8, max_length=72)
    role: UserRole = UserRole.admin
    tenant_id: Optional[str] = None


# --- barbers / working hours ---

class BarberCreate(BaseModel):
    name: str
    slot_duration: int = 30


class BarberPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    is_active: bool
    slot_duration: int


class DeactivateBarberResult(BaseModel):
    barber_id: int
    cancelled_count: int


class WorkingHourUpdate(BaseModel):
    start_time: str
    end_time: str
    is_working: bool = True


class WorkingHourPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    barber_id: int
    day_of_week: int
    start_time: str
    end_time: str
    is_working: bool


class Hours(BaseModel):
    start_time: str
    end_time: str


class OverrideCreate(BaseModel):
    date: str
    start_time: str
    end_time: str
    reason: Optional[str] = None
    notify_customers: bool = False


class OverridePublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    barber_id: int
    date: str
    start_time: str
    end_time: str
    reason: Optional[str] = None
    created_at: datetime


class OverrideResult(BaseModel):
    override_id: int
    cancelled_count: int = 0
    notified_count: int = 0


# --- availability ---

class TimeSlot(BaseModel):
    start_time: str
    end_time: str


class TimeButton(BaseModel):
    time: str
    disabled: bool


class AvailabilityResponse(BaseModel):
    barber_id: int
    date: str
    slots: List[TimeSlot]


class TimeButtonsResponse(BaseModel):
    barber_id: int
    date: str
    duration_minutes: int
    buttons: List[TimeButton]


# --- appointments ---

class AppointmentRequestCreate(BaseModel):
    barber_id: int
    customer_name: str
    customer_phone: str
    customer_email: Optional[str] = None
    date: str
    requested_start_time: str
    requested_end_time: Optional[str] = None
    service_type: Optional[str] = None
    duration_minutes: Optional[int] = None


class AdminAppointmentCreate(BaseModel):
    barber_id: int
    customer_name: str
    customer_phone: str
    customer_email: Optional[str] = None
    date: str
    requested_start_time: str
    duration_minutes: int


class ApproveAppointment(BaseModel):
    approved_duration_minutes: int


class CancelAppointment(BaseModel):
    reason: Optional[str] = None


class CustomerCancel(BaseModel):
    customer_phone: str


class AppointmentPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    barber_id: int
    customer_name: str
    customer_phone: str
    date: str
    requested_start_time: str
    requested_end_time: Optional[str] = None
    service_type: Optional[str] = None
    status: AppointmentStatus
    cancelled_by: Optional[CancelledBy] = None
    subscription_id: Optional[int] = None


# --- subscriptions ---

class SubscriptionCreate(BaseModel):
    barber_id: int
    customer_name: str
    customer_phone: str
    recurrence_type: RecurrenceType
    day_of_week: int  # 1 = Monday ... 7 = Sunday
    week_of_month: Optional[int] = None
    start_time: str
    duration_minutes: int
    start_date: str
    end_date: Optional[str] = None


class SubscriptionUpdate(BaseModel):
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    recurrence_type: Optional[RecurrenceType] = None
    day_of_week: Optional[int] = None
    week_of_month: Optional[int] = None
    start_time: Optional[str] = None
    duration_minutes: Optional[int] = None
    end_date: Optional[str] = None


class SubscriptionPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    barber_id: int
    customer_name: str
    customer_phone: str
    recurrence_type: RecurrenceType
    day_of_week: int
    week_of_month: Optional[int] = None
    start_time: str
    duration_minutes: int
    start_date: str
    end_date: Optional[str] = None
    is_active: bool


class GeneratedOccurrences(BaseModel):
    subscription_id: int
    created_count: int
    dates: List[str]


# --- bans / waitlist ---

class BanCreate(BaseModel):
    customer_phone: str
    customer_name: str
    reason: Optional[str] = None
    ban_type: BanType = BanType.permanent
    banned_until: Optional[datetime] = None


class BanPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    customer_phone: str
    customer_name: str
    reason: Optional[str] = None
    ban_type: BanType
    banned_until: Optional[datetime] = None
    is_active: bool


class WaitlistCreate(BaseModel):
    customer_phone: str
    customer_name: str
    barber_id: int
    preferred_date: str
    time_range_type: TimeRangeType


class WaitlistPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    customer_phone: str
    customer_name: str
    barber_id: int
    preferred_date: str
    time_range_type: TimeRangeType
    status: WaitlistStatus
    notified_at: Optional[datetime] = None


class TimeRange(BaseModel):
    start: str
    end: str


class TimeRanges(BaseModel):
    morning: TimeRange
    evening: TimeRange
