from datetime import datetime

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel

from barbershop.appointments import create_admin_appointment, create_request
from barbershop.config import Settings
from barbershop.context import SchedulingContext
from barbershop.core import FixedClock
from barbershop.db import make_engine
from barbershop.models import Barber, WorkingHour
from barbershop.schemas import AdminAppointmentCreate, AppointmentRequestCreate

# Wednesday 2025-01-15 08:00 shop time
NOW = datetime(2025, 1, 15, 8, 0)
TODAY = "2025-01-15"
TOMORROW = "2025-01-16"
NEXT_MONDAY = "2025-01-20"

PHONE = "05321234567"
PHONE_NORMALIZED = "+905321234567"
ADMIN_PHONE = "+905550000000"


class RecordingNotifier:
    def __init__(self):
        self.sent = []

    def notify(self, event, recipient_phone, template_data):
        self.sent.append((event, recipient_phone, template_data))
        return True

    def events(self):
        return [event.value for event, _, _ in self.sent]


class RecordingAuditSink:
    def __init__(self):
        self.records = []

    def record(self, actor, action, entity_id, metadata):
        self.records.append((actor, action, entity_id, metadata))

    def actions(self):
        return [action.value for _, action, _, _ in self.records]


@pytest.fixture
def engine():
    engine = make_engine("sqlite://", poolclass=StaticPool)
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def audit_sink():
    return RecordingAuditSink()


@pytest.fixture
def settings():
    return Settings(admin_phone=ADMIN_PHONE)


@pytest.fixture
def ctx(session, clock, notifier, audit_sink, settings):
    return SchedulingContext(
        session=session,
        tenant_id="shop-a",
        clock=clock,
        notifier=notifier,
        audit_sink=audit_sink,
        settings=settings,
    )


def add_barber(ctx, name="Ali", start="10:00", end="18:00", days=range(7), slot_duration=30):
    barber = Barber(name=name, slot_duration=slot_duration)
    ctx.add(barber)
    ctx.session.commit()
    ctx.session.refresh(barber)
    for day in days:
        ctx.add(WorkingHour(barber_id=barber.id, day_of_week=day, start_time=start, end_time=end))
    ctx.session.commit()
    return barber


@pytest.fixture
def barber(ctx):
    return add_barber(ctx)


def book(ctx, barber, time, duration=30, day=TOMORROW, phone="05329998877", name="Ayse"):
    """Admin booking: approved at birth, holds a slot."""
    return create_admin_appointment(ctx, AdminAppointmentCreate(
        barber_id=barber.id, customer_name=name, customer_phone=phone,
        date=day, requested_start_time=time, duration_minutes=duration,
    ))


def customer_request(ctx, barber, time, day=TOMORROW, phone=PHONE, name="Mehmet", duration=30):
    """Customer request: pending, holds no slot."""
    return create_request(ctx, AppointmentRequestCreate(
        barber_id=barber.id, customer_name=name, customer_phone=phone,
        date=day, requested_start_time=time, duration_minutes=duration,
    ))
