import threading

import pytest
from sqlmodel import Session, SQLModel, select

from barbershop.appointments import approve_request
from barbershop.config import Settings
from barbershop.context import SchedulingContext
from barbershop.core import FixedClock
from barbershop.db import make_engine
from barbershop.errors import ConflictError
from barbershop.models import AppointmentRequest, AppointmentSlot, Barber
from barbershop.schemas import AppointmentStatus

from conftest import NOW, RecordingAuditSink, RecordingNotifier, add_barber, customer_request


def _context(session):
    return SchedulingContext(
        session=session,
        tenant_id="shop-a",
        clock=FixedClock(NOW),
        notifier=RecordingNotifier(),
        audit_sink=RecordingAuditSink(),
        settings=Settings(),
    )


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'shop.db'}"


@pytest.fixture
def file_engine(db_url):
    engine = make_engine(db_url, busy_timeout=5)
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def pending_pair(file_engine):
    """Two pending requests from different customers for the same 12:00 window."""
    with Session(file_engine) as session:
        ctx = _context(session)
        barber = add_barber(ctx)
        first = customer_request(ctx, barber, "12:00", phone="05320000001")
        second = customer_request(ctx, barber, "12:00", phone="05320000002")
        return first.id, second.id


def test_simultaneous_approvals_of_one_window(file_engine, pending_pair):
    barrier = threading.Barrier(2)
    outcomes = {}

    def approve(request_id):
        with Session(file_engine) as session:
            ctx = _context(session)
            barrier.wait()
            try:
                approve_request(ctx, request_id, 30)
                outcomes[request_id] = "approved"
            except ConflictError:
                outcomes[request_id] = "conflict"

    threads = [threading.Thread(target=approve, args=(request_id,)) for request_id in pending_pair]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(outcomes.values()) == ["approved", "conflict"]
    with Session(file_engine) as session:
        assert len(session.exec(select(AppointmentSlot)).all()) == 1
        statuses = sorted(session.get(AppointmentRequest, rid).status.value for rid in pending_pair)
        assert statuses == ["approved", "pending"]


def test_lock_timeout_is_reported_as_conflict(db_url, file_engine, pending_pair):
    impatient = make_engine(db_url, busy_timeout=0.1)
    first_id = pending_pair[0]

    with Session(file_engine) as holder:
        # any statement opens a transaction that holds the write lock
        holder.exec(select(Barber)).first()
        with Session(impatient) as session:
            with pytest.raises(ConflictError):
                approve_request(_context(session), first_id, 30)
    impatient.dispose()

    with Session(file_engine) as session:
        assert session.get(AppointmentRequest, first_id).status == AppointmentStatus.pending
        assert session.exec(select(AppointmentSlot)).all() == []
