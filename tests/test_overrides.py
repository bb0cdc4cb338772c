import pytest

import barbershop.overrides as overrides_module
from barbershop.errors import NotFoundError, ValidationError
from barbershop.models import AppointmentRequest, AppointmentSlot, WorkingHourOverride
from barbershop.overrides import create_override, delete_override, list_overrides
from barbershop.reservations import slot_for_request
from barbershop.schemas import AppointmentStatus, CancelledBy
from barbershop.working_hours import resolve_hours, upsert_working_hour

from conftest import ADMIN_PHONE, TOMORROW, book, customer_request


def test_override_cancels_covered_appointments_only(ctx, barber, audit_sink):
    covered = book(ctx, barber, "13:30", duration=60)
    untouched = book(ctx, barber, "16:00", phone="05321110000")
    tentative = customer_request(ctx, barber, "14:30")

    result = create_override(ctx, barber.id, TOMORROW, "14:00", "15:00", reason="Meeting")

    assert result.cancelled_count == 2
    assert result.notified_count == 0
    assert ctx.get(AppointmentRequest, covered.id).cancelled_by == CancelledBy.system
    assert ctx.get(AppointmentRequest, tentative.id).status == AppointmentStatus.cancelled
    assert ctx.get(AppointmentRequest, untouched.id).status == AppointmentStatus.approved
    assert slot_for_request(ctx, covered.id) is None
    assert audit_sink.actions().count("APPOINTMENT_CANCELLED_BY_OVERRIDE") == 2
    assert "WORKING_HOUR_OVERRIDE_CREATED" in audit_sink.actions()


def test_override_notifies_customers_and_admin_when_asked(ctx, barber, notifier):
    booked = book(ctx, barber, "12:00")
    notifier.sent.clear()

    result = create_override(ctx, barber.id, TOMORROW, "11:00", "13:00", notify_customers=True)

    assert result.notified_count == 1
    assert notifier.events() == ["appointment_cancelled_approved", "override_cancellations_admin"]
    assert notifier.sent[0][1] == booked.customer_phone
    assert notifier.sent[0][2]["reason"] == "Closed by the shop"
    assert notifier.sent[1][1] == ADMIN_PHONE


def test_override_cascade_is_all_or_nothing(ctx, barber, monkeypatch):
    booked = book(ctx, barber, "12:00")

    def fail(*args, **kwargs):
        raise RuntimeError("database went away")

    monkeypatch.setattr(overrides_module, "cancel_in_transaction", fail)
    with pytest.raises(RuntimeError):
        create_override(ctx, barber.id, TOMORROW, "11:00", "13:00")

    assert ctx.session.exec(ctx.select(WorkingHourOverride)).all() == []
    assert ctx.get(AppointmentRequest, booked.id).status == AppointmentStatus.approved
    assert len(ctx.session.exec(ctx.select(AppointmentSlot)).all()) == 1


def test_override_validation(ctx, barber):
    with pytest.raises(ValidationError):
        create_override(ctx, barber.id, TOMORROW, "15:00", "15:00")
    with pytest.raises(NotFoundError):
        create_override(ctx, 9999, TOMORROW, "10:00", "11:00")


def test_override_replaces_resolved_hours(ctx, barber):
    assert resolve_hours(ctx, barber.id, TOMORROW).start_time == "10:00"
    create_override(ctx, barber.id, TOMORROW, "12:00", "14:00")

    hours = resolve_hours(ctx, barber.id, TOMORROW)
    assert (hours.start_time, hours.end_time) == ("12:00", "14:00")


def test_closed_weekday_ignores_override(ctx, barber):
    # TOMORROW is a Thursday
    upsert_working_hour(ctx, barber.id, 3, "10:00", "18:00", is_working=False)
    create_override(ctx, barber.id, TOMORROW, "12:00", "14:00")
    assert resolve_hours(ctx, barber.id, TOMORROW) is None


def test_delete_override_reopens_time(ctx, barber):
    result = create_override(ctx, barber.id, TOMORROW, "12:00", "14:00")
    assert len(list_overrides(ctx, barber.id, TOMORROW)) == 1

    delete_override(ctx, result.override_id)
    assert list_overrides(ctx, barber.id) == []
    with pytest.raises(NotFoundError):
        delete_override(ctx, result.override_id)
