import pytest

from barbershop.availability import (
    compute_available_slots, compute_time_buttons, find_conflict, reservation_view,
)
from barbershop.errors import NotFoundError, PolicyError, ValidationError
from barbershop.models import AppointmentRequest
from barbershop.overrides import create_override
from barbershop.schemas import AppointmentStatus, CancelledBy

from conftest import TODAY, TOMORROW, add_barber, book, customer_request


def _buttons(ctx, barber, day=TOMORROW, duration=30, **kwargs):
    return {b.time: b.disabled for b in compute_time_buttons(ctx, barber.id, day, duration, **kwargs)}


def test_fixed_grid_covers_working_hours(ctx, barber):
    slots = compute_available_slots(ctx, barber.id, TOMORROW)
    assert len(slots) == 16
    assert (slots[0].start_time, slots[0].end_time) == ("10:00", "10:30")
    assert (slots[-1].start_time, slots[-1].end_time) == ("17:30", "18:00")


def test_fixed_grid_uses_barber_slot_duration(ctx):
    barber = add_barber(ctx, name="Veli", start="10:00", end="12:45", slot_duration=60)
    slots = compute_available_slots(ctx, barber.id, TOMORROW)
    assert [s.start_time for s in slots] == ["10:00", "11:00"]


def test_fixed_grid_skips_booked_and_closed_windows(ctx, barber):
    book(ctx, barber, "10:00", duration=60)
    create_override(ctx, barber.id, TOMORROW, "15:00", "16:00")

    starts = [s.start_time for s in compute_available_slots(ctx, barber.id, TOMORROW)]
    assert "10:00" not in starts and "10:30" not in starts
    assert "15:00" not in starts and "15:30" not in starts
    assert "11:00" in starts and "16:00" in starts


def test_fixed_grid_ignores_pending_requests(ctx, barber):
    customer_request(ctx, barber, "12:00")
    starts = [s.start_time for s in compute_available_slots(ctx, barber.id, TOMORROW)]
    assert "12:00" in starts


def test_fixed_grid_today_skips_started_windows(ctx, barber, clock):
    clock.advance(hours=4, minutes=10)  # 12:10
    starts = [s.start_time for s in compute_available_slots(ctx, barber.id, TODAY)]
    assert starts[0] == "12:30"


def test_closed_weekday_has_no_availability(ctx):
    barber = add_barber(ctx, name="Hasan", days=range(5))
    saturday = "2025-01-18"
    assert compute_available_slots(ctx, barber.id, saturday) == []
    assert compute_time_buttons(ctx, barber.id, saturday, 30) == []


def test_past_dates_have_no_availability(ctx, barber):
    assert compute_available_slots(ctx, barber.id, "2025-01-14") == []
    assert compute_time_buttons(ctx, barber.id, "2025-01-14", 30) == []


def test_unknown_and_inactive_barbers(ctx, barber):
    with pytest.raises(NotFoundError):
        compute_available_slots(ctx, 9999, TOMORROW)

    barber.is_active = False
    ctx.session.add(barber)
    ctx.session.commit()
    with pytest.raises(PolicyError):
        compute_time_buttons(ctx, barber.id, TOMORROW, 30)


def test_buttons_reject_unsupported_durations(ctx, barber):
    with pytest.raises(ValidationError):
        compute_time_buttons(ctx, barber.id, TOMORROW, 45)


def test_buttons_grid_for_30_and_60_minutes(ctx, barber):
    thirty = _buttons(ctx, barber, duration=30)
    assert list(thirty)[:3] == ["10:00", "10:30", "11:00"]
    assert not any(thirty.values())

    sixty = _buttons(ctx, barber, duration=60)
    assert list(sixty) == [f"{h:02d}:00" for h in range(10, 18)]
    assert not any(sixty.values())


def test_window_past_closing_is_disabled(ctx):
    short_day = add_barber(ctx, name="Kemal", start="10:00", end="17:30")
    buttons = _buttons(ctx, short_day, duration=60)
    assert buttons["16:00"] is False
    assert buttons["17:00"] is True


def test_single_service_shop_uses_full_length(ctx, barber):
    buttons = compute_time_buttons(ctx, barber.id, TOMORROW, 30, service_selection_enabled=False)
    by_time = {b.time: b.disabled for b in buttons}
    # evaluated as a full 60 minute service
    assert "17:30" not in by_time
    assert by_time["17:00"] is False


def test_gap_after_block_on_half_hour_boundary(ctx, barber):
    book(ctx, barber, "10:30", duration=60)
    buttons = _buttons(ctx, barber, duration=60)

    assert buttons["10:00"] is True
    assert buttons["11:00"] is True
    # off the hourly grid, right behind the booking
    assert buttons["11:30"] is False
    assert list(buttons) == sorted(buttons)


def test_gap_after_block_on_grid(ctx, barber):
    book(ctx, barber, "10:00", duration=60)
    buttons = _buttons(ctx, barber, duration=30)
    assert buttons["10:00"] is True
    assert buttons["10:30"] is True
    assert buttons["11:00"] is False


def test_pending_request_disables_button_but_not_conflict_check(ctx, barber):
    customer_request(ctx, barber, "12:00")
    assert _buttons(ctx, barber)["12:00"] is True
    assert find_conflict(ctx, barber.id, TOMORROW, "12:00", "12:30") is None

    view = reservation_view(ctx, barber.id, TOMORROW)
    assert [(r.start, r.end) for r in view.tentative] == [(720, 750)]


def test_same_day_lead_time(ctx, barber, clock):
    buttons = compute_time_buttons(ctx, barber.id, TODAY, 30)
    assert buttons[0].time == "11:00"

    clock.advance(hours=4, minutes=10)  # 12:10, earliest bookable 15:10
    buttons = compute_time_buttons(ctx, barber.id, TODAY, 30)
    assert buttons[0].time == "15:30"
    assert all(b.time >= "15:10" for b in buttons)


def test_booking_and_closure_scenario(ctx, barber):
    booking = book(ctx, barber, "14:00", duration=30)

    buttons = _buttons(ctx, barber)
    assert buttons["14:00"] is True
    assert buttons["14:30"] is False

    result = create_override(ctx, barber.id, TOMORROW, "13:00", "15:00")
    assert result.cancelled_count == 1

    cancelled = ctx.get(AppointmentRequest, booking.id)
    assert cancelled.status == AppointmentStatus.cancelled
    assert cancelled.cancelled_by == CancelledBy.system

    buttons = _buttons(ctx, barber)
    for time in ("13:00", "13:30", "14:00", "14:30"):
        assert buttons[time] is True
    assert buttons["12:00"] is False
    assert buttons["15:00"] is False
