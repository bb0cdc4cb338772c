from datetime import datetime

import pytest

from barbershop.core import (
    FixedClock, hours_until, is_in_past, minutes_now, minutes_to_time,
    overlaps, overlaps_hhmm, parse_date, parse_time_to_minutes, today_str,
)
from barbershop.data import duration_for_service, validate_duration
from barbershop.errors import ValidationError
from barbershop.phone import normalize_phone, validate_phone


def test_time_parsing_and_formatting():
    assert parse_time_to_minutes("00:00") == 0
    assert parse_time_to_minutes("09:30") == 570
    assert parse_time_to_minutes("23:59") == 1439
    assert minutes_to_time(570) == "09:30"
    assert minutes_to_time(0) == "00:00"


@pytest.mark.parametrize("value", ["", "9", "24:00", "12:60", "ab:cd"])
def test_malformed_times_are_rejected(value):
    with pytest.raises(ValidationError):
        parse_time_to_minutes(value)


def test_minutes_out_of_range_are_rejected():
    with pytest.raises(ValidationError):
        minutes_to_time(1440)
    with pytest.raises(ValidationError):
        minutes_to_time(-1)


def test_overlap_is_half_open():
    assert overlaps(600, 660, 630, 690)
    assert not overlaps(600, 660, 660, 720)
    assert not overlaps(660, 720, 600, 660)
    assert overlaps_hhmm("10:00", "11:00", "10:30", "10:45")
    assert not overlaps_hhmm("10:00", "10:30", "10:30", "11:00")


def test_parse_date():
    assert parse_date("2025-01-15").isoformat() == "2025-01-15"
    with pytest.raises(ValidationError):
        parse_date("15.01.2025")


def test_fixed_clock_helpers():
    clock = FixedClock(datetime(2025, 1, 15, 8, 0))
    assert today_str(clock) == "2025-01-15"
    assert minutes_now(clock) == 480
    assert is_in_past(clock, "2025-01-15", "08:00")
    assert not is_in_past(clock, "2025-01-15", "08:01")
    assert hours_until(clock, "2025-01-15", "10:00") == pytest.approx(2.0)

    clock.advance(hours=3)
    assert minutes_now(clock) == 660


def test_phone_normalization():
    assert normalize_phone("05321234567") == "+905321234567"
    assert normalize_phone("905321234567") == "+905321234567"
    assert normalize_phone("+90 532 123 45 67") == "+905321234567"
    assert normalize_phone("5321234567") == "+905321234567"
    assert validate_phone("0532 123 4567") == "+905321234567"
    with pytest.raises(ValidationError):
        validate_phone("0212123456")


def test_service_durations():
    assert duration_for_service("haircut") == 30
    assert duration_for_service("haircut_and_beard") == 60
    assert duration_for_service(None) == 30
    assert duration_for_service("beard", service_selection_enabled=False) == 60
    with pytest.raises(ValidationError):
        duration_for_service("massage")
    with pytest.raises(ValidationError):
        validate_duration(45)
