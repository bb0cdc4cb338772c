# barbershop/core.py
"""Minute-of-day arithmetic and the shop clock.

All scheduling math works on integer minutes since midnight. Dates travel as
ISO ``YYYY-MM-DD`` strings and times as ``HH:MM`` strings, both in the shop's
single fixed timezone.
"""

from datetime import date, datetime, timedelta
from typing import Protocol
from zoneinfo import ZoneInfo

from .errors import ValidationError

MINUTES_PER_DAY = 24 * 60


def parse_time_to_minutes(value: str) -> int:
    if not value:
        raise ValidationError("Time is required")
    parts = value.strip().split(":")
    if len(parts) < 2:
        raise ValidationError(f"Invalid time format: {value}")
    try:
        hours, minutes = int(parts[0]), int(parts[1])
    except ValueError:
        raise ValidationError(f"Invalid time format: {value}")
    if not (0 <= hours <= 23) or not (0 <= minutes <= 59):
        raise ValidationError(f"Invalid time format: {value}")
    return hours * 60 + minutes


def minutes_to_time(minutes: int) -> str:
    if minutes < 0 or minutes >= MINUTES_PER_DAY:
        raise ValidationError(f"Minute value out of range: {minutes}")
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def overlaps(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    # half-open intervals [start, end)
    return a_start < b_end and b_start < a_end


def overlaps_hhmm(a_start: str, a_end: str, b_start: str, b_end: str) -> bool:
    return overlaps(
        parse_time_to_minutes(a_start),
        parse_time_to_minutes(a_end),
        parse_time_to_minutes(b_start),
        parse_time_to_minutes(b_end),
    )


def parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid date format: {value}")


class Clock(Protocol):
    def now(self) -> datetime:
        ...

    @property
    def tz(self) -> ZoneInfo:
        ...


class ShopClock:
    """Reads the system time, converted to the shop's timezone."""

    def __init__(self, timezone: str):
        self.tz = ZoneInfo(timezone)

    def now(self) -> datetime:
        return datetime.now(self.tz)


class FixedClock:
    """Always returns the same instant. Used by tests and replays."""

    def __init__(self, instant: datetime, timezone: str = "Europe/Istanbul"):
        self.tz = ZoneInfo(timezone)
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=self.tz)
        self._instant = instant.astimezone(self.tz)

    def now(self) -> datetime:
        return self._instant

    def advance(self, **kwargs) -> None:
        self._instant = self._instant + timedelta(**kwargs)


def appointment_datetime(day: str, time_str: str, tz: ZoneInfo) -> datetime:
    minutes = parse_time_to_minutes(time_str)
    d = parse_date(day)
    return datetime(d.year, d.month, d.day, minutes // 60, minutes % 60, tzinfo=tz)


def today_str(clock: Clock) -> str:
    return clock.now().date().isoformat()


def minutes_now(clock: Clock) -> int:
    now = clock.now()
    return now.hour * 60 + now.minute


def is_in_past(clock: Clock, day: str, time_str: str) -> bool:
    """True when the appointment start is at or before now."""
    return appointment_datetime(day, time_str, clock.tz) <= clock.now()


def hours_until(clock: Clock, day: str, time_str: str) -> float:
    delta = appointment_datetime(day, time_str, clock.tz) - clock.now()
    return delta.total_seconds() / 3600
