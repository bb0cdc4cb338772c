# barbershop/recurrence.py
"""Dates of a recurring subscription.

Pure and deterministic: the same subscription and starting date always give
the same list, so generation can be repeated safely.
"""

import calendar
from datetime import date, timedelta
from typing import List, Optional, Union

from .core import parse_date
from .schemas import RecurrenceType

# months without the requested weekday are skipped; bound the search anyway
MAX_ITERATIONS = 1000


def _as_date(value: Union[str, date, None]) -> Optional[date]:
    if value is None or isinstance(value, date):
        return value
    return parse_date(value)


def _first_on_or_after(cursor: date, iso_weekday: int) -> date:
    return cursor + timedelta(days=(iso_weekday - cursor.isoweekday()) % 7)


def nth_weekday_of_month(year: int, month: int, iso_weekday: int, week_of_month: int) -> Optional[date]:
    """The Nth given weekday of a month, or None when the month has fewer of them."""
    first = date(year, month, 1)
    day = 1 + (iso_weekday - first.isoweekday()) % 7 + (week_of_month - 1) * 7
    if day > calendar.monthrange(year, month)[1]:
        return None
    return date(year, month, day)


def _next_month(year: int, month: int):
    return (year + 1, 1) if month == 12 else (year, month + 1)


def next_occurrences(subscription, from_date: Union[str, date], max_count: int) -> List[str]:
    """Up to ``max_count`` ISO dates on or after ``from_date`` (never before the start date)."""
    start_date = _as_date(subscription.start_date)
    end_date = _as_date(subscription.end_date)
    cursor = max(_as_date(from_date), start_date)
    iso_weekday = subscription.day_of_week
    recurrence = RecurrenceType(subscription.recurrence_type)

    dates = []
    if max_count <= 0:
        return dates

    if recurrence == RecurrenceType.monthly:
        week_of_month = subscription.week_of_month or 1
        year, month = cursor.year, cursor.month
        for _ in range(MAX_ITERATIONS):
            if end_date is not None and date(year, month, 1) > end_date:
                break
            candidate = nth_weekday_of_month(year, month, iso_weekday, week_of_month)
            year, month = _next_month(year, month)
            if candidate is None or candidate < cursor:
                continue
            if end_date is not None and candidate > end_date:
                break
            dates.append(candidate.isoformat())
            if len(dates) >= max_count:
                break
        return dates

    step = timedelta(days=14 if recurrence == RecurrenceType.biweekly else 7)
    # biweekly keeps the parity of the start date when generation resumes later
    current = _first_on_or_after(start_date, iso_weekday)
    if current < cursor:
        current += step * -(-(cursor - current).days // step.days)
    for _ in range(MAX_ITERATIONS):
        if end_date is not None and current > end_date:
            break
        dates.append(current.isoformat())
        if len(dates) >= max_count:
            break
        current += step
    return dates
