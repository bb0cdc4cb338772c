import calendar
from datetime import date, timedelta
from types import SimpleNamespace

import pytest

from barbershop.recurrence import next_occurrences, nth_weekday_of_month


def _subscription(recurrence_type, day_of_week, start_date, week_of_month=None, end_date=None):
    return SimpleNamespace(
        recurrence_type=recurrence_type,
        day_of_week=day_of_week,
        week_of_month=week_of_month,
        start_date=start_date,
        end_date=end_date,
    )


def test_weekly_monday_subscription():
    sub = _subscription("weekly", 1, "2025-01-20")
    dates = next_occurrences(sub, "2025-01-15", 5)

    assert dates == ["2025-01-20", "2025-01-27", "2025-02-03", "2025-02-10", "2025-02-17"]
    parsed = [date.fromisoformat(d) for d in dates]
    assert all(d.isoweekday() == 1 for d in parsed)
    assert all(b - a == timedelta(days=7) for a, b in zip(parsed, parsed[1:]))


def test_generation_is_deterministic():
    sub = _subscription("monthly", 5, "2025-01-01", week_of_month=5)
    assert next_occurrences(sub, "2025-01-01", 12) == next_occurrences(sub, "2025-01-01", 12)


def test_start_date_bounds_the_cursor():
    sub = _subscription("weekly", 3, "2025-03-05")
    assert next_occurrences(sub, "2025-01-01", 1) == ["2025-03-05"]


def test_biweekly_keeps_start_date_parity():
    sub = _subscription("biweekly", 1, "2025-01-20")
    assert next_occurrences(sub, "2025-01-20", 3) == ["2025-01-20", "2025-02-03", "2025-02-17"]
    # resuming a week later does not shift the series
    assert next_occurrences(sub, "2025-01-27", 2) == ["2025-02-03", "2025-02-17"]


def test_end_date_is_inclusive():
    sub = _subscription("weekly", 1, "2025-01-20", end_date="2025-02-03")
    assert next_occurrences(sub, "2025-01-20", 10) == ["2025-01-20", "2025-01-27", "2025-02-03"]


def test_monthly_fifth_weekday_skips_short_months():
    # Fridays: January and May 2025 have five, February to April have four
    sub = _subscription("monthly", 5, "2025-01-01", week_of_month=5)
    assert next_occurrences(sub, "2025-01-01", 2) == ["2025-01-31", "2025-05-30"]


def test_monthly_occurrence_before_cursor_moves_to_next_month():
    sub = _subscription("monthly", 1, "2025-01-10", week_of_month=1)
    # first Monday of January (the 6th) is before the start date
    assert next_occurrences(sub, "2025-01-10", 2) == ["2025-02-03", "2025-03-03"]


@pytest.mark.parametrize("year, month", [
    (2025, 2),   # 28 days
    (2024, 2),   # 29 days
    (2025, 4),   # 30 days
    (2025, 1),   # 31 days
])
@pytest.mark.parametrize("week_of_month", [1, 2, 3, 4, 5])
def test_monthly_across_month_lengths(year, month, week_of_month):
    days_in_month = calendar.monthrange(year, month)[1]
    start = date(year, month, 1).isoformat()
    for iso_weekday in range(1, 8):
        sub = _subscription("monthly", iso_weekday, start, week_of_month=week_of_month)
        dates = [date.fromisoformat(d) for d in next_occurrences(sub, start, 3)]

        assert len(dates) == 3
        for d in dates:
            assert d.isoweekday() == iso_weekday
            assert (d.day - 1) // 7 + 1 == week_of_month

        expected = nth_weekday_of_month(year, month, iso_weekday, week_of_month)
        if expected is None:
            assert week_of_month == 5
            assert dates[0].month != month
        else:
            assert expected.day <= days_in_month
            assert dates[0] == expected


def test_zero_count():
    assert next_occurrences(_subscription("weekly", 1, "2025-01-20"), "2025-01-20", 0) == []
