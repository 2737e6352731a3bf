"""Unit tests for calendar helpers and MonthId"""

from datetime import date
from cash_planner.domain.models import MonthId
from cash_planner.utils.date_utils import (
    clamped_date,
    in_month,
    last_day_of_month,
    month_bounds,
    shift_month,
    week_start,
)


def test_shift_month_carries_into_next_year():
    """December + 2 months lands in February of the next year"""
    assert shift_month(2024, 12, 2) == (2025, 2)
    assert MonthId(2024, 12).plus(2) == MonthId(2025, 2)


def test_shift_month_negative_borrows_from_year():
    assert shift_month(2024, 1, -1) == (2023, 12)
    assert shift_month(2024, 3, -15) == (2022, 12)


def test_shift_month_large_offsets():
    assert shift_month(2024, 6, 30) == (2026, 12)
    assert MonthId(2024, 6).plus(0) == MonthId(2024, 6)


def test_last_day_of_month_follows_gregorian_leap_rule():
    assert last_day_of_month(2024, 2) == 29
    assert last_day_of_month(2023, 2) == 28
    assert last_day_of_month(1900, 2) == 28  # divisible by 100, not by 400
    assert last_day_of_month(2000, 2) == 29
    assert last_day_of_month(2024, 4) == 30
    assert last_day_of_month(2024, 12) == 31


def test_clamped_date_caps_day_to_month_length():
    assert clamped_date(2023, 2, 31) == date(2023, 2, 28)
    assert clamped_date(2024, 2, 31) == date(2024, 2, 29)
    assert clamped_date(2024, 4, 15) == date(2024, 4, 15)
    assert clamped_date(2024, 4, 0) == date(2024, 4, 1)


def test_month_bounds_and_membership():
    first, last = month_bounds(2024, 3)
    assert (first, last) == (date(2024, 3, 1), date(2024, 3, 31))

    month = MonthId(2024, 3)
    assert month.first_day == first
    assert month.last_day == last
    assert month.contains(date(2024, 3, 31))
    assert not month.contains(date(2024, 4, 1))


def test_missing_date_is_never_in_a_month():
    assert in_month(None, 2024, 3) is False
    assert MonthId(2024, 3).contains(None) is False


def test_week_start_is_monday():
    assert week_start(date(2024, 3, 6)) == date(2024, 3, 4)  # Wednesday
    assert week_start(date(2024, 3, 4)) == date(2024, 3, 4)  # Monday
    assert week_start(date(2024, 3, 10)) == date(2024, 3, 4)  # Sunday


def test_month_id_formatting_and_ordering():
    assert str(MonthId(2024, 3)) == "2024-03"
    assert MonthId(2024, 12) < MonthId(2025, 1)
    assert MonthId.from_date(date(2024, 7, 14)) == MonthId(2024, 7)
    assert MonthId(2024, 12).next() == MonthId(2025, 1)
