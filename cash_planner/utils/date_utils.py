"""Calendar arithmetic for month buckets and due dates"""

import calendar
from datetime import date, timedelta
from typing import Optional, Tuple


def shift_month(year: int, month: int, n: int) -> Tuple[int, int]:
    """
    Move (year, month) by n months, carrying overflow into the year.

    Example:
        shift_month(2024, 12, 2) -> (2025, 2)
        shift_month(2024, 1, -1) -> (2023, 12)
    """
    carry, zero_based = divmod(month - 1 + n, 12)
    return year + carry, zero_based + 1


def last_day_of_month(year: int, month: int) -> int:
    """Number of days in the month (28/29 for February, 30 or 31 otherwise)"""
    return calendar.monthrange(year, month)[1]


def clamped_date(year: int, month: int, day: int) -> date:
    """Build a date, clamping the day into the month (Feb 31 -> Feb 28/29)"""
    return date(year, month, max(1, min(day, last_day_of_month(year, month))))


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    """First and last calendar day of the month"""
    return date(year, month, 1), date(year, month, last_day_of_month(year, month))


def in_month(d: Optional[date], year: int, month: int) -> bool:
    """True when d falls in the given calendar month (a missing date never does)"""
    return d is not None and d.year == year and d.month == month


def week_start(d: date) -> date:
    """Monday of the ISO week containing d"""
    return d - timedelta(days=d.weekday())
