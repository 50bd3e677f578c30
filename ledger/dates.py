"""
Month arithmetic.

One policy for every month shift in the ledger: when the requested
day-of-month does not exist in the target month it is clamped to the
month's last day (Jan 31 + 1 month -> Feb 28/29; due day 31 in April ->
Apr 30). The invoice cycle calculator and the installment expander both
go through add_months.
"""

import calendar
from datetime import date
from typing import Optional


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def add_months(start: date, months: int, day: Optional[int] = None) -> date:
    """
    Shift `start` by a number of calendar months.

    Args:
        start: Base date
        months: Months to add (may be negative)
        day: Day-of-month for the result. Defaults to start.day.

    Returns:
        The shifted date, with the day clamped to the target month length.
    """
    index = start.year * 12 + (start.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    wanted = start.day if day is None else day
    return date(year, month, min(wanted, days_in_month(year, month)))


def month_key(d: date) -> str:
    """Calendar month of a date as 'YYYY-MM'."""
    return f"{d.year:04d}-{d.month:02d}"


def in_month(d: Optional[date], year: int, month: int) -> bool:
    return d is not None and d.year == year and d.month == month
