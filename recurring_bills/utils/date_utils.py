"""Date manipulation utilities"""

import calendar
from datetime import date, datetime, timedelta
from typing import Optional


def end_of_month(day: date) -> date:
    """Last day of the month containing ``day``"""
    return date(day.year, day.month, calendar.monthrange(day.year, day.month)[1])


def add_months(day: date, months: int) -> date:
    """Shift by whole calendar months, clamping to the target month's last day"""
    index = day.year * 12 + (day.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    last = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last))


def advance(anchor: date, frequency: str, steps: int) -> date:
    """Date of the ``steps``-th occurrence after ``anchor`` for a bill frequency.

    Calendar frequencies are computed from the anchor rather than chained,
    so a bill due on the 31st comes back to the 31st after a short month.
    Unknown frequencies behave as monthly.
    """
    if frequency == "weekly":
        return anchor + timedelta(weeks=steps)
    if frequency == "quarterly":
        return add_months(anchor, 3 * steps)
    if frequency == "yearly":
        return add_months(anchor, 12 * steps)
    return add_months(anchor, steps)


def parse_api_date(value: str | date | None) -> Optional[date]:
    """Parse an ISO date or date-time from the API into a date (time part dropped)"""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])
