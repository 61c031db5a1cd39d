"""Calendar arithmetic for loan terms."""

import calendar
from datetime import date


def add_months(start: date, months: int) -> date:
    """
    Return ``start`` shifted by ``months`` calendar months.

    The day is clamped to the last day of the target month, so
    31 August + 6 months is 28/29 February.
    """
    if months < 0:
        raise ValueError(f"months must be non-negative, got {months}")
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)
