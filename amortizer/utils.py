"""Utility functions for the amortizer.

This module provides helpers for parsing user input into Python data types,
for calendar arithmetic on payment dates and for rounding monetary values to
cents. It uses Python's ``datetime`` and ``calendar`` modules to calculate
month offsets and ``decimal`` to round without binary floating point drift.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP

_CENTS = Decimal("1")


def parse_iso_date(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` string into a ``date`` object.

    Raises
    ------
    ValueError
        If the string is not a valid calendar date.
    """
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except Exception as exc:
        raise ValueError(f"Invalid date string: {value}") from exc


def to_date(value) -> date:
    """Truncate ``value`` to a ``date``.

    Accepts ``date``, ``datetime`` (time of day is dropped) and ISO strings.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return parse_iso_date(str(value))


def add_months(dt: date, months: int) -> date:
    """Return a new date a number of months after ``dt``.

    The day of the month is clamped to the last valid day if needed (e.g.,
    adding one month to Jan 31 yields Feb 28 or 29).
    """
    year = dt.year + (dt.month - 1 + months) // 12
    month = (dt.month - 1 + months) % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def round_money(value: float) -> float:
    """Round a monetary amount to cents, half away from zero.

    The amount is scaled to cents as a float first and the scaled value is
    rounded, so results agree with ``Math.round(value * 100) / 100`` for the
    non-negative amounts found in a schedule.
    """
    cents = Decimal(value * 100).quantize(_CENTS, rounding=ROUND_HALF_UP)
    return float(cents) / 100

