"""Utility functions for the mortgage calculator.

This module provides helpers for parsing user input into Python data types,
for handling dates (adding months, parsing ISO or year-month strings) and for
rounding decimals at the output boundary. It also holds the default decimal
context used by the engine.
"""

from __future__ import annotations

from datetime import date
from decimal import Context, Decimal, InvalidOperation, ROUND_HALF_EVEN, ROUND_HALF_UP
import calendar
from typing import Any, Optional

from .errors import InvalidInput

# Immutable by convention: pass it (or your own Context) into the engine
# instead of changing the thread's current context.
DEFAULT_CONTEXT = Context(prec=28, rounding=ROUND_HALF_EVEN)

CENT = Decimal("0.01")
RATE_QUANTUM = Decimal("0.000001")


def parse_date(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` or ``YYYY-MM`` string into a ``date``.

    A year-month string maps to the first day of that month.

    Raises
    ------
    InvalidInput
        If the string is not a valid date.
    """
    try:
        parts = value.strip().split("-")
        if len(parts) < 2:
            raise ValueError
        year = int(parts[0])
        month = int(parts[1])
        day = int(parts[2][:2]) if len(parts) > 2 else 1
        return date(year, month, day)
    except (AttributeError, ValueError) as exc:
        raise InvalidInput(f"Invalid date string: {value}") from exc


def add_months(dt: date, months: int) -> date:
    """Return a new date a number of months after ``dt``.

    The day of the month is clamped to the last valid day if needed (e.g.,
    adding one month to Jan 31 yields Feb 28 or 29).
    """
    year = dt.year + (dt.month - 1 + months) // 12
    month = (dt.month - 1 + months) % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def decimal_from_value(value: Any, field: str = "value") -> Decimal:
    """Convert a number or numeric string into a ``Decimal``.

    Strings may contain thousands separators (commas). Floats are converted
    through ``str`` so that ``0.1`` becomes ``Decimal("0.1")``.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise InvalidInput(f"Invalid numeric value for {field}: {value!r}")
    try:
        if isinstance(value, str):
            return Decimal(value.replace(",", "").strip())
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise InvalidInput(f"Invalid numeric value for {field}: {value!r}") from exc


def optional_decimal(value: Any, field: str = "value") -> Optional[Decimal]:
    """Like :func:`decimal_from_value` but maps ``None`` and ``""`` to ``None``."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return decimal_from_value(value, field)


def is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def round_money(value: Decimal) -> Decimal:
    """Round a monetary amount to two decimal places (half up)."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def round_rate(value: Decimal) -> Decimal:
    """Round a fractional rate to six decimal places (half up)."""
    return value.quantize(RATE_QUANTUM, rounding=ROUND_HALF_UP)
