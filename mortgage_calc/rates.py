"""Conversion of quoted annual rates into the monthly effective rate (TEM).

Three quotations are supported:

* nominal annual rate (TNA) capitalized monthly: ``r / 12``
* nominal annual rate capitalized daily: ``(1 + r / 360) ** 30 - 1``
* effective annual rate (TEA): ``(1 + r) ** (1 / 12) - 1``

where ``r`` is the quoted rate divided by 100.
"""

from __future__ import annotations

from decimal import Context, Decimal, localcontext
from typing import Any, Optional

from .data_models import CAPITALIZATIONS, RATE_KINDS
from .errors import InvalidInput
from .utils import DEFAULT_CONTEXT, decimal_from_value, is_missing

DAYS_PER_YEAR = 360
DAYS_PER_MONTH = 30
MONTHS_PER_YEAR = 12


def calculate_periodic_rate(
    rate: Any,
    rate_kind: str,
    capitalization: str = "monthly",
    context: Optional[Context] = None,
) -> Decimal:
    """Return the monthly effective rate as a decimal fraction.

    Parameters
    ----------
    rate:
        Annual rate in percent (``10`` for 10 %). Numbers and numeric strings
        are accepted.
    rate_kind:
        ``"nominal"`` or ``"effective"``.
    capitalization:
        ``"monthly"`` or ``"daily"``. Only meaningful for nominal rates.
    context:
        Decimal context used for the arithmetic. Defaults to
        :data:`~mortgage_calc.utils.DEFAULT_CONTEXT`.

    Raises
    ------
    InvalidInput
        If the rate is missing or empty, or a kind is not recognised.
    """
    if is_missing(rate):
        raise InvalidInput("Invalid rate value")
    kind = (rate_kind or "").lower()
    if kind not in RATE_KINDS:
        raise InvalidInput(f"Rate kind must be one of {RATE_KINDS}; got {rate_kind!r}")
    cap = (capitalization or "monthly").lower()
    if cap not in CAPITALIZATIONS:
        raise InvalidInput(
            f"Capitalization must be one of {CAPITALIZATIONS}; got {capitalization!r}"
        )

    with localcontext(context or DEFAULT_CONTEXT):
        r = decimal_from_value(rate, "rate") / 100
        if kind == "nominal":
            if cap == "daily":
                daily = r / DAYS_PER_YEAR
                return (1 + daily) ** DAYS_PER_MONTH - 1
            return r / MONTHS_PER_YEAR
        return (1 + r) ** (Decimal(1) / MONTHS_PER_YEAR) - 1
