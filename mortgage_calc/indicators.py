"""Cost indicators of a loan cash-flow vector.

The cash flow is seen from the borrower: index 0 is the (positive) net amount
received and every later index is a (negative) payment. With that convention
the internal rate of return is the cost of borrowing per period.

* IRR: Newton-Raphson on ``f(r) = sum(flow[t] / (1 + r) ** t)``.
* TCEA: ``(1 + IRR) ** 12 - 1`` in percent.
* NPV: the flow discounted at the monthly equivalent of the annual COK.
"""

from __future__ import annotations

from decimal import Context, Decimal, Overflow, localcontext
from typing import Any, Optional, Sequence

from .data_models import IRRResult, Indicators
from .errors import InvalidInput
from .utils import DEFAULT_CONTEXT, decimal_from_value

IRR_GUESS = Decimal("0.1")
IRR_TOLERANCE = Decimal("1e-6")
IRR_MAX_ITERATIONS = 1000
# Estimates beyond 1000 % per period are treated as divergence.
IRR_DIVERGENCE_BOUND = Decimal(10)


def calculate_irr(
    flow: Sequence[Decimal],
    guess: Decimal = IRR_GUESS,
    tolerance: Decimal = IRR_TOLERANCE,
    max_iterations: int = IRR_MAX_ITERATIONS,
    context: Optional[Context] = None,
) -> IRRResult:
    """Solve for the periodic rate that zeroes the NPV of ``flow``.

    The iteration stops when two successive estimates differ by less than
    ``tolerance``. If that never happens within ``max_iterations``, or the
    derivative vanishes, or the estimate reaches -100 % or runs past
    ``IRR_DIVERGENCE_BOUND``, the last estimate is returned with
    ``converged=False``.
    """
    if not flow:
        raise InvalidInput("Cash flow must contain at least one amount")

    with localcontext(context or DEFAULT_CONTEXT):
        rate = Decimal(guess)
        for iteration in range(1, max_iterations + 1):
            base = 1 + rate
            if base == 0:
                return IRRResult(rate, False, iteration - 1)
            try:
                discount = 1 / base
                value = Decimal(0)
                derivative = Decimal(0)
                factor = Decimal(1)  # (1 + r) ** -t
                for t, amount in enumerate(flow):
                    value += amount * factor
                    derivative -= t * amount * factor * discount
                    factor *= discount
                if derivative == 0:
                    return IRRResult(rate, False, iteration - 1)
                new_rate = rate - value / derivative
            except Overflow:
                return IRRResult(rate, False, iteration - 1)

            if abs(new_rate) > IRR_DIVERGENCE_BOUND:
                return IRRResult(rate, False, iteration)
            if abs(new_rate - rate) < tolerance:
                return IRRResult(new_rate, True, iteration)
            rate = new_rate
        return IRRResult(rate, False, max_iterations)


def monthly_discount_rate(cok_percent: Any = 0, context: Optional[Context] = None) -> Decimal:
    """Return the monthly rate equivalent to an annual effective COK (percent)."""
    with localcontext(context or DEFAULT_CONTEXT):
        cok = decimal_from_value(cok_percent or 0, "cok_percent")
        return (1 + cok / 100) ** (Decimal(1) / 12) - 1


def calculate_npv(
    flow: Sequence[Decimal], rate: Decimal, context: Optional[Context] = None
) -> Decimal:
    """Discount ``flow`` at the periodic ``rate``; index 0 is not discounted."""
    with localcontext(context or DEFAULT_CONTEXT):
        base = 1 + rate
        total = Decimal(0)
        for t, amount in enumerate(flow):
            total += amount / base ** t
        return total


def calculate_indicators(
    flow: Sequence[Decimal], cok_percent: Any = 0, context: Optional[Context] = None
) -> Indicators:
    ctx = context or DEFAULT_CONTEXT
    irr = calculate_irr(flow, context=ctx)
    with localcontext(ctx):
        tcea = ((1 + irr.estimate) ** 12 - 1) * 100
    npv = calculate_npv(flow, monthly_discount_rate(cok_percent, ctx), ctx)
    return Indicators(irr=irr.estimate, tcea=tcea, npv=npv, converged=irr.converged)
