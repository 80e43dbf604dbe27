"""Core calculation engine for the mortgage calculator.

This module implements the financial logic of one simulation: upfront costs,
the French (constant installment) amortization schedule with grace periods,
insurance premiums and the good-payer bonus, the borrower's cash-flow vector
and the entrypoint that ties these to the rate conversion and the indicators.

Every function is pure. Decimal arithmetic runs inside an explicit context
(``decimal.localcontext``), so nothing here changes process-wide state.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Context, Decimal, localcontext
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .data_models import (
    CAPITALIZATIONS,
    COST_BASES,
    COST_KINDS,
    GRACE_KINDS,
    RATE_KINDS,
    RESIDUE_POLICIES,
    AmortizationRow,
    CostItem,
    LoanParameters,
    SimulationResult,
)
from .errors import InvalidInput, NumericDivergence
from .indicators import calculate_indicators
from .rates import calculate_periodic_rate
from .utils import DEFAULT_CONTEXT, add_months, decimal_from_value, is_missing, round_money

ZERO = Decimal("0")


@dataclass(frozen=True)
class _ScheduleTerms:
    """Per-loan constants shared by every step of the schedule fold."""

    rate: Decimal
    term: int
    grace_kind: str
    grace_months: int
    life_rate: Decimal
    property_premium: Decimal
    bonus_enabled: bool
    bonus_months: int
    bonus_rate: Decimal
    start_date: date
    residue_policy: str


def _calculate_installment(balance: Decimal, rate: Decimal, remaining: int) -> Decimal:
    """Return the French installment for ``balance`` over ``remaining`` periods.

        payment = B * (i * (1 + i)^n) / ((1 + i)^n - 1)

    When the rate is zero the payment simplifies to ``B / n``.
    """
    if rate == 0:
        return balance / Decimal(remaining)
    factor = (1 + rate) ** remaining
    return balance * (rate * factor) / (factor - 1)


@dataclass(frozen=True)
class _Carry:
    """State carried between periods, all at full precision.

    ``principal_paid`` and ``due_paid`` are running totals. Rows emit the
    difference of their rounded values so that the rounded columns add up
    to the rounded totals instead of drifting one cent per row.
    """

    balance: Decimal
    principal_paid: Decimal = ZERO
    due_paid: Decimal = ZERO


def _cumulative_cents(before: Decimal, after: Decimal) -> Decimal:
    return round_money(after) - round_money(before)


def _next_period(
    carry: _Carry, period: int, terms: _ScheduleTerms
) -> Tuple[_Carry, AmortizationRow]:
    """Compute one period from the previous state.

    Returns the state carried into the next period together with the
    (rounded) row for this period.
    """
    balance = carry.balance
    interest = balance * terms.rate
    life_insurance = balance * terms.life_rate
    property_insurance = terms.property_premium

    if period <= terms.grace_months:
        principal_payment = ZERO
        if terms.grace_kind == "total":
            payment = ZERO
            new_balance = balance + interest
        else:
            payment = interest
            new_balance = balance
    else:
        remaining = terms.term - period + 1
        payment = _calculate_installment(balance, terms.rate, remaining)
        principal_payment = payment - interest
        new_balance = balance - principal_payment

    bonus = ZERO
    if terms.bonus_enabled and period <= terms.bonus_months and payment > 0:
        bonus = payment * terms.bonus_rate
        payment -= bonus

    total_due = payment + life_insurance + property_insurance

    next_carry = _Carry(
        balance=new_balance,
        principal_paid=carry.principal_paid + principal_payment,
        due_paid=carry.due_paid + total_due,
    )
    row_principal = _cumulative_cents(carry.principal_paid, next_carry.principal_paid)
    row_due = _cumulative_cents(carry.due_paid, next_carry.due_paid)
    row_balance = round_money(new_balance)

    if period == terms.term > terms.grace_months and terms.residue_policy == "settle":
        # The last row repays the balance shown on the previous row, to the cent.
        settled = round_money(balance)
        row_due += settled - row_principal
        row_principal = settled
        row_balance = round_money(ZERO)
        next_carry = _Carry(ZERO, next_carry.principal_paid, next_carry.due_paid)

    row = AmortizationRow(
        period=period,
        date=add_months(terms.start_date, period),
        principal_payment=row_principal,
        interest_payment=round_money(interest),
        life_insurance=round_money(life_insurance),
        property_insurance=round_money(property_insurance),
        bonus=round_money(bonus),
        total_due=row_due,
        ending_balance=row_balance,
    )
    return next_carry, row


def generate_schedule(
    principal: Any,
    periodic_rate: Decimal,
    term: int,
    grace_kind: str = "none",
    grace_months: int = 0,
    life_insurance_percent: Any = 0,
    property_insurance_percent: Any = 0,
    bonus_enabled: bool = False,
    bonus_months: int = 12,
    bonus_percent: Any = Decimal("0.5"),
    start_date: Optional[date] = None,
    residue_policy: str = "keep",
    context: Optional[Context] = None,
) -> List[AmortizationRow]:
    """Build the amortization schedule, one row per period.

    Parameters
    ----------
    principal:
        The financed amount.
    periodic_rate:
        Monthly effective rate as a fraction (see
        :func:`~mortgage_calc.rates.calculate_periodic_rate`).
    term:
        Number of monthly periods; the schedule has exactly this many rows.
    grace_kind, grace_months:
        ``"total"`` grace capitalizes the interest and charges nothing,
        ``"partial"`` grace charges the interest only. Principal repayment is
        deferred in both. ``"none"`` ignores ``grace_months``.
    life_insurance_percent:
        Monthly premium rate applied to the outstanding balance.
    property_insurance_percent:
        Monthly premium rate applied to the original principal.
    bonus_enabled, bonus_months, bonus_percent:
        Good-payer bonus: during the first ``bonus_months`` periods, a
        positive payment is reduced by ``bonus_percent`` percent before
        insurance is added.
    start_date:
        Disbursement date; period ``k`` falls ``k`` months later.
    residue_policy:
        ``"keep"`` emits the last row as computed. ``"settle"`` makes the last
        row repay exactly the balance printed on the row before it and
        closes at ``0.00``; the difference goes into its ``total_due``.

    The running balance is carried at full precision. Principal and total
    due are emitted as differences of rounded running totals, so each column
    sums to its rounded total.
    """
    kind = grace_kind.lower()
    with localcontext(context or DEFAULT_CONTEXT):
        balance = decimal_from_value(principal, "principal")
        terms = _ScheduleTerms(
            rate=Decimal(periodic_rate),
            term=int(term),
            grace_kind=kind,
            grace_months=int(grace_months or 0) if kind != "none" else 0,
            life_rate=decimal_from_value(life_insurance_percent or 0) / 100,
            property_premium=balance * decimal_from_value(property_insurance_percent or 0) / 100,
            bonus_enabled=bool(bonus_enabled),
            bonus_months=int(bonus_months or 0),
            bonus_rate=decimal_from_value(bonus_percent or 0) / 100,
            start_date=start_date or date.today(),
            residue_policy=residue_policy,
        )

        carry = _Carry(balance)
        schedule: List[AmortizationRow] = []
        for period in range(1, terms.term + 1):
            carry, row = _next_period(carry, period, terms)
            schedule.append(row)
    return schedule


def calculate_upfront_costs(
    costs: Iterable[CostItem],
    principal: Any,
    property_value: Any = None,
    context: Optional[Context] = None,
) -> Decimal:
    """Return the sum of all one-time fees.

    Fixed items contribute their value; percentage items contribute
    ``base * value / 100`` where ``base`` is the principal or the property
    value. Without a property value the principal is used as the base.
    Missing values count as zero.
    """
    with localcontext(context or DEFAULT_CONTEXT):
        principal_amount = decimal_from_value(principal or 0, "principal")
        property_amount = (
            principal_amount
            if is_missing(property_value)
            else decimal_from_value(property_value, "property_value")
        )
        total = ZERO
        for item in costs:
            value = ZERO if is_missing(item.value) else decimal_from_value(item.value, item.name)
            if item.kind == "fixed":
                total += value
            elif item.kind == "percentage":
                base = property_amount if item.base == "property_value" else principal_amount
                total += base * value / 100
        return total


def build_cash_flow(
    principal: Any, upfront_total: Decimal, schedule: Sequence[AmortizationRow]
) -> List[Decimal]:
    """Return the borrower's signed cash flow.

    Index 0 is the net amount received (principal less upfront costs), each
    following index is the negated total due of the matching period.
    """
    flow = [decimal_from_value(principal, "principal") - upfront_total]
    flow.extend(-row.total_due for row in schedule)
    return flow


def summarize_schedule(schedule: Sequence[AmortizationRow]) -> Dict[str, object]:
    """Aggregate the rows of a schedule into totals."""
    summary: Dict[str, object] = {
        "total_principal": sum((r.principal_payment for r in schedule), ZERO),
        "total_interest": sum((r.interest_payment for r in schedule), ZERO),
        "total_life_insurance": sum((r.life_insurance for r in schedule), ZERO),
        "total_property_insurance": sum((r.property_insurance for r in schedule), ZERO),
        "total_bonus": sum((r.bonus for r in schedule), ZERO),
        "total_paid": sum((r.total_due for r in schedule), ZERO),
        "payments_made": sum(1 for r in schedule if r.total_due > 0),
        "final_balance": schedule[-1].ending_balance if schedule else ZERO,
        "end_date": schedule[-1].date.isoformat() if schedule else None,
    }
    return summary


def _require_positive(value: Any, field: str) -> Decimal:
    if is_missing(value):
        raise InvalidInput(f"Missing required field: {field}")
    amount = decimal_from_value(value, field)
    if amount <= 0:
        raise InvalidInput(f"{field} must be positive")
    return amount


def _require_non_negative(value: Any, field: str) -> None:
    if not is_missing(value) and decimal_from_value(value, field) < 0:
        raise InvalidInput(f"{field} must not be negative")


def validate_parameters(params: LoanParameters) -> None:
    """Reject parameters the engine cannot compute.

    Raises
    ------
    InvalidInput
        If principal, rate value or term is missing or not positive, an
        enumerated field holds an unknown value, a duration or percentage is
        negative, or the grace period is not shorter than the term.
    """
    _require_positive(params.principal, "principal")
    _require_positive(params.rate_value, "rate_value")
    if is_missing(params.term):
        raise InvalidInput("Missing required field: term")
    if isinstance(params.term, bool) or not isinstance(params.term, int) or params.term <= 0:
        raise InvalidInput("term must be a positive whole number of months")

    if params.rate_kind not in RATE_KINDS:
        raise InvalidInput(f"rate_kind must be one of {RATE_KINDS}")
    if params.capitalization not in CAPITALIZATIONS:
        raise InvalidInput(f"capitalization must be one of {CAPITALIZATIONS}")
    if params.grace_kind not in GRACE_KINDS:
        raise InvalidInput(f"grace_kind must be one of {GRACE_KINDS}")
    if params.residue_policy not in RESIDUE_POLICIES:
        raise InvalidInput(f"residue_policy must be one of {RESIDUE_POLICIES}")

    if params.grace_months < 0:
        raise InvalidInput("grace_months must not be negative")
    if params.grace_kind != "none" and params.grace_months >= params.term:
        raise InvalidInput("grace_months must be shorter than the term")
    if params.bonus_months < 0:
        raise InvalidInput("bonus_months must not be negative")

    _require_non_negative(params.life_insurance_percent, "life_insurance_percent")
    _require_non_negative(params.property_insurance_percent, "property_insurance_percent")
    _require_non_negative(params.bonus_percent, "bonus_percent")
    _require_non_negative(params.property_value, "property_value")
    if not is_missing(params.cok_percent) and decimal_from_value(params.cok_percent) <= -100:
        raise InvalidInput("cok_percent must be greater than -100")

    for item in params.upfront_costs:
        if item.kind not in COST_KINDS:
            raise InvalidInput(f"Cost '{item.name}': kind must be one of {COST_KINDS}")
        if item.kind == "percentage" and item.base not in COST_BASES:
            raise InvalidInput(f"Cost '{item.name}': base must be one of {COST_BASES}")


def run_simulation(
    params: LoanParameters, context: Optional[Context] = None, strict: bool = False
) -> SimulationResult:
    """Run a complete simulation.

    Converts the quoted rate, builds the schedule, totals the upfront costs,
    and computes the indicators of the resulting cash flow.

    Parameters
    ----------
    params: LoanParameters
        The simulation inputs. Validated before any computation.
    context: decimal.Context, optional
        Precision settings; defaults to ``DEFAULT_CONTEXT``.
    strict: bool
        When true, raise :class:`NumericDivergence` if the IRR does not
        converge instead of returning the result flagged as unconverged.
    """
    validate_parameters(params)
    ctx = context or DEFAULT_CONTEXT

    periodic_rate = calculate_periodic_rate(
        params.rate_value, params.rate_kind, params.capitalization, ctx
    )
    schedule = generate_schedule(
        params.principal,
        periodic_rate,
        params.term,
        grace_kind=params.grace_kind,
        grace_months=params.grace_months,
        life_insurance_percent=params.life_insurance_percent,
        property_insurance_percent=params.property_insurance_percent,
        bonus_enabled=params.bonus_enabled,
        bonus_months=params.bonus_months,
        bonus_percent=params.bonus_percent,
        start_date=params.start_date,
        residue_policy=params.residue_policy,
        context=ctx,
    )
    upfront_total = calculate_upfront_costs(
        params.upfront_costs, params.principal, params.property_value, ctx
    )
    flow = build_cash_flow(params.principal, upfront_total, schedule)
    indicators = calculate_indicators(flow, params.cok_percent, ctx)
    if strict and not indicators.converged:
        raise NumericDivergence(
            "IRR did not converge within the iteration budget", estimate=indicators.irr
        )

    return SimulationResult(
        periodic_rate=periodic_rate,
        schedule=schedule,
        indicators=indicators,
        upfront_total=upfront_total,
        currency=params.currency,
        summary=summarize_schedule(schedule),
    )
