"""Data models for the mortgage calculator.

This module defines dataclasses representing the entities used by the
engine: the loan parameters of one simulation, upfront cost items, the rows of
the amortization schedule and the computed indicators. Enumerated values are
kept as lowercase strings, with the accepted values listed next to each field.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

RATE_KINDS = ("nominal", "effective")
CAPITALIZATIONS = ("monthly", "daily")
GRACE_KINDS = ("none", "total", "partial")
COST_KINDS = ("fixed", "percentage")
COST_BASES = ("principal", "property_value")
RESIDUE_POLICIES = ("keep", "settle")
CURRENCIES = ("PEN", "USD")


@dataclass(frozen=True)
class CostItem:
    """A one-time fee deducted from the disbursed amount.

    Attributes
    ----------
    name: str
        Label of the fee (e.g. "Notary", "Appraisal").
    kind: str
        ``"fixed"`` for an absolute amount, ``"percentage"`` for a percent of
        ``base``.
    value: Decimal
        The amount, or the percentage (``1`` means 1 %).
    base: str
        ``"principal"`` or ``"property_value"``. Only used for percentages.
    """

    name: str
    kind: str
    value: Optional[Decimal]
    base: str = "principal"


@dataclass(frozen=True)
class LoanParameters:
    """All inputs of one mortgage simulation.

    Percent fields hold percentages (``10`` means 10 %). The insurance rates
    are monthly rates; ``rate_value`` and ``cok_percent`` are annual.
    """

    principal: Decimal
    rate_value: Decimal
    term: int  # term in months
    rate_kind: str = "effective"  # 'nominal' or 'effective'
    capitalization: str = "monthly"  # 'monthly' or 'daily', nominal rates only
    grace_kind: str = "none"  # 'none', 'total' or 'partial'
    grace_months: int = 0
    life_insurance_percent: Decimal = Decimal("0")
    property_insurance_percent: Decimal = Decimal("0")
    bonus_enabled: bool = False
    bonus_months: int = 12
    bonus_percent: Decimal = Decimal("0.5")
    cok_percent: Decimal = Decimal("0")
    upfront_costs: Tuple[CostItem, ...] = ()
    property_value: Optional[Decimal] = None
    start_date: date = field(default_factory=date.today)
    currency: str = "PEN"
    residue_policy: str = "keep"  # 'keep' or 'settle'


@dataclass(frozen=True)
class AmortizationRow:
    """One period of the schedule, with monetary fields rounded to cents.

    ``total_due`` is the payment after the bonus discount plus both insurance
    premiums. During a total grace period it is zero and the interest is
    added to ``ending_balance``.
    """

    period: int
    date: date
    principal_payment: Decimal
    interest_payment: Decimal
    life_insurance: Decimal
    property_insurance: Decimal
    bonus: Decimal
    total_due: Decimal
    ending_balance: Decimal


@dataclass(frozen=True)
class IRRResult:
    estimate: Decimal
    converged: bool
    iterations: int


@dataclass(frozen=True)
class Indicators:
    """Cost indicators of a cash-flow vector, kept at full precision.

    Attributes
    ----------
    irr: Decimal
        Periodic (monthly) internal rate of return as a fraction.
    tcea: Decimal
        Annualized cost rate, in percent.
    npv: Decimal
        Net present value at the monthly equivalent of the annual COK.
    converged: bool
        Whether the IRR root-finder met its tolerance.
    """

    irr: Decimal
    tcea: Decimal
    npv: Decimal
    converged: bool


@dataclass
class SimulationResult:
    periodic_rate: Decimal
    schedule: List[AmortizationRow]
    indicators: Indicators
    upfront_total: Decimal
    currency: str = "PEN"
    summary: Dict[str, object] = field(default_factory=dict)
