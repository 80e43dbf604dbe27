"""Output helpers for the mortgage calculator.

This module renders simulation results in two ways: as tab-separated text for
the terminal, and as the wire representation shared by the JSON exports and
the web API. On the wire, money is a string with two decimals, the periodic
rate a fraction with six decimals and indicator percentages strings with two
decimals, so no binary floating point is ever exchanged.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Iterable, List

from .data_models import AmortizationRow, Indicators, SimulationResult
from .utils import round_money, round_rate

CURRENCY_SYMBOLS = {
    "PEN": "S/ ",
    "USD": "$ ",
}


def money(value: Decimal) -> str:
    return f"{round_money(value):.2f}"


def row_to_wire(row: AmortizationRow) -> Dict[str, Any]:
    return {
        "period": row.period,
        "date": row.date.isoformat(),
        "principal": money(row.principal_payment),
        "interest": money(row.interest_payment),
        "life_insurance": money(row.life_insurance),
        "property_insurance": money(row.property_insurance),
        "bonus": money(row.bonus),
        "total_due": money(row.total_due),
        "balance": money(row.ending_balance),
    }


def indicators_to_wire(indicators: Indicators) -> Dict[str, Any]:
    """Round the indicators at the output boundary."""
    return {
        "tir": money(indicators.irr * 100),
        "tcea": money(indicators.tcea),
        "van": money(indicators.npv),
        "irr_converged": indicators.converged,
    }


def summary_to_wire(summary: Dict[str, object]) -> Dict[str, Any]:
    wire: Dict[str, Any] = {}
    for key, value in summary.items():
        wire[key] = money(value) if isinstance(value, Decimal) else value
    return wire


def result_to_wire(result: SimulationResult) -> Dict[str, Any]:
    """Serialize a simulation result into JSON-compatible primitives."""
    return {
        "currency": result.currency,
        "periodic_rate": f"{round_rate(result.periodic_rate):.6f}",
        "upfront_total": money(result.upfront_total),
        "indicators": indicators_to_wire(result.indicators),
        "summary": summary_to_wire(result.summary),
        "schedule": [row_to_wire(row) for row in result.schedule],
    }


def print_summary(result: SimulationResult) -> None:
    """Print the rate, totals and indicators in a human-readable format."""
    symbol = CURRENCY_SYMBOLS.get(result.currency, "")
    summary = result.summary
    indicators = result.indicators
    print("Summary")
    print("-" * 72)
    print(f"Periodic rate (TEM): {result.periodic_rate * 100:.6f}%")
    print(f"Upfront costs      : {symbol}{money(result.upfront_total)}")
    print(f"Total interest     : {symbol}{money(summary['total_interest'])}")
    print(f"Total insurance    : {symbol}{money(summary['total_life_insurance'] + summary['total_property_insurance'])}")
    if summary.get("total_bonus"):
        print(f"Good-payer bonus   : {symbol}{money(summary['total_bonus'])}")
    print(f"Total paid         : {symbol}{money(summary['total_paid'])}")
    print(f"Final balance      : {symbol}{money(summary['final_balance'])}")
    print(f"Payments made      : {summary['payments_made']}")
    print(f"TIR (monthly)      : {money(indicators.irr * 100)}%")
    print(f"TCEA               : {money(indicators.tcea)}%")
    print(f"VAN                : {symbol}{money(indicators.npv)}")
    if not indicators.converged:
        print("Warning            : IRR did not converge; TIR and TCEA are estimates")
    print("-" * 72)


def print_schedule(schedule: Iterable[AmortizationRow]) -> None:
    """Print the amortization schedule as a simple table."""
    headers = [
        "Period",
        "Date",
        "Principal",
        "Interest",
        "LifeIns",
        "PropIns",
        "Bonus",
        "TotalDue",
        "Balance",
    ]
    print("\t".join(headers))
    for row in schedule:
        print(
            "\t".join(
                [
                    str(row.period),
                    row.date.isoformat(),
                    money(row.principal_payment),
                    money(row.interest_payment),
                    money(row.life_insurance),
                    money(row.property_insurance),
                    money(row.bonus),
                    money(row.total_due),
                    money(row.ending_balance),
                ]
            )
        )


def print_comparison(r1: SimulationResult, r2: SimulationResult) -> None:
    """Print two simulations side by side.

    The difference column is scenario2 - scenario1; a negative value means
    the second scenario is cheaper.
    """
    rows: List[tuple] = [
        ("total_paid", r1.summary["total_paid"], r2.summary["total_paid"]),
        ("total_interest", r1.summary["total_interest"], r2.summary["total_interest"]),
        ("upfront_total", r1.upfront_total, r2.upfront_total),
        ("tcea_percent", r1.indicators.tcea, r2.indicators.tcea),
        ("van", r1.indicators.npv, r2.indicators.npv),
    ]
    print("Comparison")
    print("=" * 72)
    print(f"{'Metric':20s} {'Scenario1':>15s} {'Scenario2':>15s} {'Difference':>15s}")
    for key, v1, v2 in rows:
        print(f"{key:20s} {money(v1):>15s} {money(v2):>15s} {money(v2 - v1):>15s}")
    print("=" * 72)
