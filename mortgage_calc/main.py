"""Command-line interface for the mortgage calculator.

This module uses the ``click`` library to implement a multi-command interface.
Users can compute full amortization schedules, view summaries or compare two
mortgage scenarios. Results can be printed to the terminal or exported to
JSON/CSV files.

It also holds :func:`build_parameters`, which turns raw user values (strings
from the command line or fields of a JSON payload) into ``LoanParameters``.
The web application reuses it.
"""

from __future__ import annotations

import csv
import json
import logging
import shlex
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

import click

from .data_models import CURRENCIES, CostItem, LoanParameters, SimulationResult
from .engine import run_simulation
from .errors import InvalidInput, NumericDivergence
from .formatter import print_comparison, print_schedule, print_summary, result_to_wire
from .utils import decimal_from_value, is_missing, optional_decimal, parse_date

logger = logging.getLogger(__name__)

GRACE_ALIASES = {
    "sin gracia": "none",
    "parcial": "partial",
}
RATE_KIND_ALIASES = {
    "efectiva": "effective",
    "tea": "effective",
    "tna": "nominal",
}
CAPITALIZATION_ALIASES = {
    "mensual": "monthly",
    "diaria": "daily",
}


def parse_amount(value: Any, field: str = "amount"):
    """Parse a monetary amount with optional ``k``/``m`` suffixes.

    Accepts plain numbers ("500000") and shorthand such as "500k" meaning
    500 000. Returns a ``Decimal``.
    """
    if not isinstance(value, str):
        return decimal_from_value(value, field)
    text = value.strip().lower().replace(",", "")
    factor = 1
    if text.endswith("k"):
        factor = 1_000
        text = text[:-1]
    elif text.endswith("m"):
        factor = 1_000_000
        text = text[:-1]
    return decimal_from_value(text, field) * factor


def _normalize_choice(value: Optional[str], aliases: Mapping[str, str], default: str) -> str:
    if is_missing(value):
        return default
    text = str(value).strip().lower()
    return aliases.get(text, text)


def _whole_number(value: Any, field: str, default: int = 0) -> int:
    if is_missing(value):
        return default
    number = decimal_from_value(value, field)
    if number != number.to_integral_value():
        raise InvalidInput(f"{field} must be a whole number")
    return int(number)


def _decimal_or_zero(value: Any, field: str):
    amount = optional_decimal(value, field)
    return decimal_from_value(0) if amount is None else amount


def _flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def parse_cost_item(item: Any) -> CostItem:
    """Build a ``CostItem`` from a mapping or a ``NAME:KIND:VALUE[:BASE]`` string."""
    if isinstance(item, str):
        parts = item.split(":")
        if len(parts) not in (3, 4):
            raise InvalidInput(
                f"Cost must be in NAME:KIND:VALUE[:BASE] format; got {item}"
            )
        item = dict(zip(("name", "kind", "value", "base"), parts))
    elif not isinstance(item, Mapping):
        raise InvalidInput(f"Cost must be an object or a NAME:KIND:VALUE string; got {item!r}")
    kind = _normalize_choice(item.get("kind"), {"fijo": "fixed", "porcentaje": "percentage"}, "fixed")
    base = _normalize_choice(
        item.get("base"),
        {"monto_prestamo": "principal", "valor_propiedad": "property_value"},
        "principal",
    )
    return CostItem(
        name=str(item.get("name") or kind),
        kind=kind,
        value=optional_decimal(item.get("value"), "cost value"),
        base=base,
    )


def _parse_costs(costs: Any) -> tuple:
    if is_missing(costs):
        return ()
    if isinstance(costs, (str, Mapping)) or not isinstance(costs, Iterable):
        raise InvalidInput(f"Costs must be a list; got {costs!r}")
    return tuple(parse_cost_item(c) for c in costs)


def build_parameters(
    principal: Any,
    rate: Any,
    term: Any,
    rate_kind: Optional[str] = "effective",
    capitalization: Optional[str] = "monthly",
    grace_kind: Optional[str] = "none",
    grace_months: Any = 0,
    life_insurance: Any = 0,
    property_insurance: Any = 0,
    bonus: Any = False,
    bonus_months: Any = 12,
    bonus_percent: Any = "0.5",
    cok: Any = 0,
    costs: Iterable[Any] = (),
    property_value: Any = None,
    start_date: Optional[str] = None,
    currency: Optional[str] = "PEN",
    residue_policy: Optional[str] = "keep",
) -> LoanParameters:
    """Convert raw values into validated-shape ``LoanParameters``.

    Raises
    ------
    InvalidInput
        If principal, rate or term is missing, or a value cannot be parsed.
    """
    missing = [
        name
        for name, value in (("principal", principal), ("rate", rate), ("term", term))
        if is_missing(value)
    ]
    if missing:
        raise InvalidInput(f"Missing required fields: {', '.join(missing)}")

    currency_code = (currency or "PEN").upper()
    if currency_code not in CURRENCIES:
        raise InvalidInput(f"Currency must be one of {CURRENCIES}; got {currency}")

    extra = {}
    if not is_missing(start_date):
        extra["start_date"] = parse_date(str(start_date))

    return LoanParameters(
        principal=parse_amount(principal, "principal"),
        rate_value=decimal_from_value(rate, "rate"),
        term=_whole_number(term, "term"),
        rate_kind=_normalize_choice(rate_kind, RATE_KIND_ALIASES, "effective"),
        capitalization=_normalize_choice(capitalization, CAPITALIZATION_ALIASES, "monthly"),
        grace_kind=_normalize_choice(grace_kind, GRACE_ALIASES, "none"),
        grace_months=_whole_number(grace_months, "grace_months"),
        life_insurance_percent=_decimal_or_zero(life_insurance, "life_insurance"),
        property_insurance_percent=_decimal_or_zero(property_insurance, "property_insurance"),
        bonus_enabled=_flag(bonus),
        bonus_months=_whole_number(bonus_months, "bonus_months", 12),
        bonus_percent=decimal_from_value("0.5" if is_missing(bonus_percent) else bonus_percent, "bonus_percent"),
        cok_percent=_decimal_or_zero(cok, "cok"),
        upfront_costs=_parse_costs(costs),
        property_value=None if is_missing(property_value) else parse_amount(property_value, "property_value"),
        currency=currency_code,
        residue_policy=_normalize_choice(residue_policy, {}, "keep"),
        **extra,
    )


def simulate_or_fail(params: LoanParameters, strict: bool = False) -> SimulationResult:
    """Run a simulation, translating engine errors into click errors."""
    try:
        result = run_simulation(params, strict=strict)
    except InvalidInput as exc:
        raise click.UsageError(str(exc))
    except NumericDivergence as exc:
        raise click.ClickException(str(exc))
    if not result.indicators.converged:
        logger.warning("IRR did not converge; TIR and TCEA are unverified estimates")
    return result


def export_to_json(path: Path, result: SimulationResult) -> None:
    """Export the full result (summary, indicators, schedule) to a JSON file."""
    with path.open("w", encoding="utf-8") as f:
        json.dump(result_to_wire(result), f, indent=2)


def export_to_csv(path: Path, result: SimulationResult) -> None:
    """Export the schedule to a CSV file."""
    header = [
        "Period",
        "Date",
        "Principal",
        "Interest",
        "Life_Insurance",
        "Property_Insurance",
        "Bonus",
        "Total_Due",
        "Balance",
    ]
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for row in result.schedule:
            writer.writerow(
                [
                    row.period,
                    row.date.isoformat(),
                    f"{row.principal_payment:.2f}",
                    f"{row.interest_payment:.2f}",
                    f"{row.life_insurance:.2f}",
                    f"{row.property_insurance:.2f}",
                    f"{row.bonus:.2f}",
                    f"{row.total_due:.2f}",
                    f"{row.ending_balance:.2f}",
                ]
            )


def loan_options(func):
    """Attach the options shared by every command that describes a loan."""
    options = [
        click.option("--principal", "-p", "principal", required=True, help="Loan amount"),
        click.option("--rate", "-r", "rate", required=True, help="Annual interest rate (percent)"),
        click.option("--term", "-t", "term", required=True, type=int, help="Loan term in months"),
        click.option("--rate-kind", "rate_kind", type=click.Choice(["effective", "nominal"]), default="effective", help="Quoted rate convention (TEA or TNA)"),
        click.option("--capitalization", "capitalization", type=click.Choice(["monthly", "daily"]), default="monthly", help="Capitalization of a nominal rate"),
        click.option("--grace", "grace_kind", type=click.Choice(["none", "total", "partial"]), default="none", help="Grace period type"),
        click.option("--grace-months", "grace_months", type=int, default=0, help="Grace period duration in months"),
        click.option("--life-insurance", "life_insurance", default="0", help="Monthly life insurance rate (percent of balance)"),
        click.option("--property-insurance", "property_insurance", default="0", help="Monthly property insurance rate (percent of principal)"),
        click.option("--bonus/--no-bonus", "bonus", default=False, help="Apply the good-payer bonus"),
        click.option("--bonus-months", "bonus_months", type=int, default=12, help="Months with the bonus discount"),
        click.option("--bonus-percent", "bonus_percent", default="0.5", help="Bonus discount (percent of the installment)"),
        click.option("--cok", "cok", default="0", help="Annual cost of opportunity capital (percent) for the VAN"),
        click.option("--cost", "costs", multiple=True, help="Upfront cost in NAME:KIND:VALUE[:BASE] format, e.g. notary:fixed:500 or fee:percentage:1:property_value"),
        click.option("--property-value", "property_value", help="Property value for percentage-of-property costs"),
        click.option("--start-date", "-s", "start_date", help="Disbursement date (YYYY-MM-DD or YYYY-MM); defaults to today"),
        click.option("--currency", "currency", type=click.Choice(list(CURRENCIES)), default="PEN", help="Currency label"),
        click.option("--settle-final/--keep-residue", "settle_final", default=False, help="Last payment repays the balance shown on the previous row and ends at 0.00"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _parameters_from_options(options: Mapping[str, Any]) -> LoanParameters:
    keys = (
        "principal", "rate", "term", "rate_kind", "capitalization", "grace_kind",
        "grace_months", "life_insurance", "property_insurance", "bonus",
        "bonus_months", "bonus_percent", "cok", "costs", "property_value",
        "start_date", "currency",
    )
    kwargs = {key: options[key] for key in keys if key in options}
    kwargs["residue_policy"] = "settle" if options.get("settle_final") else "keep"
    try:
        return build_parameters(**kwargs)
    except InvalidInput as exc:
        raise click.BadParameter(str(exc))


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """A command-line mortgage simulator (TEM, schedule, TIR, TCEA, VAN)."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@loan_options
@click.option("--strict", is_flag=True, help="Fail when the IRR does not converge")
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def schedule(strict: bool, output: Optional[str], **options: Any) -> None:
    """Compute and print the full amortization schedule."""
    params = _parameters_from_options(options)
    result = simulate_or_fail(params, strict)
    logger.debug("Simulated %d periods at TEM %s", len(result.schedule), result.periodic_rate)
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(path, result)
        elif path.suffix.lower() == ".csv":
            export_to_csv(path, result)
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv")
        click.echo(f"Schedule exported to {path}")
        return
    print_summary(result)
    max_rows = 120
    if len(result.schedule) > max_rows:
        click.echo(f"Schedule has {len(result.schedule)} rows; showing first {max_rows} rows.")
    print_schedule(result.schedule[:max_rows])


@cli.command()
@loan_options
@click.option("--strict", is_flag=True, help="Fail when the IRR does not converge")
@click.option("--output", "output", type=str, help="Output file path (.json)")
def summary(strict: bool, output: Optional[str], **options: Any) -> None:
    """Compute and print only the summary and indicators."""
    params = _parameters_from_options(options)
    result = simulate_or_fail(params, strict)
    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Summary export must use .json extension")
        wire = result_to_wire(result)
        wire.pop("schedule")
        with path.open("w", encoding="utf-8") as f:
            json.dump(wire, f, indent=2)
        click.echo(f"Summary exported to {path}")
    else:
        print_summary(result)


def parse_scenario(opts: str) -> LoanParameters:
    """Parse a quoted option string with the same options as ``summary``."""
    tokens = shlex.split(opts)
    try:
        ctx = summary.make_context("scenario", tokens)
    except click.ClickException as exc:
        raise click.BadParameter(f"Invalid scenario '{opts}': {exc.format_message()}")
    return _parameters_from_options(ctx.params)


@cli.command()
@click.option("--scenario1", "scenario1", required=True, help="First scenario options quoted string")
@click.option("--scenario2", "scenario2", required=True, help="Second scenario options quoted string")
def compare(scenario1: str, scenario2: str) -> None:
    """Compare two mortgage scenarios.

    Scenarios are provided as quoted option strings, for example:

        mortgage-calc compare --scenario1 "-p 200k -r 9.5 -t 240" --scenario2 "-p 200k -r 8.9 -t 240 --bonus"
    """
    result1 = simulate_or_fail(parse_scenario(scenario1))
    result2 = simulate_or_fail(parse_scenario(scenario2))
    print_comparison(result1, result2)


if __name__ == "__main__":
    cli()
