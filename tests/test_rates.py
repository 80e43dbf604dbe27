from decimal import Context, Decimal, getcontext

import pytest

from mortgage_calc.errors import InvalidInput
from mortgage_calc.rates import calculate_periodic_rate


def test_effective_annual_rate_to_monthly():
    tem = calculate_periodic_rate(10, "effective", "monthly")
    assert abs(float(tem) - (1.1 ** (1 / 12) - 1)) < 1e-6


def test_nominal_monthly_capitalization():
    tem = calculate_periodic_rate(12, "nominal", "monthly")
    assert tem == Decimal("0.01")


def test_nominal_daily_capitalization():
    tem = calculate_periodic_rate(12, "nominal", "daily")
    assert abs(float(tem) - ((1 + 0.12 / 360) ** 30 - 1)) < 1e-6


def test_capitalization_is_ignored_for_effective_rates():
    assert calculate_periodic_rate(10, "effective", "daily") == calculate_periodic_rate(
        10, "effective", "monthly"
    )


def test_rate_kind_is_case_insensitive_and_accepts_strings():
    assert calculate_periodic_rate("12", "Nominal", "Monthly") == Decimal("0.01")


@pytest.mark.parametrize("rate", [None, "", "   "])
def test_missing_rate_is_rejected(rate):
    with pytest.raises(InvalidInput):
        calculate_periodic_rate(rate, "effective")


def test_unknown_rate_kind_is_rejected():
    with pytest.raises(InvalidInput):
        calculate_periodic_rate(10, "flat")


def test_unknown_capitalization_is_rejected():
    with pytest.raises(InvalidInput):
        calculate_periodic_rate(10, "nominal", "weekly")


def test_explicit_context_leaves_thread_context_untouched():
    before = getcontext().prec
    tem = calculate_periodic_rate(10, "effective", context=Context(prec=40))
    assert getcontext().prec == before
    assert len(tem.as_tuple().digits) > 28
