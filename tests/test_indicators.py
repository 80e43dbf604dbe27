from decimal import Decimal

from mortgage_calc.indicators import (
    calculate_indicators,
    calculate_irr,
    calculate_npv,
    monthly_discount_rate,
)

FLOW = [Decimal("1000")] + [Decimal("-100")] * 12


def test_irr_zeroes_npv():
    result = calculate_irr(FLOW)
    assert result.converged
    assert 0 < result.estimate < Decimal("0.1")
    assert abs(calculate_npv(FLOW, result.estimate)) < Decimal("0.0001")


def test_irr_reports_non_convergence_when_budget_exhausted():
    result = calculate_irr(FLOW, max_iterations=1)
    assert result.converged is False
    assert result.iterations == 1


def test_irr_reports_divergence_for_flow_without_sign_change():
    result = calculate_irr([Decimal("100")] * 3)
    assert result.converged is False


def test_npv_at_zero_discount_is_sum_of_flow():
    flow = [Decimal("9850.00"), Decimal("-888.49"), Decimal("-888.49"), Decimal("-888.50")]
    assert calculate_npv(flow, Decimal(0)) == sum(flow)
    assert calculate_indicators(flow, 0).npv == sum(flow)


def test_monthly_discount_rate_from_annual_cok():
    rate = monthly_discount_rate(Decimal("12.682503013196972"))
    assert abs(rate - Decimal("0.01")) < Decimal("1e-12")


def test_tcea_annualizes_monthly_irr():
    indicators = calculate_indicators(FLOW)
    expected = ((1 + indicators.irr) ** 12 - 1) * 100
    assert abs(indicators.tcea - expected) < Decimal("1e-20")
    assert indicators.converged


def test_npv_at_tcea_is_zero():
    indicators = calculate_indicators(FLOW)
    at_tcea = calculate_indicators(FLOW, cok_percent=indicators.tcea)
    assert abs(at_tcea.npv) < Decimal("0.01")


def test_positive_cok_raises_npv_of_borrower_flow():
    free = calculate_indicators(FLOW, 0)
    discounted = calculate_indicators(FLOW, 10)
    assert discounted.npv > free.npv
