"""
Tests for the aggregate metrics calculator.

Covers: NPV discounting, Newton IRR and its degenerate classifications,
payback, break-even, required investment and the top-level metrics call.
"""

import pytest

from bizcase_engine import (
    IrrError,
    IrrResult,
    build_business_case,
    calculate_business_metrics,
    calculate_irr,
    calculate_npv,
    generate_monthly_records,
    irr_error_message,
    is_irr_error,
)
from bizcase_engine import metrics as metrics_module
from bizcase_engine.metrics import (
    break_even_month,
    cash_break_even_month,
    classify_cash_flows,
    payback_period,
    payback_reached,
    total_investment_required,
)

from sample_cases import unit_sales_case


# ---------------------------------------------------------------------------
# NPV
# ---------------------------------------------------------------------------


def test_npv_of_zero_flows_is_zero():
    assert calculate_npv([0.0] * 12, 0.1) == 0.0


def test_npv_at_zero_rate_is_plain_sum():
    assert calculate_npv([-1000, 1100], 0.0) == pytest.approx(100)


def test_npv_discounts_first_month():
    """12% annual -> 1% monthly; month 1 is discounted one full period."""
    expected = -1000 / 1.01 + 1100 / 1.01**2
    assert calculate_npv([-1000, 1100], 0.12) == pytest.approx(expected)
    assert calculate_npv([100], 0.12) == pytest.approx(100 / 1.01)


# ---------------------------------------------------------------------------
# IRR
# ---------------------------------------------------------------------------


def test_irr_simple_monthly_rate():
    result = calculate_irr([-1000, 1100])
    assert not result.is_error
    assert result.rate == pytest.approx(0.1)
    assert result.annualized() == pytest.approx(1.1**12 - 1)


def test_irr_zero_return():
    result = calculate_irr([-1000] + [0] * 10 + [1000])
    assert not is_irr_error(result)
    assert abs(result.rate) < 1e-4


def test_irr_rate_zeroes_npv():
    flows = [-5000, 800, 900, 1000, 1100, 1200, 1300]
    result = calculate_irr(flows)
    assert not result.is_error
    npv = sum(cf / (1 + result.rate) ** (t + 1) for t, cf in enumerate(flows))
    assert abs(npv) < 1e-3


def test_constant_positive_flows_are_all_positive():
    result = calculate_irr([100, 100, 100])
    assert result.error == IrrError.ALL_POSITIVE
    assert result.rate is None
    assert result.message == "All cash flows are positive - infinite return"


@pytest.mark.parametrize(
    "flows, expected",
    [
        ([], IrrError.NO_DATA),
        ([0, 0, 0], IrrError.ALL_SAME),
        ([0.001, 0.002], IrrError.ALL_SAME),
        ([-100, -50, 0], IrrError.ALL_NEGATIVE),
        ([0, 10, 20], IrrError.ALL_POSITIVE),
    ],
)
def test_degenerate_cash_flows(flows, expected):
    assert classify_cash_flows(flows) == expected
    assert calculate_irr(flows).error == expected


def test_irr_extreme_rate():
    assert calculate_irr([-1, 1000]).error == IrrError.EXTREME_RATE


def test_irr_no_convergence(monkeypatch):
    monkeypatch.setattr(metrics_module, "IRR_MAX_ITERATIONS", 1)
    assert calculate_irr([-1000] + [0] * 10 + [1000]).error == IrrError.NO_CONVERGENCE


def test_irr_error_helpers():
    assert is_irr_error(IrrError.NO_DATA)
    assert is_irr_error(IrrResult.fail(IrrError.EXTREME_RATE))
    assert not is_irr_error(IrrResult.ok(0.02))
    assert not is_irr_error(0.02)
    assert irr_error_message(IrrError.ALL_NEGATIVE) == "All cash flows are negative - no return possible"
    assert IrrResult.ok(0.02).annualized() == pytest.approx(1.02**12 - 1)
    assert IrrResult.fail(IrrError.NO_DATA).annualized() is None


# ---------------------------------------------------------------------------
# Period metrics
# ---------------------------------------------------------------------------


def test_payback_period():
    assert payback_period([-1000] + [200] * 11) == 5
    assert payback_period([-100, -100]) == 0
    assert payback_period([]) == 0


def test_payback_reached_separates_immediate_recovery():
    # positive from the first month: elapsed months is 0, but it did pay back
    assert payback_period([100, 200]) == 0
    assert payback_reached([100, 200]) is True
    assert payback_reached([-100, -100]) is False
    assert payback_reached([]) is False
    assert payback_reached([-1000] + [200] * 11) is True


def test_total_investment_required_stops_at_recovery():
    assert total_investment_required([-100, -200, 400, -1000]) == 300
    assert total_investment_required([50, 50]) == 0
    assert total_investment_required([-10, -20]) == 30


def test_break_even_months():
    records = generate_monthly_records(build_business_case(unit_sales_case()))
    # EBITDA is positive from month 1, net cash flow only from month 2
    assert break_even_month(records) == 1
    assert cash_break_even_month(records) == 2
    assert break_even_month(()) == 0
    assert cash_break_even_month(()) == 0


# ---------------------------------------------------------------------------
# Top level
# ---------------------------------------------------------------------------


def test_calculate_business_metrics_reference_case():
    metrics = calculate_business_metrics(unit_sales_case())

    assert len(metrics.monthly_data) == 12
    assert metrics.total_revenue == 60_000
    assert metrics.net_profit == -3200 + 11 * 1800
    assert metrics.payback_period == 2
    assert metrics.payback_reached is True
    assert metrics.break_even_month == 1
    assert metrics.cash_break_even_month == 2
    assert metrics.total_investment_required == 3200

    flows = [r.net_cash_flow for r in metrics.monthly_data]
    assert metrics.npv == pytest.approx(calculate_npv(flows, 0.12))
    # ~56% per month annualizes far beyond the 10000% ceiling
    assert metrics.irr.error == IrrError.EXTREME_RATE


def test_calculate_business_metrics_accepts_built_case():
    case = build_business_case(unit_sales_case())
    assert calculate_business_metrics(case) == calculate_business_metrics(unit_sales_case())


def test_calculate_business_metrics_without_case():
    metrics = calculate_business_metrics(None)
    assert metrics.total_revenue == 0
    assert metrics.npv == 0
    assert metrics.monthly_data == ()
    assert metrics.irr.error == IrrError.NO_DATA


def test_empty_case_has_no_irr():
    metrics = calculate_business_metrics({})
    assert metrics.irr.error == IrrError.ALL_SAME
    assert metrics.payback_period == 0
