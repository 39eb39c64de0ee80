"""
Tests for the evidence trail builder.

The trail roots must agree with the aggregate metrics for the same case, every
calculated node must explain itself through children, and leaves must carry
assumption paths and driver flags.
"""

from datetime import datetime, timezone

import pytest

from bizcase_engine import (
    EvidenceContext,
    NodeKind,
    build_business_case,
    build_evidence_trail,
    calculate_business_metrics,
    format_evidence_value,
    generate_monthly_records,
)
from bizcase_engine.evidence import METRIC_BUILDERS, canonical_metric_key

from sample_cases import cost_savings_case, unit_sales_case


def _trail(data, metric_key, month=None):
    case = build_business_case(data)
    records = generate_monthly_records(case)
    return build_evidence_trail(case, records, EvidenceContext(metric_key=metric_key, month=month))


# ---------------------------------------------------------------------------
# Consistency with metrics
# ---------------------------------------------------------------------------


def test_npv_root_matches_metrics():
    metrics = calculate_business_metrics(unit_sales_case())
    trail = _trail(unit_sales_case(), "npv")
    assert trail.root.id == "npv"
    assert trail.root.value == pytest.approx(metrics.npv)
    assert [c.id for c in trail.root.children] == ["net-cash-flow", "discount-rate"]


def test_npv_root_ignores_month():
    metrics = calculate_business_metrics(unit_sales_case())
    assert _trail(unit_sales_case(), "npv", month=3).root.value == pytest.approx(metrics.npv)


def test_horizon_roots_match_metrics():
    metrics = calculate_business_metrics(unit_sales_case())
    assert _trail(unit_sales_case(), "net_profit").root.value == metrics.net_profit
    assert _trail(unit_sales_case(), "totalRevenue").root.value == metrics.total_revenue
    assert _trail(unit_sales_case(), "paybackPeriod").root.value == metrics.payback_period
    assert _trail(unit_sales_case(), "break_even").root.value == metrics.break_even_month
    assert _trail(unit_sales_case(), "investment").root.value == metrics.total_investment_required


def test_irr_root_carries_error_message():
    trail = _trail(unit_sales_case(), "irr")
    assert trail.root.value is None
    assert trail.root.unit == "%"
    assert trail.root.rationale == "IRR calculation resulted in extreme rate"


def test_irr_root_as_percentage():
    data = unit_sales_case()
    data["assumptions"]["capex"][0]["timeline"]["series"][0]["value"] = 20_000
    metrics = calculate_business_metrics(data)
    assert not metrics.irr.is_error
    assert _trail(data, "irr").root.value == pytest.approx(metrics.irr.rate * 100)


# ---------------------------------------------------------------------------
# Tree shape
# ---------------------------------------------------------------------------


def test_revenue_for_month():
    trail = _trail(unit_sales_case(), "revenue", month=1)
    root = trail.root
    assert root.kind == NodeKind.CALCULATED
    assert root.value == 5000
    assert root.label == "Revenue (Month 1)"
    assert [c.id for c in root.children] == ["sales-volume", "pricing"]

    segment = root.find("segment-retail")
    assert segment is not None
    assert segment.find("segment-retail-base").value == 100
    assert segment.find("segment-retail-base").path == "assumptions.customers.segments[0].volume.base_value"


def test_revenue_horizon_label():
    assert _trail(unit_sales_case(), "revenue").root.label == "Total Revenue (5Y)"


def test_cost_savings_revenue_children():
    trail = _trail(cost_savings_case(), "revenue", month=1)
    root = trail.root
    assert root.value == 5500
    assert [c.id for c in root.children] == ["cost-savings", "efficiency-gains"]
    rate = root.find("baseline-cost-support-rate")
    assert rate.value == 20
    assert rate.unit == "%"


def test_out_of_range_month_is_zero():
    assert _trail(unit_sales_case(), "revenue", month=99).root.value == 0


def test_percent_leaves_are_scaled():
    cogs_rate = _trail(unit_sales_case(), "cogs").root.find("cogs-rate")
    assert cogs_rate.value == pytest.approx(20)
    assert cogs_rate.unit == "%"
    assert cogs_rate.path == "assumptions.unit_economics.cogs_pct.value"


def test_opex_leaves_and_cac():
    root = _trail(unit_sales_case(), "opex", month=1).root
    assert root.id == "total-opex"
    assert root.value == -2200
    assert root.find("opex-0-fixed").value == 1000
    assert root.find("opex-0-var-rev").value == pytest.approx(10)
    assert root.find("cac").value == 5


def test_driver_flag():
    root = _trail(unit_sales_case(), "revenue").root
    assert root.find("pricing").is_driver is True
    assert root.find("pricing").rationale == "List price"
    assert root.find("segment-retail-base").is_driver is False


@pytest.mark.parametrize("metric_key", sorted(METRIC_BUILDERS))
def test_calculated_nodes_have_children(metric_key):
    for data in ({}, unit_sales_case(), cost_savings_case()):
        for node in _trail(data, metric_key).root.walk():
            if node.kind == NodeKind.CALCULATED:
                assert node.children, f"{metric_key}: '{node.id}' has no children"


def test_unknown_metric_is_leaf():
    trail = _trail(unit_sales_case(), "unitPrice", month=1)
    assert trail.root.id == "metric-unitPrice"
    assert trail.root.children == ()
    assert trail.root.value == 50

    assert _trail(unit_sales_case(), "somethingElse").root.value is None
    assert _trail(unit_sales_case(), "__init__", month=1).root.value is None
    assert _trail(unit_sales_case(), "to_dict", month=1).root.value is None


def test_canonical_metric_key():
    assert canonical_metric_key("totalRevenue") == "revenue"
    assert canonical_metric_key("net-profit") == "net_profit"
    assert canonical_metric_key("NPV") == "npv"
    assert canonical_metric_key("Net Profit") == "net_profit"
    assert canonical_metric_key("Total_Revenue") == "revenue"
    assert canonical_metric_key("payback - period") == "payback_period"
    assert canonical_metric_key("cash break even") is None


def test_trail_to_dict():
    generated_at = datetime(2026, 3, 1, tzinfo=timezone.utc)
    case = build_business_case(unit_sales_case())
    trail = build_evidence_trail(
        case,
        generate_monthly_records(case),
        EvidenceContext(metric_key="cogs", month=2, currency="EUR"),
        generated_at=generated_at,
    )
    data = trail.to_dict()
    assert data["generated_at"] == "2026-03-01T00:00:00+00:00"
    assert data["context"]["month"] == 2
    assert data["root"]["type"] == "calculated"
    assert data["root"]["children"][0]["id"] == "cogs-rate"


# ---------------------------------------------------------------------------
# Display
# ---------------------------------------------------------------------------


def test_format_evidence_value():
    assert format_evidence_value(None) == "-"
    assert format_evidence_value("geometric_growth") == "geometric_growth"
    assert format_evidence_value(12.34, "%") == "12.3%"
    assert format_evidence_value(1_234_567, "units") == "1,234,567"
    assert format_evidence_value(5, "months") == "5"
    assert format_evidence_value(1234.4, "EUR") == "€1,234"
    assert format_evidence_value(-1234.5, None, "USD") == "-$1,235"
    assert format_evidence_value(1234.5, "EUR/unit") == "1,234.5"
