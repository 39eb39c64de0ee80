"""
Tests for the inputs_builder module.

Covers: input mapping, meta defaults, horizon clamping, assumption
shorthands, yearly adjustments and structural validation.
"""

from datetime import date

import pytest

from bizcase_engine import BusinessCase, InputError, build_business_case
from bizcase_engine.inputs_builder import business_case_summary

from sample_cases import unit_sales_case

# ---------------------------------------------------------------------------
# Input mapping from raw data
# ---------------------------------------------------------------------------

def test_input_mapping_from_raw_data():
    """build_business_case should produce a BusinessCase from a raw document."""
    case = build_business_case(unit_sales_case())

    assert isinstance(case, BusinessCase)
    assert case.meta.title == "Widget launch"
    assert case.meta.currency == "EUR"
    assert case.meta.horizon == 12
    assert case.assumptions.pricing.avg_unit_price.value == 50
    assert case.assumptions.pricing.avg_unit_price.rationale == "List price"
    assert case.assumptions.customers.segments[0].id == "retail"
    assert case.assumptions.customers.segments[0].volume.base_value == 100
    assert case.assumptions.opex[0].cost_structure.fixed_component.value == 1000
    assert case.assumptions.capex[0].timeline.series[0].period == 1
    assert case.drivers[0].range == (40, 60)
    assert "assumptions.pricing.avg_unit_price.value" in case.driver_paths


def test_built_case_is_returned_unchanged():
    case = build_business_case(unit_sales_case())
    assert build_business_case(case) is case


def test_meta_defaults():
    """An empty document gets the canonical meta defaults."""
    case = build_business_case({})
    assert case.meta.business_model == "unit_sales"
    assert case.meta.currency == "EUR"
    assert case.meta.frequency == "monthly"
    assert case.meta.start_date == date(2026, 1, 1)
    assert case.meta.horizon == 60
    assert case.assumptions.opex == ()
    assert case.drivers == ()


@pytest.mark.parametrize("periods, horizon", [(None, 60), (0, 60), (24, 24), (120, 60), (-5, 0)])
def test_horizon_clamping(periods, horizon):
    assert build_business_case({"meta": {"periods": periods}}).meta.horizon == horizon


def test_absent_fields_stay_none():
    """Nothing is zero-filled at build time."""
    case = build_business_case({"assumptions": {"unit_economics": {}}})
    assert case.assumptions.unit_economics.cogs_pct is None
    assert case.assumptions.financial.interest_rate is None
    assert case.assumptions.growth_settings is None


def test_bare_number_assumption():
    case = build_business_case({"assumptions": {"financial": {"interest_rate": 0.08}}})
    assert case.assumptions.financial.interest_rate.value == 0.08


def test_camel_case_provenance_fields():
    case = build_business_case(
        {
            "assumptions": {
                "pricing": {
                    "avg_unit_price": {"value": 12, "researchIds": ["r1"], "aiGenerated": True, "aiConfidence": 0.7}
                }
            }
        }
    )
    price = case.assumptions.pricing.avg_unit_price
    assert price.research_ids == ("r1",)
    assert price.ai_generated is True
    assert price.ai_confidence == 0.7


def test_yearly_adjustments_mapping():
    case = build_business_case(
        {
            "assumptions": {
                "pricing": {
                    "avg_unit_price": {"value": 10},
                    "yearly_adjustments": {
                        "pricing_factors": [{"year": 2, "factor": 1.1, "rationale": "inflation"}],
                        "price_overrides": [{"period": 7, "price": 8}],
                    },
                }
            }
        }
    )
    adjustments = case.assumptions.pricing.yearly_adjustments
    assert adjustments.factor_for_year(2).factor == 1.1
    assert adjustments.factor_for_year(3) is None
    assert adjustments.override_for_period(7).value == 8


def test_default_ids():
    case = build_business_case(
        {
            "assumptions": {
                "customers": {"segments": [{"label": "Anonymous"}]},
                "cost_savings": {"baseline_costs": [{}], "efficiency_gains": [{}]},
            }
        }
    )
    assert case.assumptions.customers.segments[0].id == "segment_1"
    assert case.assumptions.cost_savings.baseline_costs[0].id == "cost_1"
    assert case.assumptions.cost_savings.baseline_costs[0].category == "other"
    assert case.assumptions.cost_savings.efficiency_gains[0].id == "gain_1"


def test_summary():
    summary = business_case_summary(build_business_case(unit_sales_case()))
    assert summary == {
        "business_model": "unit_sales",
        "periods": 12,
        "segments": 1,
        "opex_items": 1,
        "capex_items": 1,
        "drivers": 1,
    }


# ---------------------------------------------------------------------------
# Structural validation
# ---------------------------------------------------------------------------

@pytest.mark.parametrize(
    "data",
    [
        [],
        "not a case",
        {"meta": "x"},
        {"assumptions": {"opex": "rent"}},
        {"assumptions": {"opex": [42]}},
        {"assumptions": {"pricing": {"avg_unit_price": {"value": "fifty"}}}},
        {"assumptions": {"financial": {"interest_rate": True}}},
        {"assumptions": {"customers": {"segments": [{"volume": {"series": [{"value": "10"}]}}]}}},
        {"meta": {"periods": "twelve"}},
        {"meta": {"start_date": "next monday"}},
        {"drivers": {"key": "price"}},
    ],
)
def test_structurally_invalid_input_raises(data):
    with pytest.raises(InputError):
        build_business_case(data)


def test_input_error_is_value_error():
    """Service layers map ValueError to 400 responses."""
    assert issubclass(InputError, ValueError)


def test_unknown_business_model_is_logged(caplog):
    """Unknown models still build and project like unit sales."""
    case = build_business_case({"meta": {"business_model": "barter"}})
    assert case.meta.business_model == "barter"
    assert not case.meta.is_recurring
    assert not case.meta.is_cost_savings
    assert "Unknown business_model 'barter'" in caplog.text
