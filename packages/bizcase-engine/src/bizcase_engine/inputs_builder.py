"""
Inputs Builder
==============

Canonical logic for preparing a ``BusinessCase`` from a raw, JSON-style
dictionary (typically the persisted business case document or an API payload).

This module is the **single source of truth** for:
- Structural validation (objects where objects are required, lists where
  lists are required, numbers where numbers are required)
- Normalizing ``{value, unit, rationale}`` assumption values
- Mapping yearly adjustments (``*_factors`` / ``*_overrides``) onto one shape
- Canonical defaults for the ``meta`` block

Absent fields stay ``None``; nothing is zero-filled here. The projection
generator and metric functions apply their zero-defaults when resolving values.

Both ``bizcase_service`` and direct engine callers (CLI, notebooks, tests)
should use ``build_business_case()`` so every call-site sees identical inputs.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from .case import (
    BUSINESS_MODELS,
    DEFAULT_CURRENCY,
    DEFAULT_START_DATE,
    AssumptionValue,
    BaselineCost,
    BusinessAssumptions,
    BusinessCase,
    BusinessMeta,
    CapexItem,
    CostSavingsAssumptions,
    CostStructure,
    CustomerAssumptions,
    CustomerSegment,
    Driver,
    EfficiencyGain,
    FinancialAssumptions,
    GeomGrowthSettings,
    GrowthSettings,
    ImplementationTimeline,
    InputError,
    LinearGrowthSettings,
    OpexItem,
    PeriodOverride,
    PricingAssumptions,
    SeasonalGrowthSettings,
    SeriesPoint,
    UnitEconomics,
    VolumeConfig,
    YearlyAdjustments,
    YearlyFactor,
)

logger = logging.getLogger(__name__)

# Canonical defaults — keep in one place so they never drift.
DEFAULT_BUSINESS_MODEL = "unit_sales"
DEFAULT_FREQUENCY = "monthly"


def build_business_case(data: Any) -> BusinessCase:
    """
    Convert a raw business-case dictionary into an immutable ``BusinessCase``.

    Parameters
    ----------
    data : dict or BusinessCase
        The raw document with ``meta``, ``assumptions`` and ``drivers`` keys.
        An already-built ``BusinessCase`` is returned unchanged.

    Returns
    -------
    BusinessCase

    Raises
    ------
    InputError
        When the document is structurally invalid: a non-object where an
        object is required, a non-list where a list is required, or a
        non-numeric value in a numeric field.
    """
    if isinstance(data, BusinessCase):
        return data
    root = _mapping(data, "business case")

    meta = _build_meta(_optional_mapping(root.get("meta"), "meta"))
    assumptions_raw = _optional_mapping(root.get("assumptions"), "assumptions")
    if not assumptions_raw:
        logger.debug("Business case has no assumptions block; projecting zeros")

    assumptions = BusinessAssumptions(
        pricing=_build_pricing(_optional_mapping(assumptions_raw.get("pricing"), "assumptions.pricing")),
        financial=FinancialAssumptions(
            interest_rate=_assumption(
                _optional_mapping(assumptions_raw.get("financial"), "assumptions.financial").get("interest_rate"),
                "assumptions.financial.interest_rate",
            ),
        ),
        customers=_build_customers(_optional_mapping(assumptions_raw.get("customers"), "assumptions.customers")),
        unit_economics=_build_unit_economics(
            _optional_mapping(assumptions_raw.get("unit_economics"), "assumptions.unit_economics")
        ),
        opex=tuple(
            _build_opex_item(item, f"assumptions.opex[{idx}]")
            for idx, item in enumerate(_list(assumptions_raw.get("opex"), "assumptions.opex"))
        ),
        capex=tuple(
            _build_capex_item(item, f"assumptions.capex[{idx}]")
            for idx, item in enumerate(_list(assumptions_raw.get("capex"), "assumptions.capex"))
        ),
        cost_savings=_build_cost_savings(
            _optional_mapping(assumptions_raw.get("cost_savings"), "assumptions.cost_savings")
        ),
        growth_settings=_build_growth_settings(assumptions_raw.get("growth_settings")),
    )

    drivers = tuple(
        _build_driver(item, f"drivers[{idx}]") for idx, item in enumerate(_list(root.get("drivers"), "drivers"))
    )

    return BusinessCase(
        meta=meta,
        assumptions=assumptions,
        drivers=drivers,
        schema_version=root.get("schema_version"),
    )


# ---------------------------------------------------------------------- #
# Structural helpers
# ---------------------------------------------------------------------- #


def _mapping(obj: Any, where: str) -> Mapping[str, Any]:
    if not isinstance(obj, Mapping):
        raise InputError(f"{where} must be an object, got {type(obj).__name__}")
    return obj


def _optional_mapping(obj: Any, where: str) -> Mapping[str, Any]:
    if obj is None:
        return {}
    return _mapping(obj, where)


def _list(obj: Any, where: str) -> Sequence[Any]:
    if obj is None:
        return ()
    if isinstance(obj, (str, bytes)) or not isinstance(obj, Sequence):
        raise InputError(f"{where} must be a list, got {type(obj).__name__}")
    return obj


def _number(obj: Any, where: str) -> Optional[float]:
    if obj is None:
        return None
    if isinstance(obj, bool) or not isinstance(obj, (int, float)):
        raise InputError(f"{where} must be a number, got {obj!r}")
    return obj


def _numbers(obj: Any, where: str) -> Optional[Tuple[float, ...]]:
    if obj is None:
        return None
    return tuple(_number(v, f"{where}[{i}]") or 0.0 for i, v in enumerate(_list(obj, where)))


def _int(obj: Any, where: str, default: Optional[int] = None) -> Optional[int]:
    number = _number(obj, where)
    if number is None:
        return default
    return int(number)


def _assumption(obj: Any, where: str) -> Optional[AssumptionValue]:
    """Parse ``{value, unit, rationale, ...}``; a bare number is shorthand for ``{value: n}``."""
    if obj is None:
        return None
    if isinstance(obj, (int, float)) and not isinstance(obj, bool):
        return AssumptionValue(value=obj)
    raw = _mapping(obj, where)
    value = raw.get("value")
    if isinstance(value, list):
        value = _numbers(value, f"{where}.value")
    else:
        value = _number(value, f"{where}.value")
    return AssumptionValue(
        value=value,
        unit=raw.get("unit") or "",
        rationale=raw.get("rationale"),
        link=raw.get("link"),
        research_ids=tuple(_list(raw.get("research_ids", raw.get("researchIds")), f"{where}.research_ids")),
        ai_generated=raw.get("ai_generated", raw.get("aiGenerated")),
        ai_confidence=_number(raw.get("ai_confidence", raw.get("aiConfidence")), f"{where}.ai_confidence"),
    )


# ---------------------------------------------------------------------- #
# Sections
# ---------------------------------------------------------------------- #


def _build_meta(raw: Mapping[str, Any]) -> BusinessMeta:
    start_date = DEFAULT_START_DATE
    raw_start = raw.get("start_date")
    if raw_start is not None:
        try:
            start_date = date.fromisoformat(str(raw_start))
        except ValueError as e:
            raise InputError(f"meta.start_date must be an ISO date, got {raw_start!r}") from e

    business_model = raw.get("business_model") or DEFAULT_BUSINESS_MODEL
    if business_model not in BUSINESS_MODELS:
        logger.warning(f"Unknown business_model '{business_model}'; projecting as {DEFAULT_BUSINESS_MODEL}")
    return BusinessMeta(
        title=raw.get("title") or "",
        description=raw.get("description") or "",
        business_model=business_model,
        currency=raw.get("currency") or DEFAULT_CURRENCY,
        periods=_int(raw.get("periods"), "meta.periods"),
        frequency=raw.get("frequency") or DEFAULT_FREQUENCY,
        archetype=raw.get("archetype"),
        start_date=start_date,
    )


def _build_yearly_adjustments(obj: Any, where: str, factors_key: str, overrides_key: str, value_key: str) -> Optional[YearlyAdjustments]:
    if obj is None:
        return None
    raw = _mapping(obj, where)
    factors = []
    for idx, item in enumerate(_list(raw.get(factors_key), f"{where}.{factors_key}")):
        entry = _mapping(item, f"{where}.{factors_key}[{idx}]")
        factors.append(
            YearlyFactor(
                year=_int(entry.get("year"), f"{where}.{factors_key}[{idx}].year", 0),
                factor=_number(entry.get("factor"), f"{where}.{factors_key}[{idx}].factor") or 0.0,
                rationale=entry.get("rationale"),
            )
        )
    overrides = []
    for idx, item in enumerate(_list(raw.get(overrides_key), f"{where}.{overrides_key}")):
        entry = _mapping(item, f"{where}.{overrides_key}[{idx}]")
        overrides.append(
            PeriodOverride(
                period=_int(entry.get("period"), f"{where}.{overrides_key}[{idx}].period", 0),
                value=_number(entry.get(value_key), f"{where}.{overrides_key}[{idx}].{value_key}") or 0.0,
                rationale=entry.get("rationale"),
            )
        )
    return YearlyAdjustments(factors=tuple(factors), overrides=tuple(overrides))


def _build_volume(obj: Any, where: str) -> VolumeConfig:
    raw = _optional_mapping(obj, where)
    series = []
    for idx, item in enumerate(_list(raw.get("series"), f"{where}.series")):
        point = _mapping(item, f"{where}.series[{idx}]")
        series.append(
            SeriesPoint(
                period=_int(point.get("period"), f"{where}.series[{idx}].period"),
                value=_number(point.get("value"), f"{where}.series[{idx}].value") or 0.0,
                unit=point.get("unit") or "",
                rationale=point.get("rationale"),
            )
        )
    return VolumeConfig(
        type=raw.get("type"),
        pattern_type=raw.get("pattern_type"),
        series=tuple(series),
        base_value=_number(raw.get("base_value"), f"{where}.base_value"),
        growth_rate=_number(raw.get("growth_rate"), f"{where}.growth_rate"),
        seasonal_pattern=_numbers(raw.get("seasonal_pattern"), f"{where}.seasonal_pattern"),
        start=_assumption(raw.get("start"), f"{where}.start"),
        monthly_growth_rate=_assumption(raw.get("monthly_growth_rate"), f"{where}.monthly_growth_rate"),
        monthly_flat_increase=_assumption(raw.get("monthly_flat_increase"), f"{where}.monthly_flat_increase"),
        base_year_total=_assumption(raw.get("base_year_total"), f"{where}.base_year_total"),
        seasonality_index_12=_numbers(raw.get("seasonality_index_12"), f"{where}.seasonality_index_12"),
        yoy_growth=_assumption(raw.get("yoy_growth"), f"{where}.yoy_growth"),
        yearly_adjustments=_build_yearly_adjustments(
            raw.get("yearly_adjustments"),
            f"{where}.yearly_adjustments",
            "volume_factors",
            "volume_overrides",
            "volume",
        ),
    )


def _build_pricing(raw: Mapping[str, Any]) -> PricingAssumptions:
    return PricingAssumptions(
        avg_unit_price=_assumption(raw.get("avg_unit_price"), "assumptions.pricing.avg_unit_price"),
        yearly_adjustments=_build_yearly_adjustments(
            raw.get("yearly_adjustments"),
            "assumptions.pricing.yearly_adjustments",
            "pricing_factors",
            "price_overrides",
            "price",
        ),
    )


def _build_customers(raw: Mapping[str, Any]) -> CustomerAssumptions:
    segments = []
    for idx, item in enumerate(_list(raw.get("segments"), "assumptions.customers.segments")):
        where = f"assumptions.customers.segments[{idx}]"
        seg = _mapping(item, where)
        segments.append(
            CustomerSegment(
                id=str(seg.get("id") or f"segment_{idx + 1}"),
                label=seg.get("label") or "",
                rationale=seg.get("rationale"),
                volume=_build_volume(seg.get("volume"), f"{where}.volume"),
            )
        )
    if not segments:
        logger.debug("No customer segments defined; volume resolves to 0")
    return CustomerAssumptions(
        churn_pct=_assumption(raw.get("churn_pct"), "assumptions.customers.churn_pct"),
        segments=tuple(segments),
    )


def _build_unit_economics(raw: Mapping[str, Any]) -> UnitEconomics:
    return UnitEconomics(
        cogs_pct=_assumption(raw.get("cogs_pct"), "assumptions.unit_economics.cogs_pct"),
        cac=_assumption(raw.get("cac"), "assumptions.unit_economics.cac"),
    )


def _build_opex_item(obj: Any, where: str) -> OpexItem:
    raw = _mapping(obj, where)
    cost_structure = None
    if raw.get("cost_structure") is not None:
        cs = _mapping(raw["cost_structure"], f"{where}.cost_structure")
        cost_structure = CostStructure(
            fixed_component=_assumption(cs.get("fixed_component"), f"{where}.cost_structure.fixed_component"),
            variable_revenue_rate=_assumption(
                cs.get("variable_revenue_rate"), f"{where}.cost_structure.variable_revenue_rate"
            ),
            variable_volume_rate=_assumption(
                cs.get("variable_volume_rate"), f"{where}.cost_structure.variable_volume_rate"
            ),
        )
    return OpexItem(
        name=raw.get("name") or "",
        value=_assumption(raw.get("value"), f"{where}.value"),
        cost_structure=cost_structure,
    )


def _build_capex_item(obj: Any, where: str) -> CapexItem:
    raw = _mapping(obj, where)
    timeline = None
    if raw.get("timeline") is not None:
        timeline = _build_volume(raw["timeline"], f"{where}.timeline")
    return CapexItem(name=raw.get("name") or "", timeline=timeline)


def _build_timeline(obj: Any, where: str) -> Optional[ImplementationTimeline]:
    if obj is None:
        return None
    raw = _mapping(obj, where)
    return ImplementationTimeline(
        start_month=_int(raw.get("start_month"), f"{where}.start_month", 1),
        ramp_up_months=_int(raw.get("ramp_up_months"), f"{where}.ramp_up_months", 1),
        full_implementation_month=_int(raw.get("full_implementation_month"), f"{where}.full_implementation_month", 1),
    )


def _build_cost_savings(raw: Mapping[str, Any]) -> CostSavingsAssumptions:
    baseline_costs = []
    for idx, item in enumerate(_list(raw.get("baseline_costs"), "assumptions.cost_savings.baseline_costs")):
        where = f"assumptions.cost_savings.baseline_costs[{idx}]"
        cost = _mapping(item, where)
        baseline_costs.append(
            BaselineCost(
                id=str(cost.get("id") or f"cost_{idx + 1}"),
                label=cost.get("label") or "",
                category=cost.get("category") or "other",
                current_monthly_cost=_assumption(cost.get("current_monthly_cost"), f"{where}.current_monthly_cost"),
                savings_potential_pct=_assumption(cost.get("savings_potential_pct"), f"{where}.savings_potential_pct"),
                implementation_timeline=_build_timeline(
                    cost.get("implementation_timeline"), f"{where}.implementation_timeline"
                ),
            )
        )

    efficiency_gains = []
    for idx, item in enumerate(_list(raw.get("efficiency_gains"), "assumptions.cost_savings.efficiency_gains")):
        where = f"assumptions.cost_savings.efficiency_gains[{idx}]"
        gain = _mapping(item, where)
        efficiency_gains.append(
            EfficiencyGain(
                id=str(gain.get("id") or f"gain_{idx + 1}"),
                label=gain.get("label") or "",
                metric=gain.get("metric") or "",
                baseline_value=_assumption(gain.get("baseline_value"), f"{where}.baseline_value"),
                improved_value=_assumption(gain.get("improved_value"), f"{where}.improved_value"),
                value_per_unit=_assumption(gain.get("value_per_unit"), f"{where}.value_per_unit"),
                implementation_timeline=_build_timeline(
                    gain.get("implementation_timeline"), f"{where}.implementation_timeline"
                ),
            )
        )

    return CostSavingsAssumptions(baseline_costs=tuple(baseline_costs), efficiency_gains=tuple(efficiency_gains))


def _build_growth_settings(obj: Any) -> Optional[GrowthSettings]:
    if obj is None:
        return None
    raw = _mapping(obj, "assumptions.growth_settings")
    where = "assumptions.growth_settings"

    geom = None
    if raw.get("geom_growth") is not None:
        g = _mapping(raw["geom_growth"], f"{where}.geom_growth")
        geom = GeomGrowthSettings(
            start=_assumption(g.get("start"), f"{where}.geom_growth.start"),
            monthly_growth=_assumption(g.get("monthly_growth"), f"{where}.geom_growth.monthly_growth"),
        )

    seasonal = None
    if raw.get("seasonal_growth") is not None:
        s = _mapping(raw["seasonal_growth"], f"{where}.seasonal_growth")
        seasonal = SeasonalGrowthSettings(
            base_year_total=_assumption(s.get("base_year_total"), f"{where}.seasonal_growth.base_year_total"),
            seasonality_index_12=_assumption(
                s.get("seasonality_index_12"), f"{where}.seasonal_growth.seasonality_index_12"
            ),
            yoy_growth=_assumption(s.get("yoy_growth"), f"{where}.seasonal_growth.yoy_growth"),
        )

    linear = None
    if raw.get("linear_growth") is not None:
        lin = _mapping(raw["linear_growth"], f"{where}.linear_growth")
        linear = LinearGrowthSettings(
            start=_assumption(lin.get("start"), f"{where}.linear_growth.start"),
            monthly_flat_increase=_assumption(
                lin.get("monthly_flat_increase"), f"{where}.linear_growth.monthly_flat_increase"
            ),
        )

    return GrowthSettings(geom_growth=geom, seasonal_growth=seasonal, linear_growth=linear)


def _build_driver(obj: Any, where: str) -> Driver:
    raw = _mapping(obj, where)
    bounds = _list(raw.get("range"), f"{where}.range")
    low = _number(bounds[0], f"{where}.range[0]") if len(bounds) > 0 else None
    high = _number(bounds[1], f"{where}.range[1]") if len(bounds) > 1 else None
    return Driver(
        key=raw.get("key") or "",
        label=raw.get("label") or "",
        path=raw.get("path") or "",
        range=(low or 0.0, high or 0.0),
        rationale=raw.get("rationale"),
        unit=raw.get("unit"),
    )


def business_case_summary(case: BusinessCase) -> Dict[str, Any]:
    """Small dictionary describing the shape of a built case, used in log lines."""
    return {
        "business_model": case.meta.business_model,
        "periods": case.meta.horizon,
        "segments": len(case.assumptions.customers.segments),
        "opex_items": len(case.assumptions.opex),
        "capex_items": len(case.assumptions.capex),
        "drivers": len(case.drivers),
    }
