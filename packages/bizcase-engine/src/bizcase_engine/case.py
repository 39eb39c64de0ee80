"""
Business Case Model
===================

Immutable, fully-typed representation of a business case's assumptions.

Raw JSON-style dictionaries are converted into these dataclasses by
``bizcase_engine.inputs_builder.build_business_case``. Every optional field
uses ``None`` to mean "not provided", so absence stays distinguishable from an
explicit zero. The engine applies its zero-defaults only when resolving values.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional, Tuple


MAX_PERIODS: int = 60
DEFAULT_CURRENCY: str = "EUR"
DEFAULT_START_DATE: date = date(2026, 1, 1)

BUSINESS_MODEL_RECURRING = "recurring"
BUSINESS_MODEL_UNIT_SALES = "unit_sales"
BUSINESS_MODEL_COST_SAVINGS = "cost_savings"
BUSINESS_MODELS = (
    BUSINESS_MODEL_RECURRING,
    BUSINESS_MODEL_UNIT_SALES,
    BUSINESS_MODEL_COST_SAVINGS,
)


class InputError(ValueError):
    pass


@dataclass(frozen=True)
class AssumptionValue:
    """A single numeric (or list-valued) assumption with its provenance."""

    value: Any
    unit: str = ""
    rationale: Optional[str] = None
    link: Optional[str] = None
    research_ids: Tuple[str, ...] = ()
    ai_generated: Optional[bool] = None
    ai_confidence: Optional[float] = None


def value_of(assumption: Optional[AssumptionValue], default: float = 0.0) -> float:
    """Numeric value of an optional assumption, ``default`` when absent."""
    if assumption is None or assumption.value is None:
        return default
    return assumption.value


# ---------------------------------------------------------------------------
# Growth / volume configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SeriesPoint:
    period: Optional[int]
    value: float
    unit: str = ""
    rationale: Optional[str] = None


@dataclass(frozen=True)
class YearlyFactor:
    year: int
    factor: float
    rationale: Optional[str] = None


@dataclass(frozen=True)
class PeriodOverride:
    period: int
    value: float
    rationale: Optional[str] = None


@dataclass(frozen=True)
class YearlyAdjustments:
    factors: Tuple[YearlyFactor, ...] = ()
    overrides: Tuple[PeriodOverride, ...] = ()

    def factor_for_year(self, year: int) -> Optional[YearlyFactor]:
        for item in self.factors:
            if item.year == year:
                return item
        return None

    def override_for_period(self, period: int) -> Optional[PeriodOverride]:
        for item in self.overrides:
            if item.period == period:
                return item
        return None


@dataclass(frozen=True)
class VolumeConfig:
    """
    Volume (or capex timeline) configuration.

    Segment-level pattern fields (``base_value``, ``growth_rate``,
    ``seasonal_pattern``) take precedence over the legacy ``type: pattern``
    fields, which in turn fall back to the global growth settings.
    """

    type: Optional[str] = None
    pattern_type: Optional[str] = None
    series: Tuple[SeriesPoint, ...] = ()

    # Segment-level pattern fields
    base_value: Optional[float] = None
    growth_rate: Optional[float] = None
    seasonal_pattern: Optional[Tuple[float, ...]] = None

    # Legacy pattern fields
    start: Optional[AssumptionValue] = None
    monthly_growth_rate: Optional[AssumptionValue] = None
    monthly_flat_increase: Optional[AssumptionValue] = None
    base_year_total: Optional[AssumptionValue] = None
    seasonality_index_12: Optional[Tuple[float, ...]] = None
    yoy_growth: Optional[AssumptionValue] = None

    yearly_adjustments: Optional[YearlyAdjustments] = None


@dataclass(frozen=True)
class CustomerSegment:
    id: str
    label: str = ""
    rationale: Optional[str] = None
    volume: VolumeConfig = field(default_factory=VolumeConfig)


@dataclass(frozen=True)
class GeomGrowthSettings:
    start: Optional[AssumptionValue] = None
    monthly_growth: Optional[AssumptionValue] = None


@dataclass(frozen=True)
class LinearGrowthSettings:
    start: Optional[AssumptionValue] = None
    monthly_flat_increase: Optional[AssumptionValue] = None


@dataclass(frozen=True)
class SeasonalGrowthSettings:
    base_year_total: Optional[AssumptionValue] = None
    seasonality_index_12: Optional[AssumptionValue] = None
    yoy_growth: Optional[AssumptionValue] = None


@dataclass(frozen=True)
class GrowthSettings:
    geom_growth: Optional[GeomGrowthSettings] = None
    seasonal_growth: Optional[SeasonalGrowthSettings] = None
    linear_growth: Optional[LinearGrowthSettings] = None


# ---------------------------------------------------------------------------
# Assumption groups
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PricingAssumptions:
    avg_unit_price: Optional[AssumptionValue] = None
    yearly_adjustments: Optional[YearlyAdjustments] = None


@dataclass(frozen=True)
class FinancialAssumptions:
    interest_rate: Optional[AssumptionValue] = None


@dataclass(frozen=True)
class CustomerAssumptions:
    churn_pct: Optional[AssumptionValue] = None
    segments: Tuple[CustomerSegment, ...] = ()


@dataclass(frozen=True)
class UnitEconomics:
    cogs_pct: Optional[AssumptionValue] = None
    cac: Optional[AssumptionValue] = None


@dataclass(frozen=True)
class CostStructure:
    fixed_component: Optional[AssumptionValue] = None
    variable_revenue_rate: Optional[AssumptionValue] = None
    variable_volume_rate: Optional[AssumptionValue] = None


@dataclass(frozen=True)
class OpexItem:
    name: str
    value: Optional[AssumptionValue] = None
    cost_structure: Optional[CostStructure] = None


@dataclass(frozen=True)
class CapexItem:
    name: str
    timeline: Optional[VolumeConfig] = None


@dataclass(frozen=True)
class ImplementationTimeline:
    start_month: int = 1
    ramp_up_months: int = 1
    full_implementation_month: int = 1


@dataclass(frozen=True)
class BaselineCost:
    id: str
    label: str = ""
    category: str = ""
    current_monthly_cost: Optional[AssumptionValue] = None
    savings_potential_pct: Optional[AssumptionValue] = None
    implementation_timeline: Optional[ImplementationTimeline] = None


@dataclass(frozen=True)
class EfficiencyGain:
    id: str
    label: str = ""
    metric: str = ""
    baseline_value: Optional[AssumptionValue] = None
    improved_value: Optional[AssumptionValue] = None
    value_per_unit: Optional[AssumptionValue] = None
    implementation_timeline: Optional[ImplementationTimeline] = None


@dataclass(frozen=True)
class CostSavingsAssumptions:
    baseline_costs: Tuple[BaselineCost, ...] = ()
    efficiency_gains: Tuple[EfficiencyGain, ...] = ()


@dataclass(frozen=True)
class BusinessAssumptions:
    pricing: PricingAssumptions = field(default_factory=PricingAssumptions)
    financial: FinancialAssumptions = field(default_factory=FinancialAssumptions)
    customers: CustomerAssumptions = field(default_factory=CustomerAssumptions)
    unit_economics: UnitEconomics = field(default_factory=UnitEconomics)
    opex: Tuple[OpexItem, ...] = ()
    capex: Tuple[CapexItem, ...] = ()
    cost_savings: CostSavingsAssumptions = field(default_factory=CostSavingsAssumptions)
    growth_settings: Optional[GrowthSettings] = None


# ---------------------------------------------------------------------------
# Top level
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Driver:
    key: str
    label: str
    path: str
    range: Tuple[float, float] = (0.0, 0.0)
    rationale: Optional[str] = None
    unit: Optional[str] = None


@dataclass(frozen=True)
class BusinessMeta:
    title: str = ""
    description: str = ""
    business_model: str = BUSINESS_MODEL_UNIT_SALES
    currency: str = DEFAULT_CURRENCY
    periods: Optional[int] = None
    frequency: str = "monthly"
    archetype: Optional[str] = None
    start_date: date = DEFAULT_START_DATE

    @property
    def horizon(self) -> int:
        """Number of projected months: ``periods`` (default 60) capped at 60."""
        if not self.periods:
            return MAX_PERIODS
        return max(0, min(self.periods, MAX_PERIODS))

    @property
    def is_cost_savings(self) -> bool:
        return self.business_model == BUSINESS_MODEL_COST_SAVINGS

    @property
    def is_recurring(self) -> bool:
        return self.business_model == BUSINESS_MODEL_RECURRING


@dataclass(frozen=True)
class BusinessCase:
    meta: BusinessMeta = field(default_factory=BusinessMeta)
    assumptions: BusinessAssumptions = field(default_factory=BusinessAssumptions)
    drivers: Tuple[Driver, ...] = ()
    schema_version: Optional[str] = None

    @property
    def driver_paths(self) -> frozenset:
        return frozenset(d.path for d in self.drivers)
