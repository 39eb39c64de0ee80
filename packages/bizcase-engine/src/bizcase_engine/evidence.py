"""
Evidence Trail Builder
======================

Explains how a computed figure was derived, as a tree of ``EvidenceNode``s.

Each metric key maps to a small builder function. Builders read values from
the already-computed monthly records (or from the shared metric functions
applied to them), never from an independent re-derivation, so the root of an
``npv`` trail always equals ``CalculatedMetrics.npv`` for the same case.

Leaves carry the dotted path of the assumption they come from, e.g.
``assumptions.opex[0].cost_structure.fixed_component.value``; a leaf is
flagged ``is_driver`` when a sensitivity driver points at exactly that path.
Percentage leaves show ``value * 100`` with unit ``%``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Iterator, List, Optional, Sequence, Tuple

from .case import AssumptionValue, BusinessCase, VolumeConfig
from .formatting import SUPPORTED_CURRENCIES, format_currency, format_number
from .inputs_builder import build_business_case
from .metrics import (
    break_even_month,
    calculate_irr,
    calculate_npv,
    payback_period,
    total_investment_required,
)
from .projection import MonthlyRecord

logger = logging.getLogger(__name__)


class NodeKind(str, Enum):
    CALCULATED = "calculated"
    ASSUMPTION = "assumption"
    INPUT = "input"
    FORMULA = "formula"
    DRIVER = "driver"
    EXTERNAL = "external"


@dataclass(frozen=True)
class EvidenceNode:
    id: str
    kind: NodeKind
    label: str
    value: Any = None
    unit: Optional[str] = None
    formula: Optional[str] = None
    rationale: Optional[str] = None
    path: Optional[str] = None
    link: Optional[str] = None
    children: Tuple["EvidenceNode", ...] = ()
    is_driver: Optional[bool] = None
    ai_generated: Optional[bool] = None

    def walk(self) -> Iterator["EvidenceNode"]:
        """Depth-first iteration over this node and all descendants."""
        yield self
        for child in self.children:
            yield from child.walk()

    def find(self, node_id: str) -> Optional["EvidenceNode"]:
        for node in self.walk():
            if node.id == node_id:
                return node
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.kind.value,
            "label": self.label,
            "value": self.value,
            "unit": self.unit,
            "formula": self.formula,
            "rationale": self.rationale,
            "path": self.path,
            "link": self.link,
            "is_driver": self.is_driver,
            "ai_generated": self.ai_generated,
            "children": [child.to_dict() for child in self.children],
        }


@dataclass(frozen=True)
class EvidenceContext:
    metric_key: str
    metric_label: Optional[str] = None
    month: Optional[int] = None
    value: Optional[float] = None
    currency: Optional[str] = None


@dataclass(frozen=True)
class EvidenceTrail:
    context: EvidenceContext
    root: EvidenceNode
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "context": {
                "metric_key": self.context.metric_key,
                "metric_label": self.context.metric_label,
                "month": self.context.month,
                "value": self.context.value,
                "currency": self.context.currency,
            },
            "root": self.root.to_dict(),
            "generated_at": self.generated_at.isoformat(),
        }


# ---------------------------------------------------------------------------
# Builder scope
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class _Scope:
    case: BusinessCase
    records: Tuple[MonthlyRecord, ...]
    month: Optional[int]
    driver_paths: FrozenSet[str]

    @property
    def currency(self) -> str:
        return self.case.meta.currency

    @property
    def record(self) -> Optional[MonthlyRecord]:
        if self.month is None or not 1 <= self.month <= len(self.records):
            return None
        return self.records[self.month - 1]

    def total(self, attr: str) -> float:
        """Month value of ``attr`` (0 when out of range), or its horizon total."""
        if self.month is not None:
            record = self.record
            return (getattr(record, attr) or 0) if record is not None else 0
        return sum(getattr(r, attr) or 0 for r in self.records)

    def label(self, name: str, total_label: str) -> str:
        return f"{name} (Month {self.month})" if self.month is not None else total_label

    def cash_flows(self) -> List[float]:
        return [r.net_cash_flow for r in self.records]

    def horizon_wide(self) -> "_Scope":
        return _Scope(self.case, self.records, None, self.driver_paths)


def _leaf(
    scope: _Scope,
    node_id: str,
    label: str,
    assumption: Optional[AssumptionValue],
    path: str,
    unit: Optional[str] = None,
    percent: bool = False,
    kind: NodeKind = NodeKind.INPUT,
    children: Tuple[EvidenceNode, ...] = (),
) -> EvidenceNode:
    value = None
    if assumption is not None and assumption.value is not None:
        value = assumption.value * 100 if percent else assumption.value
    return EvidenceNode(
        id=node_id,
        kind=kind,
        label=label,
        value=value,
        unit="%" if percent else unit,
        rationale=assumption.rationale if assumption is not None else None,
        link=assumption.link if assumption is not None else None,
        ai_generated=assumption.ai_generated if assumption is not None else None,
        path=path,
        is_driver=path in scope.driver_paths,
        children=children,
    )


def _raw_leaf(scope: _Scope, node_id: str, label: str, value: Any, path: str, unit: Optional[str] = None,
              rationale: Optional[str] = None) -> EvidenceNode:
    return EvidenceNode(
        id=node_id,
        kind=NodeKind.INPUT,
        label=label,
        value=value,
        unit=unit,
        rationale=rationale,
        path=path,
        is_driver=path in scope.driver_paths,
    )


def _not_configured(node_id: str, label: str, path: str) -> EvidenceNode:
    return EvidenceNode(
        id=node_id,
        kind=NodeKind.ASSUMPTION,
        label=label,
        rationale="Not configured; contributes 0",
        path=path,
    )


# ---------------------------------------------------------------------------
# Metric builders
# ---------------------------------------------------------------------------


def _revenue(scope: _Scope) -> EvidenceNode:
    if scope.case.meta.is_cost_savings:
        return EvidenceNode(
            id="revenue",
            kind=NodeKind.CALCULATED,
            label=scope.label("Total Benefits", "Total Benefits (5Y)"),
            value=scope.total("revenue"),
            unit=scope.currency,
            formula="Cost Savings + Efficiency Gains",
            children=(_cost_savings(scope), _efficiency_gains(scope)),
        )
    return EvidenceNode(
        id="revenue",
        kind=NodeKind.CALCULATED,
        label=scope.label("Revenue", "Total Revenue (5Y)"),
        value=scope.total("revenue"),
        unit=scope.currency,
        formula="Sales Volume × Unit Price",
        children=(_sales_volume(scope), _pricing(scope)),
    )


def _cost_savings(scope: _Scope) -> EvidenceNode:
    items = scope.case.assumptions.cost_savings.baseline_costs
    children = []
    for idx, cost in enumerate(items):
        base = f"assumptions.cost_savings.baseline_costs[{idx}]"
        monthly = cost.current_monthly_cost.value if cost.current_monthly_cost else 0
        rate = cost.savings_potential_pct.value if cost.savings_potential_pct else 0
        children.append(
            EvidenceNode(
                id=f"baseline-cost-{cost.id}",
                kind=NodeKind.ASSUMPTION,
                label=cost.label or cost.id,
                formula=f"{monthly or 0} × {rate or 0}%",
                path=base,
                children=(
                    _leaf(scope, f"baseline-cost-{cost.id}-base", "Monthly Cost", cost.current_monthly_cost,
                          f"{base}.current_monthly_cost.value", unit=scope.currency),
                    # savings_potential_pct is already a 0-100 percentage
                    _leaf(scope, f"baseline-cost-{cost.id}-rate", "Savings Rate", cost.savings_potential_pct,
                          f"{base}.savings_potential_pct.value", unit="%"),
                ),
            )
        )
    if not children:
        children.append(
            _not_configured("baseline-costs-empty", "No baseline costs", "assumptions.cost_savings.baseline_costs")
        )
    return EvidenceNode(
        id="cost-savings",
        kind=NodeKind.CALCULATED,
        label=scope.label("Cost Savings", "Total Cost Savings"),
        value=scope.total("cost_savings"),
        unit=scope.currency,
        formula="Σ (Baseline Cost × Savings Rate × Implementation Factor)",
        children=tuple(children),
    )


def _efficiency_gains(scope: _Scope) -> EvidenceNode:
    items = scope.case.assumptions.cost_savings.efficiency_gains
    currency = scope.currency
    children = []
    for idx, gain in enumerate(items):
        base = f"assumptions.cost_savings.efficiency_gains[{idx}]"
        metric = gain.metric or "units"
        children.append(
            EvidenceNode(
                id=f"efficiency-gain-{gain.id}",
                kind=NodeKind.ASSUMPTION,
                label=gain.label or gain.id,
                formula=f"|Baseline - Improved| {metric} × Value per Unit",
                path=base,
                children=(
                    _leaf(scope, f"efficiency-gain-{gain.id}-baseline", f"Baseline {metric}", gain.baseline_value,
                          f"{base}.baseline_value.value", unit=metric),
                    _leaf(scope, f"efficiency-gain-{gain.id}-improved", f"Improved {metric}", gain.improved_value,
                          f"{base}.improved_value.value", unit=metric),
                    _leaf(scope, f"efficiency-gain-{gain.id}-value", "Value per Unit", gain.value_per_unit,
                          f"{base}.value_per_unit.value", unit=f"{currency}/{metric}"),
                ),
            )
        )
    if not children:
        children.append(
            _not_configured(
                "efficiency-gains-empty", "No efficiency gains", "assumptions.cost_savings.efficiency_gains"
            )
        )
    return EvidenceNode(
        id="efficiency-gains",
        kind=NodeKind.CALCULATED,
        label=scope.label("Efficiency Gains", "Total Efficiency Gains"),
        value=scope.total("efficiency_gains"),
        unit=currency,
        formula="Σ (|Baseline - Improved| × Value per Unit × Implementation Factor)",
        children=tuple(children),
    )


def _volume_inputs(scope: _Scope, segment_id: str, base: str, volume: VolumeConfig) -> Tuple[EvidenceNode, ...]:
    pattern_field = "pattern_type" if volume.pattern_type else "type"
    nodes = [
        _raw_leaf(scope, f"segment-{segment_id}-type", "Growth Pattern", volume.pattern_type or volume.type,
                  f"{base}.volume.{pattern_field}"),
    ]
    if volume.base_value is not None:
        nodes.append(_raw_leaf(scope, f"segment-{segment_id}-base", "Base Volume", volume.base_value,
                               f"{base}.volume.base_value", unit="units"))
    if volume.growth_rate is not None:
        is_linear = volume.pattern_type == "linear_growth"
        nodes.append(_raw_leaf(
            scope,
            f"segment-{segment_id}-growth",
            "Monthly Increase" if is_linear else "Growth Rate",
            volume.growth_rate if is_linear else volume.growth_rate * 100,
            f"{base}.volume.growth_rate",
            unit="units" if is_linear else "%",
        ))
    if volume.start is not None:
        nodes.append(_leaf(scope, f"segment-{segment_id}-start", "Start Volume", volume.start,
                           f"{base}.volume.start.value", unit="units"))
    if volume.base_year_total is not None:
        nodes.append(_leaf(scope, f"segment-{segment_id}-base-year", "Base Year Total", volume.base_year_total,
                           f"{base}.volume.base_year_total.value", unit="units"))
    if volume.yoy_growth is not None:
        nodes.append(_leaf(scope, f"segment-{segment_id}-yoy", "YoY Growth", volume.yoy_growth,
                           f"{base}.volume.yoy_growth.value", percent=True))
    if volume.monthly_growth_rate is not None:
        nodes.append(_leaf(scope, f"segment-{segment_id}-monthly", "Monthly Growth", volume.monthly_growth_rate,
                           f"{base}.volume.monthly_growth_rate.value", percent=True))
    if volume.monthly_flat_increase is not None:
        nodes.append(_leaf(scope, f"segment-{segment_id}-flat", "Monthly Increase", volume.monthly_flat_increase,
                           f"{base}.volume.monthly_flat_increase.value", unit="units"))
    if volume.yearly_adjustments is not None:
        for i, factor in enumerate(volume.yearly_adjustments.factors):
            nodes.append(_raw_leaf(scope, f"segment-{segment_id}-factor-{i}", f"Year {factor.year} Adjustment",
                                   factor.factor, f"{base}.volume.yearly_adjustments.volume_factors[{i}].factor",
                                   rationale=factor.rationale))
        for i, override in enumerate(volume.yearly_adjustments.overrides):
            nodes.append(_raw_leaf(scope, f"segment-{segment_id}-override-{i}", f"Period {override.period} Override",
                                   override.value,
                                   f"{base}.volume.yearly_adjustments.volume_overrides[{i}].volume",
                                   unit="units", rationale=override.rationale))
    return tuple(nodes)


def _sales_volume(scope: _Scope) -> EvidenceNode:
    segments = scope.case.assumptions.customers.segments
    children = []
    for idx, segment in enumerate(segments):
        base = f"assumptions.customers.segments[{idx}]"
        children.append(
            EvidenceNode(
                id=f"segment-{segment.id}",
                kind=NodeKind.ASSUMPTION,
                label=segment.label or segment.id,
                rationale=segment.rationale,
                path=base,
                children=_volume_inputs(scope, segment.id, base, segment.volume),
            )
        )
    if not children:
        children.append(_not_configured("segments-empty", "No customer segments", "assumptions.customers.segments"))
    return EvidenceNode(
        id="sales-volume",
        kind=NodeKind.CALCULATED,
        label=scope.label("Sales Volume", "Total Sales Volume"),
        value=scope.total("sales_volume"),
        unit="units",
        formula="Σ (Segment Base × Growth Factor)",
        children=tuple(children),
    )


def _pricing(scope: _Scope) -> EvidenceNode:
    pricing = scope.case.assumptions.pricing
    children = []
    if pricing.yearly_adjustments is not None:
        base = "assumptions.pricing.yearly_adjustments"
        for i, factor in enumerate(pricing.yearly_adjustments.factors):
            children.append(_raw_leaf(scope, f"pricing-factor-{i}", f"Year {factor.year} Adjustment", factor.factor,
                                      f"{base}.pricing_factors[{i}].factor", rationale=factor.rationale))
        for i, override in enumerate(pricing.yearly_adjustments.overrides):
            children.append(_raw_leaf(scope, f"pricing-override-{i}", f"Period {override.period} Override",
                                      override.value, f"{base}.price_overrides[{i}].price", unit=scope.currency,
                                      rationale=override.rationale))
    return _leaf(
        scope,
        "pricing",
        "Unit Price",
        pricing.avg_unit_price,
        "assumptions.pricing.avg_unit_price.value",
        unit=scope.currency,
        kind=NodeKind.ASSUMPTION,
        children=tuple(children),
    )


def _net_profit(scope: _Scope) -> EvidenceNode:
    is_cost_savings = scope.case.meta.is_cost_savings
    return EvidenceNode(
        id="net-profit",
        kind=NodeKind.CALCULATED,
        label=scope.label("Net Profit", "Net Profit (5Y)"),
        value=scope.total("net_cash_flow"),
        unit=scope.currency,
        formula=(
            "Total Benefits + COGS + Total OpEx + CapEx"
            if is_cost_savings
            else "Total Revenue + COGS + Total OpEx + CapEx"
        ),
        rationale="Costs are stored as negative amounts",
        children=(_revenue(scope), _cogs(scope), _opex(scope), _capex(scope)),
    )


def _discount_rate(scope: _Scope) -> EvidenceNode:
    return _leaf(
        scope,
        "discount-rate",
        "Discount Rate",
        scope.case.assumptions.financial.interest_rate,
        "assumptions.financial.interest_rate.value",
        percent=True,
        kind=NodeKind.ASSUMPTION,
    )


def _npv(scope: _Scope) -> EvidenceNode:
    rate = scope.case.assumptions.financial.interest_rate
    annual_rate = rate.value if rate is not None and rate.value is not None else 0.0
    whole = scope.horizon_wide()
    return EvidenceNode(
        id="npv",
        kind=NodeKind.CALCULATED,
        label="Net Present Value",
        value=calculate_npv(whole.cash_flows(), annual_rate),
        unit=scope.currency,
        formula="Σ (Net Cash Flow / (1 + r/12)^t)",
        children=(_net_cash_flow(whole), _discount_rate(scope)),
    )


def _irr(scope: _Scope) -> EvidenceNode:
    whole = scope.horizon_wide()
    result = calculate_irr(whole.cash_flows())
    rationale = "The monthly discount rate that makes the net present value of all cash flows equal to zero"
    return EvidenceNode(
        id="irr",
        kind=NodeKind.CALCULATED,
        label="Internal Rate of Return (monthly)",
        value=result.rate * 100 if result.rate is not None else None,
        unit="%",
        formula="Rate where NPV = 0 (Newton-Raphson method)",
        rationale=result.message or rationale,
        children=(_net_cash_flow(whole),),
    )


def _payback(scope: _Scope) -> EvidenceNode:
    whole = scope.horizon_wide()
    return EvidenceNode(
        id="payback-period",
        kind=NodeKind.CALCULATED,
        label="Payback Period",
        value=payback_period(whole.cash_flows()),
        unit="months",
        formula="Months until cumulative cash flow ≥ 0",
        children=(_net_cash_flow(whole),),
    )


def _break_even(scope: _Scope) -> EvidenceNode:
    whole = scope.horizon_wide()
    return EvidenceNode(
        id="break-even",
        kind=NodeKind.CALCULATED,
        label="Break-even Month",
        value=break_even_month(whole.records),
        unit="months",
        formula="First month where EBITDA ≥ 0",
        children=(_ebitda(whole),),
    )


def _investment(scope: _Scope) -> EvidenceNode:
    whole = scope.horizon_wide()
    return EvidenceNode(
        id="total-investment",
        kind=NodeKind.CALCULATED,
        label="Required Investment to Break-even",
        value=total_investment_required(whole.cash_flows()),
        unit=scope.currency,
        formula="Maximum cumulative negative cash flow before break-even",
        children=(_capex(whole), _opex(whole)),
    )


def _gross_profit(scope: _Scope) -> EvidenceNode:
    is_cost_savings = scope.case.meta.is_cost_savings
    return EvidenceNode(
        id="gross-profit",
        kind=NodeKind.CALCULATED,
        label=scope.label("Gross Profit", "Total Gross Profit"),
        value=scope.total("gross_profit"),
        unit=scope.currency,
        formula="Total Benefits + COGS" if is_cost_savings else "Revenue + COGS",
        children=(_revenue(scope), _cogs(scope)),
    )


def _ebitda(scope: _Scope) -> EvidenceNode:
    return EvidenceNode(
        id="ebitda",
        kind=NodeKind.CALCULATED,
        label=scope.label("EBITDA", "Total EBITDA"),
        value=scope.total("ebitda"),
        unit=scope.currency,
        formula="Gross Profit + Total Operating Expenses",
        children=(_gross_profit(scope), _opex(scope)),
    )


def _net_cash_flow(scope: _Scope) -> EvidenceNode:
    return EvidenceNode(
        id="net-cash-flow",
        kind=NodeKind.CALCULATED,
        label=scope.label("Net Cash Flow", "Total Net Cash Flow"),
        value=scope.total("net_cash_flow"),
        unit=scope.currency,
        formula="EBITDA + CapEx",
        rationale="CapEx is stored as a negative amount",
        children=(_ebitda(scope), _capex(scope)),
    )


def _opex(scope: _Scope) -> EvidenceNode:
    currency = scope.currency
    children = []
    for idx, item in enumerate(scope.case.assumptions.opex):
        base = f"assumptions.opex[{idx}]"
        item_children = []
        if item.value is not None:
            item_children.append(_leaf(scope, f"opex-{idx}-value", "Monthly Cost", item.value,
                                       f"{base}.value.value", unit=currency))
        structure = item.cost_structure
        if structure is not None:
            if structure.fixed_component is not None:
                item_children.append(_leaf(scope, f"opex-{idx}-fixed", "Fixed Component", structure.fixed_component,
                                           f"{base}.cost_structure.fixed_component.value", unit=currency))
            if structure.variable_revenue_rate is not None:
                item_children.append(_leaf(scope, f"opex-{idx}-var-rev", "Variable (% Revenue)",
                                           structure.variable_revenue_rate,
                                           f"{base}.cost_structure.variable_revenue_rate.value", percent=True))
            if structure.variable_volume_rate is not None:
                item_children.append(_leaf(scope, f"opex-{idx}-var-vol", "Variable (per Unit)",
                                           structure.variable_volume_rate,
                                           f"{base}.cost_structure.variable_volume_rate.value",
                                           unit=f"{currency}/unit"))
        children.append(
            EvidenceNode(
                id=f"opex-{idx}",
                kind=NodeKind.ASSUMPTION,
                label=item.name or f"OpEx {idx + 1}",
                path=base,
                children=tuple(item_children),
            )
        )
    cac = scope.case.assumptions.unit_economics.cac
    if cac is not None:
        children.append(_leaf(scope, "cac", "Customer Acquisition Cost", cac,
                              "assumptions.unit_economics.cac.value", unit=currency, kind=NodeKind.ASSUMPTION))
    if not children:
        children.append(_not_configured("opex-empty", "No OpEx items", "assumptions.opex"))
    return EvidenceNode(
        id="total-opex",
        kind=NodeKind.CALCULATED,
        label=scope.label("Total OpEx", "Total Operating Expenses"),
        value=scope.total("total_opex"),
        unit=currency,
        formula="Σ (Fixed + Revenue × Rate + Volume × Rate) + CAC",
        rationale="OpEx values are negative as they represent expenses",
        children=tuple(children),
    )


def _cogs(scope: _Scope) -> EvidenceNode:
    return EvidenceNode(
        id="cogs",
        kind=NodeKind.CALCULATED,
        label=scope.label("COGS", "Total COGS"),
        value=scope.total("cogs"),
        unit=scope.currency,
        formula="Revenue × COGS Rate",
        children=(
            _leaf(scope, "cogs-rate", "COGS Rate", scope.case.assumptions.unit_economics.cogs_pct,
                  "assumptions.unit_economics.cogs_pct.value", percent=True, kind=NodeKind.ASSUMPTION),
        ),
    )


def _capex(scope: _Scope) -> EvidenceNode:
    currency = scope.currency
    children = []
    for idx, item in enumerate(scope.case.assumptions.capex):
        base = f"assumptions.capex[{idx}]"
        points = ()
        if item.timeline is not None:
            points = tuple(
                _raw_leaf(scope, f"capex-{idx}-point-{p_idx}", f"Period {point.period}", point.value,
                          f"{base}.timeline.series[{p_idx}].value", unit=currency, rationale=point.rationale)
                for p_idx, point in enumerate(item.timeline.series)
            )
        children.append(
            EvidenceNode(
                id=f"capex-{idx}",
                kind=NodeKind.ASSUMPTION,
                label=item.name or f"CapEx {idx + 1}",
                path=base,
                children=points,
            )
        )
    if not children:
        children.append(_not_configured("capex-empty", "No CapEx items", "assumptions.capex"))
    return EvidenceNode(
        id="capex",
        kind=NodeKind.CALCULATED,
        label=scope.label("CapEx", "Total CapEx"),
        value=scope.total("capex"),
        unit=currency,
        formula="Σ (Investment per period)",
        rationale="CapEx values are negative as they represent investments",
        children=tuple(children),
    )


MetricBuilder = Callable[[_Scope], EvidenceNode]

METRIC_BUILDERS: Dict[str, MetricBuilder] = {
    "revenue": _revenue,
    "net_profit": _net_profit,
    "npv": _npv,
    "irr": _irr,
    "payback_period": _payback,
    "break_even_month": _break_even,
    "total_investment_required": _investment,
    "gross_profit": _gross_profit,
    "ebitda": _ebitda,
    "net_cash_flow": _net_cash_flow,
    "sales_volume": _sales_volume,
    "cost_savings": _cost_savings,
    "efficiency_gains": _efficiency_gains,
    "total_opex": _opex,
    "cogs": _cogs,
    "capex": _capex,
}

METRIC_ALIASES: Dict[str, str] = {
    "total_revenue": "revenue",
    "payback": "payback_period",
    "break_even": "break_even_month",
    "investment": "total_investment_required",
    "opex": "total_opex",
}

RECORD_FIELDS: FrozenSet[str] = frozenset(f.name for f in fields(MonthlyRecord))


def _snake_case(key: str) -> str:
    if key.isupper():
        return key.lower()
    return re.sub(r"(?<!^)(?=[A-Z])", "_", key).lower()


def canonical_metric_key(metric_key: str) -> Optional[str]:
    """``totalRevenue`` / ``total_revenue`` / ``revenue`` -> ``revenue``; ``None`` if unknown."""
    key = _snake_case(metric_key.strip()).replace("-", "_").replace(" ", "_")
    key = re.sub(r"_+", "_", key).strip("_")
    key = METRIC_ALIASES.get(key, key)
    return key if key in METRIC_BUILDERS else None


def build_evidence_trail(
    case: Any,
    monthly_records: Sequence[MonthlyRecord],
    context: EvidenceContext,
    generated_at: Optional[datetime] = None,
) -> EvidenceTrail:
    """
    Build the evidence tree for ``context.metric_key``.

    With ``context.month`` set, month-scoped figures are read from that
    record (0 when out of range); otherwise horizon totals are used. Unknown
    keys produce a single ``calculated`` leaf with no children.
    """
    business_case = build_business_case(case)
    scope = _Scope(
        case=business_case,
        records=tuple(monthly_records),
        month=context.month,
        driver_paths=business_case.driver_paths,
    )

    key = canonical_metric_key(context.metric_key)
    if key is None:
        logger.info(f"No evidence builder for metric '{context.metric_key}'")
        record = scope.record
        attribute = _snake_case(context.metric_key)
        value = getattr(record, attribute) if record is not None and attribute in RECORD_FIELDS else None
        root = EvidenceNode(
            id=f"metric-{context.metric_key}",
            kind=NodeKind.CALCULATED,
            label=context.metric_key,
            value=value,
        )
    else:
        root = METRIC_BUILDERS[key](scope)

    return EvidenceTrail(
        context=context,
        root=root,
        generated_at=generated_at or datetime.now(timezone.utc),
    )


def format_evidence_value(value: Any, unit: Optional[str] = None, currency: Optional[str] = None) -> str:
    """
    Display string for a node value: ``-`` when absent, strings as-is,
    ``%`` with one decimal, counts grouped, currency codes as whole units.
    """
    if value is None:
        return "-"
    if isinstance(value, str):
        return value
    if unit == "%":
        return f"{value:.1f}%"
    if unit in ("months", "units"):
        return format_number(value)
    code = unit or currency or "EUR"
    if code in SUPPORTED_CURRENCIES:
        return format_currency(value, code)
    return format_number(value)
