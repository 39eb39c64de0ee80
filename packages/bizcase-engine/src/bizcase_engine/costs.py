"""
Opex / Capex Resolver
=====================

Monthly operating expenditure, capital expenditure and the cost-savings
helpers (implementation ramp, savings, efficiency gains). All amounts are
returned as positive magnitudes; the projection generator applies signs.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from .case import (
    BaselineCost,
    CapexItem,
    EfficiencyGain,
    ImplementationTimeline,
    OpexItem,
    value_of,
)
from .growth_patterns import legacy_pattern, resolve_pattern
from .numeric import round_half_up


@dataclass(frozen=True)
class OpexBreakdown:
    """
    Display categories for the first three opex items plus the total.

    ``total`` sums **all** configured items, not only the three surfaced as
    sales & marketing, R&D and G&A.
    """

    sales_marketing: float = 0.0
    rd: float = 0.0
    ga: float = 0.0
    total: float = 0.0


def opex_item_cost(item: Optional[OpexItem], revenue: float, volume: float) -> float:
    """
    Monthly cost of one opex item.

    A ``cost_structure`` gives ``round(fixed + revenue * rev_rate + volume * vol_rate)``;
    otherwise the legacy fixed ``value`` is used as-is; otherwise 0.
    """
    if item is None:
        return 0.0
    structure = item.cost_structure
    if structure is not None:
        fixed = value_of(structure.fixed_component)
        variable_revenue = revenue * value_of(structure.variable_revenue_rate)
        variable_volume = volume * value_of(structure.variable_volume_rate)
        return round_half_up(fixed + variable_revenue + variable_volume)
    return value_of(item.value)


def opex_for_month(items: Sequence[OpexItem], revenue: float, volume: float) -> OpexBreakdown:
    if not items:
        return OpexBreakdown()

    def at(index: int) -> Optional[OpexItem]:
        return items[index] if index < len(items) else None

    return OpexBreakdown(
        sales_marketing=opex_item_cost(at(0), revenue, volume),
        rd=opex_item_cost(at(1), revenue, volume),
        ga=opex_item_cost(at(2), revenue, volume),
        total=sum(opex_item_cost(item, revenue, volume) for item in items),
    )


def capex_for_month(items: Sequence[CapexItem], month_index: int) -> float:
    """
    Capital expenditure for the zero-based ``month_index``.

    ``time_series`` timelines contribute only on the exact matching 1-based
    period (one-off investments are not carried forward). ``pattern``
    timelines use the legacy pattern fields on the timeline itself.
    """
    total = 0.0
    for item in items:
        timeline = item.timeline
        if timeline is None:
            continue
        if timeline.type == "time_series":
            for point in timeline.series:
                if point.period == month_index + 1:
                    total += point.value
                    break
        elif timeline.type == "pattern" and timeline.pattern_type is not None:
            pattern = legacy_pattern(timeline.pattern_type, timeline, None)
            if pattern is not None:
                total += resolve_pattern(pattern, month_index)
    return total


# ---------------------------------------------------------------------------
# Cost savings
# ---------------------------------------------------------------------------


def implementation_factor(month_index: int, timeline: Optional[ImplementationTimeline]) -> float:
    """
    Share of the full benefit realized in the zero-based ``month_index``.

    0 before ``start_month``, 1 from ``full_implementation_month`` on, and a
    linear ramp over ``ramp_up_months`` in between. No timeline means 1.
    """
    if timeline is None:
        return 1.0
    month = month_index + 1
    if month < timeline.start_month:
        return 0.0
    if month >= timeline.full_implementation_month:
        return 1.0
    months_in = month - timeline.start_month + 1
    return min(1.0, months_in / max(1, timeline.ramp_up_months))


def baseline_costs_for_month(costs: Sequence[BaselineCost]) -> float:
    return sum(value_of(cost.current_monthly_cost) for cost in costs)


def cost_savings_for_month(costs: Sequence[BaselineCost], month_index: int) -> float:
    total = 0.0
    for cost in costs:
        # savings_potential_pct is a 0-100 percentage
        rate = value_of(cost.savings_potential_pct) / 100
        factor = implementation_factor(month_index, cost.implementation_timeline)
        total += value_of(cost.current_monthly_cost) * rate * factor
    return total


def efficiency_gains_for_month(gains: Sequence[EfficiencyGain], month_index: int) -> float:
    """
    Monetary value of efficiency improvements.

    The absolute difference covers both reductions (hours 160 -> 60) and
    increases (detections 4 -> 8).
    """
    total = 0.0
    for gain in gains:
        improvement = abs(value_of(gain.baseline_value) - value_of(gain.improved_value))
        factor = implementation_factor(month_index, gain.implementation_timeline)
        total += improvement * value_of(gain.value_per_unit) * factor
    return total
