"""
Monthly Projection Generator
============================

Builds the month-by-month financial record for the projection horizon
(``meta.periods``, default 60, never more than 60).

Sign convention: revenue and gross profit are positive; COGS, opex, CAC and
capex are stored as negative amounts, so

    gross_profit  = revenue + cogs
    ebitda        = gross_profit + total_opex
    net_cash_flow = ebitda + capex

Business-model branches:

- ``recurring``: month 0 volume is all new customers; afterwards existing
  customers are the previous month's total after churn, and new customers
  fill the gap to the month's volume. CAC is charged on new customers only.
- ``unit_sales`` (and any unrecognized model): every unit is a new
  transaction; CAC is charged on the full volume.
- ``cost_savings``: volume is fixed to 1 and "revenue" is the rounded sum of
  cost savings and efficiency gains.
"""

from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional, Tuple

from .case import BusinessCase, value_of
from .costs import (
    baseline_costs_for_month,
    capex_for_month,
    cost_savings_for_month,
    efficiency_gains_for_month,
    opex_for_month,
)
from .growth_patterns import total_volume_for_month, unit_price_for_month
from .numeric import round_half_up

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MonthlyRecord:
    month: int
    date: date
    sales_volume: float
    new_customers: float
    existing_customers: float
    unit_price: float
    revenue: float
    cogs: float
    gross_profit: float
    sales_marketing: float
    total_cac: float
    cac: float
    rd: float
    ga: float
    total_opex: float
    ebitda: float
    capex: float
    net_cash_flow: float
    # Cost-savings models only
    baseline_costs: Optional[float] = None
    cost_savings: Optional[float] = None
    efficiency_gains: Optional[float] = None
    total_benefits: Optional[float] = None


def add_months(start: date, months: int) -> date:
    """Calendar-aware month offset; the day is clamped to the target month's length."""
    index = start.month - 1 + months
    year = start.year + index // 12
    month = index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def _expense(amount: float) -> float:
    # Expenses are stored negative; avoid -0.0 in serialized output.
    return -amount if amount else 0.0


def generate_monthly_records(case: BusinessCase) -> Tuple[MonthlyRecord, ...]:
    """
    Generate the monthly projection for ``case``.

    The function is pure: the same ``BusinessCase`` always yields an equal
    tuple of records. Each month reads the previous record (for churn) but
    never modifies it.
    """
    meta = case.meta
    assumptions = case.assumptions
    periods = meta.horizon

    churn_rate = value_of(assumptions.customers.churn_pct)
    cogs_pct = value_of(assumptions.unit_economics.cogs_pct)
    cac = value_of(assumptions.unit_economics.cac)
    baseline_items = assumptions.cost_savings.baseline_costs
    gain_items = assumptions.cost_savings.efficiency_gains

    records = []
    for i in range(periods):
        volume = total_volume_for_month(case, i)
        new_customers = 0.0
        existing_customers = 0.0
        unit_price = 0.0
        baseline_costs = cost_savings = efficiency_gains = total_benefits = None

        if meta.is_cost_savings:
            baseline_costs = baseline_costs_for_month(baseline_items)
            cost_savings = cost_savings_for_month(baseline_items, i)
            efficiency_gains = efficiency_gains_for_month(gain_items, i)
            total_benefits = cost_savings + efficiency_gains
            revenue = round_half_up(total_benefits)
            volume = 1.0
        else:
            if meta.is_recurring and i > 0:
                previous = records[i - 1]
                existing_customers = round_half_up(
                    (previous.new_customers + previous.existing_customers) * (1 - churn_rate)
                )
                new_customers = max(0.0, volume - existing_customers)
            else:
                new_customers = volume
            unit_price = unit_price_for_month(assumptions.pricing, i)
            revenue = round_half_up(volume * unit_price)

        cogs = _expense(round_half_up(revenue * cogs_pct))
        gross_profit = revenue + cogs

        opex = opex_for_month(assumptions.opex, revenue, volume)
        cac_base = new_customers if meta.is_recurring else volume
        total_cac = _expense(round_half_up(cac_base * cac))
        total_opex = _expense(opex.total) + total_cac

        ebitda = gross_profit + total_opex
        capex = _expense(capex_for_month(assumptions.capex, i))
        net_cash_flow = ebitda + capex

        records.append(
            MonthlyRecord(
                month=i + 1,
                date=add_months(meta.start_date, i),
                sales_volume=round_half_up(volume),
                new_customers=round_half_up(new_customers),
                existing_customers=round_half_up(existing_customers),
                unit_price=unit_price,
                revenue=revenue,
                cogs=cogs,
                gross_profit=gross_profit,
                sales_marketing=_expense(opex.sales_marketing),
                total_cac=total_cac,
                cac=cac,
                rd=_expense(opex.rd),
                ga=_expense(opex.ga),
                total_opex=total_opex,
                ebitda=ebitda,
                capex=capex,
                net_cash_flow=net_cash_flow,
                baseline_costs=round_half_up(baseline_costs) if baseline_costs is not None else None,
                cost_savings=round_half_up(cost_savings) if cost_savings is not None else None,
                efficiency_gains=round_half_up(efficiency_gains) if efficiency_gains is not None else None,
                total_benefits=round_half_up(total_benefits) if total_benefits is not None else None,
            )
        )

    logger.debug(f"Generated {len(records)} monthly records ({meta.business_model})")
    return tuple(records)
