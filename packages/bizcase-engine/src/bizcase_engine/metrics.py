"""
Aggregate Metrics Calculator
============================

Investment metrics over a monthly net-cash-flow series:

- ``calculate_npv``: discounted at ``annual_rate / 12`` per month, with the
  first month discounted one full period.
- ``calculate_irr``: Newton-Raphson over the *monthly* rate. Degenerate
  inputs are classified up front and returned as ``IrrError`` values inside an
  ``IrrResult``. A rate and an error never share a numeric domain.
- ``payback_period``, ``break_even_month``, ``cash_break_even_month`` and
  ``total_investment_required``.

``calculate_business_metrics`` ties the projection and these functions
together.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Optional, Sequence, Tuple

from .case import BusinessCase, value_of
from .inputs_builder import build_business_case
from .numeric import normalize_to_float_list
from .projection import MonthlyRecord, generate_monthly_records

logger = logging.getLogger(__name__)

MONTHS_PER_YEAR: int = 12

# Newton-Raphson parameters
IRR_INITIAL_GUESS: float = 0.1
IRR_TOLERANCE: float = 1e-6
IRR_MAX_ITERATIONS: int = 1000
IRR_MAX_STEP: float = 1.0
IRR_DAMPED_STEP: float = 0.5
IRR_MIN_MONTHLY_RATE: float = -0.5
IRR_MAX_MONTHLY_RATE: float = 5.0
IRR_MIN_ANNUAL_RATE: float = -0.99
IRR_MAX_ANNUAL_RATE: float = 100.0
SAME_FLOW_TOLERANCE: float = 0.01


class IrrError(str, Enum):
    NO_DATA = "NO_DATA"
    ALL_SAME = "ALL_SAME"
    ALL_POSITIVE = "ALL_POSITIVE"
    ALL_NEGATIVE = "ALL_NEGATIVE"
    NO_CONVERGENCE = "NO_CONVERGENCE"
    EXTREME_RATE = "EXTREME_RATE"


IRR_ERROR_MESSAGES = {
    IrrError.NO_DATA: "No data available for IRR calculation",
    IrrError.ALL_SAME: "All cash flows are identical - IRR cannot be calculated",
    IrrError.ALL_POSITIVE: "All cash flows are positive - infinite return",
    IrrError.ALL_NEGATIVE: "All cash flows are negative - no return possible",
    IrrError.NO_CONVERGENCE: "IRR calculation did not converge",
    IrrError.EXTREME_RATE: "IRR calculation resulted in extreme rate",
}


@dataclass(frozen=True)
class IrrResult:
    """
    Outcome of an IRR search: exactly one of ``rate`` (monthly) or ``error`` is set.
    """

    rate: Optional[float] = None
    error: Optional[IrrError] = None

    @classmethod
    def ok(cls, rate: float) -> "IrrResult":
        return cls(rate=rate)

    @classmethod
    def fail(cls, error: IrrError) -> "IrrResult":
        return cls(error=error)

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def annualized(self) -> Optional[float]:
        if self.rate is None:
            return None
        return (1 + self.rate) ** MONTHS_PER_YEAR - 1

    @property
    def message(self) -> Optional[str]:
        return irr_error_message(self.error) if self.error is not None else None


def is_irr_error(result: Any) -> bool:
    """True when ``result`` is an ``IrrError`` or an ``IrrResult`` carrying one."""
    if isinstance(result, IrrError):
        return True
    if isinstance(result, IrrResult):
        return result.is_error
    return False


def irr_error_message(error: IrrError) -> str:
    return IRR_ERROR_MESSAGES.get(IrrError(error), "Unknown IRR calculation error")


# ---------------------------------------------------------------------------
# NPV / IRR
# ---------------------------------------------------------------------------


def calculate_npv(cash_flows: Iterable[float], annual_rate: float) -> float:
    """``sum(cf[t] / (1 + annual_rate / 12) ** (t + 1))``."""
    monthly_rate = annual_rate / MONTHS_PER_YEAR
    return sum(cf / (1 + monthly_rate) ** (t + 1) for t, cf in enumerate(normalize_to_float_list(cash_flows)))


def _npv_at(flows: Sequence[float], rate: float) -> float:
    return sum(cf / (1 + rate) ** (t + 1) for t, cf in enumerate(flows))


def _npv_derivative_at(flows: Sequence[float], rate: float) -> float:
    return sum(-(t + 1) * cf / (1 + rate) ** (t + 2) for t, cf in enumerate(flows))


def classify_cash_flows(flows: Sequence[float]) -> Optional[IrrError]:
    """
    Degenerate-input classification, checked before any iteration.

    A constant series of (near) zeros is ``ALL_SAME``; a constant non-zero
    series falls through to the sign checks, so ``[100, 100, 100]`` is
    ``ALL_POSITIVE``.
    """
    if not flows:
        return IrrError.NO_DATA
    first = flows[0]
    all_same = all(abs(cf - first) < SAME_FLOW_TOLERANCE for cf in flows)
    if all_same and abs(first) < SAME_FLOW_TOLERANCE:
        return IrrError.ALL_SAME
    if all(cf >= 0 for cf in flows):
        return IrrError.ALL_POSITIVE
    if all(cf <= 0 for cf in flows):
        return IrrError.ALL_NEGATIVE
    if all_same:
        return IrrError.ALL_SAME
    return None


def calculate_irr(cash_flows: Iterable[float], initial_guess: float = IRR_INITIAL_GUESS) -> IrrResult:
    """
    Monthly internal rate of return by Newton-Raphson.

    Steps larger than 1.0 are damped to a 0.5 move in the same direction. The
    search fails with ``EXTREME_RATE`` when the rate leaves [-0.5, 5.0], or when
    the converged rate annualizes outside [-99%, 10000%]. A vanishing
    derivative or exhausted iterations give ``NO_CONVERGENCE``.
    """
    flows = normalize_to_float_list(cash_flows)
    degenerate = classify_cash_flows(flows)
    if degenerate is not None:
        return IrrResult.fail(degenerate)

    rate = initial_guess
    for _ in range(IRR_MAX_ITERATIONS):
        npv = _npv_at(flows, rate)
        if abs(npv) < IRR_TOLERANCE:
            return _checked(rate)

        derivative = _npv_derivative_at(flows, rate)
        if abs(derivative) < IRR_TOLERANCE:
            break

        step = npv / derivative
        if abs(step) < IRR_TOLERANCE:
            return _checked(rate - step)

        if abs(step) > IRR_MAX_STEP:
            rate += IRR_DAMPED_STEP if -step > 0 else -IRR_DAMPED_STEP
        else:
            rate -= step

        if rate < IRR_MIN_MONTHLY_RATE or rate > IRR_MAX_MONTHLY_RATE:
            return IrrResult.fail(IrrError.EXTREME_RATE)

    return IrrResult.fail(IrrError.NO_CONVERGENCE)


def _checked(rate: float) -> IrrResult:
    annual = (1 + rate) ** MONTHS_PER_YEAR - 1
    if annual < IRR_MIN_ANNUAL_RATE or annual > IRR_MAX_ANNUAL_RATE:
        return IrrResult.fail(IrrError.EXTREME_RATE)
    return IrrResult.ok(rate)


# ---------------------------------------------------------------------------
# Period metrics
# ---------------------------------------------------------------------------


def payback_period(cash_flows: Iterable[float]) -> int:
    """
    Months elapsed after the first projection month until the cumulative
    net cash flow is non-negative; 0 when that never happens.

    ``[-1000] + [200] * 11`` pays back in period 5: the cumulative flow is
    ``-1000 + 200 * 5 = 0`` five months after the initial outlay.
    A series that is non-negative from the first month also gives 0; use
    ``payback_reached`` to tell it apart from a series that never recovers.
    """
    cumulative = 0.0
    for t, cf in enumerate(cash_flows):
        cumulative += cf
        if cumulative >= 0:
            return t
    return 0


def payback_reached(cash_flows: Iterable[float]) -> bool:
    """True when the cumulative net cash flow turns non-negative within the horizon."""
    cumulative = 0.0
    for cf in cash_flows:
        cumulative += cf
        if cumulative >= 0:
            return True
    return False


def break_even_month(records: Sequence[MonthlyRecord]) -> int:
    """First 1-based month with EBITDA >= 0; 0 if never."""
    for record in records:
        if record.ebitda >= 0:
            return record.month
    return 0


def cash_break_even_month(records: Sequence[MonthlyRecord]) -> int:
    """First 1-based month with strictly positive net cash flow; 0 if never."""
    for record in records:
        if record.net_cash_flow > 0:
            return record.month
    return 0


def total_investment_required(cash_flows: Iterable[float]) -> float:
    """
    Funding needed before the business is self-sustaining: the deepest
    cumulative deficit observed until the cumulative flow first turns
    non-negative.
    """
    cumulative = 0.0
    deepest = 0.0
    for cf in cash_flows:
        cumulative += cf
        if cumulative < deepest:
            deepest = cumulative
        if cumulative >= 0:
            break
    return abs(deepest)


# ---------------------------------------------------------------------------
# Top level
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CalculatedMetrics:
    total_revenue: float = 0.0
    net_profit: float = 0.0
    npv: float = 0.0
    irr: IrrResult = field(default_factory=lambda: IrrResult.fail(IrrError.NO_DATA))
    payback_period: int = 0
    payback_reached: bool = False
    break_even_month: int = 0
    cash_break_even_month: int = 0
    total_investment_required: float = 0.0
    monthly_data: Tuple[MonthlyRecord, ...] = ()


def metrics_from_records(case: BusinessCase, records: Sequence[MonthlyRecord]) -> CalculatedMetrics:
    cash_flows = [r.net_cash_flow for r in records]
    annual_rate = value_of(case.assumptions.financial.interest_rate)
    return CalculatedMetrics(
        total_revenue=sum(r.revenue for r in records),
        net_profit=sum(cash_flows),
        npv=calculate_npv(cash_flows, annual_rate),
        irr=calculate_irr(cash_flows),
        payback_period=payback_period(cash_flows),
        payback_reached=payback_reached(cash_flows),
        break_even_month=break_even_month(records),
        cash_break_even_month=cash_break_even_month(records),
        total_investment_required=total_investment_required(cash_flows),
        monthly_data=tuple(records),
    )


def calculate_business_metrics(case: Any) -> CalculatedMetrics:
    """
    Project ``case`` month by month and compute its aggregate metrics.

    ``case`` may be a raw dictionary, a ``BusinessCase`` or ``None`` (which
    yields zero-filled metrics with ``irr`` = ``NO_DATA``).
    """
    if case is None:
        logger.warning("No business case supplied; returning empty metrics")
        return CalculatedMetrics()
    business_case = build_business_case(case)
    records = generate_monthly_records(business_case)
    metrics = metrics_from_records(business_case, records)
    logger.info(
        f"Computed metrics for '{business_case.meta.title or 'untitled'}': "
        f"{len(records)} months, NPV {metrics.npv:.2f}, payback {metrics.payback_period}"
    )
    return metrics
