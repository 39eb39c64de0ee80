"""
Growth Pattern Resolver
=======================

Pure functions mapping a growth/volume configuration and a zero-based month
index to a scalar (customer volume, capex amount, ...).

Pattern kinds are modelled as a small tagged family of frozen dataclasses:

- ``GeometricGrowth``  -> ``base_value * (1 + growth_rate) ** m``
- ``LinearGrowth``     -> ``base_value + growth_rate * m``
- ``SegmentSeasonal``  -> ``base_value * pattern[m % len] * (1 + growth_rate) ** m``
- ``SeasonalGrowth``   -> year-total form with 12 renormalized indices
- ``TimeSeries``       -> positional lookup holding the last value

``resolve_volume_pattern`` is the one place where the precedence between
segment-level fields, legacy ``type: pattern`` fields and the global
``growth_settings`` block is decided.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Tuple, Union

from .case import (
    AssumptionValue,
    BusinessCase,
    CustomerSegment,
    GrowthSettings,
    InputError,
    PricingAssumptions,
    VolumeConfig,
    value_of,
)
from .numeric import round_half_up

logger = logging.getLogger(__name__)

MONTHS_PER_YEAR: int = 12
FLAT_SEASONALITY: Tuple[float, ...] = (1.0,) * MONTHS_PER_YEAR
TRAJECTORY_TOLERANCE: float = 0.01


@dataclass(frozen=True)
class GeometricGrowth:
    base_value: float
    growth_rate: float


@dataclass(frozen=True)
class LinearGrowth:
    base_value: float
    growth_rate: float


@dataclass(frozen=True)
class SegmentSeasonal:
    base_value: float
    seasonal_pattern: Tuple[float, ...]
    growth_rate: float = 0.0


@dataclass(frozen=True)
class SeasonalGrowth:
    base_year_total: float
    seasonality_index_12: Optional[Tuple[float, ...]] = None
    yoy_growth: float = 0.0


@dataclass(frozen=True)
class TimeSeries:
    values: Tuple[float, ...]


GrowthPattern = Union[GeometricGrowth, LinearGrowth, SegmentSeasonal, SeasonalGrowth, TimeSeries]


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


def normalize_seasonality(indices: Optional[Tuple[float, ...]]) -> Tuple[float, ...]:
    """Twelve monthly multipliers summing to 12; anything but 12 values becomes flat."""
    if not indices or len(indices) != MONTHS_PER_YEAR:
        return FLAT_SEASONALITY
    total = sum(indices)
    if total > 0:
        return tuple(v * MONTHS_PER_YEAR / total for v in indices)
    return tuple(indices)


def resolve_pattern(pattern: Union[GrowthPattern, Mapping[str, Any]], month_index: int) -> float:
    """
    Value of ``pattern`` at the zero-based ``month_index``.

    ``pattern`` is one of the pattern dataclasses, or a mapping tagged with
    ``pattern_type`` (``geometric_growth``, ``linear_growth``,
    ``seasonal_growth``, ``time_series``), e.g.
    ``{"pattern_type": "geometric_growth", "base_value": 100, "growth_rate": 0.05}``.
    """
    if isinstance(pattern, Mapping):
        pattern = pattern_from_mapping(pattern)

    if isinstance(pattern, GeometricGrowth):
        return pattern.base_value * (1 + pattern.growth_rate) ** month_index
    if isinstance(pattern, LinearGrowth):
        return pattern.base_value + pattern.growth_rate * month_index
    if isinstance(pattern, SegmentSeasonal):
        if not pattern.seasonal_pattern:
            return pattern.base_value
        factor = pattern.seasonal_pattern[month_index % len(pattern.seasonal_pattern)]
        return pattern.base_value * factor * (1 + pattern.growth_rate) ** month_index
    if isinstance(pattern, SeasonalGrowth):
        indices = normalize_seasonality(pattern.seasonality_index_12)
        year_index = month_index // MONTHS_PER_YEAR
        yearly_total = pattern.base_year_total * (1 + pattern.yoy_growth) ** year_index
        return yearly_total / MONTHS_PER_YEAR * indices[month_index % MONTHS_PER_YEAR]
    if isinstance(pattern, TimeSeries):
        if not pattern.values:
            return 0.0
        if month_index < len(pattern.values):
            return pattern.values[month_index]
        return pattern.values[-1]
    raise InputError(f"Unsupported growth pattern: {pattern!r}")


def pattern_from_mapping(config: Mapping[str, Any]) -> GrowthPattern:
    """Build a pattern dataclass from a ``pattern_type``-tagged mapping."""
    kind = config.get("pattern_type") or config.get("type")
    base = config.get("base_value") or 0.0
    rate = config.get("growth_rate") or 0.0
    if kind in ("geometric_growth", "geom_growth"):
        return GeometricGrowth(base_value=base, growth_rate=rate)
    if kind == "linear_growth":
        return LinearGrowth(base_value=base, growth_rate=rate)
    if kind == "seasonal_growth":
        if "base_year_total" in config:
            indices = config.get("seasonality_index_12")
            return SeasonalGrowth(
                base_year_total=config.get("base_year_total") or 0.0,
                seasonality_index_12=tuple(indices) if indices is not None else None,
                yoy_growth=config.get("yoy_growth") or 0.0,
            )
        return SegmentSeasonal(
            base_value=base,
            seasonal_pattern=tuple(config.get("seasonal_pattern") or ()),
            growth_rate=rate,
        )
    if kind == "time_series":
        return TimeSeries(values=tuple(_series_value(p) for p in config.get("series") or ()))
    raise InputError(f"Unknown pattern_type: {kind!r}")


def _series_value(point: Any) -> float:
    if isinstance(point, Mapping):
        return point.get("value") or 0.0
    return point


# ---------------------------------------------------------------------------
# Precedence: segment fields > legacy fields > growth_settings > 0
# ---------------------------------------------------------------------------


def _first_defined(*candidates: Optional[AssumptionValue]) -> float:
    for candidate in candidates:
        if candidate is not None and candidate.value is not None:
            return candidate.value
    return 0.0


def _legacy_start(volume: VolumeConfig) -> Optional[AssumptionValue]:
    # A zero ``start`` defers to the first series point.
    if volume.start is not None and volume.start.value:
        return volume.start
    if volume.series:
        return AssumptionValue(value=volume.series[0].value)
    return None


def legacy_pattern(
    kind: Optional[str],
    volume: VolumeConfig,
    settings: Optional[GrowthSettings],
) -> Optional[GrowthPattern]:
    settings = settings or GrowthSettings()
    geom = settings.geom_growth
    linear = settings.linear_growth
    seasonal = settings.seasonal_growth

    if kind is None:
        # Auto-detect from whichever global block has a positive base.
        if seasonal is not None and value_of(seasonal.base_year_total) > 0:
            kind = "seasonal_growth"
        elif geom is not None and value_of(geom.start) > 0:
            kind = "geom_growth"
        elif linear is not None and value_of(linear.start) > 0:
            kind = "linear_growth"
        else:
            return None

    if kind == "seasonal_growth":
        indices = volume.seasonality_index_12
        if indices is None and seasonal is not None and seasonal.seasonality_index_12 is not None:
            raw = seasonal.seasonality_index_12.value
            indices = tuple(raw) if isinstance(raw, (list, tuple)) else None
        return SeasonalGrowth(
            base_year_total=_first_defined(volume.base_year_total, seasonal and seasonal.base_year_total),
            seasonality_index_12=indices,
            yoy_growth=_first_defined(volume.yoy_growth, seasonal and seasonal.yoy_growth),
        )
    if kind == "geom_growth":
        return GeometricGrowth(
            base_value=_first_defined(_legacy_start(volume), geom and geom.start),
            growth_rate=_first_defined(volume.monthly_growth_rate, geom and geom.monthly_growth),
        )
    if kind == "linear_growth":
        return LinearGrowth(
            base_value=_first_defined(_legacy_start(volume), linear and linear.start),
            growth_rate=_first_defined(volume.monthly_flat_increase, linear and linear.monthly_flat_increase),
        )
    logger.debug(f"Unrecognized legacy pattern_type {kind!r}; falling back to series")
    return None


def resolve_volume_pattern(
    volume: Optional[VolumeConfig],
    growth_settings: Optional[GrowthSettings] = None,
) -> Optional[GrowthPattern]:
    """
    Decide which pattern drives a volume configuration.

    Precedence:
    1. A segment-level ``pattern_type`` whose own fields are all present
       (``base_value`` plus ``growth_rate`` or ``seasonal_pattern``).
    2. ``type == "pattern"``: legacy fields, each falling back to
       ``growth_settings`` and then to 0. Without a ``pattern_type`` the kind
       is auto-detected from the first global block with a positive base.
    3. ``type == "time_series"``: positional lookup.

    Returns ``None`` when none applies; callers then use the first series
    value (or 0).
    """
    if volume is None:
        return None

    kind = volume.pattern_type
    if kind is not None and volume.base_value is not None:
        if kind == "seasonal_growth" and volume.seasonal_pattern is not None:
            return SegmentSeasonal(
                base_value=volume.base_value,
                seasonal_pattern=volume.seasonal_pattern,
                growth_rate=volume.growth_rate or 0.0,
            )
        if kind == "geometric_growth" and volume.growth_rate is not None:
            return GeometricGrowth(base_value=volume.base_value, growth_rate=volume.growth_rate)
        if kind == "linear_growth" and volume.growth_rate is not None:
            return LinearGrowth(base_value=volume.base_value, growth_rate=volume.growth_rate)

    if volume.type == "pattern":
        return legacy_pattern(kind, volume, growth_settings)
    if volume.type == "time_series":
        return TimeSeries(values=tuple(p.value for p in volume.series))
    return None


def pattern_volume(
    volume: Optional[VolumeConfig],
    month_index: int,
    growth_settings: Optional[GrowthSettings] = None,
) -> float:
    """Pattern value before yearly adjustments and overrides."""
    if volume is None:
        return 0.0
    pattern = resolve_volume_pattern(volume, growth_settings)
    if pattern is not None:
        return resolve_pattern(pattern, month_index)
    if volume.series:
        return volume.series[0].value
    return 0.0


def segment_volume_for_month(
    segment: CustomerSegment,
    month_index: int,
    growth_settings: Optional[GrowthSettings] = None,
) -> float:
    """
    Volume of one segment, with yearly factors and period overrides applied.

    An override for the exact 1-based period wins; otherwise the pattern value
    is multiplied by the factor for the 1-based year, if any.
    """
    adjustments = segment.volume.yearly_adjustments
    if adjustments is not None:
        override = adjustments.override_for_period(month_index + 1)
        if override is not None:
            return override.value

    base = pattern_volume(segment.volume, month_index, growth_settings)

    if adjustments is not None:
        factor = adjustments.factor_for_year(month_index // MONTHS_PER_YEAR + 1)
        if factor is not None:
            base *= factor.factor
    return base


def total_volume_for_month(case: BusinessCase, month_index: int) -> float:
    settings = case.assumptions.growth_settings
    return sum(
        segment_volume_for_month(segment, month_index, settings) for segment in case.assumptions.customers.segments
    )


def unit_price_for_month(pricing: PricingAssumptions, month_index: int) -> float:
    """
    Unit price: period override > yearly factor (rounded to cents) > base price.
    """
    base_price = value_of(pricing.avg_unit_price)
    adjustments = pricing.yearly_adjustments
    if adjustments is None:
        return base_price

    override = adjustments.override_for_period(month_index + 1)
    if override is not None:
        return override.value

    factor = adjustments.factor_for_year(month_index // MONTHS_PER_YEAR + 1)
    if factor is not None:
        return round_half_up(base_price * factor.factor, 2)
    return base_price


# ---------------------------------------------------------------------------
# Trajectories
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TrajectoryPoint:
    period: int
    value: float
    source: str


def pricing_trajectory(case: BusinessCase, periods: int) -> List[TrajectoryPoint]:
    """Per-period price tagged ``override``, ``yearly`` or ``base``."""
    pricing = case.assumptions.pricing
    base_price = value_of(pricing.avg_unit_price)
    adjustments = pricing.yearly_adjustments
    points = []
    for i in range(periods):
        price = unit_price_for_month(pricing, i)
        if adjustments is not None and adjustments.override_for_period(i + 1) is not None:
            source = "override"
        elif price != base_price:
            source = "yearly"
        else:
            source = "base"
        points.append(TrajectoryPoint(period=i + 1, value=price, source=source))
    return points


def volume_trajectory(
    segment: CustomerSegment,
    periods: int,
    growth_settings: Optional[GrowthSettings] = None,
) -> List[TrajectoryPoint]:
    """Per-period segment volume tagged ``override``, ``yearly`` or ``pattern``."""
    adjustments = segment.volume.yearly_adjustments
    points = []
    for i in range(periods):
        volume = segment_volume_for_month(segment, i, growth_settings)
        base = pattern_volume(segment.volume, i, growth_settings)
        if adjustments is not None and adjustments.override_for_period(i + 1) is not None:
            source = "override"
        elif abs(volume - base) > TRAJECTORY_TOLERANCE:
            source = "yearly"
        else:
            source = "pattern"
        points.append(TrajectoryPoint(period=i + 1, value=volume, source=source))
    return points
