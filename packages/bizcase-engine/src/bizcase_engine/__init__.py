"""
Business Case Engine
====================

Deterministic monthly projection and valuation engine with zero external
dependencies.

Public API:
- ``build_business_case(data)`` — canonical input preparation (dict -> ``BusinessCase``)
- ``generate_monthly_records(case)`` — month-by-month projection
- ``calculate_business_metrics(case)`` — projection plus NPV, IRR, payback, break-even, investment
- ``calculate_npv`` / ``calculate_irr`` / ``is_irr_error`` — cash-flow metrics
- ``build_evidence_trail(case, records, context)`` — provenance tree for one metric
- ``resolve_pattern(pattern, month_index)`` — growth pattern resolution
- ``format_currency`` / ``format_percent`` — display helpers
"""

from bizcase_engine.case import (
    MAX_PERIODS,
    BusinessCase,
    InputError,
)
from bizcase_engine.costs import (
    capex_for_month,
    implementation_factor,
    opex_for_month,
)
from bizcase_engine.evidence import (
    EvidenceContext,
    EvidenceNode,
    EvidenceTrail,
    NodeKind,
    build_evidence_trail,
    format_evidence_value,
)
from bizcase_engine.formatting import format_currency, format_percent
from bizcase_engine.growth_patterns import (
    pricing_trajectory,
    resolve_pattern,
    resolve_volume_pattern,
    volume_trajectory,
)
from bizcase_engine.inputs_builder import build_business_case
from bizcase_engine.metrics import (
    CalculatedMetrics,
    IrrError,
    IrrResult,
    calculate_business_metrics,
    calculate_irr,
    calculate_npv,
    irr_error_message,
    is_irr_error,
)
from bizcase_engine.numeric import normalize_to_float_list
from bizcase_engine.projection import MonthlyRecord, generate_monthly_records

__all__ = [
    "MAX_PERIODS",
    "BusinessCase",
    "CalculatedMetrics",
    "EvidenceContext",
    "EvidenceNode",
    "EvidenceTrail",
    "InputError",
    "IrrError",
    "IrrResult",
    "MonthlyRecord",
    "NodeKind",
    "build_business_case",
    "build_evidence_trail",
    "calculate_business_metrics",
    "calculate_irr",
    "calculate_npv",
    "capex_for_month",
    "format_currency",
    "format_evidence_value",
    "format_percent",
    "generate_monthly_records",
    "implementation_factor",
    "irr_error_message",
    "is_irr_error",
    "normalize_to_float_list",
    "opex_for_month",
    "pricing_trajectory",
    "resolve_pattern",
    "resolve_volume_pattern",
    "volume_trajectory",
]
