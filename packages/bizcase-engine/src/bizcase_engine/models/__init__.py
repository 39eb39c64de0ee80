"""
Convenience re-exports of data models.

Input models are defined in ``bizcase_engine.case``; result models live next
to the code that produces them. They are re-exported here for consumers who
prefer ``from bizcase_engine.models import BusinessCase``.
"""

from bizcase_engine.case import (
    AssumptionValue,
    BaselineCost,
    BusinessAssumptions,
    BusinessCase,
    BusinessMeta,
    CapexItem,
    CustomerSegment,
    Driver,
    EfficiencyGain,
    ImplementationTimeline,
    InputError,
    OpexItem,
    VolumeConfig,
)
from bizcase_engine.evidence import EvidenceContext, EvidenceNode, EvidenceTrail, NodeKind
from bizcase_engine.metrics import CalculatedMetrics, IrrError, IrrResult
from bizcase_engine.projection import MonthlyRecord

__all__ = [
    "AssumptionValue",
    "BaselineCost",
    "BusinessAssumptions",
    "BusinessCase",
    "BusinessMeta",
    "CalculatedMetrics",
    "CapexItem",
    "CustomerSegment",
    "Driver",
    "EfficiencyGain",
    "EvidenceContext",
    "EvidenceNode",
    "EvidenceTrail",
    "ImplementationTimeline",
    "InputError",
    "IrrError",
    "IrrResult",
    "MonthlyRecord",
    "NodeKind",
    "OpexItem",
    "VolumeConfig",
]
