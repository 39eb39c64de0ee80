from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class BusinessMetaPayload(BaseModel):
    """Header block of a business case; unknown keys are kept."""

    model_config = ConfigDict(extra="allow")

    title: Optional[str] = Field(None, description="Business case title")
    description: Optional[str] = Field(None, description="Free-text description")
    business_model: Optional[Literal["recurring", "unit_sales", "cost_savings"]] = Field(
        None, description="Revenue model driving the projection"
    )
    currency: Optional[str] = Field(None, description="ISO currency code, e.g. 'EUR'")
    periods: Optional[int] = Field(None, description="Projection horizon in months (capped at 60)")
    frequency: Optional[str] = Field(None, description="Projection frequency (monthly)")
    start_date: Optional[str] = Field(None, description="First projected month (YYYY-MM-DD)")


class BusinessCasePayload(BaseModel):
    """
    A full business case document.

    Only the top-level shape is validated here; the nested assumption tree is
    validated by the engine's input builder.
    """

    model_config = ConfigDict(extra="allow")

    meta: BusinessMetaPayload = Field(default_factory=BusinessMetaPayload, description="Business case header")
    assumptions: Dict[str, Any] = Field(default_factory=dict, description="Assumption tree")
    drivers: List[Dict[str, Any]] = Field(default_factory=list, description="Sensitivity drivers")


class AssumptionUpdate(BaseModel):
    """A path-based edit applied to a copy of the business case before computing."""

    path: str = Field(..., min_length=1, description="Dotted path, e.g. 'assumptions.pricing.avg_unit_price.value'")
    value: Any = Field(..., description="New value stored at the path")


class MetricsRequest(BaseModel):
    business_case: BusinessCasePayload = Field(..., description="Business case to evaluate")
    updates: List[AssumptionUpdate] = Field(default_factory=list, description="Edits applied before computing")
    include_monthly: bool = Field(True, description="Include the monthly records in the response")


class EvidenceRequest(BaseModel):
    business_case: BusinessCasePayload = Field(..., description="Business case to evaluate")
    metric_key: str = Field(..., min_length=1, description="Metric to explain, e.g. 'npv' or 'revenue'")
    month: Optional[int] = Field(None, ge=1, description="1-based month; omit for horizon totals")
    updates: List[AssumptionUpdate] = Field(default_factory=list, description="Edits applied before computing")
