"""
Business Case Service
=====================

Thin orchestration layer: apply path-based edits to a copy of the business
case, build the typed case via the shared ``build_business_case`` builder,
run the engine, and return API-friendly dictionaries.

All input-preparation and computation logic lives in **bizcase_engine** so
there is exactly one source of truth.
"""

import dataclasses
import io
import logging
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from bizcase_engine import (
    EvidenceContext,
    build_business_case,
    build_evidence_trail,
    calculate_business_metrics,
    format_currency,
    generate_monthly_records,
)
from bizcase_engine.metrics import CalculatedMetrics
from bizcase_service.utils.paths import get_value_at_path, set_value_at_path

logger = logging.getLogger(__name__)


class BusinessCaseService:
    def apply_updates(self, business_case: Dict[str, Any], updates: Optional[Iterable[Dict[str, Any]]] = None) -> Dict[str, Any]:
        """Apply ``{path, value}`` edits in order; the input document is left untouched."""
        result = business_case
        for update in updates or ():
            result = set_value_at_path(result, update["path"], update["value"])
            logger.debug(f"Applied update {update['path']} = {update['value']!r}")
        return result

    def calculate_metrics(
        self,
        business_case: Dict[str, Any],
        updates: Optional[Iterable[Dict[str, Any]]] = None,
        include_monthly: bool = True,
    ) -> Dict[str, Any]:
        """
        Orchestrates the metrics calculation.

        1. Apply path-based edits to a copy of the document.
        2. Build the typed case and project it month by month.
        3. Compute aggregate metrics.
        4. Return results as a dict (API-friendly).
        """
        document = self.apply_updates(business_case, updates)
        metrics = calculate_business_metrics(document)
        return self._metrics_to_dict(metrics, build_business_case(document).meta.currency, include_monthly)

    def monthly_records(self, business_case: Dict[str, Any], updates: Optional[Iterable[Dict[str, Any]]] = None) -> List[Dict[str, Any]]:
        document = self.apply_updates(business_case, updates)
        records = generate_monthly_records(build_business_case(document))
        return [dataclasses.asdict(r) for r in records]

    def monthly_records_csv(self, business_case: Dict[str, Any], updates: Optional[Iterable[Dict[str, Any]]] = None) -> str:
        """Monthly projection as CSV, one row per month."""
        df = pd.DataFrame(self.monthly_records(business_case, updates))
        if not df.empty:
            df["date"] = pd.to_datetime(df["date"]).dt.strftime("%Y-%m-%d")
            df = df.dropna(axis=1, how="all")
        buffer = io.StringIO()
        df.to_csv(buffer, index=False)
        return buffer.getvalue()

    def evidence_trail(
        self,
        business_case: Dict[str, Any],
        metric_key: str,
        month: Optional[int] = None,
        updates: Optional[Iterable[Dict[str, Any]]] = None,
    ) -> Dict[str, Any]:
        document = self.apply_updates(business_case, updates)
        case = build_business_case(document)
        records = generate_monthly_records(case)
        context = EvidenceContext(metric_key=metric_key, month=month, currency=case.meta.currency)
        trail = build_evidence_trail(case, records, context)
        return trail.to_dict()

    def drivers(self, business_case: Dict[str, Any], updates: Optional[Iterable[Dict[str, Any]]] = None) -> List[Dict[str, Any]]:
        """Sensitivity drivers with the value currently stored at each driver path."""
        document = self.apply_updates(business_case, updates)
        case = build_business_case(document)
        return [
            {
                "key": d.key,
                "label": d.label,
                "path": d.path,
                "range": list(d.range),
                "unit": d.unit,
                "rationale": d.rationale,
                "current_value": get_value_at_path(document, d.path) if d.path else None,
            }
            for d in case.drivers
        ]

    @staticmethod
    def _metrics_to_dict(metrics: CalculatedMetrics, currency: str, include_monthly: bool) -> Dict[str, Any]:
        irr = metrics.irr
        result = {
            "total_revenue": metrics.total_revenue,
            "net_profit": metrics.net_profit,
            "npv": metrics.npv,
            "irr": {
                "rate": irr.rate,
                "annualized": irr.annualized(),
                "error": irr.error.value if irr.error is not None else None,
                "message": irr.message,
            },
            "payback_period": metrics.payback_period,
            "payback_reached": metrics.payback_reached,
            "break_even_month": metrics.break_even_month,
            "cash_break_even_month": metrics.cash_break_even_month,
            "total_investment_required": metrics.total_investment_required,
            "currency": currency,
            "display": {
                "total_revenue": format_currency(metrics.total_revenue, currency),
                "npv": format_currency(metrics.npv, currency),
                "total_investment_required": format_currency(metrics.total_investment_required, currency),
            },
        }
        if include_monthly:
            result["monthly_data"] = [dataclasses.asdict(r) for r in metrics.monthly_data]
        return result
