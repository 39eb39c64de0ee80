"""
API Router — all endpoint definitions for the business case service.
"""

import logging
from typing import Literal

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import PlainTextResponse

from bizcase_service.api.schemas import EvidenceRequest, MetricsRequest
from bizcase_service.services.business_case import BusinessCaseService
from bizcase_service.utils.json import sanitize_for_json

logger = logging.getLogger(__name__)
router = APIRouter()


def _updates(request) -> list:
    return [u.model_dump() for u in request.updates]


@router.post(
    "/business-case/metrics",
    summary="Calculate Business Metrics",
    description="Projects the business case month by month and computes NPV, IRR, payback, break-even and required investment. Accepts optional path-based assumption updates.",
    response_description="Aggregate metrics, IRR outcome and (optionally) the monthly records.",
)
def calculate_metrics(request: MetricsRequest):
    title = request.business_case.meta.title or "untitled"
    try:
        service = BusinessCaseService()
        result = service.calculate_metrics(
            request.business_case.model_dump(),
            _updates(request),
            include_monthly=request.include_monthly,
        )
        return sanitize_for_json(result)
    except ValueError as e:
        logger.warning(f"Bad Request for '{title}': {e}")
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Internal Error computing metrics for '{title}': {e}")
        raise HTTPException(status_code=500, detail="Internal Server Error")


@router.post(
    "/business-case/projection",
    summary="Get Monthly Projection",
    description="Returns the monthly projection records as JSON or CSV.",
    response_description="List of monthly records, or a CSV document with one row per month.",
)
def get_projection(request: MetricsRequest, format: Literal["json", "csv"] = Query("json", description="Response format")):
    title = request.business_case.meta.title or "untitled"
    try:
        service = BusinessCaseService()
        if format == "csv":
            csv_text = service.monthly_records_csv(request.business_case.model_dump(), _updates(request))
            return PlainTextResponse(csv_text, media_type="text/csv")
        records = service.monthly_records(request.business_case.model_dump(), _updates(request))
        return sanitize_for_json(records)
    except ValueError as e:
        logger.warning(f"Bad Request for '{title}': {e}")
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Internal Error projecting '{title}': {e}")
        raise HTTPException(status_code=500, detail="Internal Server Error")


@router.post(
    "/business-case/evidence",
    summary="Build Evidence Trail",
    description="Explains how a metric was derived as a tree of calculated values, assumptions and inputs.",
    response_description="Evidence trail with context, root node and generation timestamp.",
)
def get_evidence_trail(request: EvidenceRequest):
    try:
        service = BusinessCaseService()
        result = service.evidence_trail(
            request.business_case.model_dump(),
            request.metric_key,
            month=request.month,
            updates=_updates(request),
        )
        return sanitize_for_json(result)
    except ValueError as e:
        logger.warning(f"Bad Request for evidence '{request.metric_key}': {e}")
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Internal Error building evidence for '{request.metric_key}': {e}")
        raise HTTPException(status_code=500, detail="Internal Server Error")


@router.post(
    "/business-case/drivers",
    summary="List Sensitivity Drivers",
    description="Lists the configured sensitivity drivers with the value currently stored at each driver path.",
    response_description="List of drivers with their ranges and current values.",
)
def list_drivers(request: MetricsRequest):
    title = request.business_case.meta.title or "untitled"
    try:
        service = BusinessCaseService()
        return sanitize_for_json(service.drivers(request.business_case.model_dump(), _updates(request)))
    except ValueError as e:
        logger.warning(f"Bad Request for '{title}': {e}")
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Internal Error listing drivers for '{title}': {e}")
        raise HTTPException(status_code=500, detail="Internal Server Error")
