"""
FastAPI application for the business case service.

``create_app()`` wires the business case router, a request timing/logging
middleware and two informational routes. ``app`` is the importable instance
for ASGI servers.
"""

import logging
import time

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from bizcase_engine import MAX_PERIODS
from bizcase_engine.formatting import SUPPORTED_CURRENCIES
from bizcase_service.api.router import router as business_case_router

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("bizcase_service")

API_TITLE = "Business Case Engine API"
API_VERSION = "0.1.0"


async def log_requests(request: Request, call_next):
    """Log every request with its status and duration; unhandled errors become a bare 500."""
    route = f"{request.method} {request.url.path}"
    started = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception as e:
        elapsed = time.perf_counter() - started
        logger.error(f"{route} failed after {elapsed:.4f}s: {e}")
        return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})

    elapsed = time.perf_counter() - started
    response.headers["X-Process-Time"] = f"{elapsed:.4f}"
    logger.info(f"{route} -> {response.status_code} in {elapsed:.4f}s")
    return response


def create_app() -> FastAPI:
    application = FastAPI(
        title=API_TITLE,
        version=API_VERSION,
        description="Monthly business case projections, investment metrics (NPV, IRR, payback) and evidence trails",
    )
    application.include_router(business_case_router)
    application.middleware("http")(log_requests)

    @application.get("/")
    def read_root():
        return {"message": f"{API_TITLE} is running"}

    @application.get("/health", summary="Service health and engine limits")
    def health():
        return {
            "status": "ok",
            "version": API_VERSION,
            "max_periods": MAX_PERIODS,
            "currencies": list(SUPPORTED_CURRENCIES),
        }

    return application


app = create_app()
