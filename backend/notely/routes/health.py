"""
Notely Backend - Health and Service Info Routes
=================================================

What:  GET /health for load balancers and GET / as a quick "is it up" probe.
How:   /health runs SELECT 1 through the shared engine and reports
       "unhealthy" when the database cannot be reached.
"""

import logging
import time

from fastapi import APIRouter
from sqlalchemy import text

from notely import __version__
from notely.config import settings
from notely.database import get_engine
from notely.schemas.note import HealthResponse, ServiceInfoResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/",
    response_model=ServiceInfoResponse,
    summary="Service info",
)
async def service_info() -> ServiceInfoResponse:
    return ServiceInfoResponse(
        status="ok",
        env="production" if settings.is_production else "development",
        message="Backend service running",
    )


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description="Reports database connectivity and uptime.",
)
async def health_check() -> HealthResponse:
    db_status = "connected"
    overall = "healthy"

    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
