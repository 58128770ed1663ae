"""
Stratus Backend: Health Check Route
====================================

What:  GET /health for container probes and load balancers.
How:   SELECT 1 against the database; circuit state and key presence for
       the weather upstream. No call is made to OpenWeather.

Status levels:
    healthy:   database and weather upstream fine          (200)
    degraded:  database fine, weather unavailable          (200)
    unhealthy: database unreachable                        (503)
"""

import logging
import time

from fastapi import APIRouter, Response
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from stratus import __version__
from stratus.config import settings
from stratus.database import get_engine
from stratus.schemas.common import HealthResponse
from stratus.services.weather_service import CircuitBreaker, weather_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(response: Response) -> HealthResponse:
    db_status = "connected"
    weather_status = "available"
    overall = "healthy"

    # ── Check Database ────────────────────────────────────────────────────
    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", e)

    # ── Check Weather Upstream ────────────────────────────────────────────
    if not settings.openweather_api_key:
        weather_status = "not_configured"
    elif weather_service.circuit_breaker.state == CircuitBreaker.OPEN:
        weather_status = "circuit_open"
    elif not await weather_service.health_check():
        weather_status = "unavailable"

    if weather_status != "available" and overall == "healthy":
        overall = "degraded"

    if overall == "unhealthy":
        response.status_code = 503

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        weather_api=weather_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
