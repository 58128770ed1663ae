"""
Stratus Backend: Weather & Search History Route Handlers
=========================================================

What:  GET /api/weather/current, GET /api/weather/forecast and the
       /api/weather/history endpoints.
How:   Every route requires a verified session. A successful current
       lookup is written to the caller's search history; a failure to
       record never fails the lookup itself.
Who:   Called by the frontend search bar, forecast panel and history list.

Caching Strategy:
    - current / forecast: private, 5 minutes (OpenWeather refreshes ~10 min)
    - history: no-store (changes on every search)
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from stratus.database import get_db_session
from stratus.exceptions import DatabaseError
from stratus.routes.deps import get_current_claims
from stratus.schemas.auth import Claims, MessageResponse
from stratus.schemas.common import ErrorResponse
from stratus.schemas.weather import (
    CurrentWeatherResponse,
    ForecastResponse,
    SearchHistoryResponse,
)
from stratus.services.history_service import history_service
from stratus.services.weather_service import weather_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/weather", tags=["Weather"])

_UPSTREAM_ERRORS = {
    401: {"description": "Missing or invalid session", "model": ErrorResponse},
    404: {"description": "City not found", "model": ErrorResponse},
    503: {"description": "Weather service unavailable", "model": ErrorResponse},
}


@router.get(
    "/current",
    response_model=CurrentWeatherResponse,
    responses=_UPSTREAM_ERRORS,
    summary="Current weather for a city",
)
async def current_weather(
    response: Response,
    city: str = Query(min_length=1, max_length=100, description="City name, e.g. 'London'"),
    claims: Claims = Depends(get_current_claims),
    db: AsyncSession = Depends(get_db_session),
) -> CurrentWeatherResponse:
    weather = await weather_service.get_current(city)

    try:
        await history_service.record(db, claims.user_id, city, weather)
    except DatabaseError:
        # Lookup succeeded; a lost history row is logged by the service
        logger.warning("Search history not recorded for user %s", claims.sub)

    response.headers["Cache-Control"] = "private, max-age=300"
    return CurrentWeatherResponse(data=weather)


@router.get(
    "/forecast",
    response_model=ForecastResponse,
    responses=_UPSTREAM_ERRORS,
    summary="5-day / 3-hour forecast for a city",
)
async def forecast(
    response: Response,
    city: str = Query(min_length=1, max_length=100, description="City name, e.g. 'London'"),
    claims: Claims = Depends(get_current_claims),
) -> ForecastResponse:
    result = await weather_service.get_forecast(city)
    response.headers["Cache-Control"] = "private, max-age=300"
    return ForecastResponse(location=result.location, data=result.entries)


# ── Search History ────────────────────────────────────────────────────────

@router.get(
    "/history",
    response_model=SearchHistoryResponse,
    summary="The caller's recent searches, newest first",
)
async def list_history(
    response: Response,
    limit: int = Query(default=50, ge=1, le=100),
    claims: Claims = Depends(get_current_claims),
    db: AsyncSession = Depends(get_db_session),
) -> SearchHistoryResponse:
    items = await history_service.list_for_user(db, claims.user_id, limit=limit)
    response.headers["Cache-Control"] = "no-store"
    return SearchHistoryResponse(data=items)


@router.delete(
    "/history",
    response_model=MessageResponse,
    summary="Delete all of the caller's searches",
)
async def clear_history(
    claims: Claims = Depends(get_current_claims),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    removed = await history_service.clear(db, claims.user_id)
    return MessageResponse(message=f"Deleted {removed} search history entries")


@router.delete(
    "/history/{entry_id}",
    response_model=MessageResponse,
    status_code=status.HTTP_200_OK,
    responses={404: {"description": "Entry not found", "model": ErrorResponse}},
    summary="Delete one search",
)
async def delete_history_entry(
    entry_id: UUID,
    claims: Claims = Depends(get_current_claims),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await history_service.delete_entry(db, claims.user_id, entry_id)
    return MessageResponse(message="Search history entry deleted")
