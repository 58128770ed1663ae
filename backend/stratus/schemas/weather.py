"""
Stratus Backend: Weather & Search History Schemas
==================================================

What:  Reshaped OpenWeather responses and stored search-history rows.
How:   WeatherService builds CurrentWeather / Forecast from the upstream
       JSON; HistoryService returns SearchHistoryItem rows.

The reshaping is a field selection and rounding only; no aggregation.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class CurrentWeather(BaseModel):
    """Current conditions for one location."""
    location: str = Field(description="Resolved location name from OpenWeather")
    country: Optional[str] = None
    lat: Optional[float] = None
    lon: Optional[float] = None
    temperature: int = Field(description="Rounded temperature in the configured units")
    description: str
    humidity: int
    wind_speed: float
    icon: Optional[str] = None
    timestamp: datetime


class ForecastEntry(BaseModel):
    """One 3-hour slot of the 5-day forecast."""
    date: datetime
    temperature: int
    description: str
    humidity: int
    wind_speed: float


class Forecast(BaseModel):
    location: str
    entries: List[ForecastEntry]


class CurrentWeatherResponse(BaseModel):
    success: bool = True
    data: CurrentWeather


class ForecastResponse(BaseModel):
    success: bool = True
    location: str
    data: List[ForecastEntry]


class SearchHistoryItem(BaseModel):
    """A stored weather search."""
    id: uuid.UUID
    query: str
    location_name: str
    country: Optional[str] = None
    lat: Optional[float] = None
    lon: Optional[float] = None
    temperature: Optional[int] = None
    description: Optional[str] = None
    humidity: Optional[int] = None
    wind_speed: Optional[float] = None
    icon: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class SearchHistoryResponse(BaseModel):
    success: bool = True
    data: List[SearchHistoryItem]
