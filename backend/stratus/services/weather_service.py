"""
Stratus Backend: OpenWeather Proxy Service
===========================================

What:  Fetches current conditions and the 5-day forecast from OpenWeather
       and reshapes them into CurrentWeather / Forecast.
How:   One httpx request per call, guarded by a circuit breaker.
Who:   Module-level singleton `weather_service`, used by routes.weather and
       the health check.

Resilience Strategy:
    1. No retries: a failed upstream call surfaces immediately as 503
    2. Circuit breaker opens after N consecutive failures and rejects calls
       instantly until the recovery timeout passes
    3. A 404 (unknown city) is a client problem and never trips the breaker

Upstream status mapping:
    200        → reshaped model
    404        → LocationNotFoundError (404)
    401        → WeatherServiceError (503), logged as a key problem
    other/err  → WeatherServiceError (503)
"""

import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx

from stratus.config import settings
from stratus.exceptions import (
    CircuitBreakerOpenError,
    LocationNotFoundError,
    ValidationError,
    WeatherServiceError,
)
from stratus.schemas.weather import CurrentWeather, Forecast, ForecastEntry

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Circuit Breaker Implementation
# ══════════════════════════════════════════════════════════════════════════

class CircuitBreaker:
    """
    Circuit breaker around the OpenWeather upstream.

    State Machine:
        CLOSED (normal operation)
            → On failure: increment failure_count
            → When failure_count >= threshold: transition to OPEN

        OPEN (rejecting all requests)
            → All calls raise CircuitBreakerOpenError immediately
            → After recovery_timeout seconds: transition to HALF_OPEN

        HALF_OPEN (testing recovery)
            → Allow ONE request through
            → On success: transition to CLOSED (reset failure_count)
            → On failure: transition back to OPEN (reset timer)

    Not thread-safe; uvicorn async workers share one event loop per process.
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(self, failure_threshold: int = 5, recovery_timeout: int = 60):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time: Optional[float] = None

    def can_execute(self) -> bool:
        """
        Raises:
            CircuitBreakerOpenError if the circuit is OPEN and the recovery
            timeout hasn't elapsed.
        """
        if self.state == self.CLOSED:
            return True

        if self.state == self.OPEN:
            elapsed = time.time() - (self.last_failure_time or 0)
            if elapsed >= self.recovery_timeout:
                logger.info(
                    "Circuit breaker transitioning to HALF_OPEN after %.1fs",
                    elapsed,
                )
                self.state = self.HALF_OPEN
                return True
            remaining = int(self.recovery_timeout - elapsed)
            raise CircuitBreakerOpenError(recovery_time=remaining)

        return True

    def record_success(self) -> None:
        if self.state == self.HALF_OPEN:
            logger.info("Circuit breaker transitioning to CLOSED (service recovered)")
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time = None

    def record_failure(self) -> None:
        self.failure_count += 1
        self.last_failure_time = time.time()

        if self.state == self.HALF_OPEN:
            logger.warning("Circuit breaker returning to OPEN (test request failed)")
            self.state = self.OPEN
        elif self.failure_count >= self.failure_threshold:
            logger.warning(
                "Circuit breaker OPENING after %d consecutive failures",
                self.failure_count,
            )
            self.state = self.OPEN


# ══════════════════════════════════════════════════════════════════════════
# Weather Service
# ══════════════════════════════════════════════════════════════════════════

class WeatherService:
    """
    OpenWeather client.

    Args:
        http_client: Shared AsyncClient. When omitted one is created lazily
            and closed by `aclose()` during app shutdown. Tests pass a client
            built on httpx.MockTransport.
    """

    CURRENT_PATH = "/data/2.5/weather"
    FORECAST_PATH = "/data/2.5/forecast"

    def __init__(self, http_client: Optional[httpx.AsyncClient] = None):
        self._client = http_client
        self._owns_client = http_client is None
        self.circuit_breaker = CircuitBreaker(
            failure_threshold=settings.cb_failure_threshold,
            recovery_timeout=settings.cb_recovery_timeout,
        )

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=settings.openweather_api_url,
                timeout=settings.openweather_timeout,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    # ── Public API ────────────────────────────────────────────────────────

    async def get_current(self, city: str) -> CurrentWeather:
        """
        Current conditions for `city`.

        Raises:
            ValidationError: empty city.
            LocationNotFoundError: OpenWeather does not know the city.
            WeatherServiceError / CircuitBreakerOpenError: upstream unavailable.
        """
        city = self._clean_city(city)
        data = await self._fetch(self.CURRENT_PATH, city)
        try:
            main = data["main"]
            condition = (data.get("weather") or [{}])[0]
            coord = data.get("coord") or {}
            return CurrentWeather(
                location=data["name"],
                country=(data.get("sys") or {}).get("country"),
                lat=coord.get("lat"),
                lon=coord.get("lon"),
                temperature=round(main["temp"]),
                description=condition.get("description", ""),
                humidity=int(main["humidity"]),
                wind_speed=float((data.get("wind") or {}).get("speed", 0.0)),
                icon=condition.get("icon"),
                timestamp=datetime.now(timezone.utc),
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.error("Unexpected OpenWeather payload for current weather: %s", e)
            raise WeatherServiceError() from e

    async def get_forecast(self, city: str) -> Forecast:
        """5-day / 3-hour forecast for `city`. Raises as get_current."""
        city = self._clean_city(city)
        data = await self._fetch(self.FORECAST_PATH, city)
        try:
            entries = [
                ForecastEntry(
                    date=datetime.fromtimestamp(item["dt"], tz=timezone.utc),
                    temperature=round(item["main"]["temp"]),
                    description=(item.get("weather") or [{}])[0].get("description", ""),
                    humidity=int(item["main"]["humidity"]),
                    wind_speed=float((item.get("wind") or {}).get("speed", 0.0)),
                )
                for item in data.get("list", [])
            ]
            return Forecast(location=data["city"]["name"], entries=entries)
        except (KeyError, TypeError, ValueError) as e:
            logger.error("Unexpected OpenWeather payload for forecast: %s", e)
            raise WeatherServiceError() from e

    async def health_check(self) -> bool:
        """True when an API key is configured and the circuit is not open."""
        if not settings.openweather_api_key:
            return False
        return self.circuit_breaker.state != CircuitBreaker.OPEN

    # ── Internals ─────────────────────────────────────────────────────────

    @staticmethod
    def _clean_city(city: str) -> str:
        city = (city or "").strip()
        if not city:
            raise ValidationError("City name is required", field="city")
        return city

    async def _fetch(self, path: str, city: str) -> Dict[str, Any]:
        """One upstream GET with breaker bookkeeping. Never retries."""
        if not settings.openweather_api_key:
            logger.error("OPENWEATHER_API_KEY is not configured")
            raise WeatherServiceError()

        self.circuit_breaker.can_execute()

        request_id = str(uuid.uuid4())[:8]
        params = {
            "q": city,
            "appid": settings.openweather_api_key,
            "units": settings.openweather_units,
        }
        start_time = time.time()

        try:
            response = await self.client.get(path, params=params)
        except httpx.HTTPError as e:
            self.circuit_breaker.record_failure()
            logger.warning(
                "[%s] OpenWeather request to %s failed after %.0fms: %s",
                request_id,
                path,
                (time.time() - start_time) * 1000,
                type(e).__name__,
            )
            raise WeatherServiceError(
                retry_after=self.circuit_breaker.recovery_timeout,
                context={"request_id": request_id},
            ) from e

        duration_ms = (time.time() - start_time) * 1000

        if response.status_code == 404:
            # Unknown city: the upstream is healthy
            self.circuit_breaker.record_success()
            logger.info("[%s] OpenWeather has no match for %r", request_id, city)
            raise LocationNotFoundError(city)

        if response.status_code == 401:
            self.circuit_breaker.record_failure()
            logger.error("[%s] OpenWeather rejected the API key (401)", request_id)
            raise WeatherServiceError(context={"request_id": request_id})

        if response.status_code != 200:
            self.circuit_breaker.record_failure()
            logger.warning(
                "[%s] OpenWeather answered %d in %.0fms",
                request_id,
                response.status_code,
                duration_ms,
            )
            raise WeatherServiceError(
                retry_after=self.circuit_breaker.recovery_timeout,
                context={"request_id": request_id, "upstream_status": response.status_code},
            )

        try:
            payload = response.json()
        except ValueError as e:
            self.circuit_breaker.record_failure()
            logger.error("[%s] OpenWeather returned a non-JSON body", request_id)
            raise WeatherServiceError(context={"request_id": request_id}) from e

        self.circuit_breaker.record_success()
        logger.info("[%s] OpenWeather %s completed in %.0fms", request_id, path, duration_ms)
        return payload


# Singleton, closed in the app lifespan
weather_service = WeatherService()
