"""
Stratus Backend: Weather Service Tests
=======================================

What:  CircuitBreaker state machine and the OpenWeather proxy.
How:   The upstream is an httpx.MockTransport; no network calls.

What we test:
    ✅ Reshaping of current weather and forecast payloads
    ✅ 404 → LocationNotFoundError without tripping the breaker
    ✅ 401 / 5xx / transport errors → WeatherServiceError, one request each
    ✅ Breaker opens after the threshold and rejects without a request
"""

import time

import httpx
import pytest

from stratus.config import settings
from stratus.exceptions import (
    CircuitBreakerOpenError,
    LocationNotFoundError,
    ValidationError,
    WeatherServiceError,
)
from stratus.services.weather_service import CircuitBreaker, WeatherService

CURRENT_PAYLOAD = {
    "name": "London",
    "coord": {"lat": 51.51, "lon": -0.13},
    "sys": {"country": "GB"},
    "main": {"temp": 14.6, "humidity": 72},
    "weather": [{"description": "light rain", "icon": "10d"}],
    "wind": {"speed": 4.1},
}

FORECAST_PAYLOAD = {
    "city": {"name": "London"},
    "list": [
        {
            "dt": 1760000000,
            "main": {"temp": 12.4, "humidity": 80},
            "weather": [{"description": "overcast clouds"}],
            "wind": {"speed": 3.0},
        },
        {
            "dt": 1760010800,
            "main": {"temp": 15.5, "humidity": 65},
            "weather": [{"description": "clear sky"}],
            "wind": {"speed": 2.2},
        },
    ],
}


def _service(handler):
    """WeatherService whose upstream is `handler`; records every request."""
    seen = []

    def _record(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    client = httpx.AsyncClient(
        transport=httpx.MockTransport(_record),
        base_url=settings.openweather_api_url,
    )
    return WeatherService(http_client=client), seen


class TestCircuitBreaker:

    def test_initial_state_is_closed(self):
        cb = CircuitBreaker(failure_threshold=5, recovery_timeout=60)
        assert cb.state == CircuitBreaker.CLOSED
        assert cb.failure_count == 0

    def test_stays_closed_under_threshold(self):
        cb = CircuitBreaker(failure_threshold=5, recovery_timeout=60)
        for _ in range(4):
            cb.record_failure()
        assert cb.state == CircuitBreaker.CLOSED
        cb.can_execute()

    def test_opens_at_threshold_and_rejects(self):
        cb = CircuitBreaker(failure_threshold=3, recovery_timeout=60)
        for _ in range(3):
            cb.record_failure()
        assert cb.state == CircuitBreaker.OPEN
        with pytest.raises(CircuitBreakerOpenError) as exc_info:
            cb.can_execute()
        assert 0 < exc_info.value.recovery_time <= 60

    def test_half_open_after_timeout_then_closes(self):
        cb = CircuitBreaker(failure_threshold=1, recovery_timeout=0)
        cb.record_failure()
        time.sleep(0.01)
        assert cb.can_execute() is True
        assert cb.state == CircuitBreaker.HALF_OPEN
        cb.record_success()
        assert cb.state == CircuitBreaker.CLOSED
        assert cb.failure_count == 0

    def test_half_open_failure_reopens(self):
        cb = CircuitBreaker(failure_threshold=1, recovery_timeout=0)
        cb.record_failure()
        time.sleep(0.01)
        cb.can_execute()
        cb.record_failure()
        assert cb.state == CircuitBreaker.OPEN


class TestCurrentWeather:

    @pytest.mark.asyncio
    async def test_reshapes_payload(self):
        service, seen = _service(lambda req: httpx.Response(200, json=CURRENT_PAYLOAD))
        weather = await service.get_current("  London ")

        assert weather.location == "London"
        assert weather.country == "GB"
        assert weather.temperature == 15
        assert weather.humidity == 72
        assert weather.wind_speed == 4.1
        assert weather.description == "light rain"
        assert weather.icon == "10d"

        request = seen[0]
        assert request.url.path == "/data/2.5/weather"
        assert request.url.params["q"] == "London"
        assert request.url.params["appid"] == settings.openweather_api_key
        assert request.url.params["units"] == settings.openweather_units

    @pytest.mark.asyncio
    async def test_unknown_city(self):
        service, seen = _service(lambda req: httpx.Response(404, json={"message": "city not found"}))
        for _ in range(settings.cb_failure_threshold + 1):
            with pytest.raises(LocationNotFoundError):
                await service.get_current("Atlantis")
        assert service.circuit_breaker.state == CircuitBreaker.CLOSED

    @pytest.mark.asyncio
    async def test_bad_api_key(self):
        service, seen = _service(lambda req: httpx.Response(401, json={"message": "Invalid API key"}))
        with pytest.raises(WeatherServiceError):
            await service.get_current("London")
        assert len(seen) == 1

    @pytest.mark.asyncio
    async def test_upstream_error_is_not_retried(self):
        service, seen = _service(lambda req: httpx.Response(502))
        with pytest.raises(WeatherServiceError):
            await service.get_current("London")
        assert len(seen) == 1
        assert service.circuit_breaker.failure_count == 1

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def _boom(request):
            raise httpx.ConnectError("connection refused", request=request)

        service, _ = _service(_boom)
        with pytest.raises(WeatherServiceError):
            await service.get_current("London")

    @pytest.mark.asyncio
    async def test_unexpected_payload(self):
        service, _ = _service(lambda req: httpx.Response(200, json={"unexpected": True}))
        with pytest.raises(WeatherServiceError):
            await service.get_current("London")

    @pytest.mark.asyncio
    async def test_empty_city(self):
        service, seen = _service(lambda req: httpx.Response(200, json=CURRENT_PAYLOAD))
        with pytest.raises(ValidationError):
            await service.get_current("   ")
        assert seen == []

    @pytest.mark.asyncio
    async def test_breaker_opens_and_short_circuits(self):
        service, seen = _service(lambda req: httpx.Response(500))
        for _ in range(settings.cb_failure_threshold):
            with pytest.raises(WeatherServiceError):
                await service.get_current("London")

        with pytest.raises(CircuitBreakerOpenError):
            await service.get_current("London")
        assert len(seen) == settings.cb_failure_threshold
        assert await service.health_check() is False


class TestForecast:

    @pytest.mark.asyncio
    async def test_reshapes_entries(self):
        service, seen = _service(lambda req: httpx.Response(200, json=FORECAST_PAYLOAD))
        forecast = await service.get_forecast("London")

        assert seen[0].url.path == "/data/2.5/forecast"
        assert forecast.location == "London"
        assert [e.temperature for e in forecast.entries] == [12, 16]
        assert forecast.entries[1].description == "clear sky"
        assert forecast.entries[0].date.tzinfo is not None

    @pytest.mark.asyncio
    async def test_unknown_city(self):
        service, _ = _service(lambda req: httpx.Response(404))
        with pytest.raises(LocationNotFoundError):
            await service.get_forecast("Atlantis")


class TestHealth:

    @pytest.mark.asyncio
    async def test_healthy_when_closed(self):
        service, _ = _service(lambda req: httpx.Response(200, json=CURRENT_PAYLOAD))
        assert await service.health_check() is True
