"""
Stratus Backend: FastAPI Application Factory
=============================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn to start the server (uvicorn stratus.main:app).
When:  Once at server startup; the returned app handles all subsequent requests.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware Chain:                                       │
    │  ┌────────────┐ ┌──────────┐ ┌─────────┐ ┌────────────┐  │
    │  │ Rate Limit │→│ Req ID   │→│ Logging │→│ GZip, CORS │  │
    │  └────────────┘ └──────────┘ └─────────┘ └────────────┘  │
    │                                                          │
    │  Routes:                                                 │
    │  ┌───────────┐ ┌──────────────┐ ┌──────────┐ ┌────────┐  │
    │  │ /api/auth │ │ /api/weather │ │ /profile │ │/health │  │
    │  └───────────┘ └──────────────┘ └──────────┘ └────────┘  │
    │                                                          │
    │  Exception Handlers:                                     │
    │  ┌────────────────────────────────────────────────────┐  │
    │  │ StratusError → exc.status_code │ Exception → 500   │  │
    │  └────────────────────────────────────────────────────┘  │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Initialize logging
    2. Validate configuration (a missing JWT_SECRET aborts startup)
    3. Build the SessionManager once and keep it on app.state
    4. Create tables for SQLite runs (Postgres uses Alembic)

    Shutdown:
    1. Close the OpenWeather HTTP client
    2. Dispose database engine (close all connections)
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from stratus import __version__
from stratus.config import settings
from stratus.database import create_all, dispose_engine
from stratus.exceptions import (
    CircuitBreakerOpenError,
    ConfigError,
    RateLimitExceededError,
    StratusError,
    UnauthorizedError,
    WeatherServiceError,
)
from stratus.middleware.logging import RequestLoggingMiddleware
from stratus.middleware.rate_limit import RateLimitMiddleware
from stratus.middleware.request_id import RequestIDMiddleware, request_id_var
from stratus.routes import auth, health, profile, weather
from stratus.security.sessions import SessionManager
from stratus.services.weather_service import weather_service

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    Called once during startup, before any other initialization.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party loggers that are chatty at INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    # httpx logs full request URLs at INFO, including the appid query parameter
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup and shutdown procedures.

    Raises:
        ConfigError: JWT_SECRET is missing. The process exits instead of
            serving authenticated routes it cannot sign tokens for.
    """
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("Stratus Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ConfigError as e:
        logger.critical("Configuration error: %s", e.message)
        raise
    except ValueError as e:
        # Weather endpoints answer 503 until the key is configured
        logger.error("Configuration warning: %s", str(e))

    app.state.session_manager = SessionManager.from_settings()

    if settings.database_url.startswith("sqlite"):
        await create_all()
        logger.info("SQLite schema ensured")

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("API docs: http://%s:%d/docs", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Stratus Backend shutting down...")
    await weather_service.aclose()
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _retry_after(exc: StratusError) -> int | None:
    if isinstance(exc, RateLimitExceededError):
        return exc.retry_after
    if isinstance(exc, CircuitBreakerOpenError):
        return exc.recovery_time
    if isinstance(exc, WeatherServiceError):
        return exc.retry_after
    return None


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map application exceptions to the standard error body.

    Body: {"error": code, "message": ..., "details": ..., "request_id": ...}

    Handler hierarchy:
        UnauthorizedError (incl. session errors) → 401 + WWW-Authenticate: Bearer
        StratusError (any other)                 → exc.status_code
        Exception (fallback)                     → 500, stack trace logged

    5xx bodies never include exception context; it is logged server-side.
    """

    @app.exception_handler(UnauthorizedError)
    async def handle_unauthorized(request: Request, exc: UnauthorizedError):
        rid = request_id_var.get("")
        # Class name tells Expired / Signature / Malformed apart in logs only
        logger.warning("[%s] %s on %s", rid, type(exc).__name__, request.url.path)
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": exc.error_code,
                "message": exc.message,
                "details": None,
                "request_id": rid,
            },
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(StratusError)
    async def handle_stratus_error(request: Request, exc: StratusError):
        rid = request_id_var.get("")
        headers = {}
        retry_after = _retry_after(exc)
        if retry_after:
            headers["Retry-After"] = str(retry_after)

        if exc.status_code >= 500:
            logger.error(
                "[%s] %s: %s | Context: %s",
                rid,
                type(exc).__name__,
                exc.message,
                exc.context,
            )
            details = {"retry_after": retry_after} if retry_after else None
            message = exc.message
            if not isinstance(exc, (WeatherServiceError, CircuitBreakerOpenError)):
                message = "An internal error occurred. Please try again later."
        else:
            logger.warning("[%s] %s: %s", rid, type(exc).__name__, exc.message)
            details = exc.context or None
            message = exc.message

        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": exc.error_code,
                "message": message,
                "details": details,
                "request_id": rid,
            },
            headers=headers,
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred. Please try again or contact support.",
                "details": None,
                "request_id": rid,
            },
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """Assemble middleware, exception handlers and routers."""
    app = FastAPI(
        title="Stratus API",
        description=(
            "Weather backend with email/password accounts: registration with "
            "email verification, session tokens, password reset, an "
            "OpenWeather proxy and per-user search history."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first: RateLimit → RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After", "WWW-Authenticate"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(auth.router)
    app.include_router(weather.router)
    app.include_router(profile.router)
    app.include_router(health.router)

    return app


# ── Application Instance ─────────────────────────────────────────────────
app = create_app()
