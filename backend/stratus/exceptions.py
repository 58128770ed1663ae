"""
Stratus Backend: Custom Exception Hierarchy
============================================

What:  Defines application-specific exceptions for different error scenarios.
How:   Each exception class carries a message, an optional context dict, a
       machine-readable `error_code` and the HTTP `status_code` it maps to.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses.
Who:   Raised by security primitives, services and route dependencies.

Exception Hierarchy:
    StratusError (base)
    ├── ValidationError                → 400
    │   ├── InvalidEmailError
    │   ├── WeakPasswordError
    │   └── EncodingError
    ├── InvalidOrExpiredTokenError     → 400  (verification / reset token)
    ├── UnauthorizedError              → 401
    │   ├── InvalidCredentialsError        (unknown email OR wrong password)
    │   ├── UnverifiedAccountError
    │   └── SessionError
    │       ├── ExpiredError
    │       ├── SignatureError
    │       └── MalformedError
    ├── NotFoundError                  → 404
    │   └── LocationNotFoundError
    ├── ConflictError                  → 409
    ├── RateLimitExceededError         → 429
    ├── ConfigError                    → 500  (fatal at startup)
    ├── DatabaseError                  → 500
    │   └── DuplicateKeyError              (storage unique-constraint hit)
    ├── WeatherServiceError            → 503
    └── CircuitBreakerOpenError        → 503

The three session errors all collapse to 401 for the client; their class
name is kept in logs so an operator can tell expiry from tampering.
"""

from typing import Any, Dict, Optional


class StratusError(Exception):
    """
    Base exception for all Stratus application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned for 5xx errors)
    """

    status_code: int = 500
    error_code: str = "server_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


# ── Client input (400) ────────────────────────────────────────────────────

class ValidationError(StratusError):
    """
    Raised when client input fails a business validation rule.

    FastAPI's own schema validation still answers 422; this is for rules the
    schemas cannot express (password strength, email shape, query sanity).
    """

    status_code = 400
    error_code = "validation_error"

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class InvalidEmailError(ValidationError):
    """Email failed the syntactic check in security.validators."""

    error_code = "invalid_email"

    def __init__(self, message: str = "Invalid email format"):
        super().__init__(message=message, field="email")


class WeakPasswordError(ValidationError):
    """
    Password failed the strength policy.

    `reasons` lists each unmet clause so clients can render them.
    """

    error_code = "weak_password"

    def __init__(
        self,
        message: str = (
            "Password must be at least 8 characters with uppercase, lowercase, and number"
        ),
        reasons: Optional[list] = None,
    ):
        ctx = {"reasons": reasons} if reasons else None
        super().__init__(message=message, field="password", context=ctx)
        self.reasons = reasons or []


class EncodingError(ValidationError):
    """Plaintext could not be turned into bytes for hashing (None, NUL, bad surrogate)."""

    error_code = "encoding_error"

    def __init__(self, message: str = "Password contains characters that cannot be encoded"):
        super().__init__(message=message, field="password")


class InvalidOrExpiredTokenError(StratusError):
    """
    A verification or reset token did not match a stored record, or matched
    one whose expiry has passed. Both causes share one error on purpose.
    """

    status_code = 400
    error_code = "invalid_or_expired_token"

    def __init__(self, message: str = "Invalid or expired token"):
        super().__init__(message=message)


# ── Authentication (401) ──────────────────────────────────────────────────

class UnauthorizedError(StratusError):
    """Base for every failure that the HTTP layer reports as 401."""

    status_code = 401
    error_code = "unauthorized"

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class InvalidCredentialsError(UnauthorizedError):
    """
    Unknown email or wrong password.

    The message is identical for both causes so the response cannot be
    used to enumerate registered accounts.
    """

    error_code = "invalid_credentials"

    def __init__(self):
        super().__init__(message="Invalid credentials")


class UnverifiedAccountError(UnauthorizedError):
    """Correct credentials, but the account is still pending email verification."""

    error_code = "unverified_account"

    def __init__(self):
        super().__init__(message="Please verify your email first")


class SessionError(UnauthorizedError):
    """Base for session-token verification failures."""

    error_code = "invalid_session"

    def __init__(self, message: str = "Invalid session token"):
        super().__init__(message=message)


class ExpiredError(SessionError):
    """Session token is past its embedded expiry."""

    error_code = "session_expired"

    def __init__(self, message: str = "Session token has expired"):
        super().__init__(message=message)


class SignatureError(SessionError):
    """Signature does not match: tampered payload or a different secret."""

    error_code = "invalid_signature"

    def __init__(self, message: str = "Session token signature is invalid"):
        super().__init__(message=message)


class MalformedError(SessionError):
    """Token cannot be parsed, or its claims are missing/ill-typed."""

    error_code = "malformed_token"

    def __init__(self, message: str = "Session token is malformed"):
        super().__init__(message=message)


# ── Resources (404 / 409) ─────────────────────────────────────────────────

class NotFoundError(StratusError):
    """
    Raised when a requested resource does not exist.

    Services translate a repository `None` into this exception so routes
    never inspect storage results themselves.
    """

    status_code = 404
    error_code = "not_found"

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class LocationNotFoundError(NotFoundError):
    """OpenWeather answered 404 for the requested city."""

    error_code = "location_not_found"

    def __init__(self, query: str):
        super().__init__(resource="location", context={"query": query})
        self.message = "City not found. Please check the city name and try again"


class ConflictError(StratusError):
    """An account with this (normalised) email already exists."""

    status_code = 409
    error_code = "conflict"

    def __init__(
        self,
        message: str = "User already exists",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


# ── Server-side (429 / 500 / 503) ─────────────────────────────────────────

class RateLimitExceededError(StratusError):
    """
    Raised when a client exceeds the per-IP request rate limit.

    Response includes a Retry-After header with `retry_after` seconds.
    """

    status_code = 429
    error_code = "rate_limit_exceeded"

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class ConfigError(StratusError):
    """
    Required configuration is missing (e.g. the JWT signing secret).

    Raised at construction/startup. The lifespan handler lets it abort the
    process instead of serving authenticated routes with a broken signer.
    """

    status_code = 500
    error_code = "configuration_error"

    def __init__(self, message: str = "Server configuration is incomplete"):
        super().__init__(message=message)


class DatabaseError(StratusError):
    """
    Raised when database operations fail unexpectedly.

    The message returned to the client is always generic; details stay in
    server-side logs.
    """

    status_code = 500
    error_code = "server_error"

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DuplicateKeyError(DatabaseError):
    """
    A unique constraint rejected an insert/update.

    `field` names the violated column ("email", "verification_token",
    "reset_token") so the auth service can choose between ConflictError
    and a token regeneration.
    """

    def __init__(self, field: str):
        super().__init__(
            message=f"Duplicate value for unique field '{field}'",
            context={"field": field},
        )
        self.field = field


class WeatherServiceError(StratusError):
    """
    The OpenWeather upstream failed (transport error, bad key, 5xx).

    Maps to 503 so clients know to retry later; the proxy itself never retries.
    """

    status_code = 503
    error_code = "weather_service_error"

    def __init__(
        self,
        message: str = "Weather service unavailable. Please try again later",
        retry_after: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if retry_after:
            ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class CircuitBreakerOpenError(StratusError):
    """
    Raised when the weather circuit breaker is in OPEN state.

    How circuit breaker works:
        CLOSED (normal) → failures increment counter
        → After N failures → OPEN (reject all calls for M seconds)
        → After M seconds → HALF-OPEN (allow one test call)
        → If test succeeds → CLOSED
        → If test fails → OPEN again (reset timer)
    """

    status_code = 503
    error_code = "service_unavailable"

    def __init__(
        self,
        recovery_time: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Weather service is temporarily unavailable due to repeated failures. "
            f"The service will automatically retry in approximately {recovery_time} seconds."
        )
        ctx = context or {}
        ctx["recovery_time"] = recovery_time
        super().__init__(message=message, context=ctx)
        self.recovery_time = recovery_time
