"""
Stratus Backend: Session Issuer/Verifier
=========================================

What:  Signs and verifies stateless session tokens (HMAC JWT via PyJWT;
       HS256 unless JWT_ALGORITHM says otherwise).
How:   issue_session_token() embeds caller claims plus iat/exp/iss;
       verify_session_token() checks signature, expiry and issuer, then
       validates the payload into a `Claims` object.
Who:   AuthService issues at login; routes.deps.get_current_claims verifies
       on every protected request.

Token states:
    valid    now < exp AND signature matches AND payload parses into Claims
    invalid  everything else (no revoked / refreshed intermediate state)

Error mapping (all surface as 401; the class is kept for logs):
    jwt.ExpiredSignatureError   → ExpiredError
    jwt.InvalidSignatureError   → SignatureError
    anything else unparseable   → MalformedError
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Mapping

import jwt
from pydantic import ValidationError as PydanticValidationError

from stratus.config import settings
from stratus.exceptions import (
    ConfigError,
    ExpiredError,
    MalformedError,
    SignatureError,
    ValidationError,
)
from stratus.schemas.auth import Claims

logger = logging.getLogger(__name__)

# HMAC family only; the secret is shared, never a key pair
SUPPORTED_ALGORITHMS = frozenset({"HS256", "HS384", "HS512"})

# Registered claims are always set by the issuer, never by the caller
_RESERVED_CLAIMS = frozenset({"iat", "exp", "iss", "nbf"})


def _algorithm(algorithm: str | None) -> str:
    algorithm = algorithm or settings.jwt_algorithm
    if algorithm not in SUPPORTED_ALGORITHMS:
        raise ConfigError(f"Unsupported JWT algorithm: {algorithm}")
    return algorithm


def _check_claims(payload: Dict[str, Any]) -> None:
    """Reject claims the verifier would refuse, so no such token is ever signed."""
    try:
        Claims.model_validate({**payload, "iat": 0, "exp": 0})
    except PydanticValidationError as e:
        raise ValidationError("Session claims are invalid") from e


def issue_session_token(
    claims: Mapping[str, Any],
    secret: str,
    ttl: timedelta,
    issuer: str | None = None,
    algorithm: str | None = None,
) -> str:
    """
    Produce a signed token whose signature covers `claims` and the expiry.

    Args:
        claims: Identity payload; must contain a UUID "sub". Registered
                claims (iat/exp/iss/nbf) in the mapping are ignored; any
                other key is carried through to the verified Claims.
        secret: Server-held HMAC secret.
        ttl: Lifetime from now.
        issuer: "iss" value; defaults to settings.jwt_issuer.
        algorithm: HS256, HS384 or HS512; defaults to settings.jwt_algorithm.

    Raises:
        ConfigError: `secret` is empty or `algorithm` is not HS256/384/512.
        ValidationError: `claims` would not pass verify_session_token.
    """
    if not secret:
        raise ConfigError("JWT signing secret is not configured")

    payload: Dict[str, Any] = {k: v for k, v in claims.items() if k not in _RESERVED_CLAIMS}
    _check_claims(payload)

    now = datetime.now(timezone.utc)
    payload.update(
        iss=issuer or settings.jwt_issuer,
        iat=now,
        exp=now + ttl,
    )
    return jwt.encode(payload, secret, algorithm=_algorithm(algorithm))


def verify_session_token(
    token: str,
    secret: str,
    issuer: str | None = None,
    algorithm: str | None = None,
) -> Claims:
    """
    Verify a session token and return its claims.

    Has no side effects and never returns unverified data.

    Raises:
        ConfigError: `secret` is empty or `algorithm` is not HS256/384/512.
        ExpiredError: Token is past its expiry.
        SignatureError: Signature mismatch (tampered, or signed with another secret).
        MalformedError: Token cannot be decoded, wrong issuer, or claims are invalid.
    """
    if not secret:
        raise ConfigError("JWT signing secret is not configured")
    algorithm = _algorithm(algorithm)

    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[algorithm],
            issuer=issuer or settings.jwt_issuer,
            options={"require": ["exp", "iat", "sub"]},
        )
    except jwt.ExpiredSignatureError as e:
        raise ExpiredError() from e
    except jwt.InvalidSignatureError as e:
        raise SignatureError() from e
    except jwt.InvalidTokenError as e:
        # DecodeError, InvalidIssuerError, MissingRequiredClaimError, ...
        raise MalformedError() from e

    try:
        return Claims.model_validate(payload)
    except PydanticValidationError as e:
        raise MalformedError("Session token claims are invalid") from e


class SessionManager:
    """
    Binds the signing secret and TTL loaded at startup.

    Constructed once by the composition root; constructing it without a
    secret raises ConfigError so a misconfigured process never serves
    authenticated routes.
    """

    def __init__(
        self,
        secret: str,
        ttl: timedelta,
        issuer: str | None = None,
        algorithm: str | None = None,
    ):
        if not secret:
            raise ConfigError("JWT_SECRET is not set")
        self._secret = secret
        self.ttl = ttl
        self.issuer = issuer or settings.jwt_issuer
        self.algorithm = _algorithm(algorithm)

    @classmethod
    def from_settings(cls) -> "SessionManager":
        return cls(
            secret=settings.jwt_secret,
            ttl=timedelta(minutes=settings.session_ttl_minutes),
            issuer=settings.jwt_issuer,
            algorithm=settings.jwt_algorithm,
        )

    def issue(self, claims: Mapping[str, Any]) -> str:
        return issue_session_token(
            claims, self._secret, self.ttl, issuer=self.issuer, algorithm=self.algorithm
        )

    def verify(self, token: str) -> Claims:
        return verify_session_token(
            token, self._secret, issuer=self.issuer, algorithm=self.algorithm
        )

    @property
    def expires_in(self) -> int:
        """Token lifetime in seconds, for the login response."""
        return int(self.ttl.total_seconds())
