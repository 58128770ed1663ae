"""
Stratus Backend: Token Generator
=================================

Opaque single-use tokens for email verification and password reset.

Tokens come from the OS CSPRNG (`secrets`), 32 bytes rendered as 64
lowercase hex characters. Collisions are not checked against storage;
the unique index on the token columns plus one retry in AuthService
covers the negligible remainder.
"""

import secrets
from datetime import datetime, timedelta, timezone

TOKEN_BYTES = 32
TOKEN_HEX_LENGTH = TOKEN_BYTES * 2


def generate_token() -> str:
    """Return a fresh 64-character hex token."""
    return secrets.token_hex(TOKEN_BYTES)


def generate_verification_token() -> str:
    return generate_token()


def generate_reset_token() -> str:
    return generate_token()


def expiry_from_now(ttl: timedelta) -> datetime:
    """Timezone-aware UTC expiry `ttl` from now."""
    return datetime.now(timezone.utc) + ttl


def is_expired(expires_at: datetime | None, now: datetime | None = None) -> bool:
    """
    True when `expires_at` is missing or not strictly in the future.

    Naive datetimes (SQLite drops tzinfo) are treated as UTC.
    """
    if expires_at is None:
        return True
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    return now >= expires_at
