"""
Stratus Backend: Auth Request/Response Schemas
===============================================

What:  Pydantic models for the /api/auth endpoints and the verified
       session `Claims` type.
How:   Request models only check presence and size; the email-shape and
       password-strength rules live in security.validators and are
       enforced by AuthService so they also apply outside HTTP.

`Claims` is produced exclusively by security.sessions.verify_session_token.
Route handlers receive it from the `get_current_claims` dependency and
never construct one themselves.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ══════════════════════════════════════════════════════════════════════════
# Session Claims
# ══════════════════════════════════════════════════════════════════════════


class Claims(BaseModel):
    """
    Identity payload carried by a verified session token.

    sub is the stable user id; email and names are denormalized so
    handlers can display them without a lookup. Any other claim the
    issuer signed is kept as an extra field (`model_extra`).
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    sub: str = Field(min_length=1, description="User id")
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    iss: Optional[str] = None
    iat: int
    exp: int

    @field_validator("sub")
    @classmethod
    def sub_is_uuid(cls, v: str) -> str:
        uuid.UUID(v)
        return v

    @property
    def user_id(self) -> uuid.UUID:
        """sub parsed as a UUID; a non-UUID sub never passes the session guard."""
        return uuid.UUID(self.sub)


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class RegisterRequest(BaseModel):
    """Body for POST /api/auth/register."""

    model_config = ConfigDict(extra="forbid")

    email: str = Field(min_length=1, max_length=320)
    password: str = Field(min_length=1, max_length=128)
    first_name: Optional[str] = Field(default=None, max_length=50)
    last_name: Optional[str] = Field(default=None, max_length=50)


class LoginRequest(BaseModel):
    """Body for POST /api/auth/login."""

    model_config = ConfigDict(extra="forbid")

    email: str = Field(min_length=1, max_length=320)
    password: str = Field(min_length=1, max_length=128)


class VerifyEmailRequest(BaseModel):
    """Body for POST /api/auth/verify-email."""

    token: str = Field(min_length=1, max_length=128)


class ForgotPasswordRequest(BaseModel):
    """Body for POST /api/auth/forgot-password."""

    email: str = Field(min_length=1, max_length=320)


class ResetPasswordRequest(BaseModel):
    """Body for POST /api/auth/reset-password."""

    token: str = Field(min_length=1, max_length=128)
    password: str = Field(min_length=1, max_length=128)


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class UserPublic(BaseModel):
    """User fields safe to return: never the hash or outstanding tokens."""

    id: uuid.UUID
    email: str
    first_name: str
    last_name: str
    is_verified: bool
    preferences: Dict[str, Any]
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class RegisterResponse(BaseModel):
    """
    Returned with 201 by POST /api/auth/register.

    verification_token is returned so the caller can deliver it out of band
    (email); this service never sends mail itself.
    """

    message: str = "User registered successfully"
    user_id: uuid.UUID
    verification_token: str


class LoginResponse(BaseModel):
    """Returned by POST /api/auth/login."""

    message: str = "Login successful"
    token: str
    token_type: str = "bearer"
    expires_in: int = Field(description="Token lifetime in seconds")
    user: UserPublic


class ForgotPasswordResponse(BaseModel):
    """
    Same body whether or not the email is registered.

    reset_token is only populated when the server runs with
    EXPOSE_RESET_TOKENS enabled (development), mirroring how the
    verification token is handed back at registration.
    """

    message: str = "If an account exists for that email, a reset link has been issued"
    reset_token: Optional[str] = None


class MessageResponse(BaseModel):
    """Plain acknowledgement body."""

    message: str
