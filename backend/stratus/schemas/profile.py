"""
Stratus Backend: Profile Schemas
=================================

Profile read/update payloads. Preferences updates are partial: only the
keys a client sends are merged into the stored document.
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from stratus.schemas.auth import UserPublic


class PreferencesUpdate(BaseModel):
    """Partial preferences document; unset fields keep their stored value."""

    model_config = ConfigDict(extra="forbid")

    temperature_unit: Optional[Literal["celsius", "fahrenheit"]] = None
    theme: Optional[Literal["light", "dark", "system"]] = None
    notifications: Optional[bool] = None


class ProfileUpdate(BaseModel):
    """Body for PUT /api/profile."""

    model_config = ConfigDict(extra="forbid")

    first_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    preferences: Optional[PreferencesUpdate] = None


class PreferencesRequest(BaseModel):
    """Body for PATCH /api/profile/preferences."""

    preferences: PreferencesUpdate


class ProfileResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    data: UserPublic
