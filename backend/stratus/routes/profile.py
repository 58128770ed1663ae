"""
Stratus Backend: Profile Route Handlers
========================================

What:  GET/PUT/DELETE /api/profile and PATCH /api/profile/preferences.
How:   The user is always the session's `sub`; there is no way to address
       another account through these routes.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from stratus.database import get_db_session
from stratus.routes.deps import get_current_claims, get_profile_service
from stratus.schemas.auth import Claims, MessageResponse, UserPublic
from stratus.schemas.common import ErrorResponse
from stratus.schemas.profile import PreferencesRequest, ProfileResponse, ProfileUpdate
from stratus.services.profile_service import ProfileService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/profile",
    tags=["Profile"],
    responses={
        401: {"description": "Missing or invalid session", "model": ErrorResponse},
        404: {"description": "Account no longer exists", "model": ErrorResponse},
    },
)


@router.get("", response_model=ProfileResponse, summary="The caller's profile")
async def get_profile(
    claims: Claims = Depends(get_current_claims),
    profiles: ProfileService = Depends(get_profile_service),
) -> ProfileResponse:
    user = await profiles.get_profile(claims.user_id)
    return ProfileResponse(data=UserPublic.model_validate(user))


@router.put("", response_model=ProfileResponse, summary="Update names and/or preferences")
async def update_profile(
    body: ProfileUpdate,
    claims: Claims = Depends(get_current_claims),
    profiles: ProfileService = Depends(get_profile_service),
) -> ProfileResponse:
    preferences = body.preferences.model_dump(exclude_none=True) if body.preferences else None
    user = await profiles.update_profile(
        claims.user_id,
        first_name=body.first_name,
        last_name=body.last_name,
        preferences=preferences,
    )
    return ProfileResponse(
        message="Profile updated successfully",
        data=UserPublic.model_validate(user),
    )


@router.patch(
    "/preferences",
    response_model=ProfileResponse,
    summary="Merge new values into the stored preferences",
)
async def update_preferences(
    body: PreferencesRequest,
    claims: Claims = Depends(get_current_claims),
    profiles: ProfileService = Depends(get_profile_service),
) -> ProfileResponse:
    user = await profiles.update_preferences(
        claims.user_id,
        body.preferences.model_dump(exclude_none=True),
    )
    return ProfileResponse(
        message="Preferences updated successfully",
        data=UserPublic.model_validate(user),
    )


@router.delete("", response_model=MessageResponse, summary="Delete the account and its history")
async def delete_account(
    claims: Claims = Depends(get_current_claims),
    profiles: ProfileService = Depends(get_profile_service),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await profiles.delete_account(db, claims.user_id)
    return MessageResponse(message="Account deleted successfully")
