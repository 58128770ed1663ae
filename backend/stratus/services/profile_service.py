"""
Stratus Backend: Profile Service
=================================

What:  Read and edit the signed-in user's profile; delete the account.
How:   Works through the same UserRepository as AuthService, so profile
       edits never touch credentials or verification state.
Who:   routes.profile.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from stratus.exceptions import NotFoundError
from stratus.models.user import DEFAULT_PREFERENCES, User
from stratus.repositories.user_repository import UserRepository
from stratus.services.history_service import HistoryService, history_service

logger = logging.getLogger(__name__)


class ProfileService:
    """
    Args:
        users: Storage collaborator.
        history: Used to drop search history before the account row.
    """

    def __init__(self, users: UserRepository, history: HistoryService = history_service):
        self.users = users
        self.history = history

    async def get_profile(self, user_id: UUID) -> User:
        user = await self.users.find_by_id(user_id)
        if user is None:
            raise NotFoundError(resource="user", resource_id=str(user_id))
        return user

    async def update_profile(
        self,
        user_id: UUID,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        preferences: Optional[Dict[str, Any]] = None,
    ) -> User:
        """
        Apply the provided fields; omitted ones are left unchanged.

        Preferences are merged into the stored ones key by key.
        """
        user = await self.get_profile(user_id)

        patch: Dict[str, Any] = {}
        if first_name is not None:
            patch["first_name"] = first_name.strip() or user.first_name
        if last_name is not None:
            patch["last_name"] = last_name.strip() or user.last_name
        if preferences:
            merged = dict(DEFAULT_PREFERENCES)
            merged.update(user.preferences or {})
            merged.update(preferences)
            patch["preferences"] = merged

        if not patch:
            return user

        patch["updated_at"] = datetime.now(timezone.utc)
        await self.users.update(user_id, patch)
        logger.info("Profile updated for user %s: %s", user_id, sorted(patch))
        return await self.get_profile(user_id)

    async def update_preferences(self, user_id: UUID, preferences: Dict[str, Any]) -> User:
        return await self.update_profile(user_id, preferences=preferences)

    async def delete_account(self, db: AsyncSession, user_id: UUID) -> None:
        """
        Remove the user's search history, then the user.

        Raises:
            NotFoundError: no such user.
        """
        await self.get_profile(user_id)
        removed = await self.history.clear(db, user_id)
        if not await self.users.delete(user_id):
            raise NotFoundError(resource="user", resource_id=str(user_id))
        logger.info("Deleted account %s (%d searches removed)", user_id, removed)
