"""
Stratus Backend: Search History Service
========================================

What:  Records, lists and deletes a user's weather searches.
How:   Stateless; every method receives the request-scoped AsyncSession.
Who:   routes.weather (record after a successful lookup, history endpoints)
       and ProfileService.delete_account.

Every query is scoped by user_id, so one user can never see or delete
another user's rows. A foreign row answers exactly like a missing one.
"""

import logging
from typing import List
from uuid import UUID

from sqlalchemy import delete, desc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from stratus.exceptions import DatabaseError, NotFoundError
from stratus.models.search_history import SearchHistory
from stratus.schemas.weather import CurrentWeather, SearchHistoryItem

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 50


class HistoryService:
    """Business logic for search history rows."""

    async def record(
        self,
        db: AsyncSession,
        user_id: UUID,
        query: str,
        weather: CurrentWeather,
    ) -> SearchHistoryItem:
        """Snapshot a successful current-weather lookup."""
        entry = SearchHistory(
            user_id=user_id,
            query=query.strip()[:200],
            location_name=weather.location,
            country=weather.country,
            lat=weather.lat,
            lon=weather.lon,
            temperature=weather.temperature,
            description=weather.description,
            humidity=weather.humidity,
            wind_speed=weather.wind_speed,
            icon=weather.icon,
        )
        # Savepoint: a failed insert must not poison the request transaction
        try:
            async with db.begin_nested():
                db.add(entry)
                await db.flush()
            await db.refresh(entry)
        except SQLAlchemyError as e:
            logger.error("Failed to record search for user %s: %s", user_id, e)
            raise DatabaseError(context={"operation": "record_search"}) from e

        logger.debug("Recorded search %s for user %s", entry.id, user_id)
        return SearchHistoryItem.model_validate(entry)

    async def list_for_user(
        self,
        db: AsyncSession,
        user_id: UUID,
        limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> List[SearchHistoryItem]:
        """Most recent searches first."""
        result = await db.execute(
            select(SearchHistory)
            .where(SearchHistory.user_id == user_id)
            .order_by(desc(SearchHistory.created_at))
            .limit(limit)
        )
        return [SearchHistoryItem.model_validate(row) for row in result.scalars().all()]

    async def delete_entry(self, db: AsyncSession, user_id: UUID, entry_id: UUID) -> None:
        """
        Raises:
            NotFoundError: entry absent or owned by another user.
        """
        result = await db.execute(
            delete(SearchHistory).where(
                SearchHistory.id == entry_id,
                SearchHistory.user_id == user_id,
            )
        )
        if not result.rowcount:
            raise NotFoundError(resource="search history entry", resource_id=str(entry_id))
        logger.info("Deleted search %s for user %s", entry_id, user_id)

    async def clear(self, db: AsyncSession, user_id: UUID) -> int:
        """Delete all of a user's searches; returns how many were removed."""
        result = await db.execute(
            delete(SearchHistory).where(SearchHistory.user_id == user_id)
        )
        removed = result.rowcount or 0
        logger.info("Cleared %d searches for user %s", removed, user_id)
        return removed


# Singleton; stateless, safe to share across requests
history_service = HistoryService()
