"""
Stratus Backend: Search History Service Tests
==============================================

What:  HistoryService against a real SQLite session, plus the
       error-wrapping path with a mock session.
"""

import uuid
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from stratus.exceptions import DatabaseError, NotFoundError
from stratus.models.user import User
from stratus.schemas.weather import CurrentWeather
from stratus.services.history_service import HistoryService


def _weather(location="London", temperature=15):
    return CurrentWeather(
        location=location,
        country="GB",
        lat=51.5,
        lon=-0.1,
        temperature=temperature,
        description="light rain",
        humidity=70,
        wind_speed=4.0,
        icon="10d",
        timestamp=datetime.now(timezone.utc),
    )


async def _user(db, email):
    user = User(id=uuid.uuid4(), email=email, password_hash="x" * 60)
    db.add(user)
    await db.flush()
    return user.id


class TestHistoryService:

    def setup_method(self):
        self.service = HistoryService()

    @pytest.mark.asyncio
    async def test_record_and_list_newest_first(self, db_session):
        user_id = await _user(db_session, "a@x.com")
        await self.service.record(db_session, user_id, "london", _weather("London"))
        await self.service.record(db_session, user_id, "paris", _weather("Paris", 18))

        items = await self.service.list_for_user(db_session, user_id)
        assert [i.location_name for i in items] == ["Paris", "London"]
        assert items[0].query == "paris"
        assert items[0].temperature == 18

    @pytest.mark.asyncio
    async def test_limit(self, db_session):
        user_id = await _user(db_session, "a@x.com")
        for city in ("A", "B", "C"):
            await self.service.record(db_session, user_id, city, _weather(city))
        assert len(await self.service.list_for_user(db_session, user_id, limit=2)) == 2

    @pytest.mark.asyncio
    async def test_users_are_isolated(self, db_session):
        alice = await _user(db_session, "alice@x.com")
        bob = await _user(db_session, "bob@x.com")
        entry = await self.service.record(db_session, alice, "london", _weather())

        assert await self.service.list_for_user(db_session, bob) == []
        with pytest.raises(NotFoundError):
            await self.service.delete_entry(db_session, bob, entry.id)
        assert len(await self.service.list_for_user(db_session, alice)) == 1

    @pytest.mark.asyncio
    async def test_delete_entry(self, db_session):
        user_id = await _user(db_session, "a@x.com")
        entry = await self.service.record(db_session, user_id, "london", _weather())
        await self.service.delete_entry(db_session, user_id, entry.id)
        assert await self.service.list_for_user(db_session, user_id) == []

        with pytest.raises(NotFoundError):
            await self.service.delete_entry(db_session, user_id, entry.id)

    @pytest.mark.asyncio
    async def test_clear_counts(self, db_session):
        user_id = await _user(db_session, "a@x.com")
        for city in ("A", "B"):
            await self.service.record(db_session, user_id, city, _weather(city))
        assert await self.service.clear(db_session, user_id) == 2
        assert await self.service.clear(db_session, user_id) == 0

    @pytest.mark.asyncio
    async def test_record_failure_is_database_error(self, mock_db_session):
        mock_db_session.begin_nested = MagicMock(
            side_effect=OperationalError("SAVEPOINT", {}, Exception("database is locked"))
        )

        with pytest.raises(DatabaseError):
            await self.service.record(mock_db_session, uuid.uuid4(), "london", _weather())
