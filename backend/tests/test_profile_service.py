"""
Stratus Backend: Profile Service Tests
=======================================

What:  Profile reads, partial updates, preference merging and account
       deletion, against the in-memory FakeUserRepository.
"""

import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest

from stratus.exceptions import NotFoundError
from stratus.services.profile_service import ProfileService


@pytest.fixture
def history():
    mock = MagicMock()
    mock.clear = AsyncMock(return_value=3)
    return mock


@pytest.fixture
def profiles(fake_users, history):
    return ProfileService(fake_users, history=history)



class TestProfileService:

    @pytest.mark.asyncio
    async def test_get_profile(self, profiles, auth_service):
        result = await auth_service.register("a@x.com", "GoodPass1", first_name="Ada")
        user = await profiles.get_profile(result.user_id)
        assert user.email == "a@x.com"
        assert user.first_name == "Ada"

    @pytest.mark.asyncio
    async def test_missing_user(self, profiles):
        with pytest.raises(NotFoundError):
            await profiles.get_profile(uuid.uuid4())

    @pytest.mark.asyncio
    async def test_partial_name_update(self, profiles, auth_service):
        result = await auth_service.register("a@x.com", "GoodPass1", first_name="Ada", last_name="L")
        user = await profiles.update_profile(result.user_id, last_name="Lovelace")
        assert (user.first_name, user.last_name) == ("Ada", "Lovelace")

    @pytest.mark.asyncio
    async def test_preferences_are_merged(self, profiles, auth_service):
        result = await auth_service.register("a@x.com", "GoodPass1")
        await profiles.update_preferences(result.user_id, {"theme": "dark"})
        user = await profiles.update_preferences(result.user_id, {"temperature_unit": "fahrenheit"})
        assert user.preferences == {
            "temperature_unit": "fahrenheit",
            "theme": "dark",
            "notifications": True,
        }

    @pytest.mark.asyncio
    async def test_update_never_touches_credentials(self, profiles, auth_service, fake_users):
        result = await auth_service.register("a@x.com", "GoodPass1")
        before = fake_users.rows[result.user_id].password_hash
        await profiles.update_profile(result.user_id, first_name="Grace")
        user = fake_users.rows[result.user_id]
        assert user.password_hash == before
        assert user.is_verified is False

    @pytest.mark.asyncio
    async def test_empty_update_is_noop(self, profiles, auth_service):
        result = await auth_service.register("a@x.com", "GoodPass1")
        user = await profiles.update_profile(result.user_id)
        assert user.first_name == "User"

    @pytest.mark.asyncio
    async def test_delete_account(self, profiles, auth_service, fake_users, history, mock_db_session):
        result = await auth_service.register("a@x.com", "GoodPass1")
        await profiles.delete_account(mock_db_session, result.user_id)

        history.clear.assert_awaited_once_with(mock_db_session, result.user_id)
        assert result.user_id not in fake_users.rows

    @pytest.mark.asyncio
    async def test_delete_missing_account(self, profiles, history, mock_db_session):
        with pytest.raises(NotFoundError):
            await profiles.delete_account(mock_db_session, uuid.uuid4())
        history.clear.assert_not_awaited()
