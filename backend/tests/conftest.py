"""
Stratus Backend: Test Configuration (conftest.py)
==================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy (all function-scoped):
    ├── fake_users:       in-memory UserRepository with unique-index behaviour
    ├── session_manager:  SessionManager bound to the test secret
    ├── auth_service:     AuthService over fake_users + session_manager
    ├── mock_db_session:  AsyncMock standing in for AsyncSession
    ├── db_session:       real AsyncSession on a throwaway SQLite file
    └── test_client:      HTTPX AsyncClient over ASGITransport, with the
                          user repository and DB session overridden
"""

import os
import tempfile
import uuid
from datetime import timedelta
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

# ══════════════════════════════════════════════════════════════════════════
# Environment Setup
# ══════════════════════════════════════════════════════════════════════════

# Must run before any stratus import: `settings` is built at import time
os.environ["DATABASE_URL"] = (
    "sqlite+aiosqlite:///" + os.path.join(tempfile.mkdtemp(prefix="stratus_test_"), "app.db")
)
os.environ["JWT_SECRET"] = "test-secret-not-for-production-0123456789"
os.environ["OPENWEATHER_API_KEY"] = "test-key-not-real"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["RATE_LIMIT_REQUESTS"] = "10000"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from stratus.exceptions import DuplicateKeyError  # noqa: E402
from stratus.models.user import User  # noqa: E402
from stratus.security.sessions import SessionManager  # noqa: E402
from stratus.services.auth_service import AuthService  # noqa: E402

TEST_SECRET = os.environ["JWT_SECRET"]


# ══════════════════════════════════════════════════════════════════════════
# In-memory storage collaborator
# ══════════════════════════════════════════════════════════════════════════

class FakeUserRepository:
    """
    UserRepository kept in a dict.

    Unique columns behave like the real indexes: a clash raises
    DuplicateKeyError naming the column. `fail_next_inserts` queues
    DuplicateKeyError fields to raise on upcoming inserts, for exercising
    the token-collision retry.
    """

    UNIQUE = ("email", "verification_token", "reset_token")

    def __init__(self):
        self.rows: Dict[uuid.UUID, User] = {}
        self.fail_next_inserts: List[str] = []
        self.insert_calls = 0

    def _by(self, field: str, value: Any) -> Optional[User]:
        if value is None:
            return None
        return next((u for u in self.rows.values() if getattr(u, field) == value), None)

    def _check_unique(self, values: Dict[str, Any], exclude: Optional[uuid.UUID] = None) -> None:
        for field in self.UNIQUE:
            value = values.get(field)
            if value is None:
                continue
            clash = self._by(field, value)
            if clash is not None and clash.id != exclude:
                raise DuplicateKeyError(field)

    async def find_by_email(self, email: str) -> Optional[User]:
        return self._by("email", email)

    async def find_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        return self.rows.get(user_id)

    async def find_by_verification_token(self, token: str) -> Optional[User]:
        return self._by("verification_token", token)

    async def find_by_reset_token(self, token: str) -> Optional[User]:
        return self._by("reset_token", token)

    async def insert(self, user: User) -> uuid.UUID:
        self.insert_calls += 1
        if self.fail_next_inserts:
            raise DuplicateKeyError(self.fail_next_inserts.pop(0))
        self._check_unique({f: getattr(user, f) for f in self.UNIQUE})
        if user.id is None:
            user.id = uuid.uuid4()
        self.rows[user.id] = user
        return user.id

    async def update(self, user_id: uuid.UUID, patch: Dict[str, Any]) -> None:
        user = self.rows.get(user_id)
        if user is None:
            return
        self._check_unique(patch, exclude=user_id)
        for key, value in patch.items():
            setattr(user, key, value)

    async def delete(self, user_id: uuid.UUID) -> bool:
        return self.rows.pop(user_id, None) is not None


# ══════════════════════════════════════════════════════════════════════════
# Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def fake_users():
    return FakeUserRepository()


@pytest.fixture
def session_manager():
    return SessionManager(TEST_SECRET, timedelta(hours=1), issuer="stratus")


@pytest.fixture
def auth_service(fake_users, session_manager):
    return AuthService(fake_users, session_manager)


@pytest.fixture
def mock_db_session():
    """
    A mock async database session.

    Usage:
        mock_db_session.execute.return_value.rowcount = 1
        await history_service.clear(mock_db_session, user_id)
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.refresh = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


@pytest_asyncio.fixture
async def db_session(tmp_path):
    """
    A real AsyncSession on a fresh SQLite file with all tables created.

    Uses build_engine so the SAVEPOINT and foreign-key setup matches the app.
    """
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    import stratus.models  # noqa: F401
    from stratus.database import Base, build_engine

    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'repo.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session

    await engine.dispose()


@pytest_asyncio.fixture
async def test_client(fake_users, mock_db_session):
    """
    HTTPX AsyncClient talking to the FastAPI app in-process.

    The user repository is the in-memory fake and the DB session is a mock,
    so no database is touched. Tests that request `fake_users` get the
    same instance the app sees.
    """
    from stratus.database import get_db_session
    from stratus.main import app
    from stratus.routes.deps import get_user_repository

    async def _db():
        yield mock_db_session

    app.dependency_overrides[get_user_repository] = lambda: fake_users
    app.dependency_overrides[get_db_session] = _db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
