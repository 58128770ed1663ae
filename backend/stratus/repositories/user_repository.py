"""
Stratus Backend: User Storage Collaborator
===========================================

What:  The storage interface the auth and profile services depend on, plus
       its async SQLAlchemy implementation.
How:   `UserRepository` is a Protocol; services receive an implementation
       through FastAPI's dependency injection (or a fake in tests).

Contract:
    find_by_email(email)               → User | None   (email already normalised)
    find_by_id(user_id)                → User | None
    find_by_verification_token(token)  → User | None
    find_by_reset_token(token)         → User | None
    insert(user)                       → UUID           raises DuplicateKeyError(field)
    update(user_id, patch)             → None           partial field update
    delete(user_id)                    → bool           True if a row was removed

Unique-constraint violations surface as DuplicateKeyError naming the
violated column, so callers can tell an email clash from a token clash.
Transient storage errors are not retried here.
"""

import logging
import re
import uuid
from typing import Any, Dict, Optional, Protocol, runtime_checkable

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from stratus.exceptions import DuplicateKeyError
from stratus.models.user import User

logger = logging.getLogger(__name__)

_UNIQUE_FIELDS = ("verification_token", "reset_token", "email")

_VIOLATION_PATTERNS = (
    re.compile(r'unique constraint "ix_users_(\w+)"', re.IGNORECASE),
    re.compile(r"UNIQUE constraint failed: users\.(\w+)", re.IGNORECASE),
    re.compile(r"Key \((\w+)\)="),
)


@runtime_checkable
class UserRepository(Protocol):
    async def find_by_email(self, email: str) -> Optional[User]: ...

    async def find_by_id(self, user_id: uuid.UUID) -> Optional[User]: ...

    async def find_by_verification_token(self, token: str) -> Optional[User]: ...

    async def find_by_reset_token(self, token: str) -> Optional[User]: ...

    async def insert(self, user: User) -> uuid.UUID: ...

    async def update(self, user_id: uuid.UUID, patch: Dict[str, Any]) -> None: ...

    async def delete(self, user_id: uuid.UUID) -> bool: ...


def _violated_field(error: IntegrityError) -> str:
    """
    Name of the unique column behind an IntegrityError, or "unknown".

    Only the parts of the driver message that the database itself writes
    are read: the index name and "Key (<column>)=" on Postgres,
    "users.<column>" on SQLite. The offending value is never scanned, so
    an email that happens to contain "reset_token" still reads as "email".
    """
    text = str(error.orig)
    found = []
    for pattern in _VIOLATION_PATTERNS:
        match = pattern.search(text)
        if match and match.group(1) in _UNIQUE_FIELDS:
            found.append(match)
    if not found:
        return "unknown"
    # The database names the column before it echoes the value
    return min(found, key=lambda m: m.start()).group(1)


class SqlAlchemyUserRepository:
    """
    UserRepository backed by an AsyncSession.

    Writes are flushed, not committed; the request-scoped session in
    database.get_db_session owns the transaction boundary.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _first(self, *criteria) -> Optional[User]:
        result = await self.session.execute(select(User).where(*criteria))
        return result.scalar_one_or_none()

    async def find_by_email(self, email: str) -> Optional[User]:
        return await self._first(User.email == email)

    async def find_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        return await self.session.get(User, user_id)

    async def find_by_verification_token(self, token: str) -> Optional[User]:
        return await self._first(User.verification_token == token)

    async def find_by_reset_token(self, token: str) -> Optional[User]:
        return await self._first(User.reset_token == token)

    async def insert(self, user: User) -> uuid.UUID:
        # A savepoint keeps the outer request transaction usable after a
        # unique violation, so the caller can retry inside the same session.
        try:
            async with self.session.begin_nested():
                self.session.add(user)
                await self.session.flush()
        except IntegrityError as e:
            field = _violated_field(e)
            logger.info("Unique constraint hit on users.%s during insert", field)
            raise DuplicateKeyError(field) from e
        return user.id

    async def update(self, user_id: uuid.UUID, patch: Dict[str, Any]) -> None:
        if not patch:
            return
        try:
            async with self.session.begin_nested():
                await self.session.execute(
                    update(User).where(User.id == user_id).values(**patch)
                )
        except IntegrityError as e:
            raise DuplicateKeyError(_violated_field(e)) from e

    async def delete(self, user_id: uuid.UUID) -> bool:
        result = await self.session.execute(delete(User).where(User.id == user_id))
        return (result.rowcount or 0) > 0
