"""
Stratus Backend: Route Dependencies
====================================

What:  FastAPI dependencies that build request-scoped collaborators and
       guard protected routes.
How:   Depends() chains: db session → repository → service. The
       SessionManager is built once in the lifespan and kept on app.state.

Session Guard:
    Authorization: Bearer <token>
        missing / not bearer → UnauthorizedError (401)
        expired              → ExpiredError      (401)
        bad signature        → SignatureError    (401)
        anything else        → MalformedError    (401)
    On success the verified Claims are handed to the route.
"""

import logging
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from stratus.database import get_db_session
from stratus.exceptions import UnauthorizedError
from stratus.repositories.user_repository import SqlAlchemyUserRepository, UserRepository
from stratus.schemas.auth import Claims
from stratus.security.sessions import SessionManager
from stratus.services.auth_service import AuthService
from stratus.services.profile_service import ProfileService

logger = logging.getLogger(__name__)

# auto_error=False: a missing header becomes our 401 body, not FastAPI's 403
_bearer = HTTPBearer(auto_error=False)


def get_session_manager(request: Request) -> SessionManager:
    manager = getattr(request.app.state, "session_manager", None)
    if manager is None:
        # Raises ConfigError when JWT_SECRET is unset
        manager = SessionManager.from_settings()
        request.app.state.session_manager = manager
    return manager


def get_user_repository(db: AsyncSession = Depends(get_db_session)) -> UserRepository:
    return SqlAlchemyUserRepository(db)


def get_auth_service(
    users: UserRepository = Depends(get_user_repository),
    sessions: SessionManager = Depends(get_session_manager),
) -> AuthService:
    return AuthService(users, sessions)


def get_profile_service(
    users: UserRepository = Depends(get_user_repository),
) -> ProfileService:
    return ProfileService(users)


async def get_current_claims(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    sessions: SessionManager = Depends(get_session_manager),
) -> Claims:
    """Verify the bearer token and return its claims."""
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("Authentication required")
    return sessions.verify(credentials.credentials)
