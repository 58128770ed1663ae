"""
Stratus Backend: Auth Service (Business Logic Orchestrator)
============================================================

What:  Register / login / verify-email / password-reset flows.
How:   Composes the security primitives (validators, passwords, tokens,
       sessions) against an injected UserRepository.
Who:   Called by routes.auth; constructed per request by routes.deps.

Account State Machine:
    unregistered ──register──▶ pending_verification ──verify_email──▶ verified

    login is rejected with UnverifiedAccountError only from
    pending_verification, and only after the password has been confirmed.

Flow (register):
    ┌──────────┐   ┌──────────────┐   ┌───────────┐   ┌────────────────────┐
    │ Validate │──▶│ Lookup email │──▶│ bcrypt    │──▶│ Insert + token     │
    │ (pure)   │   │ (Conflict?)  │   │ (thread)  │   │ (retry once on     │
    └──────────┘   └──────────────┘   └───────────┘   │  token collision)  │
                                                      └────────────────────┘

Errors are raised, never returned; nothing here sends email or retries
storage failures.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception,
    stop_after_attempt,
)

from stratus.config import settings
from stratus.exceptions import (
    ConflictError,
    DuplicateKeyError,
    InvalidCredentialsError,
    InvalidEmailError,
    InvalidOrExpiredTokenError,
    UnverifiedAccountError,
    WeakPasswordError,
)
from stratus.models.user import DEFAULT_PREFERENCES, User
from stratus.repositories.user_repository import UserRepository
from stratus.security.passwords import (
    burn_verify_time_async,
    hash_password_async,
    is_well_formed_hash,
    verify_password_async,
)
from stratus.security.sessions import SessionManager
from stratus.security.tokens import (
    expiry_from_now,
    generate_reset_token,
    generate_verification_token,
    is_expired,
)
from stratus.security.validators import (
    is_valid_email,
    normalize_email,
    password_strength_errors,
)

logger = logging.getLogger(__name__)


def _is_token_collision(exc: BaseException) -> bool:
    return isinstance(exc, DuplicateKeyError) and exc.field in ("verification_token", "reset_token")


# One regeneration after a unique hit on a token column; an email clash
# or a second collision propagates.
_retry_on_token_collision = retry(
    retry=retry_if_exception(_is_token_collision),
    stop=stop_after_attempt(2),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)


@dataclass(frozen=True)
class RegistrationResult:
    user_id: uuid.UUID
    verification_token: str


@dataclass(frozen=True)
class LoginResult:
    token: str
    expires_in: int
    user: User


class AuthService:
    """
    Authentication orchestrator.

    Args:
        users: Storage collaborator (SqlAlchemyUserRepository in production).
        sessions: Session issuer bound to the startup-loaded secret.
        verification_ttl: Lifetime of verification tokens (default 24h).
        reset_ttl: Lifetime of reset tokens (default 60 min).
    """

    def __init__(
        self,
        users: UserRepository,
        sessions: SessionManager,
        verification_ttl: Optional[timedelta] = None,
        reset_ttl: Optional[timedelta] = None,
    ):
        self.users = users
        self.sessions = sessions
        self.verification_ttl = verification_ttl or timedelta(
            hours=settings.verification_token_ttl_hours
        )
        self.reset_ttl = reset_ttl or timedelta(minutes=settings.reset_token_ttl_minutes)

    # ── Registration ──────────────────────────────────────────────────────

    async def register(
        self,
        email: str,
        password: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> RegistrationResult:
        """
        Create a pending_verification account.

        Returns:
            RegistrationResult with the new user id and the 64-hex
            verification token the caller must deliver out of band.

        Raises:
            InvalidEmailError / WeakPasswordError: before storage is touched.
            ConflictError: an account with this email (trimmed, lowercased) exists.
            EncodingError: password cannot be hashed.
        """
        email = email.strip() if isinstance(email, str) else ""
        if not is_valid_email(email):
            raise InvalidEmailError()
        reasons = password_strength_errors(password)
        if reasons:
            raise WeakPasswordError(reasons=reasons)

        email = normalize_email(email)
        if await self.users.find_by_email(email) is not None:
            logger.warning("Registration rejected: email already registered")
            raise ConflictError()

        password_hash = await hash_password_async(password)

        try:
            result = await self._insert_pending_user(
                email=email,
                password_hash=password_hash,
                first_name=first_name or "User",
                last_name=last_name or "User",
            )
        except DuplicateKeyError as e:
            if e.field == "email":
                # Lost a race with a concurrent registration for the same email
                raise ConflictError() from e
            raise

        logger.info("User registered: %s", result.user_id)
        return result

    @_retry_on_token_collision
    async def _insert_pending_user(
        self,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str,
    ) -> RegistrationResult:
        now = datetime.now(timezone.utc)
        token = generate_verification_token()
        user = User(
            id=uuid.uuid4(),
            email=email,
            password_hash=password_hash,
            first_name=first_name,
            last_name=last_name,
            is_verified=False,
            verification_token=token,
            verification_token_expires_at=now + self.verification_ttl,
            reset_token=None,
            reset_token_expires_at=None,
            preferences=dict(DEFAULT_PREFERENCES),
            created_at=now,
            updated_at=now,
        )
        user_id = await self.users.insert(user)
        return RegistrationResult(user_id=user_id, verification_token=token)

    # ── Login ─────────────────────────────────────────────────────────────

    async def login(self, email: str, password: str) -> LoginResult:
        """
        Exchange credentials for a session token.

        Order of checks:
            1. unknown email    → InvalidCredentialsError (after a dummy bcrypt verify)
            2. wrong password   → InvalidCredentialsError
            3. not verified     → UnverifiedAccountError
            4. issue token embedding sub, email, first_name, last_name
        """
        lookup = normalize_email(email) if isinstance(email, str) else ""
        user = await self.users.find_by_email(lookup) if lookup else None

        if user is None:
            await burn_verify_time_async(password)
            logger.warning("Login failed: unknown email")
            raise InvalidCredentialsError()

        if not await verify_password_async(password, user.password_hash):
            if not is_well_formed_hash(user.password_hash):
                logger.error("Stored credential for user %s is malformed", user.id)
            logger.warning("Login failed for user %s: wrong password", user.id)
            raise InvalidCredentialsError()

        if not user.is_verified:
            logger.warning("Login refused for user %s: email not verified", user.id)
            raise UnverifiedAccountError()

        token = self.sessions.issue(
            {
                "sub": str(user.id),
                "email": user.email,
                "first_name": user.first_name,
                "last_name": user.last_name,
            }
        )
        logger.info("User logged in: %s", user.id)
        return LoginResult(token=token, expires_in=self.sessions.expires_in, user=user)

    # ── Email verification ────────────────────────────────────────────────

    async def verify_email(self, token: str) -> None:
        """
        Consume a verification token.

        Raises:
            InvalidOrExpiredTokenError: no record holds this token, or its expiry has passed.
        """
        user = await self.users.find_by_verification_token(token) if token else None
        if user is None or is_expired(user.verification_token_expires_at):
            logger.warning("Email verification failed: invalid or expired token")
            raise InvalidOrExpiredTokenError("Invalid or expired verification code")

        await self.users.update(
            user.id,
            {
                "is_verified": True,
                "verification_token": None,
                "verification_token_expires_at": None,
            },
        )
        logger.info("Email verified for user %s", user.id)

    # ── Password reset ────────────────────────────────────────────────────

    async def request_password_reset(self, email: str) -> Optional[str]:
        """
        Issue a reset token for a registered email.

        Returns:
            The 64-hex reset token, or None when no such account exists.
            The HTTP layer answers identically in both cases.
        """
        lookup = normalize_email(email) if isinstance(email, str) else ""
        user = await self.users.find_by_email(lookup) if is_valid_email(lookup) else None
        if user is None:
            logger.info("Password reset requested for unknown email")
            return None

        token = await self._store_reset_token(user.id)
        logger.info("Password reset token issued for user %s", user.id)
        return token

    @_retry_on_token_collision
    async def _store_reset_token(self, user_id: uuid.UUID) -> str:
        token = generate_reset_token()
        await self.users.update(
            user_id,
            {
                "reset_token": token,
                "reset_token_expires_at": expiry_from_now(self.reset_ttl),
            },
        )
        return token

    async def reset_password(self, token: str, new_password: str) -> None:
        """
        Consume a reset token and replace the credential.

        Raises:
            WeakPasswordError: new password fails the strength policy.
            InvalidOrExpiredTokenError: token unknown or expired.
        """
        reasons = password_strength_errors(new_password)
        if reasons:
            raise WeakPasswordError(reasons=reasons)

        user = await self.users.find_by_reset_token(token) if token else None
        if user is None or is_expired(user.reset_token_expires_at):
            logger.warning("Password reset failed: invalid or expired token")
            raise InvalidOrExpiredTokenError("Invalid or expired reset token")

        password_hash = await hash_password_async(new_password)
        await self.users.update(
            user.id,
            {
                "password_hash": password_hash,
                "reset_token": None,
                "reset_token_expires_at": None,
            },
        )
        logger.info("Password reset for user %s", user.id)
