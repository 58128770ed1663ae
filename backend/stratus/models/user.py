"""
Stratus Backend: User SQLAlchemy Model
=======================================

What:  ORM model representing the `users` table.
How:   Inherits from DeclarativeBase; Alembic reads this for migrations.
Who:   Read and written only through repositories.user_repository.

Table Design:
    - email is stored lowercased and trimmed; the unique index is what
      turns a registration race into DuplicateKeyError("email").
    - verification_token / reset_token are unique and nullable; a NULL
      means "no outstanding token". Each is paired with an expiry column
      that is cleared together with the token.
    - preferences is a small JSON document (temperature_unit, theme,
      notifications) merged, never replaced, by the profile service.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import JSON, Boolean, DateTime, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from stratus.database import Base


DEFAULT_PREFERENCES: Dict[str, Any] = {
    "temperature_unit": "celsius",
    "theme": "system",
    "notifications": True,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """
    A registered account.

    State machine:
        pending_verification (is_verified=False, verification_token set)
            → verified (is_verified=True, verification_token NULL)
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    email: Mapped[str] = mapped_column(
        String(320),
        nullable=False,
        unique=True,
        index=True,
        comment="Lowercased, trimmed email; unique",
    )
    password_hash: Mapped[str] = mapped_column(
        String(72),
        nullable=False,
        comment="bcrypt hash with embedded salt and cost",
    )
    first_name: Mapped[str] = mapped_column(String(50), nullable=False, default="User")
    last_name: Mapped[str] = mapped_column(String(50), nullable=False, default="User")

    is_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    verification_token: Mapped[Optional[str]] = mapped_column(
        String(64), nullable=True, unique=True, index=True
    )
    verification_token_expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    reset_token: Mapped[Optional[str]] = mapped_column(
        String(64), nullable=True, unique=True, index=True
    )
    reset_token_expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    preferences: Mapped[Dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        default=lambda: dict(DEFAULT_PREFERENCES),
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', verified={self.is_verified})>"
