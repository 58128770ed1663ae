"""
Stratus Backend: Search History SQLAlchemy Model
=================================================

What:  One row per successful current-weather lookup by a signed-in user.
How:   Snapshot of the reshaped upstream response at lookup time; rows are
       never updated, only listed and deleted.

Query Patterns:
    - Recent searches: WHERE user_id = :uid ORDER BY created_at DESC LIMIT 50
      → idx_search_history_user_created
    - Delete one:      WHERE id = :id AND user_id = :uid
    - Clear all:       WHERE user_id = :uid
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, Float, ForeignKey, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from stratus.database import Base


class SearchHistory(Base):
    """A recorded weather search."""

    __tablename__ = "search_history"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    query: Mapped[str] = mapped_column(String(200), nullable=False)

    location_name: Mapped[str] = mapped_column(String(200), nullable=False)
    country: Mapped[Optional[str]] = mapped_column(String(8), nullable=True)
    lat: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    lon: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    temperature: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    humidity: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    wind_speed: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    icon: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index("idx_search_history_user_created", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<SearchHistory(id={self.id}, user_id={self.user_id}, query='{self.query}')>"
