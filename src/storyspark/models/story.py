"""Server-side story model.

Stories generated by the flows can be saved per user in addition to the
client-side store.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from .database import Base

if TYPE_CHECKING:
    from .user import User


def _utcnow() -> datetime:
    return datetime.now(UTC)


class StoryRecord(Base):
    """A saved story owned by a user."""

    __tablename__ = "stories"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
    )

    theme: Mapped[str] = mapped_column(String(255))
    main_character_name: Mapped[str] = mapped_column(String(255))
    main_character_traits: Mapped[str] = mapped_column(String(500))
    title: Mapped[str] = mapped_column(String(255))
    content: Mapped[str] = mapped_column(Text)

    favorite: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    extended_count: Mapped[int] = mapped_column(Integer, default=0)

    # Data URIs from the illustration flow can be large
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    audio_url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        index=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        onupdate=_utcnow,
    )

    # Relationships
    user: Mapped[User] = relationship("User", back_populates="stories")

    def __repr__(self) -> str:
        return f"<StoryRecord(id={self.id}, title='{self.title}')>"
