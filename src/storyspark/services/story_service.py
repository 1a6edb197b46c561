"""Saved story service.

Provides per-user story persistence:
- CRUD scoped to the owning user
- Text search over title, content, theme and character name
- Favorite counters
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from storyspark.models.contracts import StoryStats
from storyspark.models.story import StoryRecord

logger = logging.getLogger(__name__)

# Fields a client may change through an update
UPDATABLE_FIELDS = (
    "theme",
    "main_character_name",
    "main_character_traits",
    "title",
    "content",
    "favorite",
    "extended_count",
    "image_url",
    "audio_url",
)


def escape_like(value: str) -> str:
    """Make ``%`` and ``_`` literal in a LIKE pattern escaped with a backslash."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class StoryService:
    """Service for a user's saved stories."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(
        self,
        user_id: str,
        *,
        theme: str,
        main_character_name: str,
        main_character_traits: str,
        title: str,
        content: str,
        image_url: str | None = None,
        favorite: bool = False,
        extended_count: int = 0,
    ) -> StoryRecord:
        record = StoryRecord(
            user_id=user_id,
            theme=theme,
            main_character_name=main_character_name,
            main_character_traits=main_character_traits,
            title=title,
            content=content,
            image_url=image_url,
            favorite=favorite,
            extended_count=extended_count,
        )
        self.db.add(record)
        await self.db.commit()
        logger.info("Saved story %s for user %s", record.id, user_id)
        return record

    async def get_by_id(self, user_id: str, story_id: str) -> StoryRecord | None:
        """Fetch a story only if ``user_id`` owns it."""
        result = await self.db.execute(
            select(StoryRecord).where(
                StoryRecord.id == story_id,
                StoryRecord.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def list_for_user(self, user_id: str, search: str | None = None) -> list[StoryRecord]:
        """List a user's stories, newest first.

        Args:
            user_id: Owner ID
            search: Optional case-insensitive substring matched against
                title, content, theme and main character name
        """
        query = select(StoryRecord).where(StoryRecord.user_id == user_id)
        if search:
            pattern = f"%{escape_like(search)}%"
            query = query.where(
                or_(
                    StoryRecord.title.ilike(pattern, escape="\\"),
                    StoryRecord.content.ilike(pattern, escape="\\"),
                    StoryRecord.theme.ilike(pattern, escape="\\"),
                    StoryRecord.main_character_name.ilike(pattern, escape="\\"),
                )
            )
        query = query.order_by(StoryRecord.created_at.desc())
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def update(self, record: StoryRecord, changes: dict[str, Any]) -> StoryRecord:
        """Merge ``changes`` into ``record``.

        Changing the content counts as an extension unless the caller sets
        ``extended_count`` itself, and drops the narration of the old text.
        """
        content_changed = "content" in changes and changes["content"] != record.content

        for key, value in changes.items():
            if key in UPDATABLE_FIELDS:
                setattr(record, key, value)

        if content_changed:
            if "extended_count" not in changes:
                record.extended_count = (record.extended_count or 0) + 1
            record.audio_url = None

        await self.db.commit()
        logger.info("Updated story %s", record.id)
        return record

    async def delete(self, record: StoryRecord) -> None:
        await self.db.delete(record)
        await self.db.commit()
        logger.info("Deleted story %s", record.id)

    async def delete_all(self, user_id: str) -> int:
        """Delete every story of a user. Returns the number removed."""
        result = await self.db.execute(
            delete(StoryRecord).where(StoryRecord.user_id == user_id)
        )
        await self.db.commit()
        logger.info("Deleted %d stories for user %s", result.rowcount, user_id)
        return result.rowcount

    async def stats(self, user_id: str) -> StoryStats:
        total = await self.db.execute(
            select(func.count(StoryRecord.id)).where(StoryRecord.user_id == user_id)
        )
        favorites = await self.db.execute(
            select(func.count(StoryRecord.id)).where(
                StoryRecord.user_id == user_id,
                StoryRecord.favorite.is_(True),
            )
        )
        return StoryStats(
            total_stories=total.scalar_one(),
            favorite_stories=favorites.scalar_one(),
        )
