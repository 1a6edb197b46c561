"""Local cache of generated stories.

The whole collection lives under one storage key as a JSON array of
camelCase story records. Every operation reads the in-memory snapshot,
builds a new list and writes the full collection back.
"""

from __future__ import annotations

import json
import logging
import math
import uuid
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError

from storyspark.models.contracts import Story

from .storage import Storage, StorageQuotaExceeded

logger = logging.getLogger(__name__)

STORY_STORAGE_KEY = "story-spark-stories"
MAX_STORIES = 20
# Share of the collection kept when a write exceeds the storage quota
QUOTA_RETRY_RATIO = 0.7


def _now_iso() -> str:
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _created_ts(story: Story) -> float:
    try:
        return datetime.fromisoformat(story.created_at).timestamp()
    except ValueError:
        return 0.0


def sort_stories(stories: list[Story]) -> list[Story]:
    """Favorites first, then newest ``createdAt`` first. Ties keep their order."""
    return sorted(stories, key=lambda s: (not s.favorite, -_created_ts(s)))


class StoryStore:
    """CRUD over the locally stored stories.

    Args:
        storage: Backend holding the serialized collection
        max_stories: Upper bound on kept stories
        on_quota_exceeded: Called after the collection had to be cleared
            because even a reduced copy did not fit
    """

    def __init__(
        self,
        storage: Storage,
        max_stories: int = MAX_STORIES,
        on_quota_exceeded: Callable[[], None] | None = None,
    ):
        self.storage = storage
        self.max_stories = max_stories
        self.on_quota_exceeded = on_quota_exceeded
        self._stories: list[Story] = self._load()

    def _load(self) -> list[Story]:
        raw = self.storage.get_item(STORY_STORAGE_KEY)
        if not raw:
            return []
        try:
            items = json.loads(raw)
        except json.JSONDecodeError:
            logger.exception("Failed to load stories from storage")
            return []
        if not isinstance(items, list):
            logger.error("Stored stories are not a list, ignoring them")
            return []

        stories = []
        for index, item in enumerate(items):
            try:
                stories.append(Story.model_validate(item))
            except ValidationError as e:
                logger.warning("Skipping invalid stored story at index %d: %s", index, e)

        limited = stories[: self.max_stories]
        if len(stories) > self.max_stories:
            self._write(limited)
        return limited

    @staticmethod
    def _serialize(stories: list[Story]) -> str:
        return json.dumps([s.to_json_dict() for s in stories], ensure_ascii=False)

    def _write(self, stories: list[Story]) -> None:
        self.storage.set_item(STORY_STORAGE_KEY, self._serialize(stories))

    def _save(self, stories: list[Story]) -> None:
        sorted_stories = sort_stories(stories)
        try:
            self._write(sorted_stories)
            self._stories = sorted_stories
            return
        except StorageQuotaExceeded:
            logger.warning("Storage quota exceeded, attempting to reduce stored stories")

        keep = max(1, math.floor(len(sorted_stories) * QUOTA_RETRY_RATIO))
        reduced = sorted_stories[:keep]
        try:
            self._write(reduced)
            self._stories = reduced
            logger.info("Reduced stories from %d to %d", len(sorted_stories), len(reduced))
        except StorageQuotaExceeded:
            logger.error("Failed to save even reduced stories, clearing storage")
            self.storage.remove_item(STORY_STORAGE_KEY)
            self._stories = []
            if self.on_quota_exceeded is not None:
                self.on_quota_exceeded()

    @property
    def stories(self) -> list[Story]:
        return list(self._stories)

    def add_story(self, data: dict[str, Any] | Story) -> Story:
        """Store a new story, assigning its id and creation time.

        Args:
            data: Story fields without ``id`` and ``createdAt``; camelCase or
                snake_case keys are accepted

        Returns:
            The stored record
        """
        fields = data.model_dump() if isinstance(data, Story) else dict(data)
        for key in ("id", "created_at", "createdAt"):
            fields.pop(key, None)
        story = Story.model_validate({**fields, "id": str(uuid.uuid4()), "createdAt": _now_iso()})

        self._save([story, *self._stories][: self.max_stories])
        return story

    def update_story(self, story_id: str, **changes: Any) -> Story | None:
        """Merge ``changes`` (snake_case field names) into the story with ``story_id``.

        Returns:
            The updated record, or None when no story has that id

        Raises:
            ValueError: If a change names an unknown or immutable field, or
                gives a field an invalid value
        """
        rejected = (set(changes) - set(Story.model_fields)) | (set(changes) & {"id", "created_at"})
        if rejected:
            raise ValueError(f"Cannot update story fields: {sorted(rejected)}")
        if self.get_story(story_id) is None:
            return None

        updated: Story | None = None
        new_stories = []
        for story in self._stories:
            if story.id == story_id:
                try:
                    story = Story.model_validate({**story.model_dump(), **changes})
                except ValidationError as e:
                    raise ValueError(f"Invalid story update: {e}") from e
                updated = story
            new_stories.append(story)

        self._save(new_stories)
        return updated

    def remove_story(self, story_id: str) -> None:
        self._save([s for s in self._stories if s.id != story_id])

    def get_story(self, story_id: str) -> Story | None:
        for story in self._stories:
            if story.id == story_id:
                return story
        return None

    def toggle_favorite(self, story_id: str) -> Story | None:
        story = self.get_story(story_id)
        if story is None:
            return None
        return self.update_story(story_id, favorite=not story.favorite)

    def get_favorite_stories(self) -> list[Story]:
        return [s for s in self._stories if s.favorite]

    def clear_all_stories(self) -> None:
        self.storage.remove_item(STORY_STORAGE_KEY)
        self._stories = []

    def get_storage_stats(self) -> dict[str, Any]:
        """Story count, serialized size in KB and the story limit."""
        raw = self.storage.get_item(STORY_STORAGE_KEY) or ""
        return {
            "storyCount": len(self._stories),
            "sizeInKB": round(len(raw.encode("utf-8")) / 1024, 2),
            "maxStories": self.max_stories,
        }

    def export_stories(self) -> str:
        """Pretty-printed JSON backup of every story."""
        return json.dumps(
            [s.to_json_dict() for s in self._stories],
            ensure_ascii=False,
            indent=2,
        )
