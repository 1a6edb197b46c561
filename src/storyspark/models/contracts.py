"""Data contracts shared by the API, the flows and the client store.

All contracts serialize with camelCase keys, the shape stored under the
``story-spark-stories`` key and exchanged with the web client.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase JSON keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_json_dict(self) -> dict:
        """Dump with camelCase keys, dropping unset optional fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Story(CamelModel):
    """A generated story as kept by the client store."""

    id: str
    theme: str
    main_character_name: str
    main_character_traits: str
    title: str
    content: str
    created_at: str
    image_url: str | None = None
    favorite: bool | None = None
    extended_count: int | None = None
    is_generating_speech: bool | None = None
    audio_src: str | None = None


class StoryStats(CamelModel):
    """Per-user story counters."""

    total_stories: int
    favorite_stories: int
