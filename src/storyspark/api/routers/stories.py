"""Stories router for a signed-in user's saved stories.

All endpoints are scoped to the current user; another user's story answers 404.
"""

from datetime import datetime
from typing import Annotated, Any

from fastapi import APIRouter, Query, status
from pydantic import ConfigDict, Field

from storyspark.api.deps import CurrentUser, Stories
from storyspark.api.exceptions import NotFoundError
from storyspark.models.contracts import CamelModel, StoryStats
from storyspark.models.story import StoryRecord

router = APIRouter()

STORY_NOT_FOUND = "Cuento no encontrado"
NULLABLE_FIELDS = ("image_url", "audio_url")


# =============================================================================
# Schemas
# =============================================================================


class StoryCreateRequest(CamelModel):
    """Request to save a new story."""

    theme: str = Field(..., min_length=1)
    main_character_name: str = Field(..., min_length=1)
    main_character_traits: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    image_url: str | None = None


class StoryUpdateRequest(CamelModel):
    """Partial update. Only the fields present in the body are applied."""

    theme: str | None = Field(default=None, min_length=1)
    main_character_name: str | None = Field(default=None, min_length=1)
    main_character_traits: str | None = Field(default=None, min_length=1)
    title: str | None = Field(default=None, min_length=1)
    content: str | None = Field(default=None, min_length=1)
    image_url: str | None = None
    audio_url: str | None = None
    extended_count: int | None = Field(default=None, ge=0)
    favorite: bool | None = None


class StoryResponse(CamelModel):
    """Saved story information response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    theme: str
    main_character_name: str
    main_character_traits: str
    title: str
    content: str
    favorite: bool
    extended_count: int
    image_url: str | None
    audio_url: str | None
    created_at: datetime
    updated_at: datetime


def story_payload(record: StoryRecord) -> dict[str, Any]:
    return StoryResponse.model_validate(record).model_dump(mode="json", by_alias=True)


# =============================================================================
# Endpoints
# =============================================================================


@router.get("")
async def list_stories(
    user: CurrentUser,
    stories: Stories,
    search: Annotated[str | None, Query()] = None,
    include_stats: Annotated[bool, Query(alias="includeStats")] = False,
) -> dict:
    """List the user's stories, newest first, optionally filtered by ``search``."""
    records = await stories.list_for_user(user.id, search=search.strip() if search else None)
    data: dict[str, Any] = {"stories": [story_payload(r) for r in records]}
    if include_stats:
        data["stats"] = (await stories.stats(user.id)).to_json_dict()
    return {"success": True, "data": data}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_story(body: StoryCreateRequest, user: CurrentUser, stories: Stories) -> dict:
    """Save a story for the current user."""
    record = await stories.create(
        user.id,
        theme=body.theme,
        main_character_name=body.main_character_name,
        main_character_traits=body.main_character_traits,
        title=body.title,
        content=body.content,
        image_url=body.image_url,
    )
    return {"success": True, "data": {"story": story_payload(record)}}


@router.delete("")
async def delete_all_stories(user: CurrentUser, stories: Stories) -> dict:
    """Delete every story of the current user."""
    deleted = await stories.delete_all(user.id)
    return {
        "success": True,
        "message": "Todos los cuentos han sido eliminados",
        "deleted": deleted,
    }


@router.get("/stats")
async def story_stats(user: CurrentUser, stories: Stories) -> dict:
    stats: StoryStats = await stories.stats(user.id)
    return {"success": True, "data": stats.to_json_dict()}


@router.get("/{story_id}")
async def get_story(story_id: str, user: CurrentUser, stories: Stories) -> dict:
    """Get one of the user's stories.

    Raises:
        NotFoundError: If the story does not exist or belongs to someone else
    """
    record = await stories.get_by_id(user.id, story_id)
    if record is None:
        raise NotFoundError(STORY_NOT_FOUND)
    return {"success": True, "data": {"story": story_payload(record)}}


@router.put("/{story_id}")
async def update_story(
    story_id: str,
    body: StoryUpdateRequest,
    user: CurrentUser,
    stories: Stories,
) -> dict:
    """Merge the given fields into one of the user's stories.

    Raises:
        NotFoundError: If the story does not exist or belongs to someone else
    """
    record = await stories.get_by_id(user.id, story_id)
    if record is None:
        raise NotFoundError(STORY_NOT_FOUND)

    changes = body.model_dump(exclude_unset=True)
    for key, value in list(changes.items()):
        if key in NULLABLE_FIELDS:
            # An empty string clears an optional URL
            if value == "":
                changes[key] = None
        elif value is None:
            del changes[key]

    record = await stories.update(record, changes)
    return {"success": True, "data": {"story": story_payload(record)}}


@router.delete("/{story_id}")
async def delete_story(story_id: str, user: CurrentUser, stories: Stories) -> dict:
    """Delete one of the user's stories.

    Raises:
        NotFoundError: If the story does not exist or belongs to someone else
    """
    record = await stories.get_by_id(user.id, story_id)
    if record is None:
        raise NotFoundError(STORY_NOT_FOUND)
    await stories.delete(record)
    return {"success": True, "message": "Cuento eliminado correctamente"}
