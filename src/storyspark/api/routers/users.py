"""User lookup by e-mail with stories and stats."""

import re
from typing import Annotated, Any

from fastapi import APIRouter, Query

from storyspark.api.deps import Auth, CurrentUser, Stories
from storyspark.api.exceptions import BadRequestError, NotFoundError
from storyspark.api.routers.auth import UserResponse
from storyspark.api.routers.stories import story_payload
from storyspark.models.contracts import CamelModel

router = APIRouter()

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class ByEmailRequest(CamelModel):
    email: str | None = None
    include_stories: bool = True
    include_stats: bool = True


async def lookup(
    email: str | None,
    auth: Auth,
    stories: Stories,
    *,
    include_stories: bool = True,
    include_stats: bool = True,
    field_label: str,
) -> dict[str, Any]:
    """Build the by-email payload.

    Raises:
        BadRequestError: If the e-mail is missing or malformed
        NotFoundError: If no user has that e-mail
    """
    if not email:
        raise BadRequestError(f"El {field_label} 'email' es requerido")
    if not EMAIL_RE.match(email):
        raise BadRequestError("El formato del email no es válido")

    user = await auth.get_user_by_email(email)
    if user is None:
        raise NotFoundError("Usuario no encontrado")

    data: dict[str, Any] = {
        "user": UserResponse.from_user(user).model_dump(mode="json", by_alias=True),
    }
    if include_stories:
        records = await stories.list_for_user(user.id)
        data["stories"] = [story_payload(r) for r in records]
    if include_stats:
        data["stats"] = (await stories.stats(user.id)).to_json_dict()
    return {"success": True, "data": data}


@router.get("/by-email")
async def get_user_by_email(
    user: CurrentUser,
    auth: Auth,
    stories: Stories,
    email: Annotated[str | None, Query()] = None,
) -> dict:
    """Find a user by e-mail and return their profile, stories and stats."""
    return await lookup(email, auth, stories, field_label="parámetro")


@router.post("/by-email")
async def post_user_by_email(
    body: ByEmailRequest,
    user: CurrentUser,
    auth: Auth,
    stories: Stories,
) -> dict:
    """Same lookup with the e-mail in the body instead of the query string."""
    return await lookup(
        body.email,
        auth,
        stories,
        include_stories=body.include_stories,
        include_stats=body.include_stats,
        field_label="campo",
    )
