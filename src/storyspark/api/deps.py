"""FastAPI dependencies for dependency injection.

Provides reusable dependencies for authentication, database sessions,
and other common patterns across endpoints.
"""

from collections.abc import AsyncGenerator
from typing import Annotated, Any

import httpx
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from storyspark.core.config import get_settings
from storyspark.core.security import decode_session_token
from storyspark.models.database import get_session
from storyspark.models.user import User
from storyspark.services.audio_cache import AudioCache
from storyspark.services.auth_service import AuthService
from storyspark.services.story_service import StoryService

from .exceptions import UnauthorizedError

# Security scheme
security = HTTPBearer(auto_error=False)

# Database session dependency
DBSession = Annotated[AsyncSession, Depends(get_session)]


def get_session_token(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> str | None:
    """Read the session token from the bearer header or the session cookie."""
    if credentials is not None:
        return credentials.credentials
    return request.cookies.get(get_settings().session_cookie_name)


async def get_token_payload(
    token: Annotated[str | None, Depends(get_session_token)],
    db: DBSession,
) -> dict[str, Any]:
    """Decode the session token and reject revoked ones.

    Raises:
        UnauthorizedError: If the token is missing, invalid, expired or revoked
    """
    if not token:
        raise UnauthorizedError()

    payload = decode_session_token(token)
    if payload is None:
        raise UnauthorizedError()

    jti = payload.get("jti")
    if jti and await AuthService(db).is_token_revoked(jti):
        raise UnauthorizedError()

    return payload


async def get_current_user(
    payload: Annotated[dict[str, Any], Depends(get_token_payload)],
    db: DBSession,
) -> User:
    """Get the current authenticated user from the session token.

    Raises:
        UnauthorizedError: If the user no longer exists
    """
    user = await AuthService(db).get_user(payload["sub"])
    if user is None:
        raise UnauthorizedError()
    return user


def get_story_service(db: DBSession) -> StoryService:
    return StoryService(db)


def get_auth_service(db: DBSession) -> AuthService:
    return AuthService(db)


def get_audio_cache() -> AudioCache:
    return AudioCache(get_settings().audio_cache_dir)


async def get_http_client() -> AsyncGenerator[httpx.AsyncClient, None]:
    """Outbound HTTP client for third-party APIs, closed after the request."""
    async with httpx.AsyncClient(timeout=60.0) as client:
        yield client


def get_client_ip(request: Request) -> str:
    """Best-effort client address, honouring ``X-Forwarded-For``."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client is not None:
        return request.client.host
    return "unknown"


# Type aliases for dependency injection
TokenPayload = Annotated[dict[str, Any], Depends(get_token_payload)]
CurrentUser = Annotated[User, Depends(get_current_user)]
Stories = Annotated[StoryService, Depends(get_story_service)]
Auth = Annotated[AuthService, Depends(get_auth_service)]
Audio = Annotated[AudioCache, Depends(get_audio_cache)]
HttpClient = Annotated[httpx.AsyncClient, Depends(get_http_client)]
