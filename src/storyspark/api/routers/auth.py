"""Authentication router for login, logout and the current user.

Sessions are HS256 JWTs carrying ``sub``, ``jti``, ``exp`` and ``iat``. The
token is returned in the body and set as an HttpOnly cookie. Logging out
stores the ``jti`` in ``revoked_tokens``.
"""

import logging
from datetime import UTC, datetime, timedelta
from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel

from storyspark.api.deps import Auth, CurrentUser, TokenPayload, get_client_ip
from storyspark.api.exceptions import (
    BadRequestError,
    ForbiddenError,
    RateLimitError,
    UnauthorizedError,
)
from storyspark.api.middleware.rate_limiting import RateLimiter, get_rate_limiter
from storyspark.core.config import get_settings
from storyspark.core.security import create_session_token
from storyspark.models.contracts import CamelModel
from storyspark.models.user import User
from storyspark.services.auth_service import EMAIL_NOT_VERIFIED

logger = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# Schemas
# =============================================================================


class LoginRequest(BaseModel):
    """User login request."""

    email: str | None = None
    password: str | None = None


class UserResponse(CamelModel):
    """Public user profile, without credentials or tokens."""

    id: str
    email: str
    name: str | None
    is_email_verified: bool
    email_verified_at: datetime | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            email=user.email,
            name=user.name,
            is_email_verified=user.is_email_verified,
            email_verified_at=user.email_verified_at,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class LoginResponse(CamelModel):
    """Session token response."""

    success: bool = True
    token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse


class SuccessResponse(BaseModel):
    success: bool = True


# =============================================================================
# Endpoints
# =============================================================================


@router.post("/login", response_model=LoginResponse)
async def login(
    body: LoginRequest,
    request: Request,
    response: Response,
    auth: Auth,
    limiter: Annotated[RateLimiter, Depends(get_rate_limiter)],
) -> LoginResponse:
    """Login with email and password.

    Raises:
        BadRequestError: If a field is missing
        RateLimitError: After too many attempts from the IP or for the e-mail
        UnauthorizedError: If credentials are invalid
        ForbiddenError: If the e-mail has not been verified
    """
    settings = get_settings()

    if not body.email or not body.password:
        raise BadRequestError("Por favor, introduce tu email y contraseña.")

    for key in (f"login:ip:{get_client_ip(request)}", f"login:email:{body.email.lower()}"):
        allowed, retry_after = limiter.is_allowed(key)
        if not allowed:
            logger.warning("Rate limit exceeded for %s", key)
            raise RateLimitError(retry_after=retry_after)

    user, error = await auth.authenticate(body.email, body.password)
    if user is None:
        if error == EMAIL_NOT_VERIFIED:
            raise ForbiddenError(
                "Por favor, verifica tu email antes de iniciar sesión. "
                "Revisa tu bandeja de entrada."
            )
        raise UnauthorizedError("Email o contraseña incorrectos.")

    max_age = timedelta(days=settings.session_max_age_days)
    token = create_session_token(user.id, expires_delta=max_age)
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=int(max_age.total_seconds()),
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        path="/",
    )

    return LoginResponse(
        token=token,
        expires_in=int(max_age.total_seconds()),
        user=UserResponse.from_user(user),
    )


@router.post("/revoke-token", response_model=SuccessResponse)
async def revoke_token(
    payload: TokenPayload,
    request: Request,
    response: Response,
    auth: Auth,
) -> SuccessResponse:
    """Revoke the current session token and clear the cookie.

    Raises:
        BadRequestError: If the token has no ``jti`` or ``exp`` claim
    """
    jti = payload.get("jti")
    exp = payload.get("exp")
    if not isinstance(jti, str) or not isinstance(exp, (int, float)):
        raise BadRequestError("Token inválido o no proporcionado.")

    await auth.revoke_token(
        jti,
        expires_at=datetime.fromtimestamp(exp, tz=UTC),
        user_id=payload["sub"],
        ip=get_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    response.delete_cookie(get_settings().session_cookie_name, path="/")
    return SuccessResponse()


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(user: CurrentUser) -> UserResponse:
    """Get current authenticated user info."""
    return UserResponse.from_user(user)
