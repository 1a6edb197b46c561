"""Account router: registration, e-mail verification and password recovery.

Every response body carries a user-facing Spanish ``message``.
"""

import logging
import re
import smtplib
from typing import Annotated
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel

from storyspark.api.deps import Auth, get_client_ip
from storyspark.api.middleware.rate_limiting import RateLimiter, get_rate_limiter
from storyspark.core.config import get_settings
from storyspark.models.contracts import CamelModel
from storyspark.services.email import EmailService, get_email_service

logger = logging.getLogger(__name__)

router = APIRouter()

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MAX_EMAIL_LENGTH = 254

RESEND_MESSAGE = "Si el email está registrado, recibirás un nuevo enlace de verificación."
FORGOT_MESSAGE = (
    "Si el email está registrado, recibirás un enlace para restablecer tu contraseña."
)

Mailer = Annotated[EmailService, Depends(get_email_service)]
Limiter = Annotated[RateLimiter, Depends(get_rate_limiter)]


# =============================================================================
# Schemas
# =============================================================================


class RegisterRequest(BaseModel):
    """Registration request. Presence is checked by the handler."""

    email: str | None = None
    password: str | None = None
    name: str | None = None


class EmailRequest(BaseModel):
    email: str | None = None


class ResetPasswordRequest(CamelModel):
    token: str | None = None
    new_password: str | None = None


def message(text: str, status_code: int = 200, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": text, **extra})


# =============================================================================
# Endpoints
# =============================================================================


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    body: RegisterRequest,
    request: Request,
    auth: Auth,
    mailer: Mailer,
    limiter: Limiter,
) -> JSONResponse:
    """Register a new, unverified account and send the verification e-mail."""
    ip = get_client_ip(request)
    allowed, _ = limiter.is_allowed(f"register:ip:{ip}")
    if not allowed:
        logger.warning("Rate limit exceeded for IP: %s", ip)
        return message(
            "Demasiadas solicitudes de registro. Por favor, inténtelo más tarde.",
            status.HTTP_429_TOO_MANY_REQUESTS,
        )

    if body.email:
        allowed, _ = limiter.is_allowed(f"register:email:{body.email.lower()}")
        if not allowed:
            logger.warning("Rate limit exceeded for email: %s", body.email.lower())
            return message(
                "Demasiados intentos de registro fallidos para este email. "
                "Inténtelo más tarde.",
                status.HTTP_429_TOO_MANY_REQUESTS,
            )

    if not body.email or not body.password or not body.name:
        logger.warning("Register attempt with missing credentials")
        return message(
            "Por favor, introduce tu nombre, email y contraseña.",
            status.HTTP_400_BAD_REQUEST,
        )

    if len(body.email) > MAX_EMAIL_LENGTH:
        logger.warning("Register attempt with oversized email")
        return message("El email es demasiado largo.", status.HTTP_400_BAD_REQUEST)

    if not EMAIL_RE.match(body.email):
        logger.warning("Register attempt with invalid email format: %s", body.email)
        return message("El formato del email no es válido.", status.HTTP_400_BAD_REQUEST)

    if await auth.get_user_by_email(body.email) is not None:
        logger.warning("Registration attempt with existing email: %s", body.email)
        return message("Este email ya está registrado.", status.HTTP_409_CONFLICT)

    user, raw_token = await auth.register(body.email, body.password, body.name)

    try:
        await mailer.send_verification_email(user.email, user.name or "Usuario", raw_token)
    except (smtplib.SMTPException, OSError):
        # Registration stands; the user can ask for a new link
        logger.exception("Error sending verification email to %s", user.email)

    return message(
        "¡Cuenta creada exitosamente! Te hemos enviado un email de verificación. "
        "Revisa tu bandeja de entrada y haz clic en el enlace para activar tu cuenta.",
        status.HTTP_201_CREATED,
        requiresVerification=True,
    )


@router.get("/verify-email", response_model=None)
async def verify_email(
    auth: Auth,
    token: Annotated[str | None, Query()] = None,
) -> JSONResponse | RedirectResponse:
    """Consume a verification token and redirect to the landing page."""
    if not token:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"success": False, "message": "Token de verificación requerido."},
        )

    try:
        user = await auth.verify_email(token)
    except Exception:
        logger.exception("Error verifying email")
        query = urlencode(
            {
                "error": "verification_failed",
                "message": "Error interno del servidor al verificar el email.",
            }
        )
        return RedirectResponse(url=f"{get_settings().login_url}?{query}", status_code=307)

    if user is None:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "success": False,
                "message": "Token de verificación inválido o expirado. "
                "Por favor, solicita un nuevo enlace de verificación.",
            },
        )

    query = urlencode(
        {
            "verified": "true",
            "message": "¡Email verificado exitosamente! Ya puedes iniciar sesión.",
        }
    )
    return RedirectResponse(url=f"{get_settings().login_url}?{query}", status_code=307)


@router.post("/verify-email")
async def resend_verification(body: EmailRequest, auth: Auth, mailer: Mailer) -> JSONResponse:
    """Send a fresh verification link."""
    if not body.email:
        return message("Email requerido.", status.HTTP_400_BAD_REQUEST)

    user = await auth.get_user_by_email(body.email)
    if user is None:
        return message(RESEND_MESSAGE)

    if user.is_email_verified:
        return message("Este email ya ha sido verificado.", status.HTTP_400_BAD_REQUEST)

    raw_token = await auth.refresh_verification_token(user)
    await mailer.send_verification_email(user.email, user.name or "Usuario", raw_token)
    logger.info("Verification email resent to: %s", user.email)
    return message(RESEND_MESSAGE)


@router.post("/forgot-password")
async def forgot_password(body: EmailRequest, auth: Auth, mailer: Mailer) -> JSONResponse:
    """Start password recovery. The answer does not reveal whether the e-mail exists."""
    if not body.email:
        return message("El email es requerido.", status.HTTP_400_BAD_REQUEST)

    started = await auth.start_password_reset(body.email)
    if started is not None:
        user, raw_token = started
        try:
            await mailer.send_password_reset_email(user.email, user.name or "Usuario", raw_token)
        except (smtplib.SMTPException, OSError):
            logger.exception("Error sending password reset email to %s", user.email)

    return message(FORGOT_MESSAGE)


@router.post("/reset-password")
async def reset_password(body: ResetPasswordRequest, auth: Auth) -> JSONResponse:
    """Set a new password using the token from the reset e-mail."""
    if not body.token or not body.new_password:
        return message(
            "El token y la nueva contraseña son requeridos.",
            status.HTTP_400_BAD_REQUEST,
        )

    try:
        user = await auth.reset_password(body.token, body.new_password)
    except Exception:
        logger.exception("Error resetting password")
        return message("Error interno del servidor.", status.HTTP_500_INTERNAL_SERVER_ERROR)

    if user is None:
        return message(
            "El token es inválido o ha expirado.",
            status.HTTP_400_BAD_REQUEST,
        )

    return message("Contraseña actualizada correctamente.")
