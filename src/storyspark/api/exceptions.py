"""Exception handlers for Story Spark API.

Every error body has the shape ``{"success": false, "error": ..., "details": ...}``.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from storyspark.flows.base import FlowError

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Base API error."""

    def __init__(
        self,
        message: str,
        status_code: int = 400,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class BadRequestError(APIError):
    """Malformed or invalid request."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, status_code=400, details=details)


class NotFoundError(APIError):
    """Resource not found."""

    def __init__(self, message: str = "Recurso no encontrado"):
        super().__init__(message, status_code=404)


class UnauthorizedError(APIError):
    """Authentication required."""

    def __init__(self, message: str = "No autorizado"):
        super().__init__(message, status_code=401)


class ForbiddenError(APIError):
    """Access denied."""

    def __init__(self, message: str = "Acceso denegado"):
        super().__init__(message, status_code=403)


class ConflictError(APIError):
    """Resource conflict."""

    def __init__(self, message: str):
        super().__init__(message, status_code=409)


class RateLimitError(APIError):
    """Rate limit exceeded."""

    def __init__(self, retry_after: int = 60):
        super().__init__(
            "Demasiados intentos. Por favor, espera un momento e inténtalo de nuevo.",
            status_code=429,
            details={"retry_after": retry_after},
        )


def error_body(message: str, details: Any = None) -> dict[str, Any]:
    body: dict[str, Any] = {"success": False, "error": message}
    if details:
        body["details"] = details
    return body


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    """Handle APIError exceptions."""
    headers = None
    if isinstance(exc, RateLimitError):
        headers = {"Retry-After": str(exc.details["retry_after"])}
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.message, exc.details),
        headers=headers,
    )


async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle malformed request bodies and parameters."""
    return JSONResponse(
        status_code=400,
        content=error_body(
            "Datos inválidos",
            [
                {"field": ".".join(str(p) for p in err["loc"][1:]), "message": err["msg"]}
                for err in exc.errors()
            ],
        ),
    )


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """Handle Pydantic validation errors raised inside handlers."""
    return JSONResponse(
        status_code=400,
        content=error_body(
            "Datos inválidos",
            [
                {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
                for err in exc.errors()
            ],
        ),
    )


async def flow_error_handler(request: Request, exc: FlowError) -> JSONResponse:
    """Handle failures of the generative flows."""
    logger.error("Flow %s failed: %s", exc.flow, exc.message)
    return JSONResponse(status_code=502, content=error_body(exc.message))


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.exception("Unexpected error", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content=error_body("Error interno del servidor"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers."""
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(FlowError, flow_error_handler)
    app.add_exception_handler(Exception, generic_error_handler)
