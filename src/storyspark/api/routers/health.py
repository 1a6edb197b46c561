"""Liveness, readiness and dependency health.

None of these paths sit under a protected prefix, so probes need no session.
"""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from storyspark.core.config import get_settings
from storyspark.models.database import get_engine

logger = logging.getLogger(__name__)

router = APIRouter()


class HealthResponse(BaseModel):
    status: str
    version: str
    database: str
    story_model: str
    narration: str
    email: str


async def database_status() -> str:
    """Run ``SELECT 1`` and describe the outcome."""
    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
    except RuntimeError:
        return "not initialized"
    except SQLAlchemyError as e:
        logger.warning("Database health check failed: %s", e)
        return "error"
    return "healthy"


def _key_status(present: bool) -> str:
    return "configured" if present else "missing key"


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Database connectivity plus which external providers have credentials.

    Missing provider keys do not degrade the status; only the database does.
    """
    settings = get_settings()
    database = await database_status()

    return HealthResponse(
        status="healthy" if database == "healthy" else "degraded",
        version=settings.app_version,
        database=database,
        story_model=_key_status(settings.has_google_key()),
        narration=_key_status(settings.has_elevenlabs_key()),
        email="configured" if settings.has_smtp_credentials() else "disabled",
    )


@router.get("/ready")
async def readiness_check() -> JSONResponse:
    """Ready once the database answers."""
    if await database_status() != "healthy":
        return JSONResponse(status_code=503, content={"ready": False})
    return JSONResponse(content={"ready": True})


@router.get("/live")
async def liveness_check() -> dict:
    return {"alive": True}
