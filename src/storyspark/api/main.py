"""Story Spark application factory.

Builds the FastAPI app: logging, route guard, compression, CORS, routers and
error handlers. The lifespan opens the database and the narration cache.
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from storyspark.api.config.openapi import custom_openapi
from storyspark.api.middleware import RouteGuardMiddleware
from storyspark.core.config import get_settings
from storyspark.models.database import close_db, create_tables, init_db, is_postgres

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Open the database and the narration cache, dispose of the engine on exit."""
    settings = get_settings()
    database_url = settings.async_database_url

    init_db(
        database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    logger.info("Database engine ready (%s)", "postgresql" if is_postgres(database_url) else "sqlite")
    if settings.database_auto_create:
        await create_tables()
        logger.info("Missing tables created")

    Path(settings.audio_cache_dir).mkdir(parents=True, exist_ok=True)

    yield

    await close_db()
    logger.info("Database connections closed")


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application
    """
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Story Spark API",
        description="Cuentos infantiles generados, ampliados, ilustrados y narrados",
        version=settings.app_version,
        docs_url="/api/docs" if not settings.is_production else None,
        redoc_url="/api/redoc" if not settings.is_production else None,
        openapi_url="/api/openapi.json" if not settings.is_production else None,
        lifespan=lifespan,
    )

    # Session check for protected pages and API paths
    app.add_middleware(
        RouteGuardMiddleware,
        protected_paths=settings.protected_paths,
        login_url=settings.login_url,
        cookie_name=settings.session_cookie_name,
    )

    # Add compression for responses > 1KB
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Import and register routers
    from storyspark.api.routers import account, audio, auth, flows, health, stories, users

    app.include_router(health.router, prefix="/api", tags=["health"])
    app.include_router(account.router, prefix="/api", tags=["account"])
    app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
    app.include_router(stories.router, prefix="/api/stories", tags=["stories"])
    app.include_router(users.router, prefix="/api/users", tags=["users"])
    app.include_router(flows.router, prefix="/api/flows", tags=["flows"])
    app.include_router(audio.router, prefix="/api/audio", tags=["audio"])

    # Register exception handlers
    from storyspark.api.exceptions import register_exception_handlers
    register_exception_handlers(app)

    app.openapi = lambda: custom_openapi(app)

    return app


# Application instance for uvicorn
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "storyspark.api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        workers=settings.workers if settings.is_production else 1,
    )
