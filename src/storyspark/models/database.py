"""Async database engine and sessions.

PostgreSQL (asyncpg) when deployed, SQLite (aiosqlite) for local runs and
tests. Schema changes go through the Alembic versions; ``create_tables`` is
only for throwaway databases.
"""

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def is_postgres(database_url: str) -> bool:
    return database_url.startswith("postgresql")


def init_db(
    database_url: str,
    pool_size: int | None = None,
    max_overflow: int | None = None,
    **engine_kwargs: Any,
) -> None:
    """Create the engine and session factory.

    Args:
        database_url: ``postgresql+asyncpg://...`` or ``sqlite+aiosqlite://...``
        pool_size: Connection pool size, PostgreSQL only
        max_overflow: Connections allowed above ``pool_size``, PostgreSQL only
        **engine_kwargs: Passed through to ``create_async_engine``
    """
    global _engine, _session_factory

    if is_postgres(database_url):
        engine_kwargs.setdefault("pool_pre_ping", True)
        if pool_size is not None:
            engine_kwargs["pool_size"] = pool_size
        if max_overflow is not None:
            engine_kwargs["max_overflow"] = max_overflow

    _engine = create_async_engine(database_url, **engine_kwargs)
    _session_factory = async_sessionmaker(
        _engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


def get_engine() -> AsyncEngine:
    """Get the database engine.

    Raises:
        RuntimeError: If database not initialized.
    """
    if _engine is None:
        raise RuntimeError("Database not initialized. Call init_db first.")
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory for work outside a request, such as scripts and tests.

    Raises:
        RuntimeError: If database not initialized.
    """
    if _session_factory is None:
        raise RuntimeError("Database not initialized. Call init_db first.")
    return _session_factory


async def create_tables() -> None:
    """Create every table that does not exist yet."""
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session dependency.

    Commits when the request handler returns normally and rolls back when it
    raises. Services also commit explicitly after each change.
    """
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def close_db() -> None:
    """Dispose of the engine. Called on application shutdown."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None
