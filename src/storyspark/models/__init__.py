"""Database models and shared contracts for Story Spark.

SQLAlchemy models for:
- Users and revoked session tokens
- Saved stories

All models use async SQLAlchemy (asyncpg for PostgreSQL, aiosqlite for SQLite).
"""

from .contracts import CamelModel, Story, StoryStats
from .database import (
    Base,
    close_db,
    create_tables,
    get_engine,
    get_session,
    get_session_factory,
    init_db,
)
from .story import StoryRecord
from .user import RevokedToken, User

__all__ = [
    # Database
    "Base",
    "init_db",
    "get_session",
    "get_engine",
    "get_session_factory",
    "create_tables",
    "close_db",
    # User models
    "User",
    "RevokedToken",
    # Story models
    "StoryRecord",
    # Contracts
    "CamelModel",
    "Story",
    "StoryStats",
]
