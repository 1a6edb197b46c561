"""Core utilities and configuration for Story Spark.

This module contains:
- Configuration and settings management
- Security utilities (password hashing, account tokens, session JWTs)
"""
from .config import Settings, get_settings, settings
from .security import (
    create_session_token,
    decode_session_token,
    generate_token,
    hash_password,
    hash_token,
    verify_password,
)

__all__ = [
    # Config
    "settings",
    "Settings",
    "get_settings",
    # Security - Password
    "hash_password",
    "verify_password",
    # Security - Account tokens
    "generate_token",
    "hash_token",
    # Security - JWT
    "create_session_token",
    "decode_session_token",
]
