"""FastAPI application and REST API endpoints.

This module contains:
- Main FastAPI application configuration
- Route guard and rate limiting
- Account, session and saved story endpoints
- Generative flow and narration endpoints
"""
