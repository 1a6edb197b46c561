"""Backend services for Story Spark.

Infrastructure-level services used by the API routers:
- auth_service: registration, login, verification, password reset, revocation
- story_service: per-user saved stories
- email: verification and reset e-mails over SMTP
- audio_cache: on-disk narration cache

Usage:
    from storyspark.services import StoryService

    # In FastAPI endpoint
    service = StoryService(db)
    stories = await service.list_for_user(user.id, search="dragón")
"""

from .audio_cache import AudioCache, hash_text
from .auth_service import EMAIL_NOT_VERIFIED, INVALID_CREDENTIALS, AuthService
from .email import EmailService, get_email_service
from .story_service import StoryService

__all__ = [
    # Auth Service
    "AuthService",
    "INVALID_CREDENTIALS",
    "EMAIL_NOT_VERIFIED",
    # Story Service
    "StoryService",
    # Email
    "EmailService",
    "get_email_service",
    # Audio cache
    "AudioCache",
    "hash_text",
]
