"""API routers for different endpoint groups.

Routers:
- account: Registration, e-mail verification and password recovery
- audio: Cached narration files
- auth: Login, token revocation and current user
- flows: Story generation, extension, illustration and narration
- health: Health check and monitoring endpoints
- stories: Saved story management
- users: User lookup by e-mail
"""

from .account import router as account_router
from .audio import router as audio_router
from .auth import router as auth_router
from .flows import router as flows_router
from .health import router as health_router
from .stories import router as stories_router
from .users import router as users_router

__all__ = [
    "account_router",
    "audio_router",
    "auth_router",
    "flows_router",
    "health_router",
    "stories_router",
    "users_router",
]
