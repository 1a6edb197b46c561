"""Route guard for pages and API paths that need a signed-in user.

Only the session token signature and expiry are checked here. Revocation is
checked by the ``get_current_user`` dependency, which has a database session.
"""

import logging
from typing import Callable
from urllib.parse import urlencode

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse, RedirectResponse

from storyspark.core.security import decode_session_token

logger = logging.getLogger(__name__)

ALWAYS_PUBLIC = ("/site.webmanifest",)


def is_protected(path: str, prefixes: list[str]) -> bool:
    """Segment-aware prefix match: ``/stories`` covers ``/stories/1`` but not ``/storiesx``."""
    if path in ALWAYS_PUBLIC:
        return False
    for prefix in prefixes:
        prefix = prefix.rstrip("/")
        if path == prefix or path.startswith(prefix + "/"):
            return True
    return False


def is_api_path(path: str) -> bool:
    return path == "/api" or path.startswith("/api/")


class RouteGuardMiddleware(BaseHTTPMiddleware):
    """Reject or redirect unauthenticated requests to protected paths."""

    def __init__(
        self,
        app: Callable,
        protected_paths: list[str],
        login_url: str = "/",
        cookie_name: str = "storyspark.session-token",
    ):
        """Initialize middleware.

        Args:
            app: FastAPI application
            protected_paths: Path prefixes that require a session
            login_url: Where page requests are redirected
            cookie_name: Session cookie name
        """
        super().__init__(app)
        self.protected_paths = protected_paths
        self.login_url = login_url
        self.cookie_name = cookie_name

    def _session_token(self, request: Request) -> str | None:
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            return auth_header[len("Bearer "):].strip()
        return request.cookies.get(self.cookie_name)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request with the session check."""
        path = request.url.path
        if not is_protected(path, self.protected_paths):
            return await call_next(request)

        token = self._session_token(request)
        if token and decode_session_token(token) is not None:
            return await call_next(request)

        logger.info("Unauthenticated request to %s", path)
        if is_api_path(path):
            return JSONResponse(
                status_code=401,
                content={"error": "No autorizado", "success": False},
            )

        callback = path
        if request.url.query:
            callback = f"{path}?{request.url.query}"
        return RedirectResponse(
            url=f"{self.login_url}?{urlencode({'callbackUrl': callback})}",
            status_code=307,
        )
