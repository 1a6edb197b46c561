"""FastAPI middleware for request processing.

Middleware components:
- Route guard
- Rate limiting
"""

from .rate_limiting import RateLimiter, get_rate_limiter, rate_limiter
from .route_guard import RouteGuardMiddleware, is_protected

__all__ = [
    "RouteGuardMiddleware",
    "is_protected",
    "RateLimiter",
    "get_rate_limiter",
    "rate_limiter",
]
