"""Sliding-window rate limiting for registration and login.

Attempts are counted per key, e.g. ``register:ip:203.0.113.7`` or
``login:email:ana@example.com``. State is in-process, so each worker keeps
its own counts.
"""
import time
from collections import deque
from collections.abc import Callable

from storyspark.core.config import get_settings


class RateLimiter:
    """In-memory rate limiter using a sliding window.

    Args:
        limit: Attempts allowed per window and key
        window_seconds: Window length
        clock: Time source in seconds, ``time.monotonic`` by default
    """

    def __init__(
        self,
        limit: int = 5,
        window_seconds: int = 60,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.limit = limit
        self.window_seconds = window_seconds
        self.clock = clock
        self._attempts: dict[str, deque[float]] = {}

    def _recent(self, key: str, now: float) -> deque[float]:
        attempts = self._attempts.setdefault(key, deque())
        while attempts and attempts[0] <= now - self.window_seconds:
            attempts.popleft()
        return attempts

    def is_allowed(self, key: str) -> tuple[bool, int]:
        """Record an attempt for ``key`` unless the window is full.

        Returns:
            Tuple of (is_allowed, seconds until the oldest attempt leaves the window)
        """
        now = self.clock()
        attempts = self._recent(key, now)

        if len(attempts) >= self.limit:
            retry_after = int(attempts[0] + self.window_seconds - now) + 1
            return False, max(1, retry_after)

        attempts.append(now)
        return True, 0

    def remaining(self, key: str) -> int:
        """Attempts left for ``key`` in the current window."""
        return max(0, self.limit - len(self._recent(key, self.clock())))

    def reset(self) -> None:
        self._attempts.clear()


_settings = get_settings()

# Shared by the account and auth routers
rate_limiter = RateLimiter(
    limit=_settings.rate_limit_requests,
    window_seconds=_settings.rate_limit_window_seconds,
)


def get_rate_limiter() -> RateLimiter:
    """Get the global rate limiter instance."""
    return rate_limiter
