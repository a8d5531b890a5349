"""
Rate Limiting for the portal

``limiter`` (slowapi) guards individual routes by client address. The
login and two-factor challenge throttles are keyed by email and address,
and are cleared on success, so they use ``limits`` directly.
"""

import math
import time

from limits import RateLimitItemPerSecond
from limits.storage import MemoryStorage
from limits.strategies import FixedWindowRateLimiter
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from portal.constants import LOGIN_DECAY_SECONDS, MAX_LOGIN_ATTEMPTS

# Create rate limiter instance
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri="memory://",
    headers_enabled=True,
)


class Throttle:
    """Counts failed attempts per key within a fixed decay window."""

    def __init__(self, max_attempts: int, decay_seconds: int):
        self.item = RateLimitItemPerSecond(max_attempts, decay_seconds)
        self.storage = MemoryStorage()
        self.limiter = FixedWindowRateLimiter(self.storage)

    def too_many_attempts(self, key: str) -> bool:
        return not self.limiter.test(self.item, key)

    def hit(self, key: str) -> None:
        self.limiter.hit(self.item, key)

    def clear(self, key: str) -> None:
        self.limiter.clear(self.item, key)

    def available_in(self, key: str) -> int:
        """Seconds until the window for ``key`` resets."""
        reset_time, _remaining = self.limiter.get_window_stats(self.item, key)
        return max(0, math.ceil(reset_time - time.time()))

    def reset(self) -> None:
        self.storage.reset()


login_throttle = Throttle(MAX_LOGIN_ATTEMPTS, LOGIN_DECAY_SECONDS)


def throttle_key(prefix: str, email: str | None, ip: str | None) -> str:
    return f"{prefix}:{(email or '').lower()}:{ip or ''}"


def configure_rate_limiting(app):
    """Attach the limiter and its 429 handler to the application."""
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
