"""Fixed-window rate limits per client IP, on top of the ``limits`` library.

Counters live in Redis when it is configured and reachable, otherwise in
process memory. The Redis fixed window increments and sets the expiry in one
atomic step, so a counter can never outlive its window.

Storage errors fail open: rate limiting must never take the auth endpoints
down.
"""

from __future__ import annotations

import asyncio
import math
import time
from dataclasses import dataclass
from typing import Optional

from limits import RateLimitItem, RateLimitItemPerHour, RateLimitItemPerMinute
from limits.storage import MemoryStorage, Storage, storage_from_string
from limits.strategies import FixedWindowRateLimiter

from infrastructure.cache.redis_client import SOCKET_TIMEOUT_SECONDS
from shared.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class RateLimit:
    scope: str
    item: RateLimitItem
    message: str = "Too many requests, please try again later."

    @property
    def limit(self) -> int:
        return self.item.amount

    @property
    def window_seconds(self) -> int:
        return self.item.get_expiry()


# Every API route
GENERAL_LIMIT = RateLimit(
    "general",
    RateLimitItemPerMinute(100, 15),
    "Too many requests from this IP, please try again later.",
)
AUTH_LIMIT = RateLimit(
    "auth",
    RateLimitItemPerMinute(5, 15),
    "Too many authentication attempts, please try again later.",
)
VERIFICATION_LIMIT = RateLimit(
    "verification",
    RateLimitItemPerMinute(3),
    "Too many verification attempts, please wait before trying again.",
)
PASSWORD_RESET_LIMIT = RateLimit(
    "password_reset",
    RateLimitItemPerHour(3),
    "Too many password reset attempts, please try again later.",
)


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_after: int  # seconds until the window resets

    def headers(self) -> dict[str, str]:
        """``RateLimit-*`` headers; a rejected request also gets Retry-After."""
        headers = {
            "RateLimit-Limit": str(self.limit),
            "RateLimit-Remaining": str(self.remaining),
            "RateLimit-Reset": str(self.reset_after),
        }
        if not self.allowed:
            headers["Retry-After"] = str(self.reset_after)
        return headers


def build_storage(redis_uri: Optional[str]) -> Storage:
    """Redis-backed storage for *redis_uri*, in-memory storage without one."""
    if not redis_uri:
        return MemoryStorage()
    return storage_from_string(
        redis_uri,
        socket_timeout=SOCKET_TIMEOUT_SECONDS,
        socket_connect_timeout=SOCKET_TIMEOUT_SECONDS,
    )


class RateLimiter:
    def __init__(self, storage: Storage, enabled: bool = True) -> None:
        self._strategy = FixedWindowRateLimiter(storage)
        self.enabled = enabled

    def _hit(self, rule: RateLimit, client_id: str) -> RateLimitResult:
        allowed = self._strategy.hit(rule.item, rule.scope, client_id)
        stats = self._strategy.get_window_stats(rule.item, rule.scope, client_id)
        return RateLimitResult(
            allowed=allowed,
            limit=rule.limit,
            remaining=max(0, stats.remaining),
            reset_after=max(0, math.ceil(stats.reset_time - time.time())),
        )

    async def hit(self, rule: RateLimit, client_id: str) -> Optional[RateLimitResult]:
        """Count one request from *client_id* against *rule*.

        Returns None when limiting is disabled or the storage failed; callers
        let such requests through.
        """
        if not self.enabled:
            return None
        try:
            # storage clients are blocking
            return await asyncio.to_thread(self._hit, rule, client_id)
        except Exception as e:
            log.warning(
                "rate_limit_check_failed",
                scope=rule.scope,
                error=str(e),
                error_type=type(e).__name__,
            )
            return None
