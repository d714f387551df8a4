"""Redis connection for rate limiting and the health check.

Redis only backs rate-limit counters, so a missing or unreachable server is
not fatal: the factory returns None and the limiter keeps its counters in
process memory.
Timeouts are short for the same reason; a slow Redis must not stall logins.
"""

from typing import Optional
from urllib.parse import urlsplit

import redis.asyncio as aioredis

from shared.logging import get_logger

log = get_logger(__name__)

SOCKET_TIMEOUT_SECONDS = 2.0


def redacted_uri(redis_uri: str) -> str:
    """host:port/db part of *redis_uri*, without credentials."""
    parts = urlsplit(redis_uri)
    return f"{parts.hostname or ''}:{parts.port or 6379}{parts.path}"


async def create_redis_client(
    redis_uri: str, timeout: float = SOCKET_TIMEOUT_SECONDS
) -> Optional[aioredis.Redis]:
    """Connect and ping; None when the server cannot be reached."""
    client: aioredis.Redis = aioredis.from_url(
        redis_uri,
        decode_responses=True,
        socket_timeout=timeout,
        socket_connect_timeout=timeout,
    )
    try:
        await client.ping()
    except Exception as e:
        log.warning(
            "redis_connection_failed",
            target=redacted_uri(redis_uri),
            error=str(e),
            error_type=type(e).__name__,
        )
        await client.aclose()
        return None
    log.info("redis_connected", target=redacted_uri(redis_uri))
    return client
