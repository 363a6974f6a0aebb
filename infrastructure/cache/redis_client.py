"""Async Redis connection helpers.

This client serves the /health check; the rate limiter keeps its own
connection through the limits storage layer. create_redis_client returns
None when Redis is not configured or unreachable, and /health then reports
"degraded" rather than failing.
"""

from typing import Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from shared.logging import get_logger

log = get_logger(__name__)


async def create_redis_client(redis_uri: Optional[str]) -> Optional[aioredis.Redis]:
    """Connect to Redis and return a client, or None when unavailable."""
    if not redis_uri:
        log.warning("redis_not_configured", impact="rate_limits_in_process_memory")
        return None
    try:
        client: aioredis.Redis = aioredis.from_url(redis_uri, decode_responses=True)
        await client.ping()
        log.info("redis_connected", uri=redis_uri.split("@")[-1])  # mask credentials
        return client
    except RedisError as e:
        log.warning(
            "redis_connection_failed", error=str(e), error_type=type(e).__name__
        )
        return None


async def close_redis_client(client: Optional[aioredis.Redis]) -> None:
    if client is not None:
        await client.aclose()
