"""Fixed-window request limits on top of the ``limits`` library.

Counters live in Redis when it is configured and in process memory
otherwise. Storage errors fail open: the request is let through and the
error is logged.
"""

from __future__ import annotations

import math
import time
from typing import Optional

from limits import RateLimitItemPerSecond
from limits.aio.strategies import FixedWindowRateLimiter
from limits.errors import StorageError
from limits.storage import storage_from_string

from shared.crypto import hash_token
from shared.logging import get_logger

log = get_logger(__name__)

MEMORY_STORAGE_URI = "async+memory://"


def storage_uri_for(redis_uri: Optional[str]) -> str:
    """Async ``limits`` storage URI for *redis_uri*, or in-memory without one."""
    if not redis_uri:
        return MEMORY_STORAGE_URI
    return f"async+{redis_uri}"


def create_limiter_strategy(redis_uri: Optional[str]) -> FixedWindowRateLimiter:
    """Fixed-window strategy over Redis, or process memory when Redis is absent."""
    if not redis_uri:
        log.warning("rate_limiter_in_memory", reason="redis_not_configured")
    storage = storage_from_string(storage_uri_for(redis_uri), wrap_exceptions=True)
    return FixedWindowRateLimiter(storage)


class RateLimit:
    """One "N per window" limit counted separately for each identifier."""

    def __init__(
        self,
        strategy: FixedWindowRateLimiter,
        *,
        namespace: str,
        max_requests: int,
        window_seconds: int,
    ) -> None:
        self._strategy = strategy
        self._namespace = namespace
        self._item = RateLimitItemPerSecond(max_requests, window_seconds)
        self.max_requests = max_requests
        self.window_seconds = window_seconds

    @staticmethod
    def _key(identifier: str) -> str:
        # identifiers are emails and IPs; keep them out of storage in clear text
        return hash_token(identifier)

    async def hit(self, identifier: str) -> bool:
        """Record one request for *identifier*; False once the window is full."""
        try:
            return await self._strategy.hit(
                self._item, self._namespace, self._key(identifier)
            )
        except StorageError as e:
            log.error(
                "rate_limiter_error",
                namespace=self._namespace,
                error=str(e.storage_error),
                error_type=type(e.storage_error).__name__,
            )
            return True

    async def retry_after(self, identifier: str) -> Optional[int]:
        """Seconds until the current window for *identifier* resets."""
        try:
            stats = await self._strategy.get_window_stats(
                self._item, self._namespace, self._key(identifier)
            )
        except StorageError:
            return None
        seconds = math.ceil(stats.reset_time - time.time())
        return seconds if seconds > 0 else None
