"""Fixed-window request limits per user."""
import logging
import time
from typing import Callable, Dict, Optional, Tuple

import redis.asyncio as redis

from app.config import Settings

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Allows `max_requests` per user in each window of `window_seconds`.

    Counters live in Redis when a client is given so every worker shares
    them. Without Redis, or while Redis is failing, counts are kept in
    process.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: int,
        client: Optional[redis.Redis] = None,
        prefix: str = "rate_limit",
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.client = client
        self.prefix = prefix
        self.clock = clock
        self._windows: Dict[str, Tuple[int, float]] = {}

    @classmethod
    def from_settings(cls, settings: Settings, client: Optional[redis.Redis] = None) -> "RateLimiter":
        return cls(
            settings.preview_rate_limit_requests,
            settings.preview_rate_limit_window_seconds,
            client=client,
            prefix="rate_limit:place_preview",
        )

    async def allow(self, user_id: str) -> bool:
        """Count one request for `user_id`; False once the window's budget is spent."""
        if self.client is not None:
            key = f"{self.prefix}:{user_id}"
            try:
                count = await self.client.incr(key)
                if count == 1:
                    await self.client.expire(key, self.window_seconds)
                return count <= self.max_requests
            except redis.RedisError as e:
                logger.warning(f"Redis rate limit error, counting in process: {e}")

        now = self.clock()
        count, reset_at = self._windows.get(user_id, (0, 0.0))
        if now >= reset_at:
            count, reset_at = 0, now + self.window_seconds
        if count >= self.max_requests:
            return False
        self._windows[user_id] = (count + 1, reset_at)
        return True
