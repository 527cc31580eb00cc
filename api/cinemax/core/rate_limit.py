"""Per-user sliding window rate limiting for mutating requests.

Two interchangeable backends:
- ``SlidingWindowRateLimiter`` keeps timestamps in process memory.
- ``RedisRateLimiter`` keeps them in a Redis sorted set so several API
  instances share one budget.
"""

import asyncio
import time
from collections import deque
from collections.abc import Callable
from typing import TYPE_CHECKING, Protocol
from uuid import uuid4

import structlog

from cinemax.core.errors import RateLimitError


if TYPE_CHECKING:
    from redis.asyncio import Redis

    from cinemax.config.settings import Settings


logger = structlog.get_logger(__name__)


class RateLimiter(Protocol):
    """Admission control keyed by user id."""

    max_requests: int
    window_seconds: float

    async def hit(self, user_id: str) -> None:
        """Record a request or raise ``RateLimitError``."""
        ...


class SlidingWindowRateLimiter:
    """In-memory sliding window.

    A request is admitted when fewer than ``max_requests`` earlier requests
    from the same user fall inside the trailing ``window_seconds``. Rejected
    requests are not recorded.
    """

    def __init__(
        self,
        max_requests: int = 20,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._requests: dict[str, deque[float]] = {}
        self._lock = asyncio.Lock()
        self._last_sweep = clock()

    async def hit(self, user_id: str) -> None:
        async with self._lock:
            now = self._clock()
            if now - self._last_sweep >= self.window_seconds:
                self._sweep(now)
            timestamps = self._requests.setdefault(user_id, deque())
            while timestamps and now - timestamps[0] >= self.window_seconds:
                timestamps.popleft()

            if len(timestamps) >= self.max_requests:
                retry_after = self.window_seconds - (now - timestamps[0])
                logger.warning(
                    "rate_limit_exceeded",
                    user_id=user_id,
                    limit=self.max_requests,
                    retry_after=round(retry_after, 2),
                )
                raise RateLimitError(retry_after=retry_after)

            timestamps.append(now)

    def _sweep(self, now: float) -> None:
        """Forget users with no request inside the window."""
        stale = [
            user_id
            for user_id, timestamps in self._requests.items()
            if not timestamps or now - timestamps[-1] >= self.window_seconds
        ]
        for user_id in stale:
            del self._requests[user_id]
        self._last_sweep = now
        if stale:
            logger.debug("rate_limit_swept", users=len(stale))

    async def reset(self, user_id: str | None = None) -> None:
        """Forget recorded requests for one user, or for everyone."""
        async with self._lock:
            if user_id is None:
                self._requests.clear()
            else:
                self._requests.pop(user_id, None)


class RedisRateLimiter:
    """Sliding window on a Redis sorted set (score = request time)."""

    KEY_PREFIX = "comments:rate"

    def __init__(
        self,
        redis: "Redis",
        max_requests: int = 20,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.redis = redis
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock

    def _key(self, user_id: str) -> str:
        return f"{self.KEY_PREFIX}:{user_id}"

    async def hit(self, user_id: str) -> None:
        key = self._key(user_id)
        now = self._clock()
        member = f"{now}:{uuid4().hex}"

        pipe = self.redis.pipeline(transaction=True)
        pipe.zremrangebyscore(key, "-inf", now - self.window_seconds)
        pipe.zadd(key, {member: now})
        pipe.zcard(key)
        pipe.expire(key, int(self.window_seconds) + 1)
        results = await pipe.execute()
        count = int(results[2])

        # Over budget: take back the optimistic insert
        if count > self.max_requests:
            await self.redis.zrem(key, member)
            logger.warning(
                "rate_limit_exceeded",
                user_id=user_id,
                limit=self.max_requests,
                backend="redis",
            )
            raise RateLimitError(retry_after=self.window_seconds)


def create_rate_limiter(
    settings: "Settings", redis: "Redis | None" = None
) -> RateLimiter:
    """Build the limiter selected by ``settings.rate_limit_backend``.

    Falls back to the in-memory limiter when the redis backend is selected
    but no client is available.
    """
    if settings.rate_limit_backend == "redis":
        if redis is not None:
            return RedisRateLimiter(
                redis,
                max_requests=settings.rate_limit_max_requests,
                window_seconds=settings.rate_limit_window_seconds,
            )
        logger.warning(
            "rate_limit_backend_fallback",
            requested="redis",
            using="memory",
        )
    return SlidingWindowRateLimiter(
        max_requests=settings.rate_limit_max_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
