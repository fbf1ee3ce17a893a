"""
Sliding-window rate limiting. One policy for every entry point.

Each key keeps the timestamps of its accepted requests inside the window.
A request is accepted while fewer than `limit` timestamps remain, so bursts
across a window boundary cannot exceed the nominal rate.

Backends:
  - Redis sorted set per key (FF_USE_REDIS=true), shared across workers
  - In-process deque per key otherwise
"""

import logging
import time
import uuid
from collections import deque
from dataclasses import dataclass
from typing import Optional

from .config import get_settings
from .flags import get_flags
from .redis import get_redis

logger = logging.getLogger(__name__)


@dataclass
class RateLimitResult:
    allowed: bool
    remaining: int
    retry_after: int = 0  # seconds until the oldest hit leaves the window


class SlidingWindowLimiter:
    """In-process sliding window log."""

    SWEEP_EVERY = 1000  # hits between sweeps of idle keys

    def __init__(self, limit: int, window_seconds: float):
        self.limit = limit
        self.window = window_seconds
        self._hits: dict[str, deque] = {}
        self._calls = 0

    def _prune(self, hits: deque, now: float) -> None:
        cutoff = now - self.window
        while hits and hits[0] <= cutoff:
            hits.popleft()

    def hit(self, key: str, now: Optional[float] = None) -> RateLimitResult:
        now = time.monotonic() if now is None else now
        self._calls += 1
        if self._calls % self.SWEEP_EVERY == 0:
            self.sweep(now)

        hits = self._hits.setdefault(key, deque())
        self._prune(hits, now)

        if len(hits) >= self.limit:
            retry_after = max(1, int(hits[0] + self.window - now + 0.999))
            return RateLimitResult(allowed=False, remaining=0, retry_after=retry_after)

        hits.append(now)
        return RateLimitResult(allowed=True, remaining=self.limit - len(hits))

    def sweep(self, now: Optional[float] = None) -> int:
        """Drop keys with no hits left in the window. Returns how many went."""
        now = time.monotonic() if now is None else now
        idle = []
        for key, hits in self._hits.items():
            self._prune(hits, now)
            if not hits:
                idle.append(key)
        for key in idle:
            del self._hits[key]
        if idle:
            logger.debug("Rate limiter dropped %d idle keys", len(idle))
        return len(idle)

    def reset(self) -> None:
        self._hits.clear()
        self._calls = 0


async def _redis_hit(key: str, limit: int, window: float) -> RateLimitResult:
    client = await get_redis()
    now = time.time()
    redis_key = f"ratelimit:{key}"

    async with client.pipeline(transaction=True) as pipe:
        pipe.zremrangebyscore(redis_key, 0, now - window)
        pipe.zcard(redis_key)
        pipe.zrange(redis_key, 0, 0, withscores=True)
        _, count, oldest = await pipe.execute()

    if count >= limit:
        oldest_ts = oldest[0][1] if oldest else now
        retry_after = max(1, int(oldest_ts + window - now + 0.999))
        return RateLimitResult(allowed=False, remaining=0, retry_after=retry_after)

    async with client.pipeline(transaction=True) as pipe:
        pipe.zadd(redis_key, {f"{now}:{uuid.uuid4().hex[:8]}": now})
        pipe.expire(redis_key, int(window) + 1)
        await pipe.execute()
    return RateLimitResult(allowed=True, remaining=limit - count - 1)


_local: Optional[SlidingWindowLimiter] = None


def _get_local() -> SlidingWindowLimiter:
    global _local
    if _local is None:
        settings = get_settings()
        _local = SlidingWindowLimiter(
            settings.rate_limit_requests, settings.rate_limit_window_seconds,
        )
    return _local


async def check_rate_limit(key: str) -> RateLimitResult:
    """Record a request for `key` and say whether it may proceed."""
    flags = get_flags()
    if not flags.use_rate_limit:
        return RateLimitResult(allowed=True, remaining=-1)

    if flags.use_redis:
        settings = get_settings()
        try:
            return await _redis_hit(
                key, settings.rate_limit_requests, settings.rate_limit_window_seconds,
            )
        except Exception as e:
            logger.warning("Redis rate limit failed for %s, using local window: %s", key, e)

    return _get_local().hit(key)
