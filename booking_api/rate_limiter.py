"""
Fixed-window rate limiting for public form endpoints
In-memory per process, or shared through Redis when REDIS_URL is set
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Optional

import redis

from .config import CONTACT_RATE_LIMIT, CONTACT_RATE_WINDOW_SECONDS, REDIS_URL
from .errors import RateLimitExceeded, UpstreamUnavailable

logger = logging.getLogger(__name__)

CLEANUP_INTERVAL_SECONDS = 60


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    count: int
    retry_after: int  # seconds until the window resets


class FixedWindowRateLimiter:
    """
    Counts hits per key in windows that start at the key's first hit.

    The window resets once window_seconds of wall-clock time have passed.
    """

    def __init__(
        self,
        limit: int,
        window_seconds: int,
        clock: Callable[[], float] = time.time,
    ):
        self.limit = limit
        self.window_seconds = window_seconds
        self.clock = clock
        # {key: [count, reset_time]}
        self._windows: dict[str, list] = {}
        self._lock = Lock()
        self._last_cleanup = 0.0

    def _cleanup_expired(self, now: float) -> None:
        if now - self._last_cleanup < CLEANUP_INTERVAL_SECONDS:
            return
        expired = [k for k, (_, reset_time) in self._windows.items() if now >= reset_time]
        for k in expired:
            del self._windows[k]
        if expired:
            logger.debug(f"🧹 Cleaned up {len(expired)} expired rate limit entries")
        self._last_cleanup = now

    async def hit(self, key: str) -> RateLimitDecision:
        now = self.clock()
        with self._lock:
            self._cleanup_expired(now)

            window = self._windows.get(key)
            if window is None or now >= window[1]:
                window = [0, now + self.window_seconds]
                self._windows[key] = window

            allowed = window[0] < self.limit
            if allowed:
                window[0] += 1

            retry_after = max(0, int(window[1] - now + 0.999))
            return RateLimitDecision(allowed=allowed, count=window[0], retry_after=retry_after)


class RedisFixedWindowRateLimiter:
    """INCR + EXPIRE counter shared across workers"""

    def __init__(self, client: redis.Redis, limit: int, window_seconds: int):
        self.client = client
        self.limit = limit
        self.window_seconds = window_seconds

    def _hit_sync(self, key: str) -> RateLimitDecision:
        pipe = self.client.pipeline()
        pipe.incr(key)
        pipe.ttl(key)
        count, ttl = pipe.execute()
        count = int(count)
        if count == 1 or ttl is None or int(ttl) < 0:
            self.client.expire(key, self.window_seconds)
            ttl = self.window_seconds
        return RateLimitDecision(allowed=count <= self.limit, count=count, retry_after=int(ttl))

    async def hit(self, key: str) -> RateLimitDecision:
        # redis-py is synchronous; keep it off the event loop
        return await asyncio.to_thread(self._hit_sync, key)


async def enforce_rate_limit(limiter, key: str) -> RateLimitDecision:
    """
    Count one hit for key.

    Raises:
        RateLimitExceeded: Limit reached for the current window
        UpstreamUnavailable: The limiter itself failed (fail-closed)
    """
    try:
        decision = await limiter.hit(key)
    except Exception as e:
        logger.error(f"❌ Rate limit check failed: {str(e)}")
        logger.warning("🔒 Denying request due to rate limiting error (fail-closed mode)")
        raise UpstreamUnavailable(
            "Rate limiting service temporarily unavailable", operation="rate_limit"
        ) from e

    if not decision.allowed:
        logger.warning(f"🚫 Rate limit EXCEEDED for {key} - {decision.count}/{limiter.limit}")
        raise RateLimitExceeded(
            "Too many requests, please try again later", retry_after=decision.retry_after
        )
    return decision


def create_rate_limiter(
    limit: int = CONTACT_RATE_LIMIT,
    window_seconds: int = CONTACT_RATE_WINDOW_SECONDS,
    redis_url: Optional[str] = REDIS_URL,
):
    """Redis-backed limiter when redis_url is set, otherwise in-memory"""
    if not redis_url:
        logger.info(f"🔄 Using in-memory rate limiting ({limit}/{window_seconds}s)")
        return FixedWindowRateLimiter(limit, window_seconds)

    if "@" in redis_url:
        url_parts = redis_url.split("@")
        protocol = url_parts[0].split(":")[0]
        masked_url = f"{protocol}:****@{url_parts[1]}"
    else:
        masked_url = redis_url
    logger.info(f"📡 Using Redis rate limiting: {masked_url}")

    client = redis.from_url(
        redis_url,
        decode_responses=True,
        socket_connect_timeout=5,
        socket_timeout=5,
        health_check_interval=30,
    )
    return RedisFixedWindowRateLimiter(client, limit, window_seconds)
