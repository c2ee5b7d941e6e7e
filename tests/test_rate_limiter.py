"""Tests for fixed-window rate limiting."""

import pytest

from booking_api.errors import RateLimitExceeded, UpstreamUnavailable
from booking_api.rate_limiter import (
    FixedWindowRateLimiter,
    RedisFixedWindowRateLimiter,
    enforce_rate_limit,
)
from conftest import FakeClock


class FakePipeline:
    def __init__(self, client):
        self.client = client
        self.ops = []

    def incr(self, key):
        self.ops.append(("incr", key))

    def ttl(self, key):
        self.ops.append(("ttl", key))

    def execute(self):
        results = []
        for op, key in self.ops:
            if op == "incr":
                self.client.counts[key] = self.client.counts.get(key, 0) + 1
                results.append(self.client.counts[key])
            else:
                results.append(self.client.ttls.get(key, -1))
        return results


class FakeRedis:
    def __init__(self):
        self.counts = {}
        self.ttls = {}

    def pipeline(self):
        return FakePipeline(self)

    def expire(self, key, seconds):
        self.ttls[key] = seconds


class BrokenLimiter:
    limit = 1

    async def hit(self, key):
        raise ConnectionError("redis went away")


class TestFixedWindowRateLimiter:
    async def test_allows_up_to_limit(self):
        limiter = FixedWindowRateLimiter(limit=3, window_seconds=60, clock=FakeClock())

        decisions = [await limiter.hit("ip") for _ in range(4)]

        assert [d.allowed for d in decisions] == [True, True, True, False]

    async def test_window_resets_after_expiry(self):
        clock = FakeClock()
        limiter = FixedWindowRateLimiter(limit=1, window_seconds=60, clock=clock)

        assert (await limiter.hit("ip")).allowed
        clock.advance(30)
        denied = await limiter.hit("ip")
        assert not denied.allowed
        assert denied.retry_after == 30

        clock.advance(30)
        assert (await limiter.hit("ip")).allowed

    async def test_keys_are_independent(self):
        limiter = FixedWindowRateLimiter(limit=1, window_seconds=60, clock=FakeClock())

        assert (await limiter.hit("a")).allowed
        assert (await limiter.hit("b")).allowed
        assert not (await limiter.hit("a")).allowed

    async def test_expired_entries_are_pruned(self):
        clock = FakeClock()
        limiter = FixedWindowRateLimiter(limit=5, window_seconds=10, clock=clock)
        await limiter.hit("a")
        await limiter.hit("b")

        clock.advance(120)
        await limiter.hit("c")

        assert set(limiter._windows) == {"c"}


class TestRedisFixedWindowRateLimiter:
    async def test_counts_and_sets_expiry(self):
        client = FakeRedis()
        limiter = RedisFixedWindowRateLimiter(client, limit=2, window_seconds=60)

        decisions = [await limiter.hit("contact:1.2.3.4") for _ in range(3)]

        assert [d.allowed for d in decisions] == [True, True, False]
        assert client.ttls["contact:1.2.3.4"] == 60
        assert decisions[-1].retry_after == 60


class TestEnforceRateLimit:
    async def test_raises_when_exceeded(self):
        limiter = FixedWindowRateLimiter(limit=1, window_seconds=60, clock=FakeClock())
        await enforce_rate_limit(limiter, "ip")

        with pytest.raises(RateLimitExceeded) as exc_info:
            await enforce_rate_limit(limiter, "ip")
        assert exc_info.value.retry_after == 60

    async def test_limiter_failure_fails_closed(self):
        with pytest.raises(UpstreamUnavailable):
            await enforce_rate_limit(BrokenLimiter(), "ip")
