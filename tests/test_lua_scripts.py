"""Tests that run the Lua scripts through RedisScriptExecutor.

The scripts execute inside fakeredis' embedded Lua runtime, so these
cover the real EVAL path: argument encoding, reply shapes and the
expirations each script sets. Key TTLs in fakeredis follow wall time
while the limiters use the fake clock, so windows here are long enough
that nothing expires mid-test.
"""

import asyncio

import pytest
from fakeredis import FakeAsyncRedis, FakeServer

from ratelimit import (
    FixedWindow,
    InMemoryScriptExecutor,
    RateLimit,
    RedisScriptExecutor,
    SlidingLogs,
    SlidingWindow,
    TokenBucket,
)
from ratelimit.analytics import RETENTION_MS
from ratelimit.limiters.redis_lua import ANALYTICS, SLIDING_LOGS, TOKEN_BUCKET

WINDOW = 60_000


@pytest.fixture
def redis_client():
    return FakeAsyncRedis(server=FakeServer())


@pytest.fixture
def redis_store(redis_client):
    return RedisScriptExecutor(redis_client)


def make_limiter(store, clock, limiter, **kwargs):
    return RateLimit(store=store, limiter=limiter, prefix="rl", clock=clock, **kwargs)


async def run(ratelimit, identifier, times):
    return [await ratelimit.limit(identifier) for _ in range(times)]


class TestFixedWindowScript:
    """Tests for the fixed window script."""

    @pytest.mark.asyncio
    async def test_admits_tokens_then_denies(self, redis_store, clock):
        ratelimit = make_limiter(redis_store, clock, FixedWindow(tokens=3, window=WINDOW))

        results = await run(ratelimit, "user", 5)

        assert [r.allowed for r in results] == [True, True, True, False, False]
        assert [r.remaining for r in results] == [2, 1, 0, 0, 0]

    @pytest.mark.asyncio
    async def test_next_bucket_starts_fresh(self, redis_store, clock):
        ratelimit = make_limiter(redis_store, clock, FixedWindow(tokens=2, window=WINDOW))

        await run(ratelimit, "user", 3)
        clock.advance(WINDOW)
        result = await ratelimit.limit("user")

        assert result.allowed
        assert result.remaining == 1

    @pytest.mark.asyncio
    async def test_counter_expires_with_window(self, redis_store, redis_client, clock):
        ratelimit = make_limiter(redis_store, clock, FixedWindow(tokens=3, window=WINDOW))

        await run(ratelimit, "user", 2)

        key = f"rl:user:{clock.now // WINDOW}"
        assert await redis_client.get(key) == b"2"
        assert 0 < await redis_client.pttl(key) <= WINDOW


class TestSlidingWindowScript:
    """Tests for the sliding window script."""

    @pytest.mark.asyncio
    async def test_previous_window_is_weighted(self, redis_store, clock):
        clock.now = 10 * WINDOW
        ratelimit = make_limiter(redis_store, clock, SlidingWindow(tokens=10, window=WINDOW))

        await run(ratelimit, "user", 10)
        # 25% into the next window, 75% of the previous 10 still counts
        clock.now = 11 * WINDOW + WINDOW // 4
        results = await run(ratelimit, "user", 5)

        assert [r.allowed for r in results] == [True, True, True, False, False]

    @pytest.mark.asyncio
    async def test_denial_does_not_write(self, redis_store, redis_client, clock):
        ratelimit = make_limiter(redis_store, clock, SlidingWindow(tokens=2, window=WINDOW))
        key = f"rl:user:{clock.now // WINDOW}"

        await run(ratelimit, "user", 2)
        denied = await ratelimit.limit("user")

        assert not denied.allowed
        assert await redis_client.get(key) == b"2"

    @pytest.mark.asyncio
    async def test_counter_outlives_next_window(self, redis_store, redis_client, clock):
        ratelimit = make_limiter(redis_store, clock, SlidingWindow(tokens=2, window=WINDOW))

        await ratelimit.limit("user")

        ttl = await redis_client.pttl(f"rl:user:{clock.now // WINDOW}")
        assert 2 * WINDOW < ttl <= 2 * WINDOW + 1000


class TestSlidingLogsScript:
    """Tests for the sliding log script."""

    @pytest.mark.asyncio
    async def test_exact_window_eviction(self, redis_store, clock):
        ratelimit = make_limiter(redis_store, clock, SlidingLogs(tokens=2, window=WINDOW))
        first_at = clock.now

        await ratelimit.limit("user")
        clock.advance(1000)
        await ratelimit.limit("user")
        denied = await ratelimit.limit("user")

        assert not denied.allowed
        assert denied.reset_at == first_at + WINDOW

        clock.now = first_at + WINDOW
        admitted = await ratelimit.limit("user")

        assert admitted.allowed
        assert admitted.remaining == 0

    @pytest.mark.asyncio
    async def test_denial_does_not_write(self, redis_store, redis_client, clock):
        ratelimit = make_limiter(redis_store, clock, SlidingLogs(tokens=2, window=WINDOW))

        await run(ratelimit, "user", 3)

        assert await redis_client.zcard("rl:user") == 2
        assert 0 < await redis_client.pttl("rl:user") <= WINDOW

    @pytest.mark.asyncio
    async def test_reply_shape(self, redis_store):
        reply = await redis_store.execute(SLIDING_LOGS, ["log"], [1, 500, 1000, "a"])
        assert reply == [1, 500]

        reply = await redis_store.execute(SLIDING_LOGS, ["log"], [1, 600, 1000, "b"])
        assert reply == [-1, 500]


class TestTokenBucketScript:
    """Tests for the token bucket script."""

    @pytest.mark.asyncio
    async def test_refill_after_interval(self, redis_store, clock):
        ratelimit = make_limiter(
            redis_store, clock, TokenBucket(max_tokens=3, refill_rate=1, interval=WINDOW)
        )

        results = await run(ratelimit, "user", 4)
        assert [r.allowed for r in results] == [True, True, True, False]
        assert results[-1].reset_at == clock.now + WINDOW

        clock.advance(WINDOW)
        refilled = await run(ratelimit, "user", 2)

        assert [r.allowed for r in refilled] == [True, False]

    @pytest.mark.asyncio
    async def test_denial_does_not_write(self, redis_store, redis_client, clock):
        ratelimit = make_limiter(
            redis_store, clock, TokenBucket(max_tokens=1, refill_rate=1, interval=WINDOW)
        )

        await ratelimit.limit("user")
        before = await redis_client.hgetall("rl:user")
        clock.advance(10)
        denied = await ratelimit.limit("user")

        assert not denied.allowed
        assert await redis_client.hgetall("rl:user") == before
        assert before[b"tokens"] == b"0"

    @pytest.mark.asyncio
    async def test_state_expires(self, redis_store, redis_client):
        reply = await redis_store.execute(TOKEN_BUCKET, ["bucket"], [3, 0, 1000, 1, 4000])

        assert reply == [2, 1000]
        assert 3000 < await redis_client.pttl("bucket") <= 4000


class TestAnalyticsScript:
    """Tests for the analytics script."""

    @pytest.mark.asyncio
    async def test_counts_and_sets_expiry_once(self, redis_store, redis_client):
        assert await redis_store.execute(ANALYTICS, ["stats"], ["user:admitted", RETENTION_MS]) == 1
        assert await redis_store.execute(ANALYTICS, ["stats"], ["user:admitted", 1000]) == 2

        assert await redis_client.hgetall("stats") == {b"user:admitted": b"2"}
        assert await redis_client.pttl("stats") > 1000


LIMITERS = [
    FixedWindow(tokens=5, window=WINDOW),
    SlidingWindow(tokens=5, window=WINDOW),
    SlidingLogs(tokens=5, window=WINDOW),
    TokenBucket(max_tokens=5, refill_rate=1, interval=WINDOW),
]


class TestScriptsMatchInMemoryStore:
    """The Lua scripts and the in-memory store decide the same way."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("limiter", LIMITERS, ids=lambda l: l.name)
    async def test_same_decisions(self, redis_store, clock, limiter):
        on_redis = make_limiter(redis_store, clock, limiter)
        in_memory = make_limiter(InMemoryScriptExecutor(clock=clock), clock, limiter)

        for step in (0, 0, 0, 5000, 0, 0, 0, WINDOW // 2, 0, WINDOW, 0):
            clock.advance(step)
            assert await on_redis.limit("user") == await in_memory.limit("user")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("limiter", LIMITERS, ids=lambda l: l.name)
    async def test_concurrent_callers(self, redis_store, clock, limiter):
        ratelimit = make_limiter(redis_store, clock, limiter)

        results = await asyncio.gather(*(ratelimit.limit("shared") for _ in range(20)))

        assert sum(r.allowed for r in results) == 5
