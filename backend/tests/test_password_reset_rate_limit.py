from unittest.mock import AsyncMock, MagicMock

import pytest

from conducky.application.password_reset_rate_limit import (
    InMemoryAttemptStore,
    PasswordResetRateLimiter,
    RedisAttemptStore,
    normalize_email,
)
from conducky.errors import RateLimitExceededError


class Clock:
    def __init__(self, start: float = 1_000.0):
        self.value = start

    def __call__(self) -> float:
        return self.value


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def limiter(clock):
    return PasswordResetRateLimiter(InMemoryAttemptStore(), now=clock)


@pytest.mark.anyio
async def test_fourth_attempt_in_window_is_refused(limiter):
    for _ in range(3):
        await limiter.enforce("user@example.com")

    with pytest.raises(RateLimitExceededError) as exc_info:
        await limiter.enforce("user@example.com")

    assert exc_info.value.status_code == 429
    assert exc_info.value.details["retry_after_seconds"] == 900


@pytest.mark.anyio
async def test_window_slides(limiter, clock):
    for _ in range(3):
        await limiter.enforce("user@example.com")
        clock.value += 100

    # The first attempt was at t=1000; at t=1901 it has left the window.
    clock.value = 1_901.0
    await limiter.enforce("user@example.com")


@pytest.mark.anyio
async def test_email_is_normalized(limiter):
    for _ in range(3):
        await limiter.enforce("User@Example.com ")

    decision = await limiter.check("user@example.com")

    assert not decision.allowed


@pytest.mark.anyio
async def test_reset_clears_attempts(limiter):
    for _ in range(3):
        await limiter.enforce("user@example.com")

    await limiter.reset("user@example.com")

    assert (await limiter.check("user@example.com")).allowed


@pytest.mark.anyio
async def test_store_failure_fails_open(clock, caplog):
    store = MagicMock()
    store.attempts_since = AsyncMock(side_effect=ConnectionError("redis down"))
    store.add_attempt = AsyncMock(side_effect=ConnectionError("redis down"))
    limiter = PasswordResetRateLimiter(store, now=clock)

    with caplog.at_level("WARNING", logger="conducky.rate_limit"):
        await limiter.enforce("user@example.com")

    assert "rate_limit_store_failed" in caplog.text


@pytest.mark.anyio
async def test_redis_store_reads_scores_and_records_with_ttl():
    redis = MagicMock()
    redis.zremrangebyscore = AsyncMock()
    redis.zrange = AsyncMock(return_value=[("1000.000000", 1000.0), ("1001.000000", 1001.0)])
    pipe = MagicMock()
    pipe.execute = AsyncMock()
    pipeline_cm = MagicMock()
    pipeline_cm.__aenter__ = AsyncMock(return_value=pipe)
    pipeline_cm.__aexit__ = AsyncMock(return_value=False)
    redis.pipeline = MagicMock(return_value=pipeline_cm)
    store = RedisAttemptStore(redis)

    attempts = await store.attempts_since("user@example.com", 500.0)
    await store.add_attempt("user@example.com", 1002.0, 900)

    assert attempts == [1000.0, 1001.0]
    redis.zremrangebyscore.assert_awaited_once_with(
        "rate:password-reset:user@example.com", "-inf", 500.0
    )
    pipe.zadd.assert_called_once_with(
        "rate:password-reset:user@example.com", {"1002.000000": 1002.0}
    )
    pipe.expire.assert_called_once_with("rate:password-reset:user@example.com", 900)
    pipe.execute.assert_awaited_once()


def test_blank_email_rejected():
    with pytest.raises(ValueError):
        normalize_email("   ")


def test_limits_must_be_positive():
    with pytest.raises(ValueError):
        PasswordResetRateLimiter(InMemoryAttemptStore(), max_attempts=0)
