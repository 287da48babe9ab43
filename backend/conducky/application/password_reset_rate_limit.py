"""
Password-reset attempt limiting.

Attempts are counted per normalized email inside a sliding window. The
counter lives in an injected ``AttemptStore`` so several API instances can
share it through Redis. A store failure lets the request through (logged).
"""
from __future__ import annotations

import logging
import math
import time
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, DefaultDict, List, Protocol

from redis.asyncio import Redis as AsyncRedis

from ..errors import RateLimitExceededError

logger = logging.getLogger("conducky.rate_limit")

PASSWORD_RESET_MAX_ATTEMPTS = 3
PASSWORD_RESET_WINDOW_SECONDS = 15 * 60
KEY_PREFIX = "rate:password-reset"


class AttemptStore(Protocol):
    async def attempts_since(self, key: str, since: float) -> list[float]:
        ...

    async def add_attempt(self, key: str, at: float, ttl_seconds: int) -> None:
        ...

    async def reset(self, key: str) -> None:
        ...


class InMemoryAttemptStore:
    """Single-process store; attempts vanish on restart."""

    def __init__(self) -> None:
        self._attempts: DefaultDict[str, List[float]] = defaultdict(list)

    def _prune(self, key: str, since: float) -> List[float]:
        attempts = [ts for ts in self._attempts.get(key, []) if ts > since]
        if attempts:
            self._attempts[key] = attempts
        else:
            self._attempts.pop(key, None)
        return attempts

    async def attempts_since(self, key: str, since: float) -> list[float]:
        return list(self._prune(key, since))

    async def add_attempt(self, key: str, at: float, ttl_seconds: int) -> None:
        self._attempts[key].append(at)

    async def reset(self, key: str) -> None:
        self._attempts.pop(key, None)

    def clear(self) -> None:
        self._attempts.clear()


class RedisAttemptStore:
    """Sorted set per key, scored by attempt timestamp."""

    def __init__(self, redis_client: AsyncRedis, prefix: str = KEY_PREFIX):
        self._redis = redis_client
        self._prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self._prefix}:{key}"

    async def attempts_since(self, key: str, since: float) -> list[float]:
        redis_key = self._key(key)
        await self._redis.zremrangebyscore(redis_key, "-inf", since)
        entries = await self._redis.zrange(redis_key, 0, -1, withscores=True)
        return [float(score) for _, score in entries]

    async def add_attempt(self, key: str, at: float, ttl_seconds: int) -> None:
        redis_key = self._key(key)
        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.zadd(redis_key, {f"{at:.6f}": at})
            pipe.expire(redis_key, ttl_seconds)
            await pipe.execute()

    async def reset(self, key: str) -> None:
        await self._redis.delete(self._key(key))


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    retry_after_seconds: int = 0


def normalize_email(email: str) -> str:
    normalized = (email or "").strip().lower()
    if not normalized:
        raise ValueError("email is required for rate limiting")
    return normalized


class PasswordResetRateLimiter:
    def __init__(
        self,
        store: AttemptStore,
        max_attempts: int = PASSWORD_RESET_MAX_ATTEMPTS,
        window_seconds: int = PASSWORD_RESET_WINDOW_SECONDS,
        now: Callable[[], float] = time.time,
    ) -> None:
        if max_attempts <= 0 or window_seconds <= 0:
            raise ValueError("max_attempts and window_seconds must be greater than 0")
        self.store = store
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self._now = now

    async def check(self, email: str) -> RateLimitDecision:
        key = normalize_email(email)
        current = self._now()
        try:
            attempts = await self.store.attempts_since(key, current - self.window_seconds)
        except Exception:
            logger.warning("rate_limit_store_failed operation=check action=allow", exc_info=True)
            return RateLimitDecision(allowed=True)

        if len(attempts) < self.max_attempts:
            return RateLimitDecision(allowed=True)

        oldest = min(attempts)
        retry_after = max(1, math.ceil(oldest + self.window_seconds - current))
        logger.info("rate_limit_exceeded scope=password_reset retry_after=%d", retry_after)
        return RateLimitDecision(allowed=False, retry_after_seconds=retry_after)

    async def record_attempt(self, email: str) -> None:
        key = normalize_email(email)
        try:
            await self.store.add_attempt(key, self._now(), self.window_seconds)
        except Exception:
            logger.warning("rate_limit_store_failed operation=record", exc_info=True)

    async def reset(self, email: str) -> None:
        await self.store.reset(normalize_email(email))

    async def enforce(self, email: str) -> None:
        """Check and record in one step.

        Raises:
            RateLimitExceededError: If the email is over its attempt limit
        """
        decision = await self.check(email)
        if not decision.allowed:
            raise RateLimitExceededError(
                details={"retry_after_seconds": decision.retry_after_seconds}
            )
        await self.record_attempt(email)
