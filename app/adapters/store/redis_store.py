"""Redis/Valkey store adapter built on ``redis.asyncio``.

Notes:
- One client (and connection pool) per process, shared by all components.
- Connection and timeout errors are retried a bounded number of times with a
  capped exponential backoff; anything still failing surfaces as
  ``StoreAppError``.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Mapping, TypeVar

from redis.asyncio import Redis
from redis.asyncio.retry import Retry
from redis.backoff import ExponentialBackoff
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError

from app.adapters.store.base import AbstractStore, LogEntry
from app.core.config import StoreSettings
from app.core.errors import StoreAppError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def build_redis_client(store_settings: StoreSettings) -> Redis:
    """Create the process-wide Redis client from settings.

    Args:
        store_settings: Resolved store settings.

    Returns:
        Redis client returning ``str`` values instead of bytes.
    """

    retry = Retry(
        ExponentialBackoff(
            cap=store_settings.retry_backoff_cap_ms / 1000,
            base=store_settings.retry_backoff_base_ms / 1000,
        ),
        retries=store_settings.max_retries,
    )
    return Redis.from_url(
        store_settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        retry=retry,
        retry_on_error=[RedisConnectionError, RedisTimeoutError],
        socket_timeout=store_settings.socket_timeout_seconds,
        socket_connect_timeout=store_settings.socket_timeout_seconds,
    )


class RedisStore(AbstractStore):
    """Store adapter delegating to a Redis/Valkey server."""

    def __init__(self, client: Redis) -> None:
        self._redis = client

    @classmethod
    def from_settings(cls, store_settings: StoreSettings) -> "RedisStore":
        return cls(build_redis_client(store_settings))

    async def _run(self, operation: str, awaitable: Awaitable[T]) -> T:
        """Await a client call, translating engine errors.

        Raises:
            StoreAppError: If the command fails after the client's retries.
        """
        try:
            return await awaitable
        except (RedisError, OSError) as exc:
            raise StoreAppError(
                code="store_unavailable",
                message=f"Store command '{operation}' failed",
                details={"operation": operation, "error_type": type(exc).__name__},
            ) from exc

    async def zadd_scored(self, key: str, score: float, member: str) -> None:
        await self._run("zadd", self._redis.zadd(key, {member: score}))

    async def zrem_range_by_score(self, key: str, min_score: float, max_score: float) -> int:
        return await self._run(
            "zremrangebyscore",
            self._redis.zremrangebyscore(key, min_score, max_score),
        )

    async def zcard(self, key: str) -> int:
        return await self._run("zcard", self._redis.zcard(key))

    async def zrange_with_scores(self, key: str, start: int, stop: int) -> list[tuple[str, float]]:
        rows = await self._run("zrange", self._redis.zrange(key, start, stop, withscores=True))
        return [(member, float(score)) for member, score in rows]

    async def expire_after(self, key: str, milliseconds: int) -> bool:
        return bool(await self._run("pexpire", self._redis.pexpire(key, milliseconds)))

    async def get(self, key: str) -> str | None:
        return await self._run("get", self._redis.get(key))

    async def set_with_expiry(self, key: str, ttl_seconds: int, value: str) -> None:
        await self._run("setex", self._redis.setex(key, ttl_seconds, value))

    async def increment(self, key: str) -> int:
        return await self._run("incr", self._redis.incr(key))

    async def append_capped(self, name: str, max_len: int, fields: Mapping[str, str]) -> str:
        return await self._run(
            "xadd",
            self._redis.xadd(name, dict(fields), id="*", maxlen=max_len, approximate=True),
        )

    async def read_reverse_range(
        self,
        name: str,
        start: str = "+",
        end: str = "-",
        count: int | None = None,
    ) -> list[LogEntry]:
        rows = await self._run("xrevrange", self._redis.xrevrange(name, start, end, count=count))
        return [(entry_id, dict(fields or {})) for entry_id, fields in rows]

    async def list_keys(self, pattern: str) -> list[str]:
        async def _collect() -> list[str]:
            # SCAN may yield a key more than once
            return list(dict.fromkeys([key async for key in self._redis.scan_iter(match=pattern)]))

        return await self._run("scan", _collect())

    async def ping(self) -> bool:
        return bool(await self._run("ping", self._redis.ping()))

    async def close(self) -> None:
        await self._redis.aclose()
        logger.debug("store.closed", extra={"backend": "redis"})
