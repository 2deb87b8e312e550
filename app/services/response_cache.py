"""Content-addressed cache for generation results (cache-aside).

Callers look a payload up, compute on a miss and write the result back
themselves. Entries live under ``cache:<sha256>`` with a TTL; hit and miss
counters live under ``stats:cache:``.

Counter policy: every lookup increments exactly one counter. A lookup whose
read fails counts as a miss, so the counters describe lookup outcomes rather
than store successes. While the store is down that increment usually fails as
well; the failure is logged and the lookup still returns a miss.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from hashlib import sha256

from app.adapters.store.base import AbstractStore
from app.core.errors import StoreAppError, ValidationAppError
from app.core.outcome import Outcome

logger = logging.getLogger(__name__)

KEY_PREFIX = "cache:"
HITS_KEY = "stats:cache:hits"
MISSES_KEY = "stats:cache:misses"
DEFAULT_TTL_SECONDS = 3600


@dataclass(frozen=True)
class CacheStats:
    hits: int = 0
    misses: int = 0
    total: int = 0
    hit_ratio: float = 0.0
    cached_key_count: int = 0


def build_cache_key(payload: str) -> str:
    """Build the namespaced cache key for a payload.

    Args:
        payload: Request payload (e.g., prompt text).

    Returns:
        ``cache:`` followed by the hex SHA-256 digest of the UTF-8 payload.
    """
    return f"{KEY_PREFIX}{sha256(payload.encode('utf-8')).hexdigest()}"


class ResponseCache:
    """Store-backed TTL cache with hit/miss accounting."""

    def __init__(self, store: AbstractStore) -> None:
        self._store = store

    def key_for(self, payload: str) -> str:
        return build_cache_key(payload)

    async def _count(self, counter_key: str) -> bool:
        try:
            await self._store.increment(counter_key)
        except StoreAppError as exc:
            logger.warning(
                "cache.counter_failed",
                extra={"counter": counter_key, "error_code": exc.code},
            )
            return False
        return True

    async def lookup(self, payload: str) -> Outcome[str | None]:
        """Return the cached result for ``payload`` or None.

        Args:
            payload: Request payload.

        Returns:
            Outcome wrapping the cached value. A failed read is reported as a
            degraded miss; a failed counter update after a successful read
            keeps the value but flags the outcome as degraded.
        """
        key = self.key_for(payload)

        try:
            cached = await self._store.get(key)
        except StoreAppError as exc:
            logger.warning(
                "cache.read_failed",
                extra={"cache_key": key[:22], "error_code": exc.code},
            )
            await self._count(MISSES_KEY)
            return Outcome.fallback(None, reason=exc.code)

        if cached is None:
            logger.debug("cache.miss", extra={"cache_key": key[:22]})
            counted = await self._count(MISSES_KEY)
        else:
            logger.debug("cache.hit", extra={"cache_key": key[:22]})
            counted = await self._count(HITS_KEY)

        if not counted:
            return Outcome.fallback(cached, reason="counter_update_failed")
        return Outcome.ok(cached)

    async def store(
        self,
        payload: str,
        result: str,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
    ) -> Outcome[None]:
        """Cache ``result`` for ``payload``, overwriting and resetting the TTL.

        Raises:
            ValidationAppError: If ``ttl_seconds`` is not positive.
        """
        if ttl_seconds < 1:
            raise ValidationAppError(
                code="invalid_ttl",
                message="ttl_seconds must be >= 1",
                details={"field": "ttl_seconds"},
            )

        key = self.key_for(payload)
        try:
            await self._store.set_with_expiry(key, ttl_seconds, result)
        except StoreAppError as exc:
            logger.warning(
                "cache.write_failed",
                extra={"cache_key": key[:22], "error_code": exc.code},
            )
            return Outcome.fallback(None, reason=exc.code)

        logger.debug("cache.set", extra={"cache_key": key[:22], "ttl_s": ttl_seconds})
        return Outcome.ok(None)

    async def stats(self) -> Outcome[CacheStats]:
        """Read the counters and the number of live cache entries."""
        try:
            hits = int(await self._store.get(HITS_KEY) or 0)
            misses = int(await self._store.get(MISSES_KEY) or 0)
            cached_keys = len(await self._store.list_keys(f"{KEY_PREFIX}*"))
        except StoreAppError as exc:
            logger.warning(
                "cache.stats_failed",
                extra={"error_code": exc.code, "error_message": exc.message},
            )
            return Outcome.fallback(CacheStats(), reason=exc.code)

        total = hits + misses
        return Outcome.ok(
            CacheStats(
                hits=hits,
                misses=misses,
                total=total,
                hit_ratio=hits / total * 100 if total > 0 else 0.0,
                cached_key_count=cached_keys,
            )
        )
