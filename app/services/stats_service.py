"""Dashboard statistics assembled from the three store-backed primitives."""

from __future__ import annotations

import logging
import time
from typing import Callable

from app.adapters.store.base import AbstractStore
from app.core.errors import StoreAppError
from app.schemas.stats import (
    ActivityEventOut,
    CacheStatsOut,
    ConsumerOut,
    KeyDistribution,
    RateLimitStatsOut,
    StatsResponse,
)
from app.services.activity_log import ActivityCategory, ActivityLog
from app.services.rate_limiter import SlidingWindowRateLimiter
from app.services.response_cache import ResponseCache

logger = logging.getLogger(__name__)

_ONE_MINUTE_MS = 60_000

# Namespace prefix -> KeyDistribution field
_KEY_NAMESPACES = {
    "ratelimit:": "rate_limit",
    "cache:": "cache",
    "stats:": "stats",
    "activity:": "activity",
}


def distribute_keys(keys: list[str]) -> KeyDistribution:
    counts = dict.fromkeys(_KEY_NAMESPACES.values(), 0)
    for key in keys:
        for prefix, bucket in _KEY_NAMESPACES.items():
            if key.startswith(prefix):
                counts[bucket] += 1
                break
    return KeyDistribution(**counts)


class StatsService:
    """Collect limiter, cache and activity statistics in one snapshot."""

    def __init__(
        self,
        *,
        store: AbstractStore,
        limiter: SlidingWindowRateLimiter,
        cache: ResponseCache,
        activity: ActivityLog,
        recent_count: int = 20,
        consumer_sample: int = 10,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.limiter = limiter
        self.cache = cache
        self.activity = activity
        self.recent_count = recent_count
        self.consumer_sample = consumer_sample
        self._clock = clock

    async def collect(self) -> StatsResponse:
        """Build the dashboard snapshot.

        Returns:
            StatsResponse; sections whose reads failed fall back to empty
            values and set ``degraded``.

        Raises:
            StoreAppError: If the store does not answer a ping, or the key
                listing fails.
        """
        await self.store.ping()
        now = int(self._clock() * 1000)

        limiter_stats = await self.limiter.stats(self.consumer_sample)
        cache_stats = await self.cache.stats()
        recent = await self.activity.recent(self.recent_count)
        all_keys = await self.store.list_keys("*")

        events = recent.value
        blocked = sum(1 for event in events if event.blocked)
        per_minute = sum(
            1
            for event in events
            if event.category is ActivityCategory.REQUEST
            and event.timestamp is not None
            and event.timestamp > now - _ONE_MINUTE_MS
        )
        degraded = limiter_stats.degraded or cache_stats.degraded or recent.degraded
        if degraded:
            logger.warning(
                "stats.degraded",
                extra={
                    "rate_limit": limiter_stats.reason,
                    "cache": cache_stats.reason,
                    "activity": recent.reason,
                },
            )

        cache_value = cache_stats.value
        return StatsResponse(
            connected=True,
            timestamp=now,
            degraded=degraded,
            rate_limit=RateLimitStatsOut(
                total_keys=limiter_stats.value.total_keys,
                top_consumers=[
                    ConsumerOut(identity=c.identity, current_count=c.current_count)
                    for c in limiter_stats.value.top_consumers
                ],
                blocked_requests=blocked,
                requests_per_minute=per_minute,
            ),
            cache=CacheStatsOut(
                hits=cache_value.hits,
                misses=cache_value.misses,
                total=cache_value.total,
                hit_ratio=cache_value.hit_ratio,
                cached_key_count=cache_value.cached_key_count,
            ),
            activity=[
                ActivityEventOut(
                    id=event.id or "",
                    timestamp=event.timestamp,
                    category=event.category,
                    identity=event.identity,
                    payload_excerpt=event.payload_excerpt,
                    cached=event.cached,
                    blocked=event.blocked,
                )
                for event in events
            ],
            key_distribution=distribute_keys(all_keys),
            total_keys=len(all_keys),
        )

    async def is_connected(self) -> bool:
        try:
            return await self.store.ping()
        except StoreAppError as exc:
            logger.warning("store.ping_failed", extra={"error_code": exc.code})
            return False
