"""Tests for dashboard statistics collection."""

import pytest

from app.core.config import AppSettings
from app.core.container import build_services
from app.core.errors import RateLimitExceededError, StoreAppError
from app.services.activity_log import ActivityCategory, ActivityEvent
from app.services.stats_service import distribute_keys


@pytest.fixture
def services(store, clock):
    return build_services(store, AppSettings(rate_limit_requests=2), clock=clock)


def test_distribute_keys_by_namespace() -> None:
    distribution = distribute_keys(
        ["ratelimit:a", "ratelimit:b", "cache:x", "stats:cache:hits", "activity:stream", "other"]
    )

    assert distribution.rate_limit == 2
    assert distribution.cache == 1
    assert distribution.stats == 1
    assert distribution.activity == 1


@pytest.mark.asyncio
async def test_collect_summarizes_all_sections(services) -> None:
    await services.generation.generate("10.0.0.1", "hello")
    await services.generation.generate("10.0.0.1", "hello")
    with pytest.raises(RateLimitExceededError):
        await services.generation.generate("10.0.0.1", "hello")
    await services.generation.generate("10.0.0.2", "world")

    stats = await services.stats.collect()

    assert stats.connected is True
    assert stats.degraded is False
    assert stats.timestamp == 1_000_000
    assert stats.rate_limit.total_keys == 2
    assert [(c.identity, c.current_count) for c in stats.rate_limit.top_consumers] == [
        ("10.0.0.1", 2),
        ("10.0.0.2", 1),
    ]
    assert stats.rate_limit.blocked_requests == 1
    assert stats.rate_limit.requests_per_minute == 3
    assert stats.cache.hits == 1
    assert stats.cache.misses == 2
    assert stats.cache.cached_key_count == 2
    assert stats.activity[0].category is ActivityCategory.REQUEST
    assert stats.key_distribution.rate_limit == 2
    assert stats.key_distribution.cache == 2
    assert stats.key_distribution.stats == 2
    assert stats.key_distribution.activity == 1
    assert stats.total_keys == 7


@pytest.mark.asyncio
async def test_requests_per_minute_ignores_old_events(services, clock) -> None:
    await services.activity.append(ActivityEvent(category=ActivityCategory.REQUEST, identity="a"))
    clock.advance(61)
    await services.activity.append(ActivityEvent(category=ActivityCategory.REQUEST, identity="b"))

    stats = await services.stats.collect()

    assert stats.rate_limit.requests_per_minute == 1


@pytest.mark.asyncio
async def test_empty_store(services) -> None:
    stats = await services.stats.collect()

    assert stats.total_keys == 0
    assert stats.activity == []
    assert stats.cache.hit_ratio == 0.0
    assert stats.rate_limit.top_consumers == []


@pytest.mark.asyncio
async def test_unreachable_store_raises(failing_store, clock) -> None:
    services = build_services(failing_store, AppSettings(), clock=clock)

    with pytest.raises(StoreAppError):
        await services.stats.collect()

    assert await services.stats.is_connected() is False


@pytest.mark.asyncio
async def test_is_connected_on_healthy_store(services) -> None:
    assert await services.stats.is_connected() is True
