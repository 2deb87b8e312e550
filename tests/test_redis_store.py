"""Unit tests for the Redis store adapter (client mocked)."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from app.adapters.store.factory import create_store
from app.adapters.store.in_memory import InMemoryStore
from app.adapters.store.redis_store import RedisStore, build_redis_client
from app.core.config import StoreSettings
from app.core.errors import StoreAppError, ValidationAppError


@pytest.fixture
def client() -> MagicMock:
    mock = MagicMock()
    for name in (
        "zadd",
        "zremrangebyscore",
        "zcard",
        "zrange",
        "pexpire",
        "get",
        "setex",
        "incr",
        "xadd",
        "xrevrange",
        "ping",
        "aclose",
    ):
        setattr(mock, name, AsyncMock())
    return mock


@pytest.mark.asyncio
async def test_sorted_set_commands_are_translated(client: MagicMock) -> None:
    store = RedisStore(client)
    client.zremrangebyscore.return_value = 2
    client.zcard.return_value = 4
    client.zrange.return_value = [("1000-abc", "1000")]
    client.pexpire.return_value = 1

    await store.zadd_scored("ratelimit:x", 1000, "1000-abc")
    assert await store.zrem_range_by_score("ratelimit:x", float("-inf"), 900) == 2
    assert await store.zcard("ratelimit:x") == 4
    assert await store.zrange_with_scores("ratelimit:x", 0, 0) == [("1000-abc", 1000.0)]
    assert await store.expire_after("ratelimit:x", 60000) is True

    client.zadd.assert_awaited_once_with("ratelimit:x", {"1000-abc": 1000})
    client.zremrangebyscore.assert_awaited_once_with("ratelimit:x", float("-inf"), 900)
    client.zrange.assert_awaited_once_with("ratelimit:x", 0, 0, withscores=True)
    client.pexpire.assert_awaited_once_with("ratelimit:x", 60000)


@pytest.mark.asyncio
async def test_string_commands_are_translated(client: MagicMock) -> None:
    store = RedisStore(client)
    client.get.return_value = "cached"
    client.incr.return_value = 7

    assert await store.get("cache:abc") == "cached"
    await store.set_with_expiry("cache:abc", 3600, "value")
    assert await store.increment("stats:cache:hits") == 7

    client.setex.assert_awaited_once_with("cache:abc", 3600, "value")


@pytest.mark.asyncio
async def test_append_capped_uses_approximate_maxlen(client: MagicMock) -> None:
    store = RedisStore(client)
    client.xadd.return_value = "1700000000000-0"

    entry_id = await store.append_capped("activity:stream", 100, {"type": "request"})

    assert entry_id == "1700000000000-0"
    client.xadd.assert_awaited_once_with(
        "activity:stream", {"type": "request"}, id="*", maxlen=100, approximate=True
    )


@pytest.mark.asyncio
async def test_read_reverse_range_returns_plain_tuples(client: MagicMock) -> None:
    store = RedisStore(client)
    client.xrevrange.return_value = [("2-0", {"type": "request"}), ("1-0", None)]

    rows = await store.read_reverse_range("activity:stream", count=5)

    assert rows == [("2-0", {"type": "request"}), ("1-0", {})]
    client.xrevrange.assert_awaited_once_with("activity:stream", "+", "-", count=5)


@pytest.mark.asyncio
async def test_list_keys_iterates_scan(client: MagicMock) -> None:
    async def _scan_iter(match: str):
        for key in ("cache:a", "cache:b"):
            yield key

    client.scan_iter = MagicMock(side_effect=_scan_iter)
    store = RedisStore(client)

    assert await store.list_keys("cache:*") == ["cache:a", "cache:b"]
    client.scan_iter.assert_called_once_with(match="cache:*")


@pytest.mark.asyncio
async def test_engine_errors_become_store_errors(client: MagicMock) -> None:
    client.zcard.side_effect = RedisConnectionError("connection refused")
    store = RedisStore(client)

    with pytest.raises(StoreAppError) as exc_info:
        await store.zcard("ratelimit:x")

    assert exc_info.value.code == "store_unavailable"
    assert exc_info.value.details["operation"] == "zcard"
    assert exc_info.value.details["error_type"] == "ConnectionError"


@pytest.mark.asyncio
async def test_ping_and_close(client: MagicMock) -> None:
    client.ping.return_value = True
    store = RedisStore(client)

    assert await store.ping() is True
    await store.close()

    client.aclose.assert_awaited_once()


@pytest.mark.asyncio
async def test_build_client_decodes_responses() -> None:
    redis_client = build_redis_client(StoreSettings(redis_url="redis://localhost:6399/0"))

    kwargs = redis_client.connection_pool.connection_kwargs
    assert kwargs["decode_responses"] is True
    assert kwargs["port"] == 6399

    await redis_client.aclose()


def test_factory_selects_backend() -> None:
    assert isinstance(create_store(StoreSettings(backend="memory")), InMemoryStore)
    assert isinstance(create_store(StoreSettings(backend="redis")), RedisStore)


def test_factory_rejects_unknown_backend() -> None:
    settings = StoreSettings.model_construct(backend="memcached")

    with pytest.raises(ValidationAppError):
        create_store(settings)


@pytest.mark.asyncio
async def test_list_keys_drops_repeated_scan_results(client: MagicMock) -> None:
    async def _scan_iter(match: str):
        for key in ("ratelimit:a", "ratelimit:b", "ratelimit:a"):
            yield key

    client.scan_iter = MagicMock(side_effect=_scan_iter)
    store = RedisStore(client)

    assert await store.list_keys("ratelimit:*") == ["ratelimit:a", "ratelimit:b"]


def test_factory_rejects_backend_changed_after_load() -> None:
    settings = StoreSettings(backend="memory")
    settings.backend = "memcached"

    with pytest.raises(ValidationAppError) as exc_info:
        create_store(settings)

    assert exc_info.value.code == "store_unknown_backend"
