"""Unit tests for the in-memory store adapter."""

import pytest

from app.adapters.store.in_memory import InMemoryStore
from app.core.errors import StoreAppError


@pytest.mark.asyncio
async def test_sorted_set_range_is_ordered_by_score(store: InMemoryStore) -> None:
    await store.zadd_scored("z", 30, "c")
    await store.zadd_scored("z", 10, "a")
    await store.zadd_scored("z", 20, "b")

    assert await store.zcard("z") == 3
    assert await store.zrange_with_scores("z", 0, 0) == [("a", 10.0)]
    assert await store.zrange_with_scores("z", 0, -1) == [("a", 10.0), ("b", 20.0), ("c", 30.0)]
    assert await store.zrange_with_scores("z", -1, -1) == [("c", 30.0)]
    assert await store.zrange_with_scores("missing", 0, 0) == []


@pytest.mark.asyncio
async def test_remove_by_score_is_inclusive(store: InMemoryStore) -> None:
    for score in (10, 20, 30):
        await store.zadd_scored("z", score, f"m{score}")

    removed = await store.zrem_range_by_score("z", float("-inf"), 20)

    assert removed == 2
    assert await store.zrange_with_scores("z", 0, -1) == [("m30", 30.0)]


@pytest.mark.asyncio
async def test_expire_after_drops_key_lazily(store: InMemoryStore, clock) -> None:
    await store.zadd_scored("z", 1, "a")

    assert await store.expire_after("z", 500) is True
    assert await store.expire_after("missing", 500) is False

    clock.advance(0.25)
    assert await store.zcard("z") == 1

    clock.advance(0.25)
    assert await store.zcard("z") == 0
    assert await store.list_keys("*") == []


@pytest.mark.asyncio
async def test_set_with_expiry_overwrites_and_resets_ttl(store: InMemoryStore, clock) -> None:
    await store.set_with_expiry("k", 10, "v1")
    clock.advance(8)
    await store.set_with_expiry("k", 10, "v2")
    clock.advance(8)

    assert await store.get("k") == "v2"

    clock.advance(2)
    assert await store.get("k") is None


@pytest.mark.asyncio
async def test_increment_creates_and_counts(store: InMemoryStore) -> None:
    assert await store.increment("n") == 1
    assert await store.increment("n") == 2
    assert await store.get("n") == "2"


@pytest.mark.asyncio
async def test_increment_rejects_non_integer(store: InMemoryStore) -> None:
    await store.set_with_expiry("k", 10, "text")

    with pytest.raises(StoreAppError) as exc_info:
        await store.increment("k")

    assert exc_info.value.code == "store_wrong_type"


@pytest.mark.asyncio
async def test_append_capped_trims_oldest_entries(store: InMemoryStore) -> None:
    for i in range(5):
        await store.append_capped("log", 3, {"n": str(i)})

    rows = await store.read_reverse_range("log")

    assert [fields["n"] for _, fields in rows] == ["4", "3", "2"]


@pytest.mark.asyncio
async def test_log_ids_stay_unique_within_one_millisecond(store: InMemoryStore, clock) -> None:
    first = await store.append_capped("log", 10, {"n": "0"})
    second = await store.append_capped("log", 10, {"n": "1"})
    clock.advance(0.125)
    third = await store.append_capped("log", 10, {"n": "2"})

    assert first == "1000000-0"
    assert second == "1000000-1"
    assert third == "1000125-0"


@pytest.mark.asyncio
async def test_read_reverse_range_honours_count_and_bounds(store: InMemoryStore, clock) -> None:
    for i in range(4):
        await store.append_capped("log", 10, {"n": str(i)})
        clock.advance(0.125)

    assert [f["n"] for _, f in await store.read_reverse_range("log", count=2)] == ["3", "2"]
    assert [f["n"] for _, f in await store.read_reverse_range("log", "1000250", "1000125")] == ["2", "1"]
    assert await store.read_reverse_range("missing") == []


@pytest.mark.asyncio
async def test_list_keys_matches_glob(store: InMemoryStore) -> None:
    await store.zadd_scored("ratelimit:1.2.3.4", 1, "a")
    await store.set_with_expiry("cache:abc", 10, "v")
    await store.increment("stats:cache:hits")
    await store.append_capped("activity:stream", 10, {"type": "request"})

    assert await store.list_keys("cache:*") == ["cache:abc"]
    assert sorted(await store.list_keys("*")) == [
        "activity:stream",
        "cache:abc",
        "ratelimit:1.2.3.4",
        "stats:cache:hits",
    ]


@pytest.mark.asyncio
async def test_ping_and_close() -> None:
    store = InMemoryStore()

    assert await store.ping() is True
    await store.close()
