"""Tests for the read-through resource cache."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import orjson
import pytest
import redis.asyncio as redis

from src.core.cache import ResourceCache


@pytest.fixture
def client() -> MagicMock:
    client = MagicMock()
    client.get = AsyncMock(return_value=None)
    client.set = AsyncMock()
    client.delete = AsyncMock()
    return client


@pytest.mark.asyncio
async def test_disabled_cache_always_loads() -> None:
    cache = ResourceCache(None)
    loader = AsyncMock(return_value=[1, 2])

    assert await cache.get_or_load("k", loader) == [1, 2]
    assert await cache.get_or_load("k", loader) == [1, 2]
    assert loader.await_count == 2
    assert cache.enabled is False


@pytest.mark.asyncio
async def test_miss_loads_and_stores(client) -> None:
    cache = ResourceCache(client, ttl_seconds=60)

    value = await cache.get_or_load("courses:t1", AsyncMock(return_value={"a": 1}))

    assert value == {"a": 1}
    client.set.assert_awaited_once_with("courses:t1", orjson.dumps({"a": 1}), ex=60)


@pytest.mark.asyncio
async def test_hit_skips_loader(client) -> None:
    client.get = AsyncMock(return_value=orjson.dumps(["cached"]))
    cache = ResourceCache(client)
    loader = AsyncMock()

    assert await cache.get_or_load("k", loader) == ["cached"]
    loader.assert_not_awaited()


@pytest.mark.asyncio
async def test_concurrent_misses_share_one_load(client) -> None:
    cache = ResourceCache(client)
    release = asyncio.Event()
    calls = 0

    async def loader():
        nonlocal calls
        calls += 1
        await release.wait()
        return "value"

    first = asyncio.create_task(cache.get_or_load("k", loader))
    second = asyncio.create_task(cache.get_or_load("k", loader))
    await asyncio.sleep(0)
    await asyncio.sleep(0)
    release.set()

    assert await asyncio.gather(first, second) == ["value", "value"]
    assert calls == 1


@pytest.mark.asyncio
async def test_loader_error_propagates(client) -> None:
    cache = ResourceCache(client)

    with pytest.raises(RuntimeError):
        await cache.get_or_load("k", AsyncMock(side_effect=RuntimeError("boom")))
    client.set.assert_not_awaited()


@pytest.mark.asyncio
async def test_redis_errors_fall_back_to_loader(client) -> None:
    client.get = AsyncMock(side_effect=redis.ConnectionError("down"))
    client.set = AsyncMock(side_effect=redis.ConnectionError("down"))
    cache = ResourceCache(client)

    assert await cache.get_or_load("k", AsyncMock(return_value=3)) == 3


@pytest.mark.asyncio
async def test_invalidate(client) -> None:
    cache = ResourceCache(client)
    await cache.invalidate("a", "b")
    client.delete.assert_awaited_once_with("a", "b")

    client.delete.reset_mock()
    await cache.invalidate()
    client.delete.assert_not_awaited()


@pytest.fixture
def store() -> MagicMock:
    """Redis double backed by a dict."""
    data: dict[str, bytes] = {}
    client = MagicMock()
    client.data = data

    async def _get(key):
        return data.get(key)

    async def _set(key, value, ex=None):
        data[key] = value

    async def _delete(*keys):
        for key in keys:
            data.pop(key, None)

    client.get = AsyncMock(side_effect=_get)
    client.set = AsyncMock(side_effect=_set)
    client.delete = AsyncMock(side_effect=_delete)
    return client


@pytest.mark.asyncio
async def test_waiter_reloads_when_loading_caller_is_cancelled(store) -> None:
    cache = ResourceCache(store)
    started = asyncio.Event()
    calls = 0

    async def slow_loader():
        nonlocal calls
        calls += 1
        started.set()
        await asyncio.sleep(10)
        return "slow"

    async def fast_loader():
        nonlocal calls
        calls += 1
        return "fresh"

    first = asyncio.create_task(cache.get_or_load("k", slow_loader))
    await started.wait()
    second = asyncio.create_task(cache.get_or_load("k", fast_loader))
    await asyncio.sleep(0)

    first.cancel()
    with pytest.raises(asyncio.CancelledError):
        await first

    assert await asyncio.wait_for(second, timeout=1) == "fresh"
    assert calls == 2
    assert cache._inflight == {}


@pytest.mark.asyncio
async def test_cancelled_waiter_leaves_shared_load_running(store) -> None:
    cache = ResourceCache(store)
    release = asyncio.Event()

    async def loader():
        await release.wait()
        return "value"

    first = asyncio.create_task(cache.get_or_load("k", loader))
    await asyncio.sleep(0)
    second = asyncio.create_task(cache.get_or_load("k", loader))
    await asyncio.sleep(0)

    second.cancel()
    with pytest.raises(asyncio.CancelledError):
        await second
    release.set()

    assert await asyncio.wait_for(first, timeout=1) == "value"


@pytest.mark.asyncio
async def test_invalidate_during_load_discards_snapshot(store) -> None:
    cache = ResourceCache(store)
    rows = ["old"]
    loading = asyncio.Event()
    release = asyncio.Event()

    async def loader():
        snapshot = list(rows)
        loading.set()
        await release.wait()
        return snapshot

    read = asyncio.create_task(cache.get_or_load("k", loader))
    await loading.wait()

    rows.append("new")
    await cache.invalidate("k")
    release.set()

    assert await read == ["old"]
    assert "k" not in store.data

    async def reload():
        return list(rows)

    assert await cache.get_or_load("k", reload) == ["old", "new"]
    assert orjson.loads(store.data["k"]) == ["old", "new"]


@pytest.mark.asyncio
async def test_read_after_invalidate_does_not_join_stale_load(store) -> None:
    cache = ResourceCache(store)
    release = asyncio.Event()

    async def stale_loader():
        await release.wait()
        return ["old"]

    async def fresh_loader():
        return ["old", "new"]

    stale = asyncio.create_task(cache.get_or_load("k", stale_loader))
    await asyncio.sleep(0)
    await cache.invalidate("k")

    assert await cache.get_or_load("k", fresh_loader) == ["old", "new"]

    release.set()
    await stale
    assert orjson.loads(store.data["k"]) == ["old", "new"]
