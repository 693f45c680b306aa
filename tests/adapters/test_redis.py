"""Integration tests for the Redis-mirrored store using testcontainers."""

import json

import pytest

# Skip all tests if redis or testcontainers are not installed
pytest.importorskip("redis")
pytest.importorskip("testcontainers")

import redis
from testcontainers.redis import RedisContainer

from swrev import SWR, CacheItem, RedisCache


@pytest.fixture(scope="module")
def redis_container():
    """Start a Redis container for the test module."""
    container = RedisContainer()
    try:
        container.start()
    except Exception as e:
        pytest.skip(f"Redis container unavailable: {e}")
    yield container
    container.stop()


@pytest.fixture
def redis_client(redis_container):
    """Create a sync Redis client."""
    client = redis.Redis(
        host=redis_container.get_container_host_ip(),
        port=redis_container.get_exposed_port(6379),
        decode_responses=False,
    )
    yield client
    client.flushdb()
    client.close()


@pytest.fixture
def redis_cache(redis_client) -> RedisCache:
    """Create a RedisCache with a test prefix."""
    return RedisCache(redis_client, prefix="test")


class TestRedisCache:
    """Integration tests for RedisCache."""

    def test_get_nonexistent_returns_none(self, redis_cache: RedisCache) -> None:
        assert not redis_cache.has("nonexistent")
        assert redis_cache.get("nonexistent") is None

    async def test_settled_item_is_persisted(
        self, redis_cache: RedisCache, redis_client
    ) -> None:
        """Test the persisted layout of a settled item."""
        item = CacheItem(data={"id": "123"}).expires_in("1m")
        redis_cache.set("key1", item)
        await redis_cache.drain()

        stored = json.loads(redis_client.get("test:cache:key1"))
        assert stored == {"data": {"id": "123"}, "expiresAt": item.expires_at}

    async def test_pending_item_is_not_persisted(
        self, redis_cache: RedisCache, redis_client
    ) -> None:
        async def later() -> str:
            return "value"

        redis_cache.set("key1", CacheItem(data=later()))
        assert redis_client.get("test:cache:key1") is None

        await redis_cache.drain()
        assert json.loads(redis_client.get("test:cache:key1"))["data"] == "value"

    async def test_reads_fall_back_to_redis(
        self, redis_cache: RedisCache, redis_client
    ) -> None:
        """Test that a second store sees what the first one persisted."""
        redis_cache.set("key1", CacheItem(data="value").expires_in("1m"))
        await redis_cache.drain()

        fresh_store = RedisCache(redis_client, prefix="test")
        assert fresh_store.has("key1")
        item = fresh_store.get("key1")
        assert item is not None
        assert item.data == "value"
        assert not item.has_expired()

    async def test_remove_deletes_from_redis(
        self, redis_cache: RedisCache, redis_client
    ) -> None:
        redis_cache.set("key1", CacheItem(data="value"))
        await redis_cache.drain()

        redis_cache.remove("key1")

        assert not redis_cache.has("key1")
        assert redis_client.get("test:cache:key1") is None

    async def test_clear_only_touches_prefix(
        self, redis_cache: RedisCache, redis_client
    ) -> None:
        redis_cache.set("key1", CacheItem(data="one"))
        redis_cache.set("key2", CacheItem(data="two"))
        await redis_cache.drain()
        redis_client.set("other:cache:key1", "keep")

        redis_cache.clear()

        assert not redis_cache.has("key1")
        assert not redis_cache.has("key2")
        assert redis_client.get("other:cache:key1") == b"keep"

    async def test_unserializable_value_stays_in_memory(
        self, redis_cache: RedisCache, redis_client
    ) -> None:
        received: list[object] = []
        redis_cache.subscribe("key1", received.append)
        value = object()

        redis_cache.set("key1", CacheItem(data=value))
        await redis_cache.drain()

        assert received == [value]
        assert redis_client.get("test:cache:key1") is None

    async def test_engine_with_redis_store(self, redis_cache: RedisCache) -> None:
        async def fetch(key: str) -> dict[str, str]:
            return {"key": key}

        swr = SWR(cache=redis_cache, fetcher=fetch)
        assert await swr.revalidate("/users/1") == {"key": "/users/1"}
        await redis_cache.drain()

        assert swr.get("/users/1") == {"key": "/users/1"}
