"""Cache store mirrored to Redis."""

from __future__ import annotations

import json
import logging
from typing import Any

from swrev.adapters.memory import MemoryCache
from swrev.types import CacheItem, Key

logger = logging.getLogger(__name__)


def _serialize_item(item: CacheItem[Any]) -> str:
    """Serialize a settled cache item to JSON."""
    return json.dumps({"data": item.data, "expiresAt": item.expires_at})


def _deserialize_item(data: bytes | str) -> CacheItem[Any]:
    """Deserialize JSON to a cache item."""
    if isinstance(data, bytes):
        data = data.decode("utf-8")
    obj = json.loads(data)
    return CacheItem(data=obj["data"], expires_at=obj["expiresAt"])


class RedisCache(MemoryCache):
    """Cache store that keeps items in memory and mirrors them to Redis.

    Items are written to Redis only once they have settled, pending futures
    are never persisted. Keys missing from memory are read from Redis and
    kept in memory afterwards.

    The client is a synchronous ``redis.Redis`` because the store contract
    is synchronous, so every Redis round trip in ``get``, ``has``, ``remove``,
    ``clear`` and the commit after a resolve blocks the event loop. Point it
    at a low-latency server, or keep loop-bound hot paths on MemoryCache.
    """

    def __init__(
        self,
        client: Any,  # redis.Redis
        *,
        prefix: str = "swrev",
    ) -> None:
        super().__init__()
        self._client = client
        self._prefix = prefix

    def _cache_key(self, key: Key) -> str:
        """Generate full Redis key for cache entries."""
        return f"{self._prefix}:cache:{key}"

    def get(self, key: Key) -> CacheItem[Any] | None:
        """Get a cache item from memory, falling back to Redis."""
        item = super().get(key)
        if item is not None:
            return item

        data = self._client.get(self._cache_key(key))
        if data is None:
            return None
        item = _deserialize_item(data)
        self._elements[key] = item
        self._writes[key] = next(self._sequence)
        return item

    def has(self, key: Key) -> bool:
        """Check if the key is stored in memory or in Redis."""
        return super().has(key) or bool(self._client.exists(self._cache_key(key)))

    def remove(self, key: Key, *, broadcast: bool = False) -> None:
        """Delete a cache item from memory and Redis."""
        super().remove(key, broadcast=broadcast)
        self._client.delete(self._cache_key(key))

    def clear(self, *, broadcast: bool = False) -> None:
        """Delete all cache items, including every mirrored Redis key."""
        super().clear(broadcast=broadcast)
        # Use SCAN to find and delete all cache keys
        cursor = 0
        pattern = f"{self._prefix}:cache:*"
        while True:
            cursor, keys = self._client.scan(cursor, match=pattern, count=100)
            if keys:
                self._client.delete(*keys)
            if cursor == 0:
                break

    def _commit(self, key: Key, item: CacheItem[Any]) -> None:
        try:
            payload = _serialize_item(item)
        except (TypeError, ValueError) as e:
            logger.warning(
                "Not persisting %r, value is not JSON serializable: %s", key, e
            )
            return
        self._client.set(self._cache_key(key), payload)
