"""Base protocol for cache stores."""

from typing import Any, Protocol, runtime_checkable

from swrev.types import CacheItem, Key, Listener


@runtime_checkable
class SWRCache(Protocol):
    """Cache store interface consumed by the SWR engine."""

    def get(self, key: Key) -> CacheItem[Any] | None:
        """Get a cache item by key. Returns None if absent; check has() first."""
        ...

    def set(self, key: Key, item: CacheItem[Any]) -> None:
        """Store a cache item and schedule its resolution."""
        ...

    def remove(self, key: Key, *, broadcast: bool = False) -> None:
        """Delete a cache item, optionally broadcasting None first."""
        ...

    def clear(self, *, broadcast: bool = False) -> None:
        """Delete all cache items, optionally broadcasting None for each."""
        ...

    def has(self, key: Key) -> bool:
        """Check if the key is stored."""
        ...

    def subscribe(self, key: Key, listener: Listener) -> None:
        """Listen for value changes of the key."""
        ...

    def unsubscribe(self, key: Key, listener: Listener) -> None:
        """Stop listening for value changes of the key."""
        ...

    def broadcast(self, key: Key, data: Any) -> None:
        """Notify all listeners of the key."""
        ...
