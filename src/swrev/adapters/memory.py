"""In-memory cache store."""

from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Any

from swrev.events import MemoryEventBus
from swrev.types import CacheItem, Key, Listener

logger = logging.getLogger(__name__)


class MemoryCache:
    """In-memory cache store with per-key change notifications.

    Every ``set`` is tagged with a write sequence number. The resolve step
    that follows only commits when the key still carries that number, so a
    late future never clobbers a newer write or resurrects a removed key.
    Must be used from inside a running event loop.
    """

    def __init__(self) -> None:
        self._elements: dict[Key, CacheItem[Any]] = {}
        self._writes: dict[Key, int] = {}
        self._sequence = itertools.count(1)
        self._events = MemoryEventBus()
        self._pending: set[asyncio.Task[None]] = set()

    def get(self, key: Key) -> CacheItem[Any] | None:
        """Get a cache item by key.

        Callers are expected to check has() first; absent keys return None.
        """
        return self._elements.get(key)

    def set(self, key: Key, item: CacheItem[Any]) -> None:
        """Store a cache item and resolve it on a later loop iteration."""
        write = next(self._sequence)
        self._elements[key] = item
        self._writes[key] = write

        task = asyncio.get_running_loop().create_task(self._resolve(key, item, write))
        self._pending.add(task)
        task.add_done_callback(self._on_resolved)

    def remove(self, key: Key, *, broadcast: bool = False) -> None:
        """Delete a cache item, optionally broadcasting None first."""
        if broadcast:
            self.broadcast(key, None)
        self._elements.pop(key, None)
        self._writes.pop(key, None)

    def clear(self, *, broadcast: bool = False) -> None:
        """Delete all cache items, optionally broadcasting None for each."""
        if broadcast:
            for key in list(self._elements):
                self.broadcast(key, None)
        self._elements.clear()
        self._writes.clear()

    def has(self, key: Key) -> bool:
        """Check if the key is stored."""
        return key in self._elements

    def subscribe(self, key: Key, listener: Listener) -> None:
        """Listen for value changes of the key."""
        self._events.subscribe(key, listener)

    def unsubscribe(self, key: Key, listener: Listener) -> None:
        """Stop listening for value changes of the key."""
        self._events.unsubscribe(key, listener)

    def broadcast(self, key: Key, data: Any) -> None:
        """Notify all listeners of the key."""
        self._events.emit(key, data)

    async def drain(self) -> None:
        """Wait until every scheduled resolve step has finished."""
        while self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    def _is_current(self, key: Key, write: int) -> bool:
        return self._writes.get(key) == write

    def _commit(self, key: Key, item: CacheItem[Any]) -> None:
        """Called once an item settled to a value and is still current."""

    async def _resolve(self, key: Key, item: CacheItem[Any], write: int) -> None:
        data: Any
        if isinstance(item.data, asyncio.Future):
            future = item.data
            try:
                data = await future
            except asyncio.CancelledError:
                if not future.cancelled():
                    raise
                data = None
            except Exception as e:
                logger.debug("Cache item for %r failed to resolve: %r", key, e)
                data = None
        else:
            data = item.data

        if not self._is_current(key, write):
            logger.debug("Dropping superseded write for %r", key)
            return

        if data is None:
            # Resolved to nothing: forget the key without telling anyone
            logger.debug("Cache item for %r resolved to None, removing", key)
            self.remove(key)
            return

        item.data = data
        self._commit(key, item)
        self.broadcast(key, data)

    def _on_resolved(self, task: asyncio.Task[None]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("Cache listener failed while resolving", exc_info=error)
