"""Keyed publish/subscribe used for cache changes and errors."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any, Protocol, runtime_checkable

from swrev.types import Key, Listener


@runtime_checkable
class EventBus(Protocol):
    """Event bus interface."""

    def subscribe(self, key: Key, listener: Listener) -> None:
        """Register a listener for the key."""
        ...

    def unsubscribe(self, key: Key, listener: Listener) -> None:
        """Remove a listener from the key."""
        ...

    def emit(self, key: Key, payload: Any) -> None:
        """Call every listener of the key with the payload."""
        ...


class MemoryEventBus:
    """In-memory event bus. Listeners are called in subscription order."""

    def __init__(self) -> None:
        self._listeners: dict[Key, list[Listener]] = {}

    def subscribe(self, key: Key, listener: Listener) -> None:
        listeners = self._listeners.setdefault(key, [])
        if listener not in listeners:
            listeners.append(listener)

    def unsubscribe(self, key: Key, listener: Listener) -> None:
        listeners = self._listeners.get(key)
        if listeners is None or listener not in listeners:
            return
        listeners.remove(listener)
        # Transient keys must not accumulate
        if not listeners:
            del self._listeners[key]

    def emit(self, key: Key, payload: Any) -> None:
        # Snapshot: listeners may unsubscribe themselves while being called
        for listener in list(self._listeners.get(key, ())):
            listener(payload)

    def listeners(self, key: Key) -> list[Listener]:
        """Listeners currently registered for the key."""
        return list(self._listeners.get(key, ()))

    def keys(self) -> Iterator[Key]:
        """Keys with at least one listener."""
        return iter(list(self._listeners))
