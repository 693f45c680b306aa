"""Core types for the swrev data layer."""

from __future__ import annotations

import asyncio
import inspect
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

T = TypeVar("T")

Key = str

# Duration type alias
Duration = str | int  # "2s", "5m" or milliseconds

Listener = Callable[[Any], Any]
Fetcher = Callable[..., Awaitable[Any]]
Teardown = Callable[[], None]


@dataclass(slots=True)
class CacheItem(Generic[T]):
    """A cached value, or a future resolving to it, with an expiration time.

    ``expires_at`` is a Unix timestamp in milliseconds. ``None`` means the
    item is already expired and will be replaced by fresh data on the next
    revalidation.
    """

    data: T | asyncio.Future[T]
    expires_at: int | None = None

    def __post_init__(self) -> None:
        # Coroutines can only be awaited once; store them as tasks.
        if inspect.isawaitable(self.data) and not isinstance(
            self.data, asyncio.Future
        ):
            self.data = asyncio.ensure_future(self.data)

    def is_resolving(self) -> bool:
        """Check if the data is still a pending future."""
        return isinstance(self.data, asyncio.Future)

    def has_expired(self) -> bool:
        """Check if the item has no expiration or it is in the past."""
        return self.expires_at is None or self.expires_at <= time.time() * 1000

    def expires_in(self, duration: Duration) -> CacheItem[T]:
        """Set the expiration time relative to now. Returns self."""
        from swrev.duration import parse_duration

        self.expires_at = int(time.time() * 1000) + parse_duration(duration)
        return self
