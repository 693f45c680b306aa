"""Shared pytest fixtures."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import pytest

from swrev import SWR, MemoryCache, MemoryEventBus


class CountingFetcher:
    """Fetcher returning canned values after a delay and counting calls."""

    def __init__(self, values: dict[str, Any], *, delay: float = 0.01) -> None:
        self.values = values
        self.delay = delay
        self.calls: list[str] = []

    async def __call__(self, key: str) -> Any:
        self.calls.append(key)
        await asyncio.sleep(self.delay)
        value = self.values[key]
        if isinstance(value, BaseException):
            raise value
        return value


@pytest.fixture
def cache() -> MemoryCache:
    """Create a fresh MemoryCache for each test."""
    return MemoryCache()


@pytest.fixture
def errors() -> MemoryEventBus:
    """Create a fresh error bus for each test."""
    return MemoryEventBus()


@pytest.fixture
def fetcher() -> CountingFetcher:
    """Create a fetcher serving a few fixed keys."""
    return CountingFetcher({"a": 42, "b": "bee", "none": None})


@pytest.fixture
def swr(cache: MemoryCache, errors: MemoryEventBus, fetcher: CountingFetcher) -> SWR:
    """Create an SWR engine wired to the shared fixtures."""
    return SWR(cache=cache, errors=errors, fetcher=fetcher)


@pytest.fixture
def settle(cache: MemoryCache) -> Callable[[], Awaitable[None]]:
    """Wait for in-flight fetches and cache resolution to finish."""

    async def wait() -> None:
        await asyncio.sleep(0.05)
        await cache.drain()

    return wait
