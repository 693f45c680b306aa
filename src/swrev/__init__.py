"""swrev - Stale-while-revalidate data layer for asyncio."""

# Cache stores
from swrev.adapters import MemoryCache, RedisCache, SWRCache

# Duration parsing
from swrev.duration import parse_duration

# Errors
from swrev.errors import FetchError, KeyRequiredError, SWRError

# Events
from swrev.events import EventBus, MemoryEventBus

# Fetchers
from swrev.fetchers import HttpFetcher, http_fetcher

# Engine
from swrev.options import RevalidateOptions, SWROptions
from swrev.swr import SWR, Subscription

# Triggers
from swrev.triggers import (
    FocusOptions,
    NetworkOptions,
    SignalTrigger,
    no_trigger,
    throttle,
)

# Core types
from swrev.types import CacheItem, Duration, Key

__version__ = "0.1.0"

__all__ = [
    "SWR",
    "CacheItem",
    "Duration",
    "EventBus",
    "FetchError",
    "FocusOptions",
    "HttpFetcher",
    "Key",
    "KeyRequiredError",
    "MemoryCache",
    "MemoryEventBus",
    "NetworkOptions",
    "RedisCache",
    "RevalidateOptions",
    "SWRCache",
    "SWRError",
    "SWROptions",
    "SignalTrigger",
    "Subscription",
    "http_fetcher",
    "no_trigger",
    "parse_duration",
    "throttle",
]
