"""Configuration for the SWR engine."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from swrev.adapters.base import SWRCache
from swrev.adapters.memory import MemoryCache
from swrev.duration import parse_duration
from swrev.events import EventBus, MemoryEventBus
from swrev.fetchers import http_fetcher
from swrev.triggers import TriggerInstaller, no_trigger
from swrev.types import Duration, Fetcher, Key


@dataclass(frozen=True, slots=True)
class RevalidateOptions:
    """Options for a single revalidation.

    ``fetcher`` and ``deduping_interval`` fall back to the engine options
    when left as None. ``force`` ignores the deduping interval.
    """

    force: bool = False
    fetcher: Fetcher | None = None
    deduping_interval: Duration | None = None


RevalidateFunction = Callable[[Key, RevalidateOptions], Awaitable[Any]]


@dataclass(frozen=True, slots=True)
class SWROptions:
    """Engine configuration.

    Every engine gets its own cache and error bus unless they are passed in.
    Durations are milliseconds or strings like "2s".
    """

    cache: SWRCache = field(default_factory=MemoryCache)
    errors: EventBus = field(default_factory=MemoryEventBus)
    fetcher: Fetcher = http_fetcher
    fallback_data: Any = None
    load_initial_cache: bool = True
    revalidate_on_start: bool = True
    deduping_interval: Duration = "2s"
    revalidate_on_focus: bool = True
    focus_throttle_interval: Duration = "5s"
    revalidate_on_reconnect: bool = True
    reconnect_when: TriggerInstaller = no_trigger
    focus_when: TriggerInstaller = no_trigger
    revalidate_function: RevalidateFunction | None = None

    def __post_init__(self) -> None:
        # Fail on construction rather than on the first fetch
        parse_duration(self.deduping_interval)
        parse_duration(self.focus_throttle_interval)
