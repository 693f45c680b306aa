"""Stale-while-revalidate engine.

Callers get the cached value immediately while the engine refreshes it in
the background and broadcasts fresh values to every subscriber:

    swr = SWR(fetcher=fetch_user)
    sub = swr.subscribe("/users/1", on_data=render, on_error=report)
    await swr.mutate("/users/1", lambda user: {**user, "name": "Ada"})
    sub.unsubscribe()
"""

from __future__ import annotations

import asyncio
import dataclasses
import inspect
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from swrev.adapters.base import SWRCache
from swrev.duration import parse_duration
from swrev.errors import KeyRequiredError, SWRError
from swrev.events import EventBus
from swrev.options import RevalidateFunction, RevalidateOptions, SWROptions
from swrev.triggers import FocusOptions, NetworkOptions
from swrev.types import CacheItem, Duration, Fetcher, Key, Listener, Teardown

logger = logging.getLogger(__name__)

T = TypeVar("T")

KeySource = Key | None | Callable[[], Key | None]


@dataclass(frozen=True, slots=True)
class Subscription(Generic[T]):
    """Handle returned by SWR.subscribe()."""

    unsubscribe: Teardown
    data_promise: asyncio.Future[T | None]
    revalidate_promise: asyncio.Future[T | None]


def _resolve_key(key: KeySource) -> Key | None:
    """Evaluate a key producer. Failures and empty keys mean no key."""
    if callable(key):
        try:
            key = key()
        except Exception as e:
            logger.debug("Key producer raised %r, treating as no key", e)
            return None
    return key or None


def _require_key(key: Key | None, operation: str) -> Key:
    if not key:
        raise KeyRequiredError(operation)
    return key


def _resolved(value: Any) -> asyncio.Future[Any]:
    future = asyncio.get_running_loop().create_future()
    future.set_result(value)
    return future


def _noop() -> None:
    pass


async def _settle(request: asyncio.Future[T]) -> T | None:
    """Resolve to None instead of raising; the error is already broadcast."""
    try:
        return await request
    except Exception:
        return None


class SWR:
    """Stale-while-revalidate engine over a pluggable cache store."""

    def __init__(self, options: SWROptions | None = None, **overrides: Any) -> None:
        if options is None:
            self.options = SWROptions(**overrides)
        else:
            self.options = dataclasses.replace(options, **overrides)
        self._background_tasks: set[asyncio.Future[Any]] = set()

    @property
    def cache(self) -> SWRCache:
        return self.options.cache

    @property
    def errors(self) -> EventBus:
        return self.options.errors

    async def revalidate(
        self,
        key: Key | None,
        *,
        force: bool = False,
        fetcher: Fetcher | None = None,
        deduping_interval: Duration | None = None,
    ) -> Any:
        """Fetch the key unless a fresh or in-flight value is cached.

        A fetch starts when forced, when the key is missing, or when the
        cached item expired. The in-flight request is stored right away and
        stays fresh for ``deduping_interval``, so concurrent and repeated
        calls share it instead of fetching again.

        Raises:
            KeyRequiredError: If the key is None or empty.
            Exception: Whatever the fetcher raised. The error is also
                emitted on the error bus under the key.
        """
        key = _require_key(key, "revalidate")
        fetcher = fetcher or self.options.fetcher
        if deduping_interval is None:
            deduping_interval = self.options.deduping_interval

        item = self.cache.get(key) if self.cache.has(key) else None
        # A resolving item is always reused: one fetch per key in flight
        if force or item is None or (item.has_expired() and not item.is_resolving()):
            loop = asyncio.get_running_loop()
            request = loop.create_task(self._request_data(key, fetcher))
            pending = CacheItem(data=loop.create_task(_settle(request)))
            self._write(key, pending.expires_in(deduping_interval), revalidate=False)
            return await asyncio.shield(request)

        logger.debug("Reusing cached value for %r", key)
        if isinstance(item.data, asyncio.Future):
            return await asyncio.shield(item.data)
        return item.data

    async def mutate(
        self,
        key: Key | None,
        value: Any,
        *,
        revalidate: bool = True,
        revalidate_options: RevalidateOptions | None = None,
        revalidate_function: RevalidateFunction | None = None,
    ) -> Any:
        """Replace the cached value of a key and notify subscribers.

        ``value`` may be a function receiving the current value (None when
        missing or still resolving) and returning the new one. The written
        item has no expiration, so the next revalidation refetches it.

        With ``revalidate`` the key is revalidated once subscribers received
        the written value, through ``revalidate_function`` when given, and that
        result is returned.

        Raises:
            KeyRequiredError: If the key is None or empty.
        """
        key = _require_key(key, "mutate")

        if callable(value):
            current = self.cache.get(key) if self.cache.has(key) else None
            state = None if current is None or current.is_resolving() else current.data
            value = value(state)

        item: CacheItem[Any] = CacheItem(data=value)
        follow_up = self._write(
            key,
            item,
            revalidate=revalidate,
            revalidate_options=revalidate_options,
            revalidate_function=revalidate_function,
        )
        if follow_up is not None:
            return await follow_up
        if isinstance(item.data, asyncio.Future):
            return await asyncio.shield(item.data)
        return item.data

    def get(self, key: Key | None) -> Any:
        """Return the settled cached value, or None.

        None is returned when the key was never fetched or its value is
        still being fetched. Never triggers a fetch.
        """
        if key and self.cache.has(key):
            item = self.cache.get(key)
            if item is not None and not item.is_resolving():
                return item.data
        return None

    async def get_wait(self, key: Key | None) -> Any:
        """Return the cached value, waiting for the next one if there is none.

        Raises the first error emitted for the key while waiting.
        """
        key = _require_key(key, "get_wait")
        current = self.get(key)
        if current is not None:
            return current

        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()

        def teardown() -> None:
            self.cache.unsubscribe(key, on_data)
            self.errors.unsubscribe(key, on_error)

        def on_data(data: Any) -> None:
            # None means the key was removed; keep waiting for a value
            if data is None or future.done():
                return
            teardown()
            future.set_result(data)

        def on_error(error: Any) -> None:
            if future.done():
                return
            teardown()
            if not isinstance(error, BaseException):
                error = SWRError(error)
            future.set_exception(error)

        self.cache.subscribe(key, on_data)
        self.errors.subscribe(key, on_error)
        try:
            return await future
        finally:
            teardown()

    def subscribe_data(self, key: Key | None, on_data: Listener) -> Teardown:
        """Listen for value changes of the key. Returns the unsubscribe function."""
        if not key:
            return _noop

        def handler(payload: Any) -> None:
            on_data(payload)

        self.cache.subscribe(key, handler)
        return lambda: self.cache.unsubscribe(key, handler)

    def subscribe_errors(self, key: Key | None, on_error: Listener) -> Teardown:
        """Listen for fetch errors of the key. Returns the unsubscribe function."""
        if not key:
            return _noop

        def handler(payload: Any) -> None:
            on_error(payload)

        self.errors.subscribe(key, handler)
        return lambda: self.errors.unsubscribe(key, handler)

    def subscribe(
        self,
        key: KeySource,
        on_data: Listener | None = None,
        on_error: Listener | None = None,
        **overrides: Any,
    ) -> Subscription[Any]:
        """Use the value of a key and follow its future changes.

        ``key`` may be a function returning the key; it is evaluated now
        and again whenever a focus or reconnect trigger fires. When it
        yields no key the initial revalidation and the data and error
        listeners are skipped. ``overrides`` replace SWROptions fields for
        this subscription only; the cache and the error bus are shared by the
        whole engine and cannot be overridden.

        Must be called from inside a running event loop.

        Raises:
            ValueError: If ``overrides`` names ``cache`` or ``errors``.
        """
        shared = sorted(overrides.keys() & {"cache", "errors"})
        if shared:
            names = ", ".join(shared)
            raise ValueError(f"Cannot override {names} per subscription")
        options = self.options
        if overrides:
            options = dataclasses.replace(options, **overrides)
        revalidate_options = RevalidateOptions(
            fetcher=options.fetcher,
            deduping_interval=options.deduping_interval,
        )
        current_key = _resolve_key(key)

        if options.load_initial_cache:
            cached = self.get(current_key)
        else:
            cached = options.fallback_data
        if cached is not None and on_data is not None:
            on_data(cached)

        if options.revalidate_on_start and current_key is not None:
            revalidate_promise = self._spawn(
                self._dispatch_revalidate(
                    current_key, revalidate_options, options.revalidate_function
                )
            )
        else:
            revalidate_promise = _resolved(None)
        data_promise = _resolved(cached) if cached is not None else revalidate_promise

        unsubscribe_data = unsubscribe_errors = None
        if on_data is not None:
            unsubscribe_data = self.subscribe_data(current_key, on_data)
        if on_error is not None:
            unsubscribe_errors = self.subscribe_errors(current_key, on_error)

        def revalidate_current() -> None:
            trigger_key = _resolve_key(key)
            if trigger_key is None:
                logger.debug("Trigger fired without a key, skipping revalidation")
                return
            logger.debug("Trigger revalidating %r", trigger_key)
            self._spawn(
                self._dispatch_revalidate(
                    trigger_key, revalidate_options, options.revalidate_function
                )
            )

        unsubscribe_focus = options.focus_when(
            revalidate_current,
            FocusOptions(
                enabled=options.revalidate_on_focus,
                throttle_interval=parse_duration(options.focus_throttle_interval),
            ),
        )
        unsubscribe_network = options.reconnect_when(
            revalidate_current,
            NetworkOptions(enabled=options.revalidate_on_reconnect),
        )

        teardowns = [
            unsubscribe_data,
            unsubscribe_errors,
            unsubscribe_focus,
            unsubscribe_network,
        ]

        def unsubscribe() -> None:
            while teardowns:
                teardown = teardowns.pop(0)
                if teardown is not None:
                    teardown()

        return Subscription(
            unsubscribe=unsubscribe,
            data_promise=data_promise,
            revalidate_promise=revalidate_promise,
        )

    def clear(
        self,
        keys: Key | Iterable[Key] | None = None,
        *,
        broadcast: bool = False,
    ) -> None:
        """Remove the given keys from the cache, or every key if None."""
        if keys is None:
            self.cache.clear(broadcast=broadcast)
            return
        if isinstance(keys, str):
            keys = [keys]
        for key in keys:
            self.cache.remove(key, broadcast=broadcast)

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    def _write(
        self,
        key: Key,
        item: CacheItem[Any],
        *,
        revalidate: bool,
        revalidate_options: RevalidateOptions | None = None,
        revalidate_function: RevalidateFunction | None = None,
    ) -> Awaitable[Any] | None:
        """Store an item, returning the follow-up revalidation if requested.

        ``revalidate`` has no default: revalidate() writes through here with
        False, so a write can only chain into a revalidation when mutate()
        asks for it. The follow-up starts after the written item resolved.
        """
        self.cache.set(key, item)
        if not revalidate:
            return None
        return self._revalidate_after_commit(
            key,
            item,
            revalidate_options or RevalidateOptions(),
            revalidate_function,
        )

    async def _revalidate_after_commit(
        self,
        key: Key,
        item: CacheItem[Any],
        options: RevalidateOptions,
        revalidate_function: RevalidateFunction | None,
    ) -> Any:
        """Revalidate once the store committed and broadcast the written item.

        Starting the fetch earlier would replace the item before its resolve
        step ran, and subscribers would never see the written value.
        """
        if isinstance(item.data, asyncio.Future):
            await asyncio.wait([item.data])
        # The resolve step for a plain value runs on the next loop iteration
        await asyncio.sleep(0)
        return await self._dispatch_revalidate(key, options, revalidate_function)

    def _dispatch_revalidate(
        self,
        key: Key,
        options: RevalidateOptions,
        revalidate_function: RevalidateFunction | None,
    ) -> Awaitable[Any]:
        """Revalidate through the override when given, else the built-in."""
        if revalidate_function is not None:
            return revalidate_function(key, options)
        return self.revalidate(
            key,
            force=options.force,
            fetcher=options.fetcher,
            deduping_interval=options.deduping_interval,
        )

    async def _request_data(self, key: Key, fetcher: Fetcher) -> Any:
        """Call the fetcher, emitting failures on the error bus."""
        logger.debug("Fetching %r", key)
        try:
            result = fetcher(key)
            if inspect.isawaitable(result):
                result = await result
            return result
        except Exception as e:
            logger.warning("Fetching %r failed: %r", key, e)
            self.errors.emit(key, e)
            raise

    def _spawn(self, awaitable: Awaitable[Any]) -> asyncio.Future[Any]:
        """Run a revalidation in the background, keeping a reference to it."""
        task = asyncio.ensure_future(awaitable)
        self._background_tasks.add(task)
        task.add_done_callback(self._on_background_done)
        return task

    def _on_background_done(self, task: asyncio.Future[Any]) -> None:
        self._background_tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            # Already emitted on the error bus by _request_data
            logger.debug("Background revalidation failed: %r", error)
