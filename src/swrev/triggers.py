"""Environment-driven revalidation triggers.

A trigger installer has the signature ``(notify, options) -> teardown``:
it arranges for ``notify`` to be called whenever its signal fires and may
return a callable that removes that arrangement again.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass

from swrev.duration import parse_duration
from swrev.types import Duration, Teardown

Notify = Callable[[], None]
Clock = Callable[[], float]


@dataclass(frozen=True, slots=True)
class FocusOptions:
    """Options passed to the focus trigger installer."""

    enabled: bool
    throttle_interval: int  # milliseconds


@dataclass(frozen=True, slots=True)
class NetworkOptions:
    """Options passed to the reconnect trigger installer."""

    enabled: bool


TriggerOptions = FocusOptions | NetworkOptions
TriggerInstaller = Callable[[Notify, TriggerOptions], Teardown | None]


def no_trigger(notify: Notify, options: TriggerOptions) -> None:
    """Install nothing. There is no window to listen to outside a browser."""
    return None


def throttle(
    fn: Notify, interval: Duration, *, clock: Clock = time.monotonic
) -> Notify:
    """Wrap fn so it runs at most once per interval."""
    interval_ms = parse_duration(interval)
    last: float | None = None

    def throttled() -> None:
        nonlocal last
        now = clock() * 1000
        if last is None or now - last > interval_ms:
            last = now
            fn()

    return throttled


class SignalTrigger:
    """Trigger installer fired by the application itself.

    Pass an instance as ``focus_when`` or ``reconnect_when`` and call
    ``fire()`` from whatever tells the application it regained focus or
    reconnected. Focus installations are throttled by their
    ``throttle_interval``.

    Usage:
        reconnected = SignalTrigger()
        swr = SWR(fetcher=fetch, reconnect_when=reconnected)
        swr.subscribe("/api/user", on_data)
        reconnected.fire()  # revalidates "/api/user"
    """

    def __init__(self, *, clock: Clock = time.monotonic) -> None:
        self._notifiers: list[Notify] = []
        self._clock = clock

    def __call__(self, notify: Notify, options: TriggerOptions) -> Teardown | None:
        if not options.enabled:
            return None

        handler = notify
        if isinstance(options, FocusOptions):
            handler = throttle(notify, options.throttle_interval, clock=self._clock)
        self._notifiers.append(handler)

        def teardown() -> None:
            if handler in self._notifiers:
                self._notifiers.remove(handler)

        return teardown

    @property
    def installed(self) -> int:
        """Number of notify callbacks currently installed."""
        return len(self._notifiers)

    def fire(self) -> None:
        """Notify every installed callback."""
        for notify in list(self._notifiers):
            notify()
