"""Tests for the in-memory event bus."""

import pytest

from swrev import EventBus, MemoryEventBus


@pytest.fixture
def bus() -> MemoryEventBus:
    return MemoryEventBus()


class TestMemoryEventBus:
    """Tests for MemoryEventBus."""

    def test_satisfies_protocol(self, bus: MemoryEventBus) -> None:
        assert isinstance(bus, EventBus)

    def test_emit_calls_listeners_in_subscription_order(
        self, bus: MemoryEventBus
    ) -> None:
        calls: list[tuple[str, object]] = []
        bus.subscribe("a", lambda payload: calls.append(("first", payload)))
        bus.subscribe("a", lambda payload: calls.append(("second", payload)))

        bus.emit("a", 1)

        assert calls == [("first", 1), ("second", 1)]

    def test_emit_only_reaches_the_key(self, bus: MemoryEventBus) -> None:
        calls: list[object] = []
        bus.subscribe("a", calls.append)
        bus.emit("b", 1)
        assert calls == []

    def test_emit_without_listeners_is_noop(self, bus: MemoryEventBus) -> None:
        bus.emit("missing", 1)

    def test_duplicate_subscribe_is_ignored(self, bus: MemoryEventBus) -> None:
        calls: list[object] = []
        bus.subscribe("a", calls.append)
        bus.subscribe("a", calls.append)

        bus.emit("a", 1)

        assert calls == [1]
        assert len(bus.listeners("a")) == 1

    def test_unsubscribe_unknown_listener_is_noop(self, bus: MemoryEventBus) -> None:
        bus.unsubscribe("a", print)
        bus.subscribe("a", repr)
        bus.unsubscribe("a", print)
        assert bus.listeners("a") == [repr]

    def test_unsubscribe_prunes_empty_keys(self, bus: MemoryEventBus) -> None:
        bus.subscribe("a", repr)
        bus.subscribe("b", repr)
        bus.unsubscribe("a", repr)

        assert list(bus.keys()) == ["b"]

    def test_listener_may_unsubscribe_while_emitting(
        self, bus: MemoryEventBus
    ) -> None:
        calls: list[str] = []

        def once(payload: object) -> None:
            calls.append("once")
            bus.unsubscribe("a", once)

        bus.subscribe("a", once)
        bus.subscribe("a", lambda payload: calls.append("always"))

        bus.emit("a", 1)
        bus.emit("a", 2)

        assert calls == ["once", "always", "always"]

    def test_listener_errors_propagate(self, bus: MemoryEventBus) -> None:
        def broken(payload: object) -> None:
            raise RuntimeError("listener")

        bus.subscribe("a", broken)
        with pytest.raises(RuntimeError, match="listener"):
            bus.emit("a", 1)
