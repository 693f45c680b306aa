"""Tests for package exports."""


def test_engine_exports_available() -> None:
    """Test that the engine API is importable from the package root."""
    from swrev import (
        SWR,
        CacheItem,
        KeyRequiredError,
        RevalidateOptions,
        Subscription,
        SWROptions,
    )

    # Just verify they're importable
    assert SWR is not None
    assert CacheItem is not None
    assert KeyRequiredError is not None
    assert RevalidateOptions is not None
    assert Subscription is not None
    assert SWROptions is not None


def test_collaborator_exports_available() -> None:
    """Test that stores, buses, fetchers and triggers are importable."""
    from swrev import (
        HttpFetcher,
        MemoryCache,
        MemoryEventBus,
        RedisCache,
        SignalTrigger,
        http_fetcher,
        no_trigger,
        parse_duration,
    )

    assert MemoryCache is not None
    assert RedisCache is not None
    assert MemoryEventBus is not None
    assert HttpFetcher is not None
    assert http_fetcher is not None
    assert SignalTrigger is not None
    assert no_trigger is not None
    assert parse_duration is not None
