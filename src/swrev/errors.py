"""Exceptions raised by swrev."""

from __future__ import annotations


class SWRError(Exception):
    """Base class for swrev errors."""


class KeyRequiredError(SWRError, ValueError):
    """Raised when an operation needs a key but the key resolved to nothing."""

    def __init__(self, operation: str) -> None:
        super().__init__(f"{operation} requires a key")
        self.operation = operation


class FetchError(SWRError):
    """Raised by the HTTP fetcher for a non-2xx response."""

    def __init__(self, url: str, status_code: int) -> None:
        super().__init__(f"GET {url} returned HTTP {status_code}")
        self.url = url
        self.status_code = status_code
