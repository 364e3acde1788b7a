from __future__ import annotations

from typing import Any

from gitscribe.exceptions.base import GitScribeError


class CacheError(GitScribeError):
    """Base exception for caching service errors.

    Attributes:
        message: Human-readable error message.
        service: Name of the service that raised the error.
    """

    def __init__(self, message: str, service: str | None = None) -> None:
        self.service = service
        super().__init__(message)


class FetchError(CacheError):
    """Exception describing a failed underlying fetch.

    Services never propagate this to ``get()`` callers; it is what fetchers
    may raise to signal a failure that should be logged and turned into a
    ``None`` result.

    Attributes:
        message: Human-readable error message.
        key: Cache key whose fetch failed.
    """

    def __init__(
        self,
        message: str,
        key: Any = None,
        service: str | None = None,
    ) -> None:
        self.key = key
        super().__init__(message, service=service)


class ServiceDisposedError(CacheError):
    """Exception raised when using a service after ``dispose()``."""

    def __init__(self, service: str) -> None:
        super().__init__(f"{service} has been disposed", service=service)
