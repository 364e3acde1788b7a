"""gitscribe exception hierarchy.

All exceptions can be imported from this package:
    from gitscribe.exceptions import ConfigError, MalformedLineError
"""

from __future__ import annotations

# Base exception
from gitscribe.exceptions.base import GitScribeError

# Cache service exceptions
from gitscribe.exceptions.cache import (
    CacheError,
    FetchError,
    ServiceDisposedError,
)

# Configuration exceptions
from gitscribe.exceptions.config import ConfigError

# Parser exceptions
from gitscribe.exceptions.parse import MalformedLineError, ParseError

__all__ = [
    # Base
    "GitScribeError",
    # Cache
    "CacheError",
    "FetchError",
    "ServiceDisposedError",
    # Config
    "ConfigError",
    # Parse
    "MalformedLineError",
    "ParseError",
]
