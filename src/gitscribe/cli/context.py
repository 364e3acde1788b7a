"""CLI context and utilities for gitscribe.

This module provides the exit codes, the per-invocation context object, and
the bridge from Click's synchronous commands to coroutine functions.
"""

from __future__ import annotations

import asyncio
import functools
from collections.abc import Callable
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path
from typing import Any, TypeVar

from gitscribe.config import GitScribeConfig

__all__ = [
    "ExitCode",
    "CLIContext",
    "async_command",
]


class ExitCode(IntEnum):
    """Standard exit codes for the gitscribe CLI.

    - 0 for success
    - 1 for failure (unreadable input, invalid configuration)
    - 2 for malformed input rejected by ``--strict``
    - 130 for keyboard interrupt (128 + SIGINT=2)
    """

    SUCCESS = 0
    FAILURE = 1
    MALFORMED_INPUT = 2
    INTERRUPTED = 130


@dataclass(frozen=True, slots=True)
class CLIContext:
    """Type-safe CLI context containing global options and configuration.

    Attributes:
        config: Loaded gitscribe configuration.
        config_path: Path to config file (if specified via --config).
        verbosity: Verbosity level (0=default, 1=INFO, 2+=DEBUG).
        quiet: Suppress non-essential output.
    """

    config: GitScribeConfig
    config_path: Path | None = None
    verbosity: int = 0
    quiet: bool = False

    def strict(self, override: bool = False) -> bool:
        """Whether parsers should reject malformed lines."""
        return override or self.config.parser.strict


F = TypeVar("F", bound=Callable[..., Any])


def async_command(f: F) -> F:
    """Decorator to run async Click commands with asyncio.run().

    Example:
        >>> @click.command()
        >>> @async_command
        >>> async def blame(ctx: click.Context, source: str) -> None:
        >>>     await service.stream_blame(source, lines)
    """

    @functools.wraps(f)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        return asyncio.run(f(*args, **kwargs))

    return wrapper  # type: ignore[return-value]
