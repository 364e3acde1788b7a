"""Structured logging for gitscribe.

Parsers and services log through structlog with snake_case event names
(``diff_hunk_count_mismatch``, ``fetch_failed``) and keyword fields. The
library never configures logging on import; the CLI, or an embedding
application, calls :func:`configure_logging` once.

Output goes to stderr so command output on stdout stays machine readable:
- pretty console lines by default
- one JSON object per line when ``GITSCRIBE_LOG_FORMAT=json``

Usage:
    from gitscribe.logging import configure_logging, get_logger

    configure_logging(level=verbosity_to_level("info"))

    log = get_logger(__name__).bind(service="blame")
    log.info("blame_fetched", path="src/app.py", entries=12)
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

import structlog
from structlog.types import Processor

__all__ = [
    "LOG_FORMAT_ENV_VAR",
    "LOG_LEVEL_ENV_VAR",
    "bind_context",
    "clear_context",
    "configure_logging",
    "get_logger",
    "verbosity_to_level",
]

LOG_FORMAT_ENV_VAR = "GITSCRIBE_LOG_FORMAT"
LOG_LEVEL_ENV_VAR = "GITSCRIBE_LOG_LEVEL"

# Parsers warn on malformed input; anything chattier is opt-in
DEFAULT_LOG_LEVEL = "WARNING"

_VERBOSITY_LEVELS: dict[str, int] = {
    "error": logging.ERROR,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}


def verbosity_to_level(verbosity: str) -> int:
    """Map a config ``verbosity`` name to a :mod:`logging` level.

    Unknown names fall back to WARNING.
    """
    return _VERBOSITY_LEVELS.get(verbosity.lower(), logging.WARNING)


def _level_from_env() -> int:
    return verbosity_to_level(os.environ.get(LOG_LEVEL_ENV_VAR, DEFAULT_LOG_LEVEL))


def _json_requested() -> bool:
    return os.environ.get(LOG_FORMAT_ENV_VAR, "").lower() == "json"


def _pre_chain() -> list[Processor]:
    """Processors applied to both structlog and plain stdlib records."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _renderer(use_json: bool) -> list[Processor]:
    if use_json:
        return [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]
    return [
        structlog.dev.ConsoleRenderer(
            colors=sys.stderr.isatty(),
            exception_formatter=structlog.dev.plain_traceback,
        ),
    ]


def configure_logging(
    *,
    force_json: bool = False,
    level: int | None = None,
) -> None:
    """Configure structlog and the root stdlib logger.

    Event dicts are handed to a single stderr handler that renders them once,
    so structlog events and foreign stdlib records share one format.
    Subsequent calls replace the previous configuration.

    Args:
        force_json: Render JSON regardless of ``GITSCRIBE_LOG_FORMAT``.
        level: Log level. If None, reads ``GITSCRIBE_LOG_LEVEL``
            (default WARNING).

    Example:
        configure_logging()
        configure_logging(force_json=True, level=logging.DEBUG)
    """
    use_json = force_json or _json_requested()
    log_level = level if level is not None else _level_from_env()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_pre_chain(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(log_level)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *_renderer(use_json),
            ],
            foreign_pre_chain=_pre_chain(),
        )
    )

    root_logger = logging.getLogger()
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger, usually ``get_logger(__name__)``."""
    log: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return log


def bind_context(**context: Any) -> None:
    """Bind fields to every event logged from the current context.

    Backed by :mod:`contextvars`, so bindings follow asyncio tasks created
    afterwards.

    Example:
        bind_context(repository="/work/project")
    """
    structlog.contextvars.bind_contextvars(**context)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
