"""Output formatting utilities for the gitscribe CLI."""

from __future__ import annotations

import json
from collections.abc import Iterable
from enum import Enum
from typing import Any

import click

from gitscribe.cli.console import console

__all__ = [
    "format_error",
    "format_json",
    "print_json",
    "to_jsonable",
]


def format_error(
    message: str, details: list[str] | None = None, suggestion: str | None = None
) -> str:
    """Format an error message with optional details and suggestion.

    Example:
        >>> print(format_error("Malformed status line", details=["Line: 3"]))
        Error: Malformed status line
          Line: 3
    """
    lines = [f"Error: {message}"]

    if details:
        for detail in details:
            lines.append(f"  {detail}")

    if suggestion:
        lines.append(f"Suggestion: {suggestion}")

    return "\n".join(lines)


def to_jsonable(data: Any) -> Any:
    """Convert model objects (anything with ``to_dict``) into plain data."""
    if hasattr(data, "to_dict"):
        return to_jsonable(data.to_dict())
    if isinstance(data, Enum):
        return data.value
    if isinstance(data, dict):
        return {str(k): to_jsonable(v) for k, v in data.items()}
    if isinstance(data, (str, int, float, bool)) or data is None:
        return data
    if isinstance(data, Iterable):
        return [to_jsonable(item) for item in data]
    return str(data)


def format_json(data: Any) -> str:
    """Format data as indented JSON.

    Example:
        >>> format_json({"files": 3})
        '{\\n  "files": 3\\n}'
    """
    return json.dumps(to_jsonable(data), indent=2)


def print_json(data: Any, *, pretty: bool = False) -> None:
    """Write ``data`` to stdout as JSON, syntax-highlighted when ``pretty``."""
    if pretty:
        console.print_json(data=to_jsonable(data))
    else:
        click.echo(format_json(data))
