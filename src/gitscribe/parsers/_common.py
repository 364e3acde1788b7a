"""Helpers shared by the format parsers."""

from __future__ import annotations

from typing import Any

from gitscribe.exceptions import MalformedLineError


def reject_line(
    log: Any,
    event: str,
    *,
    parser: str,
    line_number: int,
    line: str,
    reason: str | None = None,
    strict: bool = False,
) -> None:
    """Report a line that matches no known grammar.

    Lenient parsers log a warning and carry on; strict parsers raise.

    Raises:
        MalformedLineError: If ``strict`` is True.
    """
    if strict:
        raise MalformedLineError(parser, line_number, line, reason)
    log.warning(event, line_number=line_number, line=line, reason=reason)


def to_int(value: str, default: int | None = None) -> int | None:
    """Parse a decimal integer, returning ``default`` when it is not one."""
    try:
        return int(value)
    except ValueError:
        return default
