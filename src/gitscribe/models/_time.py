"""Date helpers shared by BlameEntry and Commit."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Literal

DateStyle = Literal["short", "medium", "long", "relative"]

_UNITS: tuple[tuple[str, int], ...] = (
    ("year", 365 * 86400),
    ("month", 30 * 86400),
    ("day", 86400),
    ("hour", 3600),
    ("minute", 60),
)


def from_timestamp(timestamp: int | None) -> datetime | None:
    """Convert seconds since the epoch to an aware UTC datetime."""
    if timestamp is None:
        return None
    return datetime.fromtimestamp(timestamp, tz=UTC)


def relative_time(timestamp: int | None, now: datetime | None = None) -> str:
    """Render a timestamp as "3 days ago"."""
    if timestamp is None:
        return "unknown"
    current = now or datetime.now(tz=UTC)
    seconds = max(0, int(current.timestamp()) - timestamp)
    for unit, size in _UNITS:
        count = seconds // size
        if count > 0:
            return f"{count} {unit}{'s' if count > 1 else ''} ago"
    return f"{seconds} second{'s' if seconds != 1 else ''} ago"


def format_timestamp(
    timestamp: int | None,
    style: DateStyle = "medium",
    now: datetime | None = None,
) -> str:
    """Format a timestamp for display.

    Args:
        timestamp: Seconds since the epoch.
        style: ``short`` (2024-05-01), ``medium`` (May 01, 2024),
            ``long`` (2024-05-01 13:45:10 UTC) or ``relative``.
        now: Reference time for ``relative`` (defaults to the current time).
    """
    if style == "relative":
        return relative_time(timestamp, now)
    moment = from_timestamp(timestamp)
    if moment is None:
        return "unknown"
    if style == "short":
        return moment.strftime("%Y-%m-%d")
    if style == "long":
        return moment.strftime("%Y-%m-%d %H:%M:%S UTC")
    return moment.strftime("%b %d, %Y")
