"""Line attribution (blame) value objects."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime

from gitscribe.constants import SHORT_SHA_LENGTH
from gitscribe.models._time import (
    DateStyle,
    format_timestamp,
    from_timestamp,
    relative_time,
)

__all__ = ["BlameCommit", "BlameEntry"]


@dataclass(frozen=True, slots=True)
class BlameEntry:
    """A contiguous range of lines attributed to one revision.

    Attributes:
        sha: Full 40-character revision id.
        line_start: First attributed line in the result file (1-indexed).
        line_end: Last attributed line (inclusive).
        author: Author name.
        author_mail: Author email without angle brackets.
        author_time: Author timestamp (seconds since epoch).
        author_tz: Author timezone offset, e.g. ``"+0200"``.
        committer: Committer name.
        committer_mail: Committer email without angle brackets.
        committer_time: Committer timestamp (seconds since epoch).
        committer_tz: Committer timezone offset.
        summary: First line of the commit message.
        previous_sha: Revision the lines came from before this one.
        previous_filename: Filename in ``previous_sha`` (rename tracking).
        filename: Filename in ``sha``.
        boundary: True when ``sha`` is the oldest reachable revision.
    """

    sha: str
    line_start: int
    line_end: int
    author: str | None = None
    author_mail: str | None = None
    author_time: int | None = None
    author_tz: str | None = None
    committer: str | None = None
    committer_mail: str | None = None
    committer_time: int | None = None
    committer_tz: str | None = None
    summary: str | None = None
    previous_sha: str | None = None
    previous_filename: str | None = None
    filename: str | None = None
    boundary: bool = False

    def __post_init__(self) -> None:
        if self.line_start < 1 or self.line_end < self.line_start:
            raise ValueError(
                f"Invalid blame range {self.line_start}-{self.line_end} for {self.sha}"
            )

    @property
    def short_sha(self) -> str:
        return self.sha[:SHORT_SHA_LENGTH]

    @property
    def line_count(self) -> int:
        return self.line_end - self.line_start + 1

    @property
    def date(self) -> datetime | None:
        """Author date as an aware UTC datetime."""
        return from_timestamp(self.author_time)

    def contains_line(self, line_number: int) -> bool:
        return self.line_start <= line_number <= self.line_end

    def relative_time(self, now: datetime | None = None) -> str:
        return relative_time(self.author_time, now)

    def formatted_date(
        self, style: DateStyle = "medium", now: datetime | None = None
    ) -> str:
        return format_timestamp(self.author_time, style, now)

    def annotation(
        self,
        *,
        show_hash: bool = True,
        show_author: bool = True,
        show_date: bool = True,
        date_style: DateStyle = "relative",
        now: datetime | None = None,
    ) -> str:
        """Build the inline annotation shown next to a blamed line.

        Example:
            >>> entry.annotation()
            'a1b2c3d • Jane Doe • 3 days ago'
        """
        parts: list[str] = []
        if show_hash:
            parts.append(self.short_sha)
        if show_author:
            parts.append(self.author or "Unknown")
        if show_date:
            parts.append(self.formatted_date(date_style, now))
        return " • ".join(parts)

    @property
    def tooltip(self) -> str:
        """Multi-line hover text."""
        return "\n".join(
            [
                f"Commit: {self.sha}",
                f"Author: {self.author} <{self.author_mail}>",
                f"Date: {self.formatted_date('long')}",
                "",
                self.summary or "",
            ]
        )

    @property
    def gutter_text(self) -> str:
        return f"{self.short_sha} {self.author or 'Unknown'}"

    def __str__(self) -> str:
        return (
            f"{self.short_sha} ({self.author} {self.relative_time()}) "
            f"{self.summary or ''}"
        ).rstrip()

    def to_dict(self) -> dict[str, object]:
        data = asdict(self)
        data["short_sha"] = self.short_sha
        return data


@dataclass(frozen=True, slots=True)
class BlameCommit:
    """Commit-level summary derived from a set of blame entries."""

    sha: str
    author: str | None
    author_mail: str | None
    author_time: int | None
    summary: str | None
    line_count: int = 0

    @property
    def short_sha(self) -> str:
        return self.sha[:SHORT_SHA_LENGTH]

    def to_dict(self) -> dict[str, object]:
        data = asdict(self)
        data["short_sha"] = self.short_sha
        return data
