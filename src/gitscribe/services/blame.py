"""Cached blame queries for open files."""

from __future__ import annotations

from collections.abc import AsyncIterable, Iterable
from dataclasses import dataclass
from typing import Any

from gitscribe.config import CacheConfig, ParserConfig
from gitscribe.constants import DEFAULT_BLAME_TTL_SECONDS, DEFAULT_REVISION
from gitscribe.events import GitEvent
from gitscribe.models.blame import BlameCommit, BlameEntry
from gitscribe.parsers.blame import (
    BlameStreamParser,
    EntryCallback,
    create_line_map,
    parse_blame,
    unique_commits,
)
from gitscribe.services.base import CachedQueryService, Fetcher

__all__ = [
    "BlameDecoration",
    "BlameHover",
    "BlameKey",
    "GitBlameService",
]

#: Annotations longer than this are shortened with an ellipsis
ANNOTATION_MAX_LENGTH = 40


@dataclass(frozen=True, slots=True)
class BlameKey:
    """Identity of one blame query."""

    path: str
    revision: str = DEFAULT_REVISION

    def __str__(self) -> str:
        return f"{self.path}@{self.revision}"


@dataclass(frozen=True, slots=True)
class BlameDecoration:
    """Per-line gutter data derived from a blame entry."""

    line: int
    sha: str
    short_sha: str
    author: str | None
    author_time: int | None
    summary: str | None
    annotation: str
    tooltip: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "line": self.line,
            "sha": self.sha,
            "short_sha": self.short_sha,
            "author": self.author,
            "author_time": self.author_time,
            "summary": self.summary,
            "annotation": self.annotation,
            "tooltip": self.tooltip,
        }


@dataclass(frozen=True, slots=True)
class BlameHover:
    """Hover card for one blamed line."""

    sha: str
    short_sha: str
    author: str | None
    author_mail: str | None
    author_time: int | None
    summary: str | None
    tooltip: str
    lines: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "sha": self.sha,
            "short_sha": self.short_sha,
            "author": self.author,
            "author_mail": self.author_mail,
            "author_time": self.author_time,
            "summary": self.summary,
            "tooltip": self.tooltip,
            "lines": self.lines,
        }


def _shorten(text: str, limit: int = ANNOTATION_MAX_LENGTH) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 1] + "…"


class GitBlameService(CachedQueryService[BlameKey, list[BlameEntry]]):
    """Blame results keyed by ``(path, revision)``.

    The fetcher receives a :class:`BlameKey` and returns either parsed
    entries or raw ``git blame --porcelain`` text.

    Every entry is flushed when history moves (commit, branch switch, pull);
    staging events only touch the named paths.

    Example:
        async with GitBlameService(run_blame, event_bus=bus) as blame:
            entry = await blame.get_blame_for_line("src/app.py", 42)
    """

    name = "blame"
    path_events = (
        GitEvent.FILES_STAGED,
        GitEvent.FILES_UNSTAGED,
        GitEvent.CHANGES_DISCARDED,
    )
    flush_events = (
        GitEvent.COMMIT_CREATED,
        GitEvent.BRANCH_SWITCHED,
        GitEvent.PULL_COMPLETED,
    )

    def __init__(
        self,
        fetcher: Fetcher[BlameKey] | None = None,
        *,
        parser_config: ParserConfig | None = None,
        **kwargs: Any,
    ) -> None:
        self._parser_config = parser_config or ParserConfig()
        super().__init__(fetcher, **kwargs)

    @classmethod
    def default_config(cls) -> CacheConfig:
        return CacheConfig(ttl_seconds=DEFAULT_BLAME_TTL_SECONDS)

    def _coerce(self, key: BlameKey, raw: Any) -> list[BlameEntry] | None:
        if raw is None:
            return None
        if isinstance(raw, str):
            return parse_blame(raw, strict=self._parser_config.strict)
        return list(raw)

    def _revision_of(self, key: BlameKey) -> str | None:
        return key.revision

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def get_blame(
        self,
        path: str,
        revision: str = DEFAULT_REVISION,
        *,
        use_cache: bool = True,
        debounce: bool = True,
    ) -> list[BlameEntry] | None:
        return await self.get(
            BlameKey(path, revision), use_cache=use_cache, debounce=debounce
        )

    async def get_blame_for_line(
        self, path: str, line_number: int, revision: str = DEFAULT_REVISION
    ) -> BlameEntry | None:
        entries = await self.get_blame(path, revision)
        if not entries:
            return None
        return create_line_map(entries).get(line_number)

    async def get_blame_for_range(
        self,
        path: str,
        start_line: int,
        end_line: int,
        revision: str = DEFAULT_REVISION,
    ) -> list[BlameEntry]:
        """Return entries overlapping ``start_line..end_line`` (inclusive)."""
        entries = await self.get_blame(path, revision)
        if not entries:
            return []
        return [
            e for e in entries if e.line_end >= start_line and e.line_start <= end_line
        ]

    async def get_unique_commits(
        self, path: str, revision: str = DEFAULT_REVISION
    ) -> list[BlameCommit]:
        entries = await self.get_blame(path, revision)
        return unique_commits(entries) if entries else []

    async def get_gutter_decorations(
        self, path: str, revision: str = DEFAULT_REVISION
    ) -> list[BlameDecoration]:
        """One decoration per blamed line, in line order."""
        entries = await self.get_blame(path, revision)
        if not entries:
            return []
        decorations: list[BlameDecoration] = []
        for entry in sorted(entries, key=lambda e: e.line_start):
            annotation = _shorten(entry.annotation())
            tooltip = entry.tooltip
            decorations.extend(
                BlameDecoration(
                    line=line,
                    sha=entry.sha,
                    short_sha=entry.short_sha,
                    author=entry.author,
                    author_time=entry.author_time,
                    summary=entry.summary,
                    annotation=annotation,
                    tooltip=tooltip,
                )
                for line in range(entry.line_start, entry.line_end + 1)
            )
        return decorations

    async def get_hover_tooltip(
        self, path: str, line_number: int, revision: str = DEFAULT_REVISION
    ) -> BlameHover | None:
        entry = await self.get_blame_for_line(path, line_number, revision)
        if entry is None:
            return None
        return BlameHover(
            sha=entry.sha,
            short_sha=entry.short_sha,
            author=entry.author,
            author_mail=entry.author_mail,
            author_time=entry.author_time,
            summary=entry.summary,
            tooltip=entry.tooltip,
            lines=f"{entry.line_start}-{entry.line_end}",
        )

    # -------------------------------------------------------------------------
    # Streaming
    # -------------------------------------------------------------------------

    async def stream_blame(
        self,
        path: str,
        lines: AsyncIterable[str] | Iterable[str],
        on_entry: EntryCallback | None = None,
        revision: str = DEFAULT_REVISION,
    ) -> list[BlameEntry]:
        """Parse blame output incrementally as it arrives.

        Entries reach ``on_entry`` as soon as their block completes. When the
        stream ends the full result is cached, unless the key was invalidated
        while streaming.

        Args:
            path: File being blamed.
            lines: Porcelain blame lines from a running ``git blame``.
            on_entry: Called with each completed entry.
            revision: Revision being blamed.

        Returns:
            All parsed entries.
        """
        self._ensure_open()
        key = BlameKey(path, revision)
        ticket = self._open_ticket(key)
        parser = BlameStreamParser(on_entry, strict=self._parser_config.strict)
        log = self._log.bind(key=str(key))
        log.debug("blame_stream_started")

        try:
            if isinstance(lines, AsyncIterable):
                async for line in lines:
                    parser.add_line(line)
            else:
                for line in lines:
                    parser.add_line(line)

            entries = parser.finish()
            stored = self._store_if_current(key, entries, ticket)
        finally:
            self._close_ticket(key, ticket)
        log.debug("blame_stream_finished", entries=len(entries), cached=stored)
        return entries
