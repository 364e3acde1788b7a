"""Cached working-tree and index diffs for open files."""

from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass
from typing import Any

from gitscribe.config import CacheConfig, ParserConfig
from gitscribe.constants import DEFAULT_DIFF_TTL_SECONDS
from gitscribe.events import EventHandler, GitEvent, paths_from_payload
from gitscribe.models.diff import ChangedLines, Diff, DiffTotals, GutterMark, Hunk
from gitscribe.parsers.diff import changed_lines, classify_gutter, parse_diff
from gitscribe.services.base import CachedQueryService, Fetcher

__all__ = ["DiffKey", "DiffPair", "GitDiffService"]


@dataclass(frozen=True, slots=True)
class DiffKey:
    """Identity of one diff query: a path and which side of the index."""

    path: str
    staged: bool = False

    def __str__(self) -> str:
        return f"{self.path} ({'staged' if self.staged else 'unstaged'})"


@dataclass(frozen=True, slots=True)
class DiffPair:
    unstaged: list[Diff] | None
    staged: list[Diff] | None


class GitDiffService(CachedQueryService[DiffKey, list[Diff]]):
    """Diffs keyed by ``(path, staged)``.

    The fetcher receives a :class:`DiffKey` and returns parsed diffs or raw
    ``git diff`` text (``git diff --cached`` for staged keys).

    Staging events evict both sides of each named path. ``file:changed`` and
    ``file:saved`` re-fetch the unstaged diff of paths being tracked with
    :meth:`enable`.
    """

    name = "diff"
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
        fetcher: Fetcher[DiffKey] | None = None,
        *,
        parser_config: ParserConfig | None = None,
        **kwargs: Any,
    ) -> None:
        self._parser_config = parser_config or ParserConfig()
        super().__init__(fetcher, **kwargs)

    @classmethod
    def default_config(cls) -> CacheConfig:
        return CacheConfig(ttl_seconds=DEFAULT_DIFF_TTL_SECONDS)

    def _coerce(self, key: DiffKey, raw: Any) -> list[Diff] | None:
        if raw is None:
            return None
        if isinstance(raw, str):
            return parse_diff(raw, strict=self._parser_config.strict)
        return list(raw)

    def _extra_subscriptions(self) -> list[tuple[GitEvent, EventHandler]]:
        return [
            (GitEvent.FILE_CHANGED, self._on_file_changed),
            (GitEvent.FILE_SAVED, self._on_file_changed),
        ]

    def _on_file_changed(self, payload: Any) -> None:
        changed = {os.path.normpath(p) for p in paths_from_payload(payload)}
        tracked = [k for k in self._active if os.path.normpath(k.path) in changed]
        if not tracked:
            return

        try:
            asyncio.get_running_loop()
        except RuntimeError:
            # No loop to refetch on; the next get() will fetch fresh data.
            for key in tracked:
                self.invalidate(key)
            return

        for key in tracked:
            self.invalidate(key)
            self._spawn(self.get(key, use_cache=False))
        self._log.debug("tracked_paths_refreshing", paths=sorted(k.path for k in tracked))

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def get_diff(
        self, path: str, *, use_cache: bool = True, debounce: bool = True
    ) -> list[Diff] | None:
        """Unstaged (working tree vs index) diff of ``path``."""
        return await self.get(DiffKey(path), use_cache=use_cache, debounce=debounce)

    async def get_staged_diff(
        self, path: str, *, use_cache: bool = True, debounce: bool = True
    ) -> list[Diff] | None:
        """Staged (index vs HEAD) diff of ``path``."""
        return await self.get(
            DiffKey(path, staged=True), use_cache=use_cache, debounce=debounce
        )

    async def get_all_diffs(self, path: str, *, use_cache: bool = True) -> DiffPair:
        unstaged, staged = await asyncio.gather(
            self.get_diff(path, use_cache=use_cache),
            self.get_staged_diff(path, use_cache=use_cache),
        )
        return DiffPair(unstaged=unstaged, staged=staged)

    async def refresh(self, path: str) -> DiffPair:
        """Drop both sides of ``path`` and fetch them again immediately."""
        self.invalidate(DiffKey(path))
        self.invalidate(DiffKey(path, staged=True))
        unstaged, staged = await asyncio.gather(
            self.get_diff(path, use_cache=False, debounce=False),
            self.get_staged_diff(path, use_cache=False, debounce=False),
        )
        return DiffPair(unstaged=unstaged, staged=staged)

    async def _first_diff(self, path: str, staged: bool) -> Diff | None:
        diffs = await (self.get_staged_diff(path) if staged else self.get_diff(path))
        return diffs[0] if diffs else None

    async def get_changed_lines(self, path: str, *, staged: bool = False) -> ChangedLines:
        diff = await self._first_diff(path, staged)
        return changed_lines(diff) if diff is not None else ChangedLines()

    async def get_hunks(self, path: str, *, staged: bool = False) -> tuple[Hunk, ...]:
        diff = await self._first_diff(path, staged)
        return diff.hunks if diff is not None else ()

    async def get_hunk_for_line(
        self, path: str, line_number: int, *, staged: bool = False
    ) -> Hunk | None:
        diff = await self._first_diff(path, staged)
        return diff.find_hunk_for_line(line_number) if diff is not None else None

    async def get_diff_stats(self, path: str, *, staged: bool = False) -> DiffTotals:
        diff = await self._first_diff(path, staged)
        return diff.stats if diff is not None else DiffTotals()

    async def get_gutter_decorations(
        self,
        path: str,
        *,
        staged: bool = False,
        show_both: bool = False,
    ) -> list[GutterMark]:
        """Gutter marks for ``path``.

        With ``show_both`` the unstaged marks come first, followed by the
        staged ones; each mark records which side it came from.
        """
        proximity = self._parser_config.gutter_proximity
        if show_both:
            pair = await self.get_all_diffs(path)
            marks: list[GutterMark] = []
            if pair.unstaged:
                marks.extend(classify_gutter(pair.unstaged[0], proximity))
            if pair.staged:
                marks.extend(classify_gutter(pair.staged[0], proximity, staged=True))
            return marks

        diff = await self._first_diff(path, staged)
        if diff is None:
            return []
        return classify_gutter(diff, proximity, staged=staged)

    async def get_decoration_for_line(
        self, path: str, line_number: int, *, staged: bool = False
    ) -> GutterMark | None:
        marks = await self.get_gutter_decorations(path, staged=staged)
        return next((m for m in marks if m.line == line_number), None)

    async def has_unstaged_changes(self, path: str) -> bool:
        return bool(await self.get_diff(path))

    async def has_staged_changes(self, path: str) -> bool:
        return bool(await self.get_staged_diff(path))
