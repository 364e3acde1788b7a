"""Cached branch listings."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

from gitscribe.config import CacheConfig, ParserConfig
from gitscribe.constants import DEFAULT_BRANCH_TTL_SECONDS
from gitscribe.events import EventHandler, GitEvent
from gitscribe.models.branch import Branch
from gitscribe.parsers.branch import parse_branches, parse_refs
from gitscribe.services.base import CachedQueryService, Fetcher

__all__ = ["BranchGroups", "BranchKey", "BranchScope", "GitBranchService"]


class BranchScope(str, Enum):
    LOCAL = "local"
    REMOTE = "remote"
    ALL = "all"


@dataclass(frozen=True, slots=True)
class BranchKey:
    scope: BranchScope = BranchScope.LOCAL

    def __str__(self) -> str:
        return self.scope.value


@dataclass(frozen=True, slots=True)
class BranchGroups:
    """Branches bucketed for a branch switcher menu."""

    current: Branch | None
    local: tuple[Branch, ...]
    remote: tuple[Branch, ...]
    with_tracking: tuple[Branch, ...]
    without_tracking: tuple[Branch, ...]
    diverged: tuple[Branch, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "current": self.current.to_dict() if self.current else None,
            "local": [b.to_dict() for b in self.local],
            "remote": [b.to_dict() for b in self.remote],
            "with_tracking": [b.to_dict() for b in self.with_tracking],
            "without_tracking": [b.to_dict() for b in self.without_tracking],
            "diverged": [b.to_dict() for b in self.diverged],
        }


class GitBranchService(CachedQueryService[BranchKey, list[Branch]]):
    """Branch listings keyed by scope.

    The fetcher receives a :class:`BranchKey` and returns parsed branches or
    raw text. Raw text made of ``refs/...`` records is decoded with
    :func:`parse_refs`; anything else is read as :data:`BRANCH_FORMAT`
    records, with every entry of a remote-scope listing marked remote.

    Args:
        fetcher: Listing fetcher.
        current_branch: Checked-out branch used to flag ``is_current`` in raw
            listings. Updated from ``git:branch-switched`` payloads carrying
            ``{"branch": name}``.
    """

    name = "branch"
    flush_events = (
        GitEvent.BRANCH_CREATED,
        GitEvent.PUSH_COMPLETED,
        GitEvent.PULL_COMPLETED,
        GitEvent.FETCH_COMPLETED,
        GitEvent.COMMIT_CREATED,
    )

    def __init__(
        self,
        fetcher: Fetcher[BranchKey] | None = None,
        *,
        current_branch: str | None = None,
        parser_config: ParserConfig | None = None,
        **kwargs: Any,
    ) -> None:
        self.current_branch = current_branch
        self._parser_config = parser_config or ParserConfig()
        super().__init__(fetcher, **kwargs)

    @classmethod
    def default_config(cls) -> CacheConfig:
        return CacheConfig(ttl_seconds=DEFAULT_BRANCH_TTL_SECONDS)

    def _key_path(self, key: BranchKey) -> str | None:
        return None

    def _extra_subscriptions(self) -> list[tuple[GitEvent, EventHandler]]:
        return [(GitEvent.BRANCH_SWITCHED, self._on_branch_switched)]

    def _on_branch_switched(self, payload: Any) -> None:
        if isinstance(payload, Mapping) and isinstance(payload.get("branch"), str):
            self.current_branch = payload["branch"]
        self.invalidate_all()

    def _coerce(self, key: BranchKey, raw: Any) -> list[Branch] | None:
        if raw is None:
            return None
        if not isinstance(raw, str):
            return list(raw)

        strict = self._parser_config.strict
        records = [line for line in raw.splitlines() if line.strip()]
        if records and all(line.startswith("refs/") for line in records):
            return parse_refs(raw, current_branch=self.current_branch, strict=strict)

        branches = parse_branches(raw, self.current_branch, strict=strict)
        if key.scope is BranchScope.REMOTE:
            return [replace(b, is_remote=True, is_current=False) for b in branches]
        return branches

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def get_local_branches(self, *, use_cache: bool = True) -> list[Branch]:
        return await self.get(BranchKey(BranchScope.LOCAL), use_cache=use_cache) or []

    async def get_remote_branches(self, *, use_cache: bool = True) -> list[Branch]:
        return await self.get(BranchKey(BranchScope.REMOTE), use_cache=use_cache) or []

    async def get_all_branches(self, *, use_cache: bool = True) -> list[Branch]:
        return await self.get(BranchKey(BranchScope.ALL), use_cache=use_cache) or []

    async def get_current_branch(self) -> Branch | None:
        local = await self.get_local_branches()
        return next((b for b in local if b.is_current), None)

    async def get_branch(self, name: str) -> Branch | None:
        branches = await self.get_all_branches()
        return next((b for b in branches if b.name == name), None)

    async def get_diverged_branches(self) -> list[Branch]:
        """Local branches that are ahead of or behind their upstream."""
        local = await self.get_local_branches()
        return [b for b in local if b.has_upstream and (b.ahead > 0 or b.behind > 0)]

    async def get_grouped_branches(self) -> BranchGroups:
        local, remote = await asyncio.gather(
            self.get_local_branches(), self.get_remote_branches()
        )
        return BranchGroups(
            current=next((b for b in local if b.is_current), None),
            local=tuple(b for b in local if not b.is_current),
            remote=tuple(remote),
            with_tracking=tuple(b for b in local if b.has_upstream),
            without_tracking=tuple(
                b for b in local if not b.has_upstream and not b.is_current
            ),
            diverged=tuple(b for b in local if b.has_diverged),
        )

    async def refresh(self) -> list[Branch]:
        """Drop every listing and fetch local branches immediately."""
        self.invalidate_all()
        return (
            await self.get(BranchKey(BranchScope.LOCAL), use_cache=False, debounce=False)
            or []
        )
