"""Caching query services for blame, diff, and branch data.

Each service wraps an injected fetcher with a TTL cache, per-key debounce,
single-flight fetching, and event-driven invalidation.
"""

from __future__ import annotations

from gitscribe.services.base import (
    CacheEntry,
    CacheEntryInfo,
    CachedQueryService,
    CacheStats,
    Fetcher,
)
from gitscribe.services.blame import (
    BlameDecoration,
    BlameHover,
    BlameKey,
    GitBlameService,
)
from gitscribe.services.branch import (
    BranchGroups,
    BranchKey,
    BranchScope,
    GitBranchService,
)
from gitscribe.services.diff import DiffKey, DiffPair, GitDiffService

__all__ = [
    # Base
    "CacheEntry",
    "CacheEntryInfo",
    "CacheStats",
    "CachedQueryService",
    "Fetcher",
    # Blame
    "BlameDecoration",
    "BlameHover",
    "BlameKey",
    "GitBlameService",
    # Branches
    "BranchGroups",
    "BranchKey",
    "BranchScope",
    "GitBranchService",
    # Diffs
    "DiffKey",
    "DiffPair",
    "GitDiffService",
]
