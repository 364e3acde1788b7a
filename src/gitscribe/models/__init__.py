"""Immutable value objects populated by the gitscribe parsers."""

from __future__ import annotations

from gitscribe.models.blame import BlameCommit, BlameEntry
from gitscribe.models.branch import Branch, TrackingInfo
from gitscribe.models.commit import (
    Commit,
    CommitFile,
    CommitSummary,
    GraphLine,
    RefKind,
    RefName,
)
from gitscribe.models.diff import (
    ChangedLines,
    ChangeType,
    Diff,
    DiffStat,
    DiffTotals,
    GutterMark,
    GutterMarkType,
    Hunk,
    HunkLine,
    HunkLineType,
    HunkStats,
    LineRange,
    NameStatus,
    NumStat,
)
from gitscribe.models.status import (
    FileChangeKind,
    FileStatus,
    StatusGroups,
    StatusReport,
)

__all__ = [
    # Blame
    "BlameCommit",
    "BlameEntry",
    # Branches
    "Branch",
    "TrackingInfo",
    # Commits
    "Commit",
    "CommitFile",
    "CommitSummary",
    "GraphLine",
    "RefKind",
    "RefName",
    # Diffs
    "ChangeType",
    "ChangedLines",
    "Diff",
    "DiffStat",
    "DiffTotals",
    "GutterMark",
    "GutterMarkType",
    "Hunk",
    "HunkLine",
    "HunkLineType",
    "HunkStats",
    "LineRange",
    "NameStatus",
    "NumStat",
    # Status
    "FileChangeKind",
    "FileStatus",
    "StatusGroups",
    "StatusReport",
]
