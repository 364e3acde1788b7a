"""Working-tree status value objects."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum

__all__ = [
    "FileChangeKind",
    "FileStatus",
    "StatusGroups",
    "StatusReport",
]

# Characters that mean "no change" in either status column.
_UNCHANGED = frozenset({".", " "})


class FileChangeKind(str, Enum):
    """Single classification of a status entry, most specific first."""

    UNMERGED = "unmerged"
    IGNORED = "ignored"
    UNTRACKED = "untracked"
    RENAMED = "renamed"
    COPIED = "copied"
    DELETED = "deleted"
    ADDED = "added"
    MODIFIED = "modified"
    UNKNOWN = "unknown"


_KIND_ICONS: dict[FileChangeKind, str] = {
    FileChangeKind.MODIFIED: "~",
    FileChangeKind.ADDED: "+",
    FileChangeKind.DELETED: "-",
    FileChangeKind.RENAMED: "→",
    FileChangeKind.COPIED: "⎘",
    FileChangeKind.UNTRACKED: "?",
    FileChangeKind.IGNORED: "!",
    FileChangeKind.UNMERGED: "✕",
}

_KIND_COLORS: dict[FileChangeKind, str] = {
    FileChangeKind.MODIFIED: "yellow",
    FileChangeKind.ADDED: "green",
    FileChangeKind.DELETED: "red",
    FileChangeKind.RENAMED: "blue",
    FileChangeKind.COPIED: "blue",
    FileChangeKind.UNTRACKED: "gray",
    FileChangeKind.IGNORED: "dark_gray",
    FileChangeKind.UNMERGED: "orange",
}


@dataclass(frozen=True, slots=True)
class FileStatus:
    """One path's index and working-tree state.

    Attributes:
        path: Current path of the file.
        old_path: Rename/copy source path.
        index_status: Index column character (``.`` when unchanged).
        worktree_status: Working-tree column character (``.`` when unchanged).
        is_staged: True when the index column records a change.
        is_untracked: True for ``?`` entries.
        is_ignored: True for ``!`` entries.
        is_unmerged: True for conflicted entries.
        is_renamed: True for renames (requires ``old_path``).
        is_copied: True for copies.
        similarity: Rename/copy similarity score (0-100).
    """

    path: str
    old_path: str | None = None
    index_status: str = "."
    worktree_status: str = "."
    is_staged: bool = False
    is_untracked: bool = False
    is_ignored: bool = False
    is_unmerged: bool = False
    is_renamed: bool = False
    is_copied: bool = False
    similarity: int = 0

    def __post_init__(self) -> None:
        if self.is_renamed and not self.old_path:
            raise ValueError(f"Renamed entry {self.path!r} has no old_path")
        if self.is_renamed and self.is_copied:
            raise ValueError(f"Entry {self.path!r} cannot be both renamed and copied")
        if not 0 <= self.similarity <= 100:
            raise ValueError(f"Similarity out of range: {self.similarity}")

    @property
    def is_modified(self) -> bool:
        return "M" in (self.index_status, self.worktree_status) and not self.is_untracked

    @property
    def is_added(self) -> bool:
        return "A" in (self.index_status, self.worktree_status) and not self.is_untracked

    @property
    def is_deleted(self) -> bool:
        return "D" in (self.index_status, self.worktree_status)

    @property
    def has_staged_changes(self) -> bool:
        return self.is_staged and self.index_status not in _UNCHANGED

    @property
    def has_unstaged_changes(self) -> bool:
        return (
            self.worktree_status not in _UNCHANGED
            and not self.is_untracked
            and not self.is_ignored
        )

    @property
    def change_type(self) -> FileChangeKind:
        if self.is_unmerged:
            return FileChangeKind.UNMERGED
        if self.is_ignored:
            return FileChangeKind.IGNORED
        if self.is_untracked:
            return FileChangeKind.UNTRACKED
        if self.is_renamed:
            return FileChangeKind.RENAMED
        if self.is_copied:
            return FileChangeKind.COPIED
        if self.is_deleted:
            return FileChangeKind.DELETED
        if self.is_added:
            return FileChangeKind.ADDED
        if self.is_modified:
            return FileChangeKind.MODIFIED
        return FileChangeKind.UNKNOWN

    @property
    def status_description(self) -> str:
        kind = self.change_type
        if kind is FileChangeKind.MODIFIED:
            if self.has_staged_changes and self.has_unstaged_changes:
                return "Modified (staged and unstaged)"
            return "Modified (staged)" if self.has_staged_changes else "Modified"
        if kind is FileChangeKind.ADDED:
            return "Added (staged)" if self.is_staged else "Added"
        if kind is FileChangeKind.DELETED:
            return "Deleted (staged)" if self.is_staged else "Deleted"
        if kind is FileChangeKind.RENAMED:
            return f"Renamed from {self.old_path}"
        if kind is FileChangeKind.COPIED:
            return f"Copied from {self.old_path}"
        if kind is FileChangeKind.UNMERGED:
            return "Unmerged (conflict)"
        return kind.value.capitalize()

    @property
    def short_status(self) -> str:
        if self.is_unmerged:
            return "U"
        if self.is_untracked:
            return "?"
        if self.is_ignored:
            return "!"
        return f"{self.index_status}{self.worktree_status}"

    @property
    def status_icon(self) -> str:
        return _KIND_ICONS.get(self.change_type, "·")

    @property
    def status_color(self) -> str:
        return _KIND_COLORS.get(self.change_type, "white")

    @property
    def display_path(self) -> str:
        if self.is_renamed and self.old_path:
            return f"{self.old_path} → {self.path}"
        if self.is_copied and self.old_path:
            return f"{self.old_path} ⎘ {self.path}"
        return self.path

    @property
    def can_stage(self) -> bool:
        return self.has_unstaged_changes or self.is_untracked

    @property
    def can_unstage(self) -> bool:
        return self.has_staged_changes

    @property
    def can_discard(self) -> bool:
        return self.has_unstaged_changes

    def __str__(self) -> str:
        return f"{self.short_status} {self.display_path}"

    def to_dict(self) -> dict[str, object]:
        data = asdict(self)
        data["change_type"] = self.change_type.value
        return data


@dataclass(frozen=True, slots=True)
class StatusReport:
    """Result of parsing one ``git status --porcelain`` run.

    Branch fields are only populated by the v2 format.
    """

    branch: str | None = None
    upstream: str | None = None
    oid: str | None = None
    ahead: int = 0
    behind: int = 0
    files: tuple[FileStatus, ...] = ()

    @property
    def is_clean(self) -> bool:
        return not any(not f.is_ignored for f in self.files)

    @property
    def staged(self) -> tuple[FileStatus, ...]:
        return tuple(f for f in self.files if f.has_staged_changes)

    @property
    def unstaged(self) -> tuple[FileStatus, ...]:
        return tuple(f for f in self.files if f.has_unstaged_changes)

    def to_dict(self) -> dict[str, object]:
        return {
            "branch": self.branch,
            "upstream": self.upstream,
            "oid": self.oid,
            "ahead": self.ahead,
            "behind": self.behind,
            "files": [f.to_dict() for f in self.files],
        }


@dataclass(frozen=True, slots=True)
class StatusGroups:
    """Status entries bucketed for a source-control panel.

    An entry with both staged and unstaged changes appears in both buckets.
    """

    staged: tuple[FileStatus, ...] = field(default_factory=tuple)
    unstaged: tuple[FileStatus, ...] = field(default_factory=tuple)
    untracked: tuple[FileStatus, ...] = field(default_factory=tuple)
    ignored: tuple[FileStatus, ...] = field(default_factory=tuple)
    unmerged: tuple[FileStatus, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, object]:
        return {
            name: [f.to_dict() for f in getattr(self, name)]
            for name in ("staged", "unstaged", "untracked", "ignored", "unmerged")
        }
