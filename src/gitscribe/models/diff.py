"""Unified diff value objects.

A parsed ``git diff`` is a list of :class:`Diff` (one per file), each holding
an ordered tuple of :class:`Hunk`. The ``--stat``, ``--numstat`` and
``--name-status`` companions decode into the flat records at the bottom of
this module.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum

__all__ = [
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
]

# =============================================================================
# Enums
# =============================================================================


class HunkLineType(str, Enum):
    """Classification of one line inside a hunk, keyed by its prefix."""

    ADDED = "added"
    REMOVED = "removed"
    UNCHANGED = "unchanged"
    NO_NEWLINE = "no_newline"

    @property
    def prefix(self) -> str:
        return _LINE_PREFIXES[self]


_LINE_PREFIXES: dict[HunkLineType, str] = {
    HunkLineType.ADDED: "+",
    HunkLineType.REMOVED: "-",
    HunkLineType.UNCHANGED: " ",
    HunkLineType.NO_NEWLINE: "\\",
}


class ChangeType(str, Enum):
    """How a file changed between the two sides of a diff."""

    ADDED = "added"
    DELETED = "deleted"
    MODIFIED = "modified"
    RENAMED = "renamed"
    COPIED = "copied"
    TYPE_CHANGED = "type_changed"
    UNKNOWN = "unknown"

    @property
    def icon(self) -> str:
        return _CHANGE_ICONS.get(self, "?")

    @property
    def color(self) -> str:
        return _CHANGE_COLORS.get(self, "gray")


_CHANGE_ICONS: dict[ChangeType, str] = {
    ChangeType.ADDED: "+",
    ChangeType.DELETED: "-",
    ChangeType.MODIFIED: "~",
    ChangeType.RENAMED: "→",
    ChangeType.COPIED: "⎘",
    ChangeType.TYPE_CHANGED: "~",
}

_CHANGE_COLORS: dict[ChangeType, str] = {
    ChangeType.ADDED: "green",
    ChangeType.DELETED: "red",
    ChangeType.MODIFIED: "yellow",
    ChangeType.RENAMED: "blue",
    ChangeType.COPIED: "cyan",
    ChangeType.TYPE_CHANGED: "yellow",
}


class GutterMarkType(str, Enum):
    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"


# =============================================================================
# Hunks
# =============================================================================


@dataclass(frozen=True, slots=True)
class HunkLine:
    """One typed line of a hunk, without its one-character prefix."""

    line_type: HunkLineType
    content: str

    def to_text(self) -> str:
        if self.line_type is HunkLineType.NO_NEWLINE:
            return f"\\ {self.content}"
        return f"{self.line_type.prefix}{self.content}"


@dataclass(frozen=True, slots=True)
class LineRange:
    """Inclusive line range; ``end < start`` for an empty side."""

    start: int
    end: int

    @property
    def is_empty(self) -> bool:
        return self.end < self.start


@dataclass(frozen=True, slots=True)
class HunkStats:
    added: int
    removed: int
    unchanged: int


@dataclass(frozen=True, slots=True)
class Hunk:
    """One contiguous change block of a file diff.

    Attributes:
        old_start: First line of the block in the old file.
        old_lines: Number of old-file lines covered (0 for pure insertion).
        new_start: First line of the block in the new file.
        new_lines: Number of new-file lines covered (0 for pure deletion).
        header: Raw ``@@`` header line as emitted by git.
        context: Trailing text after the closing ``@@`` (often a function name).
        lines: Typed lines in the order they appeared.
    """

    old_start: int
    old_lines: int
    new_start: int
    new_lines: int
    header: str = ""
    context: str = ""
    lines: tuple[HunkLine, ...] = ()

    def __post_init__(self) -> None:
        if min(self.old_start, self.old_lines, self.new_start, self.new_lines) < 0:
            raise ValueError(f"Negative hunk coordinates in {self.formatted_header!r}")

    def lines_of(self, line_type: HunkLineType) -> tuple[HunkLine, ...]:
        return tuple(line for line in self.lines if line.line_type is line_type)

    @property
    def added_lines(self) -> tuple[HunkLine, ...]:
        return self.lines_of(HunkLineType.ADDED)

    @property
    def removed_lines(self) -> tuple[HunkLine, ...]:
        return self.lines_of(HunkLineType.REMOVED)

    @property
    def context_lines(self) -> tuple[HunkLine, ...]:
        return self.lines_of(HunkLineType.UNCHANGED)

    @property
    def old_range(self) -> LineRange:
        return LineRange(self.old_start, self.old_start + self.old_lines - 1)

    @property
    def new_range(self) -> LineRange:
        return LineRange(self.new_start, self.new_start + self.new_lines - 1)

    def contains_line(self, line_number: int) -> bool:
        """Check whether a new-file line number falls inside this hunk."""
        new_range = self.new_range
        return new_range.start <= line_number <= new_range.end

    @property
    def formatted_header(self) -> str:
        header = (
            f"@@ -{self.old_start},{self.old_lines} "
            f"+{self.new_start},{self.new_lines} @@"
        )
        if self.context:
            header += f" {self.context}"
        return header

    @property
    def stats(self) -> HunkStats:
        return HunkStats(
            added=len(self.added_lines),
            removed=len(self.removed_lines),
            unchanged=len(self.context_lines),
        )

    @property
    def is_consistent(self) -> bool:
        """True when the typed lines agree with the header counts."""
        stats = self.stats
        return (
            stats.unchanged + stats.added == self.new_lines
            and stats.unchanged + stats.removed == self.old_lines
        )

    def to_text(self) -> str:
        return "\n".join([self.formatted_header, *(line.to_text() for line in self.lines)])

    def to_dict(self) -> dict[str, object]:
        return {
            "old_start": self.old_start,
            "old_lines": self.old_lines,
            "new_start": self.new_start,
            "new_lines": self.new_lines,
            "header": self.header,
            "context": self.context,
            "lines": [
                {"type": line.line_type.value, "content": line.content}
                for line in self.lines
            ],
        }


# =============================================================================
# File diffs
# =============================================================================


@dataclass(frozen=True, slots=True)
class DiffTotals:
    additions: int = 0
    deletions: int = 0

    @property
    def changes(self) -> int:
        return self.additions + self.deletions


@dataclass(frozen=True, slots=True)
class Diff:
    """One file's change in a unified diff.

    Attributes:
        old_path: Path on the old side (None for an added file).
        new_path: Path on the new side (None for a deleted file).
        change_type: Change classification.
        mode: File mode reported by git (``new file mode``, ``index`` line).
        old_mode: Previous mode for mode-only changes.
        old_hash: Abbreviated blob id of the old side.
        new_hash: Abbreviated blob id of the new side.
        similarity: Rename/copy similarity (0-100), if reported.
        is_binary: True for ``Binary files ... differ`` sections.
        hunks: Ordered hunks.
    """

    old_path: str | None
    new_path: str | None
    change_type: ChangeType = ChangeType.MODIFIED
    mode: str | None = None
    old_mode: str | None = None
    old_hash: str | None = None
    new_hash: str | None = None
    similarity: int | None = None
    is_binary: bool = False
    hunks: tuple[Hunk, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if self.old_path is None and self.new_path is None:
            raise ValueError("Diff requires at least one of old_path/new_path")

    @property
    def path(self) -> str:
        return self.new_path or self.old_path or ""

    @property
    def is_added(self) -> bool:
        return self.change_type is ChangeType.ADDED

    @property
    def is_deleted(self) -> bool:
        return self.change_type is ChangeType.DELETED

    @property
    def is_modified(self) -> bool:
        return self.change_type is ChangeType.MODIFIED

    @property
    def is_renamed(self) -> bool:
        return self.change_type is ChangeType.RENAMED

    @property
    def is_copied(self) -> bool:
        return self.change_type is ChangeType.COPIED

    @property
    def total_additions(self) -> int:
        return sum(len(h.added_lines) for h in self.hunks)

    @property
    def total_deletions(self) -> int:
        return sum(len(h.removed_lines) for h in self.hunks)

    @property
    def total_changes(self) -> int:
        return self.total_additions + self.total_deletions

    @property
    def stats(self) -> DiffTotals:
        return DiffTotals(additions=self.total_additions, deletions=self.total_deletions)

    @property
    def change_icon(self) -> str:
        return self.change_type.icon

    @property
    def change_color(self) -> str:
        return self.change_type.color

    def find_hunk_for_line(self, line_number: int) -> Hunk | None:
        return next((h for h in self.hunks if h.contains_line(line_number)), None)

    def to_text(self) -> str:
        """Render this diff back into ``git diff`` text."""
        old_name = self.old_path or self.path
        new_name = self.new_path or self.path
        lines = [f"diff --git a/{old_name} b/{new_name}"]

        if self.is_added:
            lines.append(f"new file mode {self.mode or '100644'}")
        elif self.is_deleted:
            lines.append(f"deleted file mode {self.mode or '100644'}")
        elif self.old_mode and self.mode and self.old_mode != self.mode:
            lines.append(f"old mode {self.old_mode}")
            lines.append(f"new mode {self.mode}")

        if self.similarity is not None and (self.is_renamed or self.is_copied):
            lines.append(f"similarity index {self.similarity}%")
        if self.is_renamed:
            lines.append(f"rename from {old_name}")
            lines.append(f"rename to {new_name}")
        elif self.is_copied:
            lines.append(f"copy from {old_name}")
            lines.append(f"copy to {new_name}")

        if self.old_hash and self.new_hash:
            index_mode = "" if self.is_added or self.is_deleted or not self.mode else f" {self.mode}"
            lines.append(f"index {self.old_hash}..{self.new_hash}{index_mode}")

        if self.is_binary:
            lines.append(f"Binary files a/{old_name} and b/{new_name} differ")
            return "\n".join(lines)

        if self.hunks:
            lines.append("--- /dev/null" if self.is_added else f"--- a/{old_name}")
            lines.append("+++ /dev/null" if self.is_deleted else f"+++ b/{new_name}")
            lines.extend(hunk.to_text() for hunk in self.hunks)

        return "\n".join(lines)

    def to_dict(self) -> dict[str, object]:
        return {
            "old_path": self.old_path,
            "new_path": self.new_path,
            "path": self.path,
            "change_type": self.change_type.value,
            "mode": self.mode,
            "old_mode": self.old_mode,
            "old_hash": self.old_hash,
            "new_hash": self.new_hash,
            "similarity": self.similarity,
            "is_binary": self.is_binary,
            "hunks": [h.to_dict() for h in self.hunks],
        }


# =============================================================================
# Derived line views
# =============================================================================


@dataclass(frozen=True, slots=True)
class ChangedLines:
    """Changed line numbers of one diff.

    ``added`` and ``modified`` use new-file numbering, ``removed`` uses
    old-file numbering.
    """

    added: tuple[int, ...] = ()
    removed: tuple[int, ...] = ()
    modified: tuple[int, ...] = ()

    def to_dict(self) -> dict[str, object]:
        return {k: list(v) for k, v in asdict(self).items()}


@dataclass(frozen=True, slots=True)
class GutterMark:
    """A diff decoration for one new-file line."""

    line: int
    mark_type: GutterMarkType
    content: str
    hunk_header: str
    staged: bool = False

    def to_dict(self) -> dict[str, object]:
        return {
            "line": self.line,
            "type": self.mark_type.value,
            "content": self.content,
            "hunk": self.hunk_header,
            "staged": self.staged,
        }


# =============================================================================
# Stat companions
# =============================================================================


@dataclass(frozen=True, slots=True)
class DiffStat:
    """One ``git diff --stat`` line (``path | 10 +++++-----``)."""

    path: str
    changes: int
    additions: int
    deletions: int

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class NumStat:
    """One ``git diff --numstat`` line; counts are None for binary files."""

    path: str
    additions: int | None
    deletions: int | None

    @property
    def is_binary(self) -> bool:
        return self.additions is None and self.deletions is None

    def to_dict(self) -> dict[str, object]:
        data = asdict(self)
        data["is_binary"] = self.is_binary
        return data


@dataclass(frozen=True, slots=True)
class NameStatus:
    """One ``git diff --name-status`` line.

    Attributes:
        status: Raw status code (``M``, ``R087`` ...).
        change_type: Decoded change type.
        old_path: Source path (None for additions).
        new_path: Destination path (None for deletions).
        similarity: Score from the status digits for ``R``/``C`` entries.
    """

    status: str
    change_type: ChangeType
    old_path: str | None
    new_path: str | None
    similarity: int | None = None

    @property
    def path(self) -> str:
        return self.new_path or self.old_path or ""

    def to_dict(self) -> dict[str, object]:
        data = asdict(self)
        data["change_type"] = self.change_type.value
        return data
