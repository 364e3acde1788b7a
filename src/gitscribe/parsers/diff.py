"""Parsers for ``git diff`` output and its stat companions.

:func:`parse_diff` is a single forward scan holding two builders, the current
file and the current hunk. A ``diff --git`` line (or a bare ``---`` line in a
plain unified diff) flushes both and starts a new file. Hunk bodies are
consumed by count, so a removed line that happens to read ``--- x`` stays
content.
"""

from __future__ import annotations

import codecs
import re
from dataclasses import dataclass, field, replace

from gitscribe.constants import DEFAULT_GUTTER_PROXIMITY
from gitscribe.logging import get_logger
from gitscribe.models.diff import (
    ChangedLines,
    ChangeType,
    Diff,
    DiffStat,
    GutterMark,
    GutterMarkType,
    Hunk,
    HunkLine,
    HunkLineType,
    NameStatus,
    NumStat,
)
from gitscribe.parsers._common import reject_line, to_int

__all__ = [
    "changed_lines",
    "classify_gutter",
    "line_to_hunk_map",
    "parse_diff",
    "parse_name_status",
    "parse_numstat",
    "parse_stat",
    "parse_stat_summary",
]

logger = get_logger(__name__)

DIFF_GIT_PATTERN = re.compile(r'^diff --git (?:"a/(.+?)"|a/(.+?)) (?:"b/(.+)"|b/(.+))$')
HUNK_HEADER_PATTERN = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@ ?(.*)$")
INDEX_PATTERN = re.compile(r"^index ([0-9a-f]+)\.\.([0-9a-f]+)(?: (\d+))?$")
SIMILARITY_PATTERN = re.compile(r"^(?:dis)?similarity index (\d+)%$")
STAT_PATTERN = re.compile(r"^\s*(.+?)\s*\|\s*(\d+)\s*([+-]*)\s*$")
STAT_BINARY_PATTERN = re.compile(r"^\s*(.+?)\s*\|\s*Bin\b")

_LINE_TYPES: dict[str, HunkLineType] = {
    "+": HunkLineType.ADDED,
    "-": HunkLineType.REMOVED,
    " ": HunkLineType.UNCHANGED,
    "\\": HunkLineType.NO_NEWLINE,
}

_NAME_STATUS_TYPES: dict[str, ChangeType] = {
    "A": ChangeType.ADDED,
    "M": ChangeType.MODIFIED,
    "D": ChangeType.DELETED,
    "R": ChangeType.RENAMED,
    "C": ChangeType.COPIED,
    "T": ChangeType.TYPE_CHANGED,
}


def unquote_path(value: str) -> str:
    """Decode a path that git printed in C-style quotes."""
    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        value = value[1:-1]
    if "\\" not in value:
        return value
    raw: bytes = codecs.escape_decode(value.encode("utf-8"))[0]
    return raw.decode("utf-8", errors="replace")


def _side_path(value: str, prefix: str) -> str | None:
    """Decode the path of a ``---``/``+++`` line; None for /dev/null."""
    path = value.split("\t", 1)[0]
    if path == "/dev/null":
        return None
    path = unquote_path(path)
    return path.removeprefix(prefix)


# =============================================================================
# Builders
# =============================================================================


@dataclass(slots=True)
class _HunkBuilder:
    old_start: int
    old_lines: int
    new_start: int
    new_lines: int
    header: str
    context: str
    lines: list[HunkLine] = field(default_factory=list)
    old_remaining: int = 0
    new_remaining: int = 0

    @property
    def expecting(self) -> bool:
        return self.old_remaining > 0 or self.new_remaining > 0

    def add(self, line_type: HunkLineType, content: str) -> None:
        self.lines.append(HunkLine(line_type, content))
        if line_type in (HunkLineType.REMOVED, HunkLineType.UNCHANGED):
            self.old_remaining -= 1
        if line_type in (HunkLineType.ADDED, HunkLineType.UNCHANGED):
            self.new_remaining -= 1

    def build(self) -> Hunk:
        return Hunk(
            old_start=self.old_start,
            old_lines=self.old_lines,
            new_start=self.new_start,
            new_lines=self.new_lines,
            header=self.header,
            context=self.context,
            lines=tuple(self.lines),
        )


@dataclass(slots=True)
class _DiffBuilder:
    old_path: str | None
    new_path: str | None
    change_type: ChangeType = ChangeType.MODIFIED
    mode: str | None = None
    old_mode: str | None = None
    old_hash: str | None = None
    new_hash: str | None = None
    similarity: int | None = None
    is_binary: bool = False
    hunks: list[Hunk] = field(default_factory=list)

    def build(self) -> Diff:
        return Diff(
            old_path=self.old_path,
            new_path=self.new_path,
            change_type=self.change_type,
            mode=self.mode,
            old_mode=self.old_mode,
            old_hash=self.old_hash,
            new_hash=self.new_hash,
            similarity=self.similarity,
            is_binary=self.is_binary,
            hunks=tuple(self.hunks),
        )


class _DiffScanner:
    """Forward scanner behind :func:`parse_diff`."""

    def __init__(self, strict: bool) -> None:
        self.strict = strict
        self.diffs: list[Diff] = []
        self.diff: _DiffBuilder | None = None
        self.hunk: _HunkBuilder | None = None
        self.line_number = 0

    def feed(self, line: str) -> None:
        self.line_number += 1

        if line.startswith("diff --git "):
            self._flush_diff()
            self._start_git_diff(line)
            return

        hunk = self.hunk
        if hunk is not None and hunk.expecting and HUNK_HEADER_PATTERN.match(line):
            # Header counts understated the body; the next hunk starts here
            self._start_hunk(line)
            return

        if hunk is not None and (hunk.expecting or line.startswith("\\")):
            self._add_content(hunk, line)
            return

        if line.startswith("@@"):
            self._start_hunk(line)
            return

        if line.startswith("--- ") and (
            self.diff is None or self.diff.hunks or self.hunk is not None
        ):
            # Plain unified diff without a "diff --git" line
            self._flush_diff()
            self.diff = _DiffBuilder(old_path=_side_path(line[4:], "a/"), new_path=None)
            return

        if self.diff is not None and self._read_metadata(self.diff, line):
            return

        if hunk is not None and line:
            # Hunk already holds its declared line count
            logger.debug("diff_extra_hunk_line", line_number=self.line_number)
            self._add_content(hunk, line)
            return

        if line.strip() and self.diff is not None:
            logger.debug("diff_unknown_header_line", line_number=self.line_number, line=line)

    def finish(self) -> list[Diff]:
        self._flush_diff()
        return self.diffs

    # -------------------------------------------------------------------------

    def _reject(self, line: str, reason: str) -> None:
        reject_line(
            logger,
            "diff_malformed_line",
            parser="diff",
            line_number=self.line_number,
            line=line,
            reason=reason,
            strict=self.strict,
        )

    def _start_git_diff(self, line: str) -> None:
        match = DIFF_GIT_PATTERN.match(line)
        if not match:
            self._reject(line, "unrecognised diff --git header")
            return
        quoted_old, old, quoted_new, new = match.groups()
        old_path = unquote_path(quoted_old) if quoted_old is not None else old
        new_path = unquote_path(quoted_new) if quoted_new is not None else new
        self.diff = _DiffBuilder(old_path=old_path, new_path=new_path)

    def _start_hunk(self, line: str) -> None:
        self._flush_hunk()
        if self.diff is None:
            self._reject(line, "hunk header outside a file diff")
            return
        match = HUNK_HEADER_PATTERN.match(line)
        if not match:
            self._reject(line, "unrecognised hunk header")
            return
        old_start, old_lines, new_start, new_lines, context = match.groups()
        old_count = int(old_lines) if old_lines is not None else 1
        new_count = int(new_lines) if new_lines is not None else 1
        self.hunk = _HunkBuilder(
            old_start=int(old_start),
            old_lines=old_count,
            new_start=int(new_start),
            new_lines=new_count,
            header=line,
            context=context.strip(),
            old_remaining=old_count,
            new_remaining=new_count,
        )

    def _add_content(self, hunk: _HunkBuilder, line: str) -> None:
        if not line:
            # Some tools strip the leading space of empty context lines
            hunk.add(HunkLineType.UNCHANGED, "")
            return
        line_type = _LINE_TYPES.get(line[0])
        if line_type is HunkLineType.NO_NEWLINE:
            hunk.add(line_type, line[1:].strip())
        elif line_type is not None:
            hunk.add(line_type, line[1:])
        else:
            if self.strict:
                self._reject(line, "unknown hunk line prefix")
            hunk.add(HunkLineType.UNCHANGED, line)

    def _read_metadata(self, diff: _DiffBuilder, line: str) -> bool:
        """Apply one extended header line; False when the line is not one."""
        if line.startswith("new file mode "):
            diff.change_type = ChangeType.ADDED
            diff.mode = line[len("new file mode ") :]
            diff.old_path = None
        elif line.startswith("deleted file mode "):
            diff.change_type = ChangeType.DELETED
            diff.mode = line[len("deleted file mode ") :]
            diff.new_path = None
        elif line.startswith("old mode "):
            diff.old_mode = line[len("old mode ") :]
        elif line.startswith("new mode "):
            diff.mode = line[len("new mode ") :]
        elif line.startswith("rename from "):
            diff.change_type = ChangeType.RENAMED
            diff.old_path = unquote_path(line[len("rename from ") :])
        elif line.startswith("rename to "):
            diff.new_path = unquote_path(line[len("rename to ") :])
        elif line.startswith("copy from "):
            diff.change_type = ChangeType.COPIED
            diff.old_path = unquote_path(line[len("copy from ") :])
        elif line.startswith("copy to "):
            diff.new_path = unquote_path(line[len("copy to ") :])
        elif line.startswith(("similarity index ", "dissimilarity index ")):
            match = SIMILARITY_PATTERN.match(line)
            if match:
                diff.similarity = int(match.group(1))
        elif line.startswith("index "):
            match = INDEX_PATTERN.match(line)
            if match:
                diff.old_hash, diff.new_hash, mode = match.groups()
                if mode:
                    diff.mode = mode
        elif line.startswith("--- "):
            diff.old_path = _side_path(line[4:], "a/")
        elif line.startswith("+++ "):
            diff.new_path = _side_path(line[4:], "b/")
            if diff.old_path is None and diff.change_type is ChangeType.MODIFIED:
                diff.change_type = ChangeType.ADDED
            elif diff.new_path is None and diff.change_type is ChangeType.MODIFIED:
                diff.change_type = ChangeType.DELETED
        elif line.startswith("Binary files ") and line.endswith(" differ"):
            diff.is_binary = True
        else:
            return False
        return True

    def _flush_hunk(self) -> None:
        if self.hunk is None:
            return
        hunk = self.hunk.build()
        self.hunk = None
        if not hunk.is_consistent:
            logger.warning(
                "diff_hunk_count_mismatch",
                header=hunk.header,
                added=hunk.stats.added,
                removed=hunk.stats.removed,
                unchanged=hunk.stats.unchanged,
            )
        if self.diff is not None:
            self.diff.hunks.append(hunk)

    def _flush_diff(self) -> None:
        self._flush_hunk()
        if self.diff is None:
            return
        builder = self.diff
        self.diff = None
        if builder.old_path is None and builder.new_path is None:
            self._reject("", "file diff without any path")
            return
        self.diffs.append(builder.build())


def parse_diff(text: str, *, strict: bool = False) -> list[Diff]:
    """Parse ``git diff`` output into one :class:`Diff` per file.

    Args:
        text: Unified diff text (``git diff``, ``git diff --cached``,
            ``git show`` after the commit header).
        strict: Raise MalformedLineError instead of skipping bad lines.

    Returns:
        Diffs in input order.

    Example:
        >>> diffs = parse_diff(text)
        >>> diffs[0].hunks[0].new_lines
        4
    """
    if not text or not text.strip():
        return []

    scanner = _DiffScanner(strict)
    for line in text.splitlines():
        scanner.feed(line)
    diffs = scanner.finish()

    logger.debug(
        "diff_parsed",
        files=len(diffs),
        hunks=sum(len(d.hunks) for d in diffs),
    )
    return diffs


# =============================================================================
# Stat formats
# =============================================================================


def parse_stat(text: str) -> list[DiffStat]:
    """Parse ``git diff --stat`` lines.

    Additions and deletions count the ``+``/``-`` glyphs, which git scales
    down for wide changes; ``changes`` is always exact. The trailing summary
    line and binary entries are skipped.
    """
    stats: list[DiffStat] = []
    for line in text.splitlines():
        match = STAT_PATTERN.match(line)
        if not match:
            if STAT_BINARY_PATTERN.match(line):
                logger.debug("diff_stat_binary_skipped", line=line)
            continue
        path, changes, graph = match.groups()
        stats.append(
            DiffStat(
                path=path.strip(),
                changes=int(changes),
                additions=graph.count("+"),
                deletions=graph.count("-"),
            )
        )
    return stats


def parse_stat_summary(text: str) -> tuple[int, int, int]:
    """Read ``N files changed, X insertions(+), Y deletions(-)``.

    Returns:
        ``(files, insertions, deletions)``; zeros when no summary is present.
    """
    for line in reversed(text.splitlines()):
        files = re.search(r"(\d+) files? changed", line)
        if files is None:
            continue
        insertions = re.search(r"(\d+) insertions?\(\+\)", line)
        deletions = re.search(r"(\d+) deletions?\(-\)", line)
        return (
            int(files.group(1)),
            int(insertions.group(1)) if insertions else 0,
            int(deletions.group(1)) if deletions else 0,
        )
    return (0, 0, 0)


def parse_numstat(text: str, *, strict: bool = False) -> list[NumStat]:
    """Parse ``git diff --numstat`` lines; ``-`` counts mark binary files."""
    stats: list[NumStat] = []
    for line_number, line in enumerate(text.splitlines(), start=1):
        if not line.strip():
            continue
        parts = line.split("\t")
        added, deleted = (parts + ["", ""])[:2]
        additions = None if added == "-" else to_int(added)
        deletions = None if deleted == "-" else to_int(deleted)
        if (
            len(parts) < 3
            or (added != "-" and additions is None)
            or (deleted != "-" and deletions is None)
        ):
            reject_line(
                logger,
                "numstat_malformed_line",
                parser="numstat",
                line_number=line_number,
                line=line,
                reason="expected <added>\\t<deleted>\\t<path>",
                strict=strict,
            )
            continue
        stats.append(NumStat(path="\t".join(parts[2:]), additions=additions, deletions=deletions))
    return stats


def parse_name_status(text: str, *, strict: bool = False) -> list[NameStatus]:
    """Parse ``git diff --name-status`` lines.

    ``R``/``C`` entries carry two paths and a similarity score in the status
    suffix (``R087``).
    """
    entries: list[NameStatus] = []
    for line_number, line in enumerate(text.splitlines(), start=1):
        if not line.strip():
            continue
        entry = _name_status_entry(line)
        if entry is None:
            reject_line(
                logger,
                "name_status_malformed_line",
                parser="name-status",
                line_number=line_number,
                line=line,
                strict=strict,
            )
            continue
        entries.append(entry)
    return entries


def _name_status_entry(line: str) -> NameStatus | None:
    parts = line.split("\t")
    status = parts[0].strip()
    if not status or len(parts) < 2:
        return None

    change_type = _NAME_STATUS_TYPES.get(status[0], ChangeType.UNKNOWN)
    if change_type in (ChangeType.RENAMED, ChangeType.COPIED):
        if len(parts) < 3:
            return None
        score = to_int(status[1:]) if len(status) > 1 else None
        return NameStatus(status, change_type, parts[1], parts[2], similarity=score)
    if change_type is ChangeType.ADDED:
        return NameStatus(status, change_type, None, parts[1])
    if change_type is ChangeType.DELETED:
        return NameStatus(status, change_type, parts[1], None)
    return NameStatus(status, change_type, parts[1], parts[1])


# =============================================================================
# Derived line views
# =============================================================================


def changed_lines(diff: Diff) -> ChangedLines:
    """Collect changed line numbers of a diff.

    Within a run of removals followed by additions, additions that replace a
    removed line are reported as modified; the surplus as added. Removed
    lines use old-file numbering.
    """
    added: list[int] = []
    removed: list[int] = []
    modified: list[int] = []

    for hunk in diff.hunks:
        old_line, new_line = hunk.old_start, hunk.new_start
        replaceable = 0
        for line in hunk.lines:
            if line.line_type is HunkLineType.REMOVED:
                removed.append(old_line)
                old_line += 1
                replaceable += 1
            elif line.line_type is HunkLineType.ADDED:
                if replaceable:
                    modified.append(new_line)
                    replaceable -= 1
                else:
                    added.append(new_line)
                new_line += 1
            elif line.line_type is HunkLineType.UNCHANGED:
                old_line += 1
                new_line += 1
                replaceable = 0

    return ChangedLines(
        added=tuple(sorted(added)),
        removed=tuple(sorted(removed)),
        modified=tuple(sorted(modified)),
    )


def line_to_hunk_map(diff: Diff) -> dict[int, Hunk]:
    """Map each new-file line shown in a hunk to that hunk."""
    line_map: dict[int, Hunk] = {}
    for hunk in diff.hunks:
        line_number = hunk.new_start
        for line in hunk.lines:
            if line.line_type in (HunkLineType.ADDED, HunkLineType.UNCHANGED):
                line_map[line_number] = hunk
                line_number += 1
    return line_map


def classify_gutter(
    diff: Diff,
    proximity: int = DEFAULT_GUTTER_PROXIMITY,
    *,
    staged: bool = False,
) -> list[GutterMark]:
    """Build gutter marks for a diff.

    Deleted lines are marked at the new-file line they were removed before.
    An addition within ``proximity`` lines of a deletion mark becomes a
    modification.
    """
    marks: list[GutterMark] = []
    for hunk in diff.hunks:
        line_number = hunk.new_start
        for line in hunk.lines:
            if line.line_type is HunkLineType.ADDED:
                marks.append(_mark(line_number, GutterMarkType.ADDED, line, hunk, staged))
                line_number += 1
            elif line.line_type is HunkLineType.REMOVED:
                marks.append(_mark(line_number, GutterMarkType.DELETED, line, hunk, staged))
            elif line.line_type is HunkLineType.UNCHANGED:
                line_number += 1

    deleted_at = [m.line for m in marks if m.mark_type is GutterMarkType.DELETED]
    return [
        replace(mark, mark_type=GutterMarkType.MODIFIED)
        if mark.mark_type is GutterMarkType.ADDED
        and any(abs(line - mark.line) <= proximity for line in deleted_at)
        else mark
        for mark in marks
    ]


def _mark(
    line_number: int,
    mark_type: GutterMarkType,
    line: HunkLine,
    hunk: Hunk,
    staged: bool,
) -> GutterMark:
    return GutterMark(
        line=line_number,
        mark_type=mark_type,
        content=line.content,
        hunk_header=hunk.header,
        staged=staged,
    )
