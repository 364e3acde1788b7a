"""Parsers for ``git status --porcelain`` (v1 and v2) output."""

from __future__ import annotations

import re
from collections.abc import Iterable
from enum import Enum

from gitscribe.logging import get_logger
from gitscribe.models.status import FileStatus, StatusGroups, StatusReport
from gitscribe.parsers._common import reject_line
from gitscribe.parsers.diff import unquote_path

__all__ = [
    "StatusLineKind",
    "classify_status_line",
    "filter_files",
    "group_by_status",
    "parse_status_short",
    "parse_status_v1",
    "parse_status_v2",
    "status_description",
]

logger = get_logger(__name__)


class StatusLineKind(str, Enum):
    """Record kinds of the porcelain v2 format."""

    HEADER = "header"
    ORDINARY = "ordinary"
    RENAMED = "renamed"
    UNMERGED = "unmerged"
    UNTRACKED = "untracked"
    IGNORED = "ignored"
    UNKNOWN = "unknown"


# Tried in order; the first match decides the kind.
_V2_PATTERNS: tuple[tuple[StatusLineKind, re.Pattern[str]], ...] = (
    (StatusLineKind.HEADER, re.compile(r"^# (\S+)(?: (.*))?$")),
    (
        StatusLineKind.ORDINARY,
        re.compile(r"^1 (\S\S) (\S{4}) (\d+) (\d+) (\d+) (\S+) (\S+) (.+)$"),
    ),
    (
        StatusLineKind.RENAMED,
        re.compile(r"^2 (\S\S) (\S{4}) (\d+) (\d+) (\d+) (\S+) (\S+) ([RC])(\d+) ([^\t]+)\t(.+)$"),
    ),
    (
        StatusLineKind.UNMERGED,
        re.compile(r"^u (\S\S) (\S{4}) (\d+) (\d+) (\d+) (\d+) (\S+) (\S+) (\S+) (.+)$"),
    ),
    (StatusLineKind.UNTRACKED, re.compile(r"^\? (.+)$")),
    (StatusLineKind.IGNORED, re.compile(r"^! (.+)$")),
)

_AB_PATTERN = re.compile(r"\+(\d+) -(\d+)")
_V1_RENAME_PATTERN = re.compile(r"(.+?)\s+->\s+(.+)")
_UNMERGED_CODES = frozenset("DAU")
_RENAME_AND_COPY = "status code marks the entry both renamed and copied"


def _reject(parser: str, line_number: int, line: str, reason: str, strict: bool) -> None:
    reject_line(
        logger,
        "status_malformed_line",
        parser=parser,
        line_number=line_number,
        line=line,
        reason=reason,
        strict=strict,
    )


def classify_status_line(line: str) -> tuple[StatusLineKind, re.Match[str] | None]:
    """Match a porcelain v2 line against the known record kinds."""
    for kind, pattern in _V2_PATTERNS:
        match = pattern.match(line)
        if match:
            return kind, match
    return StatusLineKind.UNKNOWN, None


def _rename_flags(xy: str) -> tuple[bool, bool] | None:
    """Decode rename/copy flags from a two-character code.

    Returns None when the code would make one entry both renamed and copied.
    """
    flagged = {code for code in xy if code in "RC"}
    if len(flagged) > 1:
        return None
    return "R" in flagged, "C" in flagged


def parse_status_v2(text: str, *, strict: bool = False) -> StatusReport:
    """Parse ``git status --porcelain=v2 --branch`` output.

    Args:
        text: Raw porcelain v2 text.
        strict: Raise MalformedLineError instead of skipping bad lines.

    Returns:
        StatusReport with branch headers and one FileStatus per entry.

    Example:
        >>> report = parse_status_v2("# branch.head main\\n? new.txt\\n")
        >>> report.branch, report.files[0].is_untracked
        ('main', True)
    """
    branch: str | None = None
    upstream: str | None = None
    oid: str | None = None
    ahead = behind = 0
    files: list[FileStatus] = []

    for line_number, line in enumerate(text.splitlines(), start=1):
        if not line.strip():
            continue

        kind, match = classify_status_line(line)
        if kind is StatusLineKind.UNKNOWN or match is None:
            _reject("status-v2", line_number, line, "unknown record kind", strict)
            continue

        if kind is StatusLineKind.HEADER:
            key, value = match.group(1), match.group(2) or ""
            if key == "branch.oid":
                oid = value
            elif key == "branch.head":
                branch = value
            elif key == "branch.upstream":
                upstream = value
            elif key == "branch.ab":
                ab = _AB_PATTERN.search(value)
                if ab:
                    ahead, behind = int(ab.group(1)), int(ab.group(2))
                else:
                    _reject("status-v2", line_number, line, "expected +<ahead> -<behind>", strict)
            continue

        if kind is StatusLineKind.ORDINARY:
            xy = match.group(1)
            files.append(
                FileStatus(
                    path=unquote_path(match.group(8)),
                    index_status=xy[0],
                    worktree_status=xy[1],
                    is_staged=xy[0] != ".",
                )
            )
        elif kind is StatusLineKind.RENAMED:
            xy = match.group(1)
            flags = _rename_flags(xy)
            if flags is None:
                _reject("status-v2", line_number, line, _RENAME_AND_COPY, strict)
                continue
            is_renamed, is_copied = flags
            if not (is_renamed or is_copied):
                is_renamed = match.group(8) == "R"
                is_copied = not is_renamed
            files.append(
                FileStatus(
                    path=unquote_path(match.group(10)),
                    old_path=unquote_path(match.group(11)),
                    index_status=xy[0],
                    worktree_status=xy[1],
                    is_staged=xy[0] != ".",
                    is_renamed=is_renamed,
                    is_copied=is_copied,
                    similarity=min(int(match.group(9)), 100),
                )
            )
        elif kind is StatusLineKind.UNMERGED:
            xy = match.group(1)
            files.append(
                FileStatus(
                    path=unquote_path(match.group(10)),
                    index_status=xy[0],
                    worktree_status=xy[1],
                    is_unmerged=True,
                )
            )
        elif kind is StatusLineKind.UNTRACKED:
            files.append(
                FileStatus(
                    path=unquote_path(match.group(1)),
                    index_status="?",
                    worktree_status="?",
                    is_untracked=True,
                )
            )
        elif kind is StatusLineKind.IGNORED:
            files.append(
                FileStatus(
                    path=unquote_path(match.group(1)),
                    index_status="!",
                    worktree_status="!",
                    is_ignored=True,
                )
            )

    logger.debug("status_parsed", format="v2", files=len(files), branch=branch)
    return StatusReport(
        branch=branch,
        upstream=upstream,
        oid=oid,
        ahead=ahead,
        behind=behind,
        files=tuple(files),
    )


def parse_status_v1(text: str, *, strict: bool = False) -> StatusReport:
    """Parse ``git status --porcelain`` (v1) or ``--short`` output.

    Each line is ``XY path``; renames and copies read ``XY old -> new``.
    """
    files: list[FileStatus] = []

    for line_number, line in enumerate(text.splitlines(), start=1):
        if not line.strip():
            continue
        if line.startswith("## "):
            # Branch line of --branch output; v1 carries no structured fields
            continue

        if len(line) < 4 or line[2] != " ":
            _reject("status-v1", line_number, line, "expected 'XY path'", strict)
            continue

        index_status, worktree_status = line[0], line[1]
        flags = _rename_flags(line[:2])
        if flags is None:
            _reject("status-v1", line_number, line, _RENAME_AND_COPY, strict)
            continue
        is_renamed, is_copied = flags

        path = line[3:]
        old_path: str | None = None
        if is_renamed or is_copied:
            rename = _V1_RENAME_PATTERN.match(path)
            if rename is None:
                _reject("status-v1", line_number, line, "rename entry without 'old -> new'", strict)
                continue
            old_path, path = unquote_path(rename.group(1)), rename.group(2)

        untracked = index_status == "?" and worktree_status == "?"
        ignored = index_status == "!" and worktree_status == "!"
        files.append(
            FileStatus(
                path=unquote_path(path),
                old_path=old_path,
                index_status=index_status,
                worktree_status=worktree_status,
                is_staged=index_status not in (" ", "?", "!"),
                is_untracked=untracked,
                is_ignored=ignored,
                is_unmerged=(
                    index_status in _UNMERGED_CODES and worktree_status in _UNMERGED_CODES
                ),
                is_renamed=is_renamed,
                is_copied=is_copied,
            )
        )

    logger.debug("status_parsed", format="v1", files=len(files))
    return StatusReport(files=tuple(files))


def parse_status_short(text: str, *, strict: bool = False) -> StatusReport:
    """Parse ``git status --short`` output (same grammar as porcelain v1)."""
    return parse_status_v1(text, strict=strict)


# =============================================================================
# Helpers
# =============================================================================

_INDEX_DESCRIPTIONS = {
    "M": "Staged modification",
    "A": "Staged addition",
    "D": "Staged deletion",
    "R": "Staged rename",
    "C": "Staged copy",
    "T": "Staged type change",
    "U": "Unmerged",
}

_WORKTREE_DESCRIPTIONS = {
    "M": "Modified",
    "A": "Added",
    "D": "Deleted",
    "R": "Renamed",
    "C": "Copied",
    "T": "Type changed",
    "U": "Unmerged",
}


def status_description(index_status: str, worktree_status: str) -> str:
    """Describe a two-character status code, e.g. ``"Staged addition, Modified"``."""
    if index_status == "?" and worktree_status == "?":
        return "Untracked"
    if index_status == "!" and worktree_status == "!":
        return "Ignored"
    parts = [
        description
        for description in (
            _INDEX_DESCRIPTIONS.get(index_status),
            _WORKTREE_DESCRIPTIONS.get(worktree_status),
        )
        if description
    ]
    return ", ".join(parts) if parts else "Unmodified"


def filter_files(
    files: Iterable[FileStatus],
    *,
    staged: bool = False,
    unstaged: bool = False,
    untracked: bool = False,
    ignored: bool = False,
) -> list[FileStatus]:
    """Keep entries matching any of the requested categories."""
    return [
        f
        for f in files
        if (staged and f.has_staged_changes)
        or (unstaged and f.has_unstaged_changes)
        or (untracked and f.is_untracked)
        or (ignored and f.is_ignored)
    ]


def group_by_status(files: Iterable[FileStatus]) -> StatusGroups:
    """Bucket entries for a source-control panel.

    Unmerged, untracked and ignored entries land in their own bucket only.
    Other entries appear under staged, unstaged, or both.
    """
    staged: list[FileStatus] = []
    unstaged: list[FileStatus] = []
    untracked: list[FileStatus] = []
    ignored: list[FileStatus] = []
    unmerged: list[FileStatus] = []

    for f in files:
        if f.is_unmerged:
            unmerged.append(f)
        elif f.is_untracked:
            untracked.append(f)
        elif f.is_ignored:
            ignored.append(f)
        else:
            if f.has_staged_changes:
                staged.append(f)
            if f.has_unstaged_changes:
                unstaged.append(f)

    return StatusGroups(
        staged=tuple(staged),
        unstaged=tuple(unstaged),
        untracked=tuple(untracked),
        ignored=tuple(ignored),
        unmerged=tuple(unmerged),
    )
