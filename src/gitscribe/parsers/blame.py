"""Parser for ``git blame --incremental`` and ``git blame --porcelain`` output.

Both formats open each block with a header line::

    <40-hex sha> <source line> <result line> [<line count>]

followed by metadata lines (``author``, ``summary`` ...). Git prints the
metadata of a revision only the first time the revision appears, so the
parser remembers it per revision and fills it in for later, metadata-less
blocks. Porcelain blocks carry one tab-prefixed content line per attributed
line and end after the last one; incremental blocks have no content lines
and end at the next header or end of input.

Batch parsing is a thin loop over :class:`BlameStreamParser`, so batch and
streaming results are identical for the same input.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from gitscribe.logging import get_logger
from gitscribe.models.blame import BlameCommit, BlameEntry
from gitscribe.parsers._common import reject_line

__all__ = [
    "BlameStreamParser",
    "BlameStreamStats",
    "check_partition",
    "create_line_map",
    "create_stream_parser",
    "group_by_commit",
    "parse_blame",
    "parse_blame_porcelain",
    "unique_commits",
]

logger = get_logger(__name__)

HEADER_PATTERN = re.compile(r"^([0-9a-f]{40}) (\d+) (\d+)(?: (\d+))?$")

# Header shape with any first token, to catch headers with a bad sha
HEADER_SHAPE_PATTERN = re.compile(r"^(\S+) \d+ \d+(?: \d+)?$")


def _strip_mail(value: str) -> str:
    return value.strip().removeprefix("<").removesuffix(">")


# Metadata key -> (BlameEntry field, value decoder)
_METADATA_FIELDS: dict[str, tuple[str, Callable[[str], Any]]] = {
    "author": ("author", str),
    "author-mail": ("author_mail", _strip_mail),
    "author-time": ("author_time", int),
    "author-tz": ("author_tz", str),
    "committer": ("committer", str),
    "committer-mail": ("committer_mail", _strip_mail),
    "committer-time": ("committer_time", int),
    "committer-tz": ("committer_tz", str),
    "summary": ("summary", str),
    "filename": ("filename", str),
}

EntryCallback = Callable[[BlameEntry], None]


@dataclass(frozen=True, slots=True)
class BlameStreamStats:
    """Snapshot of a stream parser's progress."""

    unique_commits: int
    parsing_block: bool
    entries_emitted: int


@dataclass(slots=True)
class _Block:
    sha: str
    line_start: int
    line_end: int
    remaining: int
    fields: dict[str, Any] = field(default_factory=dict)

    def covers(self, sha: str, line_number: int) -> bool:
        return sha == self.sha and self.line_start <= line_number <= self.line_end


class BlameStreamParser:
    """Incremental blame parser fed one line at a time.

    A parser instance belongs to one stream: feed it lines in order from a
    single producer. Completed entries are passed to ``on_entry`` as soon as
    their block ends, and are also kept on :attr:`entries`.

    Args:
        on_entry: Callback invoked with each completed entry.
        strict: Raise MalformedLineError instead of skipping bad lines.

    Example:
        parser = create_stream_parser(print)
        for line in proc.stdout:
            parser.add_line(line)
        parser.finish()
    """

    def __init__(
        self,
        on_entry: EntryCallback | None = None,
        *,
        strict: bool = False,
    ) -> None:
        self._on_entry = on_entry
        self._strict = strict
        self._commits: dict[str, dict[str, Any]] = {}
        self._block: _Block | None = None
        self._skipping = False
        self._line_number = 0
        self.entries: list[BlameEntry] = []

    @property
    def stats(self) -> BlameStreamStats:
        return BlameStreamStats(
            unique_commits=len(self._commits),
            parsing_block=self._block is not None,
            entries_emitted=len(self.entries),
        )

    def add_line(self, line: str) -> None:
        """Consume one line of blame output (trailing newline optional)."""
        self._line_number += 1
        line = line.rstrip("\r\n")

        header = HEADER_PATTERN.match(line)
        if header:
            sha, _source, result, count = header.groups()
            # Porcelain repeats a count-less header before each later line
            # of a group; those continue the open block.
            if count is None and self._block is not None and self._block.covers(
                sha, int(result)
            ):
                return
            self._flush()
            self._start_block(header, line)
            return

        if self._is_bad_header(line):
            # Its metadata must not leak into the open block
            self._flush()
            self._skipping = True
            self._reject(line, "malformed blame header")
            return

        if self._skipping:
            logger.debug("blame_rejected_block_line", line_number=self._line_number)
            return

        if line.startswith("\t"):
            if self._block is None:
                self._reject(line, "content line outside a block")
                return
            self._block.remaining -= 1
            if self._block.remaining <= 0:
                self._flush()
            return

        if self._block is not None:
            self._read_metadata(self._block, line)
            return

        if line.strip():
            self._reject(line, "expected a blame header")

    def finish(self) -> list[BlameEntry]:
        """Flush a block closed only by end of input and return all entries."""
        self._flush()
        return self.entries

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _start_block(self, header: re.Match[str], line: str) -> None:
        sha, _source, result, count = header.groups()
        line_start = int(result)
        line_count = int(count) if count is not None else 1
        if line_start < 1 or line_count < 1:
            self._skipping = True
            self._reject(line, "line numbers must be positive")
            return
        self._skipping = False
        self._block = _Block(sha, line_start, line_start + line_count - 1, line_count)

    def _is_bad_header(self, line: str) -> bool:
        shape = HEADER_SHAPE_PATTERN.match(line)
        if shape is None:
            return False
        key = shape.group(1)
        return key not in _METADATA_FIELDS and key not in ("previous", "boundary")

    def _read_metadata(self, block: _Block, line: str) -> None:
        key, _, value = line.partition(" ")
        if key == "boundary":
            block.fields["boundary"] = True
            return
        if key == "previous":
            previous_sha, _, previous_filename = value.partition(" ")
            block.fields["previous_sha"] = previous_sha
            block.fields["previous_filename"] = previous_filename or None
            return

        decoder = _METADATA_FIELDS.get(key)
        if decoder is None:
            logger.debug("blame_unknown_metadata", key=key, line_number=self._line_number)
            return

        name, convert = decoder
        try:
            block.fields[name] = convert(value)
        except ValueError:
            self._reject(line, f"invalid value for {key}")

    def _flush(self) -> None:
        block = self._block
        if block is None:
            return
        self._block = None

        # First sighting of a field wins for the revision; the block's own
        # values still apply to this entry.
        known = self._commits.setdefault(block.sha, {})
        for name, value in block.fields.items():
            known.setdefault(name, value)

        entry = BlameEntry(
            sha=block.sha,
            line_start=block.line_start,
            line_end=block.line_end,
            **{**known, **block.fields},
        )
        self.entries.append(entry)
        if self._on_entry is not None:
            self._on_entry(entry)

    def _reject(self, line: str, reason: str) -> None:
        reject_line(
            logger,
            "blame_unexpected_line",
            parser="blame",
            line_number=self._line_number,
            line=line,
            reason=reason,
            strict=self._strict,
        )


def create_stream_parser(
    on_entry: EntryCallback | None = None, *, strict: bool = False
) -> BlameStreamParser:
    """Create a streaming blame parser."""
    return BlameStreamParser(on_entry, strict=strict)


def parse_blame(text: str, *, strict: bool = False) -> list[BlameEntry]:
    """Parse complete blame output.

    Args:
        text: Output of ``git blame --incremental`` or ``--porcelain``.
        strict: Raise MalformedLineError instead of skipping bad lines.

    Returns:
        One entry per header line, in input order. Adjacent entries for the
        same revision are not merged.
    """
    if not text or not text.strip():
        return []

    parser = BlameStreamParser(strict=strict)
    for line in text.splitlines():
        parser.add_line(line)
    entries = parser.finish()

    logger.debug(
        "blame_parsed",
        entries=len(entries),
        unique_commits=parser.stats.unique_commits,
    )
    return entries


def parse_blame_porcelain(text: str, *, strict: bool = False) -> list[BlameEntry]:
    """Parse ``git blame --porcelain`` output (same grammar as incremental)."""
    return parse_blame(text, strict=strict)


# =============================================================================
# Entry helpers
# =============================================================================


def create_line_map(entries: Iterable[BlameEntry]) -> dict[int, BlameEntry]:
    """Map every attributed line number to its entry."""
    line_map: dict[int, BlameEntry] = {}
    for entry in entries:
        for line in range(entry.line_start, entry.line_end + 1):
            line_map[line] = entry
    return line_map


def group_by_commit(entries: Iterable[BlameEntry]) -> dict[str, list[BlameEntry]]:
    """Group entries by revision, preserving first-seen order."""
    groups: dict[str, list[BlameEntry]] = {}
    for entry in entries:
        groups.setdefault(entry.sha, []).append(entry)
    return groups


def unique_commits(entries: Iterable[BlameEntry]) -> list[BlameCommit]:
    """Summarize the distinct revisions, with attributed line counts."""
    return [
        BlameCommit(
            sha=sha,
            author=group[0].author,
            author_mail=group[0].author_mail,
            author_time=group[0].author_time,
            summary=group[0].summary,
            line_count=sum(e.line_count for e in group),
        )
        for sha, group in group_by_commit(entries).items()
    ]


def check_partition(
    entries: Iterable[BlameEntry], total_lines: int | None = None
) -> list[str]:
    """Check that entries cover ``[1, N]`` without gaps or overlaps.

    Args:
        entries: Entries from one parse.
        total_lines: Expected line count of the file, when known.

    Returns:
        Human-readable problems; empty when the entries form a partition.
    """
    problems: list[str] = []
    expected = 1
    for entry in sorted(entries, key=lambda e: (e.line_start, e.line_end)):
        if entry.line_start > expected:
            problems.append(f"gap: lines {expected}-{entry.line_start - 1} unattributed")
        elif entry.line_start < expected:
            problems.append(
                f"overlap: lines {entry.line_start}-{min(entry.line_end, expected - 1)} "
                f"attributed twice ({entry.short_sha})"
            )
        expected = max(expected, entry.line_end + 1)

    if total_lines is not None and expected - 1 != total_lines:
        if expected - 1 < total_lines:
            problems.append(f"gap: lines {expected}-{total_lines} unattributed")
        else:
            problems.append(f"overrun: attributed {expected - 1} of {total_lines} lines")
    return problems
