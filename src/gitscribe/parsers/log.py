"""Parser for ``git log`` output framed with :data:`COMMIT_DELIMITER`.

Callers run ``git log --format=<format_string()>``; every record then starts
with a delimiter line followed by ``|``-separated fields in the order of
:data:`STANDARD_LOG_FORMAT` (or :data:`DECORATED_LOG_FORMAT` when refs are
requested). The body is the last field and keeps any ``|`` or newlines.
"""

from __future__ import annotations

import re

from gitscribe.constants import (
    COMMIT_DELIMITER,
    DECORATED_LOG_FORMAT,
    LOG_FIELD_SEPARATOR,
    STANDARD_LOG_FORMAT,
)
from gitscribe.logging import get_logger
from gitscribe.models.commit import (
    Commit,
    CommitFile,
    CommitSummary,
    GraphLine,
    RefKind,
    RefName,
)
from gitscribe.models.diff import ChangeType
from gitscribe.parsers._common import reject_line, to_int
from gitscribe.parsers.diff import parse_name_status

__all__ = [
    "count_commits",
    "extract_shas",
    "format_string",
    "parse_graph",
    "parse_log",
    "parse_log_with_files",
    "parse_oneline",
    "parse_refs_annotation",
]

logger = get_logger(__name__)

_SHA_PATTERN = re.compile(r"\b[0-9a-f]{40}\b")
_ONELINE_PATTERN = re.compile(r"^([0-9a-f]{4,40})\s+(.+)$")
_GRAPH_PATTERN = re.compile(r"^([|*/\\_. -]+?)([0-9a-f]{4,40})\s+(.+)$")
_NAME_STATUS_LINE = re.compile(r"^[A-Z]\d*\t")


def format_string(include_refs: bool = False) -> str:
    """Return the ``--format`` argument matching :func:`parse_log`."""
    fields = DECORATED_LOG_FORMAT if include_refs else STANDARD_LOG_FORMAT
    return f"{COMMIT_DELIMITER}%n{fields}"


def _records(text: str) -> list[tuple[int, list[str]]]:
    """Split text into ``(first_line_number, lines)`` per delimited record."""
    records: list[tuple[int, list[str]]] = []
    for line_number, line in enumerate(text.splitlines(), start=1):
        if line.strip() == COMMIT_DELIMITER:
            records.append((line_number + 1, []))
        elif records:
            records[-1][1].append(line)
    return [(start, lines) for start, lines in records if any(line.strip() for line in lines)]


def parse_refs_annotation(annotation: str) -> tuple[RefName, ...]:
    """Decode a ``%d`` decoration such as ``" (HEAD -> main, tag: v1.0)"``.

    ``HEAD -> x`` yields both a head and a branch ref for ``x``; names with a
    ``/`` are treated as remote-tracking branches.
    """
    cleaned = annotation.strip().removeprefix("(").removesuffix(")").strip()
    refs: list[RefName] = []
    if not cleaned:
        return ()
    for part in (p.strip() for p in cleaned.split(",")):
        if not part:
            continue
        if part.startswith("HEAD -> "):
            name = part.removeprefix("HEAD -> ")
            refs.append(RefName(RefKind.HEAD, name))
            refs.append(RefName(RefKind.BRANCH, name))
        elif part == "HEAD":
            refs.append(RefName(RefKind.HEAD, part))
        elif part.startswith("tag: "):
            refs.append(RefName(RefKind.TAG, part.removeprefix("tag: ")))
        elif "/" in part:
            refs.append(RefName(RefKind.REMOTE, part))
        else:
            refs.append(RefName(RefKind.BRANCH, part))
    return tuple(refs)


def _parse_record(
    line_number: int,
    lines: list[str],
    *,
    include_refs: bool,
    strict: bool,
    files: tuple[CommitFile, ...] = (),
) -> Commit | None:
    record = "\n".join(lines).strip("\n")
    field_count = 8 if include_refs else 7
    fields = record.split(LOG_FIELD_SEPARATOR, field_count - 1)
    author_time = to_int(fields[4]) if len(fields) > 4 else None
    if len(fields) < field_count - 1 or author_time is None:
        reject_line(
            logger,
            "log_malformed_record",
            parser="log",
            line_number=line_number,
            line=lines[0] if lines else "",
            reason=f"expected {field_count} '{LOG_FIELD_SEPARATOR}'-separated fields",
            strict=strict,
        )
        return None

    fields += [""] * (field_count - len(fields))
    sha, parents, author, author_email = fields[:4]
    refs: tuple[RefName, ...] = ()
    if include_refs:
        refs = parse_refs_annotation(fields[5])
        subject, body = fields[6], fields[7]
    else:
        subject, body = fields[5], fields[6]

    return Commit(
        sha=sha.strip(),
        parents=tuple(parents.split()),
        author=author,
        author_email=author_email,
        author_time=author_time,
        subject=subject,
        body=body.strip(),
        refs=refs,
        files=files,
    )


def parse_log(
    text: str,
    include_refs: bool = False,
    *,
    strict: bool = False,
) -> list[Commit]:
    """Parse ``git log --format=<format_string(include_refs)>`` output.

    Args:
        text: Raw log text.
        include_refs: True when the format carried the ``%d`` decoration.
        strict: Raise MalformedLineError instead of skipping bad records.

    Returns:
        Commits in the order git emitted them.
    """
    commits: list[Commit] = []
    for line_number, lines in _records(text):
        commit = _parse_record(line_number, lines, include_refs=include_refs, strict=strict)
        if commit is not None:
            commits.append(commit)

    logger.debug("log_parsed", commits=len(commits), include_refs=include_refs)
    return commits


def parse_log_with_files(
    text: str,
    include_refs: bool = False,
    *,
    strict: bool = False,
) -> list[Commit]:
    """Parse ``git log --name-status`` output in the delimited format.

    Name-status lines at the end of each record become ``Commit.files``.
    """
    commits: list[Commit] = []
    for line_number, lines in _records(text):
        split = len(lines)
        while split > 0 and (
            _NAME_STATUS_LINE.match(lines[split - 1]) or not lines[split - 1].strip()
        ):
            split -= 1
        files = tuple(
            CommitFile(
                change_type=entry.change_type,
                path=entry.path,
                old_path=(
                    entry.old_path
                    if entry.change_type in (ChangeType.RENAMED, ChangeType.COPIED)
                    else None
                ),
                status=entry.status,
            )
            for entry in parse_name_status("\n".join(lines[split:]), strict=strict)
        )
        commit = _parse_record(
            line_number, lines[:split], include_refs=include_refs, strict=strict, files=files
        )
        if commit is not None:
            commits.append(commit)
    return commits


def parse_oneline(text: str) -> list[CommitSummary]:
    """Parse ``git log --oneline`` output."""
    return [
        CommitSummary(sha=match.group(1), subject=match.group(2))
        for match in map(_ONELINE_PATTERN.match, text.splitlines())
        if match
    ]


def parse_graph(text: str) -> list[GraphLine]:
    """Parse ``git log --graph --oneline`` output, skipping connector-only lines."""
    return [
        GraphLine(graph=match.group(1), sha=match.group(2), subject=match.group(3))
        for match in map(_GRAPH_PATTERN.match, text.splitlines())
        if match
    ]


def extract_shas(text: str) -> list[str]:
    """Return distinct full revision ids in order of first appearance."""
    return list(dict.fromkeys(_SHA_PATTERN.findall(text)))


def count_commits(text: str) -> int:
    return len(_records(text))
