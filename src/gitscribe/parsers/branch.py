"""Parsers for branch listings.

Supports the pipe-delimited records produced with :data:`BRANCH_FORMAT` or
:data:`REF_FORMAT`, and the human-oriented ``git branch``, ``git branch -v``
and ``git branch -vv`` listings.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from gitscribe.constants import (
    BRANCH_FORMAT,
    LOCAL_HEADS_PREFIX,
    REF_FORMAT,
    REMOTES_PREFIX,
    TAGS_PREFIX,
)
from gitscribe.logging import get_logger
from gitscribe.models.branch import Branch, TrackingInfo
from gitscribe.parsers._common import reject_line

__all__ = [
    "BRANCH_FORMAT",
    "REF_FORMAT",
    "current_branch_name",
    "filter_branches",
    "parse_branches",
    "parse_refs",
    "parse_simple",
    "parse_tracking",
    "parse_verbose",
    "parse_very_verbose",
]

logger = get_logger(__name__)

_AHEAD_PATTERN = re.compile(r"\bahead (\d+)")
_BEHIND_PATTERN = re.compile(r"\bbehind (\d+)")
_GONE_PATTERN = re.compile(r"\bgone\b")

# "(HEAD detached at abc1234)" or a plain name, then sha, then the rest
_VERBOSE_PATTERN = re.compile(r"^(\(.*?\)|\S+)\s+([0-9a-f]+)\s?(.*)$")
_UPSTREAM_PATTERN = re.compile(r"^\[([^\]:]+)(?::\s*([^\]]+))?\]\s?(.*)$")


def parse_tracking(annotation: str | None) -> TrackingInfo:
    """Decode an upstream tracking annotation.

    Ahead and behind are matched independently, so ``"ahead 2"``,
    ``"behind 1"``, ``"ahead 2, behind 1"`` and ``""`` all decode. A ``gone``
    upstream always reports zero counts.

    Example:
        >>> parse_tracking("[ahead 2, behind 1]")
        TrackingInfo(ahead=2, behind=1, gone=False)
    """
    if not annotation:
        return TrackingInfo()
    if _GONE_PATTERN.search(annotation):
        return TrackingInfo(gone=True)
    ahead = _AHEAD_PATTERN.search(annotation)
    behind = _BEHIND_PATTERN.search(annotation)
    return TrackingInfo(
        ahead=int(ahead.group(1)) if ahead else 0,
        behind=int(behind.group(1)) if behind else 0,
    )


def _listing_lines(text: str) -> Iterable[tuple[int, bool, str]]:
    """Yield ``(line_number, is_current, content)`` for ``git branch`` lines."""
    for line_number, line in enumerate(text.splitlines(), start=1):
        if not line.strip():
            continue
        yield line_number, line.startswith("*"), line[2:].strip()


def _split_remote(name: str) -> tuple[str, bool]:
    """Strip the ``remotes/`` prefix of ``git branch -a`` listings."""
    if name.startswith("remotes/"):
        return name.removeprefix("remotes/"), True
    return name, False


# =============================================================================
# Pipe-delimited records
# =============================================================================


def parse_branches(
    text: str,
    current_branch: str | None = None,
    *,
    strict: bool = False,
) -> list[Branch]:
    """Parse ``git branch --format=BRANCH_FORMAT`` records.

    Args:
        text: One ``name|upstream|track|sha|date[|author|subject]`` per line.
        current_branch: Name of the checked-out branch, if known.
        strict: Raise MalformedLineError instead of skipping bad lines.

    Returns:
        Branches in input order.
    """
    branches: list[Branch] = []
    for line_number, line in enumerate(text.splitlines(), start=1):
        if not line.strip():
            continue
        parts = line.split("|")
        if len(parts) < 3 or not parts[0]:
            reject_line(
                logger,
                "branch_malformed_line",
                parser="branch",
                line_number=line_number,
                line=line,
                reason="expected name|upstream|track|...",
                strict=strict,
            )
            continue

        parts += [""] * (7 - len(parts))
        name, upstream, track, sha, date, author = parts[:6]
        # Subjects may contain the separator
        subject = "|".join(parts[6:])
        tracking = parse_tracking(track)
        branches.append(
            Branch(
                name=name,
                upstream=upstream or None,
                ahead=tracking.ahead,
                behind=tracking.behind,
                gone=tracking.gone,
                is_current=name == current_branch,
                sha=sha or None,
                date=date or None,
                author=author or None,
                message=subject or None,
            )
        )

    logger.debug("branches_parsed", count=len(branches), current=current_branch)
    return branches


def parse_refs(
    text: str,
    prefix: str = LOCAL_HEADS_PREFIX,
    *,
    current_branch: str | None = None,
    strict: bool = False,
) -> list[Branch]:
    """Parse ``git for-each-ref --format=REF_FORMAT`` records.

    Args:
        text: One ``refname|upstream|track|sha|date|author|subject`` per line.
        prefix: Namespace stripped from matching refs to form the short name.
            Refs outside it lose their well-known namespace instead.
        current_branch: Short name of the checked-out branch, if known.
        strict: Raise MalformedLineError instead of skipping bad lines.
    """
    branches: list[Branch] = []
    for line_number, line in enumerate(text.splitlines(), start=1):
        if not line.strip():
            continue
        parts = line.split("|")
        if len(parts) < 3 or not parts[0]:
            reject_line(
                logger,
                "ref_malformed_line",
                parser="refs",
                line_number=line_number,
                line=line,
                reason="expected refname|upstream|track|...",
                strict=strict,
            )
            continue

        parts += [""] * (7 - len(parts))
        full_ref, upstream, track, sha, date, author = parts[:6]
        subject = "|".join(parts[6:])

        is_remote = full_ref.startswith(REMOTES_PREFIX)
        is_tag = full_ref.startswith(TAGS_PREFIX)
        if prefix and full_ref.startswith(prefix):
            name = full_ref.removeprefix(prefix)
        else:
            name = full_ref
            for namespace in (LOCAL_HEADS_PREFIX, REMOTES_PREFIX, TAGS_PREFIX):
                if full_ref.startswith(namespace):
                    name = full_ref.removeprefix(namespace)
                    break

        tracking = parse_tracking(track)
        branches.append(
            Branch(
                name=name,
                full_ref=full_ref,
                upstream=upstream or None,
                ahead=tracking.ahead,
                behind=tracking.behind,
                gone=tracking.gone,
                is_current=(
                    current_branch is not None
                    and not is_remote
                    and not is_tag
                    and name == current_branch
                ),
                is_remote=is_remote,
                is_tag=is_tag,
                sha=sha or None,
                date=date or None,
                author=author or None,
                message=subject or None,
            )
        )

    logger.debug("refs_parsed", count=len(branches), prefix=prefix)
    return branches


# =============================================================================
# git branch listings
# =============================================================================


def parse_simple(text: str) -> list[Branch]:
    """Parse plain ``git branch`` (or ``git branch -a``) output."""
    branches: list[Branch] = []
    for _, is_current, content in _listing_lines(text):
        if " -> " in content:
            # Symbolic ref such as remotes/origin/HEAD -> origin/main
            continue
        name, is_remote = _split_remote(content)
        branches.append(Branch(name=name, is_current=is_current, is_remote=is_remote))
    return branches


def parse_verbose(text: str, *, strict: bool = False) -> list[Branch]:
    """Parse ``git branch -v`` output (``* name sha subject``)."""
    branches: list[Branch] = []
    for line_number, is_current, content in _listing_lines(text):
        if " -> " in content:
            continue
        match = _VERBOSE_PATTERN.match(content)
        if not match:
            reject_line(
                logger,
                "branch_malformed_line",
                parser="branch-verbose",
                line_number=line_number,
                line=content,
                strict=strict,
            )
            continue
        name, is_remote = _split_remote(match.group(1))
        branches.append(
            Branch(
                name=name,
                sha=match.group(2),
                message=match.group(3) or None,
                is_current=is_current,
                is_remote=is_remote,
            )
        )
    return branches


def parse_very_verbose(text: str, *, strict: bool = False) -> list[Branch]:
    """Parse ``git branch -vv`` output.

    Lines read ``name sha [upstream: tracking] subject``; the bracketed
    upstream part is optional.
    """
    branches: list[Branch] = []
    for line_number, is_current, content in _listing_lines(text):
        if " -> " in content:
            continue
        match = _VERBOSE_PATTERN.match(content)
        if not match:
            reject_line(
                logger,
                "branch_malformed_line",
                parser="branch-very-verbose",
                line_number=line_number,
                line=content,
                strict=strict,
            )
            continue

        name, is_remote = _split_remote(match.group(1))
        sha, rest = match.group(2), match.group(3)
        upstream: str | None = None
        tracking = TrackingInfo()
        upstream_match = _UPSTREAM_PATTERN.match(rest)
        if upstream_match:
            upstream = upstream_match.group(1).strip()
            tracking = parse_tracking(upstream_match.group(2))
            rest = upstream_match.group(3)

        branches.append(
            Branch(
                name=name,
                sha=sha,
                message=rest or None,
                upstream=upstream,
                ahead=tracking.ahead,
                behind=tracking.behind,
                gone=tracking.gone,
                is_current=is_current,
                is_remote=is_remote,
            )
        )
    return branches


def current_branch_name(text: str) -> str | None:
    """Return the ``*``-marked branch of a ``git branch`` listing.

    A detached HEAD such as ``(HEAD detached at abc1234)`` is not a branch,
    so it yields None.
    """
    for _, is_current, content in _listing_lines(text):
        if is_current:
            return None if content.startswith("(") else content
    return None


def filter_branches(
    branches: Iterable[Branch],
    *,
    current: bool = False,
    local: bool = False,
    remote: bool = False,
) -> list[Branch]:
    """Keep branches passing every requested filter."""
    return [
        b
        for b in branches
        if not (current and not b.is_current)
        and not (local and not b.is_local)
        and not (remote and not b.is_remote)
    ]
