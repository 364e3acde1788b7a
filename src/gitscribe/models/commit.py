"""Commit history value objects."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from enum import Enum

from gitscribe.constants import SHORT_SHA_LENGTH
from gitscribe.models._time import (
    DateStyle,
    format_timestamp,
    from_timestamp,
    relative_time,
)
from gitscribe.models.diff import ChangeType

__all__ = [
    "Commit",
    "CommitFile",
    "CommitSummary",
    "GraphLine",
    "RefKind",
    "RefName",
]


class RefKind(str, Enum):
    """Kind of a ref decoration attached to a commit."""

    HEAD = "head"
    BRANCH = "branch"
    REMOTE = "remote"
    TAG = "tag"


@dataclass(frozen=True, slots=True)
class RefName:
    kind: RefKind
    name: str

    def to_dict(self) -> dict[str, object]:
        return {"kind": self.kind.value, "name": self.name}


@dataclass(frozen=True, slots=True)
class CommitFile:
    """A file touched by a commit (``--name-status`` line)."""

    change_type: ChangeType
    path: str
    old_path: str | None = None
    status: str = ""

    def to_dict(self) -> dict[str, object]:
        data = asdict(self)
        data["change_type"] = self.change_type.value
        return data


@dataclass(frozen=True, slots=True)
class Commit:
    """A commit decoded from ``git log`` output.

    Committer identity and time fall back to the author's when the log
    format does not carry them.

    Attributes:
        sha: Full revision id.
        parents: Parent revision ids (empty for a root commit).
        author: Author name.
        author_email: Author email.
        author_time: Author timestamp (seconds since epoch).
        committer: Committer name.
        committer_email: Committer email.
        committer_time: Committer timestamp.
        subject: First line of the message.
        body: Remainder of the message.
        refs: Ref decorations (``--decorate``).
        files: Touched files, when the log included ``--name-status``.
    """

    sha: str
    parents: tuple[str, ...] = ()
    author: str | None = None
    author_email: str | None = None
    author_time: int | None = None
    committer: str | None = None
    committer_email: str | None = None
    committer_time: int | None = None
    subject: str = ""
    body: str = ""
    refs: tuple[RefName, ...] = ()
    files: tuple[CommitFile, ...] = ()

    def __post_init__(self) -> None:
        # Frozen dataclass: fill fallbacks through object.__setattr__
        if self.committer is None:
            object.__setattr__(self, "committer", self.author)
        if self.committer_email is None:
            object.__setattr__(self, "committer_email", self.author_email)
        if self.committer_time is None:
            object.__setattr__(self, "committer_time", self.author_time)

    @property
    def short_sha(self) -> str:
        return self.sha[:SHORT_SHA_LENGTH]

    @property
    def message(self) -> str:
        return f"{self.subject}\n\n{self.body}" if self.body else self.subject

    @property
    def date(self) -> datetime | None:
        return from_timestamp(self.author_time)

    @property
    def commit_date(self) -> datetime | None:
        return from_timestamp(self.committer_time)

    @property
    def is_merge(self) -> bool:
        return len(self.parents) > 1

    def _ref_names(self, *kinds: RefKind) -> list[str]:
        names: list[str] = []
        for ref in self.refs:
            if ref.kind in kinds and ref.name not in names:
                names.append(ref.name)
        return names

    @property
    def branches(self) -> list[str]:
        return self._ref_names(RefKind.BRANCH, RefKind.HEAD)

    @property
    def tags(self) -> list[str]:
        return self._ref_names(RefKind.TAG)

    @property
    def remote_branches(self) -> list[str]:
        return self._ref_names(RefKind.REMOTE)

    @property
    def is_head(self) -> bool:
        return any(ref.kind is RefKind.HEAD for ref in self.refs)

    def relative_time(self, now: datetime | None = None) -> str:
        return relative_time(self.author_time, now)

    def formatted_date(
        self, style: DateStyle = "medium", now: datetime | None = None
    ) -> str:
        return format_timestamp(self.author_time, style, now)

    def __str__(self) -> str:
        return f"{self.short_sha} {self.subject}"

    def to_dict(self) -> dict[str, object]:
        return {
            "sha": self.sha,
            "short_sha": self.short_sha,
            "parents": list(self.parents),
            "author": self.author,
            "author_email": self.author_email,
            "author_time": self.author_time,
            "committer": self.committer,
            "committer_email": self.committer_email,
            "committer_time": self.committer_time,
            "subject": self.subject,
            "body": self.body,
            "refs": [ref.to_dict() for ref in self.refs],
            "files": [f.to_dict() for f in self.files],
        }


@dataclass(frozen=True, slots=True)
class CommitSummary:
    """One ``git log --oneline`` entry."""

    sha: str
    subject: str

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class GraphLine:
    """One commit line of ``git log --graph --oneline``."""

    graph: str
    sha: str
    subject: str

    def to_dict(self) -> dict[str, object]:
        return asdict(self)
