"""Branch and upstream-tracking value objects."""

from __future__ import annotations

from dataclasses import asdict, dataclass

from gitscribe.constants import SHORT_SHA_LENGTH

__all__ = ["Branch", "TrackingInfo"]


@dataclass(frozen=True, slots=True)
class TrackingInfo:
    """Ahead/behind counts decoded from an upstream annotation."""

    ahead: int = 0
    behind: int = 0
    gone: bool = False


@dataclass(frozen=True, slots=True)
class Branch:
    """A local branch, remote-tracking branch, or tag.

    Attributes:
        name: Short ref name (``main``, ``origin/main``).
        full_ref: Fully qualified ref (``refs/heads/main``).
        upstream: Short name of the upstream ref.
        ahead: Commits on this branch missing from the upstream.
        behind: Commits on the upstream missing from this branch.
        is_current: True for the checked-out branch.
        is_remote: True for ``refs/remotes/`` refs.
        is_tag: True for ``refs/tags/`` refs.
        gone: True when the configured upstream no longer exists.
        sha: Tip revision id (possibly abbreviated).
        date: Date of the tip commit as printed by git.
        author: Author of the tip commit.
        message: Subject of the tip commit.
    """

    name: str
    full_ref: str | None = None
    upstream: str | None = None
    ahead: int = 0
    behind: int = 0
    is_current: bool = False
    is_remote: bool = False
    is_tag: bool = False
    gone: bool = False
    sha: str | None = None
    date: str | None = None
    author: str | None = None
    message: str | None = None

    @property
    def short_sha(self) -> str:
        return self.sha[:SHORT_SHA_LENGTH] if self.sha else ""

    @property
    def has_upstream(self) -> bool:
        return bool(self.upstream) and not self.gone

    @property
    def is_ahead(self) -> bool:
        return self.ahead > 0

    @property
    def is_behind(self) -> bool:
        return self.behind > 0

    @property
    def is_in_sync(self) -> bool:
        return self.has_upstream and self.ahead == 0 and self.behind == 0

    @property
    def has_diverged(self) -> bool:
        return self.ahead > 0 and self.behind > 0

    @property
    def is_local(self) -> bool:
        return not self.is_remote and not self.is_tag

    @property
    def tracking_status(self) -> str:
        """Readable tracking state, e.g. ``"ahead 2, behind 1"``."""
        if self.gone:
            return "gone"
        if not self.has_upstream:
            return "no upstream"
        if self.is_in_sync:
            return "up to date"
        parts = []
        if self.ahead:
            parts.append(f"ahead {self.ahead}")
        if self.behind:
            parts.append(f"behind {self.behind}")
        return ", ".join(parts)

    @property
    def short_tracking_status(self) -> str:
        if not self.has_upstream:
            return ""
        if self.is_in_sync:
            return "✓"
        parts = []
        if self.ahead:
            parts.append(f"↑{self.ahead}")
        if self.behind:
            parts.append(f"↓{self.behind}")
        return " ".join(parts)

    @property
    def remote_name(self) -> str | None:
        if not self.upstream:
            return None
        return self.upstream.split("/", 1)[0]

    @property
    def upstream_branch_name(self) -> str | None:
        if not self.upstream:
            return None
        _, sep, rest = self.upstream.partition("/")
        return rest if sep else self.upstream

    @property
    def display_name(self) -> str:
        return f"* {self.name}" if self.is_current else f"  {self.name}"

    def __str__(self) -> str:
        text = self.display_name
        if self.upstream:
            text += f" [{self.upstream}"
            if self.gone or self.ahead or self.behind:
                text += f": {self.tracking_status}"
            text += "]"
        return text

    def to_dict(self) -> dict[str, object]:
        data = asdict(self)
        data["short_sha"] = self.short_sha
        return data
