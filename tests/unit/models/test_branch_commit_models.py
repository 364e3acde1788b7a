"""Tests for branch and commit value objects."""

from __future__ import annotations

from datetime import UTC, datetime

from gitscribe.models.branch import Branch
from gitscribe.models.commit import Commit, CommitFile, RefKind, RefName
from gitscribe.models.diff import ChangeType


class TestBranch:
    """Tests for Branch tracking helpers."""

    def test_diverged_branch(self) -> None:
        branch = Branch(name="main", upstream="origin/main", ahead=2, behind=1, is_current=True)

        assert branch.has_diverged
        assert branch.is_ahead and branch.is_behind
        assert branch.tracking_status == "ahead 2, behind 1"
        assert branch.short_tracking_status == "↑2 ↓1"
        assert str(branch) == "* main [origin/main: ahead 2, behind 1]"

    def test_in_sync_branch(self) -> None:
        branch = Branch(name="dev", upstream="origin/dev")

        assert branch.is_in_sync
        assert branch.tracking_status == "up to date"
        assert branch.short_tracking_status == "✓"
        assert str(branch) == "  dev [origin/dev]"

    def test_gone_upstream(self) -> None:
        branch = Branch(name="old", upstream="origin/old", gone=True)

        assert not branch.has_upstream
        assert branch.tracking_status == "gone"
        assert branch.short_tracking_status == ""
        assert str(branch) == "  old [origin/old: gone]"

    def test_upstream_parts(self) -> None:
        branch = Branch(name="f", upstream="origin/feature/login")

        assert branch.remote_name == "origin"
        assert branch.upstream_branch_name == "feature/login"
        assert Branch(name="x").remote_name is None
        assert Branch(name="x", upstream="solo").upstream_branch_name == "solo"

    def test_kinds(self) -> None:
        assert Branch(name="main").is_local
        assert not Branch(name="origin/main", is_remote=True).is_local
        assert not Branch(name="v1", is_tag=True).is_local

    def test_to_dict(self) -> None:
        data = Branch(name="main", sha="a1b2c3d4e5").to_dict()

        assert data["short_sha"] == "a1b2c3d"
        assert data["name"] == "main"


class TestCommit:
    """Tests for Commit."""

    def test_committer_fallbacks(self) -> None:
        commit = Commit(sha="a" * 40, author="Ann", author_email="ann@x.io", author_time=10)

        assert commit.committer == "Ann"
        assert commit.committer_email == "ann@x.io"
        assert commit.committer_time == 10

    def test_explicit_committer_kept(self) -> None:
        commit = Commit(sha="a" * 40, author="Ann", committer="Bot", committer_time=20)

        assert commit.committer == "Bot"
        assert commit.commit_date == datetime(1970, 1, 1, 0, 0, 20, tzinfo=UTC)

    def test_message_and_str(self) -> None:
        commit = Commit(sha="0123456789" * 4, subject="Subject", body="Body")

        assert commit.message == "Subject\n\nBody"
        assert str(commit) == "0123456 Subject"
        assert Commit(sha="b" * 40, subject="Only").message == "Only"

    def test_ref_views_deduplicate(self) -> None:
        commit = Commit(
            sha="c" * 40,
            refs=(
                RefName(RefKind.HEAD, "main"),
                RefName(RefKind.BRANCH, "main"),
                RefName(RefKind.REMOTE, "origin/main"),
                RefName(RefKind.TAG, "v1"),
            ),
        )

        assert commit.branches == ["main"]
        assert commit.remote_branches == ["origin/main"]
        assert commit.tags == ["v1"]
        assert commit.is_head

    def test_to_dict(self) -> None:
        commit = Commit(
            sha="d" * 40,
            parents=("e" * 40, "f" * 40),
            files=(CommitFile(ChangeType.MODIFIED, "a.py", status="M"),),
        )

        data = commit.to_dict()

        assert commit.is_merge
        assert data["short_sha"] == "ddddddd"
        assert data["files"] == [
            {"change_type": "modified", "path": "a.py", "old_path": None, "status": "M"}
        ]
