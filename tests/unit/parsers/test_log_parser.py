"""Tests for gitscribe.parsers.log."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from gitscribe.constants import COMMIT_DELIMITER, DECORATED_LOG_FORMAT
from gitscribe.exceptions import MalformedLineError
from gitscribe.models.commit import RefKind, RefName
from gitscribe.models.diff import ChangeType
from gitscribe.parsers.log import (
    count_commits,
    extract_shas,
    format_string,
    parse_graph,
    parse_log,
    parse_log_with_files,
    parse_oneline,
    parse_refs_annotation,
)

SHA_A = "a1b2c3d4" * 5
SHA_B = "0f" * 20


class TestParseLog:
    """Tests for delimited log records."""

    def test_fixture_records(self, fixture_text: Callable[[str], str]) -> None:
        newer, root = parse_log(fixture_text("log.txt"))

        assert newer.sha == SHA_B
        assert newer.parents == (SHA_A,)
        assert (newer.author, newer.author_email, newer.author_time) == (
            "Bob Jones",
            "bob@example.com",
            1700100000,
        )
        assert newer.subject == "Add greeting"
        assert root.parents == ()
        assert root.body == ""

    def test_body_keeps_separator_and_newlines(
        self, fixture_text: Callable[[str], str]
    ) -> None:
        newer = parse_log(fixture_text("log.txt"))[0]

        assert newer.body == "Longer body\nwith a | pipe"
        assert newer.message == "Add greeting\n\nLonger body\nwith a | pipe"

    def test_committer_falls_back_to_author(
        self, fixture_text: Callable[[str], str]
    ) -> None:
        root = parse_log(fixture_text("log.txt"))[1]

        assert root.committer == "Alice Smith"
        assert root.committer_email == "alice@example.com"
        assert root.committer_time == 1700000000

    def test_decorated_records(self) -> None:
        text = (
            f"{COMMIT_DELIMITER}\n"
            f"{SHA_A}|{SHA_B} {SHA_B}|Ann|ann@x.io|1700000000"
            "| (HEAD -> main, origin/main, tag: v1.0)|Merge it|\n"
        )

        (commit,) = parse_log(text, include_refs=True)

        assert commit.is_merge
        assert commit.is_head
        assert commit.branches == ["main"]
        assert commit.remote_branches == ["origin/main"]
        assert commit.tags == ["v1.0"]
        assert commit.subject == "Merge it"

    def test_malformed_record_skipped(self) -> None:
        text = f"{COMMIT_DELIMITER}\nnot|enough\n{COMMIT_DELIMITER}\n{SHA_A}||A|a@x|1|ok|\n"

        commits = parse_log(text)

        assert [c.subject for c in commits] == ["ok"]

    def test_malformed_record_strict(self) -> None:
        with pytest.raises(MalformedLineError) as exc_info:
            parse_log(f"{COMMIT_DELIMITER}\nnot|enough\n", strict=True)

        assert exc_info.value.parser == "log"
        assert exc_info.value.line_number == 2

    def test_non_numeric_timestamp_rejected(self) -> None:
        text = f"{COMMIT_DELIMITER}\n{SHA_A}||A|a@x|yesterday|s|\n"
        assert parse_log(text) == []

    def test_text_before_first_delimiter_ignored(
        self, fixture_text: Callable[[str], str]
    ) -> None:
        text = "warning: noise\n" + fixture_text("log.txt")
        assert len(parse_log(text)) == 2

    def test_empty_input(self) -> None:
        assert parse_log("") == []


class TestParseLogWithFiles:
    def test_name_status_tail(self) -> None:
        text = "\n".join(
            [
                COMMIT_DELIMITER,
                f"{SHA_A}||Ann|ann@x.io|1700000000|Touch files|",
                "",
                "M\tsrc/app.py",
                "R090\told.txt\tnew.txt",
                "A\tadded.txt",
            ]
        )

        (commit,) = parse_log_with_files(text)

        assert commit.subject == "Touch files"
        assert [(f.change_type, f.path, f.old_path) for f in commit.files] == [
            (ChangeType.MODIFIED, "src/app.py", None),
            (ChangeType.RENAMED, "new.txt", "old.txt"),
            (ChangeType.ADDED, "added.txt", None),
        ]
        assert commit.files[1].status == "R090"

    def test_record_without_files(self, fixture_text: Callable[[str], str]) -> None:
        commits = parse_log_with_files(fixture_text("log.txt"))

        assert [c.files for c in commits] == [(), ()]
        assert commits[0].body == "Longer body\nwith a | pipe"


class TestLogHelpers:
    def test_parse_refs_annotation(self) -> None:
        refs = parse_refs_annotation(" (HEAD -> main, tag: v2, upstream/dev, topic)")

        assert refs == (
            RefName(RefKind.HEAD, "main"),
            RefName(RefKind.BRANCH, "main"),
            RefName(RefKind.TAG, "v2"),
            RefName(RefKind.REMOTE, "upstream/dev"),
            RefName(RefKind.BRANCH, "topic"),
        )

    def test_detached_head_annotation(self) -> None:
        assert parse_refs_annotation("(HEAD)") == (RefName(RefKind.HEAD, "HEAD"),)
        assert parse_refs_annotation("") == ()

    def test_parse_oneline(self) -> None:
        summaries = parse_oneline("a1b2c3d Fix bug\n0f0f0f0 Add thing\n\n")

        assert [(s.sha, s.subject) for s in summaries] == [
            ("a1b2c3d", "Fix bug"),
            ("0f0f0f0", "Add thing"),
        ]

    def test_parse_graph_skips_connector_lines(self) -> None:
        lines = parse_graph("* a1b2c3d Tip\n|\\\n| * 0f0f0f0 Side\n|/\n")

        assert [(g.graph, g.sha, g.subject) for g in lines] == [
            ("* ", "a1b2c3d", "Tip"),
            ("| * ", "0f0f0f0", "Side"),
        ]

    def test_extract_shas_distinct_in_order(
        self, fixture_text: Callable[[str], str]
    ) -> None:
        assert extract_shas(fixture_text("log.txt")) == [SHA_B, SHA_A]

    def test_count_commits(self, fixture_text: Callable[[str], str]) -> None:
        assert count_commits(fixture_text("log.txt")) == 2
        assert count_commits("") == 0

    def test_format_string(self) -> None:
        assert format_string(include_refs=True) == f"{COMMIT_DELIMITER}%n{DECORATED_LOG_FORMAT}"
        assert "%d" not in format_string()
