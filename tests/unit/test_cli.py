"""Unit tests for the CLI entry point.

These tests verify the Click-based CLI interface for gitscribe, including
version output, help text, each parse command, and exit codes.
"""

from __future__ import annotations

import json
import os
from collections.abc import Callable
from pathlib import Path

import pytest
from click.testing import CliRunner

from gitscribe import __version__
from gitscribe.cli.context import ExitCode
from gitscribe.main import cli


@pytest.fixture(autouse=True)
def isolated_config(clean_env: None, temp_dir: Path) -> None:
    os.chdir(temp_dir)


def invoke_json(cli_runner: CliRunner, args: list[str], stdin: str) -> object:
    result = cli_runner.invoke(cli, args, input=stdin)
    assert result.exit_code == ExitCode.SUCCESS, result.stderr
    return json.loads(result.stdout)


# =============================================================================
# Group
# =============================================================================


def test_version_output(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_help_output(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, ["--help"])

    assert result.exit_code == 0
    assert "gitscribe" in result.output
    assert "--verbose" in result.output
    for command in ("blame", "branches", "diff", "log", "status"):
        assert command in result.output


def test_no_subcommand_prints_help(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, [])

    assert result.exit_code == 0
    assert "Commands:" in result.output


def test_unknown_command_is_usage_error(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, ["frobnicate"])

    assert result.exit_code == 2


def test_invalid_config_exits_with_failure(cli_runner: CliRunner, temp_dir: Path) -> None:
    config = temp_dir / "bad.yaml"
    config.write_text("diff:\n  ttl_seconds: -1\n")

    result = cli_runner.invoke(cli, ["--config", str(config), "status"], input="")

    assert result.exit_code == ExitCode.FAILURE
    assert "Field: diff.ttl_seconds" in result.stderr


# =============================================================================
# Commands
# =============================================================================


class TestStatusCommand:
    def test_v2_report(
        self, cli_runner: CliRunner, fixture_text: Callable[[str], str]
    ) -> None:
        data = invoke_json(cli_runner, ["status"], fixture_text("status_v2.txt"))

        assert isinstance(data, dict)
        assert data["branch"] == "main"
        assert (data["ahead"], data["behind"]) == (2, 1)
        assert [f["path"] for f in data["files"]][:2] == ["src/staged.py", "src/unstaged.py"]

    def test_grouped_v1(self, cli_runner: CliRunner) -> None:
        data = invoke_json(
            cli_runner,
            ["status", "--porcelain", "v1", "--group"],
            "M  staged.py\n?? new.txt\n",
        )

        assert isinstance(data, dict)
        assert [f["path"] for f in data["staged"]] == ["staged.py"]
        assert [f["path"] for f in data["untracked"]] == ["new.txt"]

    def test_strict_rejects_malformed_line(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["status", "--strict"], input="garbage\n")

        assert result.exit_code == ExitCode.MALFORMED_INPUT
        assert "Malformed status-v2 line 1" in result.stderr
        assert result.stdout == ""

    def test_lenient_skips_malformed_line(self, cli_runner: CliRunner) -> None:
        data = invoke_json(cli_runner, ["status"], "garbage\n? new.txt\n")

        assert isinstance(data, dict)
        assert [f["path"] for f in data["files"]] == ["new.txt"]

    def test_reads_file_argument(self, cli_runner: CliRunner, temp_dir: Path) -> None:
        source = temp_dir / "status.txt"
        source.write_text("? a.txt\n")

        result = cli_runner.invoke(cli, ["status", str(source)])

        assert result.exit_code == 0
        assert json.loads(result.stdout)["files"][0]["path"] == "a.txt"


class TestDiffCommand:
    def test_unified(self, cli_runner: CliRunner, fixture_text: Callable[[str], str]) -> None:
        data = invoke_json(cli_runner, ["diff"], fixture_text("diff_unified.txt"))

        assert isinstance(data, list)
        assert [d["path"] for d in data] == ["src/app.py", "README.md", "new.txt", "logo.png"]
        assert data[0]["hunks"][0]["new_start"] == 1

    def test_lines(self, cli_runner: CliRunner, fixture_text: Callable[[str], str]) -> None:
        data = invoke_json(cli_runner, ["diff", "--lines"], fixture_text("diff_unified.txt"))

        assert isinstance(data, dict)
        assert data["src/app.py"]["modified"] == [2]

    def test_gutter(self, cli_runner: CliRunner, fixture_text: Callable[[str], str]) -> None:
        data = invoke_json(cli_runner, ["diff", "--gutter"], fixture_text("diff_unified.txt"))

        assert isinstance(data, dict)
        assert data["src/app.py"][0] == {
            "line": 2,
            "type": "deleted",
            "content": "import sys",
            "hunk": "@@ -1,4 +1,5 @@ def main():",
            "staged": False,
        }

    def test_numstat(self, cli_runner: CliRunner) -> None:
        data = invoke_json(
            cli_runner, ["diff", "-f", "numstat"], "3\t1\tsrc/app.py\n-\t-\tlogo.png\n"
        )

        assert data == [
            {"path": "src/app.py", "additions": 3, "deletions": 1, "is_binary": False},
            {"path": "logo.png", "additions": None, "deletions": None, "is_binary": True},
        ]

    def test_stat_summary(self, cli_runner: CliRunner) -> None:
        text = (
            " src/app.py | 4 +++-\n"
            " 1 file changed, 3 insertions(+), 1 deletion(-)\n"
        )

        data = invoke_json(cli_runner, ["diff", "-f", "stat"], text)

        assert isinstance(data, dict)
        assert data["summary"] == {"files_changed": 1, "insertions": 3, "deletions": 1}


class TestOtherCommands:
    def test_branches_records(
        self, cli_runner: CliRunner, fixture_text: Callable[[str], str]
    ) -> None:
        data = invoke_json(
            cli_runner, ["branches", "--current", "main"], fixture_text("branches.txt")
        )

        assert isinstance(data, list)
        assert [b["name"] for b in data] == ["main", "feature/login", "scratch"]
        assert data[0]["is_current"] is True
        assert data[1]["gone"] is True

    def test_branches_simple(self, cli_runner: CliRunner) -> None:
        data = invoke_json(cli_runner, ["branches", "-f", "simple"], "* main\n  dev\n")

        assert isinstance(data, list)
        assert [(b["name"], b["is_current"]) for b in data] == [("main", True), ("dev", False)]

    def test_log(self, cli_runner: CliRunner, fixture_text: Callable[[str], str]) -> None:
        data = invoke_json(cli_runner, ["log"], fixture_text("log.txt"))

        assert isinstance(data, list)
        assert [c["subject"] for c in data] == ["Add greeting", "Initial commit"]

    def test_log_print_format(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["log", "--print-format"])

        assert result.exit_code == 0
        assert result.stdout.startswith("---COMMIT---")

    def test_blame(self, cli_runner: CliRunner, fixture_text: Callable[[str], str]) -> None:
        data = invoke_json(cli_runner, ["blame", "--check"], fixture_text("blame_porcelain.txt"))

        assert isinstance(data, list)
        assert [(e["line_start"], e["line_end"]) for e in data] == [(1, 2), (3, 3), (4, 4)]

    def test_blame_single_line(
        self, cli_runner: CliRunner, fixture_text: Callable[[str], str]
    ) -> None:
        data = invoke_json(
            cli_runner, ["blame", "--line", "3"], fixture_text("blame_porcelain.txt")
        )

        assert isinstance(data, dict)
        assert data["author"] == "Bob Jones"

    def test_blame_uncovered_line_fails(
        self, cli_runner: CliRunner, fixture_text: Callable[[str], str]
    ) -> None:
        result = cli_runner.invoke(
            cli, ["blame", "--line", "40"], input=fixture_text("blame_porcelain.txt")
        )

        assert result.exit_code == ExitCode.FAILURE
        assert "No blame entry covers line 40" in result.stderr

    def test_blame_commits(
        self, cli_runner: CliRunner, fixture_text: Callable[[str], str]
    ) -> None:
        data = invoke_json(cli_runner, ["blame", "--commits"], fixture_text("blame_porcelain.txt"))

        assert isinstance(data, list)
        assert [c["line_count"] for c in data] == [3, 1]
