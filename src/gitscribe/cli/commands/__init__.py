"""gitscribe subcommands."""

from __future__ import annotations

from gitscribe.cli.commands.blame import blame
from gitscribe.cli.commands.branches import branches
from gitscribe.cli.commands.diff import diff
from gitscribe.cli.commands.log import log
from gitscribe.cli.commands.status import status

__all__ = ["blame", "branches", "diff", "log", "status"]
