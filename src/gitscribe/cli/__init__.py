"""CLI utilities for gitscribe.

This module provides CLI-specific utilities including context management,
exit codes, and JSON output.
"""

from __future__ import annotations

from gitscribe.cli.context import CLIContext, ExitCode, async_command
from gitscribe.cli.output import format_error, format_json, print_json

__all__ = [
    "CLIContext",
    "ExitCode",
    "async_command",
    "format_error",
    "format_json",
    "print_json",
]
