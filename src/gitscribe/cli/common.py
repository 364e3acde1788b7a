"""Helpers shared by the gitscribe subcommands."""

from __future__ import annotations

import contextlib
from collections.abc import Callable, Generator
from typing import IO, Any, TypeVar

import click

from gitscribe.cli.context import CLIContext, ExitCode
from gitscribe.cli.output import format_error
from gitscribe.exceptions import ConfigError, GitScribeError, MalformedLineError
from gitscribe.logging import get_logger

__all__ = [
    "cli_error_handler",
    "get_cli_context",
    "input_argument",
    "output_options",
    "read_source",
]

F = TypeVar("F", bound=Callable[..., Any])


@contextlib.contextmanager
def cli_error_handler() -> Generator[None, None, None]:
    """Context manager for common CLI error handling.

    - KeyboardInterrupt: exit with code 130
    - MalformedLineError: report the offending line, exit with code 2
    - GitScribeError: report the message, exit with code 1
    """
    logger = get_logger(__name__)

    try:
        yield
    except KeyboardInterrupt:
        click.echo("\n\nInterrupted by user.", err=True)
        raise SystemExit(ExitCode.INTERRUPTED) from None
    except MalformedLineError as e:
        error_msg = format_error(
            e.message,
            details=[f"Parser: {e.parser}", f"Line {e.line_number}: {e.line!r}"],
            suggestion="Run without --strict to skip malformed lines",
        )
        click.echo(error_msg, err=True)
        raise SystemExit(ExitCode.MALFORMED_INPUT) from e
    except ConfigError as e:
        details = [f"Field: {e.field}"] if e.field else None
        click.echo(format_error(e.message, details=details), err=True)
        raise SystemExit(ExitCode.FAILURE) from e
    except GitScribeError as e:
        logger.debug("command_failed", error=e.message)
        click.echo(format_error(e.message), err=True)
        raise SystemExit(ExitCode.FAILURE) from e


def get_cli_context(ctx: click.Context) -> CLIContext:
    return ctx.obj["cli_ctx"]


def read_source(source: IO[str]) -> str:
    """Read all text from a ``click.File`` argument (``-`` is stdin)."""
    return source.read()


def input_argument(f: F) -> F:
    """Add the SOURCE argument: a file of git output, or ``-`` for stdin."""
    return click.argument(
        "source",
        type=click.File("r", encoding="utf-8", errors="surrogateescape"),
        default="-",
    )(f)


def output_options(f: F) -> F:
    """Add ``--pretty`` and ``--strict`` to a parse command."""
    f = click.option(
        "--strict",
        is_flag=True,
        default=False,
        help="Fail on malformed lines instead of skipping them.",
    )(f)
    return click.option(
        "--pretty",
        is_flag=True,
        default=False,
        help="Syntax-highlight the JSON output.",
    )(f)
