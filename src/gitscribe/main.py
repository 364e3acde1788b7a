"""CLI entry point for gitscribe.

This module defines the Click-based command-line interface. Every subcommand
reads captured git output from a file argument or stdin and prints JSON.
"""

from __future__ import annotations

import logging
from pathlib import Path

import click

from gitscribe import __version__
from gitscribe.cli.commands import blame, branches, diff, log, status
from gitscribe.cli.context import CLIContext, ExitCode
from gitscribe.cli.output import format_error
from gitscribe.config import load_config
from gitscribe.exceptions import ConfigError
from gitscribe.logging import configure_logging, verbosity_to_level


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="gitscribe")
@click.option(
    "-c",
    "--config",
    "config_file",
    type=click.Path(exists=False, path_type=str),
    default=None,
    help="Path to config file (overrides ./gitscribe.yaml).",
)
@click.option(
    "-v",
    "--verbose",
    count=True,
    help="Increase verbosity (-v for INFO, -vv for DEBUG).",
)
@click.option(
    "-q",
    "--quiet",
    is_flag=True,
    default=False,
    help="Suppress non-essential output (ERROR level only).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config_file: str | None,
    verbose: int,
    quiet: bool,
) -> None:
    """gitscribe - parse git output into structured data."""
    ctx.ensure_object(dict)

    # Configuration loads before logging is set up
    config_path = Path(config_file) if config_file else None
    try:
        config = load_config(config_path)
    except ConfigError as e:
        details = []
        if e.field:
            details.append(f"Field: {e.field}")
        if e.value is not None:
            details.append(f"Value: {e.value}")
        click.echo(format_error(e.message, details=details or None), err=True)
        ctx.exit(ExitCode.FAILURE)

    ctx.obj["cli_ctx"] = CLIContext(
        config=config,
        config_path=config_path,
        verbosity=verbose,
        quiet=quiet,
    )

    # Priority: quiet > verbose > config
    if quiet:
        level = logging.ERROR
    elif verbose > 0:
        level = logging.INFO if verbose == 1 else logging.DEBUG
    else:
        level = verbosity_to_level(config.verbosity)

    configure_logging(level=level)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


cli.add_command(blame)
cli.add_command(branches)
cli.add_command(diff)
cli.add_command(log)
cli.add_command(status)

if __name__ == "__main__":
    cli()
