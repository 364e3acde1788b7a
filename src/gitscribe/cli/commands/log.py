from __future__ import annotations

from typing import IO

import click

from gitscribe.cli.common import (
    cli_error_handler,
    get_cli_context,
    input_argument,
    output_options,
    read_source,
)
from gitscribe.cli.output import print_json
from gitscribe.parsers.log import format_string, parse_log, parse_log_with_files


@click.command()
@input_argument
@output_options
@click.option(
    "--refs",
    "include_refs",
    is_flag=True,
    default=False,
    help="Input was produced with the decorated (%d) format.",
)
@click.option(
    "--files",
    "with_files",
    is_flag=True,
    default=False,
    help="Input includes --name-status file lists.",
)
@click.option(
    "--print-format",
    is_flag=True,
    default=False,
    help="Print the --format argument to pass to git log and exit.",
)
@click.pass_context
def log(
    ctx: click.Context,
    source: IO[str],
    pretty: bool,
    strict: bool,
    include_refs: bool,
    with_files: bool,
    print_format: bool,
) -> None:
    """Parse delimited ``git log`` output.

    Examples:
        git log --format="$(gitscribe log --print-format)" | gitscribe log
        git log --name-status --format="$(gitscribe log --print-format --refs)" \\
            | gitscribe log --refs --files
    """
    if print_format:
        click.echo(format_string(include_refs))
        return

    strict = get_cli_context(ctx).strict(strict)
    text = read_source(source)

    with cli_error_handler():
        parse = parse_log_with_files if with_files else parse_log
        print_json(parse(text, include_refs, strict=strict), pretty=pretty)
