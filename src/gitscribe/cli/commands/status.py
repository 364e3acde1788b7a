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
from gitscribe.parsers.status import group_by_status, parse_status_v1, parse_status_v2


@click.command()
@input_argument
@output_options
@click.option(
    "--porcelain",
    type=click.Choice(["v1", "v2"]),
    default="v2",
    help="Porcelain version of the input.",
)
@click.option(
    "--group",
    is_flag=True,
    default=False,
    help="Bucket files into staged, unstaged, untracked, ignored and unmerged.",
)
@click.pass_context
def status(
    ctx: click.Context,
    source: IO[str],
    pretty: bool,
    strict: bool,
    porcelain: str,
    group: bool,
) -> None:
    """Parse ``git status --porcelain`` output.

    Examples:
        git status --porcelain=v2 --branch | gitscribe status
        git status --porcelain | gitscribe status --porcelain v1 --group
    """
    strict = get_cli_context(ctx).strict(strict)
    text = read_source(source)

    with cli_error_handler():
        parse = parse_status_v2 if porcelain == "v2" else parse_status_v1
        report = parse(text, strict=strict)
        if group:
            print_json(group_by_status(report.files), pretty=pretty)
        else:
            print_json(report, pretty=pretty)
