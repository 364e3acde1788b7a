from __future__ import annotations

from typing import IO

import click

from gitscribe.cli.common import (
    cli_error_handler,
    get_cli_context,
    input_argument,
    output_options,
)
from gitscribe.cli.context import ExitCode, async_command
from gitscribe.cli.output import format_error, print_json
from gitscribe.parsers.blame import check_partition, unique_commits
from gitscribe.services.blame import GitBlameService


@click.command()
@input_argument
@output_options
@click.option(
    "-L",
    "--line",
    "line_number",
    type=click.IntRange(min=1),
    default=None,
    help="Only report the entry covering this line.",
)
@click.option(
    "--commits",
    is_flag=True,
    default=False,
    help="Summarize by commit instead of listing line ranges.",
)
@click.option(
    "--check",
    is_flag=True,
    default=False,
    help="Verify the entries tile the file without gaps or overlaps.",
)
@click.pass_context
@async_command
async def blame(
    ctx: click.Context,
    source: IO[str],
    pretty: bool,
    strict: bool,
    line_number: int | None,
    commits: bool,
    check: bool,
) -> None:
    """Parse ``git blame --porcelain`` output.

    Lines are parsed as they are read, so piping a running blame works.

    Examples:
        git blame --porcelain src/app.py | gitscribe blame
        gitscribe blame blame.txt --line 42
    """
    cli_ctx = get_cli_context(ctx)
    label = getattr(source, "name", "<stdin>")

    with cli_error_handler():
        async with GitBlameService(
            config=cli_ctx.config.blame,
            parser_config=cli_ctx.config.parser.model_copy(
                update={"strict": cli_ctx.strict(strict)}
            ),
        ) as service:
            entries = await service.stream_blame(label, source)

        if check:
            problems = check_partition(entries)
            if problems:
                click.echo(format_error("Blame ranges do not tile the file", problems), err=True)
                raise SystemExit(ExitCode.FAILURE)

        if line_number is not None:
            match = next((e for e in entries if e.contains_line(line_number)), None)
            if match is None:
                click.echo(format_error(f"No blame entry covers line {line_number}"), err=True)
                raise SystemExit(ExitCode.FAILURE)
            print_json(match, pretty=pretty)
        elif commits:
            print_json(unique_commits(entries), pretty=pretty)
        else:
            print_json(entries, pretty=pretty)
