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
from gitscribe.parsers.diff import (
    changed_lines,
    classify_gutter,
    parse_diff,
    parse_name_status,
    parse_numstat,
    parse_stat,
    parse_stat_summary,
)


@click.command()
@input_argument
@output_options
@click.option(
    "-f",
    "--format",
    "fmt",
    type=click.Choice(["unified", "stat", "numstat", "name-status"]),
    default="unified",
    help="Shape of the git output being parsed.",
)
@click.option(
    "--gutter",
    is_flag=True,
    default=False,
    help="Emit per-line gutter marks instead of hunks (unified only).",
)
@click.option(
    "--lines",
    "show_lines",
    is_flag=True,
    default=False,
    help="Emit added/removed/modified line numbers (unified only).",
)
@click.pass_context
def diff(
    ctx: click.Context,
    source: IO[str],
    pretty: bool,
    strict: bool,
    fmt: str,
    gutter: bool,
    show_lines: bool,
) -> None:
    """Parse ``git diff`` output.

    Examples:
        git diff | gitscribe diff --pretty
        git diff --numstat | gitscribe diff -f numstat
    """
    cli_ctx = get_cli_context(ctx)
    strict = cli_ctx.strict(strict)
    text = read_source(source)

    with cli_error_handler():
        if fmt == "stat":
            files, insertions, deletions = parse_stat_summary(text)
            print_json(
                {
                    "files": parse_stat(text),
                    "summary": {
                        "files_changed": files,
                        "insertions": insertions,
                        "deletions": deletions,
                    },
                },
                pretty=pretty,
            )
            return
        if fmt == "numstat":
            print_json(parse_numstat(text, strict=strict), pretty=pretty)
            return
        if fmt == "name-status":
            print_json(parse_name_status(text, strict=strict), pretty=pretty)
            return

        diffs = parse_diff(text, strict=strict)
        if gutter:
            proximity = cli_ctx.config.parser.gutter_proximity
            print_json(
                {d.path: classify_gutter(d, proximity) for d in diffs},
                pretty=pretty,
            )
        elif show_lines:
            print_json({d.path: changed_lines(d) for d in diffs}, pretty=pretty)
        else:
            print_json(diffs, pretty=pretty)
