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
from gitscribe.constants import LOCAL_HEADS_PREFIX
from gitscribe.parsers.branch import (
    parse_branches,
    parse_refs,
    parse_simple,
    parse_verbose,
    parse_very_verbose,
)


@click.command()
@input_argument
@output_options
@click.option(
    "-f",
    "--format",
    "fmt",
    type=click.Choice(["records", "simple", "verbose", "very-verbose", "refs"]),
    default="records",
    help="Shape of the listing being parsed.",
)
@click.option(
    "--current",
    "current_branch",
    default=None,
    help="Name of the checked-out branch (records and refs formats).",
)
@click.option(
    "--prefix",
    default=LOCAL_HEADS_PREFIX,
    show_default=True,
    help="Ref namespace stripped from names (refs format).",
)
@click.pass_context
def branches(
    ctx: click.Context,
    source: IO[str],
    pretty: bool,
    strict: bool,
    fmt: str,
    current_branch: str | None,
    prefix: str,
) -> None:
    """Parse branch listings.

    Examples:
        git branch --format='<BRANCH_FORMAT>' | gitscribe branches --current main
        git branch -vv | gitscribe branches -f very-verbose
    """
    strict = get_cli_context(ctx).strict(strict)
    text = read_source(source)

    with cli_error_handler():
        if fmt == "records":
            result = parse_branches(text, current_branch, strict=strict)
        elif fmt == "refs":
            result = parse_refs(text, prefix, current_branch=current_branch, strict=strict)
        elif fmt == "simple":
            result = parse_simple(text)
        elif fmt == "verbose":
            result = parse_verbose(text, strict=strict)
        else:
            result = parse_very_verbose(text, strict=strict)
        print_json(result, pretty=pretty)
