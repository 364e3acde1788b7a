"""Decoders for git's textual output formats.

Every parser is lenient by default: lines that match no known grammar are
logged and skipped. Pass ``strict=True`` to raise
:class:`~gitscribe.exceptions.MalformedLineError` instead.
"""

from __future__ import annotations

from gitscribe.parsers.blame import (
    BlameStreamParser,
    BlameStreamStats,
    check_partition,
    create_line_map,
    create_stream_parser,
    group_by_commit,
    parse_blame,
    parse_blame_porcelain,
    unique_commits,
)
from gitscribe.parsers.branch import (
    current_branch_name,
    filter_branches,
    parse_branches,
    parse_refs,
    parse_simple,
    parse_tracking,
    parse_verbose,
    parse_very_verbose,
)
from gitscribe.parsers.diff import (
    changed_lines,
    classify_gutter,
    line_to_hunk_map,
    parse_diff,
    parse_name_status,
    parse_numstat,
    parse_stat,
    parse_stat_summary,
)
from gitscribe.parsers.log import (
    count_commits,
    extract_shas,
    format_string,
    parse_graph,
    parse_log,
    parse_log_with_files,
    parse_oneline,
    parse_refs_annotation,
)
from gitscribe.parsers.status import (
    StatusLineKind,
    classify_status_line,
    filter_files,
    group_by_status,
    parse_status_short,
    parse_status_v1,
    parse_status_v2,
    status_description,
)

__all__ = [
    # Blame
    "BlameStreamParser",
    "BlameStreamStats",
    "check_partition",
    "create_line_map",
    "create_stream_parser",
    "group_by_commit",
    "parse_blame",
    "parse_blame_porcelain",
    "unique_commits",
    # Branches
    "current_branch_name",
    "filter_branches",
    "parse_branches",
    "parse_refs",
    "parse_simple",
    "parse_tracking",
    "parse_verbose",
    "parse_very_verbose",
    # Diffs
    "changed_lines",
    "classify_gutter",
    "line_to_hunk_map",
    "parse_diff",
    "parse_name_status",
    "parse_numstat",
    "parse_stat",
    "parse_stat_summary",
    # Log
    "count_commits",
    "extract_shas",
    "format_string",
    "parse_graph",
    "parse_log",
    "parse_log_with_files",
    "parse_oneline",
    "parse_refs_annotation",
    # Status
    "StatusLineKind",
    "classify_status_line",
    "filter_files",
    "group_by_status",
    "parse_status_short",
    "parse_status_v1",
    "parse_status_v2",
    "status_description",
]
