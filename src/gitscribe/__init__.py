"""gitscribe - structured models, parsers, and caching services for git output.

Parsers turn the text of ``git blame``, ``git diff``, ``git status``,
``git branch`` and ``git log`` into immutable value objects. The caching
services wrap caller-supplied fetchers with debounce, single-flight fetching,
and event-driven invalidation.
"""

from __future__ import annotations

from gitscribe.events import EventBus, GitEvent, InMemoryEventBus
from gitscribe.exceptions import (
    ConfigError,
    GitScribeError,
    MalformedLineError,
    ParseError,
)
from gitscribe.parsers import (
    create_stream_parser,
    parse_blame,
    parse_branches,
    parse_diff,
    parse_log,
    parse_name_status,
    parse_numstat,
    parse_refs,
    parse_simple,
    parse_stat,
    parse_status_v1,
    parse_status_v2,
    parse_verbose,
    parse_very_verbose,
)
from gitscribe.services import (
    BlameKey,
    BranchKey,
    BranchScope,
    DiffKey,
    GitBlameService,
    GitBranchService,
    GitDiffService,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Events
    "EventBus",
    "GitEvent",
    "InMemoryEventBus",
    # Errors
    "ConfigError",
    "GitScribeError",
    "MalformedLineError",
    "ParseError",
    # Parsers
    "create_stream_parser",
    "parse_blame",
    "parse_branches",
    "parse_diff",
    "parse_log",
    "parse_name_status",
    "parse_numstat",
    "parse_refs",
    "parse_simple",
    "parse_stat",
    "parse_status_v1",
    "parse_status_v2",
    "parse_verbose",
    "parse_very_verbose",
    # Services
    "BlameKey",
    "BranchKey",
    "BranchScope",
    "DiffKey",
    "GitBlameService",
    "GitBranchService",
    "GitDiffService",
]
