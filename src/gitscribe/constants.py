"""gitscribe constants.

Single source of truth for cache timings, record delimiters, and the format
strings callers must pass to git so that the parsers can decode the output.
"""

from __future__ import annotations

# =============================================================================
# Cache Timing
# =============================================================================

#: Debounce window for bursts of same-key requests (keystrokes, saves)
DEFAULT_DEBOUNCE_SECONDS: float = 0.3

#: Blame results stay valid for five minutes
DEFAULT_BLAME_TTL_SECONDS: float = 300.0

#: Diff results stay valid for two minutes
DEFAULT_DIFF_TTL_SECONDS: float = 120.0

#: Branch listings stay valid for two minutes
DEFAULT_BRANCH_TTL_SECONDS: float = 120.0

#: Default revision blamed when callers do not name one
DEFAULT_REVISION: str = "HEAD"

# =============================================================================
# Diff Gutter
# =============================================================================

#: An addition this close to a deletion is rendered as a modification
DEFAULT_GUTTER_PROXIMITY: int = 3

# =============================================================================
# Commit Log Framing
# =============================================================================

#: Line that opens every commit record
COMMIT_DELIMITER: str = "---COMMIT---"

#: Field separator inside a commit record
LOG_FIELD_SEPARATOR: str = "|"

#: <hash>|<parents>|<author>|<email>|<timestamp>|<subject>|<body>
STANDARD_LOG_FORMAT: str = "%H|%P|%an|%ae|%at|%s|%b"

#: <hash>|<parents>|<author>|<email>|<timestamp>|<refs>|<subject>|<body>
DECORATED_LOG_FORMAT: str = "%H|%P|%an|%ae|%at|%d|%s|%b"

# =============================================================================
# Branch Listing Formats
# =============================================================================

#: git branch --format=... record layout
BRANCH_FORMAT: str = (
    "%(refname:short)|%(upstream:short)|%(upstream:track)|"
    "%(objectname:short)|%(committerdate:iso8601)"
)

#: git for-each-ref --format=... record layout
REF_FORMAT: str = (
    "%(refname)|%(upstream:short)|%(upstream:track)|%(objectname)|"
    "%(authordate:iso8601)|%(authorname)|%(subject)"
)

#: Namespace of local branches
LOCAL_HEADS_PREFIX: str = "refs/heads/"

#: Namespace of remote-tracking branches
REMOTES_PREFIX: str = "refs/remotes/"

#: Namespace of tags
TAGS_PREFIX: str = "refs/tags/"

#: Length of abbreviated object names shown in UIs
SHORT_SHA_LENGTH: int = 7
