from __future__ import annotations


class GitScribeError(Exception):
    """Base exception class for all gitscribe errors.

    This is the root of the gitscribe exception hierarchy. Parsers and cache
    services degrade to partial or empty results instead of raising, so in
    practice these surface only from configuration loading, strict parsing,
    and the CLI boundary.

    Attributes:
        message: Human-readable error message describing what went wrong.

    Example:
        ```python
        try:
            config = load_config()
        except GitScribeError as e:
            logger.error("startup_failed", error=e.message)
            sys.exit(1)
        ```
    """

    def __init__(self, message: str) -> None:
        """Initialize the GitScribeError.

        Args:
            message: Human-readable error message.
        """
        self.message = message
        super().__init__(message)
