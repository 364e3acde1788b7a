from __future__ import annotations

from gitscribe.exceptions.base import GitScribeError


class ParseError(GitScribeError):
    """Exception for git output that cannot be decoded.

    Parsers are lenient by default and only log malformed input. This error
    is raised when strict parsing is requested through ``ParserConfig``.

    Attributes:
        message: Human-readable error message.
        parser: Name of the parser that rejected the input (e.g., "status").
        line_number: 1-indexed line number within the input, if known.
        line: The offending raw line, if known.
    """

    def __init__(
        self,
        message: str,
        parser: str | None = None,
        line_number: int | None = None,
        line: str | None = None,
    ) -> None:
        """Initialize the ParseError.

        Args:
            message: Human-readable error message.
            parser: Name of the parser that rejected the input.
            line_number: 1-indexed line number within the input.
            line: The offending raw line.
        """
        self.parser = parser
        self.line_number = line_number
        self.line = line
        super().__init__(message)


class MalformedLineError(ParseError):
    """Exception raised in strict mode for a line matching no known grammar."""

    def __init__(
        self,
        parser: str,
        line_number: int,
        line: str,
        reason: str | None = None,
    ) -> None:
        detail = f": {reason}" if reason else ""
        super().__init__(
            f"Malformed {parser} line {line_number}{detail}: {line!r}",
            parser=parser,
            line_number=line_number,
            line=line,
        )
