"""Exception hierarchy for unmangle.

Every failure the pipeline can surface derives from ``UnmangleError`` so the
command-line layer can report it uniformly and keep going with the next file.
"""

from typing import Optional


class UnmangleError(Exception):
    """Base exception for all unmangle errors."""

    def __init__(self, message: str, details: Optional[str] = None):
        """
        Initialize an UnmangleError.

        Args:
            message: Main error message for the user
            details: Additional technical details for logging
        """
        self.message = message
        self.details = details
        super().__init__(message)


class ParseError(UnmangleError):
    """Raised when source text cannot be parsed into a program tree.

    ``line`` is 1-based and ``column`` is 1-based, matching what the parser
    reports in its own messages.
    """

    def __init__(
        self,
        message: str,
        line: Optional[int] = None,
        column: Optional[int] = None,
        details: Optional[str] = None,
    ):
        super().__init__(message, details)
        self.line = line
        self.column = column

    def __str__(self) -> str:
        if self.line is not None:
            location = f"{self.line}"
            if self.column is not None:
                location += f":{self.column}"
            return f"{location}: {self.message}"
        return self.message


class UnsupportedConstruct(UnmangleError):
    """A rule recognized a pattern but hit a shape it cannot rewrite safely.

    Rules catch this for the offending site, emit a diagnostic and carry on.
    The printer also raises it for node types it does not know.
    """

    pass


class UnrecognizedBundleFormat(UnmangleError):
    """The unpacker found no known bundle runtime shape in its input."""

    pass
