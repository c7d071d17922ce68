"""Exceptions for tzfile library."""

from __future__ import annotations


class TzFileError(Exception):
    """Base exception for all tzfile errors."""


class FormatError(TzFileError):
    """Exception raised when the contents are not a valid TZif file.

    The 'message' attribute contains a human-readable message about the
    error that occurred. When the error is tied to a position in the buffer
    the 'offset' attribute holds the byte offset, and 'expected' and 'actual'
    describe what the decoder needed versus what it found. The
    'detailed_error' attribute can provide additional information, such as
    the underlying validation errors, useful for debugging purposes.
    """

    def __init__(
        self,
        message: str,
        *,
        offset: int | None = None,
        expected: int | str | None = None,
        actual: int | str | None = None,
        detailed_error: str | None = None,
    ) -> None:
        """Initialize the FormatError with a message."""
        super().__init__(message)
        self.message = message
        self.offset = offset
        self.expected = expected
        self.actual = actual
        self.detailed_error = detailed_error


class RuleParseError(TzFileError):
    """Exception raised when parsing a POSIX TZ rule string.

    A TZif file with an unusable rule can still answer queries within its
    recorded transitions, so this error is only fatal to the rule itself.
    """


class ResolutionError(TzFileError):
    """Exception raised when no rule applies to a requested instant."""


class TimezoneInfoError(TzFileError):
    """Raised on error locating or loading timezone information."""
