"""
Exception types raised by LogSieve.
Unmatched log lines are not errors; they are collected as rejects.
"""


class LogSieveError(Exception):
    """Base class for every fatal LogSieve failure."""


class UploadError(LogSieveError):
    """The log could not be acquired (missing, oversized, partial, undecodable)."""

    def __init__(self, message: str, source: str = None):
        super().__init__(message)
        self.source = source


class InvalidInputTypeError(LogSieveError, TypeError):
    """A value handed to the classifier was not text."""

    def __init__(self, value, line_number: int = None):
        self.value = value
        self.line_number = line_number
        location = f" at line {line_number}" if line_number is not None else ""
        super().__init__(
            f"Invalid data type provided{location}, expected string but got {type(value).__name__}"
        )


class DateNormalizationError(LogSieveError, ValueError):
    """A matched line carried a timestamp that could not be parsed."""

    def __init__(self, raw_date: str, line_number: int = None):
        self.raw_date = raw_date
        self.line_number = line_number
        location = f" on line {line_number}" if line_number is not None else ""
        super().__init__(f"Unable to parse timestamp '{raw_date}'{location}")


class ConfigError(LogSieveError, ValueError):
    """A configuration value is missing or invalid."""
