"""
LogSieve - classify Apache combined access logs into parsed entries and rejects.
"""

__version__ = "0.1.0"

from .errors import (
    ConfigError,
    DateNormalizationError,
    InvalidInputTypeError,
    LogSieveError,
    UploadError,
)
from .parsers.access_log import AccessLogMatch, AccessLogMatcher, match_line
from .parsers.classifier import LogClassifier, classify
from .schemas.entry import ClassificationResult, ParsedEntry

__all__ = [
    'AccessLogMatch',
    'AccessLogMatcher',
    'ClassificationResult',
    'ConfigError',
    'DateNormalizationError',
    'InvalidInputTypeError',
    'LogClassifier',
    'LogSieveError',
    'ParsedEntry',
    'UploadError',
    'classify',
    'match_line',
]
