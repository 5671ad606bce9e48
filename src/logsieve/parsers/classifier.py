"""
Classification of access log lines into parsed entries and rejects.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from ..errors import ConfigError, DateNormalizationError, InvalidInputTypeError
from ..schemas.entry import ClassificationResult, ParsedEntry
from .access_log import (
    BAD_DATE_POLICIES,
    DEFAULT_DATE_FORMAT,
    DEFAULT_MAX_LINE_LENGTH,
    AccessLogMatcher,
    normalize_date,
)


class LogClassifier:
    """Drives the access log matcher over a sequence of lines."""

    def __init__(self, config: Dict[str, Any] = None, matcher: Optional[AccessLogMatcher] = None):
        """
        Initialize the classifier.

        Args:
            config: Parser configuration (``date_format``, ``on_bad_date``, ``max_line_length``)
            matcher: Matcher to use, defaults to the combined log grammar
        """
        self.config = config or {}
        self.matcher = matcher or AccessLogMatcher(
            max_line_length=self.config.get('max_line_length', DEFAULT_MAX_LINE_LENGTH)
        )
        self.date_format = self.config.get('date_format') or DEFAULT_DATE_FORMAT
        self.on_bad_date = self.config.get('on_bad_date') or 'sentinel'

        if self.on_bad_date not in BAD_DATE_POLICIES:
            raise ConfigError(
                f"Unknown on_bad_date policy '{self.on_bad_date}', expected one of {', '.join(BAD_DATE_POLICIES)}"
            )

        self.logger = logging.getLogger(__name__)

    def classify(self, lines: Iterable[str]) -> ClassificationResult:
        """
        Classify every line of the input, in order.

        Blank lines are skipped. Lines matching the grammar become entries,
        all other lines are kept verbatim as rejects.

        Args:
            lines: Log lines, consumed once

        Returns:
            Entries and rejects of the run

        Raises:
            InvalidInputTypeError: A line is not a string
            DateNormalizationError: A timestamp is unparseable and the policy is ``abort``
        """
        entries: List[ParsedEntry] = []
        rejects: List[str] = []
        blank_lines = 0

        for line_number, line in enumerate(lines, start=1):
            if line is None:
                blank_lines += 1
                continue
            if not isinstance(line, str):
                raise InvalidInputTypeError(line, line_number)
            if not line.strip():
                blank_lines += 1
                continue

            match = self.matcher.match(line)
            if match is None:
                if self.matcher.too_long(line):
                    self.logger.warning(
                        f"Rejected line {line_number}: {len(line)} characters exceeds the "
                        f"{self.matcher.max_line_length} character limit"
                    )
                else:
                    self.logger.debug(f"Rejected line {line_number}: {line[:100]}")
                rejects.append(line)
                continue

            timestamp, date = normalize_date(match.raw_date, self.date_format)
            if timestamp is None:
                if self.on_bad_date == 'abort':
                    raise DateNormalizationError(match.raw_date, line_number)
                self.logger.warning(f"Unparseable timestamp '{match.raw_date}' on line {line_number}")

            entries.append(ParsedEntry(
                ip=match.ip,
                date=date,
                method=match.method,
                resource=match.resource,
                status=match.status,
                size=match.size,
                referer=match.referer,
                agent=match.agent,
                timestamp=timestamp,
            ))

        self.logger.info(
            f"Classified {len(entries) + len(rejects)} lines: "
            f"{len(entries)} entries, {len(rejects)} rejects, {blank_lines} blank"
        )

        return ClassificationResult(
            entries=tuple(entries),
            rejects=tuple(rejects),
            blank_lines=blank_lines,
        )


def classify(lines: Iterable[str], date_format: str = DEFAULT_DATE_FORMAT,
             on_bad_date: str = 'sentinel') -> ClassificationResult:
    """Classify ``lines`` with the default combined log grammar."""
    classifier = LogClassifier({'date_format': date_format, 'on_bad_date': on_bad_date})
    return classifier.classify(lines)
