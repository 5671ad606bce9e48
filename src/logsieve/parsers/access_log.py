"""
Apache combined log format matcher for LogSieve.
Extracts the request fields from one access log line and normalizes its timestamp.
"""

import re
from datetime import datetime
from typing import List, NamedTuple, Optional, Tuple

# Bracketed timestamp layouts seen in access logs, tried in order
ACCESS_LOG_DATE_FORMATS = (
    '%d/%b/%Y:%H:%M:%S %z',  # Apache/nginx default
    '%d/%b/%Y:%H:%M:%S',  # Missing zone offset
)

DEFAULT_DATE_FORMAT = '%Y-%m-%d %I:%M:%S'

# Policies for entries whose timestamp cannot be parsed
BAD_DATE_POLICIES = ('sentinel', 'abort')

ALLOWED_METHODS = ('GET', 'POST', 'DELETE', 'PUT', 'HEAD')

# Longer lines are rejected without being matched (0 disables the cap)
DEFAULT_MAX_LINE_LENGTH = 65536

IP_PATTERN = re.compile(r'\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}', re.ASCII)

# What \s and \d match under re.ASCII
_WHITESPACE = frozenset(' \t\n\r\f\v')
_DIGITS = frozenset('0123456789')


class AccessLogMatch(NamedTuple):
    """The eight substrings captured from a matching line."""
    ip: str
    raw_date: str
    method: str
    resource: str
    status: str
    size: str
    referer: str
    agent: str


class AccessLogMatcher:
    """
    Matches lines against the combined log grammar.

    The pattern is searched, not anchored, and is purely syntactic: octets
    above 255 and status codes outside 100-599 still match. Only ASCII
    digits and whitespace count for ``\\d`` and ``\\s``.

    The default grammar is resolved by :func:`scan_combined` in time linear
    in the line length, picking the same groups a backtracking search of
    ``COMBINED_PATTERN`` would. A custom pattern is searched with ``re``.
    Lines longer than ``max_line_length`` never match.
    """

    COMBINED_PATTERN = (
        r'(\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3})'  # client ip
        r'.*\[(.*)\]'  # timestamp
        r'.*"(' + '|'.join(ALLOWED_METHODS) + r')\s(.*)"'  # request
        r'\s(\d{3})'  # status
        r'\s(\d+|-)'  # size
        r'\s"(.*?)"'  # referer
        r'\s"(.*?)"'  # user agent
    )

    def __init__(self, pattern: str = None, max_line_length: int = DEFAULT_MAX_LINE_LENGTH):
        """
        Initialize the matcher.

        Args:
            pattern: Override for the combined pattern; must define the same eight groups
            max_line_length: Longest line that is matched at all, 0 for no limit
        """
        self.custom = bool(pattern)
        self.pattern = re.compile(pattern or self.COMBINED_PATTERN, re.ASCII)
        if self.pattern.groups != len(AccessLogMatch._fields):
            raise ValueError(
                f"Access log pattern must define {len(AccessLogMatch._fields)} groups, "
                f"got {self.pattern.groups}"
            )
        if max_line_length < 0:
            raise ValueError(f"max_line_length must not be negative, got {max_line_length}")
        self.max_line_length = max_line_length

    def too_long(self, log_line: str) -> bool:
        """Whether the line exceeds the length cap."""
        return bool(self.max_line_length) and len(log_line) > self.max_line_length

    def match(self, log_line: str) -> Optional[AccessLogMatch]:
        """
        Apply the grammar to a single line.

        Args:
            log_line: Raw log line, with or without its terminator

        Returns:
            The captured fields, or None when the line does not match
        """
        if self.too_long(log_line):
            return None
        if not self.custom:
            return scan_combined(log_line)

        found = self.pattern.search(log_line)
        if not found:
            return None
        return AccessLogMatch(*found.groups())


def _status_block_end(line: str, start: int) -> Optional[int]:
    """End of ``"\\s\\d{3}\\s(\\d+|-)\\s"`` starting at ``start``, or None."""
    n = len(line)
    if start + 6 >= n or line[start] != '"' or line[start + 1] not in _WHITESPACE:
        return None
    if not all(c in _DIGITS for c in line[start + 2:start + 5]) or line[start + 5] not in _WHITESPACE:
        return None

    pos = start + 6
    if line[pos] in _DIGITS:
        while pos < n and line[pos] in _DIGITS:
            pos += 1
    elif line[pos] == '-':
        pos += 1
    else:
        return None

    if pos + 1 < n and line[pos] in _WHITESPACE and line[pos + 1] == '"':
        return pos + 2
    return None


def _latest(found: List[bool]) -> List[Optional[int]]:
    """For each position, the last index at or before it where ``found`` holds."""
    latest: List[Optional[int]] = []
    last = None
    for pos, hit in enumerate(found):
        if hit:
            last = pos
        latest.append(last)
    return latest


def scan_combined(line: str) -> Optional[AccessLogMatch]:
    """
    Match ``line`` against the combined grammar in linear time.

    Every ``.*`` gap of ``COMBINED_PATTERN`` stops at a newline. Working from
    the end of the line, each table records where the remainder of the
    grammar can still match; greedy gaps then take the furthest such
    position and lazy gaps the nearest, which are the groups a backtracking
    search returns.
    """
    if '[' not in line or ']' not in line or '"' not in line:
        return None

    n = len(line)

    # First newline at or after each position; a gap starting there ends before it
    next_newline = [n] * (n + 1)
    for pos in range(n - 1, -1, -1):
        next_newline[pos] = pos if line[pos] == '\n' else next_newline[pos + 1]

    def furthest(latest: List[Optional[int]], start: int) -> Optional[int]:
        if start >= n:
            return None
        candidate = latest[min(next_newline[start], n - 1)]
        if candidate is None or candidate < start:
            return None
        return candidate

    # Closing quote of the agent
    agent_end: List[Optional[int]] = [None] * (n + 1)
    for pos in range(n - 1, -1, -1):
        if line[pos] == '"':
            agent_end[pos] = pos
        elif line[pos] != '\n':
            agent_end[pos] = agent_end[pos + 1]

    # Closing quote of the referer, followed by whitespace and a complete agent
    referer_end: List[Optional[int]] = [None] * (n + 1)
    for pos in range(n - 1, -1, -1):
        if (line[pos] == '"' and pos + 2 < n and line[pos + 1] in _WHITESPACE
                and line[pos + 2] == '"' and agent_end[pos + 3] is not None):
            referer_end[pos] = pos
        elif line[pos] != '\n':
            referer_end[pos] = referer_end[pos + 1]

    # Quote closing the request line, then status and size
    status_end = {}
    for pos in range(n):
        end = _status_block_end(line, pos)
        if end is not None and referer_end[end] is not None:
            status_end[pos] = end
    latest_status = _latest([pos in status_end for pos in range(n)])

    # Opening quote and method of the request line
    request_starts = {}
    for pos in range(n):
        if line[pos] != '"':
            continue
        for method in ALLOWED_METHODS:
            gap = pos + 1 + len(method)
            if line.startswith(method, pos + 1) and gap < n and line[gap] in _WHITESPACE:
                request_end = furthest(latest_status, gap + 1)
                if request_end is not None:
                    request_starts[pos] = (method, gap + 1, request_end)
                break
    latest_request = _latest([pos in request_starts for pos in range(n)])

    latest_close = _latest([
        line[pos] == ']' and furthest(latest_request, pos + 1) is not None for pos in range(n)
    ])
    latest_open = _latest([
        line[pos] == '[' and furthest(latest_close, pos + 1) is not None for pos in range(n)
    ])

    for pos in range(n):
        if line[pos] not in _DIGITS:
            continue
        ip = IP_PATTERN.match(line, pos)
        if ip is None:
            continue
        open_at = furthest(latest_open, ip.end())
        if open_at is None:
            continue

        close_at = furthest(latest_close, open_at + 1)
        method, resource_start, request_end = request_starts[furthest(latest_request, close_at + 1)]
        size_end = status_end[request_end] - 2
        referer_at = referer_end[size_end + 2]
        agent_at = agent_end[referer_at + 3]

        return AccessLogMatch(
            ip=ip.group(0),
            raw_date=line[open_at + 1:close_at],
            method=method,
            resource=line[resource_start:request_end],
            status=line[request_end + 2:request_end + 5],
            size=line[request_end + 6:size_end],
            referer=line[size_end + 2:referer_at],
            agent=line[referer_at + 3:agent_at],
        )

    return None


_default_matcher = AccessLogMatcher()


def match_line(log_line: str) -> Optional[AccessLogMatch]:
    """Match a line with the default combined log grammar."""
    return _default_matcher.match(log_line)


def parse_access_date(raw_date: str) -> Optional[datetime]:
    """
    Parse the bracketed access log timestamp.

    The zone offset is kept on the returned value; the wall-clock time is not
    converted to the local timezone.

    Args:
        raw_date: Text captured between the brackets, e.g. ``10/Oct/2000:13:55:36 -0700``

    Returns:
        Parsed datetime or None
    """
    raw_date = raw_date.strip()
    for fmt in ACCESS_LOG_DATE_FORMATS:
        try:
            return datetime.strptime(raw_date, fmt)
        except ValueError:
            continue
    return None


def normalize_date(raw_date: str, date_format: str = DEFAULT_DATE_FORMAT) -> Tuple[Optional[datetime], Optional[str]]:
    """Parse ``raw_date`` and render it with ``date_format``; (None, None) if unparseable."""
    parsed = parse_access_date(raw_date)
    if parsed is None:
        return None, None
    return parsed, parsed.strftime(date_format)
