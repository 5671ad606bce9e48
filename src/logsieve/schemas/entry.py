"""
Record types produced by a classification run.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional, Tuple

# Keys used when an entry is serialized, in display order
ENTRY_FIELDS = ('ip', 'date', 'method', 'resource', 'status', 'size', 'referer', 'agent')


@dataclass(frozen=True)
class ParsedEntry:
    """
    One access log line that matched the combined log grammar.

    ``date`` holds the normalized timestamp text and ``timestamp`` the parsed
    value behind it. Both are None when the bracketed timestamp could not be
    parsed and the sentinel policy is in effect.
    """
    ip: str
    date: Optional[str]
    method: str
    resource: str
    status: str
    size: str
    referer: str
    agent: str
    timestamp: Optional[datetime] = field(default=None, compare=False)

    def to_dict(self) -> Dict[str, Optional[str]]:
        """Serialize the entry using the viewer's column keys."""
        return {name: getattr(self, name) for name in ENTRY_FIELDS}

    @property
    def has_size(self) -> bool:
        return self.size != '-'


@dataclass(frozen=True)
class ClassificationResult:
    """Entries and rejects of one run, each in input order."""
    entries: Tuple[ParsedEntry, ...] = ()
    rejects: Tuple[str, ...] = ()
    blank_lines: int = 0

    @property
    def total(self) -> int:
        """Number of non-blank lines that were classified."""
        return len(self.entries) + len(self.rejects)

    @property
    def has_entries(self) -> bool:
        return len(self.entries) > 0
