"""
File input handler for reading access log files.
Reads a whole file once, enforces the size limit and decodes it into lines.
"""

import os
import re
import logging
from typing import List

from ..errors import UploadError
from ..config.loader import DEFAULT_MAX_BYTES, format_size


LINE_BREAK = re.compile(r'\r\n|\r|\n')


def split_lines(text: str) -> List[str]:
    """Split decoded text into lines on \\n, \\r\\n or a bare \\r, dropping the terminators."""
    if not text:
        return []
    lines = LINE_BREAK.split(text)
    if not lines[-1]:
        lines.pop()
    return lines


def size_exceeded_message(max_bytes: int) -> str:
    return (
        "The file size exceeds the maximum file size limit.  "
        f"File must be less than {format_size(max_bytes)}."
    )


def decode_payload(payload: bytes, encoding: str, source: str) -> str:
    """Decode raw log bytes, replacing undecodable sequences."""
    try:
        return payload.decode(encoding, errors='replace')
    except LookupError as e:
        raise UploadError(f"Unknown encoding '{encoding}' for {source}: {e}", source) from e


class FileInput:
    """Reads a local access log file."""

    def __init__(self, file_path: str, max_bytes: int = DEFAULT_MAX_BYTES, encoding: str = 'utf-8'):
        """
        Initialize file input.

        Args:
            file_path: Path to the log file
            max_bytes: Largest accepted file size
            encoding: Text encoding of the file
        """
        self.file_path = file_path
        self.max_bytes = max_bytes
        self.encoding = encoding

        # Setup logging
        self.logger = logging.getLogger(__name__)

    def read_lines(self) -> List[str]:
        """
        Read the entire file once.

        Returns:
            Lines in file order, terminators removed

        Raises:
            UploadError: The file is missing, unreadable or too large
        """
        if not os.path.exists(self.file_path):
            raise UploadError(f"Log file not found: {self.file_path}", self.file_path)
        if not os.path.isfile(self.file_path):
            raise UploadError(f"Log path is not a regular file: {self.file_path}", self.file_path)

        size = os.path.getsize(self.file_path)
        if self.max_bytes and size > self.max_bytes:
            raise UploadError(size_exceeded_message(self.max_bytes), self.file_path)

        try:
            with open(self.file_path, 'rb') as f:
                # Read one byte past the limit in case the file grew after the size check
                payload = f.read(self.max_bytes + 1) if self.max_bytes else f.read()
        except OSError as e:
            raise UploadError(f"Failed to read log file {self.file_path}: {e}", self.file_path) from e

        if self.max_bytes and len(payload) > self.max_bytes:
            raise UploadError(size_exceeded_message(self.max_bytes), self.file_path)

        lines = split_lines(decode_payload(payload, self.encoding, self.file_path))
        self.logger.info(f"Read {len(payload)} bytes ({len(lines)} lines) from {self.file_path}")
        return lines


def read_log_file(path: str, max_bytes: int = DEFAULT_MAX_BYTES, encoding: str = 'utf-8') -> List[str]:
    """Read ``path`` and return its lines."""
    return FileInput(path, max_bytes=max_bytes, encoding=encoding).read_lines()
