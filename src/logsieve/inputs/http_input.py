"""
HTTP input handler for downloading access logs.
"""

import logging
from typing import List

import requests

from ..config.loader import DEFAULT_MAX_BYTES
from ..errors import ConfigError, UploadError
from .file_input import decode_payload, size_exceeded_message, split_lines

CHUNK_SIZE = 64 * 1024


class HTTPInput:
    """Downloads an access log over HTTP(S)."""

    def __init__(self, url: str, max_bytes: int = DEFAULT_MAX_BYTES, encoding: str = 'utf-8', timeout: int = 30):
        """
        Initialize HTTP input.

        Args:
            url: Location of the log file
            max_bytes: Largest accepted body size
            encoding: Text encoding of the body
            timeout: Connect and read timeout in seconds, must be positive
        """
        if timeout is None or timeout <= 0:
            raise ConfigError(f"HTTP timeout must be a positive number of seconds, got {timeout!r}")
        self.url = url
        self.max_bytes = max_bytes
        self.encoding = encoding
        self.timeout = timeout

        self.logger = logging.getLogger(__name__)

    def read_lines(self) -> List[str]:
        """
        Download the log and split it into lines.

        Raises:
            UploadError: The request failed, the body is too large or incomplete
        """
        try:
            response = requests.get(self.url, stream=True, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise UploadError(f"Failed to download log from {self.url}: {e}", self.url) from e

        try:
            payload = self._read_body(response)
        finally:
            response.close()

        lines = split_lines(decode_payload(payload, self.encoding, self.url))
        self.logger.info(f"Downloaded {len(payload)} bytes ({len(lines)} lines) from {self.url}")
        return lines

    def _read_body(self, response) -> bytes:
        if response.status_code >= 400:
            raise UploadError(
                f"Failed to download log from {self.url}: HTTP {response.status_code} {response.reason}",
                self.url
            )

        declared = self._declared_length(response)
        if self.max_bytes and declared is not None and declared > self.max_bytes:
            raise UploadError(size_exceeded_message(self.max_bytes), self.url)

        body = bytearray()
        try:
            for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                body.extend(chunk)
                if self.max_bytes and len(body) > self.max_bytes:
                    raise UploadError(size_exceeded_message(self.max_bytes), self.url)
        except requests.exceptions.RequestException as e:
            raise UploadError(
                "Encountered an error attempting to upload the file.  The file was partially uploaded.",
                self.url
            ) from e

        # Compressed bodies are decoded by requests, so their length is not comparable
        if declared is not None and not response.headers.get('Content-Encoding') and len(body) < declared:
            raise UploadError(
                "Encountered an error attempting to upload the file.  The file was partially uploaded.",
                self.url
            )

        return bytes(body)

    def _declared_length(self, response):
        value = response.headers.get('Content-Length')
        if value is None:
            return None
        try:
            return int(value)
        except ValueError:
            self.logger.warning(f"Ignoring invalid Content-Length '{value}' from {self.url}")
            return None


def fetch_log(url: str, max_bytes: int = DEFAULT_MAX_BYTES, encoding: str = 'utf-8', timeout: int = 30) -> List[str]:
    """Download ``url`` and return its lines."""
    return HTTPInput(url, max_bytes=max_bytes, encoding=encoding, timeout=timeout).read_lines()
