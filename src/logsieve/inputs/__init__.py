"""
Log acquisition: local files and HTTP(S) downloads.
"""

from typing import Any, Dict, List

from .file_input import FileInput
from .http_input import HTTPInput


def open_source(source: str, config: Dict[str, Any] = None):
    """
    Build the input handler for ``source``.

    Args:
        source: Local path or http(s) URL
        config: Input configuration (``max_bytes``, ``encoding``, ``timeout``)
    """
    config = config or {}
    options = {
        'max_bytes': config.get('max_bytes'),
        'encoding': config.get('encoding'),
    }
    options = {key: value for key, value in options.items() if value is not None}

    if source.lower().startswith(('http://', 'https://')):
        if config.get('timeout') is not None:
            options['timeout'] = config['timeout']
        return HTTPInput(source, **options)
    return FileInput(source, **options)


def read_source(source: str, config: Dict[str, Any] = None) -> List[str]:
    """Acquire ``source`` and return its lines in original order."""
    return open_source(source, config).read_lines()
