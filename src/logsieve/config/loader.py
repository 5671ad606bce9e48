import codecs
import configparser
import os
import re
from typing import Dict, Any
import logging

from ..errors import ConfigError
from ..parsers.access_log import BAD_DATE_POLICIES, DEFAULT_DATE_FORMAT, DEFAULT_MAX_LINE_LENGTH

DEFAULT_MAX_BYTES = 2 * 1024 * 1024
DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

OUTPUT_FORMATS = ('table', 'json', 'yaml', 'ecs')

_SIZE_UNITS = {'': 1, 'K': 1024, 'M': 1024 ** 2, 'G': 1024 ** 3}
_SIZE_PATTERN = re.compile(r'^\s*(\d+)\s*([KMG]?)B?\s*$', re.IGNORECASE)

SAMPLE_CONFIG = """\
; LogSieve configuration

[input]
; Largest accepted log, in bytes or with a K/M/G suffix (0 disables the limit)
max_size = 2M
encoding = utf-8
; Seconds to wait on HTTP downloads (at least 1)
timeout = 30

[parser]
; strftime format for the normalized date column
date_format = %Y-%m-%d %I:%M:%S
; sentinel: keep the entry with an empty date, abort: stop the run
on_bad_date = sentinel
; Longer lines are rejected without matching (0 disables the limit)
max_line_length = 65536

[output]
; table, json, yaml or ecs
format = table
show_rejects = false

[logging]
level = INFO
format = %(asctime)s - %(name)s - %(levelname)s - %(message)s
file =
"""


def parse_size(value) -> int:
    """
    Parse a size such as ``2M``, ``512K`` or ``1048576`` into bytes.

    Raises:
        ConfigError: The value is not a size
    """
    if isinstance(value, int):
        return value
    match = _SIZE_PATTERN.match(str(value))
    if not match:
        raise ConfigError(f"Invalid size value: {value!r}")
    return int(match.group(1)) * _SIZE_UNITS[match.group(2).upper()]


def format_size(size: int) -> str:
    """Render a byte count the way ``max_size`` is written, e.g. ``2M``."""
    for suffix in ('G', 'M', 'K'):
        unit = _SIZE_UNITS[suffix]
        if size >= unit and size % unit == 0:
            return f"{size // unit}{suffix}"
    return f"{size} bytes"


def _parse_bool(value: str, option: str) -> bool:
    lowered = str(value).strip().lower()
    if lowered in ('true', '1', 'yes', 'on'):
        return True
    if lowered in ('false', '0', 'no', 'off', ''):
        return False
    raise ConfigError(f"Invalid boolean for {option}: {value!r}")


def _parse_int(value: str, option: str, minimum: int = None) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"Invalid integer for {option}: {value!r}")
    if minimum is not None and number < minimum:
        raise ConfigError(f"{option} must be at least {minimum}, got {number}")
    return number


def _choice(value: str, choices, option: str) -> str:
    value = str(value).strip().lower()
    if value not in choices:
        raise ConfigError(f"Invalid value for {option}: {value!r} (expected one of {', '.join(choices)})")
    return value


def load_config(path: str) -> Dict[str, Any]:
    """
    Load LogSieve configuration from INI file.

    Args:
        path: Path to configuration file

    Returns:
        Configuration dictionary
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"Config file not found: {path}")

    # Interpolation is off so strftime and logging formats need no escaping
    config = configparser.ConfigParser(interpolation=None)
    try:
        config.read(path, encoding='utf-8')
    except configparser.Error as e:
        raise ConfigError(f"Failed to parse config file {path}: {e}") from e

    cfg_dict = {section: dict(config[section]) for section in config.sections()}

    # Process and validate configuration
    return _process_config(cfg_dict)


def default_config() -> Dict[str, Any]:
    """Configuration used when no file is given."""
    return _process_config({})


def _process_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Process and validate configuration values.

    Args:
        config: Raw configuration dictionary

    Returns:
        Processed configuration
    """
    processed = {}

    input_cfg = config.get('input', {})
    encoding = input_cfg.get('encoding', 'utf-8').strip() or 'utf-8'
    try:
        codecs.lookup(encoding)
    except LookupError:
        raise ConfigError(f"Unknown encoding for input.encoding: {encoding!r}")
    processed['input'] = {
        'max_bytes': parse_size(input_cfg.get('max_size', DEFAULT_MAX_BYTES)),
        'encoding': encoding,
        'timeout': _parse_int(input_cfg.get('timeout', '30'), 'input.timeout', minimum=1)
    }

    parser_cfg = config.get('parser', {})
    processed['parser'] = {
        'date_format': parser_cfg.get('date_format') or DEFAULT_DATE_FORMAT,
        'on_bad_date': _choice(parser_cfg.get('on_bad_date', 'sentinel'), BAD_DATE_POLICIES, 'parser.on_bad_date'),
        'max_line_length': _parse_int(
            parser_cfg.get('max_line_length', DEFAULT_MAX_LINE_LENGTH), 'parser.max_line_length', minimum=0
        )
    }

    output_cfg = config.get('output', {})
    processed['output'] = {
        'format': _choice(output_cfg.get('format', 'table'), OUTPUT_FORMATS, 'output.format'),
        'show_rejects': _parse_bool(output_cfg.get('show_rejects', 'false'), 'output.show_rejects')
    }

    logging_cfg = config.get('logging', {})
    processed['logging'] = {
        'level': logging_cfg.get('level', 'INFO').upper(),
        'format': logging_cfg.get('format') or DEFAULT_LOG_FORMAT,
        'file': logging_cfg.get('file') or None
    }
    if not isinstance(getattr(logging, processed['logging']['level'], None), int):
        raise ConfigError(f"Invalid logging level: {processed['logging']['level']!r}")

    return processed


def setup_logging(config: Dict[str, Any]):
    """
    Setup logging based on configuration.

    Args:
        config: Configuration dictionary
    """
    logging_config = config.get('logging', {})

    level = getattr(logging, logging_config.get('level', 'INFO').upper())
    format_str = logging_config.get('format', DEFAULT_LOG_FORMAT)

    logging.basicConfig(
        level=level,
        format=format_str,
        filename=logging_config.get('file')
    )

    # Set specific logger levels
    logging.getLogger('requests').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)


def create_sample_config(output_path: str):
    """
    Write a commented sample configuration file.

    Args:
        output_path: Path to create sample file
    """
    with open(output_path, 'w', encoding='utf-8') as f:
        f.write(SAMPLE_CONFIG)
