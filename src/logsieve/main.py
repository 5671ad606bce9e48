#!/usr/bin/env python3
"""
LogSieve - Apache access log classifier
Main application entry point.
"""

import argparse
import sys
from typing import Any, Dict, List, Optional
import logging

from . import __version__
from .config.loader import (
    OUTPUT_FORMATS,
    create_sample_config,
    default_config,
    load_config,
    parse_size,
    setup_logging,
)
from .errors import LogSieveError
from .inputs import read_source
from .outputs.renderers import render, render_error, render_rejects
from .parsers.access_log import BAD_DATE_POLICIES
from .parsers.classifier import LogClassifier
from .schemas.entry import ClassificationResult


class LogSieveApp:
    """Main LogSieve application."""

    def __init__(self, config_path: Optional[str] = None, overrides: Optional[Dict[str, Any]] = None):
        """
        Initialize LogSieve with configuration.

        Args:
            config_path: INI configuration file, defaults are used when omitted
            overrides: Values taken from the command line, keyed ``section.option``
        """
        self.config_path = config_path
        self.config = load_config(config_path) if config_path else default_config()
        self._apply_overrides(overrides or {})

        setup_logging(self.config)
        self.logger = logging.getLogger(__name__)
        if config_path:
            self.logger.info(f"Loaded configuration from {config_path}")

        self.classifier = LogClassifier(self.config['parser'])

    def _apply_overrides(self, overrides: Dict[str, Any]):
        """Merge command line values over the file configuration."""
        for key, value in overrides.items():
            if value is None:
                continue
            section, option = key.split('.', 1)
            if key == 'input.max_bytes':
                value = parse_size(value)
            elif key == 'logging.level':
                value = value.upper()
            self.config[section][option] = value

    def run(self, source: str) -> ClassificationResult:
        """
        Acquire and classify one access log.

        Args:
            source: Local path or http(s) URL

        Returns:
            Entries and rejects of the run
        """
        self.logger.info(f"Classifying {source}")
        lines = read_source(source, self.config['input'])
        return self.classifier.classify(lines)

    def render(self, result: ClassificationResult) -> str:
        """Render a result according to the output configuration."""
        output_config = self.config['output']
        output = render(result, output_config['format'])
        if output_config.get('show_rejects') and result.rejects:
            output = f"{output}\n\n{render_rejects(result.rejects)}"
        return output


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="logsieve",
        description="LogSieve - classify Apache combined access logs into entries and rejects",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Show a table of parsed entries
  logsieve /var/log/apache2/access.log

  # Emit JSON and list lines that did not match
  logsieve access.log --format json --show-rejects

  # Download a log and stop on malformed timestamps
  logsieve https://example.com/logs/access.log --on-bad-date abort

  # Create sample configuration
  logsieve --create-sample-config logsieve.ini
        """
    )

    parser.add_argument(
        "source",
        nargs="?",
        help="Access log path or http(s) URL"
    )

    parser.add_argument(
        "--config",
        help="Path to logsieve.ini configuration file"
    )

    parser.add_argument(
        "--format",
        choices=OUTPUT_FORMATS,
        help="Output format (default: table)"
    )

    parser.add_argument(
        "--show-rejects",
        action="store_true",
        default=None,
        help="Also print lines that did not match the log format"
    )

    parser.add_argument(
        "--on-bad-date",
        choices=BAD_DATE_POLICIES,
        help="What to do with entries whose timestamp cannot be parsed"
    )

    parser.add_argument(
        "--max-size",
        metavar="SIZE",
        help="Largest accepted log, e.g. 2M or 512K"
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        help="Logging level"
    )

    parser.add_argument(
        "--create-sample-config",
        metavar="PATH",
        help="Create sample configuration file at specified path"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"LogSieve {__version__}"
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    # Handle special commands
    if args.create_sample_config:
        try:
            create_sample_config(args.create_sample_config)
        except OSError as e:
            print(render_error(e), file=sys.stderr)
            return 1
        print(f"Sample configuration created at: {args.create_sample_config}")
        return 0

    if not args.source:
        parser.error("a log source is required unless using --create-sample-config")

    overrides = {
        'output.format': args.format,
        'output.show_rejects': args.show_rejects,
        'parser.on_bad_date': args.on_bad_date,
        'input.max_bytes': args.max_size,
        'logging.level': args.log_level
    }

    try:
        app = LogSieveApp(args.config, overrides)
        result = app.run(args.source)
        print(app.render(result))
    except (LogSieveError, OSError) as e:
        print(render_error(e), file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
