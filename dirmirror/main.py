"""
Main entry point for the directory mirroring tool.

This module handles:
- Command line argument parsing
- Logging configuration
- Settings loading and command line overrides
- Precondition checks and exit codes
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, TextIO

from dirmirror import __version__
from dirmirror.core.folder.diff import validate_roots
from dirmirror.core.folder.scanner import read_pattern_file
from dirmirror.core.folder.sync import MirrorSync
from dirmirror.services.settings import MirrorSettings, SettingsError, SettingsManager


# =============================================================================
# Constants
# =============================================================================

APP_NAME = "dirmirror"

EXIT_OK = 0
EXIT_ACTIONS_FAILED = 1
EXIT_PRECONDITION = 2


# =============================================================================
# Data Classes
# =============================================================================

@dataclass
class CommandLineArgs:
    """Parsed command line arguments."""
    source_path: str = ""
    destination_path: str = ""
    config_file: Optional[str] = None
    exclude_patterns: list[str] = field(default_factory=list)
    exclude_from: Optional[str] = None
    include_hidden: Optional[bool] = None
    follow_symlinks: Optional[bool] = None
    modify_window: Optional[float] = None
    preserve_timestamps: Optional[bool] = None
    dry_run: Optional[bool] = None
    stream: Optional[bool] = None
    log_level: Optional[str] = None
    log_file: Optional[str] = None


# =============================================================================
# Logging Setup
# =============================================================================

class LogFormatter(logging.Formatter):
    """Formatter for mirror logs; colours each line by level when writing to a terminal."""

    COLORS = {
        logging.DEBUG: '\033[2m',      # Dim
        logging.INFO: '\033[32m',      # Green
        logging.WARNING: '\033[33m',   # Yellow
        logging.ERROR: '\033[31m',     # Red
        logging.CRITICAL: '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def __init__(self, stream: Optional[TextIO] = None):
        super().__init__(
            fmt='%(asctime)s | %(levelname)-8s | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        self.use_colors = stream is not None and stream.isatty()

    def format(self, record: logging.LogRecord) -> str:
        formatted = super().format(record)

        if self.use_colors and record.levelno in self.COLORS:
            return f"{self.COLORS[record.levelno]}{formatted}{self.RESET}"

        return formatted


def setup_logging(level: str = "INFO", log_file: Optional[Path] = None) -> logging.Logger:
    """
    Send mirror logs to stderr and, optionally, to a file.

    Actions are logged at INFO, so the default level reports every change
    made to the destination. The log file always records DEBUG and up, so
    no-op matches can be inspected after a run without re-running it.

    Raises:
        OSError: If the log file or its directory cannot be created
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(LogFormatter(sys.stderr))
    root_logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(LogFormatter())
        root_logger.addHandler(file_handler)

    root_logger.setLevel(min(handler.level for handler in root_logger.handlers))
    return root_logger


# =============================================================================
# Command Line Parsing
# =============================================================================

def _non_negative_float(value: str) -> float:
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {value!r}")
    if number < 0:
        raise argparse.ArgumentTypeError("must not be negative")
    return number


def parse_arguments(args: Optional[List[str]] = None) -> CommandLineArgs:
    """
    Parse command line arguments.

    Options left unset stay None so that settings file values apply.

    Args:
        args: Arguments to parse (defaults to sys.argv)

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Mirror a source directory tree into a destination directory tree",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s photos/ /mnt/backup/photos          Mirror photos into the backup
  %(prog)s -n site/ /srv/www                   Show what would change
  %(prog)s -e '*.tmp' -e 'cache/' src/ dst/    Leave matching entries alone

Exit codes:
  0  destination converged
  1  one or more actions failed (re-run once the cause is fixed)
  2  bad arguments, missing directories or unreadable settings
        """
    )

    parser.add_argument('source', help='Directory to mirror from')
    parser.add_argument('destination', help='Directory to mirror into')

    # Execution
    parser.add_argument(
        '-n', '--dry-run',
        action='store_true',
        default=None,
        help='Log the actions without changing anything'
    )
    parser.add_argument(
        '--stream',
        action='store_true',
        default=None,
        help='Apply each action as soon as it is computed'
    )
    parser.add_argument(
        '--no-times',
        dest='preserve_timestamps',
        action='store_false',
        default=None,
        help='Do not copy access/modified times to the destination'
    )

    # Scanning
    parser.add_argument(
        '-e', '--exclude',
        action='append',
        default=[],
        metavar='PATTERN',
        help='Gitignore-style pattern of entries to leave alone (repeatable)'
    )
    parser.add_argument(
        '--exclude-from',
        metavar='FILE',
        help='Read exclusion patterns from FILE'
    )
    parser.add_argument(
        '--no-hidden',
        dest='include_hidden',
        action='store_false',
        default=None,
        help='Ignore entries whose name starts with a dot'
    )
    parser.add_argument(
        '--follow-symlinks',
        action='store_true',
        default=None,
        help='Descend into symlinked directories'
    )

    # Comparison
    parser.add_argument(
        '--modify-window',
        type=_non_negative_float,
        metavar='SECONDS',
        help='Treat modification times this close as equal'
    )

    # Configuration
    parser.add_argument(
        '-c', '--config',
        help='Settings file path'
    )

    # Logging
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable verbose output'
    )
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        default=None,
        help='Log level'
    )
    parser.add_argument(
        '--log-file',
        help='Also write the log to this file'
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'{APP_NAME} {__version__}'
    )

    parsed = parser.parse_args(args)

    result = CommandLineArgs()
    result.source_path = parsed.source.strip()
    result.destination_path = parsed.destination.strip()
    result.config_file = parsed.config
    result.exclude_patterns = parsed.exclude
    result.exclude_from = parsed.exclude_from
    result.include_hidden = parsed.include_hidden
    result.follow_symlinks = parsed.follow_symlinks
    result.modify_window = parsed.modify_window
    result.preserve_timestamps = parsed.preserve_timestamps
    result.dry_run = parsed.dry_run
    result.stream = parsed.stream
    result.log_file = parsed.log_file

    if parsed.verbose:
        result.log_level = 'DEBUG'
    else:
        result.log_level = parsed.log_level

    return result


def apply_overrides(settings: MirrorSettings, args: CommandLineArgs) -> MirrorSettings:
    """
    Overlay explicitly given command line options onto loaded settings.

    Exclusion patterns from the command line and --exclude-from are
    added to the configured ones. Raises OSError if --exclude-from
    cannot be read.
    """
    for name in ('include_hidden', 'follow_symlinks', 'modify_window',
                 'preserve_timestamps', 'dry_run', 'stream', 'log_level', 'log_file'):
        value = getattr(args, name)
        if value is not None:
            setattr(settings, name, value)

    settings.exclude_patterns = settings.exclude_patterns + args.exclude_patterns
    if args.exclude_from:
        settings.exclude_patterns = settings.exclude_patterns + read_pattern_file(args.exclude_from)

    return settings


# =============================================================================
# Main
# =============================================================================

def run(args: CommandLineArgs) -> int:
    """
    Load settings, check preconditions and run one mirror pass.

    Returns:
        Exit code
    """
    try:
        settings = SettingsManager(args.config_file).load()
        settings = apply_overrides(settings, args)
    except (SettingsError, OSError) as e:
        setup_logging(args.log_level or "INFO")
        logging.error(f"Configuration error: {e}")
        return EXIT_PRECONDITION

    try:
        setup_logging(settings.log_level, Path(settings.log_file) if settings.log_file else None)
    except OSError as e:
        setup_logging(settings.log_level)
        logging.error(f"Cannot open log file {settings.log_file}: {e}")
        return EXIT_PRECONDITION

    logging.info(f"Starting {APP_NAME} v{__version__}")

    try:
        source, destination = validate_roots(args.source_path, args.destination_path)
    except OSError as e:
        logging.error(f"Cannot mirror: {e}")
        return EXIT_PRECONDITION

    if settings.dry_run:
        logging.info("Dry run: no changes will be made")

    sync = MirrorSync(settings.to_diff_options(), settings.to_sync_options())
    result = sync.mirror(source, destination, stream=settings.stream)

    for path, error in result.errors:
        logging.error(f"Did not converge: {path}: {error}")

    return EXIT_OK if result.success else EXIT_ACTIONS_FAILED


def main(argv: Optional[List[str]] = None) -> int:
    """
    Application main entry point.

    Returns:
        Exit code (0 for success)
    """
    try:
        args = parse_arguments(argv)
    except SystemExit as e:
        # argparse exits 0 for --help/--version and 2 for usage errors
        return e.code if isinstance(e.code, int) else EXIT_PRECONDITION

    return run(args)


if __name__ == '__main__':
    sys.exit(main())
