"""
Logging setup for phonedir.

Two log streams exist:

- the ``phonedir`` logger, written to stderr and to a dated file in the
  log directory (``phonedir_YYYYMMDD.log``)
- the ``phonedir.sync_audit`` logger, one file per sync session
  (``sync_audit_YYYYMMDD_HHMMSS.log``) with a line for every directory
  contact that sync inserted, updated or deleted

Environment:
    PHONEDIR_LOG_LEVEL  DEBUG, INFO, WARNING, ERROR or CRITICAL
    PHONEDIR_DEBUG      1/true/yes forces DEBUG
    PHONEDIR_LOG_FILE   explicit log file, or "none" to disable file logging
"""

import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

ROOT_LOGGER_NAME = "phonedir"
AUDIT_LOGGER_NAME = "phonedir.sync_audit"

ENV_LOG_LEVEL = "PHONEDIR_LOG_LEVEL"
ENV_DEBUG = "PHONEDIR_DEBUG"
ENV_LOG_FILE = "PHONEDIR_LOG_FILE"

DEFAULT_LOG_DIR = Path.home() / ".phonedir" / "logs"

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
CONSOLE_FORMAT = "%(levelname)s: %(message)s"
VERBOSE_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"
)
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

AUDIT_LOG_FORMAT = "%(asctime)s.%(msecs)03d - %(levelname)s - %(message)s"
AUDIT_DATE_FORMAT = DATE_FORMAT

# File name patterns subject to retention
LOG_FILE_PATTERNS = ("phonedir_*.log", "sync_audit_*.log")

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

# Log directory chosen by the last setup_logging() call
_configured_log_dir: Optional[Path] = None


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level name and message on a terminal."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(
        self,
        fmt: Optional[str] = None,
        datefmt: Optional[str] = None,
        use_colors: bool = True,
    ):
        super().__init__(fmt, datefmt)
        self.use_colors = use_colors and self._supports_color()

    @staticmethod
    def _supports_color() -> bool:
        if not getattr(sys.stderr, "isatty", None) or not sys.stderr.isatty():
            return False
        # https://no-color.org/
        if os.environ.get("NO_COLOR"):
            return False
        return os.environ.get("TERM", "") != "dumb"

    def format(self, record: logging.LogRecord) -> str:
        # Work on a copy; the file handler must see the plain record
        record = logging.makeLogRecord(record.__dict__)
        color = self.COLORS.get(record.levelname)
        if self.use_colors and color:
            record.levelname = f"{color}{record.levelname}{self.RESET}"
            record.msg = f"{color}{record.msg}{self.RESET}"
        return super().format(record)


def get_log_level_from_env() -> int:
    """Log level from PHONEDIR_DEBUG / PHONEDIR_LOG_LEVEL, INFO by default."""
    if os.environ.get(ENV_DEBUG, "").lower() in ("1", "true", "yes"):
        return logging.DEBUG
    return _LEVELS.get(os.environ.get(ENV_LOG_LEVEL, "INFO").upper(), logging.INFO)


def get_log_file_path(log_dir: Optional[Path] = None) -> Optional[Path]:
    """
    Resolve the main log file.

    Args:
        log_dir: Directory for the dated log file; ignored when
                 PHONEDIR_LOG_FILE names a file

    Returns:
        Path of the log file, or None when file logging is disabled
    """
    override = os.environ.get(ENV_LOG_FILE)
    if override is not None:
        if override.lower() in ("none", "disabled", ""):
            return None
        return Path(override)

    directory = log_dir or DEFAULT_LOG_DIR
    return directory / f"phonedir_{datetime.now():%Y%m%d}.log"


def setup_logging(
    level: Optional[int] = None,
    verbose: bool = False,
    log_dir: Optional[Path] = None,
    log_file: Optional[Path] = None,
    enable_file_logging: bool = True,
    use_colors: bool = True,
) -> logging.Logger:
    """
    Configure the phonedir logger.

    Calling it again replaces the handlers of the previous call.

    Args:
        level: Console level; taken from the environment when None
        verbose: Use DEBUG and the verbose format on the console
        log_dir: Directory for log files (also used by the audit log)
        log_file: Explicit log file, overriding log_dir
        enable_file_logging: Write a log file at all
        use_colors: Color console output when the terminal supports it

    Returns:
        The configured ``phonedir`` logger

    Example:
        setup_logging(verbose=True, log_dir=Path("/var/log/phonedir"))
    """
    global _configured_log_dir

    if verbose:
        level = logging.DEBUG
    elif level is None:
        level = get_log_level_from_env()

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)
    logger.handlers.clear()
    logger.propagate = False

    console_format = VERBOSE_FORMAT if verbose else CONSOLE_FORMAT
    console = logging.StreamHandler(sys.stderr)
    console.setLevel(level)
    console.setFormatter(
        ColoredFormatter(console_format, DATE_FORMAT)
        if use_colors
        else logging.Formatter(console_format, DATE_FORMAT)
    )
    logger.addHandler(console)

    file_path = (log_file or get_log_file_path(log_dir)) if enable_file_logging else None
    if file_path:
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(file_path, encoding="utf-8")
        except OSError as e:
            logger.warning(f"Could not create log file {file_path}: {e}")
        else:
            # Files always get the full detail
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(logging.Formatter(VERBOSE_FORMAT, DATE_FORMAT))
            logger.addHandler(file_handler)
            logger.debug(f"Log file: {file_path}")

    if log_dir:
        _configured_log_dir = log_dir
    elif log_file:
        _configured_log_dir = log_file.parent
    else:
        _configured_log_dir = None

    return logger


def get_logger(name: str) -> logging.Logger:
    """Logger below the ``phonedir`` hierarchy for the given module name."""
    if not name.startswith(ROOT_LOGGER_NAME):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def cleanup_old_logs(log_dir: Optional[Path] = None, keep_count: int = 10) -> int:
    """
    Delete all but the newest ``keep_count`` files of each log kind.

    Args:
        log_dir: Log directory; the configured or default one when None
        keep_count: Files to keep per kind, 0 disables cleanup

    Returns:
        Number of deleted files
    """
    if keep_count <= 0:
        return 0

    directory = log_dir or _configured_log_dir or DEFAULT_LOG_DIR
    if not directory.exists():
        return 0

    deleted = 0
    for pattern in LOG_FILE_PATTERNS:
        newest_first = sorted(
            directory.glob(pattern), key=lambda p: p.stat().st_mtime, reverse=True
        )
        for path in newest_first[keep_count:]:
            try:
                path.unlink()
            except OSError as e:
                logging.getLogger(ROOT_LOGGER_NAME).debug(f"Could not delete {path}: {e}")
            else:
                deleted += 1
    return deleted


def get_sync_audit_log_path(log_dir: Optional[Path] = None) -> Path:
    """Timestamped path for a new sync audit file."""
    directory = log_dir or _configured_log_dir or DEFAULT_LOG_DIR
    return directory / f"sync_audit_{datetime.now():%Y%m%d_%H%M%S}.log"


def setup_sync_audit_logger(
    log_file: Optional[Path] = None,
    level: int = logging.INFO,
) -> logging.Logger:
    """
    Open a sync audit session.

    The audit logger never propagates, so contact changes stay out of the
    main log. If the file cannot be created the audit lines go to stderr.

    Args:
        log_file: Audit file; a new timestamped one when None
        level: Audit level

    Returns:
        The audit logger
    """
    logger = logging.getLogger(AUDIT_LOGGER_NAME)
    logger.setLevel(level)
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    logger.propagate = False

    file_path = log_file or get_sync_audit_log_path()
    formatter = logging.Formatter(AUDIT_LOG_FORMAT, AUDIT_DATE_FORMAT)
    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(file_path, encoding="utf-8")
    except OSError as e:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.warning(f"Could not create sync audit log file {file_path}: {e}")
        return logger

    handler.setLevel(level)
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.info(f"Sync audit session started at {datetime.now().isoformat()}")
    return logger


def get_sync_audit_logger() -> logging.Logger:
    """
    The sync audit logger.

    Without setup_sync_audit_logger() it has no handlers and its records
    propagate to the ``phonedir`` logger.
    """
    return logging.getLogger(AUDIT_LOGGER_NAME)


__all__ = [
    "setup_logging",
    "get_logger",
    "get_log_level_from_env",
    "get_log_file_path",
    "cleanup_old_logs",
    "ColoredFormatter",
    "setup_sync_audit_logger",
    "get_sync_audit_logger",
    "get_sync_audit_log_path",
    "DEFAULT_LOG_DIR",
    "DEFAULT_FORMAT",
    "CONSOLE_FORMAT",
    "VERBOSE_FORMAT",
    "DATE_FORMAT",
    "AUDIT_LOG_FORMAT",
    "AUDIT_DATE_FORMAT",
]
