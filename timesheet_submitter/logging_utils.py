"""
Logging utilities for the timesheet submission bot.

This module sets up the application logger, masks email addresses in log
output, and provides small helpers for consistently formatted messages.
"""

import logging
import re
import sys
from typing import Optional


LOGGER_NAME = 'timesheet_submitter'

_EMAIL_PATTERN = re.compile(r'([A-Za-z0-9._%+-])[A-Za-z0-9._%+-]*@([A-Za-z0-9.-]+\.[A-Za-z]{2,})')


def mask_email(text: str) -> str:
    """
    Mask the local part of any email addresses in a string.

    Examples:
        >>> mask_email("login as jane.doe@example.com")
        'login as j***@example.com'
    """
    return _EMAIL_PATTERN.sub(r'\1***@\2', text)


class RedactingFilter(logging.Filter):
    """Rewrites log records so email addresses never reach a handler."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        masked = mask_email(message)
        if masked != message:
            record.msg = masked
            record.args = None
        return True


class ColoredFormatter(logging.Formatter):
    """
    Formatter that colors the level name for terminal output.
    """

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
    }
    RESET = '\033[0m'

    def format(self, record):
        levelname = record.levelname
        color = self.COLORS.get(levelname)
        if color:
            record.levelname = f"{color}{levelname}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


def setup_logging(
    verbose: bool = False,
    use_colors: bool = True,
    log_file: Optional[str] = None
) -> logging.Logger:
    """
    Set up logging configuration.

    Args:
        verbose: If True, set level to DEBUG; otherwise INFO
        use_colors: If True, use colored output when stdout is a terminal
        log_file: Optional path of a file that receives DEBUG-level output

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(LOGGER_NAME)
    level = logging.DEBUG if verbose else logging.INFO
    logger.setLevel(logging.DEBUG if log_file else level)

    # Remove existing handlers and filters to avoid duplicates
    logger.handlers.clear()
    logger.filters.clear()
    logger.addFilter(RedactingFilter())

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    fmt = '%(levelname)-8s | %(message)s'
    if use_colors and sys.stdout.isatty():
        console.setFormatter(ColoredFormatter(fmt=fmt))
    else:
        console.setFormatter(logging.Formatter(fmt=fmt))
    logger.addHandler(console)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            fmt='%(asctime)s %(levelname)-8s %(name)s | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        ))
        logger.addHandler(file_handler)

    # Prevent propagation to root logger
    logger.propagate = False

    return logger


def get_logger() -> logging.Logger:
    """
    Get the application logger.

    Returns:
        Logger instance
    """
    return logging.getLogger(LOGGER_NAME)


def log_section(title: str, logger: Optional[logging.Logger] = None):
    """
    Log a section header.

    Args:
        title: Section title
        logger: Logger instance (uses default if None)
    """
    logger = logger or get_logger()
    logger.info("")
    logger.info("=" * 60)
    logger.info(f"  {title}")
    logger.info("=" * 60)


def log_step(step: str, logger: Optional[logging.Logger] = None):
    """Log a processing step."""
    (logger or get_logger()).info(f"→ {step}")


def log_success(message: str, logger: Optional[logging.Logger] = None):
    """Log a success message."""
    (logger or get_logger()).info(f"✓ {message}")


def log_warning(warning: str, logger: Optional[logging.Logger] = None):
    """Log a warning message."""
    (logger or get_logger()).warning(f"⚠ {warning}")


def log_error(error: str, logger: Optional[logging.Logger] = None):
    """Log an error message."""
    (logger or get_logger()).error(f"✗ {error}")
