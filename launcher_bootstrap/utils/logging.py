"""Logging setup for Launcher Bootstrap."""

import logging
import re
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

LOGGER_NAME = "launcher_bootstrap"

# Credentials that can end up in messages: aria2 command lines and RPC
# params, and HTTP authorization headers.
_SECRET_PATTERNS = [
    re.compile(r"(--rpc-secret=)\S+"),
    re.compile(r"(token:)\S+"),
    re.compile(r"(Bearer\s+)\S+"),
]


class RedactSecretsFilter(logging.Filter):
    """Masks provider tokens and the aria2 RPC secret before a record is written."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = message
        for pattern in _SECRET_PATTERNS:
            redacted = pattern.sub(r"\1***", redacted)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def setup_logging(
    log_file: Path,
    backup_count: int = 5,
    level: str = "INFO",
    console_level: Optional[str] = None,
) -> logging.Logger:
    """Configure logging with file rotation and console output.

    Both handlers redact secrets, so module loggers can log commands and
    request details freely.

    Args:
        log_file: Path to the log file
        backup_count: Number of backup log files to keep
        level: Logging level for file output
        console_level: Logging level for console output (defaults to INFO)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)

    # Clear any existing handlers
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    log_file.parent.mkdir(parents=True, exist_ok=True)
    redact = RedactSecretsFilter()

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=5 * 1024 * 1024,  # 5MB per file
        backupCount=backup_count,
        encoding="utf-8",
    )
    file_handler.setLevel(getattr(logging, level.upper(), logging.INFO))
    file_handler.setFormatter(logging.Formatter(
        "[%(asctime)s] %(levelname)s %(name)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    ))
    file_handler.addFilter(redact)
    logger.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(
        getattr(logging, (console_level or "INFO").upper(), logging.INFO)
    )
    console_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    console_handler.addFilter(redact)
    logger.addHandler(console_handler)

    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get the logger for a module.

    Args:
        name: Module name (usually ``__name__``). Names outside the package
            are nested under it so they share its handlers.

    Returns:
        The package logger, or one of its children
    """
    if not name or name == LOGGER_NAME:
        return logging.getLogger(LOGGER_NAME)
    if not name.startswith(LOGGER_NAME + "."):
        name = f"{LOGGER_NAME}.{name}"
    return logging.getLogger(name)
