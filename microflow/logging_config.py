"""
Centralized logging configuration for microflow.

Console output is colored by level; file output rotates. Settings come
from arguments or, when omitted, from the environment:

    LOG_LEVEL    DEBUG / INFO / WARNING / ERROR / CRITICAL (default INFO)
    LOG_FILE     path of the rotating log file (default: no file)
    LOG_JSON     "true" for one JSON object per line
    LOG_CONSOLE  "false" to silence console output
"""

import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Optional

PACKAGE_LOGGER = "microflow"

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(module)s:%(lineno)d - %(message)s"
JSON_FORMAT = (
    '{"timestamp": "%(asctime)s", "level": "%(levelname)s", '
    '"logger": "%(name)s", "line": %(lineno)d, "message": "%(message)s"}'
)
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level name for terminals."""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        color = self.COLORS.get(levelname)
        if color:
            record.levelname = f"{color}{levelname}{self.RESET}"
        try:
            return super().format(record)
        finally:
            # Other handlers share the record
            record.levelname = levelname


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def setup_logging(
    name: str = PACKAGE_LOGGER,
    level: Optional[str] = None,
    log_file: Optional[str] = None,
    console: Optional[bool] = None,
    json_format: Optional[bool] = None,
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
) -> logging.Logger:
    """
    Configure the package logger.

    Args:
        name: Logger to configure (defaults to the package logger)
        level: Log level name; falls back to LOG_LEVEL, then INFO
        log_file: Rotating log file path; falls back to LOG_FILE
        console: Log to stdout; falls back to LOG_CONSOLE, then True
        json_format: JSON lines; falls back to LOG_JSON, then False
        max_bytes: Size before the log file rotates
        backup_count: Rotated files to keep

    Returns:
        The configured logger

    Example:
        >>> logger = setup_logging(level="DEBUG", log_file="logs/microflow.log")
        >>> logger.info("engine started")
    """
    level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    log_file = log_file if log_file is not None else os.getenv("LOG_FILE")
    console = _env_flag("LOG_CONSOLE", True) if console is None else console
    json_format = _env_flag("LOG_JSON", False) if json_format is None else json_format

    numeric_level = getattr(logging, level, logging.INFO)
    logger = logging.getLogger(name)
    logger.setLevel(numeric_level)
    logger.handlers.clear()

    log_format = JSON_FORMAT if json_format else TEXT_FORMAT

    if console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(numeric_level)
        if json_format:
            console_handler.setFormatter(logging.Formatter(log_format, DATE_FORMAT))
        else:
            console_handler.setFormatter(ColoredFormatter(log_format, DATE_FORMAT))
        logger.addHandler(console_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(logging.Formatter(log_format, DATE_FORMAT))
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Logger for a module, configuring the package logger on first use.

    Example:
        >>> logger = get_logger(__name__)
    """
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    if not package_logger.handlers:
        setup_logging()
    return logging.getLogger(name)
