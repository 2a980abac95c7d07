"""Logging configuration for the zenith maintenance system."""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Any

import colorlog

BASE_LOG_FORMAT = (
    "%(asctime)s %(levelname)8s %(message)s (%(name)s@%(filename)s:%(lineno)d)"
)

LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "red,bg_white",
}


def setup_logging(
    level: int | str = logging.INFO,
    use_colors: bool = True,
    enable_file_logging: bool = False,
    log_dir: Path | None = None,
    is_test_env: bool = False,
) -> None:
    """Configure root logging for the maintenance system.

    Args:
        level: Logging level, either numeric or a name such as "DEBUG"
        use_colors: Whether to use colored console output
        enable_file_logging: Whether to also write to a log file
        log_dir: Directory for log files (defaults to ./logs or ./logs/test)
        is_test_env: Whether this is a test environment
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    if log_dir is None:
        log_dir = Path("logs")
        if is_test_env:
            log_dir = log_dir / "test"

    handlers = [_create_console_handler(use_colors)]

    if enable_file_logging:
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(_create_file_handler(log_dir, is_test_env))

    logging.basicConfig(level=level, handlers=handlers, force=True)


def _create_console_handler(use_colors: bool) -> logging.Handler:
    console_handler = logging.StreamHandler(sys.stdout)

    if use_colors:
        console_formatter: logging.Formatter = colorlog.ColoredFormatter(
            "%(asctime)s %(log_color)s%(levelname)8s%(reset)s %(message)s "
            "\033[90m(%(name)s@%(filename)s:%(lineno)d)\033[0m",
            datefmt="%m-%d %H:%M:%S",
            log_colors=LOG_COLORS,
            style="%",
        )
    else:
        console_formatter = logging.Formatter(BASE_LOG_FORMAT, datefmt="%m-%d %H:%M:%S")

    console_handler.setFormatter(console_formatter)
    return console_handler


def _create_file_handler(log_dir: Path, is_test_env: bool) -> logging.Handler:
    """Create file handler; tests overwrite, production rotates."""
    if is_test_env:
        file_handler: logging.Handler = logging.FileHandler(
            log_dir / "test.log", mode="w"
        )
    else:
        file_handler = logging.handlers.RotatingFileHandler(
            log_dir / "zenith.log",
            maxBytes=5 * 1024 * 1024,  # 5MB
            backupCount=4,
            encoding="utf-8",
        )

    file_handler.setFormatter(
        logging.Formatter(BASE_LOG_FORMAT, datefmt="%m-%d %H:%M:%S")
    )
    return file_handler


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


def format_context(**context: Any) -> str:
    """Render key/value context for a log line, e.g. ``task_id=a duration=3.0``."""
    parts = []
    for key, value in context.items():
        if isinstance(value, float):
            value = f"{value:.1f}"
        parts.append(f"{key}={value}")
    return " ".join(parts)


def setup_production_logging(level: int | str = logging.INFO) -> None:
    """Setup logging for production with file rotation."""
    setup_logging(level=level, enable_file_logging=True, is_test_env=False)


def setup_test_logging(level: int | str = logging.DEBUG) -> None:
    """Setup logging for tests with file overwrite."""
    setup_logging(level=level, enable_file_logging=True, is_test_env=True)
