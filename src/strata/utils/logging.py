"""
Logging configuration for Strata.

Console output goes through rich when available; an optional file handler
writes plain, parseable lines.
"""

import logging
import sys
import traceback
from dataclasses import dataclass
from pathlib import Path
from typing import Any

try:
    import importlib.util

    RICH_AVAILABLE = importlib.util.find_spec("rich.logging") is not None
except (ImportError, ValueError):
    RICH_AVAILABLE = False


class FileFormatter(logging.Formatter):
    """Formatter for file logs - clean and parseable."""

    def __init__(self) -> None:
        super().__init__(fmt="%(asctime)s [%(levelname)-8s] %(name)s: %(message)s", datefmt="%Y-%m-%d %H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with full exception info for errors."""
        # Drop cached traceback text so it is rendered exactly once below
        exc_info, record.exc_info, record.exc_text = record.exc_info, None, None
        try:
            result = super().format(record)
        finally:
            record.exc_info = exc_info

        if exc_info:
            result += "\n" + "".join(traceback.format_exception(*exc_info)).rstrip()

        return result


class ConsoleFormatter(logging.Formatter):
    """Plain console format: "level: timestamp - msg", with file:line for errors."""

    def __init__(self) -> None:
        super().__init__(datefmt="%Y-%m-%d %H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        prefix = f"{record.levelname}: {self.formatTime(record)}"
        if record.levelno >= logging.ERROR and record.pathname:
            prefix += f" - {Path(record.pathname).name}:{record.lineno}"
        return f"{prefix} - {record.getMessage()}"


# Map string level names to logging constants
LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "FATAL": logging.CRITICAL,
    "CRITICAL": logging.CRITICAL,
}


def parse_level(level: str | int) -> int:
    """
    Parse logging level from string or int.

    Args:
        level: Logging level as string (DEBUG, INFO, etc.) or int

    Returns:
        Logging level constant (INFO if the name is not recognized)
    """
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        level_upper = level.strip().upper()
        if level_upper in LEVEL_MAP:
            return LEVEL_MAP[level_upper]
    return logging.INFO


@dataclass
class LoggingConfig:
    """Logging settings, loadable with strata.config.Loader under a ``logging`` key."""

    level: str = "INFO"
    file: str | None = None
    file_mode: str = "a"
    format: str | None = None
    console_enabled: bool = True
    console_type: str = "rich"


def setup_logging(
    level: str | int = logging.INFO,
    log_file: str | Path | None = None,
    format_string: str | None = None,
    file_mode: str = "a",
    console: Any | None = None,
    console_enabled: bool = True,
    use_rich: bool = True,
) -> logging.Logger:
    """
    Setup logging configuration for Strata.

    Args:
        level: Logging level as string (DEBUG, INFO, etc.) or int (default: INFO)
        log_file: Optional file path to write logs to (default: None, console only)
        format_string: Optional custom format string for the plain console handler
        file_mode: File mode for file handler - 'a' for append, 'w' for overwrite (default: 'a')
        console: Optional Rich Console instance to use (default: None, creates new)
        console_enabled: Whether to enable console logging (default: True)
        use_rich: Whether to use RichHandler for console output (default: True)

    Returns:
        Logger instance
    """
    logger = logging.getLogger("strata")

    # Only clear handlers from this logger, not root or child loggers
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    level_int = parse_level(level)
    logger.setLevel(level_int)

    if console_enabled:
        if use_rich and RICH_AVAILABLE:
            from rich.logging import RichHandler

            rich_handler = RichHandler(
                level=level_int,
                console=console,
                show_time=True,
                show_path=True,
                markup=False,
                rich_tracebacks=True,
                tracebacks_show_locals=False,
                log_time_format="[%X]",
            )
            logger.addHandler(rich_handler)
        else:
            formatter: logging.Formatter = (
                ConsoleFormatter() if format_string is None else logging.Formatter(format_string)
            )
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setLevel(level_int)
            console_handler.setFormatter(formatter)
            logger.addHandler(console_handler)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file, mode=file_mode)
        # File captures everything the logger lets through
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(FileFormatter())
        logger.addHandler(file_handler)

    logger.propagate = True
    return logger


def setup_logging_from_config(
    config: LoggingConfig, project_dir: Path | None = None, console: Any | None = None
) -> logging.Logger:
    """
    Setup logging from a loaded LoggingConfig.

    Args:
        config: Logging settings
        project_dir: Optional directory for resolving a relative log file path
        console: Optional Rich Console instance for RichHandler

    Returns:
        Logger instance
    """
    log_file: Path | None = None
    if config.file:
        log_file = Path(config.file)
        if project_dir and not log_file.is_absolute():
            log_file = project_dir / log_file

    use_rich = config.console_type == "rich"
    return setup_logging(
        level=config.level,
        log_file=log_file,
        format_string=config.format,
        file_mode=config.file_mode,
        console=console if use_rich else None,
        console_enabled=config.console_enabled,
        use_rich=use_rich,
    )


def get_logger(name: str = "strata") -> logging.Logger:
    """
    Get a logger instance.

    Child loggers (e.g. "strata.config.loader") propagate to the "strata"
    logger configured by setup_logging().

    Args:
        name: Logger name (default: "strata")

    Returns:
        Logger instance
    """
    logger = logging.getLogger(name)
    logger.propagate = True
    return logger
