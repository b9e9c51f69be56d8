"""
Structured logging for Strata.

JSON or human-readable formatting, plus a leveled logging facade that
attaches key/value fields to every record.

Usage:
    from strata.observability import FieldLogger, setup_structured_logging

    setup_structured_logging(level="INFO", json_format=True)

    log = FieldLogger("myapp")
    log.info("Config loaded", "path", "config.yaml", keys=12)
"""

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

from strata.utils.logging import LEVEL_MAP, get_logger, parse_level

logger = get_logger("strata.observability.logging")

# Attributes set by logging.LogRecord itself; never emitted as extra fields
RESERVED_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "asctime",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "message",
        "thread",
        "threadName",
        "taskName",
    }
)


class StructuredFormatter(logging.Formatter):
    """
    JSON-formatted log formatter with structured fields.

    Includes:
    - Timestamp (ISO 8601)
    - Level
    - Logger name
    - Message
    - Exception info (if present)
    - Extra fields
    """

    def __init__(
        self,
        include_timestamp: bool = True,
        include_level: bool = True,
        include_logger: bool = True,
        extra_fields: dict[str, Any] | None = None,
    ):
        """
        Initialize structured formatter.

        Args:
            include_timestamp: Include timestamp in output
            include_level: Include log level in output
            include_logger: Include logger name in output
            extra_fields: Extra fields to include in all logs
        """
        super().__init__()
        self.include_timestamp = include_timestamp
        self.include_level = include_level
        self.include_logger = include_logger
        self.extra_fields = extra_fields or {}

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: dict[str, Any] = {}

        if self.include_timestamp:
            log_data["timestamp"] = datetime.fromtimestamp(record.created, UTC).isoformat()

        if self.include_level:
            log_data["level"] = record.levelname

        if self.include_logger:
            log_data["logger"] = record.name

        log_data["message"] = record.getMessage()

        log_data["location"] = {
            "file": record.filename,
            "line": record.lineno,
            "function": record.funcName,
        }

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info),
            }

        for key, value in record.__dict__.items():
            if key not in RESERVED_ATTRS and not key.startswith("_"):
                log_data[key] = value

        log_data.update(self.extra_fields)

        return json.dumps(log_data, default=str)


class HumanReadableFormatter(logging.Formatter):
    """
    Human-readable formatter.

    Format: [timestamp] [level] [logger] message key=value ...
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as human-readable string."""
        timestamp = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S")
        level = record.levelname.ljust(8)

        parts = [f"[{timestamp}]", f"[{level}]", f"[{record.name}]", record.getMessage()]
        for key, value in record.__dict__.items():
            if key not in RESERVED_ATTRS and not key.startswith("_"):
                parts.append(f"{key}={value}")

        message = " ".join(parts)

        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)

        return message


def setup_structured_logging(
    level: str = "INFO",
    json_format: bool = False,
    stream: Any = None,
    extra_fields: dict[str, Any] | None = None,
) -> None:
    """
    Setup structured logging on the root logger.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: Use JSON format (True) or human-readable (False)
        stream: Output stream (defaults to sys.stderr)
        extra_fields: Extra fields to include in all logs (JSON format only)
    """
    level_int = parse_level(level)
    root_logger = logging.getLogger()
    root_logger.setLevel(level_int)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(level_int)

    formatter: logging.Formatter
    if json_format:
        formatter = StructuredFormatter(extra_fields=extra_fields)
    else:
        formatter = HumanReadableFormatter()

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    logging.getLogger("strata").setLevel(level_int)

    logger.debug(f"Structured logging configured: level={level}, json={json_format}")


class LogContext:
    """
    Context manager for adding structured fields to logs.

    Usage:
        with LogContext(config_file="config.yaml"):
            logger.info("Loading")  # Will include config_file
    """

    def __init__(self, **fields: Any) -> None:
        self.fields = fields
        self._old_factory: Any = None

    def __enter__(self) -> "LogContext":
        """Add fields to log records."""
        old_factory = logging.getLogRecordFactory()
        self._old_factory = old_factory
        fields = self.fields

        def record_factory(*args: Any, **kwargs: Any) -> logging.LogRecord:
            record = old_factory(*args, **kwargs)
            for key, value in fields.items():
                setattr(record, key, value)
            return record

        logging.setLogRecordFactory(record_factory)
        return self

    def __exit__(self, *args: Any) -> None:
        """Restore original log record factory."""
        if self._old_factory:
            logging.setLogRecordFactory(self._old_factory)


def pairs_to_fields(key_values: tuple[Any, ...]) -> dict[str, Any]:
    """
    Turn ``("key1", v1, "key2", v2)`` into ``{"key1": v1, "key2": v2}``.

    An odd-length sequence carries no fields.
    """
    if len(key_values) < 2 or len(key_values) % 2 != 0:
        return {}
    return {str(key_values[i]): key_values[i + 1] for i in range(0, len(key_values), 2)}


class FieldLogger:
    """
    Leveled logging facade with structured fields.

    Each call accepts key/value pairs positionally and/or as keyword
    arguments; both end up as attributes on the LogRecord, which the
    structured formatters render.

    Usage:
        log = FieldLogger("myapp").with_fields(service="api")
        log.info("listening", "port", 8080)
    """

    def __init__(self, name: str | logging.Logger = "strata", level: str | int | None = None, **fields: Any):
        self.logger = name if isinstance(name, logging.Logger) else logging.getLogger(name)
        if level is not None:
            if isinstance(level, str) and level.strip().upper() not in LEVEL_MAP:
                raise ValueError(f"not a valid log level: {level!r}")
            self.logger.setLevel(parse_level(level))
        self.fields = fields

    @property
    def level(self) -> str:
        """Effective level name, e.g. "INFO"."""
        return logging.getLevelName(self.logger.getEffectiveLevel())

    def with_fields(self, **fields: Any) -> "FieldLogger":
        """Return a logger that adds fields to every record."""
        return FieldLogger(self.logger, **{**self.fields, **fields})

    def _extra(self, key_values: tuple[Any, ...], fields: dict[str, Any]) -> dict[str, Any]:
        merged = {**self.fields, **pairs_to_fields(key_values), **fields}
        # LogRecord refuses extras that shadow its own attributes
        return {(f"{k}_" if k in RESERVED_ATTRS else k): v for k, v in merged.items()}

    def log(self, level: int, msg: str, *key_values: Any, **fields: Any) -> None:
        exc_info = fields.pop("exc_info", None)
        self.logger.log(level, msg, exc_info=exc_info, extra=self._extra(key_values, fields), stacklevel=3)

    def debug(self, msg: str, *key_values: Any, **fields: Any) -> None:
        self.log(logging.DEBUG, msg, *key_values, **fields)

    def info(self, msg: str, *key_values: Any, **fields: Any) -> None:
        self.log(logging.INFO, msg, *key_values, **fields)

    def warning(self, msg: str, *key_values: Any, **fields: Any) -> None:
        self.log(logging.WARNING, msg, *key_values, **fields)

    warn = warning

    def error(self, msg: str, *key_values: Any, **fields: Any) -> None:
        self.log(logging.ERROR, msg, *key_values, **fields)

    def critical(self, msg: str, *key_values: Any, **fields: Any) -> None:
        self.log(logging.CRITICAL, msg, *key_values, **fields)

    fatal = critical
