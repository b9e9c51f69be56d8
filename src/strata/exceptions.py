"""
Strata exception hierarchy.

All domain-specific exceptions inherit from StrataError, making it easy
to catch any loader error with a single base class while still allowing
fine-grained handling when needed.

Hierarchy::

    StrataError
    └── ConfigurationError             - loader options, unsupported file types
        ├── UnsupportedConfigTypeError - no parser for the configured file type
        ├── InvalidTargetError         - load target is not a mutable dataclass instance
        ├── ConfigFileParseError       - config file found but malformed
        ├── SchemaDecodeError          - schema cannot be flattened into key paths
        ├── EnvironmentBindError       - key path cannot be bound to an env var
        └── DecodeError                - merged values cannot be coerced to field types
"""

from __future__ import annotations

from pathlib import Path
from typing import Any


class StrataError(Exception):
    """Base exception for all Strata errors."""

    def __init__(self, message: str, *, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


# --- Configuration -----------------------------------------------------------


class ConfigurationError(StrataError):
    """Raised when configuration loading, parsing, or validation fails."""


class UnsupportedConfigTypeError(ConfigurationError):
    """Raised when no parser is registered for the configured file type."""

    def __init__(self, config_type: str, supported: list[str]) -> None:
        super().__init__(
            f"Unsupported config type '{config_type}' (supported: {', '.join(supported)})",
            details={"config_type": config_type, "supported": supported},
        )
        self.config_type = config_type


class InvalidTargetError(ConfigurationError):
    """Raised when the load target is not a mutable dataclass instance."""

    def __init__(self, target: Any, reason: str) -> None:
        kind = target.__name__ if isinstance(target, type) else type(target).__name__
        super().__init__(
            f"Load requires a mutable dataclass instance, got {kind}: {reason}",
            details={"type": kind},
        )


class ConfigFileParseError(ConfigurationError):
    """Raised when a config file exists but cannot be parsed.

    A missing file is never reported with this error; absence simply leaves
    the file source empty.
    """

    def __init__(
        self,
        path: str | Path,
        message: str,
        *,
        line: int | None = None,
        column: int | None = None,
    ) -> None:
        location = f" at line {line}, column {column}" if line is not None else ""
        super().__init__(
            f"Error parsing {Path(path).name}{location}:\n  {message}\n  File: {path}",
            details={"path": str(path), "line": line, "column": column},
        )
        self.path = Path(path)
        self.line = line
        self.column = column


class SchemaDecodeError(ConfigurationError):
    """Raised when a schema cannot be decomposed into key paths."""

    def __init__(self, message: str, *, field: str | None = None, type_: Any = None) -> None:
        super().__init__(message, details={"field": field, "type": repr(type_) if type_ is not None else None})
        self.field = field


class EnvironmentBindError(ConfigurationError):
    """Raised when a key path cannot be bound to an environment variable."""

    def __init__(self, key: str, message: str) -> None:
        super().__init__(f"Unable to bind key '{key}' to environment: {message}", details={"key": key})
        self.key = key


class DecodeError(ConfigurationError):
    """Raised when merged values cannot be coerced into the target's field types."""

    def __init__(self, errors: dict[str, str]) -> None:
        lines = "\n".join(f"  {key}: {reason}" for key, reason in sorted(errors.items()))
        super().__init__(
            f"Unable to decode {len(errors)} configuration value(s):\n{lines}",
            details={"errors": dict(errors)},
        )
        self.errors = dict(errors)
