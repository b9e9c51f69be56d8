"""
Strata - layered configuration for Python services.

Populates dataclass schemas from declared defaults, a discovered config file
and environment variables (environment > file > defaults).
"""

__version__ = "0.1.0"

from strata.config import (
    Loader,
    LoaderConfig,
    ResolvedKey,
    SourceResolver,
    ValueSource,
    flatten_keys,
    load_config,
)

# Exceptions
from strata.exceptions import (
    ConfigFileParseError,
    ConfigurationError,
    DecodeError,
    EnvironmentBindError,
    InvalidTargetError,
    SchemaDecodeError,
    StrataError,
    UnsupportedConfigTypeError,
)

# Logging utilities
from strata.observability.structured_logging import FieldLogger
from strata.utils.logging import LoggingConfig, get_logger, setup_logging, setup_logging_from_config

__all__ = [
    # Loading
    "Loader",
    "LoaderConfig",
    "ResolvedKey",
    "SourceResolver",
    "ValueSource",
    "flatten_keys",
    "load_config",
    # Exceptions
    "StrataError",
    "ConfigurationError",
    "UnsupportedConfigTypeError",
    "InvalidTargetError",
    "ConfigFileParseError",
    "SchemaDecodeError",
    "EnvironmentBindError",
    "DecodeError",
    # Logging
    "FieldLogger",
    "LoggingConfig",
    "get_logger",
    "setup_logging",
    "setup_logging_from_config",
]
