"""
Configuration management.

Layered loading of dataclass schemas from defaults, config files and
environment variables.
"""

from strata.config.flatten import flatten_keys, iter_fields
from strata.config.loader import Loader, ResolvedKey, load_config
from strata.config.resolver import SourceResolver, ValueSource
from strata.config.settings import LoaderConfig

__all__ = [
    "Loader",
    "LoaderConfig",
    "ResolvedKey",
    "SourceResolver",
    "ValueSource",
    "flatten_keys",
    "iter_fields",
    "load_config",
]
