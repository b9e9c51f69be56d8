"""
Configuration source resolution.

Holds the three ranked value sources (defaults, config file, environment)
for a set of registered key paths and merges them into a single view.
"""

import enum
import json
import os
import tomllib
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

import yaml

from strata.config.settings import LoaderConfig
from strata.exceptions import ConfigFileParseError, EnvironmentBindError, UnsupportedConfigTypeError
from strata.utils.logging import get_logger

logger = get_logger("strata.config.resolver")


class ValueSource(enum.IntEnum):
    """Origin of a configuration value, ordered by precedence."""

    DEFAULT = 1
    FILE = 2
    ENVIRONMENT = 3


def _parse_yaml(path: Path) -> Any:
    with open(path, encoding="utf-8") as f:
        try:
            return yaml.safe_load(f)
        except yaml.YAMLError as e:
            mark = getattr(e, "problem_mark", None)
            if mark is not None:
                raise ConfigFileParseError(
                    path,
                    f"{e}\n  Suggestion: Check YAML syntax, ensure proper indentation and quotes",
                    line=mark.line + 1,
                    column=mark.column + 1,
                ) from e
            raise ConfigFileParseError(path, str(e)) from e


def _parse_json(path: Path) -> Any:
    with open(path, encoding="utf-8") as f:
        try:
            return json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigFileParseError(path, e.msg, line=e.lineno, column=e.colno) from e


def _parse_toml(path: Path) -> Any:
    with open(path, "rb") as f:
        try:
            return tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigFileParseError(path, str(e)) from e


# Map config type (and file extension) to parser
PARSERS: dict[str, Callable[[Path], Any]] = {
    "yaml": _parse_yaml,
    "yml": _parse_yaml,
    "json": _parse_json,
    "toml": _parse_toml,
}


def _lower_keys(data: Mapping[str, Any]) -> dict[str, Any]:
    """Recursively lowercase mapping keys; key paths are case-insensitive."""
    result: dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, Mapping):
            value = _lower_keys(value)
        result[str(key).lower()] = value
    return result


def _search(tree: Mapping[str, Any], segments: list[str]) -> tuple[Any, bool]:
    """
    Find the value for a key path in a nested mapping.

    Tries the longest dotted prefix first at every level so that both
    ``{"server": {"port": 1}}`` and ``{"server.port": 1}`` match ``server.port``.
    """
    for i in range(len(segments), 0, -1):
        key = ".".join(segments[:i])
        if key not in tree:
            continue
        value = tree[key]
        rest = segments[i:]
        if not rest:
            return value, True
        if isinstance(value, Mapping):
            found, ok = _search(value, rest)
            if ok:
                return found, True
    return None, False


class SourceResolver:
    """
    Ranked configuration sources for a set of key paths.

    Precedence: environment > config file > defaults. Environment values are
    read at lookup time and never cached, so changes made to the environment
    after registration are observed by the next merge.

    Not safe for concurrent use; the loader creates one resolver per load.
    """

    def __init__(self, config: LoaderConfig | None = None, environ: Mapping[str, str] | None = None):
        self.config = config or LoaderConfig()
        self._environ: Mapping[str, str] = os.environ if environ is None else environ
        self._env_bindings: dict[str, str] = {}
        self._file_data: dict[str, Any] = {}
        self._defaults: dict[str, Any] = {}
        self._automatic_env = False
        self.config_file: Path | None = None

    @property
    def keys(self) -> list[str]:
        """Registered key paths, in registration order."""
        return list(self._env_bindings)

    def automatic_env(self) -> None:
        """Enable environment lookups for registered keys."""
        self._automatic_env = True

    def env_name(self, path: str) -> str:
        """
        Derive the environment variable name for a key path.

        Name is ``UPPER(PREFIX + "_" + REPLACE(path))``, or ``UPPER(REPLACE(path))``
        when no prefix is configured.
        """
        old, new = self.config.env_key_replacer
        name = path.replace(old, new) if old else path
        if self.config.env_prefix:
            name = f"{self.config.env_prefix}_{name}"
        return name.upper()

    def register_key(self, path: str) -> str:
        """
        Register a key path for environment lookup.

        Registering the same path again has no effect.

        Returns:
            The environment variable name bound to the key

        Raises:
            EnvironmentBindError: If the key path is empty
        """
        key = path.strip().lower()
        if not key:
            raise EnvironmentBindError(path, "key path must not be empty")
        if key not in self._env_bindings:
            self._env_bindings[key] = self.env_name(key)
        return self._env_bindings[key]

    def set_default(self, path: str, value: Any) -> None:
        """Record a value in the default source."""
        self._defaults[path.lower()] = value

    def candidate_files(self) -> list[Path]:
        """Config file locations in search order."""
        filename = f"{self.config.config_name}.{self.config.config_type}"
        return [Path(p) / filename for p in self.config.config_paths]

    def read_file(self) -> Path | None:
        """
        Locate and parse the config file into the file source.

        The first ``<config_name>.<config_type>`` found across the search paths
        wins. A missing file is not an error: the file source is left empty.

        Returns:
            Path of the file that was read, or None if no file was found

        Raises:
            UnsupportedConfigTypeError: If no parser exists for the config type
            ConfigFileParseError: If the file exists but cannot be parsed
        """
        config_type = self.config.config_type.lower()
        parser = PARSERS.get(config_type)
        if parser is None:
            raise UnsupportedConfigTypeError(config_type, sorted(PARSERS))

        self._file_data = {}
        self.config_file = None
        for candidate in self.candidate_files():
            if not candidate.is_file():
                logger.debug(f"Config file not found: {candidate}")
                continue

            data = parser(candidate)
            if data is None:
                data = {}
            if not isinstance(data, Mapping):
                raise ConfigFileParseError(
                    candidate, f"Top-level value must be a mapping, got {type(data).__name__}"
                )
            self._file_data = _lower_keys(data)
            self.config_file = candidate
            logger.debug(f"Loaded config file: {candidate}")
            return candidate

        logger.debug("No config file found, continuing with defaults and environment")
        return None

    def _env_value(self, key: str) -> tuple[Any, bool]:
        if not self._automatic_env:
            return None, False
        name = self._env_bindings.get(key) or self.env_name(key)
        value = self._environ.get(name)
        if value is None:
            return None, False
        if value == "" and not self.config.allow_empty_env:
            return None, False
        return value, True

    def lookup(self, path: str) -> tuple[Any, ValueSource] | None:
        """
        Highest-ranked value for a single key path.

        Returns:
            Tuple of (value, source), or None if no source supplies a value
        """
        key = path.lower()
        value, ok = self._env_value(key)
        if ok:
            return value, ValueSource.ENVIRONMENT
        value, ok = _search(self._file_data, key.split("."))
        # A null file value is absent, so lower-ranked sources still apply
        if ok and value is not None:
            return value, ValueSource.FILE
        if key in self._defaults:
            return self._defaults[key], ValueSource.DEFAULT
        return None

    def merge(self) -> dict[str, Any]:
        """
        Merge all sources for every registered key path.

        Keys with no value in any source are omitted. Values are returned as
        found; type coercion happens when decoding into the schema.
        """
        merged: dict[str, Any] = {}
        for key in self._env_bindings:
            found = self.lookup(key)
            if found is not None:
                merged[key] = found[0]
        return merged

    def sources(self) -> dict[str, ValueSource]:
        """Winning source for every registered key path that has a value."""
        result: dict[str, ValueSource] = {}
        for key in self._env_bindings:
            found = self.lookup(key)
            if found is not None:
                result[key] = found[1]
        return result
