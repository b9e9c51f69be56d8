"""
Loader settings.

The loader's own configuration: where to look for the config file, how to
parse it, and how key paths map to environment variable names.
"""

import os
from dataclasses import dataclass, field, replace
from typing import Any

from strata.exceptions import ConfigurationError

DEFAULT_CONFIG_NAME = "config"
DEFAULT_CONFIG_TYPE = "yaml"
DEFAULT_CONFIG_PATHS: tuple[str, ...] = ("./",)
DEFAULT_ENV_KEY_REPLACER: tuple[str, str] = (".", "_")


@dataclass(frozen=True)
class LoaderConfig:
    """Immutable loader settings."""

    config_name: str = DEFAULT_CONFIG_NAME
    config_type: str = DEFAULT_CONFIG_TYPE
    config_paths: tuple[str, ...] = field(default=DEFAULT_CONFIG_PATHS)
    env_prefix: str = ""
    env_key_replacer: tuple[str, str] = DEFAULT_ENV_KEY_REPLACER
    allow_empty_env: bool = False

    def with_options(self, **options: Any) -> "LoaderConfig":
        """
        Return a copy with construction options applied.

        Recognized options:
            config_name: File name of the config file without extension
            config_path: One directory (or a list of them) appended to the search paths
            config_paths: Directories replacing the search paths, in search order
            config_type: File format, also used as the file extension ("yaml", "json", "toml")
            env_prefix: Prefix joined to key paths with "_" when naming env vars
            env_key_replacer: (old, new) pair applied to key paths when naming env vars
            allow_empty_env: Treat set-but-empty env vars as values

        Raises:
            ConfigurationError: If an option is unknown or malformed
        """
        changes: dict[str, Any] = {}
        paths = list(self.config_paths)

        for name, value in options.items():
            if value is None:
                continue
            if name == "config_path":
                if isinstance(value, (list, tuple)):
                    paths.extend(str(p) for p in value)
                elif isinstance(value, (str, os.PathLike)):
                    paths.append(os.fspath(value))
                else:
                    raise ConfigurationError(
                        f"config_path must be a path or a list of paths, got {value!r}",
                        details={"option": name},
                    )
            elif name == "config_paths":
                if isinstance(value, str):
                    value = [value]
                paths = [str(p) for p in value]
            elif name == "env_key_replacer":
                if not isinstance(value, (tuple, list)) or len(value) != 2:
                    raise ConfigurationError(
                        f"env_key_replacer must be an (old, new) pair, got {value!r}",
                        details={"option": name},
                    )
                changes[name] = (str(value[0]), str(value[1]))
            elif name in ("config_name", "config_type", "env_prefix"):
                changes[name] = str(value)
            elif name == "allow_empty_env":
                changes[name] = bool(value)
            else:
                raise ConfigurationError(f"Unknown loader option: {name}", details={"option": name})

        changes["config_paths"] = tuple(paths)
        return replace(self, **changes)
