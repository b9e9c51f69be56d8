"""
Shared helpers for CLI commands: schema import and loader construction.
"""

import importlib
import importlib.util
import sys
from pathlib import Path
from typing import Any

import typer

from strata.config.flatten import is_schema
from strata.config.loader import Loader


def import_schema(reference: str) -> Any:
    """
    Import a dataclass schema and return a fresh instance.

    Args:
        reference: "package.module:ClassName" or "path/to/file.py:ClassName"

    Raises:
        typer.BadParameter: If the reference cannot be imported or is not a dataclass
    """
    module_ref, sep, attr = reference.partition(":")
    if not sep or not module_ref or not attr:
        raise typer.BadParameter(f"Expected 'module:ClassName', got '{reference}'")

    try:
        if module_ref.endswith(".py"):
            path = Path(module_ref).resolve()
            spec = importlib.util.spec_from_file_location(path.stem, path)
            if spec is None or spec.loader is None:
                raise ImportError(f"cannot load module from {path}")
            module = importlib.util.module_from_spec(spec)
            sys.modules[path.stem] = module
            spec.loader.exec_module(module)
        else:
            if "" not in sys.path:
                sys.path.insert(0, "")
            module = importlib.import_module(module_ref)
    except (ImportError, OSError) as e:
        raise typer.BadParameter(f"Cannot import '{module_ref}': {e}") from e

    schema = getattr(module, attr, None)
    if schema is None:
        raise typer.BadParameter(f"'{module_ref}' has no attribute '{attr}'")
    if not isinstance(schema, type) or not is_schema(schema):
        raise typer.BadParameter(f"'{reference}' is not a dataclass")

    try:
        return schema()
    except TypeError as e:
        raise typer.BadParameter(f"Cannot instantiate '{reference}' without arguments: {e}") from e


def build_loader(
    config_name: str | None,
    config_paths: list[Path] | None,
    config_type: str | None,
    env_prefix: str | None,
) -> Loader:
    """Create a Loader from CLI options; unset options keep loader defaults."""
    options: dict[str, Any] = {
        "config_name": config_name,
        "config_type": config_type,
        "env_prefix": env_prefix,
    }
    if config_paths:
        options["config_paths"] = [str(p) for p in config_paths]
    return Loader(**options)


ConfigNameOption = typer.Option(None, "--config-name", "-n", help="Config file name without extension")
ConfigPathOption = typer.Option(None, "--config-path", "-p", help="Directory to search for the config file (repeatable)")
ConfigTypeOption = typer.Option(None, "--config-type", "-t", help="Config file format: yaml, json or toml")
EnvPrefixOption = typer.Option(None, "--env-prefix", "-e", help="Environment variable prefix")
