"""
Configuration loading.

Populates a dataclass schema from defaults, a config file and environment
variables, in increasing order of precedence.
"""

import copy
import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, TypeVar

from strata.config.decode import decode_into
from strata.config.flatten import flatten_keys, is_zero, iter_fields, nested_schema, unwrap_optional
from strata.config.resolver import SourceResolver, ValueSource
from strata.config.settings import LoaderConfig
from strata.exceptions import InvalidTargetError, SchemaDecodeError
from strata.utils.logging import get_logger

logger = get_logger("strata.config.loader")

T = TypeVar("T")


@dataclass(frozen=True)
class ResolvedKey:
    """Effective value of one key path and where it came from."""

    path: str
    env_var: str
    value: Any
    source: ValueSource | None


def _validate_target(target: Any) -> None:
    if target is None:
        raise InvalidTargetError(target, "target is None")
    if isinstance(target, type):
        raise InvalidTargetError(target, "pass an instance, not the class")
    if not dataclasses.is_dataclass(target):
        raise InvalidTargetError(target, "target must be a dataclass instance")
    params = getattr(type(target), "__dataclass_params__", None)
    if params is not None and params.frozen:
        raise InvalidTargetError(target, "frozen dataclasses cannot be populated")


def apply_defaults(target: Any) -> None:
    """
    Fill zero-valued fields with their declared defaults.

    Fields already holding a non-zero value are left alone. Non-optional
    nested schemas that are None are instantiated; optional ones stay None.
    """
    nested: dict[str, Any] = {}
    for field in iter_fields(target):
        parent_path = field.path.rpartition(".")[0]
        if parent_path and parent_path not in nested:
            continue
        owner = nested[parent_path] if parent_path else target
        current = getattr(owner, field.name)

        if field.nested:
            if current is None:
                _, optional = unwrap_optional(field.type)
                if field.has_default:
                    current = field.make_default()
                elif not optional:
                    schema = nested_schema(field.type)
                    try:
                        current = schema()
                    except TypeError as e:
                        raise SchemaDecodeError(
                            f"Cannot instantiate {schema.__name__} for '{field.path}': {e}",
                            field=field.path,
                            type_=schema,
                        ) from e
                if current is not None:
                    setattr(owner, field.name, current)
            if current is not None:
                nested[field.path] = current
            continue

        if field.has_default and is_zero(current, field.type):
            setattr(owner, field.name, field.make_default())


def _leaf_values(target: Any) -> dict[str, Any]:
    """Current value of every reachable leaf field, keyed by path."""
    values: dict[str, Any] = {}
    nested: dict[str, Any] = {}
    for field in iter_fields(target):
        parent_path = field.path.rpartition(".")[0]
        if parent_path and parent_path not in nested:
            continue
        owner = nested[parent_path] if parent_path else target
        current = getattr(owner, field.name)
        if field.nested:
            if current is not None:
                nested[field.path] = current
            continue
        values[field.path] = current
    return values


class Loader:
    """
    Layered configuration loader.

    Precedence: environment variables > config file > declared defaults.

    Usage:
        @dataclass
        class Server:
            port: int = 8080

        @dataclass
        class AppConfig:
            server: Server = field(default_factory=Server)

        cfg = Loader(env_prefix="APP").load(AppConfig())
        # APP_SERVER_PORT=9090 -> cfg.server.port == 9090

    A Loader holds only its immutable settings; every load re-reads the
    config file and the environment. Concurrent loads on the same Loader
    must be serialized by the caller.
    """

    def __init__(
        self,
        config: LoaderConfig | None = None,
        *,
        environ: Mapping[str, str] | None = None,
        **options: Any,
    ):
        """
        Initialize loader.

        Args:
            config: Loader settings (default: LoaderConfig())
            environ: Environment mapping to read (default: os.environ, read live)
            **options: Construction options applied on top of config, see
                LoaderConfig.with_options
        """
        base = config or LoaderConfig()
        self.config = base.with_options(**options) if options else base
        self._environ = environ

    def _resolver(self) -> SourceResolver:
        return SourceResolver(self.config, environ=self._environ)

    def _prepare(self, target: Any) -> SourceResolver:
        resolver = self._resolver()
        resolver.automatic_env()
        resolver.read_file()

        for key in flatten_keys(target):
            resolver.register_key(key)

        apply_defaults(target)
        for path, value in _leaf_values(target).items():
            if value is not None:
                resolver.set_default(path, value)
        return resolver

    def load(self, target: T) -> T:
        """
        Populate target from defaults, the config file and the environment.

        Args:
            target: Mutable dataclass instance, updated in place

        Returns:
            The same target instance

        Raises:
            InvalidTargetError: If target is not a mutable dataclass instance (no I/O is done)
            ConfigFileParseError: If the config file exists but cannot be parsed
            SchemaDecodeError: If the target's schema cannot be flattened
            EnvironmentBindError: If a key cannot be bound to the environment
            DecodeError: If merged values cannot be coerced to field types
        """
        _validate_target(target)
        resolver = self._prepare(target)
        merged = resolver.merge()
        logger.debug(f"Resolved {len(merged)} of {len(resolver.keys)} configuration keys")
        decode_into(target, merged)
        return target

    def describe(self, target: Any) -> list[ResolvedKey]:
        """
        Report the effective value and winning source of every key path.

        Runs the same pipeline as load() against a copy, leaving target untouched.
        """
        _validate_target(target)
        probe = copy.deepcopy(target)
        resolver = self._prepare(probe)
        decode_into(probe, resolver.merge())
        values = _leaf_values(probe)
        sources = resolver.sources()

        return [
            ResolvedKey(
                path=key,
                env_var=resolver.env_name(key),
                value=values.get(key),
                source=sources.get(key),
            )
            for key in sorted(resolver.keys)
        ]


def load_config(target: T, **options: Any) -> T:
    """
    Load configuration into target with a one-off Loader.

    Args:
        target: Mutable dataclass instance, updated in place
        **options: Loader construction options (config_name, config_path,
            config_type, env_prefix, env_key_replacer, ...)

    Returns:
        The same target instance
    """
    environ = options.pop("environ", None)
    return Loader(environ=environ, **options).load(target)
