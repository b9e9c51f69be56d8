"""
Schema flattening.

Walks a dataclass schema and derives the dot-delimited key path of every
leaf field. Only annotations are inspected, so the key set never depends on
the values (or defaults) an instance currently holds.
"""

import dataclasses
import datetime
import enum
import types
import typing
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path, PurePath
from typing import Any

from strata.exceptions import SchemaDecodeError

# Metadata key used to rename a field's path segment; "-" skips the field
KEY_METADATA = "key"
SKIP_KEY = "-"

SCALAR_TYPES: tuple[type, ...] = (str, int, float, bool, bytes, datetime.timedelta)
SEQUENCE_ORIGINS: tuple[type, ...] = (list, tuple, set, frozenset)
MAPPING_ORIGINS: tuple[Any, ...] = (dict, Mapping)

_MISSING = dataclasses.MISSING


@dataclass(frozen=True)
class SchemaField:
    """One leaf (or nested) field of a schema."""

    path: str
    name: str
    type: Any
    default: Any = _MISSING
    default_factory: Any = _MISSING
    nested: bool = False

    @property
    def has_default(self) -> bool:
        return self.default is not _MISSING or self.default_factory is not _MISSING

    def make_default(self) -> Any:
        """Build a fresh copy of the declared default."""
        if self.default_factory is not _MISSING:
            return self.default_factory()
        return self.default


def is_schema(obj: Any) -> bool:
    """Check whether obj is a dataclass type or instance."""
    return dataclasses.is_dataclass(obj)


def unwrap_optional(tp: Any) -> tuple[Any, bool]:
    """Strip ``None`` from an Optional annotation.

    Returns the inner type (or the remaining Union) and whether None was allowed.
    """
    origin = typing.get_origin(tp)
    if origin is typing.Union or origin is types.UnionType:
        args = [a for a in typing.get_args(tp) if a is not type(None)]
        optional = len(args) != len(typing.get_args(tp))
        if len(args) == 1:
            return args[0], optional
        if optional:
            return typing.Union[tuple(args)], True
    return tp, False


def nested_schema(tp: Any) -> type | None:
    """Return the dataclass type a field recurses into, if any."""
    inner, _ = unwrap_optional(tp)
    if isinstance(inner, type) and dataclasses.is_dataclass(inner):
        return inner
    return None


def _is_supported_leaf(tp: Any) -> bool:
    if tp is Any:
        return True
    origin = typing.get_origin(tp)
    args = typing.get_args(tp)
    if origin is None and isinstance(tp, type):
        if issubclass(tp, SCALAR_TYPES) or issubclass(tp, (enum.Enum, PurePath)):
            return True
        if tp in SEQUENCE_ORIGINS or tp in (dict, Mapping):
            return True
        return False

    if origin is typing.Literal:
        return True
    if origin is typing.Union or origin is types.UnionType:
        return all(a is type(None) or _is_supported_leaf(a) or nested_schema(a) for a in args)
    if origin in SEQUENCE_ORIGINS:
        return all(a is Ellipsis or _is_supported_leaf(a) or nested_schema(a) for a in args)
    if origin in MAPPING_ORIGINS:
        return all(_is_supported_leaf(a) or nested_schema(a) for a in args)
    return False


def _schema_type(schema: Any) -> type:
    if isinstance(schema, type):
        cls = schema
    else:
        cls = type(schema)
    if not dataclasses.is_dataclass(cls):
        raise SchemaDecodeError(
            f"Cannot decompose {cls.__name__}: schema must be a dataclass",
            type_=cls,
        )
    return cls


def _type_hints(cls: type) -> dict[str, Any]:
    try:
        return typing.get_type_hints(cls)
    except Exception as e:
        raise SchemaDecodeError(
            f"Cannot resolve annotations of {cls.__name__}: {e}",
            type_=cls,
        ) from e


def segment_name(field: dataclasses.Field) -> str | None:
    """Path segment for a dataclass field, or None if the field is skipped."""
    key = field.metadata.get(KEY_METADATA, field.name)
    if key == SKIP_KEY:
        return None
    return str(key).lower()


def iter_fields(schema: Any, prefix: str = "", _seen: tuple[type, ...] = ()) -> Iterator[SchemaField]:
    """
    Yield every field of a schema, depth first.

    Nested dataclass fields are yielded (with ``nested=True``) before their
    own children so callers can instantiate containers first.

    Args:
        schema: Dataclass type or instance
        prefix: Key path of the enclosing field

    Raises:
        SchemaDecodeError: If the schema or one of its fields cannot be decomposed
    """
    cls = _schema_type(schema)
    if cls in _seen:
        raise SchemaDecodeError(f"Recursive schema detected at '{prefix}'", field=prefix, type_=cls)
    hints = _type_hints(cls)

    for f in dataclasses.fields(cls):
        segment = segment_name(f)
        if segment is None:
            continue
        path = f"{prefix}.{segment}" if prefix else segment
        tp = hints.get(f.name, Any)
        child = nested_schema(tp)

        if child is not None:
            yield SchemaField(path, f.name, tp, f.default, f.default_factory, nested=True)
            yield from iter_fields(child, path, _seen + (cls,))
            continue

        if not _is_supported_leaf(tp):
            raise SchemaDecodeError(
                f"Field '{path}' has unsupported type {tp!r}",
                field=path,
                type_=tp,
            )
        yield SchemaField(path, f.name, tp, f.default, f.default_factory)


def flatten_keys(schema: Any) -> list[str]:
    """
    Derive the key paths of every leaf field in a schema.

    Mappings and sequences are opaque leaves at the path of their field.

    Args:
        schema: Dataclass type or instance

    Returns:
        Sorted, de-duplicated list of dot-delimited key paths
    """
    return sorted({f.path for f in iter_fields(schema) if not f.nested})


def zero_value(tp: Any) -> Any:
    """Zero value for an annotation, used to decide whether a default applies."""
    inner, optional = unwrap_optional(tp)
    if optional:
        return None
    origin = typing.get_origin(inner)
    if origin is None and isinstance(inner, type):
        if issubclass(inner, bool):
            return False
        if issubclass(inner, (int, float, str, bytes)):
            return inner()
        if inner in SEQUENCE_ORIGINS or inner is dict:
            return inner()
        if issubclass(inner, datetime.timedelta):
            return datetime.timedelta(0)
    if origin in SEQUENCE_ORIGINS:
        return origin()
    if origin in MAPPING_ORIGINS:
        return {}
    return None


def is_zero(value: Any, tp: Any) -> bool:
    """Check whether value is the zero value of its annotation."""
    if value is None:
        return True
    if isinstance(value, (Path, enum.Enum)):
        return False
    zero = zero_value(tp)
    if zero is None:
        return False
    return type(value) is type(zero) and value == zero
