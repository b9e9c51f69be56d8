"""
Decoding merged values into a schema instance.

Values coming from the environment are always strings and file values are
whatever the parser produced, so coercion is weakly typed: "8080" decodes
into an int field, "a,b" into a list field, "true" into a bool field.
"""

import datetime
import enum
import json
import re
import types
import typing
from collections.abc import Mapping
from pathlib import PurePath
from typing import Any

from strata.config.flatten import (
    MAPPING_ORIGINS,
    SEQUENCE_ORIGINS,
    iter_fields,
    nested_schema,
    unwrap_optional,
)
from strata.exceptions import DecodeError

TRUE_STRINGS = frozenset({"1", "t", "true", "yes", "y", "on"})
FALSE_STRINGS = frozenset({"", "0", "f", "false", "no", "n", "off"})

_DURATION_RE = re.compile(r"(\d+(?:\.\d+)?)(ns|us|µs|ms|s|m|h|d)")
_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1,
    "m": 60,
    "h": 3600,
    "d": 86400,
}


class CoercionError(ValueError):
    """A single value could not be coerced to its field type."""


def _type_name(tp: Any) -> str:
    return getattr(tp, "__name__", None) or repr(tp)


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in TRUE_STRINGS:
            return True
        if lowered in FALSE_STRINGS:
            return False
    raise CoercionError(f"cannot parse {value!r} as bool")


def _to_int(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if value.is_integer():
            return int(value)
        raise CoercionError(f"cannot convert non-integral {value!r} to int")
    if isinstance(value, str):
        try:
            return int(value.strip(), 0)
        except ValueError:
            pass
        try:
            as_float = float(value)
        except ValueError:
            raise CoercionError(f"cannot parse {value!r} as int") from None
        if as_float.is_integer():
            return int(as_float)
    raise CoercionError(f"cannot parse {value!r} as int")


def _to_float(value: Any) -> float:
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            pass
    raise CoercionError(f"cannot parse {value!r} as float")


def _to_str(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float, PurePath)):
        return str(value)
    if isinstance(value, bytes):
        return value.decode("utf-8")
    raise CoercionError(f"cannot convert {type(value).__name__} to str")


def parse_duration(value: Any) -> datetime.timedelta:
    """
    Parse a duration.

    Accepts a timedelta, a number of seconds, or a string such as
    ``"1h30m"``, ``"250ms"`` or ``"10"``.
    """
    if isinstance(value, datetime.timedelta):
        return value
    if isinstance(value, bool):
        raise CoercionError(f"cannot parse {value!r} as duration")
    if isinstance(value, (int, float)):
        return datetime.timedelta(seconds=value)
    if isinstance(value, str):
        text = value.strip().replace(" ", "")
        try:
            return datetime.timedelta(seconds=float(text))
        except ValueError:
            pass
        sign = -1 if text.startswith("-") else 1
        text = text.lstrip("+-")
        if text and _DURATION_RE.sub("", text) == "":
            seconds = sum(float(n) * _DURATION_UNITS[unit] for n, unit in _DURATION_RE.findall(text))
            return datetime.timedelta(seconds=sign * seconds)
    raise CoercionError(f"cannot parse {value!r} as duration")


def _split_list(value: str) -> list[str]:
    if not value.strip():
        return []
    return [part.strip() for part in value.split(",")]


def _to_enum(value: Any, tp: type[enum.Enum]) -> enum.Enum:
    if isinstance(value, tp):
        return value
    for member in tp:
        if member.value == value:
            return member
    if isinstance(value, str):
        for member in tp:
            if member.name.lower() == value.strip().lower() or str(member.value) == value:
                return member
    choices = ", ".join(str(m.value) for m in tp)
    raise CoercionError(f"{value!r} is not a valid {tp.__name__} (choices: {choices})")


def coerce(value: Any, tp: Any) -> Any:
    """
    Coerce a raw value to a field annotation.

    Raises:
        CoercionError: If the value cannot be represented as the annotated type
    """
    if tp is Any:
        return value

    inner, optional = unwrap_optional(tp)
    if value is None:
        if optional:
            return None
        raise CoercionError(f"null is not allowed for {_type_name(tp)}")
    if optional and isinstance(value, str) and value.strip().lower() in ("null", "none", "~"):
        return None
    tp = inner

    schema = nested_schema(tp)
    if schema is not None:
        if isinstance(value, schema):
            return value
        if isinstance(value, Mapping):
            try:
                instance = schema()
                decode_into(instance, _flatten_mapping(value))
            except TypeError as e:
                raise CoercionError(f"cannot instantiate {schema.__name__}: {e}") from e
            except DecodeError as e:
                raise CoercionError("; ".join(f"{k}: {v}" for k, v in e.errors.items())) from e
            return instance
        raise CoercionError(f"cannot decode {type(value).__name__} into {schema.__name__}")

    origin = typing.get_origin(tp)
    args = typing.get_args(tp)

    if origin is typing.Literal:
        for literal in args:
            try:
                if coerce(value, type(literal)) == literal:
                    return literal
            except CoercionError:
                continue
        raise CoercionError(f"{value!r} is not one of {list(args)!r}")

    if origin is typing.Union or origin is types.UnionType:
        errors = []
        for member in args:
            try:
                return coerce(value, member)
            except CoercionError as e:
                errors.append(str(e))
        raise CoercionError("; ".join(errors))

    if origin in SEQUENCE_ORIGINS or tp in SEQUENCE_ORIGINS:
        container = origin or tp
        if isinstance(value, str):
            items: list[Any] = _split_list(value)
        elif isinstance(value, (list, tuple, set, frozenset)):
            items = list(value)
        else:
            raise CoercionError(f"cannot convert {type(value).__name__} to {container.__name__}")
        if container is tuple and args and args[-1] is not Ellipsis:
            if len(args) != len(items):
                raise CoercionError(f"expected {len(args)} items, got {len(items)}")
            return tuple(coerce(item, arg) for item, arg in zip(items, args))
        item_type = args[0] if args else Any
        return container(coerce(item, item_type) for item in items)

    if origin in MAPPING_ORIGINS or tp in MAPPING_ORIGINS:
        if isinstance(value, str):
            try:
                value = json.loads(value) if value.strip() else {}
            except json.JSONDecodeError as e:
                raise CoercionError(f"cannot parse string as JSON object: {e.msg}") from e
        if not isinstance(value, Mapping):
            raise CoercionError(f"cannot convert {type(value).__name__} to mapping")
        key_type, value_type = args if len(args) == 2 else (Any, Any)
        return {coerce(k, key_type): coerce(v, value_type) for k, v in value.items()}

    if not isinstance(tp, type):
        raise CoercionError(f"unsupported type {tp!r}")
    if issubclass(tp, enum.Enum):
        return _to_enum(value, tp)
    if issubclass(tp, bool):
        return _to_bool(value)
    if issubclass(tp, int):
        return _to_int(value)
    if issubclass(tp, float):
        return _to_float(value)
    if issubclass(tp, str):
        return _to_str(value)
    if issubclass(tp, bytes):
        if isinstance(value, bytes):
            return value
        return _to_str(value).encode("utf-8")
    if issubclass(tp, PurePath):
        if isinstance(value, (str, PurePath)):
            return tp(value)
        raise CoercionError(f"cannot convert {type(value).__name__} to path")
    if issubclass(tp, datetime.timedelta):
        return parse_duration(value)
    if isinstance(value, tp):
        return value
    raise CoercionError(f"cannot convert {type(value).__name__} to {tp.__name__}")


def _flatten_mapping(data: Mapping[str, Any], prefix: str = "") -> dict[str, Any]:
    """Flatten a nested mapping into dotted keys; used for dataclass-valued items."""
    flat: dict[str, Any] = {}
    for key, value in data.items():
        path = f"{prefix}.{key}".lower() if prefix else str(key).lower()
        flat[path] = value
        if isinstance(value, Mapping):
            flat.update(_flatten_mapping(value, path))
    return flat


def decode_into(target: Any, values: Mapping[str, Any]) -> None:
    """
    Write merged values into a dataclass instance.

    Only fields whose key path appears in values are written. Every failing
    key is collected and reported together.

    Raises:
        DecodeError: If one or more values cannot be coerced to their field type
    """
    errors: dict[str, str] = {}
    # key path of each nested schema -> the instance currently holding its fields
    nested: dict[str, Any] = {}

    for field in iter_fields(target):
        parent_path = field.path.rpartition(".")[0]
        if parent_path and parent_path not in nested:
            # Enclosing schema is None and nothing below it has a value
            continue
        owner = nested[parent_path] if parent_path else target

        if field.nested:
            current = getattr(owner, field.name)
            if current is None:
                prefix = field.path + "."
                has_values = any(k.startswith(prefix) for k in values)
                if has_values:
                    schema = nested_schema(field.type)
                    try:
                        current = schema()
                    except TypeError as e:
                        errors[field.path] = f"cannot instantiate {schema.__name__}: {e}"
                        continue
                    setattr(owner, field.name, current)
            if current is not None:
                nested[field.path] = current
            continue

        if field.path not in values:
            continue
        try:
            setattr(owner, field.name, coerce(values[field.path], field.type))
        except CoercionError as e:
            errors[field.path] = str(e)

    if errors:
        raise DecodeError(errors)

