"""
Tests for schema flattening.
"""

import datetime
import enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal, Optional

import pytest

from strata.config.flatten import flatten_keys, is_zero, iter_fields, zero_value
from strata.exceptions import SchemaDecodeError


class Mode(enum.Enum):
    FAST = "fast"
    SAFE = "safe"


@dataclass
class Inner:
    port: int = 0
    hosts: list[str] = field(default_factory=list)


@dataclass
class Outer:
    name: str = ""
    inner: Inner = field(default_factory=Inner)
    labels: dict[str, str] = field(default_factory=dict)


@dataclass
class Empty:
    pass


class TestFlattenKeys:
    """Tests for flatten_keys."""

    def test_nested_paths(self):
        assert flatten_keys(Outer()) == ["inner.hosts", "inner.port", "labels", "name"]

    def test_type_and_instance_agree(self):
        assert flatten_keys(Outer) == flatten_keys(Outer())

    def test_independent_of_values(self):
        populated = Outer(name="x", inner=Inner(port=9, hosts=["a"]), labels={"k": "v"})
        assert flatten_keys(populated) == flatten_keys(Outer())

    def test_maps_and_lists_are_leaves(self):
        keys = flatten_keys(Outer(labels={"a": "b"}))
        assert "labels" in keys
        assert not any(k.startswith("labels.") for k in keys)

    def test_empty_schema(self):
        assert flatten_keys(Empty()) == []

    def test_optional_nested_schema(self):
        @dataclass
        class WithOptional:
            inner: Optional[Inner] = None

        assert flatten_keys(WithOptional()) == ["inner.hosts", "inner.port"]

    def test_key_metadata_renames(self):
        @dataclass
        class Renamed:
            listen_port: int = field(default=0, metadata={"key": "Port"})

        assert flatten_keys(Renamed) == ["port"]

    def test_skipped_field(self):
        @dataclass
        class Skipped:
            kept: int = 0
            runtime: Any = field(default=None, metadata={"key": "-"})

        assert flatten_keys(Skipped) == ["kept"]

    def test_supported_leaf_types(self):
        @dataclass
        class Leaves:
            a: str = ""
            b: int = 0
            c: float = 0.0
            d: bool = False
            e: Path = Path(".")
            f: Mode = Mode.FAST
            g: datetime.timedelta = datetime.timedelta(0)
            h: tuple[int, ...] = ()
            i: Literal["x", "y"] = "x"
            j: int | str = 0
            k: Any = None
            m: bytes = b""
            n: set[str] = field(default_factory=set)

        assert len(flatten_keys(Leaves)) == 13


class TestSchemaDecodeErrors:
    """Schemas that cannot be decomposed."""

    def test_not_a_dataclass(self):
        with pytest.raises(SchemaDecodeError, match="dataclass"):
            flatten_keys({"a": 1})

    def test_unsupported_field_type(self):
        class Opaque:
            pass

        @dataclass
        class Bad:
            thing: Opaque = field(default_factory=Opaque)

        with pytest.raises(SchemaDecodeError) as exc_info:
            flatten_keys(Bad)
        assert exc_info.value.field == "thing"

    def test_callable_field(self):
        from collections.abc import Callable

        @dataclass
        class Bad:
            hook: Callable[[], None] | None = None

        with pytest.raises(SchemaDecodeError):
            flatten_keys(Bad)

    def test_unresolvable_annotation(self):
        @dataclass
        class Bad:
            value: "DoesNotExist" = None  # type: ignore[name-defined]  # noqa: F821

        with pytest.raises(SchemaDecodeError, match="annotations"):
            flatten_keys(Bad)

    def test_recursive_schema(self):
        @dataclass
        class Node:
            name: str = ""
            child: Optional["Node"] = None

        # get_type_hints needs Node resolvable from the module namespace
        globals()["Node"] = Node
        try:
            with pytest.raises(SchemaDecodeError, match="Recursive"):
                flatten_keys(Node)
        finally:
            del globals()["Node"]


class TestIterFields:
    """Tests for iter_fields."""

    def test_nested_yielded_before_children(self):
        paths = [f.path for f in iter_fields(Outer)]
        assert paths.index("inner") < paths.index("inner.port")

    def test_defaults(self):
        fields = {f.path: f for f in iter_fields(Outer)}
        assert fields["name"].has_default
        assert fields["inner.port"].make_default() == 0
        assert fields["labels"].make_default() == {}
        assert fields["inner"].nested


class TestZeroValues:
    """Tests for zero value detection."""

    @pytest.mark.parametrize(
        "value, tp, expected",
        [
            (0, int, True),
            (1, int, False),
            ("", str, True),
            ("x", str, False),
            (False, bool, True),
            (True, bool, False),
            ([], list[str], True),
            (["a"], list[str], False),
            ({}, dict[str, int], True),
            (None, Optional[int], True),
            (0, Optional[int], False),
            (Mode.FAST, Mode, False),
            (Path("."), Path, False),
        ],
    )
    def test_is_zero(self, value, tp, expected):
        assert is_zero(value, tp) is expected

    def test_zero_value(self):
        assert zero_value(int) == 0
        assert zero_value(list[int]) == []
        assert zero_value(Optional[str]) is None
        assert zero_value(datetime.timedelta) == datetime.timedelta(0)
