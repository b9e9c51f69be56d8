"""
Tests for decoding merged values into schemas.
"""

import datetime
import enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, Optional

import pytest

from strata.config.decode import CoercionError, coerce, decode_into, parse_duration
from strata.exceptions import DecodeError


class Level(enum.Enum):
    LOW = "low"
    HIGH = "high"


@dataclass
class Endpoint:
    host: str = ""
    port: int = 0


@dataclass
class Service:
    name: str = ""
    replicas: int = 1
    ratio: float = 0.5
    enabled: bool = False
    level: Level = Level.LOW
    timeout: datetime.timedelta = datetime.timedelta(seconds=30)
    data_dir: Path = Path("data")
    hosts: list[str] = field(default_factory=list)
    limits: dict[str, int] = field(default_factory=dict)
    endpoint: Endpoint = field(default_factory=Endpoint)
    backup: Optional[Endpoint] = None
    mode: Literal["dev", "prod"] = "dev"


class TestCoerceScalars:
    """Weakly typed scalar coercion."""

    @pytest.mark.parametrize(
        "value, expected",
        [("42", 42), (" 7 ", 7), ("0x10", 16), ("1_000", 1000), ("3.0", 3), (5.0, 5), (True, 1)],
    )
    def test_int(self, value, expected):
        assert coerce(value, int) == expected

    @pytest.mark.parametrize("value", ["abc", "3.5", 2.5, [1]])
    def test_int_rejects(self, value):
        with pytest.raises(CoercionError):
            coerce(value, int)

    @pytest.mark.parametrize(
        "value, expected",
        [("true", True), ("YES", True), ("1", True), ("on", True), ("false", False), ("0", False), ("", False), (2, True)],
    )
    def test_bool(self, value, expected):
        assert coerce(value, bool) is expected

    def test_bool_rejects(self):
        with pytest.raises(CoercionError):
            coerce("maybe", bool)

    def test_float(self):
        assert coerce("1.5", float) == 1.5
        assert coerce(2, float) == 2.0

    def test_str(self):
        assert coerce(8080, str) == "8080"
        assert coerce(True, str) == "true"

    def test_str_rejects_mapping(self):
        with pytest.raises(CoercionError):
            coerce({"a": 1}, str)

    def test_path(self):
        assert coerce("/tmp/x", Path) == Path("/tmp/x")

    def test_bytes(self):
        assert coerce("abc", bytes) == b"abc"

    def test_enum_by_value_and_name(self):
        assert coerce("high", Level) is Level.HIGH
        assert coerce("LOW", Level) is Level.LOW

    def test_enum_rejects(self):
        with pytest.raises(CoercionError, match="choices"):
            coerce("medium", Level)

    def test_literal(self):
        assert coerce("prod", Literal["dev", "prod"]) == "prod"
        with pytest.raises(CoercionError):
            coerce("staging", Literal["dev", "prod"])

    def test_optional(self):
        assert coerce(None, Optional[int]) is None
        assert coerce("null", Optional[int]) is None
        assert coerce("3", Optional[int]) == 3

    def test_none_for_required_type(self):
        with pytest.raises(CoercionError):
            coerce(None, int)

    def test_union_first_match(self):
        assert coerce("5", int | str) == 5
        assert coerce("five", int | str) == "five"


class TestCoerceContainers:
    """Sequences and mappings."""

    def test_comma_separated_list(self):
        assert coerce("a, b,c", list[str]) == ["a", "b", "c"]

    def test_empty_string_list(self):
        assert coerce("", list[str]) == []

    def test_list_elements_coerced(self):
        assert coerce(["1", 2], list[int]) == [1, 2]

    def test_tuple_and_set(self):
        assert coerce("1,2", tuple[int, ...]) == (1, 2)
        assert coerce("1,2", tuple[int, str]) == (1, "2")
        assert coerce(["a", "a"], set[str]) == {"a"}

    def test_fixed_tuple_length(self):
        with pytest.raises(CoercionError):
            coerce("1,2,3", tuple[int, int])

    def test_mapping(self):
        assert coerce({"a": "1"}, dict[str, int]) == {"a": 1}

    def test_mapping_from_json_string(self):
        assert coerce('{"a": 1}', dict[str, int]) == {"a": 1}

    def test_mapping_rejects_bad_json(self):
        with pytest.raises(CoercionError, match="JSON"):
            coerce("a=1", dict[str, int])

    def test_list_of_schemas(self):
        assert coerce([{"host": "a", "port": "1"}], list[Endpoint]) == [Endpoint("a", 1)]


class TestDurations:
    """Duration parsing."""

    @pytest.mark.parametrize(
        "value, seconds",
        [(10, 10), ("10", 10), ("1h30m", 5400), ("250ms", 0.25), ("2m5s", 125), ("-1s", -1), ("1d", 86400)],
    )
    def test_parse(self, value, seconds):
        assert parse_duration(value) == datetime.timedelta(seconds=seconds)

    def test_rejects(self):
        with pytest.raises(CoercionError):
            parse_duration("soon")


class TestDecodeInto:
    """Writing values into instances."""

    def test_writes_only_given_keys(self):
        svc = Service(name="keep")
        decode_into(svc, {"replicas": "3", "endpoint.port": "443"})
        assert svc.name == "keep"
        assert svc.replicas == 3
        assert svc.endpoint.port == 443
        assert svc.backup is None

    def test_all_field_types(self):
        svc = Service()
        decode_into(
            svc,
            {
                "enabled": "true",
                "ratio": "0.9",
                "level": "high",
                "timeout": "1m",
                "data_dir": "/var/lib/svc",
                "hosts": "a,b",
                "limits": {"cpu": "2"},
                "mode": "prod",
            },
        )
        assert svc.enabled is True
        assert svc.ratio == 0.9
        assert svc.level is Level.HIGH
        assert svc.timeout == datetime.timedelta(minutes=1)
        assert svc.data_dir == Path("/var/lib/svc")
        assert svc.hosts == ["a", "b"]
        assert svc.limits == {"cpu": 2}
        assert svc.mode == "prod"

    def test_optional_schema_instantiated(self):
        svc = Service()
        decode_into(svc, {"backup.host": "standby"})
        assert svc.backup == Endpoint(host="standby")

    def test_collects_all_errors(self):
        svc = Service()
        with pytest.raises(DecodeError) as exc_info:
            decode_into(svc, {"replicas": "many", "ratio": "half", "name": "ok"})
        assert set(exc_info.value.errors) == {"replicas", "ratio"}
        assert exc_info.value.details["errors"]["replicas"].startswith("cannot parse")
        assert svc.name == "ok"
