"""Tests for perch.binding.coerce — string to typed value conversion."""

from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta, timezone
from typing import Any

import pytest

from perch.binding.coerce import assign, parse_bool, parse_datetime, parse_float, parse_int
from perch.binding.shape import analyze, describe
from perch.binding.tags import field
from perch.errors import BindConfigurationError, FieldCoercionError
from perch.types import Float32, Int8, Int16, UInt, UInt8


class Stamp:
    def __init__(self) -> None:
        self.value: datetime | None = None

    def unmarshal_param(self, value: str) -> None:
        self.value = datetime.fromisoformat(value)


class Last:
    def __init__(self) -> None:
        self.value = ""

    def unmarshal_params(self, values: list[str]) -> None:
        self.value = values[-1]


class Both:
    def __init__(self) -> None:
        self.seen: list[str] = []

    def unmarshal_param(self, value: str) -> None:
        self.seen = ["single"]

    def unmarshal_params(self, values: list[str]) -> None:
        self.seen = list(values)


@dataclass
class Leaves:
    count: int = 0
    small: Int8 = 0
    maybe: Int16 | None = None
    ratio: float = 0.0
    flag: bool = False
    name: str = ""
    anything: Any = None
    when: datetime | None = None
    day: date | None = None
    custom_day: datetime | None = field(None, format="%d/%m/%Y")
    numbers: list[int] = field(default_factory=list)
    shared: list[UInt8] | None = None
    stamp: Stamp | None = None
    stamps: list[Stamp] = field(default_factory=list)
    last: Last = field(default_factory=Last)
    both: Both = field(default_factory=Both)
    pairs: list[list[str]] = field(default_factory=list)


def _assign(target: Leaves, name: str, *values: str, time_format: str | None = None) -> None:
    (spec,) = [s for s in describe(Leaves) if s.name == name]
    assign(target, spec, list(values), time_format)


class TestParseInt:
    def test_plain(self) -> None:
        assert parse_int("42", analyze(int)) == 42
        assert parse_int("-7", analyze(int)) == -7
        assert parse_int("+7", analyze(int)) == 7

    def test_empty_is_zero(self) -> None:
        assert parse_int("", analyze(int)) == 0

    def test_invalid_syntax(self) -> None:
        with pytest.raises(ValueError, match='parsing "nope": invalid syntax'):
            parse_int("nope", analyze(int))

    def test_rejects_python_literal_forms(self) -> None:
        for raw in ("1_000", " 1", "0x10", "1.0"):
            with pytest.raises(ValueError, match="invalid syntax"):
                parse_int(raw, analyze(int))

    def test_range_checked(self) -> None:
        assert parse_int("127", analyze(Int8)) == 127
        with pytest.raises(ValueError, match='parsing "128": value out of range'):
            parse_int("128", analyze(Int8))

    def test_unsigned_rejects_sign(self) -> None:
        with pytest.raises(ValueError, match="invalid syntax"):
            parse_int("-1", analyze(UInt))
        with pytest.raises(ValueError, match="invalid syntax"):
            parse_int("+1", analyze(UInt))

    def test_uint64_max(self) -> None:
        assert parse_int("18446744073709551615", analyze(UInt)) == 2**64 - 1


class TestParseFloat:
    def test_plain(self) -> None:
        assert parse_float("64.5", analyze(float)) == 64.5

    def test_empty_is_zero(self) -> None:
        assert parse_float("", analyze(float)) == 0.0

    def test_invalid(self) -> None:
        with pytest.raises(ValueError, match="invalid syntax"):
            parse_float("abc", analyze(float))

    def test_overflow(self) -> None:
        with pytest.raises(ValueError, match="out of range"):
            parse_float("1e400", analyze(float))

    def test_float32_rounding(self) -> None:
        assert parse_float("0.1", analyze(Float32)) != 0.1
        assert parse_float("32.5", analyze(Float32)) == 32.5

    def test_float32_overflow(self) -> None:
        with pytest.raises(ValueError, match="out of range"):
            parse_float("1e39", analyze(Float32))


class TestParseBool:
    @pytest.mark.parametrize("raw", ["1", "t", "T", "TRUE", "true", "True"])
    def test_true(self, raw: str) -> None:
        assert parse_bool(raw) is True

    @pytest.mark.parametrize("raw", ["", "0", "f", "F", "FALSE", "false", "False"])
    def test_false(self, raw: str) -> None:
        assert parse_bool(raw) is False

    @pytest.mark.parametrize("raw", ["yes", "on", "tRUE"])
    def test_invalid(self, raw: str) -> None:
        with pytest.raises(ValueError, match="invalid syntax"):
            parse_bool(raw)


class TestParseDatetime:
    def test_rfc3339_utc(self) -> None:
        assert parse_datetime("2016-12-06T19:09:05Z") == datetime(2016, 12, 6, 19, 9, 5, tzinfo=UTC)

    def test_rfc3339_offset(self) -> None:
        value = parse_datetime("2016-12-06T19:09:05+01:00")
        assert value.utcoffset() == timedelta(hours=1)

    def test_fractional_seconds(self) -> None:
        assert parse_datetime("2016-12-06T19:09:05.25Z").microsecond == 250000

    def test_nanosecond_fraction_truncated(self) -> None:
        value = parse_datetime("2016-12-06T19:09:05.123456789Z")
        assert value == datetime(2016, 12, 6, 19, 9, 5, 123456, tzinfo=UTC)

    def test_custom_layout(self) -> None:
        assert parse_datetime("06/12/2016", "%d/%m/%Y") == datetime(2016, 12, 6)

    def test_invalid(self) -> None:
        with pytest.raises(ValueError, match="cannot parse"):
            parse_datetime("yesterday")


class TestAssignScalars:
    def test_int(self) -> None:
        target = Leaves()
        _assign(target, "count", "5", "6")
        assert target.count == 5

    def test_optional_allocated(self) -> None:
        target = Leaves()
        _assign(target, "maybe", "16")
        assert target.maybe == 16

    def test_failed_coercion_leaves_optional_unset(self) -> None:
        target = Leaves()
        with pytest.raises(FieldCoercionError) as exc_info:
            _assign(target, "maybe", "x")
        assert target.maybe is None
        assert exc_info.value.field == "maybe"
        assert exc_info.value.value == "x"
        assert exc_info.value.detail == 'parsing "x": invalid syntax'

    def test_error_chains_cause(self) -> None:
        with pytest.raises(FieldCoercionError) as exc_info:
            _assign(Leaves(), "small", "300")
        assert isinstance(exc_info.value.__cause__, ValueError)

    def test_bool_float_str_any(self) -> None:
        target = Leaves()
        _assign(target, "flag", "true")
        _assign(target, "ratio", "2.5")
        _assign(target, "name", "Jon Snow")
        _assign(target, "anything", "raw")
        assert (target.flag, target.ratio, target.name, target.anything) == (True, 2.5, "Jon Snow", "raw")

    def test_date(self) -> None:
        target = Leaves()
        _assign(target, "day", "2016-12-06")
        assert target.day == date(2016, 12, 6)

    def test_configured_time_format(self) -> None:
        target = Leaves()
        _assign(target, "when", "2016/12/06", time_format="%Y/%m/%d")
        assert target.when == datetime(2016, 12, 6)

    def test_field_format_wins(self) -> None:
        target = Leaves()
        _assign(target, "custom_day", "06/12/2016", time_format="%Y/%m/%d")
        assert target.custom_day == datetime(2016, 12, 6)

    def test_datetime_keeps_offset(self) -> None:
        target = Leaves()
        _assign(target, "when", "2016-12-06T19:09:05+01:00")
        assert target.when.tzinfo == timezone(timedelta(hours=1))


class TestAssignSequences:
    def test_every_value(self) -> None:
        target = Leaves(numbers=[111])
        _assign(target, "numbers", "1", "2")
        assert target.numbers == [1, 2]

    def test_optional_list_updated_in_place(self) -> None:
        existing = [111]
        target = Leaves(shared=existing)
        _assign(target, "shared", "1", "2")
        assert target.shared is existing
        assert existing == [1, 2]

    def test_optional_list_allocated(self) -> None:
        target = Leaves()
        _assign(target, "shared", "3")
        assert target.shared == [3]

    def test_element_error_names_field(self) -> None:
        with pytest.raises(FieldCoercionError, match="out of range"):
            _assign(Leaves(), "shared", "1", "256")

    def test_capability_elements(self) -> None:
        target = Leaves()
        _assign(target, "stamps", "2016-12-06T19:09:05+00:00", "2017-01-01T00:00:00+00:00")
        assert [s.value.year for s in target.stamps] == [2016, 2017]

    def test_nested_lists_unsupported(self) -> None:
        with pytest.raises(BindConfigurationError, match="unsupported type"):
            _assign(Leaves(), "pairs", "a")


class TestAssignCapabilities:
    def test_single_takes_first(self) -> None:
        target = Leaves()
        _assign(target, "stamp", "2016-12-06T19:09:05+00:00", "2020-01-01T00:00:00+00:00")
        assert target.stamp.value.year == 2016

    def test_multi_takes_all(self) -> None:
        target = Leaves()
        _assign(target, "last", "a", "b")
        assert target.last.value == "b"

    def test_multi_preferred(self) -> None:
        target = Leaves()
        _assign(target, "both", "a", "b")
        assert target.both.seen == ["a", "b"]

    def test_existing_instance_reused(self) -> None:
        existing = Last()
        target = Leaves(last=existing)
        _assign(target, "last", "z")
        assert target.last is existing

    def test_hook_failure(self) -> None:
        with pytest.raises(FieldCoercionError) as exc_info:
            _assign(Leaves(), "stamp", "xxxx")
        assert exc_info.value.field == "stamp"
        assert exc_info.value.value == "xxxx"
        assert exc_info.value.detail.startswith('stamp: parsing "xxxx": ')
