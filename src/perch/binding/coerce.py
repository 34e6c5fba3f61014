"""String-to-value coercion for path, query, header and form values.

``assign`` writes one field from the ordered list of raw strings its key
produced. Resolution order:

1. ``ParamsUnmarshaler`` — the whole list
2. ``ParamUnmarshaler`` — the first value
3. built-in coercion — the first value, or every value for list leaves

Built-in scalars: sized ``int``, ``float``, ``bool``, ``str``,
``datetime`` (RFC 3339 unless a layout is configured) and ``date``
(ISO 8601). An empty string coerces to the zero value of numeric and
boolean leaves.
"""

from __future__ import annotations

import math
import re
import struct
from datetime import date, datetime
from typing import Any

from perch.binding.capabilities import Capability
from perch.binding.shape import FieldSpec, Kind, TypeInfo
from perch.errors import BindConfigurationError, FieldCoercionError
from perch.types import FLOAT64_BITS, INT64_BITS

_SIGNED = re.compile(r"[+-]?[0-9]+")
_UNSIGNED = re.compile(r"[0-9]+")

_TRUE = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE = frozenset({"0", "f", "F", "FALSE", "false", "False"})

_RFC3339 = ("%Y-%m-%dT%H:%M:%S%z", "%Y-%m-%dT%H:%M:%S.%f%z")
# Fractions finer than microseconds are truncated.
_SUBMICRO = re.compile(r"(\.[0-9]{6})[0-9]+")


def parse_int(raw: str, info: TypeInfo) -> int:
    bits = info.bits or INT64_BITS
    value = raw or "0"
    pattern = _SIGNED if bits.signed else _UNSIGNED
    if not pattern.fullmatch(value):
        msg = f'parsing "{raw}": invalid syntax'
        raise ValueError(msg)
    number = int(value)
    low, high = bits.bounds
    if not low <= number <= high:
        msg = f'parsing "{raw}": value out of range'
        raise ValueError(msg)
    return number


def parse_float(raw: str, info: TypeInfo) -> float:
    bits = info.bits or FLOAT64_BITS
    value = raw or "0"
    if value != value.strip() or "_" in value:
        msg = f'parsing "{raw}": invalid syntax'
        raise ValueError(msg)
    try:
        number = float(value)
    except ValueError:
        msg = f'parsing "{raw}": invalid syntax'
        raise ValueError(msg) from None
    if math.isinf(number) and "inf" not in value.lower():
        msg = f'parsing "{raw}": value out of range'
        raise ValueError(msg)
    if bits.size == 32 and math.isfinite(number):
        try:
            (number,) = struct.unpack("f", struct.pack("f", number))
        except OverflowError:
            msg = f'parsing "{raw}": value out of range'
            raise ValueError(msg) from None
    return number


def parse_bool(raw: str) -> bool:
    if raw == "" or raw in _FALSE:
        return False
    if raw in _TRUE:
        return True
    msg = f'parsing "{raw}": invalid syntax'
    raise ValueError(msg)


def parse_datetime(raw: str, layout: str | None = None) -> datetime:
    if layout:
        text, layouts = raw, (layout,)
    else:
        text, layouts = _SUBMICRO.sub(r"\1", raw, count=1), _RFC3339
    for candidate in layouts:
        try:
            return datetime.strptime(text, candidate)
        except ValueError:
            continue
    expected = layout or "RFC 3339"
    msg = f'parsing time "{raw}" as {expected}: cannot parse'
    raise ValueError(msg)


def parse_date(raw: str) -> date:
    try:
        return date.fromisoformat(raw)
    except ValueError:
        msg = f'parsing date "{raw}" as YYYY-MM-DD: cannot parse'
        raise ValueError(msg) from None


def parse_scalar(raw: str, info: TypeInfo, layout: str | None = None) -> Any:
    """Convert one raw string to the scalar type described by *info*.

    Raises:
        ValueError: If *raw* is not a valid literal for the type.
    """
    base = info.base
    if base is str:
        return raw
    if base is bool:
        return parse_bool(raw)
    if base is int:
        return parse_int(raw, info)
    if base is float:
        return parse_float(raw, info)
    if base is datetime:
        return parse_datetime(raw, layout)
    if base is date:
        return parse_date(raw)
    return raw


def unmarshal(current: Any, info: TypeInfo, values: list[str]) -> Any:
    """Run the capability hook of *info* on *current* (or a new instance)."""
    instance = current if isinstance(current, info.base) else info.base()
    if info.capability is Capability.MULTI:
        instance.unmarshal_params(list(values))
    else:
        instance.unmarshal_param(values[0])
    return instance


def coerce_value(field: str, raw: str, info: TypeInfo, layout: str | None = None) -> Any:
    """Coerce one raw string for a single (non-list) position.

    Used for plain leaves and for each element of a list leaf, where a
    capability type only ever sees its own value.
    """
    try:
        match info.kind:
            case Kind.SCALAR:
                return parse_scalar(raw, info, layout)
            case Kind.ANY:
                return raw
            case Kind.CUSTOM if _has_single(info):
                instance = info.base()
                try:
                    instance.unmarshal_param(raw)
                except ValueError as exc:
                    raise _hook_error(field, raw, exc) from exc
                return instance
    except ValueError as exc:
        raise FieldCoercionError(field, raw, str(exc)) from exc
    raise _unsupported(field, info)


def assign(target: Any, spec: FieldSpec, values: list[str], time_format: str | None = None) -> None:
    """Write *values* into ``target.<spec.name>`` according to its type."""
    info = spec.info
    layout = spec.tags.format or time_format
    current = getattr(target, spec.name, None)

    if info.kind is Kind.CUSTOM:
        try:
            value = unmarshal(current, info, values)
        except ValueError as exc:
            raw = ",".join(values) if info.capability is Capability.MULTI else values[0]
            raise _hook_error(spec.name, raw, exc) from exc
        setattr(target, spec.name, value)
        return

    if info.kind is Kind.LIST:
        item = info.item
        if item is None or item.kind not in (Kind.SCALAR, Kind.ANY, Kind.CUSTOM):
            raise _unsupported(spec.name, info)
        items = [coerce_value(spec.name, raw, item, layout) for raw in values]
        if info.optional and isinstance(current, list):
            # Existing list keeps its identity; contents are replaced.
            current[:] = items
            return
        setattr(target, spec.name, items if info.base is list else info.base(items))
        return

    if info.kind in (Kind.SCALAR, Kind.ANY):
        setattr(target, spec.name, coerce_value(spec.name, values[0], info, layout))
        return

    raise _unsupported(spec.name, info)


def _has_single(info: TypeInfo) -> bool:
    return hasattr(info.base, "unmarshal_param")


def _hook_error(field: str, raw: str, exc: ValueError) -> FieldCoercionError:
    return FieldCoercionError(field, raw, f'{field}: parsing "{raw}": {exc}')


def _unsupported(field: str, info: TypeInfo) -> BindConfigurationError:
    return BindConfigurationError(f"unsupported type {info.name} for field {field!r}")
