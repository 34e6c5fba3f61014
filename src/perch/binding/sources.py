"""Binding one multi-valued string source onto a destination.

``bind_data`` is the workhorse behind path, query, header and form
binding. For each field of the destination it looks up the field's key
for the given source and hands the values to the coercer.

Key resolution per field:

- the field's tag for the source, else its shared ``name`` tag
- if no own or promoted field of the destination carries a key for the
  source at all, the field name itself (top-level pass only)
- lookup is exact first, then the first case-insensitive match

Embedded dataclasses are promoted onto their parent. Nested,
non-embedded dataclasses are searched for tagged fields only.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Mapping
from typing import Any, TypeVar

from perch.binding.coerce import assign
from perch.binding.shape import (
    FieldSpec,
    Kind,
    TypeInfo,
    declares_source,
    describe,
    ensure_mutable,
    mapping_value_type,
    new_instance,
)
from perch.binding.tags import Source
from perch.errors import BindConfigurationError
from perch.http.forms import UploadFile

logger = logging.getLogger("perch.binding")

Values = Mapping[str, list[str]]
Files = Mapping[str, list[UploadFile]]


def bind_data(
    target: Any,
    data: Values,
    source: Source,
    files: Files | None = None,
    *,
    target_type: Any = None,
    time_format: str | None = None,
) -> None:
    """Bind *data* (and, for forms, uploaded *files*) onto *target*.

    Args:
        target: A mutable dataclass instance or a ``dict``.
        data: Ordered ``key -> [values]`` mapping from one source.
        source: Which request source *data* came from.
        files: Uploaded parts by form field name.
        target_type: ``dict[str, V]`` annotation for dict targets.
        time_format: ``strptime`` layout for ``datetime`` leaves.

    Raises:
        FieldCoercionError: If a value cannot be converted.
        BindConfigurationError: If the destination cannot be populated.
    """
    if target is None or (not data and not files):
        return

    if isinstance(target, dict):
        _fill_mapping(target, mapping_value_type(target, target_type), data)
        return

    if not dataclasses.is_dataclass(target) or isinstance(target, type):
        if source is Source.FORM:
            msg = "binding element must be a dataclass"
            raise BindConfigurationError(msg)
        # Data for sequences and other shapes can only come from the body.
        logger.debug("skipping %s binding for %s destination", source, type(target).__name__)
        return

    cls = type(target)
    ensure_mutable(cls)
    binder = _StructBinder(data, files or {}, source, time_format)
    binder.bind(target, fallback=not declares_source(cls, source))


V = TypeVar("V")


def lookup(data: Mapping[str, V], key: str) -> V | None:
    """Exact key match first, then the first case-insensitive one."""
    if key in data:
        return data[key]
    folded = key.casefold()
    for candidate, value in data.items():
        if candidate.casefold() == folded:
            return value
    return None


def _fill_mapping(target: dict[str, Any] | None, info: TypeInfo, data: Values) -> dict[str, Any] | None:
    """Copy every key of *data* into a ``dict[str, V]``.

    ``V`` must be ``str``, ``Any`` or ``list[str]``; other value types
    are skipped silently since the source may hold unrelated keys.
    """
    if info.kind is Kind.ANY or (info.kind is Kind.SCALAR and info.base is str):
        pick = _first
    elif info.kind is Kind.LIST and info.item is not None and info.item.base is str:
        pick = list
    else:
        logger.debug("skipping map binding: unsupported value type %s", info.name)
        return None

    result = target if target is not None else {}
    for key, values in data.items():
        result[key] = pick(values)
    return result


def _first(values: list[str]) -> str:
    return values[0]


class _StructBinder:
    """Walks one dataclass tree for one source."""

    __slots__ = ("data", "files", "source", "time_format", "_walking")

    def __init__(self, data: Values, files: Files, source: Source, time_format: str | None) -> None:
        self.data = data
        self.files = files
        self.source = source
        self.time_format = time_format
        # Destinations on the path from the root to the current one.
        self._walking: list[Any] = []

    def bind(self, target: Any, *, fallback: bool) -> int:
        """Bind onto *target*; return how many fields were written."""
        self._walking.append(target)
        try:
            return self._bind_fields(target, fallback=fallback)
        finally:
            self._walking.pop()

    def _bind_fields(self, target: Any, *, fallback: bool) -> int:
        matched = 0
        for spec in describe(type(target)):
            if not spec.settable:
                continue

            key = spec.source_key(self.source)

            if spec.embedded:
                if key is not None:
                    msg = (
                        f"{self.source} tags are not allowed with embedded dataclass "
                        f"field {spec.name!r}"
                    )
                    raise BindConfigurationError(msg)
                matched += self._bind_nested(target, spec, fallback=fallback)
                continue

            if key is None:
                if spec.info.kind is Kind.STRUCT:
                    # Untagged nested dataclass: only its tagged fields are reachable.
                    matched += self._bind_nested(target, spec, fallback=False)
                    continue
                if not fallback or spec.info.kind is Kind.DICT:
                    continue
                key = spec.name

            if self._bind_leaf(target, spec, key):
                matched += 1
        return matched

    def _bind_nested(self, target: Any, spec: FieldSpec, *, fallback: bool) -> int:
        current = getattr(target, spec.name)
        if current is not None:
            if any(current is seen for seen in self._walking):
                return 0
            return self.bind(current, fallback=fallback)

        cls = spec.info.base
        if any(type(seen) is cls for seen in self._walking):
            # Self-referencing types are only followed through existing instances.
            logger.debug("skipping %s: %s is already being bound", spec.name, cls.__qualname__)
            return 0

        # Left unset unless something inside matches.
        candidate = new_instance(cls)
        matched = self.bind(candidate, fallback=fallback)
        if matched:
            setattr(target, spec.name, candidate)
        return matched

    def _bind_leaf(self, target: Any, spec: FieldSpec, key: str) -> bool:
        info = spec.info

        if _is_file_field(info):
            if not self.files:
                return False
            if info.kind is Kind.FILE and not info.optional:
                msg = (
                    f"binding to UploadFile field {spec.name!r} is not supported, "
                    "use UploadFile | None"
                )
                raise BindConfigurationError(msg)
            parts = lookup(self.files, key)
            if parts:
                setattr(target, spec.name, parts[0] if info.kind is Kind.FILE else list(parts))
                return True
            return False

        if info.kind is Kind.DICT:
            current = getattr(target, spec.name)
            filled = _fill_mapping(current, info.item, self.data)
            if filled is None:
                return False
            setattr(target, spec.name, filled)
            return True

        values = lookup(self.data, key)
        if not values:
            return False
        assign(target, spec, values, self.time_format)
        return True


def _is_file_field(info: TypeInfo) -> bool:
    if info.kind is Kind.FILE:
        return True
    return info.kind is Kind.LIST and info.item is not None and info.item.kind is Kind.FILE
