"""Destination shapes — what a dataclass looks like to the binder.

Annotations are analysed once per type and cached by type identity, so
binding the same dataclass on every request costs one dictionary lookup
per field rather than a fresh walk of ``typing`` internals.

The analysis reduces any annotation to a ``TypeInfo``:

- ``T | None`` becomes ``optional=True`` around ``T`` (the "pointer" leaf)
- ``Annotated[int, Bits(8)]`` keeps its width in ``bits``
- ``list[T]`` / ``dict[str, V]`` keep their element info in ``item``
- dataclasses, uploaded files, capability types and scalars get their
  own ``Kind``
"""

from __future__ import annotations

import dataclasses
import types
import typing
from collections.abc import Mapping, MutableMapping, MutableSequence, Sequence
from dataclasses import dataclass
from datetime import UTC, date, datetime
from enum import Enum
from functools import cache
from typing import Any

from perch.binding.capabilities import Capability, capability_of
from perch.binding.tags import FieldTags, Source, tags_of
from perch.errors import BindConfigurationError
from perch.http.forms import UploadFile
from perch.types import FLOAT64_BITS, INT64_BITS, Bits

SCALARS = (bool, int, float, str, datetime, date)


class Kind(Enum):
    SCALAR = "scalar"
    ANY = "any"
    LIST = "list"
    DICT = "dict"
    STRUCT = "struct"
    FILE = "file"
    CUSTOM = "custom"
    UNSUPPORTED = "unsupported"


@dataclass(frozen=True, slots=True)
class TypeInfo:
    """The binder's view of one annotation."""

    annotation: Any
    kind: Kind
    base: Any = None
    optional: bool = False
    item: TypeInfo | None = None
    bits: Bits | None = None
    capability: Capability | None = None

    @property
    def name(self) -> str:
        """Human-readable type name for error messages."""
        if self.bits is not None:
            if self.base is float:
                return f"float{self.bits.size}"
            return self.bits.type_name
        if self.kind is Kind.LIST and self.item is not None:
            return f"list[{self.item.name}]"
        if isinstance(self.base, type):
            return self.base.__name__
        return repr(self.annotation)


@dataclass(frozen=True, slots=True)
class FieldSpec:
    """One settable-or-not dataclass field with its tags and type info."""

    name: str
    info: TypeInfo
    tags: FieldTags
    settable: bool

    @property
    def embedded(self) -> bool:
        return self.tags.embedded

    def source_key(self, source: Source) -> str | None:
        return self.tags.source_key(source)


# -- Annotation analysis --


@cache
def analyze(annotation: Any) -> TypeInfo:
    """Reduce *annotation* to a cached ``TypeInfo``."""
    if annotation is Any or annotation is object:
        return TypeInfo(annotation, Kind.ANY, base=object)

    origin = typing.get_origin(annotation)

    if origin is typing.Annotated:
        inner = analyze(annotation.__origin__)
        bits = next((m for m in annotation.__metadata__ if isinstance(m, Bits)), None)
        return dataclasses.replace(inner, annotation=annotation, bits=bits or inner.bits)

    if origin is typing.Union or origin is types.UnionType:
        args = [a for a in typing.get_args(annotation) if a is not type(None)]
        if len(args) != 1:
            return TypeInfo(annotation, Kind.UNSUPPORTED)
        inner = analyze(args[0])
        return dataclasses.replace(inner, annotation=annotation, optional=True)

    if origin in (list, Sequence, MutableSequence):
        (item,) = typing.get_args(annotation) or (Any,)
        return TypeInfo(annotation, Kind.LIST, base=list, item=analyze(item))

    if origin in (dict, Mapping, MutableMapping):
        key, value = typing.get_args(annotation) or (str, Any)
        if key is not str:
            return TypeInfo(annotation, Kind.UNSUPPORTED)
        return TypeInfo(annotation, Kind.DICT, base=dict, item=analyze(value))

    if not isinstance(annotation, type):
        return TypeInfo(annotation, Kind.UNSUPPORTED)

    capability = capability_of(annotation)
    if capability is not None:
        return TypeInfo(annotation, Kind.CUSTOM, base=annotation, capability=capability)

    if annotation is UploadFile:
        return TypeInfo(annotation, Kind.FILE, base=UploadFile)

    if annotation in SCALARS:
        bits = INT64_BITS if annotation is int else FLOAT64_BITS if annotation is float else None
        return TypeInfo(annotation, Kind.SCALAR, base=annotation, bits=bits)

    if dataclasses.is_dataclass(annotation):
        return TypeInfo(annotation, Kind.STRUCT, base=annotation)

    if annotation is list:
        return TypeInfo(annotation, Kind.LIST, base=list, item=analyze(Any))

    if annotation is dict:
        return TypeInfo(annotation, Kind.DICT, base=dict, item=analyze(Any))

    # Named list subclasses such as ``class Tags(list[str])``
    if issubclass(annotation, list):
        for parent in types.get_original_bases(annotation):
            if typing.get_origin(parent) is list:
                (item,) = typing.get_args(parent)
                return TypeInfo(annotation, Kind.LIST, base=annotation, item=analyze(item))
        return TypeInfo(annotation, Kind.LIST, base=annotation, item=analyze(Any))

    return TypeInfo(annotation, Kind.UNSUPPORTED)


def sequence_item_type(target: list[Any], target_type: Any = None) -> TypeInfo:
    """Element info for a list destination.

    Taken from *target_type* (``list[T]``) when given, else from a
    ``list[T]`` base class of the destination's own type.
    """
    info = analyze(target_type if target_type is not None else type(target))
    if info.kind is Kind.LIST and info.item is not None:
        return info.item
    return analyze(Any)


def mapping_value_type(target: dict[str, Any], target_type: Any = None) -> TypeInfo:
    """Value info for a dict destination (``Any`` when unknown)."""
    if target_type is None:
        return analyze(Any)
    info = analyze(target_type)
    if info.kind is Kind.DICT and info.item is not None:
        return info.item
    return analyze(Any)


# -- Dataclass descriptors --


@cache
def describe(cls: type) -> tuple[FieldSpec, ...]:
    """Field specs of dataclass *cls*, in declaration order."""
    try:
        hints = typing.get_type_hints(cls, include_extras=True)
    except (NameError, TypeError) as exc:
        msg = f"cannot resolve field annotations of {cls.__qualname__}: {exc}"
        raise BindConfigurationError(msg) from exc

    specs: list[FieldSpec] = []
    for f in dataclasses.fields(cls):
        tags = tags_of(f)
        info = analyze(hints.get(f.name, Any))
        if tags.embedded and info.kind is not Kind.STRUCT:
            msg = f"embedded field {cls.__qualname__}.{f.name} must be a dataclass"
            raise BindConfigurationError(msg)
        specs.append(FieldSpec(f.name, info, tags, settable=not f.name.startswith("_")))
    return tuple(specs)


@cache
def declares_source(cls: type, source: Source) -> bool:
    """True if any own or promoted field of *cls* carries a key for *source*."""
    for spec in describe(cls):
        if not spec.settable:
            continue
        if spec.embedded:
            if declares_source(spec.info.base, source):
                return True
            continue
        if spec.source_key(source) is not None:
            return True
    return False


def ensure_mutable(cls: type) -> None:
    """Reject frozen dataclasses — binding mutates destinations in place."""
    params = getattr(cls, "__dataclass_params__", None)
    if params is not None and params.frozen:
        msg = f"cannot bind into frozen dataclass {cls.__qualname__}"
        raise BindConfigurationError(msg)


# -- Zero values --


def zero_value(info: TypeInfo) -> Any:
    """The value a fresh, never-bound leaf of *info* starts from."""
    if info.optional:
        return None
    match info.kind:
        case Kind.SCALAR:
            if info.base is datetime:
                return datetime.min.replace(tzinfo=UTC)
            if info.base is date:
                return date.min
            return info.base()
        case Kind.LIST | Kind.DICT | Kind.CUSTOM:
            return info.base()
        case Kind.STRUCT:
            return new_instance(info.base)
    return None


def new_instance(cls: type) -> Any:
    """Construct *cls* with zero values for every required init field."""
    kwargs: dict[str, Any] = {}
    specs = {spec.name: spec for spec in describe(cls)}
    for f in dataclasses.fields(cls):
        if not f.init:
            continue
        if f.default is not dataclasses.MISSING or f.default_factory is not dataclasses.MISSING:
            continue
        kwargs[f.name] = zero_value(specs[f.name].info)
    return cls(**kwargs)
