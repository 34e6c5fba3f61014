"""Body codecs — overlay a decoded JSON or XML document onto a destination.

Parsing is delegated to the standard library (``json``,
``xml.etree.ElementTree``); this module only walks the parsed document
against the destination's shape. Fields present in the document are
overwritten, everything else is left as the earlier binding steps put it.

JSON rules:

- keys match the ``json`` tag, else the field name (exact, then
  case-insensitive); ``json="-"`` excludes a field
- ``null`` clears ``T | None`` and ``Any`` fields, otherwise it is ignored
- nested dataclasses are overlaid in place, dicts merged, lists replaced

XML rules:

- child elements match the ``xml`` tag, else the field name (exact);
  ``xml="name,attr"`` reads an attribute instead
- repeated elements append to list fields
- a list destination appends the decoded root element
"""

from __future__ import annotations

import dataclasses
import json
import math
from collections.abc import Mapping
from functools import cache
from typing import Any
from xml.etree import ElementTree

from perch.binding.capabilities import Capability
from perch.binding.coerce import parse_scalar
from perch.binding.shape import (
    FieldSpec,
    Kind,
    TypeInfo,
    analyze,
    describe,
    ensure_mutable,
    new_instance,
    sequence_item_type,
)
from perch.binding.sources import lookup
from perch.errors import BindConfigurationError, MalformedBody, TypeMismatch

# Route from the destination through embedded fields to the target field.
Route = tuple[FieldSpec, ...]


# -- JSON --


def decode_json(
    target: Any,
    raw: bytes,
    *,
    target_type: Any = None,
    time_format: str | None = None,
) -> None:
    """Decode *raw* JSON and overlay it onto *target*.

    Raises:
        MalformedBody: If *raw* is not valid JSON.
        TypeMismatch: If a value does not fit its destination field.
    """
    try:
        document = json.loads(raw)
    except json.JSONDecodeError as exc:
        msg = f"Syntax error: line={exc.lineno}, column={exc.colno}, error={exc.msg}"
        raise MalformedBody(msg) from exc
    except UnicodeDecodeError as exc:
        raise MalformedBody(f"Syntax error: {exc}") from exc

    walker = _JSONWalker(time_format)
    if isinstance(target, list):
        item = sequence_item_type(target, target_type)
        if not isinstance(document, list):
            raise TypeMismatch("", f"list[{item.name}]", _json_kind(document))
        target[:] = [walker.convert(None, item, v, f"[{i}]") for i, v in enumerate(document)]
        return

    if isinstance(target, dict):
        info = analyze(target_type if target_type is not None else dict)
        walker.convert(target, info, document, "")
        return

    if not dataclasses.is_dataclass(target) or isinstance(target, type):
        msg = f"cannot decode JSON into {type(target).__name__}"
        raise BindConfigurationError(msg)

    ensure_mutable(type(target))
    if not isinstance(document, dict):
        raise TypeMismatch("", type(target).__name__, _json_kind(document))
    walker.overlay(target, document, "")


def _json_kind(value: Any) -> str:
    match value:
        case None:
            return "null"
        case bool():
            return "bool"
        case int() | float():
            return f"number {value}"
        case str():
            return "string"
        case list():
            return "array"
        case dict():
            return "object"
    return type(value).__name__


def _join(path: str, key: str) -> str:
    return f"{path}.{key}" if path else key


@cache
def _json_index(cls: type) -> dict[str, Route]:
    """JSON key -> route, with embedded fields promoted."""
    index: dict[str, Route] = {}
    for spec in describe(cls):
        tag = spec.tags.get("json")
        if not spec.settable or tag == "-":
            continue
        if spec.embedded and tag is None:
            for key, route in _json_index(spec.info.base).items():
                index.setdefault(key, (spec, *route))
            continue
        index[tag or spec.name] = (spec,)
    return index


def _resolve_holder(target: Any, route: Route) -> Any:
    """Follow embedded fields in *route*, allocating ``None`` ones."""
    holder = target
    for spec in route[:-1]:
        inner = getattr(holder, spec.name)
        if inner is None:
            inner = new_instance(spec.info.base)
            setattr(holder, spec.name, inner)
        holder = inner
    return holder


class _JSONWalker:
    __slots__ = ("time_format",)

    def __init__(self, time_format: str | None) -> None:
        self.time_format = time_format

    def overlay(self, target: Any, document: Mapping[str, Any], path: str) -> None:
        index = _json_index(type(target))
        for key, value in document.items():
            route = lookup(index, key)
            if route is None:
                continue
            holder = _resolve_holder(target, route)
            spec = route[-1]
            current = getattr(holder, spec.name)
            converted = self.convert(current, spec.info, value, _join(path, key), spec.tags.format)
            setattr(holder, spec.name, converted)

    def convert(
        self,
        current: Any,
        info: TypeInfo,
        value: Any,
        path: str,
        layout: str | None = None,
    ) -> Any:
        """Return the value to store for *value* given the field's *current* one."""
        if value is None:
            if info.optional or info.kind is Kind.ANY:
                return None
            return current

        match info.kind:
            case Kind.ANY:
                return value
            case Kind.SCALAR:
                return self._scalar(info, value, path, layout)
            case Kind.CUSTOM:
                return self._custom(current, info, value, path)
            case Kind.STRUCT:
                if not isinstance(value, dict):
                    raise TypeMismatch(path, info.name, _json_kind(value))
                target = current if isinstance(current, info.base) else new_instance(info.base)
                self.overlay(target, value, path)
                return target
            case Kind.LIST:
                if not isinstance(value, list):
                    raise TypeMismatch(path, info.name, _json_kind(value))
                items = [
                    self.convert(None, info.item, v, f"{path}[{i}]", layout)
                    for i, v in enumerate(value)
                ]
                if isinstance(current, list):
                    current[:] = items
                    return current
                return items if info.base is list else info.base(items)
            case Kind.DICT:
                if not isinstance(value, dict):
                    raise TypeMismatch(path, info.name, _json_kind(value))
                merged = current if isinstance(current, dict) else {}
                for key, item in value.items():
                    item_path = _join(path, key)
                    merged[key] = self.convert(merged.get(key), info.item, item, item_path, layout)
                return merged
        raise BindConfigurationError(f"unsupported type {info.name} for field {path!r}")

    def _scalar(self, info: TypeInfo, value: Any, path: str, layout: str | None) -> Any:
        base = info.base
        if base is bool:
            if isinstance(value, bool):
                return value
        elif base is int:
            if isinstance(value, int) and not isinstance(value, bool):
                low, high = info.bits.bounds
                if not low <= value <= high:
                    raise TypeMismatch(path, info.name, f"number {value}")
                return value
        elif base is float:
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                try:
                    number = float(value)
                    if math.isinf(number):
                        raise ValueError(f"value {value} out of range")
                    return parse_scalar(repr(number), info)
                except (ValueError, OverflowError) as exc:
                    raise TypeMismatch(path, info.name, f"number {value}") from exc
        elif base is str:
            if isinstance(value, str):
                return value
        elif isinstance(value, str):
            # datetime / date travel as strings
            try:
                return parse_scalar(value, info, layout or self.time_format)
            except ValueError as exc:
                detail = f"Unmarshal type error: expected={info.name}, field={path}, error={exc}"
                raise TypeMismatch(path, info.name, "string", detail) from exc
        raise TypeMismatch(path, info.name, _json_kind(value))

    def _custom(self, current: Any, info: TypeInfo, value: Any, path: str) -> Any:
        if isinstance(value, str):
            values = [value]
        elif isinstance(value, list) and all(isinstance(v, str) for v in value) and value:
            values = value
        else:
            raise TypeMismatch(path, info.name, _json_kind(value))

        instance = current if isinstance(current, info.base) else info.base()
        try:
            if info.capability is Capability.MULTI:
                instance.unmarshal_params(list(values))
            elif len(values) == 1:
                instance.unmarshal_param(values[0])
            else:
                raise TypeMismatch(path, info.name, "array")
        except ValueError as exc:
            detail = f"Unmarshal type error: expected={info.name}, field={path}, error={exc}"
            raise TypeMismatch(path, info.name, "string", detail) from exc
        return instance


# -- XML --


def decode_xml(
    target: Any,
    raw: bytes,
    *,
    target_type: Any = None,
    time_format: str | None = None,
) -> None:
    """Decode *raw* XML and overlay the root element onto *target*.

    Raises:
        MalformedBody: If *raw* is not well-formed XML.
        TypeMismatch: If element text does not fit its destination field.
    """
    try:
        root = ElementTree.fromstring(raw)
    except ElementTree.ParseError as exc:
        line, _ = exc.position
        msg = f"Syntax error: line={line}, error={exc}"
        raise MalformedBody(msg) from exc

    walker = _XMLWalker(time_format)
    if isinstance(target, list):
        item = sequence_item_type(target, target_type)
        target.append(walker.element(None, item, root, _local(root.tag)))
        return

    if not dataclasses.is_dataclass(target) or isinstance(target, type):
        msg = f"cannot decode XML into {type(target).__name__}"
        raise BindConfigurationError(msg)

    ensure_mutable(type(target))
    walker.overlay(target, root, "")


def _local(tag: str) -> str:
    """Element name without its ``{namespace}`` prefix."""
    return tag.rpartition("}")[2]


@cache
def _xml_index(cls: type) -> tuple[dict[str, Route], dict[str, Route]]:
    """(element name -> route, attribute name -> route), embedded promoted."""
    elements: dict[str, Route] = {}
    attributes: dict[str, Route] = {}
    for spec in describe(cls):
        tag = spec.tags.get("xml")
        if not spec.settable or tag == "-":
            continue
        if spec.embedded and tag is None:
            inner_elements, inner_attributes = _xml_index(spec.info.base)
            for key, route in inner_elements.items():
                elements.setdefault(key, (spec, *route))
            for key, route in inner_attributes.items():
                attributes.setdefault(key, (spec, *route))
            continue
        name, _, options = (tag or "").partition(",")
        if "attr" in options.split(","):
            attributes[name or spec.name] = (spec,)
        else:
            elements[name or spec.name] = (spec,)
    return elements, attributes


class _XMLWalker:
    __slots__ = ("time_format",)

    def __init__(self, time_format: str | None) -> None:
        self.time_format = time_format

    def overlay(self, target: Any, element: ElementTree.Element, path: str) -> None:
        elements, attributes = _xml_index(type(target))

        for name, text in element.attrib.items():
            route = attributes.get(_local(name))
            if route is None:
                continue
            holder = _resolve_holder(target, route)
            spec = route[-1]
            field_path = _join(path, _local(name))
            setattr(holder, spec.name, self.text(spec.info, text, field_path, spec.tags.format))

        for child in element:
            name = _local(child.tag)
            route = elements.get(name)
            if route is None:
                continue
            holder = _resolve_holder(target, route)
            spec = route[-1]
            info = spec.info
            current = getattr(holder, spec.name)
            field_path = _join(path, name)
            if info.kind is Kind.LIST:
                item = self.element(None, info.item, child, field_path, spec.tags.format)
                if isinstance(current, list):
                    current.append(item)
                else:
                    setattr(holder, spec.name, info.base([item]))
                continue
            value = self.element(current, info, child, field_path, spec.tags.format)
            setattr(holder, spec.name, value)

    def element(
        self,
        current: Any,
        info: TypeInfo,
        element: ElementTree.Element,
        path: str,
        layout: str | None = None,
    ) -> Any:
        if info.kind is Kind.STRUCT:
            target = current if isinstance(current, info.base) else new_instance(info.base)
            self.overlay(target, element, path)
            return target
        if info.kind is Kind.CUSTOM:
            instance = current if isinstance(current, info.base) else info.base()
            text = element.text or ""
            try:
                if info.capability is Capability.MULTI:
                    instance.unmarshal_params([text])
                else:
                    instance.unmarshal_param(text)
            except ValueError as exc:
                detail = f"Unmarshal type error: expected={info.name}, field={path}, error={exc}"
                raise TypeMismatch(path, info.name, "text", detail) from exc
            return instance
        return self.text(info, element.text or "", path, layout)

    def text(self, info: TypeInfo, text: str, path: str, layout: str | None = None) -> Any:
        if info.kind is Kind.ANY:
            return text
        if info.kind is not Kind.SCALAR:
            raise BindConfigurationError(f"unsupported type {info.name} for field {path!r}")
        try:
            raw = text if info.base is str else text.strip()
            return parse_scalar(raw, info, layout or self.time_format)
        except ValueError as exc:
            detail = f"Unmarshal type error: expected={info.name}, field={path}, error={exc}"
            raise TypeMismatch(path, info.name, "text", detail) from exc
