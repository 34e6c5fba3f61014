"""Field tags — which source key feeds which dataclass field.

Tags live in ``dataclasses.field`` metadata, so destinations stay plain
dataclasses::

    from dataclasses import dataclass
    from perch import field, embedded

    @dataclass
    class Opts:
        id: int = field(0, json="id", form="id", query="id")
        node: str = field("", json="node", query="node", path="node")
        paging: Paging = embedded(default_factory=Paging)

``name=`` is a key shared by every request source (path, query, header,
form). Body codecs have their own tags (``json=``, ``xml=``).
"""

from __future__ import annotations

import dataclasses
from dataclasses import MISSING, dataclass
from enum import StrEnum
from typing import Any

METADATA_KEY = "perch"


class Source(StrEnum):
    """A request source bound through string values."""

    PATH = "path"
    QUERY = "query"
    HEADER = "header"
    FORM = "form"


@dataclass(frozen=True, slots=True)
class FieldTags:
    """Binding tags attached to one dataclass field."""

    names: tuple[tuple[str, str], ...] = ()
    embedded: bool = False
    format: str | None = None

    def get(self, tag: str) -> str | None:
        for key, value in self.names:
            if key == tag:
                return value
        return None

    def source_key(self, source: Source) -> str | None:
        """Key for *source*: its own tag first, then the shared ``name``."""
        key = self.get(source.value)
        if key is None:
            key = self.get("name")
        return key


NO_TAGS = FieldTags()


def tags_of(f: dataclasses.Field[Any]) -> FieldTags:
    return f.metadata.get(METADATA_KEY, NO_TAGS)


def field(
    default: Any = MISSING,
    *,
    default_factory: Any = MISSING,
    name: str | None = None,
    path: str | None = None,
    query: str | None = None,
    header: str | None = None,
    form: str | None = None,
    json: str | None = None,
    xml: str | None = None,
    format: str | None = None,
    metadata: dict[str, Any] | None = None,
    **options: Any,
) -> Any:
    """``dataclasses.field`` with binding tags.

    Args:
        default: Field default, as for ``dataclasses.field``.
        default_factory: Field default factory.
        name: Key shared by all request sources.
        path: Path parameter name.
        query: Query parameter name.
        header: Header name (matched case-insensitively).
        form: Form field or file part name.
        json: JSON object key (``"-"`` excludes the field).
        xml: XML element name, ``"name,attr"`` for an attribute
            (``"-"`` excludes the field).
        format: ``strptime`` layout for ``datetime`` fields.
        metadata: Extra metadata kept alongside the tags.
        **options: Passed through to ``dataclasses.field``.
    """
    candidates = (
        ("name", name),
        ("path", path),
        ("query", query),
        ("header", header),
        ("form", form),
        ("json", json),
        ("xml", xml),
    )
    embed = options.pop("_embedded", False)
    tags = FieldTags(
        names=tuple((k, v) for k, v in candidates if v is not None),
        embedded=embed,
        format=format,
    )
    return dataclasses.field(
        default=default,
        default_factory=default_factory,
        metadata={**(metadata or {}), METADATA_KEY: tags},
        **options,
    )


def embedded(
    default: Any = MISSING,
    *,
    default_factory: Any = MISSING,
    **tags: str,
) -> Any:
    """Mark a dataclass-typed field whose fields are promoted onto the parent.

    ``Inner | None`` embedded fields left at ``None`` are allocated only
    when one of the promoted fields matches. Only body-codec tags
    (``json=``, ``xml=``) make sense here; a request-source tag is
    rejected at bind time.
    """
    return field(default, default_factory=default_factory, _embedded=True, **tags)
