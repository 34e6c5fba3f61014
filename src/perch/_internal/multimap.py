"""MultiValueMapping protocol — shared interface for Headers, QueryParams, FormData.

A structural protocol so the binder can read any multi-valued source
without coupling to the concrete type.
"""

from collections.abc import Iterator, Mapping
from typing import Protocol, runtime_checkable


@runtime_checkable
class MultiValueMapping(Protocol):
    """A read-only string mapping where keys can have multiple values.

    ``__getitem__`` returns the first value for a key.
    ``get_list`` returns all values for a key.

    Structurally compatible with ``Mapping[str, str]`` plus ``get_list``.
    Defined with explicit dunder methods because Python 3.14 Protocols
    cannot inherit from non-Protocol ABCs like ``Mapping``.
    """

    def __getitem__(self, key: str) -> str: ...
    def __contains__(self, key: object) -> bool: ...
    def __iter__(self) -> Iterator[str]: ...
    def __len__(self) -> int: ...
    def get(self, key: str, default: str | None = None) -> str | None: ...
    def get_list(self, key: str) -> list[str]: ...


def to_lists(source: MultiValueMapping | Mapping[str, list[str]]) -> dict[str, list[str]]:
    """Flatten a multi-valued source into an ordered ``dict[str, list[str]]``.

    Keys with no values are dropped.
    """
    if isinstance(source, MultiValueMapping):
        items = ((key, source.get_list(key)) for key in source)
    else:
        items = ((key, list(values)) for key, values in source.items())
    return {key: values for key, values in items if values}
