"""Case-insensitive, multi-valued request headers.

Implements ``Mapping[str, str]`` and the ``MultiValueMapping`` protocol.
Names are lower-cased once, when the headers are built.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping


def _text(value: str | bytes) -> str:
    return value.decode("latin-1") if isinstance(value, bytes) else value


class Headers(Mapping[str, str]):
    """Request headers keyed by lower-cased name.

    ``__getitem__`` returns the first value received for a name and
    ``get_list`` returns all of them. Iteration yields each name once, in
    order of first appearance.
    """

    __slots__ = ("_values",)

    def __init__(self, pairs: Iterable[tuple[str | bytes, str | bytes]] = ()) -> None:
        values: dict[str, list[str]] = {}
        for name, value in pairs:
            values.setdefault(_text(name).lower(), []).append(_text(value))
        object.__setattr__(self, "_values", values)

    @classmethod
    def of(cls, headers: Mapping[str, str] | Iterable[tuple[str, str]]) -> Headers:
        """Build headers from a plain mapping or ``(name, value)`` pairs."""
        return cls(headers.items() if isinstance(headers, Mapping) else headers)

    def __getitem__(self, key: str) -> str:
        if not isinstance(key, str):
            raise KeyError(key)
        return self._values[key.lower()][0]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def get_list(self, key: str) -> list[str]:
        """Return every value sent for *key*, in arrival order."""
        return list(self._values.get(key.lower(), ()))
