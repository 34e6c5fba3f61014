"""Custom parsing hooks a destination type can opt into.

Two narrow protocols rather than one: a type implementing both is
handed the full value list, so the precedence rule stays a single
ordered check.

Both hooks mutate ``self`` and signal bad input by raising ``ValueError``;
the message is surfaced to the client as is.

Usage::

    class IntList(list[int]):
        def unmarshal_params(self, values: list[str]) -> None:
            for value in values:
                self.extend(int(part) for part in value.split(","))
"""

from enum import Enum
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class ParamUnmarshaler(Protocol):
    """Consumes the first value presented for its key."""

    def unmarshal_param(self, value: str) -> None: ...


@runtime_checkable
class ParamsUnmarshaler(Protocol):
    """Consumes every value presented for its key, in order."""

    def unmarshal_params(self, values: list[str]) -> None: ...


class Capability(Enum):
    MULTI = "multi"
    SINGLE = "single"


def capability_of(tp: Any) -> Capability | None:
    """Return the hook *tp* implements, preferring the multi-value one."""
    if not isinstance(tp, type):
        return None
    if issubclass(tp, ParamsUnmarshaler):
        return Capability.MULTI
    if issubclass(tp, ParamUnmarshaler):
        return Capability.SINGLE
    return None
