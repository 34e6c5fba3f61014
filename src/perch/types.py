"""Sized numeric annotations.

Python integers are unbounded, so fields that must honour a wire width
declare it with ``Annotated``::

    @dataclass
    class Packet:
        ttl: UInt8 = 0
        offset: Int32 = 0

A plain ``int`` field is treated as a signed 64-bit integer and a plain
``float`` as a double.
"""

from dataclasses import dataclass
from typing import Annotated


@dataclass(frozen=True, slots=True)
class Bits:
    """Bit width (and signedness, for integers) of a numeric field."""

    size: int
    signed: bool = True

    @property
    def bounds(self) -> tuple[int, int]:
        """Inclusive ``(low, high)`` range of an integer of this width."""
        if self.signed:
            return -(1 << (self.size - 1)), (1 << (self.size - 1)) - 1
        return 0, (1 << self.size) - 1

    @property
    def type_name(self) -> str:
        return f"{'int' if self.signed else 'uint'}{self.size}"


INT64_BITS = Bits(64)
FLOAT64_BITS = Bits(64)

Int8 = Annotated[int, Bits(8)]
Int16 = Annotated[int, Bits(16)]
Int32 = Annotated[int, Bits(32)]
Int64 = Annotated[int, Bits(64)]

UInt = Annotated[int, Bits(64, signed=False)]
UInt8 = Annotated[int, Bits(8, signed=False)]
UInt16 = Annotated[int, Bits(16, signed=False)]
UInt32 = Annotated[int, Bits(32, signed=False)]
UInt64 = Annotated[int, Bits(64, signed=False)]

Float32 = Annotated[float, Bits(32)]
Float64 = Annotated[float, Bits(64)]
