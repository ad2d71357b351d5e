"""Unsigned integers held in network (big-endian) byte order."""

from __future__ import annotations

import ipaddress
import operator
from dataclasses import dataclass
from typing import Callable, Union

_WIDTHS = (16, 32, 64, 128)


@dataclass(frozen=True, order=True)
class BigEndian:
    """A 16, 32, 64 or 128-bit unsigned integer stored as big-endian bytes."""

    raw: bytes

    def __post_init__(self) -> None:
        if len(self.raw) * 8 not in _WIDTHS:
            raise ValueError(f"unsupported width: {len(self.raw) * 8} bits")

    @classmethod
    def from_int(cls, value: int, width: int) -> "BigEndian":
        """Encode a host integer as a ``width``-bit big-endian value."""
        if width not in _WIDTHS:
            raise ValueError(f"unsupported width: {width} bits")
        if not 0 <= value < (1 << width):
            raise ValueError(f"{value} does not fit in {width} unsigned bits")
        return cls(value.to_bytes(width // 8, "big"))

    @classmethod
    def from_ipv4(
        cls, addr: Union[str, int, ipaddress.IPv4Address]
    ) -> "BigEndian":
        """Encode an IPv4 address as a 32-bit big-endian value."""
        return cls(ipaddress.IPv4Address(addr).packed)

    @property
    def width(self) -> int:
        return len(self.raw) * 8

    def to_int(self) -> int:
        """Decode to a host integer."""
        return int.from_bytes(self.raw, "big")

    def __bytes__(self) -> bytes:
        return self.raw

    def _combine(self, other: object, op: Callable[[int, int], int]) -> "BigEndian":
        if not isinstance(other, BigEndian):
            return NotImplemented
        if other.width != self.width:
            raise ValueError(
                f"width mismatch: {self.width} bits and {other.width} bits"
            )
        return BigEndian(bytes(op(a, b) for a, b in zip(self.raw, other.raw)))

    def __and__(self, other: object) -> "BigEndian":
        return self._combine(other, operator.and_)

    def __or__(self, other: object) -> "BigEndian":
        return self._combine(other, operator.or_)