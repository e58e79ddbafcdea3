"""Fixed-length bit vector backed by a bytearray."""
from __future__ import annotations

from typing import Any, Iterable

from .errors import ConfigurationError, IndexOutOfRangeError


class BitVector:
    """``size`` boolean positions packed eight to a byte, all false initially.

    Bit ``i`` lives in byte ``i >> 3`` under mask ``1 << (i & 7)``. Padding
    bits past ``size`` in the last byte are always zero, so two vectors with
    the same set bits have identical bytes.
    """

    __slots__ = ("_size", "_bits")

    def __init__(self, size: int) -> None:
        if size <= 0:
            raise ConfigurationError("size must be positive")
        self._size = size
        self._bits = bytearray((size + 7) // 8)

    @classmethod
    def from_bytes(cls, size: int, data: bytes) -> "BitVector":
        """Rebuild a vector from :meth:`to_bytes` output.

        Raises:
            ConfigurationError: If ``data`` has the wrong length or sets a
                padding bit.
        """
        vector = cls(size)
        if len(data) != len(vector._bits):
            raise ConfigurationError(
                f"expected {len(vector._bits)} bytes for {size} bits, got {len(data)}"
            )
        tail = size & 7
        if tail and data[-1] >> tail:
            raise ConfigurationError("bits set beyond the end of the vector")
        vector._bits[:] = data
        return vector

    def _check(self, index: Any) -> int:
        if isinstance(index, bool) or not isinstance(index, int):
            raise IndexOutOfRangeError(f"bit index must be an integer, got {index!r}")
        if not 0 <= index < self._size:
            raise IndexOutOfRangeError(f"bit index {index} outside [0, {self._size})")
        return index

    def get(self, index: int) -> bool:
        index = self._check(index)
        return bool(self._bits[index >> 3] & (1 << (index & 7)))

    def set(self, index: int, value: bool = True) -> None:
        index = self._check(index)
        mask = 1 << (index & 7)
        if value:
            self._bits[index >> 3] |= mask
        else:
            self._bits[index >> 3] &= ~mask & 0xFF

    def set_all(self, indexes: Iterable[int]) -> None:
        """Set every position in ``indexes``.

        Meant for hash-derived indexes, which are in range by construction,
        so no per-bit bounds check is made.
        """
        bits = self._bits
        for index in indexes:
            bits[index >> 3] |= 1 << (index & 7)

    def all_set(self, indexes: Iterable[int]) -> bool:
        """Return True if every position in ``indexes`` is set (unchecked)."""
        bits = self._bits
        for index in indexes:
            if not (bits[index >> 3] & (1 << (index & 7))):
                return False
        return True

    def clear(self) -> None:
        """Reset every position to false."""
        self._bits[:] = bytes(len(self._bits))

    def cardinality(self) -> int:
        """Number of positions currently set."""
        return sum(bin(byte).count("1") for byte in self._bits)

    def to_bytes(self) -> bytes:
        return bytes(self._bits)

    def __len__(self) -> int:
        return self._size

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BitVector):
            return NotImplemented
        return self._size == other._size and self._bits == other._bits

    def __repr__(self) -> str:
        return f"BitVector(size={self._size}, set={self.cardinality()})"
