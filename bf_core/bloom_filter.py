"""Bloom filter built from a sizing config, a hash generator and a bit vector.

The filter never reports a false negative: every ``add`` sets its ``k``
bits and nothing but :meth:`BloomFilter.clear` or an explicit
:meth:`BloomFilter.set_bit` ever clears one.
"""
from __future__ import annotations

import logging
import struct
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional

import xxhash

from .bit_vector import BitVector
from .errors import ConfigurationError
from .hashing import Digest, HashGenerator, Serializer, to_bytes
from .params import FilterConfig, false_positive_probability

logger = logging.getLogger(__name__)

_HEADER = struct.Struct(">QQQ")


@dataclass(frozen=True)
class FilterSnapshot:
    """Immutable copy of a filter's configuration and bits.

    Two snapshots are equal when size, expected elements, hash count and
    bits all match. The insert count travels along for restoring but is
    not compared.
    """

    size: int
    expected_elements: int
    num_hashes: int
    bits: bytes
    count: int = field(default=0, compare=False)

    def stable_hash(self) -> int:
        """Process-independent 64-bit hash of the compared fields."""
        header = _HEADER.pack(self.size, self.expected_elements, self.num_hashes)
        return xxhash.xxh64(header + self.bits).intdigest()


class BloomFilter:
    """Probabilistic set with no false negatives and a predictable FP rate."""

    def __init__(
        self,
        config: FilterConfig,
        *,
        primary: Optional[Digest] = None,
        secondary: Optional[Digest] = None,
        serializer: Optional[Serializer] = None,
    ) -> None:
        """Initialize an empty Bloom filter.

        Args:
            config: Resolved dimensions, see :class:`FilterConfig`.
            primary: Digest for the first double-hashing seed (MurmurHash3
                by default).
            secondary: Digest for the second seed (xxHash64 by default).
            serializer: Callable turning an element into bytes. Defaults to
                :class:`~bf_core.hashing.TextSerializer` with UTF-8.
        """
        self._config = config
        self._hasher = HashGenerator(
            config.size, config.num_hashes, primary=primary, secondary=secondary
        )
        self._serializer = serializer
        self._bits = BitVector(config.size)
        self._count = 0
        logger.debug("Created %r", self)

    @classmethod
    def with_sizes(
        cls, size: int, expected_elements: int, num_hashes: Optional[int] = None, **kwargs: Any
    ) -> "BloomFilter":
        """Filter of ``size`` bits for ``expected_elements`` elements."""
        return cls(FilterConfig.from_sizes(size, expected_elements, num_hashes), **kwargs)

    @classmethod
    def with_bits_per_element(
        cls, bits_per_element: float, expected_elements: int, num_hashes: int, **kwargs: Any
    ) -> "BloomFilter":
        config = FilterConfig.from_bits_per_element(bits_per_element, expected_elements, num_hashes)
        return cls(config, **kwargs)

    @classmethod
    def with_false_positive_rate(
        cls, false_positive_rate: float, expected_elements: int, **kwargs: Any
    ) -> "BloomFilter":
        """Smallest filter whose expected FP rate at ``expected_elements`` is the target."""
        config = FilterConfig.from_false_positive_rate(false_positive_rate, expected_elements)
        return cls(config, **kwargs)

    @classmethod
    def from_snapshot(cls, snapshot: FilterSnapshot, **kwargs: Any) -> "BloomFilter":
        """Rebuild a filter from :meth:`snapshot` output.

        The digests and serializer must match the ones the snapshot was
        taken with, otherwise lookups will not find earlier elements.
        """
        config = FilterConfig(snapshot.size, snapshot.expected_elements, snapshot.num_hashes)
        bloom = cls(config, **kwargs)
        bloom._bits = BitVector.from_bytes(snapshot.size, snapshot.bits)
        count = snapshot.count
        if isinstance(count, bool) or not isinstance(count, int) or count < 0:
            raise ConfigurationError(f"snapshot count must be a non-negative integer, got {count!r}")
        bloom._count = count
        logger.debug("Restored %r from snapshot", bloom)
        return bloom

    # -- membership ---------------------------------------------------------

    def indexes(self, element: Any) -> List[int]:
        """The ``k`` bit positions ``element`` maps to."""
        return self._hasher.indexes(to_bytes(element, self._serializer))

    def add(self, element: Any) -> None:
        """Insert ``element`` into the filter."""
        self._bits.set_all(self.indexes(element))
        self._count += 1

    def add_all(self, elements: Iterable[Any]) -> None:
        """Insert all ``elements`` into the filter, in iteration order."""
        for element in elements:
            self.add(element)

    def contains(self, element: Any) -> bool:
        """Return True if ``element`` may be present, False if definitely absent."""
        data = to_bytes(element, self._serializer)
        return self._bits.all_set(self._hasher.iter_indexes(data))

    def __contains__(self, element: Any) -> bool:
        return self.contains(element)

    def contains_all(self, elements: Iterable[Any]) -> bool:
        """Return True if every one of ``elements`` may be present."""
        for element in elements:
            if not self.contains(element):
                return False
        return True

    def clear(self) -> None:
        """Reset every bit and the insert count; the configuration is kept."""
        self._bits.clear()
        self._count = 0
        logger.debug("Cleared %r", self)

    # -- statistics ---------------------------------------------------------

    def false_positive_probability(self, number_of_elements: Optional[float] = None) -> float:
        """FP probability after ``number_of_elements`` insertions.

        Defaults to the number of elements actually added so far.
        """
        if number_of_elements is None:
            number_of_elements = self._count
        return false_positive_probability(
            self._config.size, self._config.num_hashes, number_of_elements
        )

    def expected_false_positive_probability(self) -> float:
        """FP probability once ``expected_elements`` elements have been added."""
        return self.false_positive_probability(self._config.expected_elements)

    def current_false_positive_probability(self) -> float:
        return self.false_positive_probability(self._count)

    @property
    def config(self) -> FilterConfig:
        return self._config

    @property
    def size(self) -> int:
        """Number of bits; use :attr:`count` for the number of insertions."""
        return self._config.size

    @property
    def expected_elements(self) -> int:
        return self._config.expected_elements

    @property
    def num_hashes(self) -> int:
        return self._config.num_hashes

    @property
    def count(self) -> int:
        """Elements added since construction or the last :meth:`clear`."""
        return self._count

    # -- bit access ---------------------------------------------------------

    def get_bit(self, index: int) -> bool:
        return self._bits.get(index)

    def set_bit(self, index: int, value: bool) -> None:
        """Write a single bit.

        Clearing a bit that an element hashed to makes that element
        invisible, so this is meant for tests and external loaders.
        """
        self._bits.set(index, value)

    @property
    def bit_array(self) -> bytes:
        """Copy of the packed bits (primarily for inspection)."""
        return self._bits.to_bytes()

    # -- equality -----------------------------------------------------------

    def snapshot(self) -> FilterSnapshot:
        return FilterSnapshot(
            size=self._config.size,
            expected_elements=self._config.expected_elements,
            num_hashes=self._config.num_hashes,
            bits=self._bits.to_bytes(),
            count=self._count,
        )

    def stable_hash(self) -> int:
        """Hash consistent with ``==`` and identical across processes."""
        return self.snapshot().stable_hash()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BloomFilter):
            return NotImplemented
        return self.snapshot() == other.snapshot()

    def __repr__(self) -> str:
        return (
            f"BloomFilter(size={self.size}, expected_elements={self.expected_elements}, "
            f"num_hashes={self.num_hashes}, count={self._count})"
        )
