"""Index generation for the Bloom filter.

Elements are first turned into bytes by a *serializer*, then a *digest*
maps those bytes to entropy from which ``k`` bit positions are derived
with Kirsch-Mitzenmacher double hashing::

    index_i = (h1 + i * h2) mod m,    i = 0 .. k-1

so the cost is a constant number of digest computations whatever ``k``
is. By default ``h1`` comes from MurmurHash3 (mmh3) and ``h2`` from
xxHash64, two unrelated hash families. A single digest of at least 16
bytes (e.g. MD5 through :class:`HashlibDigest`) may be used instead, in
which case its two 8-byte halves give ``h1`` and ``h2``.

Digest objects hold no per-call state; every call hashes from scratch,
so one generator can be shared freely between filters and threads.
"""
from __future__ import annotations

import hashlib
from typing import Any, Callable, Iterator, List, Optional, Protocol, Tuple

import mmh3
import xxhash

from .errors import ConfigurationError, DigestUnavailableError, EncodingError

DEFAULT_ENCODING = "utf-8"
DEFAULT_SEED = 0

_FOLD_BYTES = 8

Serializer = Callable[[Any], bytes]


class Digest(Protocol):
    """Anything that maps bytes to a fixed-length digest."""

    def digest(self, data: bytes) -> bytes:
        ...


class Murmur3Digest:
    """128-bit MurmurHash3 (x64 variant)."""

    __slots__ = ("seed",)

    def __init__(self, seed: int = DEFAULT_SEED) -> None:
        self.seed = seed

    def digest(self, data: bytes) -> bytes:
        return mmh3.hash_bytes(data, self.seed)

    def __repr__(self) -> str:
        return f"Murmur3Digest(seed={self.seed})"


class XXHash64Digest:
    """64-bit xxHash, canonical (big-endian) byte order."""

    __slots__ = ("seed",)

    def __init__(self, seed: int = DEFAULT_SEED) -> None:
        self.seed = seed

    def digest(self, data: bytes) -> bytes:
        return xxhash.xxh64(data, seed=self.seed).digest()

    def __repr__(self) -> str:
        return f"XXHash64Digest(seed={self.seed})"


class HashlibDigest:
    """A :mod:`hashlib` algorithm, instantiated fresh for every call.

    The algorithm is looked up once here so an unavailable one fails before
    any filter is built on top of it.
    """

    __slots__ = ("name",)

    def __init__(self, name: str = "md5") -> None:
        try:
            sample = hashlib.new(name, usedforsecurity=False)
        except (ValueError, TypeError) as exc:
            raise DigestUnavailableError(f"digest algorithm {name!r} is not available") from exc
        if sample.digest_size == 0:
            # shake_* need an explicit output length
            raise ConfigurationError(f"digest algorithm {name!r} has no fixed digest size")
        self.name = name

    def digest(self, data: bytes) -> bytes:
        return hashlib.new(self.name, data, usedforsecurity=False).digest()

    def __repr__(self) -> str:
        return f"HashlibDigest({self.name!r})"


class TextSerializer:
    """Default element serializer.

    Bytes-like elements are used as-is and strings are encoded strictly with
    ``encoding``. Anything else needs a caller-supplied serializer.
    """

    __slots__ = ("encoding",)

    def __init__(self, encoding: str = DEFAULT_ENCODING) -> None:
        self.encoding = encoding

    def __call__(self, element: Any) -> bytes:
        if isinstance(element, bytes):
            return element
        if isinstance(element, (bytearray, memoryview)):
            return bytes(element)
        if isinstance(element, str):
            try:
                return element.encode(self.encoding)
            except LookupError as exc:
                raise EncodingError(f"unsupported text encoding: {self.encoding!r}") from exc
            except UnicodeEncodeError as exc:
                raise EncodingError(f"element cannot be encoded as {self.encoding}: {exc}") from exc
        raise EncodingError(
            f"no canonical byte form for {type(element).__name__}; supply a serializer"
        )

    def __repr__(self) -> str:
        return f"TextSerializer({self.encoding!r})"


def to_bytes(element: Any, serializer: Optional[Serializer] = None) -> bytes:
    """Serialize ``element`` and check that the result really is bytes."""
    data = (serializer or _DEFAULT_SERIALIZER)(element)
    if not isinstance(data, bytes):
        raise EncodingError(
            f"serializer returned {type(data).__name__}, expected bytes"
        )
    return data


def fold(raw: bytes) -> int:
    """Interpret the first 8 bytes of a digest as an unsigned big-endian int."""
    return int.from_bytes(raw[:_FOLD_BYTES], "big")


class HashGenerator:
    """Derive ``num_hashes`` indexes in ``[0, size)`` from element bytes."""

    __slots__ = ("size", "num_hashes", "primary", "secondary")

    def __init__(
        self,
        size: int,
        num_hashes: int,
        *,
        primary: Optional[Digest] = None,
        secondary: Optional[Digest] = None,
    ) -> None:
        """Initialize the generator.

        Args:
            size: Number of addressable bits (``m``).
            num_hashes: Number of indexes per element (``k``).
            primary: Digest for ``h1``. Defaults to :class:`Murmur3Digest`.
            secondary: Digest for ``h2``. Defaults to :class:`XXHash64Digest`
                when ``primary`` is also defaulted; when only ``primary`` is
                given, ``h1`` and ``h2`` are taken from its two halves.

        Raises:
            ConfigurationError: If size or num_hashes is not positive, or a
                digest is too short to fold.
        """
        if size <= 0:
            raise ConfigurationError("size must be positive")
        if num_hashes <= 0:
            raise ConfigurationError("num_hashes must be positive")

        if primary is None:
            primary = Murmur3Digest()
            if secondary is None:
                secondary = XXHash64Digest()

        self.size = size
        self.num_hashes = num_hashes
        self.primary = primary
        self.secondary = secondary

        if secondary is None:
            self._check_width(primary, 2 * _FOLD_BYTES)
        else:
            self._check_width(primary, _FOLD_BYTES)
            self._check_width(secondary, _FOLD_BYTES)

    @staticmethod
    def _check_width(digest: Digest, width: int) -> None:
        if len(digest.digest(b"")) < width:
            raise ConfigurationError(f"{digest!r} yields fewer than {width} bytes")

    def _seeds(self, data: bytes) -> Tuple[int, int]:
        if self.secondary is None:
            raw = self.primary.digest(data)
            return fold(raw), fold(raw[_FOLD_BYTES:])
        return fold(self.primary.digest(data)), fold(self.secondary.digest(data))

    def iter_indexes(self, data: bytes) -> Iterator[int]:
        """Yield bit positions using Kirsch-Mitzenmacher double hashing."""
        h1, h2 = self._seeds(data)
        h1 %= self.size
        h2 %= self.size

        # A zero step would put all k positions on the same bit
        if h2 == 0:
            h2 = 1

        for i in range(self.num_hashes):
            yield (h1 + i * h2) % self.size

    def indexes(self, data: bytes) -> List[int]:
        return list(self.iter_indexes(data))

    def __repr__(self) -> str:
        return (
            f"HashGenerator(size={self.size}, num_hashes={self.num_hashes}, "
            f"primary={self.primary!r}, secondary={self.secondary!r})"
        )


_DEFAULT_SERIALIZER = TextSerializer()
