"""Exception taxonomy for the Bloom filter package.

Every error is deterministic: retrying the same call with the same input
fails the same way.
"""
from __future__ import annotations


class BloomFilterError(Exception):
    """Base class for all errors raised by ``bf_core``."""


class ConfigurationError(BloomFilterError, ValueError):
    """Sizing parameters are outside their domain; no filter is built."""


class EncodingError(BloomFilterError, ValueError):
    """An element could not be converted to its canonical byte form."""


class DigestUnavailableError(BloomFilterError, RuntimeError):
    """The requested digest algorithm is missing from this runtime."""


class IndexOutOfRangeError(BloomFilterError, IndexError):
    """A bit index fell outside ``[0, size)``."""
