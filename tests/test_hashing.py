"""Tests for digests, serializers and index generation."""
import hashlib
import struct
import uuid

import pytest
import xxhash

from bf_core.bloom_filter import BloomFilter
from bf_core.errors import ConfigurationError, DigestUnavailableError, EncodingError
from bf_core.hashing import (
    HashGenerator,
    HashlibDigest,
    Murmur3Digest,
    TextSerializer,
    XXHash64Digest,
    fold,
    to_bytes,
)


class TestDigests:

    def test_widths(self):
        assert len(Murmur3Digest().digest(b"abc")) == 16
        assert len(XXHash64Digest().digest(b"abc")) == 8
        assert len(HashlibDigest("md5").digest(b"abc")) == 16
        assert len(HashlibDigest("sha256").digest(b"abc")) == 32

    def test_hashlib_digest_matches_hashlib(self):
        assert HashlibDigest("sha1").digest(b"abc") == hashlib.sha1(b"abc").digest()

    def test_seed_changes_output(self):
        assert Murmur3Digest(1).digest(b"abc") != Murmur3Digest(2).digest(b"abc")
        assert XXHash64Digest(1).digest(b"abc") != XXHash64Digest(2).digest(b"abc")

    def test_unknown_algorithm(self):
        with pytest.raises(DigestUnavailableError):
            HashlibDigest("no-such-digest")

    def test_variable_length_algorithm_rejected(self):
        with pytest.raises(ConfigurationError):
            HashlibDigest("shake_128")

    def test_fold_reads_big_endian_prefix(self):
        assert fold(b"\x00" * 7 + b"\x01" + b"\xff" * 8) == 1
        assert fold(b"\x01" + b"\x00" * 7) == 1 << 56


class TestSerializer:

    def test_str_and_bytes_agree(self):
        val = str(uuid.uuid4())
        assert to_bytes(val) == to_bytes(val.encode("utf-8"))

    def test_bytes_like_inputs(self):
        assert to_bytes(bytearray(b"xy")) == b"xy"
        assert to_bytes(memoryview(b"xy")) == b"xy"

    def test_explicit_encoding(self):
        assert TextSerializer("utf-16-le")("a") == b"a\x00"

    def test_unknown_encoding(self):
        with pytest.raises(EncodingError, match="unsupported text encoding"):
            TextSerializer("no-such-codec")("a")

    def test_non_text_codec(self):
        with pytest.raises(EncodingError):
            TextSerializer("rot13")("a")

    def test_unencodable_text(self):
        with pytest.raises(EncodingError):
            TextSerializer("ascii")("café")

    def test_unsupported_type(self):
        with pytest.raises(EncodingError, match="supply a serializer"):
            to_bytes(42)

    def test_custom_serializer(self):
        assert to_bytes(42, lambda n: n.to_bytes(4, "big")) == b"\x00\x00\x00\x2a"

    def test_custom_serializer_must_return_bytes(self):
        with pytest.raises(EncodingError, match="expected bytes"):
            to_bytes(42, str)


class TestHashGenerator:

    def test_yields_k_indexes_in_range(self):
        hasher = HashGenerator(97, 13)
        for i in range(200):
            indexes = hasher.indexes(str(i).encode())
            assert len(indexes) == 13
            assert all(0 <= idx < 97 for idx in indexes)

    def test_deterministic_across_instances(self):
        data = str(uuid.uuid4()).encode()
        assert HashGenerator(1000, 7).indexes(data) == HashGenerator(1000, 7).indexes(data)

    def test_repeated_calls_agree(self):
        hasher = HashGenerator(1000, 7)
        assert hasher.indexes(b"value") == hasher.indexes(b"value")

    def test_different_inputs_usually_differ(self):
        hasher = HashGenerator(1 << 20, 7)
        assert hasher.indexes(b"alpha") != hasher.indexes(b"beta")

    def test_arithmetic_progression(self):
        hasher = HashGenerator(1_000_003, 5)
        first, second, *rest = hasher.indexes(b"progression")
        step = (second - first) % 1_000_003
        assert step != 0
        for i, idx in enumerate([first, second, *rest]):
            assert idx == (first + i * step) % 1_000_003

    def test_single_digest_splits_halves(self):
        md5 = HashlibDigest("md5")
        raw = md5.digest(b"x")
        h1 = fold(raw) % 1009
        h2 = fold(raw[8:]) % 1009 or 1
        hasher = HashGenerator(1009, 3, primary=md5)
        assert hasher.indexes(b"x") == [h1, (h1 + h2) % 1009, (h1 + 2 * h2) % 1009]

    def test_single_short_digest_rejected(self):
        with pytest.raises(ConfigurationError):
            HashGenerator(100, 3, primary=XXHash64Digest())

    def test_digest_pair(self):
        hasher = HashGenerator(100, 3, primary=XXHash64Digest(1), secondary=XXHash64Digest(2))
        assert len(hasher.indexes(b"x")) == 3

    def test_size_one_always_maps_to_zero(self):
        assert HashGenerator(1, 4).indexes(b"anything") == [0, 0, 0, 0]

    @pytest.mark.parametrize("size, k", [(0, 3), (-1, 3), (10, 0)])
    def test_rejects_bad_dimensions(self, size, k):
        with pytest.raises(ConfigurationError):
            HashGenerator(size, k)


class TestReferenceVectors:
    """Fixed outputs that must not change between processes or releases.

    Built from published digests: MurmurHash3 x64-128 of empty input with
    seed 0 is all zeros, XXH64 of empty input with seed 0 is
    0xEF46DB3751D8E999, and MD5("abc") is 900150983cd24fb0d6963f7d28e17f72.
    """

    EMPTY_INDEXES = [0, 921, 842, 763, 684, 605, 526]

    def test_digest_vectors(self):
        assert Murmur3Digest().digest(b"") == bytes(16)
        assert XXHash64Digest().digest(b"") == bytes.fromhex("ef46db3751d8e999")
        assert HashlibDigest("md5").digest(b"abc") == bytes.fromhex(
            "900150983cd24fb0d6963f7d28e17f72"
        )

    def test_default_generator_on_empty_input(self):
        # h1 = 0, h2 = 0xEF46DB3751D8E999 % 1000 = 921
        assert HashGenerator(1000, 7).indexes(b"") == self.EMPTY_INDEXES

    def test_md5_generator_on_abc(self):
        # h1 = 0x900150983cd24fb0 % 1009 = 282, h2 = 0xd6963f7d28e17f72 % 1009 = 884
        hasher = HashGenerator(1009, 3, primary=HashlibDigest("md5"))
        assert hasher.indexes(b"abc") == [282, 157, 32]

    def test_snapshot_layout_and_stable_hash(self):
        bloom = BloomFilter.with_sizes(1000, 100)
        bloom.add("")

        expected = bytearray(125)
        for index in self.EMPTY_INDEXES:
            expected[index >> 3] |= 1 << (index & 7)
        assert bloom.bit_array == bytes(expected)

        header = struct.pack(">QQQ", 1000, 100, 7)
        assert bloom.stable_hash() == xxhash.xxh64(header + bytes(expected)).intdigest()
