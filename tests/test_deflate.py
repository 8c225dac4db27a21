import random
import zlib

import pytest

from spheretrace.deflate import adler32, zlib_compress


def _random_bytes(count, seed):
    rng = random.Random(seed)
    return bytes(rng.getrandbits(8) for _ in range(count))


SAMPLES = [
    b"a",
    b"abc",
    b"abcd",
    b"hello hello hello hello world",
    b"\x00" * 1000,
    bytes(range(256)) * 20,
    b"The quick brown fox jumps over the lazy dog. " * 50,
]


@pytest.mark.parametrize("data", SAMPLES)
def test_round_trip_through_zlib(data):
    assert zlib.decompress(zlib_compress(data)) == data


@pytest.mark.parametrize("data", SAMPLES)
def test_header_bytes(data):
    assert zlib_compress(data)[:2] == b"\x78\x5e"


@pytest.mark.parametrize("data", SAMPLES)
def test_trailer_is_adler32(data):
    assert zlib_compress(data)[-4:] == zlib.adler32(data).to_bytes(4, "big")


def test_repetitive_data_shrinks():
    data = b"\x00" * 10000
    assert len(zlib_compress(data)) < len(data) // 10


def test_long_pattern_with_far_matches_round_trips():
    block = _random_bytes(3000, 1)
    data = block * 15
    compressed = zlib_compress(data)
    assert zlib.decompress(compressed) == data
    assert len(compressed) < len(data)


def test_incompressible_data_uses_stored_blocks():
    data = _random_bytes(70000, 2)
    compressed = zlib_compress(data)
    assert zlib.decompress(compressed) == data
    blocks = (len(data) + 32766) // 32767
    assert len(compressed) == 2 + len(data) + blocks * 5 + 4


def test_low_quality_is_clamped():
    data = b"abcabcabcabd" * 40 + bytes(range(100)) * 3
    assert zlib_compress(data, 0) == zlib_compress(data, 5)
    assert zlib_compress(data, -3) == zlib_compress(data, 5)


@pytest.mark.parametrize("quality", [5, 8, 20])
def test_quality_levels_round_trip(quality):
    data = (b"pixel row " * 30 + _random_bytes(200, quality)) * 4
    assert zlib.decompress(zlib_compress(data, quality)) == data


def test_accepts_bytearray():
    data = bytearray(b"xyzxyzxyzxyz")
    assert zlib.decompress(zlib_compress(data)) == bytes(data)


def test_adler32_empty_is_one():
    assert adler32(b"") == 1


@pytest.mark.parametrize(
    "data",
    [b"a", b"Wikipedia", bytes(range(256)) * 50, b"\xff" * 5552, b"\xff" * 11104, _random_bytes(12000, 3)],
)
def test_adler32_matches_zlib(data):
    assert adler32(data) == zlib.adler32(data)