import random
import struct
import zlib

import pytest

from spheretrace.png import encode_png, write_png

SIGNATURE = bytes((137, 80, 78, 71, 13, 10, 26, 10))


def _chunks(png):
    assert png[:8] == SIGNATURE
    pos = 8
    result = []
    while pos < len(png):
        (length,) = struct.unpack(">I", png[pos:pos + 4])
        tag = png[pos + 4:pos + 8]
        data = png[pos + 8:pos + 8 + length]
        (crc,) = struct.unpack(">I", png[pos + 8 + length:pos + 12 + length])
        result.append((tag, data, crc))
        pos += 12 + length
    return result


def _paeth(a, b, c):
    p = a + b - c
    pa, pb, pc = abs(p - a), abs(p - b), abs(p - c)
    if pa <= pb and pa <= pc:
        return a
    if pb <= pc:
        return b
    return c


def _decode(png):
    """Return (width, height, channels, filter bytes, raw pixel bytes)."""
    chunks = _chunks(png)
    ihdr = chunks[0][1]
    width, height, depth, ctype = struct.unpack(">IIBB", ihdr[:10])
    channels = {0: 1, 4: 2, 2: 3, 6: 4}[ctype]
    raw = zlib.decompress(b"".join(d for t, d, _ in chunks if t == b"IDAT"))
    row_len = width * channels
    prior = bytearray(row_len)
    out = bytearray()
    filters = []
    for r in range(height):
        start = r * (row_len + 1)
        ftype = raw[start]
        filters.append(ftype)
        line = bytearray(raw[start + 1:start + 1 + row_len])
        for i in range(row_len):
            left = line[i - channels] if i >= channels else 0
            up = prior[i]
            upleft = prior[i - channels] if i >= channels else 0
            if ftype == 1:
                line[i] = (line[i] + left) & 0xFF
            elif ftype == 2:
                line[i] = (line[i] + up) & 0xFF
            elif ftype == 3:
                line[i] = (line[i] + ((left + up) >> 1)) & 0xFF
            elif ftype == 4:
                line[i] = (line[i] + _paeth(left, up, upleft)) & 0xFF
        out += line
        prior = line
    return width, height, channels, filters, bytes(out)


def _image(width, height, channels, seed=1):
    rng = random.Random(seed)
    return bytes(rng.randrange(256) for _ in range(width * height * channels))


def test_signature_and_chunk_order():
    png = encode_png(_image(3, 2, 3), 3, 2, 3)
    assert png[:8] == SIGNATURE
    tags = [t for t, _, _ in _chunks(png)]
    assert tags == [b"IHDR", b"IDAT", b"IEND"]


def test_ihdr_contents():
    png = encode_png(_image(5, 7, 4), 5, 7, 4)
    tag, data, _ = _chunks(png)[0]
    assert data == struct.pack(">IIBBBBB", 5, 7, 8, 6, 0, 0, 0)


@pytest.mark.parametrize("channels,ctype", [(1, 0), (2, 4), (3, 2), (4, 6)])
def test_color_type(channels, ctype):
    png = encode_png(_image(2, 2, channels), 2, 2, channels)
    assert _chunks(png)[0][1][9] == ctype


def test_crcs_are_valid():
    png = encode_png(_image(4, 4, 3), 4, 4, 3)
    for tag, data, crc in _chunks(png):
        assert zlib.crc32(tag + data) == crc


def test_iend_is_empty():
    png = encode_png(_image(2, 2, 1), 2, 2, 1)
    tag, data, _ = _chunks(png)[-1]
    assert tag == b"IEND"
    assert data == b""


@pytest.mark.parametrize("channels", [1, 2, 3, 4])
def test_round_trip_auto_filter(channels):
    pixels = _image(9, 6, channels, seed=channels)
    width, height, got_channels, _, raw = _decode(encode_png(pixels, 9, 6, channels))
    assert (width, height, got_channels) == (9, 6, channels)
    assert raw == pixels


@pytest.mark.parametrize("force", [0, 1, 2, 3, 4])
def test_round_trip_forced_filter(force):
    pixels = _image(8, 5, 3, seed=force + 10)
    _, _, _, filters, raw = _decode(encode_png(pixels, 8, 5, 3, force_filter=force))
    assert filters == [force] * 5
    assert raw == pixels


def test_forced_filter_out_of_range_means_auto():
    pixels = _image(6, 6, 3, seed=4)
    assert encode_png(pixels, 6, 6, 3, force_filter=7) == encode_png(pixels, 6, 6, 3)


def test_filters_written_are_in_range():
    pixels = _image(16, 16, 3, seed=9)
    _, _, _, filters, _ = _decode(encode_png(pixels, 16, 16, 3))
    assert all(0 <= f <= 4 for f in filters)


def test_constant_image_round_trip_and_compresses():
    pixels = bytes([200, 100, 50]) * (64 * 64)
    png = encode_png(pixels, 64, 64, 3)
    _, _, _, _, raw = _decode(png)
    assert raw == pixels
    assert len(png) < len(pixels)


def test_flip_vertically_reverses_rows():
    width, height, channels = 4, 3, 3
    pixels = _image(width, height, channels, seed=5)
    row = width * channels
    expected = b"".join(pixels[r * row:(r + 1) * row] for r in reversed(range(height)))
    _, _, _, _, raw = _decode(encode_png(pixels, width, height, channels, flip_vertically=True))
    assert raw == expected


def test_stride_skips_padding():
    width, height, channels, stride = 3, 4, 3, 12
    packed = _image(width, height, channels, seed=6)
    row = width * channels
    padded = b"".join(packed[r * row:(r + 1) * row] + b"\xee" * (stride - row) for r in range(height))
    png = encode_png(padded, width, height, channels, stride=stride)
    assert _decode(png)[4] == packed
    assert png == encode_png(packed, width, height, channels)


@pytest.mark.parametrize("level", [0, 5, 8, 20])
def test_compression_level_does_not_change_pixels(level):
    pixels = _image(10, 10, 3, seed=level)
    assert _decode(encode_png(pixels, 10, 10, 3, compression_level=level))[4] == pixels


@pytest.mark.parametrize("channels", [0, 5])
def test_bad_component_count(channels):
    with pytest.raises(ValueError):
        encode_png(bytes(16), 2, 2, channels)


def test_short_pixel_data():
    with pytest.raises(ValueError):
        encode_png(bytes(10), 2, 2, 3)


def test_non_positive_size():
    with pytest.raises(ValueError):
        encode_png(b"", 0, 2, 3)


def test_write_png_matches_encode(tmp_path):
    pixels = _image(5, 5, 4, seed=11)
    path = tmp_path / "image.png"
    write_png(path, pixels, 5, 5, 4)
    assert path.read_bytes() == encode_png(pixels, 5, 5, 4)