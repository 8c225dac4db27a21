"""PNG encoding of 8-bit interleaved pixel data."""

from __future__ import annotations

import os
import zlib
from typing import List, Sequence, Union

from spheretrace.deflate import zlib_compress

__all__ = ["encode_png", "write_png"]

PNG_SIGNATURE = bytes((137, 80, 78, 71, 13, 10, 26, 10))

# PNG colour type for 1 (grey), 2 (grey+alpha), 3 (RGB) and 4 (RGBA) channels.
_COLOR_TYPES = {1: 0, 2: 4, 3: 2, 4: 6}

# The first row has no row above it, so Up, Average and Paeth are replaced by
# variants that only look left. Types 5 and 6 are those internal variants.
_ROW_TYPES = (0, 1, 2, 3, 4)
_FIRST_ROW_TYPES = (0, 1, 0, 5, 6)

_FILTER_COUNT = 5

# Cost of a filtered byte: magnitude of its value read as a signed byte.
_COST = tuple(v if v < 128 else 256 - v for v in range(256))

PathLike = Union[str, "os.PathLike[str]"]


def _paeth(a: int, b: int, c: int) -> int:
    p = a + b - c
    pa, pb, pc = abs(p - a), abs(p - b), abs(p - c)
    if pa <= pb and pa <= pc:
        return a
    if pb <= pc:
        return b
    return c


def _filter_line(line: bytes, prior: bytes, n: int, kind: int) -> bytes:
    """Apply internal filter ``kind`` (0..6) to one row."""
    if kind == 0:
        return bytes(line)
    if kind == 2:
        return bytes((a - b) & 0xFF for a, b in zip(line, prior))

    head = line[:n]
    rest = line[n:]
    left = line
    if kind == 1:
        first = bytes(head)
        tail = bytes((a - l) & 0xFF for a, l in zip(rest, left))
    elif kind == 3:
        first = bytes((a - (u >> 1)) & 0xFF for a, u in zip(head, prior))
        tail = bytes(
            (a - ((l + u) >> 1)) & 0xFF
            for a, l, u in zip(rest, left, prior[n:])
        )
    elif kind == 4:
        first = bytes((a - u) & 0xFF for a, u in zip(head, prior))
        tail = bytes(
            (a - _paeth(l, u, ul)) & 0xFF
            for a, l, u, ul in zip(rest, left, prior[n:], prior)
        )
    elif kind == 5:
        first = bytes(head)
        tail = bytes((a - (l >> 1)) & 0xFF for a, l in zip(rest, left))
    elif kind == 6:
        first = bytes(head)
        tail = bytes((a - l) & 0xFF for a, l in zip(rest, left))
    else:
        raise ValueError(f"unknown filter kind {kind}")
    return first + tail


def _encode_row(line: bytes, prior: bytes, n: int, filter_type: int, first_row: bool) -> bytes:
    table = _FIRST_ROW_TYPES if first_row else _ROW_TYPES
    return _filter_line(line, prior, n, table[filter_type])


def _chunk(tag: bytes, data: bytes) -> bytes:
    body = tag + data
    return len(data).to_bytes(4, "big") + body + zlib.crc32(body).to_bytes(4, "big")


def _rows(
    pixels: bytes, width: int, height: int, components: int, stride: int, flip: bool
) -> List[bytes]:
    row_bytes = width * components
    order: Sequence[int] = range(height - 1, -1, -1) if flip else range(height)
    return [pixels[r * stride:r * stride + row_bytes] for r in order]


def encode_png(
    pixels: bytes,
    width: int,
    height: int,
    components: int,
    stride: int = 0,
    compression_level: int = 8,
    force_filter: int = -1,
    flip_vertically: bool = False,
) -> bytes:
    """Encode interleaved 8-bit pixels as a PNG file image.

    ``components`` is 1 (Y), 2 (YA), 3 (RGB) or 4 (RGBA). ``stride`` is the
    byte distance between rows, 0 meaning tightly packed. ``force_filter``
    of 0..4 uses that filter on every row; any other value picks the
    filter per row that minimises the sum of signed byte magnitudes.
    """
    if components not in _COLOR_TYPES:
        raise ValueError(f"components must be 1..4, got {components}")
    if width <= 0 or height <= 0:
        raise ValueError("width and height must be positive")
    if stride == 0:
        stride = width * components
    if stride < width * components:
        raise ValueError("stride is smaller than a row of pixels")
    pixels = bytes(pixels)
    needed = (height - 1) * stride + width * components
    if len(pixels) < needed:
        raise ValueError(f"pixel data too short: need {needed} bytes, got {len(pixels)}")

    if force_filter >= _FILTER_COUNT:
        force_filter = -1

    rows = _rows(pixels, width, height, components, stride, flip_vertically)
    zero_row = bytes(width * components)
    filtered = bytearray()
    for index, line in enumerate(rows):
        prior = rows[index - 1] if index else zero_row
        first = index == 0
        if force_filter > -1:
            chosen = force_filter
            encoded = _encode_row(line, prior, components, chosen, first)
        else:
            chosen, encoded, best_cost = 0, b"", None
            for candidate in range(_FILTER_COUNT):
                attempt = _encode_row(line, prior, components, candidate, first)
                cost = sum(_COST[v] for v in attempt)
                if best_cost is None or cost < best_cost:
                    chosen, encoded, best_cost = candidate, attempt, cost
        filtered.append(chosen)
        filtered += encoded

    compressed = zlib_compress(bytes(filtered), compression_level)

    header = (
        width.to_bytes(4, "big")
        + height.to_bytes(4, "big")
        + bytes((8, _COLOR_TYPES[components], 0, 0, 0))
    )
    return (
        PNG_SIGNATURE
        + _chunk(b"IHDR", header)
        + _chunk(b"IDAT", compressed)
        + _chunk(b"IEND", b"")
    )


def write_png(
    path: PathLike,
    pixels: bytes,
    width: int,
    height: int,
    components: int,
    stride: int = 0,
    compression_level: int = 8,
    force_filter: int = -1,
    flip_vertically: bool = False,
) -> None:
    """Encode pixels as PNG and write the file to ``path``."""
    data = encode_png(
        pixels,
        width,
        height,
        components,
        stride,
        compression_level,
        force_filter,
        flip_vertically,
    )
    with open(path, "wb") as handle:
        handle.write(data)