"""BMP, TGA and Radiance HDR encoders for interleaved pixel data."""

from __future__ import annotations

import math
import os
import struct
from typing import Iterator, List, Sequence, Union

__all__ = [
    "encode_bmp",
    "write_bmp",
    "encode_tga",
    "write_tga",
    "linear_to_rgbe",
    "encode_hdr",
    "write_hdr",
]

PathLike = Union[str, "os.PathLike[str]"]

_FIELD_FORMATS = {"1": ("<B", 0xFF), "2": ("<H", 0xFFFF), "4": ("<I", 0xFFFFFFFF)}

_BMP_FILE_HEADER = 14
_BMP_INFO_HEADER = 40
_BMP_V4_HEADER = 108
_TGA_MAX_PACKET = 128
_HDR_RLE_MIN_WIDTH = 8
_HDR_RLE_MAX_WIDTH = 32768
_HDR_DUMP_MAX = 128
_HDR_RUN_MAX = 127

_HDR_HEADER = b"#?RADIANCE\n# Written by spheretrace\nFORMAT=32-bit_rle_rgbe\n"


def _fields(spec: str, *values: int) -> bytes:
    """Pack little-endian fields; ``spec`` holds '1', '2' or '4' per value."""
    codes = [code for code in spec if code != " "]
    if len(codes) != len(values):
        raise ValueError("field specification does not match the values")
    out = bytearray()
    for code, value in zip(codes, values):
        fmt, mask = _FIELD_FORMATS[code]
        out += struct.pack(fmt, value & mask)
    return bytes(out)


def _validate(pixels: bytes, width: int, height: int, components: int) -> bytes:
    if components not in (1, 2, 3, 4):
        raise ValueError(f"components must be 1..4, got {components}")
    if width < 0 or height < 0:
        raise ValueError("width and height must not be negative")
    data = bytes(pixels)
    needed = width * height * components
    if len(data) < needed:
        raise ValueError(f"pixel data too short: need {needed} bytes, got {len(data)}")
    return data


def _truncating_div(numerator: int, denominator: int) -> int:
    quotient = abs(numerator) // denominator
    return quotient if numerator >= 0 else -quotient


def _pixel(d: bytes, components: int, write_alpha: bool, expand_mono: bool) -> bytes:
    """One pixel in file order: grey or BGR, then alpha when requested."""
    out = bytearray()
    if components in (1, 2):
        out += bytes((d[0], d[0], d[0])) if expand_mono else bytes((d[0],))
    elif components == 4 and not write_alpha:
        # Composite against a magenta background.
        background = (255, 0, 255)
        px = [
            (background[k] + _truncating_div((d[k] - background[k]) * d[3], 255)) & 0xFF
            for k in range(3)
        ]
        out += bytes((px[2], px[1], px[0]))
    else:
        out += bytes((d[2], d[1], d[0]))
    if write_alpha:
        out.append(d[components - 1])
    return bytes(out)


def _row_pixels(pixels: bytes, width: int, components: int, row: int) -> List[bytes]:
    start = row * width * components
    return [
        pixels[start + i * components:start + (i + 1) * components] for i in range(width)
    ]


def _row_order(height: int, bottom_up: bool) -> Sequence[int]:
    return range(height - 1, -1, -1) if bottom_up else range(height)


def _pixel_rows(
    pixels: bytes,
    width: int,
    height: int,
    components: int,
    write_alpha: bool,
    expand_mono: bool,
    pad: int,
    bottom_up: bool,
) -> bytes:
    out = bytearray()
    for row in _row_order(height, bottom_up):
        for px in _row_pixels(pixels, width, components, row):
            out += _pixel(px, components, write_alpha, expand_mono)
        out += bytes(pad)
    return bytes(out)


def encode_bmp(
    pixels: bytes,
    width: int,
    height: int,
    components: int,
    flip_vertically: bool = False,
) -> bytes:
    """Encode pixels as a BMP file image.

    Grey input is expanded to RGB. Four-channel input is written as 32-bit
    BGRA with a V4 header; anything else as 24-bit BGR.
    """
    data = _validate(pixels, width, height, components)
    bottom_up = not flip_vertically
    if components != 4:
        pad = (-width * 3) & 3
        offset = _BMP_FILE_HEADER + _BMP_INFO_HEADER
        header = _fields(
            "11 4 22 4" "4 44 22 444444",
            ord("B"), ord("M"), offset + (width * 3 + pad) * height, 0, 0, offset,
            _BMP_INFO_HEADER, width, height, 1, 24, 0, 0, 0, 0, 0, 0,
        )
        body = _pixel_rows(data, width, height, components, False, True, pad, bottom_up)
    else:
        offset = _BMP_FILE_HEADER + _BMP_V4_HEADER
        header = _fields(
            "11 4 22 4" "4 44 22 444444 4444 4 444 444 444 444",
            ord("B"), ord("M"), offset + width * height * 4, 0, 0, offset,
            _BMP_V4_HEADER, width, height, 1, 32, 3, 0, 0, 0, 0, 0,
            0xFF0000, 0xFF00, 0xFF, 0xFF000000,
            0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0,
        )
        body = _pixel_rows(data, width, height, components, True, True, 0, bottom_up)
    return header + body


def write_bmp(
    path: PathLike,
    pixels: bytes,
    width: int,
    height: int,
    components: int,
    flip_vertically: bool = False,
) -> None:
    """Encode pixels as BMP and write the file to ``path``."""
    data = encode_bmp(pixels, width, height, components, flip_vertically)
    with open(path, "wb") as handle:
        handle.write(data)


def _tga_rle_row(row: List[bytes], components: int, has_alpha: bool) -> bytes:
    out = bytearray()
    width = len(row)
    i = 0
    while i < width:
        diff = True
        length = 1
        if i < width - 1:
            length += 1
            diff = row[i] != row[i + 1]
            k = i + 2
            if diff:
                prev = i
                while k < width and length < _TGA_MAX_PACKET:
                    if row[prev] != row[k]:
                        prev += 1
                        length += 1
                    else:
                        length -= 1
                        break
                    k += 1
            else:
                while k < width and length < _TGA_MAX_PACKET:
                    if row[i] == row[k]:
                        length += 1
                    else:
                        break
                    k += 1
        if diff:
            out.append((length - 1) & 0xFF)
            for px in row[i:i + length]:
                out += _pixel(px, components, has_alpha, False)
        else:
            out.append((length - 129) & 0xFF)
            out += _pixel(row[i], components, has_alpha, False)
        i += length
    return bytes(out)


def encode_tga(
    pixels: bytes,
    width: int,
    height: int,
    components: int,
    rle: bool = True,
    flip_vertically: bool = False,
) -> bytes:
    """Encode pixels as a TGA file image, run-length encoded by default."""
    data = _validate(pixels, width, height, components)
    has_alpha = components in (2, 4)
    color_bytes = components - 1 if has_alpha else components
    image_type = 3 if color_bytes < 2 else 2
    bits = (color_bytes + int(has_alpha)) * 8
    descriptor = int(has_alpha) * 8
    bottom_up = not flip_vertically

    if not rle:
        header = _fields(
            "111 221 2222 11", 0, 0, image_type, 0, 0, 0, 0, 0, width, height, bits, descriptor
        )
        body = _pixel_rows(data, width, height, components, has_alpha, False, 0, bottom_up)
        return header + body

    header = _fields(
        "111 221 2222 11", 0, 0, image_type + 8, 0, 0, 0, 0, 0, width, height, bits, descriptor
    )
    body = bytearray()
    for row in _row_order(height, bottom_up):
        body += _tga_rle_row(_row_pixels(data, width, components, row), components, has_alpha)
    return header + bytes(body)


def write_tga(
    path: PathLike,
    pixels: bytes,
    width: int,
    height: int,
    components: int,
    rle: bool = True,
    flip_vertically: bool = False,
) -> None:
    """Encode pixels as TGA and write the file to ``path``."""
    data = encode_tga(pixels, width, height, components, rle, flip_vertically)
    with open(path, "wb") as handle:
        handle.write(data)


def _to_byte(value: float) -> int:
    return max(0, int(value)) & 0xFF


def linear_to_rgbe(red: float, green: float, blue: float) -> bytes:
    """Pack a linear colour as four RGBE bytes (shared exponent)."""
    max_component = max(red, max(green, blue))
    if max_component < 1e-32:
        return bytes(4)
    mantissa, exponent = math.frexp(max_component)
    scale = mantissa * 256.0 / max_component
    return bytes(
        (
            _to_byte(red * scale),
            _to_byte(green * scale),
            _to_byte(blue * scale),
            (exponent + 128) & 0xFF,
        )
    )


def _linear_pixels(scanline: Sequence[float], width: int, components: int) -> Iterator[bytes]:
    for x in range(width):
        base = x * components
        if components >= 3:
            r, g, b = scanline[base], scanline[base + 1], scanline[base + 2]
        else:
            r = g = b = scanline[base]
        yield linear_to_rgbe(r, g, b)


def _hdr_rle_channel(values: bytes) -> bytes:
    out = bytearray()
    width = len(values)
    x = 0
    while x < width:
        r = x
        while r + 2 < width:
            if values[r] == values[r + 1] == values[r + 2]:
                break
            r += 1
        if r + 2 >= width:
            r = width
        while x < r:
            length = min(r - x, _HDR_DUMP_MAX)
            out.append(length)
            out += values[x:x + length]
            x += length
        if r + 2 < width:
            while r < width and values[r] == values[x]:
                r += 1
            while x < r:
                length = min(r - x, _HDR_RUN_MAX)
                out += bytes(((length + 128) & 0xFF, values[x]))
                x += length
    return bytes(out)


def _hdr_scanline(scanline: Sequence[float], width: int, components: int) -> bytes:
    rgbe = list(_linear_pixels(scanline, width, components))
    if width < _HDR_RLE_MIN_WIDTH or width >= _HDR_RLE_MAX_WIDTH:
        return b"".join(rgbe)
    out = bytearray((2, 2, (width & 0xFF00) >> 8, width & 0x00FF))
    for channel in range(4):
        out += _hdr_rle_channel(bytes(px[channel] for px in rgbe))
    return bytes(out)


def encode_hdr(
    data: Sequence[float],
    width: int,
    height: int,
    components: int,
    flip_vertically: bool = False,
) -> bytes:
    """Encode linear float pixels as a Radiance RGBE (.hdr) file image.

    Alpha is dropped and grey values are replicated over three channels.
    """
    if data is None or width <= 0 or height <= 0:
        raise ValueError("HDR images need data and a positive width and height")
    if components not in (1, 2, 3, 4):
        raise ValueError(f"components must be 1..4, got {components}")
    values = list(data)
    needed = width * height * components
    if len(values) < needed:
        raise ValueError(f"pixel data too short: need {needed} values, got {len(values)}")

    out = bytearray(_HDR_HEADER)
    out += f"EXPOSURE=          1.0000000000000\n\n-Y {height} +X {width}\n".encode("ascii")
    row_size = width * components
    for i in range(height):
        row = height - 1 - i if flip_vertically else i
        out += _hdr_scanline(values[row * row_size:(row + 1) * row_size], width, components)
    return bytes(out)


def write_hdr(
    path: PathLike,
    data: Sequence[float],
    width: int,
    height: int,
    components: int,
    flip_vertically: bool = False,
) -> None:
    """Encode float pixels as HDR and write the file to ``path``."""
    encoded = encode_hdr(data, width, height, components, flip_vertically)
    with open(path, "wb") as handle:
        handle.write(encoded)