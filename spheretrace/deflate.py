"""A small zlib stream compressor using fixed Huffman codes.

It produces a zlib stream whose payload is one fixed-Huffman DEFLATE block.
Repeated byte sequences are found with a hash chain and lazy matching. When
that stream would be larger than the input, stored (uncompressed) blocks are
written instead.
"""

from __future__ import annotations

from typing import List, Optional

__all__ = ["zlib_compress", "adler32"]

_HASH_SIZE = 16384
_WINDOW = 32768
_MAX_MATCH = 258
_MIN_QUALITY = 5
_STORED_BLOCK = 32767
_ADLER_MOD = 65521
_ADLER_CHUNK = 5552
_MASK32 = 0xFFFFFFFF

_LENGTH_BASE = (
    3, 4, 5, 6, 7, 8, 9, 10, 11, 13, 15, 17, 19, 23, 27, 31, 35, 43, 51, 59,
    67, 83, 99, 115, 131, 163, 195, 227, 258, 259,
)
_LENGTH_EXTRA = (
    0, 0, 0, 0, 0, 0, 0, 0, 1, 1, 1, 1, 2, 2, 2, 2, 3, 3, 3, 3,
    4, 4, 4, 4, 5, 5, 5, 5, 0,
)
_DIST_BASE = (
    1, 2, 3, 4, 5, 7, 9, 13, 17, 25, 33, 49, 65, 97, 129, 193, 257, 385, 513,
    769, 1025, 1537, 2049, 3073, 4097, 6145, 8193, 12289, 16385, 24577, 32768,
)
_DIST_EXTRA = (
    0, 0, 0, 0, 1, 1, 2, 2, 3, 3, 4, 4, 5, 5, 6, 6, 7, 7, 8, 8,
    9, 9, 10, 10, 11, 11, 12, 12, 13, 13,
)


def _bit_reverse(code: int, bits: int) -> int:
    result = 0
    for _ in range(bits):
        result = (result << 1) | (code & 1)
        code >>= 1
    return result


def _hash3(data: bytes, pos: int) -> int:
    h = data[pos] + (data[pos + 1] << 8) + (data[pos + 2] << 16)
    h ^= (h << 3) & _MASK32
    h = (h + (h >> 5)) & _MASK32
    h ^= (h << 4) & _MASK32
    h = (h + (h >> 17)) & _MASK32
    h ^= (h << 25) & _MASK32
    h = (h + (h >> 6)) & _MASK32
    return h & (_HASH_SIZE - 1)


def _match_length(data: bytes, earlier: int, current: int, limit: int) -> int:
    limit = min(limit, _MAX_MATCH)
    n = 0
    while n + 16 <= limit and data[earlier + n:earlier + n + 16] == data[current + n:current + n + 16]:
        n += 16
    while n < limit and data[earlier + n] == data[current + n]:
        n += 1
    return n


class _BitStream:
    """Least-significant-bit-first writer appending to a byte array."""

    def __init__(self, out: bytearray) -> None:
        self.out = out
        self.buffer = 0
        self.count = 0

    def add(self, code: int, bits: int) -> None:
        self.buffer |= code << self.count
        self.count += bits
        while self.count >= 8:
            self.out.append(self.buffer & 0xFF)
            self.buffer >>= 8
            self.count -= 8

    def _huffman(self, code: int, bits: int) -> None:
        self.add(_bit_reverse(code, bits), bits)

    def literal(self, value: int) -> None:
        """Emit a literal byte (0..255) with the fixed code."""
        if value <= 143:
            self._huffman(0x30 + value, 8)
        else:
            self._huffman(0x190 + value - 144, 9)

    def symbol(self, value: int) -> None:
        """Emit any literal/length symbol (0..287) with the fixed code."""
        if value <= 255:
            self.literal(value)
        elif value <= 279:
            self._huffman(value - 256, 7)
        else:
            self._huffman(0xC0 + value - 280, 8)

    def pad_to_byte(self) -> None:
        while self.count:
            self.add(0, 1)


def _emit_match(stream: _BitStream, length: int, distance: int) -> None:
    j = 0
    while length > _LENGTH_BASE[j + 1] - 1:
        j += 1
    stream.symbol(j + 257)
    if _LENGTH_EXTRA[j]:
        stream.add(length - _LENGTH_BASE[j], _LENGTH_EXTRA[j])
    j = 0
    while distance > _DIST_BASE[j + 1] - 1:
        j += 1
    stream.add(_bit_reverse(j, 5), 5)
    if _DIST_EXTRA[j]:
        stream.add(distance - _DIST_BASE[j], _DIST_EXTRA[j])


def _fixed_huffman_block(data: bytes, quality: int, out: bytearray) -> None:
    stream = _BitStream(out)
    stream.add(1, 1)  # BFINAL
    stream.add(1, 2)  # BTYPE = fixed Huffman

    table: List[List[int]] = [[] for _ in range(_HASH_SIZE)]
    size = len(data)
    i = 0
    while i < size - 3:
        h = _hash3(data, i)
        best = 3
        best_pos: Optional[int] = None
        bucket = table[h]
        for pos in bucket:
            if pos > i - _WINDOW:
                length = _match_length(data, pos, i, size - i)
                if length >= best:
                    best = length
                    best_pos = pos
        if len(bucket) == 2 * quality:
            del bucket[:quality]
        bucket.append(i)

        if best_pos is not None:
            # Lazy matching: prefer a literal if the next byte starts a longer match.
            for pos in table[_hash3(data, i + 1)]:
                if pos > i - (_WINDOW - 1):
                    if _match_length(data, pos, i + 1, size - i - 1) > best:
                        best_pos = None
                        break

        if best_pos is not None:
            _emit_match(stream, best, i - best_pos)
            i += best
        else:
            stream.literal(data[i])
            i += 1

    for value in data[i:]:
        stream.literal(value)
    stream.symbol(256)
    stream.pad_to_byte()


def _stored_blocks(data: bytes, out: bytearray) -> None:
    size = len(data)
    for start in range(0, size, _STORED_BLOCK):
        block = data[start:start + _STORED_BLOCK]
        length = len(block)
        out.append(1 if start + length == size else 0)
        out += bytes((length & 0xFF, (length >> 8) & 0xFF, ~length & 0xFF, (~length >> 8) & 0xFF))
        out += block


def adler32(data: bytes) -> int:
    """Adler-32 checksum of ``data``."""
    s1, s2 = 1, 0
    view = memoryview(bytes(data))
    first = len(view) % _ADLER_CHUNK
    chunks = [view[:first]] if first else []
    chunks += [view[k:k + _ADLER_CHUNK] for k in range(first, len(view), _ADLER_CHUNK)]
    for chunk in chunks:
        for value in chunk:
            s1 += value
            s2 += s1
        s1 %= _ADLER_MOD
        s2 %= _ADLER_MOD
    return (s2 << 16) | s1


def zlib_compress(data: bytes, quality: int = 8) -> bytes:
    """Compress ``data`` into a zlib stream.

    ``quality`` bounds the hash-chain length searched for matches; values
    below 5 are raised to 5.
    """
    data = bytes(data)
    quality = max(quality, _MIN_QUALITY)
    out = bytearray((0x78, 0x5E))
    _fixed_huffman_block(data, quality, out)

    size = len(data)
    stored_size = size + 2 + ((size + _STORED_BLOCK - 1) // _STORED_BLOCK) * 5
    if len(out) > stored_size:
        del out[2:]
        _stored_blocks(data, out)

    out += adler32(data).to_bytes(4, "big")
    return bytes(out)