# spheretrace

Pure-Python encoders that turn raw pixel buffers into image files: PNG, BMP,
TGA, Radiance HDR and baseline JPEG. They are the output side of a ray
tracer, and they use only the standard library.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Pixel layout

Pixels are interleaved 8-bit channels, stored left to right and top to
bottom. The channel count (`components`) can be 1 (grey), 2 (grey and
alpha), 3 (RGB) or 4 (RGBA). The HDR writer takes a sequence of linear float
values in the same layout instead. Every encoder accepts a
`flip_vertically` flag, which stores the rows in reverse order. Invalid
arguments, such as a bad channel count or a buffer that is too short, raise
`ValueError`.

## Example

```python
from spheretrace.png import encode_png, write_png
from spheretrace.jpeg import write_jpeg

width, height = 64, 32
pixels = bytes(
    value
    for y in range(height)
    for x in range(width)
    for value in (x * 4, y * 8, 128)
)

write_png("gradient.png", pixels, width, height, 3)
write_jpeg("gradient.jpg", pixels, width, height, 3, quality=85)
data = encode_png(pixels, width, height, 3, force_filter=0)
```

## Encoders

Each format has a function that returns `bytes` and a function that writes
the same bytes to a path:

| Format | Encode                 | Write               |
|--------|------------------------|---------------------|
| PNG    | `png.encode_png`       | `png.write_png`     |
| BMP    | `writers.encode_bmp`   | `writers.write_bmp` |
| TGA    | `writers.encode_tga`   | `writers.write_tga` |
| HDR    | `writers.encode_hdr`   | `writers.write_hdr` |
| JPEG   | `jpeg.encode_jpeg`     | `jpeg.write_jpeg`   |

- **PNG** (`spheretrace.png`): `stride` is the byte distance between rows,
  where 0 (the default) means tightly packed. `compression_level` (default
  8) is passed to the compressor. `force_filter` set to 0 to 4 uses that
  row filter everywhere. Any other value, including the default -1, picks
  for each row the filter with the smallest sum of signed byte magnitudes.
- **BMP** (`spheretrace.writers`): grey is expanded to RGB. Four-channel
  input is written as 32-bit BGRA with a V4 header, and everything else as
  24-bit BGR with rows padded to four bytes.
- **TGA** (`spheretrace.writers`): run-length encoded unless `rle=False`.
- **HDR** (`spheretrace.writers`): alpha is dropped and grey is replicated
  over three channels. Scanlines from 8 to 32767 pixels wide are
  run-length encoded per channel. `linear_to_rgbe(red, green, blue)`
  packs a single colour into its four RGBE bytes.
- **JPEG** (`spheretrace.jpeg`): `quality` is clamped to 1..100, and 0
  means 90. The default is 90. At quality 90 and below, chroma is
  subsampled 2x2. Alpha is ignored.

## Compression helpers

`spheretrace.deflate.zlib_compress(data, quality=8)` produces a zlib stream
that the standard `zlib.decompress` can read. It uses a single
fixed-Huffman DEFLATE block, and falls back to stored blocks when that
block would be larger than the input. `quality` bounds the hash-chain
length and is raised to at least 5. `spheretrace.deflate.adler32(data)`
returns the Adler-32 checksum.

## What this package does not do

The package only encodes images. It has no scene description, no
ray-tracing renderer and no command-line program. You build the pixel
buffers yourself and pass them to the encoders. There are no image readers
or decoders.