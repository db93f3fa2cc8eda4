"""PNG raster encoding and decoding."""

from worldbin.raster.codec import (
    RasterDecodeError,
    RasterEncodeError,
    RasterImage,
    decode_png,
    encode_png,
    probe_png_size,
)

__all__ = [
    "RasterDecodeError",
    "RasterEncodeError",
    "RasterImage",
    "decode_png",
    "encode_png",
    "probe_png_size",
]
