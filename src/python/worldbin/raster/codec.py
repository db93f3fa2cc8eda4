"""PNG encoding and decoding for 8-bit heightmap rasters.

Pillow does the PNG work. This module only converts between encoded bytes and
a ``(height, width, channels)`` uint8 array, with channel 0 carrying the
altitude sample.
"""

import io
import logging
from dataclasses import dataclass

import numpy as np
from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

# Pillow modes that already hold 8-bit channels
_EIGHT_BIT_MODES = ("L", "LA", "RGB", "RGBA")

# 16-bit grayscale modes, reduced to 8-bit on decode
_SIXTEEN_BIT_MODES = ("I;16", "I;16L", "I;16B", "I")


class RasterDecodeError(Exception):
    """Raised when image bytes cannot be decoded."""

    pass


class RasterEncodeError(Exception):
    """Raised when a raster cannot be encoded as PNG."""

    pass


@dataclass(eq=False)
class RasterImage:
    """An 8-bit raster image.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        pixels: uint8 array of shape (height, width, channels).
    """

    width: int
    height: int
    pixels: np.ndarray

    def __post_init__(self) -> None:
        if self.pixels.ndim == 2:
            self.pixels = self.pixels[:, :, np.newaxis]
        if self.pixels.ndim != 3 or self.pixels.shape[:2] != (self.height, self.width):
            raise ValueError(
                f"Pixel array shape {self.pixels.shape} does not match "
                f"{self.width}x{self.height} image"
            )
        if self.pixels.dtype != np.uint8:
            raise ValueError(f"Expected uint8 pixels, got {self.pixels.dtype}")

    @property
    def channels(self) -> int:
        """Number of channels per pixel."""
        return self.pixels.shape[2]

    def channel(self, index: int = 0) -> np.ndarray:
        """Return one channel as a flat row-major uint8 array."""
        return self.pixels[:, :, index].ravel()

    @classmethod
    def from_samples(
        cls, samples: np.ndarray, width: int, height: int, channels: int = 3
    ) -> "RasterImage":
        """Build an image with the same sample replicated in every channel.

        Args:
            samples: Row-major uint8 samples of length width * height.
            width: Image width.
            height: Image height.
            channels: Channels per pixel (1 for grayscale, 3 for RGB).
        """
        grid = np.asarray(samples, dtype=np.uint8).reshape((height, width))
        pixels = np.repeat(grid[:, :, np.newaxis], channels, axis=2)
        return cls(width=width, height=height, pixels=pixels)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RasterImage):
            return NotImplemented
        return (
            self.width == other.width
            and self.height == other.height
            and np.array_equal(self.pixels, other.pixels)
        )


def probe_png_size(data: bytes) -> tuple[int, int]:
    """Read (width, height) from image bytes without decoding pixel data.

    Raises:
        RasterDecodeError: If the bytes are not a recognizable image.
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            return img.size
    except (UnidentifiedImageError, OSError, EOFError, SyntaxError, ValueError) as e:
        raise RasterDecodeError(f"Failed to read image header: {e}") from e


def decode_png(data: bytes) -> RasterImage:
    """Decode image bytes into a RasterImage.

    Palette and other exotic modes are expanded to RGBA. 16-bit grayscale is
    reduced to 8-bit by dividing by 257.

    Raises:
        RasterDecodeError: If the bytes are malformed or not an image.
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            if img.mode in _EIGHT_BIT_MODES:
                pixels = np.asarray(img, dtype=np.uint8)
            elif img.mode in _SIXTEEN_BIT_MODES:
                wide = np.asarray(img).astype(np.int64)
                pixels = (np.clip(wide, 0, 65535) // 257).astype(np.uint8)
            else:
                pixels = np.asarray(img.convert("RGBA"), dtype=np.uint8)
            width, height = img.size
    except (UnidentifiedImageError, OSError, EOFError, SyntaxError, ValueError) as e:
        raise RasterDecodeError(f"Failed to decode image: {e}") from e

    logger.debug(f"Decoded {width}x{height} image")
    return RasterImage(width=width, height=height, pixels=pixels)


def encode_png(image: RasterImage) -> bytes:
    """Encode a RasterImage as PNG bytes.

    Uses maximum zlib compression with Pillow's adaptive row filtering, so
    encoding the same image twice yields identical bytes.

    Raises:
        RasterEncodeError: If the channel count has no PNG equivalent or
            Pillow fails to write the image.
    """
    channels = image.channels
    if channels == 1:
        array = image.pixels[:, :, 0]
    elif channels in (2, 3, 4):
        array = image.pixels
    else:
        raise RasterEncodeError(f"Cannot encode a {channels}-channel image as PNG")

    buffer = io.BytesIO()
    try:
        Image.fromarray(np.ascontiguousarray(array)).save(buffer, format="PNG", optimize=True)
    except (OSError, ValueError, TypeError) as e:
        raise RasterEncodeError(f"Failed to encode PNG: {e}") from e

    logger.debug(f"Encoded {image.width}x{image.height} image ({len(buffer.getvalue())} bytes)")
    return buffer.getvalue()
