"""Dimension validation for heightmap images.

World files store the map size as a pair of base-2 exponents, so every
heightmap that is packed into one must be square with a power-of-two side.
"""

import logging

logger = logging.getLogger(__name__)


class DimensionError(ValueError):
    """Raised when image dimensions cannot be stored in a world file.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
    """

    def __init__(self, message: str, width: int, height: int) -> None:
        super().__init__(message)
        self.message = message
        self.width = width
        self.height = height


class NotSquareError(DimensionError):
    """Raised when width and height differ."""


class NotPowerOfTwoError(DimensionError):
    """Raised when the side length is not a power of two."""


class PixelCountMismatchError(DimensionError):
    """Raised when 2^n * 2^n disagrees with width * height."""


def is_power_of_two(value: int) -> bool:
    """Return True for 1, 2, 4, 8, ...; zero and negatives are rejected."""
    return value > 0 and (value & (value - 1)) == 0


def validate_dimensions(width: int, height: int) -> int:
    """Validate heightmap dimensions and return the map-size exponent.

    Args:
        width: Image width in pixels.
        height: Image height in pixels.

    Returns:
        The exponent ``n`` such that ``width == height == 2 ** n``.

    Raises:
        NotSquareError: If width and height differ.
        NotPowerOfTwoError: If the side length is not a power of two.
        PixelCountMismatchError: If the derived pixel count disagrees with
            ``width * height``. This cannot happen once the two checks above
            pass; it is kept as an internal consistency assertion.

    Example:
        >>> validate_dimensions(1024, 1024)
        10
    """
    if width != height:
        raise NotSquareError(
            f"Image width and height must be equal, got {width}x{height}", width, height
        )
    if not is_power_of_two(width):
        raise NotPowerOfTwoError(
            f"Image width (and height) must be a power of two, got {width}", width, height
        )

    exponent = width.bit_length() - 1
    expected_pixels = (1 << exponent) * (1 << exponent)
    if width * height != expected_pixels:
        raise PixelCountMismatchError(
            f"Pixel count mismatch: found {width * height} pixels, "
            f"expected {expected_pixels} pixels",
            width,
            height,
        )

    logger.debug(f"Validated {width}x{height} heightmap (exponent {exponent})")
    return exponent
