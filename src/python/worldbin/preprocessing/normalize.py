"""Altitude normalization between float grids and 8-bit samples.

Unpacking maps world altitudes onto [0, 255] using the observed minimum and
maximum. Packing maps 8-bit samples back to altitudes with a scale factor and
a bias. An 8-bit raster only holds 256 levels, so the round trip is lossy.
"""

from typing import Optional

import numpy as np

# Largest 8-bit sample value
UINT8_MAX = 255


class GridSizeMismatchError(ValueError):
    """Raised when a grid's length does not match its raster dimensions.

    Attributes:
        expected: The expected number of cells (width * height).
        actual: The number of cells found in the grid.
    """

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"Grid size mismatch: expected {expected} cells, got {actual}")
        self.expected = expected
        self.actual = actual


def check_grid_size(grid: np.ndarray, width: int, height: int) -> None:
    """Ensure ``grid`` holds exactly ``width * height`` cells.

    Raises:
        GridSizeMismatchError: If the lengths disagree.
    """
    expected = width * height
    if grid.size != expected:
        raise GridSizeMismatchError(expected, grid.size)


def compute_min_max(grid: np.ndarray) -> tuple[float, float]:
    """Return the (min, max) of an altitude grid in one pass.

    Raises:
        ValueError: If the grid is empty.
    """
    values = np.asarray(grid, dtype=np.float64).ravel()
    if values.size == 0:
        raise ValueError("Cannot compute the altitude range of an empty grid")

    low = high = float(values[0])
    for value in values[1:].tolist():
        if value < low:
            low = value
        elif value > high:
            high = value
    return low, high


def quantize_altitudes(
    grid: np.ndarray,
    min_altitude: float,
    max_altitude: float,
    width: Optional[int] = None,
    height: Optional[int] = None,
) -> np.ndarray:
    """Rescale altitudes linearly onto 8-bit samples.

    Each value becomes ``round(((value - min) / range) * 255)`` clamped to
    [0, 255]. A flat map (range of exactly zero) uses a range of 1.0 so every
    sample comes out as 0 instead of NaN. Halves round away from zero.

    Args:
        grid: Row-major float altitude grid.
        min_altitude: Lower bound mapped to 0.
        max_altitude: Upper bound mapped to 255.
        width: Optional raster width; checked against the grid with height.
        height: Optional raster height.

    Returns:
        uint8 array with the same length as ``grid``.

    Raises:
        GridSizeMismatchError: If width/height are given and disagree with the grid.
    """
    values = np.asarray(grid, dtype=np.float64).ravel()
    if width is not None and height is not None:
        check_grid_size(values, width, height)

    value_range = max_altitude - min_altitude
    if value_range == 0.0:
        value_range = 1.0

    scaled = (values - min_altitude) / value_range * UINT8_MAX
    rounded = np.floor(scaled + 0.5)
    return np.clip(rounded, 0, UINT8_MAX).astype(np.uint8)


def dequantize_samples(
    samples: np.ndarray,
    scale_factor: float,
    bias: float,
    width: Optional[int] = None,
    height: Optional[int] = None,
) -> np.ndarray:
    """Convert 8-bit samples to altitudes: ``(s / 255) * scale_factor + bias``.

    Args:
        samples: uint8 samples in row-major order.
        scale_factor: Altitude span covered by the full 0..255 range.
        bias: Altitude of a zero sample.
        width: Optional raster width; checked against the samples with height.
        height: Optional raster height.

    Returns:
        float64 array of altitudes.

    Raises:
        GridSizeMismatchError: If width/height are given and disagree with the samples.
    """
    values = np.asarray(samples).ravel()
    if width is not None and height is not None:
        check_grid_size(values, width, height)

    return (values.astype(np.float64) / UINT8_MAX) * scale_factor + bias
