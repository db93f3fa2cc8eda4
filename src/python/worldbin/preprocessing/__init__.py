"""Altitude grid processing.

This module provides the steps between raw 8-bit samples and world file
altitudes: dimension validation, normalization and smoothing.
"""

from worldbin.preprocessing.normalize import (
    GridSizeMismatchError,
    compute_min_max,
    dequantize_samples,
    quantize_altitudes,
)
from worldbin.preprocessing.smooth import smooth_altitudes
from worldbin.preprocessing.validate import (
    DimensionError,
    NotPowerOfTwoError,
    NotSquareError,
    PixelCountMismatchError,
    validate_dimensions,
)

__all__ = [
    "DimensionError",
    "GridSizeMismatchError",
    "NotPowerOfTwoError",
    "NotSquareError",
    "PixelCountMismatchError",
    "compute_min_max",
    "dequantize_samples",
    "quantize_altitudes",
    "smooth_altitudes",
    "validate_dimensions",
]
