"""Heightmap <-> world file conversion."""

from worldbin.conversion.batch import BatchConverter, BatchProgress, BatchResult, Direction
from worldbin.conversion.pipeline import (
    ConversionReport,
    UnpackResult,
    pack,
    pack_file,
    pack_png,
    unpack,
    unpack_bytes,
    unpack_file,
)

__all__ = [
    "BatchConverter",
    "BatchProgress",
    "BatchResult",
    "ConversionReport",
    "Direction",
    "UnpackResult",
    "pack",
    "pack_file",
    "pack_png",
    "unpack",
    "unpack_bytes",
    "unpack_file",
]
