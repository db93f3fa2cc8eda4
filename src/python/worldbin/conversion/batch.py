"""Batch conversion of every world file or heightmap in a directory.

A failure on one file is logged and recorded, and the batch moves on to the
next file.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from worldbin.conversion.pipeline import (
    DEFAULT_HEIGHT_OFFSET,
    ConversionReport,
    pack_file,
    unpack_file,
)
from worldbin.parser.worldfile import WorldFileError
from worldbin.preprocessing.validate import DimensionError
from worldbin.raster.codec import RasterDecodeError, RasterEncodeError

logger = logging.getLogger(__name__)

# Per-file errors that skip the file instead of aborting the batch
SKIPPABLE_ERRORS = (WorldFileError, RasterDecodeError, RasterEncodeError, DimensionError, OSError)


class Direction(Enum):
    """Which way a batch converts."""

    PACK = "pack"
    UNPACK = "unpack"

    @property
    def input_suffix(self) -> str:
        """File extension of the files this direction reads."""
        return ".png" if self is Direction.PACK else ".bin"


@dataclass
class BatchProgress:
    """Progress information for a batch conversion.

    Attributes:
        total: Number of candidate files.
        converted: Number of files converted successfully.
        failed: Number of files that failed.
        current_file: Name of the file being converted.
    """

    total: int = 0
    converted: int = 0
    failed: int = 0
    current_file: str = ""


@dataclass
class BatchResult:
    """Result of a batch conversion.

    Attributes:
        input_dir: Directory that was scanned.
        reports: One report per converted file.
        errors: One ``{"path", "error"}`` entry per failed file.
    """

    input_dir: Path
    reports: list[ConversionReport] = field(default_factory=list)
    errors: list[dict[str, str]] = field(default_factory=list)

    @property
    def converted(self) -> int:
        """Number of files converted."""
        return len(self.reports)

    @property
    def failed(self) -> int:
        """Number of files that failed."""
        return len(self.errors)


class BatchConverter:
    """Converts every matching file in a directory.

    Unpacking reads ``*.bin`` files and writes a ``.png`` next to each one.
    Packing reads ``*.png`` files and writes a ``.bin`` next to each one.
    Subdirectories are not scanned.

    Args:
        direction: Whether to pack or unpack.
        scale_factor: Altitude span for packing; required for Direction.PACK.
        height_offset: Altitude of a zero sample when packing.
        smooth: Apply one smoothing pass when packing.
        progress_callback: Optional callback for progress updates.

    Example:
        >>> converter = BatchConverter(Direction.UNPACK)
        >>> result = converter.convert(Path("/data/worlds"))
        >>> print(f"Converted {result.converted} files")
    """

    def __init__(
        self,
        direction: Direction,
        scale_factor: Optional[float] = None,
        height_offset: float = DEFAULT_HEIGHT_OFFSET,
        smooth: bool = False,
        progress_callback: Optional[Callable[[BatchProgress], None]] = None,
    ):
        if direction is Direction.PACK and scale_factor is None:
            raise ValueError("scale_factor is required when packing")

        self.direction = direction
        self.scale_factor = scale_factor
        self.height_offset = height_offset
        self.smooth = smooth
        self.progress_callback = progress_callback

    def convert(self, input_dir: Path) -> BatchResult:
        """Convert all matching files in ``input_dir``.

        Returns:
            BatchResult with per-file reports and errors.

        Raises:
            FileNotFoundError: If input_dir doesn't exist.
            NotADirectoryError: If input_dir is not a directory.
        """
        input_dir = Path(input_dir)
        if not input_dir.exists():
            raise FileNotFoundError(f"Input directory not found: {input_dir}")
        if not input_dir.is_dir():
            raise NotADirectoryError(f"The provided path is not a directory: {input_dir}")

        candidates = self.find_candidates(input_dir)
        logger.info(f"Found {len(candidates)} {self.direction.input_suffix} files in {input_dir}")

        progress = BatchProgress(total=len(candidates))
        result = BatchResult(input_dir=input_dir)

        for path in candidates:
            progress.current_file = path.name
            self._update_progress(progress)

            try:
                result.reports.append(self._convert_one(path))
                progress.converted += 1
            except SKIPPABLE_ERRORS as e:
                logger.warning(f"Failed to convert {path}: {e}")
                result.errors.append({"path": str(path), "error": str(e)})
                progress.failed += 1

            self._update_progress(progress)

        return result

    def find_candidates(self, input_dir: Path) -> list[Path]:
        """List input files for this direction, sorted by name."""
        suffix = self.direction.input_suffix
        return sorted(
            path
            for path in input_dir.iterdir()
            if path.is_file() and path.suffix.lower() == suffix
        )

    def _convert_one(self, path: Path) -> ConversionReport:
        """Convert a single file in the configured direction."""
        if self.direction is Direction.UNPACK:
            return unpack_file(path)
        return pack_file(path, self.scale_factor, self.height_offset, self.smooth)

    def _update_progress(self, progress: BatchProgress) -> None:
        """Call the progress callback if set."""
        if self.progress_callback:
            self.progress_callback(progress)
