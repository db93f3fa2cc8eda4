"""Unit tests for batch conversion."""

import io
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

from worldbin.conversion.batch import BatchConverter, BatchProgress, Direction
from worldbin.parser.worldfile import WorldFile, WorldFileVersion, WorldMap, serialize


def write_world_file(path: Path, surface: list[float]) -> None:
    """Write a square world file with the given surface."""
    values = np.array(surface)
    exponent = int(np.log2(np.sqrt(values.size)))
    world_map = WorldMap(
        map_size_lg=(exponent, exponent),
        scale_metadata=1.0,
        surface=values,
        basement=values.copy(),
    )
    path.write_bytes(serialize(WorldFile(version=WorldFileVersion.VELOREN_0_7_0, world_map=world_map)))


def write_png(path: Path, array: np.ndarray) -> None:
    """Write a grayscale PNG."""
    buffer = io.BytesIO()
    Image.fromarray(array.astype(np.uint8)).save(buffer, format="PNG")
    path.write_bytes(buffer.getvalue())


class TestBatchUnpack:
    """Tests for unpacking a directory of world files."""

    def test_converts_every_bin_file(self, tmp_path: Path) -> None:
        """Each .bin should get a .png next to it."""
        write_world_file(tmp_path / "a.bin", [0.0, 1.0, 2.0, 3.0])
        write_world_file(tmp_path / "b.bin", [5.0] * 16)
        (tmp_path / "notes.txt").write_text("ignored")

        result = BatchConverter(Direction.UNPACK).convert(tmp_path)

        assert result.converted == 2
        assert result.failed == 0
        assert (tmp_path / "a.png").exists()
        assert (tmp_path / "b.png").exists()
        assert [r.input_path.name for r in result.reports] == ["a.bin", "b.bin"]

    def test_reports_range_per_file(self, tmp_path: Path) -> None:
        """Each report should carry the file's altitude range."""
        write_world_file(tmp_path / "map.bin", [-600.0, 400.0, 0.0, 0.0])

        result = BatchConverter(Direction.UNPACK).convert(tmp_path)

        report = result.reports[0]
        assert (report.min_altitude, report.max_altitude) == (-600.0, 400.0)

    def test_bad_file_is_skipped(self, tmp_path: Path) -> None:
        """A corrupt file should be recorded without stopping the batch."""
        (tmp_path / "a_broken.bin").write_bytes(b"\x00\x00")
        (tmp_path / "b_future.bin").write_bytes(b"\x05\x00\x00\x00" + b"\x00" * 40)
        write_world_file(tmp_path / "c_good.bin", [1.0, 2.0, 3.0, 4.0])

        result = BatchConverter(Direction.UNPACK).convert(tmp_path)

        assert result.converted == 1
        assert result.failed == 2
        assert result.errors[0]["path"].endswith("a_broken.bin")
        assert "Truncated" in result.errors[0]["error"]
        assert "Unsupported world file version" in result.errors[1]["error"]
        assert (tmp_path / "c_good.png").exists()

    def test_subdirectories_not_scanned(self, tmp_path: Path) -> None:
        """Only the top level of the folder is converted."""
        nested = tmp_path / "nested"
        nested.mkdir()
        write_world_file(nested / "deep.bin", [0.0] * 4)

        result = BatchConverter(Direction.UNPACK).convert(tmp_path)

        assert result.converted == 0

    def test_progress_callback_called(self, tmp_path: Path) -> None:
        """The callback should see the final counts."""
        write_world_file(tmp_path / "a.bin", [0.0] * 4)
        seen: list[tuple[int, int, int]] = []

        def callback(progress: BatchProgress) -> None:
            seen.append((progress.total, progress.converted, progress.failed))

        BatchConverter(Direction.UNPACK, progress_callback=callback).convert(tmp_path)

        assert seen[0] == (1, 0, 0)
        assert seen[-1] == (1, 1, 0)


class TestBatchPack:
    """Tests for packing a directory of heightmaps."""

    def test_converts_every_png(self, tmp_path: Path) -> None:
        """Each valid .png should get a .bin next to it."""
        write_png(tmp_path / "square.png", np.full((4, 4), 255))
        write_png(tmp_path / "odd.png", np.zeros((3, 3)))

        converter = BatchConverter(Direction.PACK, scale_factor=1000.0, height_offset=-200.0)
        result = converter.convert(tmp_path)

        assert result.converted == 1
        assert result.failed == 1
        assert (tmp_path / "square.bin").exists()
        assert not (tmp_path / "odd.bin").exists()
        assert "power of two" in result.errors[0]["error"]
        assert result.reports[0].max_altitude == 800.0

    def test_scale_factor_required(self) -> None:
        """Packing without a scale factor is a caller error."""
        with pytest.raises(ValueError, match="scale_factor"):
            BatchConverter(Direction.PACK)


class TestBatchErrors:
    """Tests for invalid batch inputs."""

    def test_missing_directory(self, tmp_path: Path) -> None:
        """A missing folder should raise FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            BatchConverter(Direction.UNPACK).convert(tmp_path / "missing")

    def test_file_instead_of_directory(self, tmp_path: Path) -> None:
        """A regular file should raise NotADirectoryError."""
        path = tmp_path / "file.bin"
        path.write_bytes(b"")

        with pytest.raises(NotADirectoryError):
            BatchConverter(Direction.UNPACK).convert(path)
