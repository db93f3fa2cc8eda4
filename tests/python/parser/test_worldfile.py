"""Unit tests for the world file reader and writer.

Tests verify the byte layout, round-trip fidelity and the typed errors raised
for unknown versions, truncated buffers and inconsistent fields.
"""

import struct
from pathlib import Path

import numpy as np
import pytest

from worldbin.parser.worldfile import (
    MAX_MAP_SIZE_LG,
    MalformedFieldError,
    TruncatedDataError,
    UnsupportedVersionError,
    WorldFile,
    WorldFileEncodeError,
    WorldFileParser,
    WorldFileVersion,
    WorldFileWriter,
    WorldMap,
    deserialize,
    serialize,
)


def make_world_file(exponent: int = 1, scale: float = 1000.0) -> WorldFile:
    """Build a small square world file with distinct surface and basement."""
    cells = (1 << exponent) ** 2
    surface = np.linspace(-600.0, 400.0, cells)
    basement = surface - 50.0
    world_map = WorldMap(
        map_size_lg=(exponent, exponent),
        scale_metadata=scale,
        surface=surface,
        basement=basement,
    )
    return WorldFile(version=WorldFileVersion.VELOREN_0_7_0, world_map=world_map)


def encode_raw(tag: int, size_lg: tuple[int, int], scale: float, surface, basement) -> bytes:
    """Hand-encode a world file buffer with struct."""
    data = struct.pack("<III", tag, size_lg[0], size_lg[1])
    data += struct.pack("<d", scale)
    data += struct.pack("<Q", len(surface)) + struct.pack(f"<{len(surface)}d", *surface)
    data += struct.pack("<Q", len(basement)) + struct.pack(f"<{len(basement)}d", *basement)
    return data


class TestSerializeLayout:
    """Tests for the exact byte layout of serialized world files."""

    def test_serialize_matches_hand_encoded_bytes(self) -> None:
        """Serialized bytes should match the documented little-endian layout."""
        surface = [-600.0, 400.0, -600.0, 400.0]
        basement = [1.0, 2.0, 3.0, 4.0]
        world_file = WorldFile(
            version=WorldFileVersion.VELOREN_0_7_0,
            world_map=WorldMap(
                map_size_lg=(1, 1),
                scale_metadata=1.5,
                surface=np.array(surface),
                basement=np.array(basement),
            ),
        )

        assert serialize(world_file) == encode_raw(0, (1, 1), 1.5, surface, basement)

    def test_serialize_starts_with_version_tag(self) -> None:
        """The first four bytes should hold the version tag."""
        data = serialize(make_world_file())

        assert struct.unpack("<I", data[:4])[0] == 0

    def test_serialize_length(self) -> None:
        """Buffer length should be header plus two prefixed f64 arrays."""
        data = serialize(make_world_file(exponent=2))

        # tag + 2 exponents + scale + 2 * (prefix + 16 values)
        assert len(data) == 4 + 8 + 8 + 2 * (8 + 16 * 8)

    def test_serialize_is_deterministic(self) -> None:
        """Serializing the same value twice should give identical bytes."""
        assert serialize(make_world_file()) == serialize(make_world_file())


class TestRoundTrip:
    """Tests for serialize/deserialize round trips."""

    def test_roundtrip_preserves_world_file(self) -> None:
        """deserialize(serialize(wf)) should equal wf exactly."""
        original = make_world_file(exponent=3, scale=1.6)

        assert deserialize(serialize(original)) == original

    def test_roundtrip_preserves_special_floats(self) -> None:
        """Negative zero, tiny and huge values should survive bit-exactly."""
        values = np.array([-0.0, 5e-324, 1.7976931348623157e308, -123.456])
        world_map = WorldMap(
            map_size_lg=(1, 1), scale_metadata=-0.0, surface=values, basement=values[::-1].copy()
        )
        original = WorldFile(version=WorldFileVersion.VELOREN_0_7_0, world_map=world_map)

        result = deserialize(serialize(original))

        assert result.world_map.surface.tobytes() == values.tobytes()
        assert np.signbit(result.world_map.scale_metadata)

    def test_deserialize_hand_encoded_buffer(self) -> None:
        """A buffer written by another encoder should decode field by field."""
        data = encode_raw(0, (0, 0), 2.5, [7.0], [-7.0])

        result = deserialize(data)

        assert result.version is WorldFileVersion.VELOREN_0_7_0
        assert result.world_map.map_size_lg == (0, 0)
        assert result.world_map.scale_metadata == 2.5
        assert result.world_map.surface.tolist() == [7.0]
        assert result.world_map.basement.tolist() == [-7.0]

    def test_deserialize_ignores_trailing_bytes(self) -> None:
        """Bytes after the basement array should be ignored."""
        original = make_world_file()

        assert deserialize(serialize(original) + b"\x00\x01\x02") == original


class TestDeserializeErrors:
    """Tests for typed errors on bad input."""

    def test_unknown_version_tag(self) -> None:
        """An unrecognized tag should raise UnsupportedVersionError."""
        data = encode_raw(1, (1, 1), 1.0, [0.0] * 4, [0.0] * 4)

        with pytest.raises(UnsupportedVersionError) as exc_info:
            deserialize(data)
        assert exc_info.value.tag == 1
        assert "Unsupported world file version" in str(exc_info.value)

    def test_empty_buffer_is_truncated(self) -> None:
        """An empty buffer should raise TruncatedDataError."""
        with pytest.raises(TruncatedDataError):
            deserialize(b"")

    def test_truncated_mid_array(self) -> None:
        """A buffer cut inside the surface array should raise TruncatedDataError."""
        data = serialize(make_world_file(exponent=2))
        header = 4 + 8 + 8 + 8

        with pytest.raises(TruncatedDataError):
            deserialize(data[: header + 5 * 8 + 3])

    def test_truncated_at_every_offset(self) -> None:
        """Every proper prefix of a valid buffer should raise TruncatedDataError."""
        data = serialize(make_world_file(exponent=0))

        for cut in range(len(data)):
            with pytest.raises(TruncatedDataError):
                deserialize(data[:cut])

    def test_length_prefix_larger_than_buffer(self) -> None:
        """A huge length prefix should fail before allocating anything."""
        data = struct.pack("<IIId", 0, 1, 1, 1.0) + struct.pack("<Q", 2**62)

        with pytest.raises(TruncatedDataError) as exc_info:
            deserialize(data)
        assert "surface" in str(exc_info.value)

    def test_array_length_disagrees_with_map_size(self) -> None:
        """Arrays must hold 2^x * 2^y values."""
        data = encode_raw(0, (1, 1), 1.0, [0.0] * 3, [0.0] * 3)

        with pytest.raises(MalformedFieldError) as exc_info:
            deserialize(data)
        assert "surface" in str(exc_info.value)

    def test_basement_length_disagrees_with_surface(self) -> None:
        """The basement must be as long as the surface."""
        data = encode_raw(0, (1, 1), 1.0, [0.0] * 4, [0.0] * 2)

        with pytest.raises(MalformedFieldError) as exc_info:
            deserialize(data)
        assert "basement" in str(exc_info.value)

    def test_exponent_out_of_range(self) -> None:
        """Exponents above MAX_MAP_SIZE_LG should be rejected."""
        data = encode_raw(0, (MAX_MAP_SIZE_LG + 1, 0), 1.0, [], [])

        with pytest.raises(MalformedFieldError):
            deserialize(data)


class TestSerializeErrors:
    """Tests for errors raised while serializing."""

    def test_serialize_rejects_unknown_version(self) -> None:
        """A WorldFile with an unknown version should not serialize."""
        world_file = make_world_file()
        world_file.version = 7

        with pytest.raises(WorldFileEncodeError):
            serialize(world_file)

    def test_serialize_rejects_inconsistent_map(self) -> None:
        """A map whose arrays do not fit map_size_lg should not serialize."""
        world_file = make_world_file(exponent=1)
        world_file.world_map.surface = np.zeros(3)

        with pytest.raises(WorldFileEncodeError):
            serialize(world_file)


class TestWorldMap:
    """Tests for WorldMap helpers."""

    def test_dimensions_from_exponents(self) -> None:
        """width/height should be 2 ** exponent."""
        world_map = make_world_file(exponent=3).world_map

        assert world_map.width == 8
        assert world_map.height == 8
        assert world_map.cell_count == 64

    def test_equality_compares_arrays(self) -> None:
        """Maps with different altitudes should not be equal."""
        first = make_world_file().world_map
        second = make_world_file().world_map
        second.surface = second.surface + 1.0

        assert first == make_world_file().world_map
        assert first != second


class TestWorldFileFiles:
    """Tests for reading and writing world files on disk."""

    def test_write_then_parse(self, tmp_path: Path) -> None:
        """A written file should parse back to the same value."""
        original = make_world_file(exponent=2)
        path = tmp_path / "map.bin"

        written = WorldFileWriter.write(original, path)

        assert written == path.stat().st_size
        assert WorldFileParser.parse(path) == original

    def test_parse_raises_on_nonexistent_file(self) -> None:
        """Should raise FileNotFoundError for missing files."""
        with pytest.raises(FileNotFoundError):
            WorldFileParser.parse(Path("/nonexistent/path/map.bin"))

    def test_parse_raises_on_truncated_file(self, tmp_path: Path) -> None:
        """A truncated file on disk should raise TruncatedDataError."""
        path = tmp_path / "broken.bin"
        path.write_bytes(serialize(make_world_file())[:-4])

        with pytest.raises(TruncatedDataError):
            WorldFileParser.parse(path)
