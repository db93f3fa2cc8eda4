"""Reader and writer for versioned binary world files.

A world file is a tagged union: a version tag followed by the fields of the
map variant for that version. The layout matches bincode 1.x defaults
(little-endian, fixed-width integers, u64 length prefixes), so files are
interchangeable with other readers of the same format.

Veloren 0.7.0 layout (tag 0):

    u32      version tag
    u32 u32  map_size_lg (log2 width, log2 height)
    f64      scale_metadata
    u64      surface length, then that many f64 values
    u64      basement length, then that many f64 values
"""

import io
import logging
import struct
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path
from typing import BinaryIO, Callable, Union

import numpy as np

logger = logging.getLogger(__name__)

# Fixed-width wire types (little-endian)
_U32 = struct.Struct("<I")
_U64 = struct.Struct("<Q")
_F64 = struct.Struct("<d")
_F64_ARRAY_DTYPE = np.dtype("<f8")

# Largest accepted map-size exponent per axis (2^16 = 65536 cells per side)
MAX_MAP_SIZE_LG = 16


class WorldFileVersion(IntEnum):
    """Known world file version tags."""

    VELOREN_0_7_0 = 0


class WorldFileError(Exception):
    """Base class for world file read/write errors."""

    pass


class UnsupportedVersionError(WorldFileError):
    """Raised when a world file carries an unrecognized version tag.

    Attributes:
        tag: The version tag that was found.
    """

    def __init__(self, tag: int) -> None:
        super().__init__(f"Unsupported world file version: {tag}")
        self.tag = tag


class TruncatedDataError(WorldFileError):
    """Raised when the buffer ends before a field is complete."""

    pass


class MalformedFieldError(WorldFileError):
    """Raised when a field decodes but holds an impossible value."""

    pass


class WorldFileEncodeError(WorldFileError):
    """Raised when a WorldFile cannot be serialized."""

    pass


@dataclass(eq=False)
class WorldMap:
    """Altitude data for a Veloren 0.7.0 world map.

    Attributes:
        map_size_lg: (log2 width, log2 height) of the map.
        scale_metadata: Scale value stored alongside the altitudes.
        surface: Row-major float64 surface altitudes.
        basement: Row-major float64 basement altitudes, same length as surface.
    """

    map_size_lg: tuple[int, int]
    scale_metadata: float
    surface: np.ndarray
    basement: np.ndarray

    @property
    def width(self) -> int:
        """Map width in cells."""
        return 1 << self.map_size_lg[0]

    @property
    def height(self) -> int:
        """Map height in cells."""
        return 1 << self.map_size_lg[1]

    @property
    def cell_count(self) -> int:
        """Number of cells each altitude layer must hold."""
        return self.width * self.height

    def validate(self) -> None:
        """Check that exponents are in range and both layers fit the map size.

        Raises:
            MalformedFieldError: If any field is inconsistent.
        """
        for axis, exponent in zip("xy", self.map_size_lg):
            if not 0 <= exponent <= MAX_MAP_SIZE_LG:
                raise MalformedFieldError(
                    f"map_size_lg.{axis} must be between 0 and {MAX_MAP_SIZE_LG}, got {exponent}"
                )
        for name, layer in (("surface", self.surface), ("basement", self.basement)):
            if layer.size != self.cell_count:
                raise MalformedFieldError(
                    f"{name} holds {layer.size} values, expected {self.cell_count} "
                    f"for a {self.width}x{self.height} map"
                )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, WorldMap):
            return NotImplemented
        return (
            tuple(self.map_size_lg) == tuple(other.map_size_lg)
            and self.scale_metadata == other.scale_metadata
            and np.array_equal(self.surface, other.surface)
            and np.array_equal(self.basement, other.basement)
        )


@dataclass
class WorldFile:
    """Versioned envelope around a single world map.

    Attributes:
        version: Version tag of the contained map.
        world_map: The map payload for that version.
    """

    version: WorldFileVersion
    world_map: WorldMap


def serialize(world_file: WorldFile) -> bytes:
    """Serialize a WorldFile to bytes.

    Raises:
        WorldFileEncodeError: If the version is unknown or the map is invalid.
    """
    writer = _VARIANT_WRITERS.get(world_file.version)
    if writer is None:
        raise WorldFileEncodeError(f"Unsupported world file version: {world_file.version}")

    try:
        world_file.world_map.validate()
    except MalformedFieldError as e:
        raise WorldFileEncodeError(f"Cannot serialize invalid world map: {e}") from e

    buffer = io.BytesIO()
    try:
        buffer.write(_U32.pack(int(world_file.version)))
        writer(buffer, world_file.world_map)
    except struct.error as e:
        raise WorldFileEncodeError(f"Failed to encode world map field: {e}") from e
    return buffer.getvalue()


def deserialize(data: bytes) -> WorldFile:
    """Deserialize a WorldFile from bytes.

    Bytes after the last field are ignored.

    Raises:
        UnsupportedVersionError: If the version tag is not recognized.
        TruncatedDataError: If the data ends early or a length prefix
            exceeds the remaining bytes.
        MalformedFieldError: If a field value is inconsistent.
    """
    stream = io.BytesIO(data)
    tag = _read_u32(stream, "version tag")

    try:
        version = WorldFileVersion(tag)
        reader = _VARIANT_READERS[version]
    except (ValueError, KeyError):
        raise UnsupportedVersionError(tag) from None

    world_map = reader(stream)

    trailing = len(data) - stream.tell()
    if trailing:
        logger.debug(f"Ignoring {trailing} trailing bytes after world map")

    return WorldFile(version=version, world_map=world_map)


class WorldFileParser:
    """Reads world files from disk.

    Example:
        >>> world_file = WorldFileParser.parse("maps/map.bin")
        >>> print(world_file.world_map.width)
    """

    @classmethod
    def parse(cls, path: Union[str, Path]) -> WorldFile:
        """Parse a world file.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            WorldFileError: If the file cannot be decoded.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"World file not found: {path}")

        with open(path, "rb") as f:
            data = f.read()

        logger.debug(f"Read {len(data)} bytes from {path}")
        return deserialize(data)


class WorldFileWriter:
    """Writes world files to disk."""

    @classmethod
    def write(cls, world_file: WorldFile, path: Union[str, Path]) -> int:
        """Serialize ``world_file`` to ``path`` and return the byte count.

        Raises:
            WorldFileEncodeError: If the world file cannot be serialized.
            OSError: If the file cannot be written.
        """
        data = serialize(world_file)
        with open(path, "wb") as f:
            f.write(data)

        logger.debug(f"Wrote {len(data)} bytes to {path}")
        return len(data)


def _read_map_0_7_0(stream: BinaryIO) -> WorldMap:
    """Read the fields of a Veloren 0.7.0 map."""
    size_x = _read_u32(stream, "map_size_lg.x")
    size_y = _read_u32(stream, "map_size_lg.y")
    scale_metadata = _read_f64(stream, "scale_metadata")
    surface = _read_f64_array(stream, "surface")
    basement = _read_f64_array(stream, "basement")

    world_map = WorldMap(
        map_size_lg=(size_x, size_y),
        scale_metadata=scale_metadata,
        surface=surface,
        basement=basement,
    )
    world_map.validate()
    return world_map


def _write_map_0_7_0(stream: BinaryIO, world_map: WorldMap) -> None:
    """Write the fields of a Veloren 0.7.0 map."""
    stream.write(_U32.pack(world_map.map_size_lg[0]))
    stream.write(_U32.pack(world_map.map_size_lg[1]))
    stream.write(_F64.pack(world_map.scale_metadata))
    _write_f64_array(stream, world_map.surface)
    _write_f64_array(stream, world_map.basement)


_VARIANT_READERS: dict[WorldFileVersion, Callable[[BinaryIO], WorldMap]] = {
    WorldFileVersion.VELOREN_0_7_0: _read_map_0_7_0,
}

_VARIANT_WRITERS: dict[WorldFileVersion, Callable[[BinaryIO, WorldMap], None]] = {
    WorldFileVersion.VELOREN_0_7_0: _write_map_0_7_0,
}


def _read_exact(stream: BinaryIO, size: int, field_name: str) -> bytes:
    """Read exactly ``size`` bytes or raise TruncatedDataError."""
    data = stream.read(size)
    if len(data) < size:
        raise TruncatedDataError(
            f"Truncated world file: {field_name} needs {size} bytes, {len(data)} remaining"
        )
    return data


def _read_u32(stream: BinaryIO, field_name: str) -> int:
    """Read a little-endian 32-bit unsigned integer."""
    return _U32.unpack(_read_exact(stream, _U32.size, field_name))[0]


def _read_f64(stream: BinaryIO, field_name: str) -> float:
    """Read a little-endian 64-bit float."""
    return _F64.unpack(_read_exact(stream, _F64.size, field_name))[0]


def _read_f64_array(stream: BinaryIO, field_name: str) -> np.ndarray:
    """Read a u64 length prefix followed by that many little-endian f64 values."""
    count = _U64.unpack(_read_exact(stream, _U64.size, f"{field_name} length"))[0]

    position = stream.tell()
    remaining = stream.seek(0, io.SEEK_END) - position
    stream.seek(position)
    if count * _F64.size > remaining:
        raise TruncatedDataError(
            f"Truncated world file: {field_name} declares {count} values "
            f"({count * _F64.size} bytes), {remaining} bytes remaining"
        )

    data = _read_exact(stream, count * _F64.size, field_name)
    return np.frombuffer(data, dtype=_F64_ARRAY_DTYPE).astype(np.float64)


def _write_f64_array(stream: BinaryIO, values: np.ndarray) -> None:
    """Write a u64 length prefix followed by little-endian f64 values."""
    array = np.asarray(values, dtype=_F64_ARRAY_DTYPE).ravel()
    stream.write(_U64.pack(array.size))
    stream.write(array.tobytes())
