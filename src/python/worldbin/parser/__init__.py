"""World file parsing utilities."""

from worldbin.parser.worldfile import (
    MalformedFieldError,
    TruncatedDataError,
    UnsupportedVersionError,
    WorldFile,
    WorldFileEncodeError,
    WorldFileError,
    WorldFileParser,
    WorldFileVersion,
    WorldFileWriter,
    WorldMap,
    deserialize,
    serialize,
)

__all__ = [
    "MalformedFieldError",
    "TruncatedDataError",
    "UnsupportedVersionError",
    "WorldFile",
    "WorldFileEncodeError",
    "WorldFileError",
    "WorldFileParser",
    "WorldFileVersion",
    "WorldFileWriter",
    "WorldMap",
    "deserialize",
    "serialize",
]
