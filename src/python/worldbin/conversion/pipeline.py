"""Conversion between heightmap rasters and world files.

``pack`` turns an 8-bit heightmap into a world file; ``unpack`` renders a
world file's surface layer back into a grayscale image. The ``*_file``
helpers wrap both directions with file reading and writing.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from worldbin.parser.worldfile import (
    UnsupportedVersionError,
    WorldFile,
    WorldFileParser,
    WorldFileVersion,
    WorldFileWriter,
    WorldMap,
    deserialize,
)
from worldbin.preprocessing.normalize import (
    compute_min_max,
    dequantize_samples,
    quantize_altitudes,
)
from worldbin.preprocessing.smooth import smooth_altitudes
from worldbin.preprocessing.validate import validate_dimensions
from worldbin.raster.codec import RasterImage, decode_png, encode_png, probe_png_size

logger = logging.getLogger(__name__)

# Height offset applied when none is given
DEFAULT_HEIGHT_OFFSET = -600.0

# Channel used as the altitude sample
SAMPLE_CHANNEL = 0


@dataclass(eq=False)
class UnpackResult:
    """Output of unpacking a world file.

    Attributes:
        image: Grayscale heightmap, sample replicated across RGB.
        min_altitude: Lowest surface altitude in the world file.
        max_altitude: Highest surface altitude in the world file.
    """

    image: RasterImage
    min_altitude: float
    max_altitude: float


@dataclass
class ConversionReport:
    """Summary of one file conversion.

    Attributes:
        input_path: File that was read.
        output_path: File that was written.
        width: Map side length in cells.
        exponent: Map-size exponent (width == 2 ** exponent).
        min_altitude: Lowest altitude written or read.
        max_altitude: Highest altitude written or read.
    """

    input_path: Path
    output_path: Path
    width: int
    exponent: int
    min_altitude: float
    max_altitude: float


def pack(
    raster: RasterImage,
    scale_factor: float,
    bias: float = DEFAULT_HEIGHT_OFFSET,
    smooth: bool = False,
) -> WorldFile:
    """Convert a heightmap raster into a world file.

    Channel 0 of every pixel is mapped to ``(s / 255) * scale_factor + bias``.
    The basement layer is a copy of the surface, since the raster carries only
    one layer.

    Args:
        raster: Decoded heightmap; must be square with a power-of-two side.
        scale_factor: Altitude span of the 0..255 sample range. Also stored
            as the world map's scale metadata.
        bias: Altitude of a zero sample.
        smooth: Apply one pass of the 3x3 mean filter before packing.

    Returns:
        A Veloren 0.7.0 WorldFile.

    Raises:
        DimensionError: If the raster is not square or not a power of two.
    """
    exponent = validate_dimensions(raster.width, raster.height)

    samples = raster.channel(SAMPLE_CHANNEL)
    surface = dequantize_samples(samples, scale_factor, bias, raster.width, raster.height)
    if smooth:
        surface = smooth_altitudes(surface, raster.width, raster.height)
        logger.debug(f"Smoothed {raster.width}x{raster.height} altitude grid")

    world_map = WorldMap(
        map_size_lg=(exponent, exponent),
        scale_metadata=float(scale_factor),
        surface=surface,
        basement=surface.copy(),
    )
    return WorldFile(version=WorldFileVersion.VELOREN_0_7_0, world_map=world_map)


def pack_png(
    data: bytes,
    scale_factor: float,
    bias: float = DEFAULT_HEIGHT_OFFSET,
    smooth: bool = False,
) -> WorldFile:
    """Pack encoded PNG bytes, validating dimensions before decoding pixels.

    Raises:
        RasterDecodeError: If the bytes are not a valid image.
        DimensionError: If the image size cannot be stored in a world file.
    """
    width, height = probe_png_size(data)
    validate_dimensions(width, height)
    return pack(decode_png(data), scale_factor, bias, smooth)


def unpack(world_file: WorldFile) -> UnpackResult:
    """Render a world file's surface layer as a grayscale image.

    Altitudes are rescaled so the observed minimum becomes 0 and the maximum
    becomes 255.

    Raises:
        UnsupportedVersionError: If the world file holds an unknown version.
    """
    if world_file.version != WorldFileVersion.VELOREN_0_7_0:
        raise UnsupportedVersionError(int(world_file.version))

    world_map = world_file.world_map
    width, height = world_map.width, world_map.height
    min_altitude, max_altitude = compute_min_max(world_map.surface)

    samples = quantize_altitudes(world_map.surface, min_altitude, max_altitude, width, height)
    image = RasterImage.from_samples(samples, width, height, channels=3)
    return UnpackResult(image=image, min_altitude=min_altitude, max_altitude=max_altitude)


def unpack_bytes(data: bytes) -> tuple[bytes, UnpackResult]:
    """Unpack serialized world file bytes into PNG bytes.

    Raises:
        WorldFileError: If the world file cannot be decoded.
        RasterEncodeError: If the image cannot be encoded.
    """
    result = unpack(deserialize(data))
    return encode_png(result.image), result


def pack_file(
    png_path: Union[str, Path],
    scale_factor: float,
    bias: float = DEFAULT_HEIGHT_OFFSET,
    smooth: bool = False,
    output_path: Optional[Union[str, Path]] = None,
) -> ConversionReport:
    """Pack a PNG heightmap file into a world file.

    Args:
        png_path: Heightmap image to read.
        scale_factor: Altitude span of the 0..255 sample range.
        bias: Altitude of a zero sample.
        smooth: Apply one smoothing pass before packing.
        output_path: Destination; defaults to ``png_path`` with a ``.bin`` suffix.

    Returns:
        ConversionReport describing the written file.

    Raises:
        FileNotFoundError: If the input file doesn't exist.
        RasterDecodeError: If the image cannot be decoded.
        DimensionError: If the image size cannot be stored in a world file.
    """
    png_path = Path(png_path)
    if not png_path.exists():
        raise FileNotFoundError(f"Heightmap not found: {png_path}")
    output_path = Path(output_path) if output_path else png_path.with_suffix(".bin")

    world_file = pack_png(png_path.read_bytes(), scale_factor, bias, smooth)
    WorldFileWriter.write(world_file, output_path)

    world_map = world_file.world_map
    min_altitude, max_altitude = compute_min_max(world_map.surface)
    logger.info(f"Converted {png_path} -> {output_path}")
    return ConversionReport(
        input_path=png_path,
        output_path=output_path,
        width=world_map.width,
        exponent=world_map.map_size_lg[0],
        min_altitude=min_altitude,
        max_altitude=max_altitude,
    )


def unpack_file(
    bin_path: Union[str, Path],
    output_path: Optional[Union[str, Path]] = None,
) -> ConversionReport:
    """Render a world file as a PNG heightmap.

    Args:
        bin_path: World file to read.
        output_path: Destination; defaults to ``bin_path`` with a ``.png`` suffix.

    Returns:
        ConversionReport with the observed altitude range.

    Raises:
        FileNotFoundError: If the input file doesn't exist.
        WorldFileError: If the world file cannot be decoded.
        RasterEncodeError: If the image cannot be encoded.
    """
    bin_path = Path(bin_path)
    output_path = Path(output_path) if output_path else bin_path.with_suffix(".png")

    world_file = WorldFileParser.parse(bin_path)
    result = unpack(world_file)
    output_path.write_bytes(encode_png(result.image))

    logger.info(
        f"Converted {bin_path} -> {output_path} "
        f"(alt range: min = {result.min_altitude}, max = {result.max_altitude})"
    )
    return ConversionReport(
        input_path=bin_path,
        output_path=output_path,
        width=world_file.world_map.width,
        exponent=world_file.world_map.map_size_lg[0],
        min_altitude=result.min_altitude,
        max_altitude=result.max_altitude,
    )

