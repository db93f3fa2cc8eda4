"""worldbin command-line interface.

This module provides CLI commands for converting between heightmap PNGs and
binary world files.
"""

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click

from worldbin.config import ConfigError, ConversionSettings
from worldbin.conversion import (
    BatchConverter,
    BatchProgress,
    BatchResult,
    ConversionReport,
    Direction,
    pack_file,
    unpack_file,
)
from worldbin.parser import WorldFileError, WorldFileParser
from worldbin.preprocessing import DimensionError, compute_min_max
from worldbin.raster import RasterDecodeError, RasterEncodeError

# Exit codes
EXIT_SUCCESS = 0
EXIT_USER_ERROR = 1
EXIT_SYSTEM_ERROR = 2

# Errors caused by the input files rather than the tool
USER_ERRORS = (WorldFileError, RasterDecodeError, RasterEncodeError, DimensionError, ConfigError)


def print_error(message: str) -> None:
    """Print error message to stderr.

    Args:
        message: Error message to print.
    """
    click.echo(click.style(f"Error: {message}", fg="red"), err=True)


def print_success(message: str) -> None:
    """Print success message.

    Args:
        message: Success message to print.
    """
    click.echo(click.style(message, fg="green"))


def resolve_settings(
    config_path: Optional[Path],
    height_offset: Optional[float],
    smooth: Optional[bool],
) -> ConversionSettings:
    """Merge settings: explicit options, then config file, then environment.

    Raises:
        ConfigError: If the environment or config file holds invalid values.
        FileNotFoundError: If the config file doesn't exist.
    """
    settings = ConversionSettings.from_environment()
    if config_path:
        settings = ConversionSettings.from_config_file(config_path, base=settings)
    if height_offset is not None:
        settings.height_offset = height_offset
    if smooth is not None:
        settings.smooth = smooth
    return settings


def echo_report(report: ConversionReport) -> None:
    """Print the summary lines for one converted file."""
    click.echo(f"  Map size: {report.width}x{report.width} (exponent: {report.exponent})")
    click.echo(f"  Alt range: min = {report.min_altitude}, max = {report.max_altitude}")


def echo_batch_result(result: BatchResult) -> None:
    """Print the summary of a batch conversion."""
    click.echo()
    click.echo()
    print_success("Conversion complete!")
    click.echo(f"  Converted: {result.converted}")
    click.echo(f"  Failed: {result.failed}")
    for report in result.reports:
        click.echo(f"  {report.input_path.name} -> {report.output_path.name}")
        click.echo(f"    alt range: min = {report.min_altitude}, max = {report.max_altitude}")
    for error in result.errors:
        click.echo(f"  {Path(error['path']).name}: {error['error']}", err=True)


def progress_callback(progress: BatchProgress) -> None:
    """Update progress display."""
    done = progress.converted + progress.failed
    click.echo(
        f"\rProgress: {done}/{progress.total} "
        f"(converted: {progress.converted}, failed: {progress.failed}) "
        f"- {progress.current_file}",
        nl=False,
    )


config_option = click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="YAML file with default height_offset and smooth settings",
)

height_offset_option = click.option(
    "--height-offset",
    "-b",
    type=float,
    default=None,
    help="Altitude of a black pixel (default: -600.0, or from config/environment)",
)

smooth_option = click.option(
    "--smooth/--no-smooth",
    default=None,
    help="Apply one 3x3 smoothing pass before packing (default: off)",
)


@click.group()
@click.version_option(version="0.1.0", prog_name="worldbin")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """worldbin - Convert heightmap PNGs to and from binary world files.

    Pack grayscale heightmaps into world files, or render world files as
    heightmaps for inspection.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.argument("input_png", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("scale_factor", type=float)
@height_offset_option
@smooth_option
@click.option(
    "--output",
    "-o",
    "output_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Output world file (default: INPUT_PNG with a .bin extension)",
)
@config_option
def pack(
    input_png: Path,
    scale_factor: float,
    height_offset: Optional[float],
    smooth: Optional[bool],
    output_path: Optional[Path],
    config_path: Optional[Path],
) -> None:
    """Pack a grayscale heightmap PNG into a world file.

    INPUT_PNG must be square with a power-of-two side. Each pixel's red
    channel becomes (pixel / 255) * SCALE_FACTOR + height offset.

    Examples:

        # 1000 units of relief, black at -600
        worldbin pack heightmap.png 1000

        # Smoothed, black at -200
        worldbin pack heightmap.png 1000 --height-offset -200 --smooth
    """
    try:
        settings = resolve_settings(config_path, height_offset, smooth)

        click.echo(f"Packing {input_png}")
        report = pack_file(
            input_png,
            scale_factor,
            bias=settings.height_offset,
            smooth=settings.smooth,
            output_path=output_path,
        )

        print_success(f"Converted {report.input_path} -> {report.output_path}")
        echo_report(report)
        click.echo(
            f"  Scale factor: {scale_factor}, height offset: {settings.height_offset}, "
            f"smoothed: {'yes' if settings.smooth else 'no'}"
        )

    except FileNotFoundError as e:
        print_error(str(e))
        sys.exit(EXIT_USER_ERROR)
    except USER_ERRORS as e:
        print_error(f"Failed to pack {input_png}: {e}")
        sys.exit(EXIT_USER_ERROR)
    except Exception as e:
        print_error(f"Unexpected error: {e}")
        sys.exit(EXIT_SYSTEM_ERROR)


@cli.command()
@click.argument("bin_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--output",
    "-o",
    "output_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Output PNG (default: BIN_PATH with a .png extension)",
)
def unpack(bin_path: Path, output_path: Optional[Path]) -> None:
    """Render a world file as a grayscale heightmap PNG.

    BIN_PATH is the world file to convert. Altitudes are rescaled so the
    lowest point is black and the highest is white.
    """
    try:
        click.echo(f"Processing file: {bin_path}")
        report = unpack_file(bin_path, output_path=output_path)

        click.echo(f"  alt range: min = {report.min_altitude}, max = {report.max_altitude}")
        print_success(f"  Heightmap saved to: {report.output_path}")

    except FileNotFoundError as e:
        print_error(str(e))
        sys.exit(EXIT_USER_ERROR)
    except USER_ERRORS as e:
        print_error(f"Failed to unpack {bin_path}: {e}")
        sys.exit(EXIT_USER_ERROR)
    except Exception as e:
        print_error(f"Unexpected error: {e}")
        sys.exit(EXIT_SYSTEM_ERROR)


@cli.command("unpack-all")
@click.argument("folder", type=click.Path(path_type=Path))
def unpack_all(folder: Path) -> None:
    """Render every .bin world file in FOLDER as a PNG heightmap.

    Each PNG is written next to its world file. Files that fail are reported
    and skipped; the exit code is 1 if any file failed.
    """
    _run_batch(folder, BatchConverter(Direction.UNPACK, progress_callback=progress_callback))


@cli.command("pack-all")
@click.argument("folder", type=click.Path(path_type=Path))
@click.argument("scale_factor", type=float)
@height_offset_option
@smooth_option
@config_option
def pack_all(
    folder: Path,
    scale_factor: float,
    height_offset: Optional[float],
    smooth: Optional[bool],
    config_path: Optional[Path],
) -> None:
    """Pack every .png heightmap in FOLDER into a world file.

    Each world file is written next to its PNG. Files that fail are reported
    and skipped; the exit code is 1 if any file failed.
    """
    try:
        settings = resolve_settings(config_path, height_offset, smooth)
    except (ConfigError, FileNotFoundError) as e:
        print_error(str(e))
        sys.exit(EXIT_USER_ERROR)

    converter = BatchConverter(
        Direction.PACK,
        scale_factor=scale_factor,
        height_offset=settings.height_offset,
        smooth=settings.smooth,
        progress_callback=progress_callback,
    )
    _run_batch(folder, converter)


def _run_batch(folder: Path, converter: BatchConverter) -> None:
    """Run a batch conversion and exit with the matching status."""
    if not folder.is_dir():
        print_error(f"The provided path is not a directory: {folder}")
        sys.exit(EXIT_USER_ERROR)

    try:
        click.echo(f"Input directory: {folder}")
        result = converter.convert(folder)
        echo_batch_result(result)
    except (FileNotFoundError, NotADirectoryError) as e:
        print_error(str(e))
        sys.exit(EXIT_USER_ERROR)
    except Exception as e:
        print_error(f"Unexpected error: {e}")
        sys.exit(EXIT_SYSTEM_ERROR)

    sys.exit(EXIT_SUCCESS if result.failed == 0 else EXIT_USER_ERROR)


@cli.command()
@click.argument("bin_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--json",
    "output_json",
    is_flag=True,
    default=False,
    help="Output results as JSON",
)
def info(bin_path: Path, output_json: bool) -> None:
    """Display information about a world file.

    BIN_PATH is the path to a world file to inspect.
    """
    try:
        world_file = WorldFileParser.parse(bin_path)
        world_map = world_file.world_map

        surface_min, surface_max = compute_min_max(world_map.surface)
        basement_min, basement_max = compute_min_max(world_map.basement)

        if output_json:
            result = {
                "version": world_file.version.name,
                "version_tag": int(world_file.version),
                "map_size_lg": list(world_map.map_size_lg),
                "width": world_map.width,
                "height": world_map.height,
                "scale_metadata": world_map.scale_metadata,
                "surface_range": [surface_min, surface_max],
                "basement_range": [basement_min, basement_max],
            }
            click.echo(json.dumps(result, indent=2))
        else:
            click.echo(f"World file: {bin_path.name}")
            click.echo(f"Version: {world_file.version.name} (tag {int(world_file.version)})")
            click.echo(
                f"Size: {world_map.width}x{world_map.height} "
                f"(exponent: {world_map.map_size_lg[0]}, {world_map.map_size_lg[1]})"
            )
            click.echo(f"Scale metadata: {world_map.scale_metadata}")
            click.echo(f"Surface range: {surface_min} .. {surface_max}")
            click.echo(f"Basement range: {basement_min} .. {basement_max}")

    except FileNotFoundError:
        print_error(f"File not found: {bin_path}")
        sys.exit(EXIT_USER_ERROR)
    except WorldFileError as e:
        print_error(f"Failed to parse world file: {e}")
        sys.exit(EXIT_USER_ERROR)
    except Exception as e:
        print_error(f"Unexpected error: {e}")
        sys.exit(EXIT_SYSTEM_ERROR)


if __name__ == "__main__":
    cli()
