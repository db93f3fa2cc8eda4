"""Conversion settings loaded from YAML files or environment variables."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

# Environment variables read by ConversionSettings.from_environment
HEIGHT_OFFSET_VAR = "WORLDBIN_HEIGHT_OFFSET"
SMOOTH_VAR = "WORLDBIN_SMOOTH"

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off", "")


class ConfigError(Exception):
    """Raised when conversion settings are missing or invalid."""

    pass


@dataclass
class ConversionSettings:
    """Defaults for pack conversions.

    Attributes:
        height_offset: Altitude of a zero sample (the bias).
        smooth: Whether to smooth heightmaps before packing.
    """

    height_offset: float = -600.0
    smooth: bool = False

    @classmethod
    def from_environment(
        cls,
        height_offset_var: str = HEIGHT_OFFSET_VAR,
        smooth_var: str = SMOOTH_VAR,
    ) -> "ConversionSettings":
        """Create settings from environment variables.

        Unset variables keep their defaults.

        Raises:
            ConfigError: If a variable holds an invalid value.
        """
        settings = cls()
        height_offset = os.environ.get(height_offset_var)
        if height_offset is not None:
            settings.height_offset = _parse_float(height_offset, height_offset_var)
        smooth = os.environ.get(smooth_var)
        if smooth is not None:
            settings.smooth = _parse_bool(smooth, smooth_var)
        return settings

    @classmethod
    def from_config_file(
        cls, config_path: Path, base: Optional["ConversionSettings"] = None
    ) -> "ConversionSettings":
        """Create settings from a YAML config file.

        The config file should have the following format:
        ```yaml
        height_offset: -200.0
        smooth: true
        ```

        Args:
            config_path: Path to the YAML config file.
            base: Settings to start from; keys missing from the file keep
                these values. Defaults to ConversionSettings().

        Raises:
            FileNotFoundError: If the config file doesn't exist.
            ConfigError: If the file is not valid YAML or holds invalid values.
        """
        import yaml

        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        try:
            with open(config_path) as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in config file: {e}") from e

        if config is None:
            config = {}
        if not isinstance(config, dict):
            raise ConfigError("Config file must contain a YAML dictionary")

        unknown = set(config) - {"height_offset", "smooth"}
        if unknown:
            logger.warning(f"Ignoring unknown config keys: {sorted(unknown)}")

        base = base or cls()
        settings = cls(height_offset=base.height_offset, smooth=base.smooth)
        if "height_offset" in config:
            settings.height_offset = _parse_float(config["height_offset"], "height_offset")
        if "smooth" in config:
            settings.smooth = _parse_bool(config["smooth"], "smooth")
        return settings


def _parse_float(value: Any, name: str) -> float:
    """Convert a config value to float or raise ConfigError."""
    if isinstance(value, bool):
        raise ConfigError(f"{name} must be a number, got {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{name} must be a number, got {value!r}") from e


def _parse_bool(value: Any, name: str) -> bool:
    """Convert a config value to bool or raise ConfigError."""
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ConfigError(f"{name} must be a boolean, got {value!r}")
