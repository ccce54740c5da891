"""
Configuration loader for the catalog sync system.

Reads the YAML configuration file and validates it into a SyncSystemConfig.
Relative manifest and media paths are resolved against the directory holding
the configuration file.
"""

from pathlib import Path
from typing import Union

import yaml
from pydantic import ValidationError

from ..exceptions import ConfigurationError
from .models import SyncSystemConfig


class ConfigLoader:
    """Loads and validates configuration files."""

    @staticmethod
    def load_from_file(config_path: Union[str, Path]) -> SyncSystemConfig:
        """
        Load configuration from a YAML file.

        Args:
            config_path: Path to the YAML configuration file

        Returns:
            Validated SyncSystemConfig

        Raises:
            ConfigurationError: If the file cannot be read or is invalid
        """
        config_path = Path(config_path)
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
        except FileNotFoundError as e:
            raise ConfigurationError(
                f"Configuration file not found: {config_path}"
            ) from e
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid YAML in configuration file {config_path}: {e}"
            ) from e

        if not isinstance(raw, dict):
            raise ConfigurationError(
                f"Configuration file {config_path} must contain a mapping"
            )

        config = ConfigLoader.load_from_dict(raw)

        base_dir = config_path.resolve().parent
        config.manifest_path = str(base_dir / config.manifest_path)
        config.media_dir = str(base_dir / config.media_dir)
        return config

    @staticmethod
    def load_from_dict(raw: dict) -> SyncSystemConfig:
        """Validate an already-parsed configuration mapping."""
        try:
            return SyncSystemConfig(**raw)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e
