"""Configuration loading and parsing for Outfitter."""

import os
from pathlib import Path

import yaml
from pydantic import ValidationError

from outfitter.config.models import ConfigOverrides, OutfitterConfig
from outfitter.config.presets import get_preset
from outfitter.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_FILE = Path("outfitter.yaml")
DEFAULT_PRESET = "workstation"


def load_config(
    config_file: str = "",
    preset: str = "",
    overrides: ConfigOverrides | None = None,
) -> OutfitterConfig:
    """Load configuration from a preset, a file, or defaults.

    Args:
        config_file: Path to YAML configuration file (optional)
        preset: Name of preset to use (optional)
        overrides: Configuration overrides from CLI/env (optional)

    Returns:
        Loaded and validated configuration

    Raises:
        ValueError: If configuration is invalid
        FileNotFoundError: If specified config file doesn't exist
    """
    config: OutfitterConfig

    if preset:
        logger.info("Loading preset", preset=preset)
        config = get_preset(preset)
    elif config_file:
        config = _load_from_file(Path(config_file))
    elif DEFAULT_CONFIG_FILE.exists():
        config = _load_from_file(DEFAULT_CONFIG_FILE)
    else:
        logger.info(f"No config file found, using '{DEFAULT_PRESET}' preset")
        config = get_preset(DEFAULT_PRESET)

    if overrides:
        config.overrides = overrides

    return config


def _load_from_file(path: Path) -> OutfitterConfig:
    """Load configuration from a YAML file.

    Args:
        path: Path to configuration file

    Returns:
        Parsed configuration

    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If file is invalid YAML or doesn't match schema
    """
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    logger.info("Loading configuration file", path=str(path))

    try:
        with path.open("r") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in configuration file: {e}") from e

    # Treat empty files as empty configuration
    if data is None:
        data = {}

    if not isinstance(data, dict):
        raise ValueError("Configuration file must contain a YAML mapping")

    try:
        return OutfitterConfig.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Failed to parse configuration: {e}") from e


def merge_overrides(cli: ConfigOverrides, env: ConfigOverrides) -> ConfigOverrides:
    """Combine CLI and environment overrides.

    Lists from both sources are combined (CLI first, without duplicates) and
    a dry run requested by either source wins.
    """

    def combine(first: list[str], second: list[str]) -> list[str]:
        return list(dict.fromkeys([*first, *second]))

    return ConfigOverrides(
        only=combine(cli.only, env.only),
        skip=combine(cli.skip, env.skip),
        dry_run=cli.dry_run or env.dry_run,
    )


def get_env_overrides() -> ConfigOverrides:
    """Get configuration overrides from environment variables.

    Environment variables are prefixed with OUTFITTER_ (e.g. OUTFITTER_ONLY).

    Returns:
        ConfigOverrides populated from environment variables
    """

    def get_bool(key: str) -> bool:
        val = os.getenv(f"OUTFITTER_{key.upper()}")
        return val is not None and val.lower() in ("1", "true", "yes")

    def get_list(key: str) -> list[str]:
        val = os.getenv(f"OUTFITTER_{key.upper()}", "")
        return split_comma_list([val])

    return ConfigOverrides(
        only=get_list("only"),
        skip=get_list("skip"),
        dry_run=get_bool("dry_run"),
    )


def split_comma_list(items: list[str]) -> list[str]:
    """Split comma-separated values, dropping blanks."""
    result = []
    for item in items:
        result.extend(s.strip() for s in item.split(",") if s.strip())
    return result
