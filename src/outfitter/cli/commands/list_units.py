"""List command implementation."""

from outfitter.config.loader import load_config
from outfitter.config.models import ConfigOverrides
from outfitter.core.manager import Manager
from outfitter.core.outcome import UnitListing


async def list_units(
    config_file: str,
    preset: str,
    overrides: ConfigOverrides,
) -> list[UnitListing]:
    """Probe and print every selected unit with its current state."""
    config = load_config(config_file=config_file, preset=preset, overrides=overrides)
    manager = Manager(config)
    return await manager.list_states()
