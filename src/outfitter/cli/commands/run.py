"""Run command implementation."""

from outfitter.config.loader import load_config
from outfitter.config.models import ConfigOverrides
from outfitter.core.logging import get_logger
from outfitter.core.manager import Manager
from outfitter.core.outcome import RunReport

logger = get_logger(__name__)


async def run_units(
    config_file: str,
    preset: str,
    overrides: ConfigOverrides,
    trace: bool = False,
) -> RunReport:
    """Execute the run command to provision the workstation.

    Args:
        config_file: Path to configuration file
        preset: Preset name to use
        overrides: Configuration overrides from CLI/env
        trace: Echo every command and its output

    Returns:
        The run report
    """
    config = load_config(config_file=config_file, preset=preset, overrides=overrides)
    config.trace = trace

    logger.info(
        "Configuration loaded",
        units=len(config.units),
        dry_run=overrides.dry_run,
    )

    manager = Manager(config)
    report = await manager.run()

    if report.exit_code == 0:
        logger.info("Provisioning completed", failed=len(report.failed))
    else:
        logger.error("Provisioning failed", required=",".join(report.required_failed))

    return report
