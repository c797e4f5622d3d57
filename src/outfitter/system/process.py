"""Process control for stopping daemons left behind by broken installs."""

import asyncio
from typing import Protocol, runtime_checkable

from outfitter.core.logging import get_logger
from outfitter.system.command import Command
from outfitter.system.worker import Worker

logger = get_logger(__name__)


@runtime_checkable
class ProcessController(Protocol):
    """Protocol for locating and signalling processes.

    The pattern-based implementation below is the fallback; a controller
    that tracks real process handles can be substituted where available.
    """

    async def is_running(self, pattern: str) -> bool:
        """Check whether any process matches ``pattern``."""
        ...

    async def terminate(self, pattern: str, force: bool = False) -> None:
        """Signal every process matching ``pattern`` (SIGTERM, or SIGKILL when forced)."""
        ...


class PatternProcessController:
    """ProcessController backed by pgrep/pkill full command-line matching."""

    def __init__(self, system: Worker) -> None:
        self.system = system

    async def is_running(self, pattern: str) -> bool:
        return await self.system.succeeds(Command(executable="pgrep", args=["-f", pattern]))

    async def terminate(self, pattern: str, force: bool = False) -> None:
        args = ["-9", "-f", pattern] if force else ["-f", pattern]
        # pkill exits 1 when nothing matched, which is fine here
        await self.system.succeeds(Command(executable="pkill", args=args))


async def stop_processes(
    controller: ProcessController,
    patterns: list[str],
    grace_period: float = 2.0,
) -> list[str]:
    """Stop processes gracefully, then forcibly after a grace period.

    Args:
        controller: Process controller to use
        patterns: Command-line patterns of processes to stop
        grace_period: Seconds to wait between SIGTERM and SIGKILL

    Returns:
        Patterns that still matched a running process afterwards
    """
    running = [p for p in patterns if await controller.is_running(p)]
    if not running:
        return []

    logger.info("Stopping running processes", patterns=",".join(running))
    for pattern in running:
        await controller.terminate(pattern)

    await asyncio.sleep(grace_period)

    remaining = [p for p in running if await controller.is_running(p)]
    for pattern in remaining:
        logger.debug("Force killing processes", pattern=pattern)
        await controller.terminate(pattern, force=True)

    resisting = [p for p in remaining if await controller.is_running(p)]
    if resisting:
        logger.warning("Some processes resisted termination", patterns=",".join(resisting))

    return resisting
