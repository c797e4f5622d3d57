"""Version-control checkouts."""

from pathlib import Path

from outfitter.core.logging import get_logger
from outfitter.system.command import Command
from outfitter.system.worker import Worker

logger = get_logger(__name__)


async def clone(
    system: Worker,
    url: str,
    destination: Path,
    depth: int = 0,
    user: str = "",
) -> bool:
    """Clone a git repository unless the destination already exists.

    Args:
        system: System worker
        url: Repository URL
        destination: Checkout directory
        depth: Shallow clone depth (0 for full history)
        user: Run git as this user

    Returns:
        True if a clone was made, False if the destination existed

    Raises:
        CommandError: If git fails
    """
    if destination.exists():
        logger.debug("Checkout already exists", path=str(destination))
        return False

    args = ["clone"]
    if depth:
        args.extend(["--depth", str(depth)])
    args.extend([url, str(destination)])

    await system.run(Command(executable="git", args=args, user=user))

    logger.info("Cloned repository", url=url, path=str(destination))
    return True
