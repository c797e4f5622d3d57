"""Safe registration of third-party apt repositories."""

from dataclasses import dataclass
from pathlib import Path

from outfitter.core.logging import get_logger
from outfitter.system.command import Command
from outfitter.system.fetch import Fetcher
from outfitter.system.worker import Worker

logger = get_logger(__name__)

ARMOR_HEADER = b"-----BEGIN PGP"


@dataclass(frozen=True)
class RepositoryDescriptor:
    """Describes one apt repository and its signing key.

    Attributes:
        target_file: The sources.list.d file to write
        keyring: Where the dearmored signing key is stored
        key_url: URL of the signing key (armored or binary)
        repo_line: The complete ``deb ...`` line
    """

    target_file: Path
    keyring: Path
    key_url: str
    repo_line: str

    @property
    def marker(self) -> str:
        """The signed-by marker a valid repository file must contain."""
        return f"signed-by={self.keyring}"

    @property
    def leftovers(self) -> list[Path]:
        """Backup copies apt tools leave next to the repository file."""
        return [self.target_file.with_name(self.target_file.name + ".save")]


def is_registered(descriptor: RepositoryDescriptor) -> bool:
    """Check that the repository file carries the marker and the keyring exists."""
    if not descriptor.target_file.is_file() or not descriptor.keyring.is_file():
        return False
    return descriptor.marker in descriptor.target_file.read_text(errors="replace")


async def remove_apt_repository(system: Worker, descriptor: RepositoryDescriptor) -> None:
    """Remove the repository file, its leftovers and its keyring.

    Every path is allowed to be absent already.
    """
    for path in [descriptor.target_file, *descriptor.leftovers, descriptor.keyring]:
        if await system.remove_path(path):
            logger.info("Removed repository artifact", path=str(path))


async def ensure_apt_repository(
    system: Worker,
    fetcher: Fetcher,
    descriptor: RepositoryDescriptor,
) -> bool:
    """Register an apt repository exactly once.

    An existing file that lacks the signed-by marker (or whose keyring has
    gone) is treated as broken and recreated. The key is fetched before
    anything is written, and any later failure removes both the keyring and
    the repository file, so either both exist afterwards or neither does.

    Args:
        system: System worker
        fetcher: HTTP fetcher for the signing key
        descriptor: Repository to register

    Returns:
        True if the repository was (re)written, False if it was already valid

    Raises:
        FetchFailed: If the signing key cannot be fetched
        CommandError: If the key cannot be dearmored
        OSError: If files cannot be written
    """
    target = descriptor.target_file

    if target.exists():
        if is_registered(descriptor):
            logger.debug("Repository already exists", path=str(target))
            return False
        logger.warning("Removing broken repository", path=str(target))
        await remove_apt_repository(system, descriptor)

    logger.info("Adding repository", path=str(target))

    key = await fetcher.fetch(descriptor.key_url)

    try:
        await _install_keyring(system, key, descriptor.keyring)
        await system.write_file(target, f"{descriptor.repo_line}\n".encode(), mode=0o644)
    except BaseException:
        await system.remove_path(target)
        await system.remove_path(descriptor.keyring)
        raise

    return True


async def _install_keyring(system: Worker, key: bytes, keyring: Path) -> None:
    """Store a signing key in binary keyring format with mode 644."""
    if not key.lstrip().startswith(ARMOR_HEADER):
        await system.write_file(keyring, key, mode=0o644)
        return

    armored = keyring.with_name(f".{keyring.name}.asc")
    dearmored = keyring.with_name(f".{keyring.name}.tmp")
    try:
        await system.write_file(armored, key)
        cmd = Command(
            executable="gpg",
            args=["--batch", "--yes", "--dearmor", "-o", str(dearmored), str(armored)],
        )
        await system.run(cmd)
        await system.move_path(dearmored, keyring)
        keyring.chmod(0o644)
    finally:
        await system.remove_path(armored)
        await system.remove_path(dearmored)
