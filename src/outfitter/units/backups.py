"""Reconciliation of backup files left behind by aborted installers.

Some installers rename a file to ``<path>.backup-before-<tool>`` before
rewriting it and refuse to run again while that backup exists. Finding one
means a previous install aborted part way through.
"""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from outfitter.core.logging import get_logger
from outfitter.system.worker import Worker

logger = get_logger(__name__)


@dataclass(frozen=True)
class BackupArtifact:
    """A file an installer may have backed up.

    Attributes:
        original: Path of the file the installer rewrites
        tool: Tool name used in the backup suffix
        user_level: User-level backups only overwrite an existing original
    """

    original: Path
    tool: str
    user_level: bool = False

    @property
    def backup_path(self) -> Path:
        return self.original.with_name(f"{self.original.name}.backup-before-{self.tool}")

    def exists(self) -> bool:
        return self.backup_path.is_file()


async def reconcile_backups(
    system: Worker,
    artifacts: list[BackupArtifact],
    stash_dir: Path,
) -> list[Path]:
    """Restore leftover backups into their original paths.

    Before touching anything, timestamped copies of the backup and of the
    current original are stashed in ``stash_dir``. System-level backups are
    moved over the original. A user-level backup is copied over the original
    only when the original still exists, and is then deleted.

    Args:
        system: System worker
        artifacts: Candidate backups
        stash_dir: Directory for the timestamped safety copies

    Returns:
        Backup paths that were reconciled

    Raises:
        OSError: If a backup cannot be restored or removed
    """
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    reconciled = []

    for artifact in artifacts:
        backup = artifact.backup_path
        if not backup.is_file():
            continue

        logger.info("Found installer backup", path=str(backup))

        if artifact.original.is_file():
            await system.copy_file(
                artifact.original, stash_dir / f"{artifact.original.name}.current.{timestamp}"
            )
        await system.copy_file(backup, stash_dir / f"{backup.name}.{timestamp}")

        contents = (await system.read_file(backup)).decode("utf-8", errors="replace")
        if artifact.tool in contents.lower():
            logger.warning(
                "Backup already contains tool configuration, previous install was broken",
                path=str(backup),
                tool=artifact.tool,
            )

        if artifact.user_level:
            if artifact.original.is_file():
                await system.copy_file(backup, artifact.original)
            await system.remove_path(backup)
        else:
            await system.move_path(backup, artifact.original)

        logger.info("Restored installer backup", path=str(artifact.original))
        reconciled.append(backup)

    return reconciled
