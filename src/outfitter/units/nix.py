"""The Nix package manager in multi-user daemon mode.

A failed daemon install leaves a lot behind: the store, build users and
their group, systemd units, running daemons, and shell rc files renamed to
``*.backup-before-nix``. The installer refuses to run while any of them
exist, so the repair removes all of it.
"""

from pathlib import Path

from outfitter.config.models import NixUnitConfig
from outfitter.core.environment import EnvironmentOverlay
from outfitter.core.errors import RepairFailed
from outfitter.core.logging import get_logger
from outfitter.core.outcome import UnitState
from outfitter.system.accounts import delete_group, delete_users, group_exists, user_exists
from outfitter.system.command import Command
from outfitter.system.process import stop_processes
from outfitter.units.backups import BackupArtifact, reconcile_backups
from outfitter.units.base import BaseUnit

logger = get_logger(__name__)

TOOL = "nix"


class NixUnit(BaseUnit):
    """Nix installed with the official daemon-mode installer."""

    spec: NixUnitConfig

    @property
    def store(self) -> Path:
        return Path(self.spec.store)

    def backups(self) -> list[BackupArtifact]:
        system_level = [BackupArtifact(Path(p), TOOL) for p in self.spec.backup_files]
        user_level = [
            BackupArtifact(self.expand(p), TOOL, user_level=True)
            for p in self.spec.user_backup_files
        ]
        return system_level + user_level

    def build_users(self) -> list[str]:
        return [f"{self.spec.build_group}{i}" for i in range(1, self.spec.build_users + 1)]

    async def probe(self, env: EnvironmentOverlay) -> UnitState:
        state = await self.binary_state("nix", self.scoped(env), ["--version"])
        if state != UnitState.ABSENT:
            return state

        leftovers = await self._leftovers()
        if leftovers:
            logger.debug("Found leftovers of a previous install", leftovers=",".join(leftovers))
            return UnitState.BROKEN
        return UnitState.ABSENT

    async def _leftovers(self) -> list[str]:
        found = []
        if self.store.exists():
            found.append(str(self.store))
        found.extend(str(b.backup_path) for b in self.backups() if b.exists())
        found.extend(p for p in self.spec.unit_files if Path(p).exists())
        if await group_exists(self.system, self.spec.build_group):
            found.append(f"group:{self.spec.build_group}")
        # Build users can outlive their group when a cleanup stops half way
        users = self.build_users()
        if users and await user_exists(self.system, users[0]):
            found.append(f"user:{users[0]}")
        return found

    async def repair(self, env: EnvironmentOverlay) -> None:
        failures = []

        resisting = await stop_processes(
            self.context.processes,
            self.spec.process_patterns,
            grace_period=self.context.settings.grace_period,
        )
        failures.extend(f"process still running: {p}" for p in resisting)

        for action in ("stop", "disable"):
            await self.system.succeeds(
                Command(executable="systemctl", args=[action, *self.spec.services])
            )

        try:
            await reconcile_backups(
                self.system, self.backups(), Path(self.context.settings.stash_dir)
            )
        except OSError as e:
            failures.append(f"backup reconciliation: {e}")

        if self.store.exists():
            # Not mounted in most setups; failure here is expected
            await self.system.succeeds(
                Command(executable="umount", args=[str(self.store / "store")])
            )

        for path in [self.store, *(Path(p) for p in self.spec.unit_files)]:
            try:
                if await self.system.remove_path(path):
                    logger.info("Removed Nix artifact", path=str(path))
            except OSError as e:
                failures.append(f"{path}: {e}")

        failed_users = await delete_users(self.system, self.build_users())
        failures.extend(f"user {name} not deleted" for name in failed_users)
        if not await delete_group(self.system, self.spec.build_group):
            failures.append(f"group {self.spec.build_group} not deleted")

        await self.system.succeeds(Command(executable="systemctl", args=["daemon-reload"]))

        if failures:
            raise RepairFailed(self.name(), failures)

    async def install(self, env: EnvironmentOverlay) -> None:
        await self.run_installer(self.spec.installer_url, self.scoped(env), args=["--daemon"])
