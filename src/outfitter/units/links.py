"""Convenience symlinks for tools Debian ships under another name."""

from pathlib import Path

from outfitter.config.models import SymlinkUnitConfig
from outfitter.core.environment import EnvironmentOverlay
from outfitter.core.outcome import UnitState
from outfitter.system.command import Command
from outfitter.units.base import BaseUnit


class SymlinkUnit(BaseUnit):
    """A symlink such as ``~/.local/bin/bat -> /usr/bin/batcat``."""

    spec: SymlinkUnitConfig

    @property
    def link(self) -> Path:
        return self.expand(self.spec.link)

    @property
    def target(self) -> Path:
        return self.expand(self.spec.target)

    async def probe(self, env: EnvironmentOverlay) -> UnitState:
        link = self.link
        if not link.is_symlink():
            return UnitState.BROKEN if link.exists() else UnitState.ABSENT
        if link.readlink() != self.target or not self.target.exists():
            return UnitState.BROKEN
        return UnitState.HEALTHY

    def artifacts(self) -> list[Path]:
        return [self.link]

    async def install(self, env: EnvironmentOverlay) -> None:
        user = self.run_as()
        await self.system.run(
            Command(executable="mkdir", args=["-p", str(self.link.parent)], user=user)
        )
        await self.system.run(
            Command(executable="ln", args=["-sf", str(self.target), str(self.link)], user=user)
        )
