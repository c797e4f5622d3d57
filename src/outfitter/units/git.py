"""Units that are plain git checkouts (shell plugins and themes)."""

from pathlib import Path

from outfitter.config.models import GitUnitConfig
from outfitter.core.environment import EnvironmentOverlay
from outfitter.core.outcome import UnitState
from outfitter.packages.vcs import clone
from outfitter.units.base import BaseUnit


class GitCloneUnit(BaseUnit):
    """A repository cloned into a fixed destination."""

    spec: GitUnitConfig

    @property
    def destination(self) -> Path:
        return self.expand(self.spec.destination)

    async def probe(self, env: EnvironmentOverlay) -> UnitState:
        destination = self.destination
        if not destination.exists():
            return UnitState.ABSENT
        # An interrupted clone leaves the directory without its .git
        if not (destination / ".git").exists():
            return UnitState.BROKEN
        return UnitState.HEALTHY

    def artifacts(self) -> list[Path]:
        return [self.destination]

    async def install(self, env: EnvironmentOverlay) -> None:
        await clone(
            self.system,
            self.spec.url,
            self.destination,
            depth=self.spec.depth,
            user=self.run_as(self.spec.as_user),
        )
