"""Python packages installed into the real user's site-packages."""

from outfitter.config.models import PipUnitConfig
from outfitter.core.environment import EnvironmentOverlay
from outfitter.core.outcome import UnitState
from outfitter.system.command import Command
from outfitter.units.base import BaseUnit


class PipUnit(BaseUnit):
    """Packages installed with ``pip install --user``."""

    spec: PipUnitConfig

    def _pip(self, args: list[str], env: EnvironmentOverlay) -> Command:
        return Command(
            executable=self.spec.python,
            args=["-m", "pip", *args],
            env=env.changes(),
            user=self.run_as(),
        )

    async def probe(self, env: EnvironmentOverlay) -> UnitState:
        scoped = self.scoped(env)
        for package in self.spec.packages:
            if not await self.system.succeeds(self._pip(["show", "-q", package], scoped)):
                return UnitState.ABSENT
        return UnitState.HEALTHY

    async def install(self, env: EnvironmentOverlay) -> None:
        cmd = self._pip(["install", "--user", *self.spec.packages], self.scoped(env))
        await self.system.run(cmd)
