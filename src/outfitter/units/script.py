"""Units installed by running a fetched installer script."""

from pathlib import Path

from outfitter.config.models import ScriptUnitConfig
from outfitter.core.environment import EnvironmentOverlay
from outfitter.core.logging import get_logger
from outfitter.core.outcome import UnitState
from outfitter.units.base import BaseUnit

logger = get_logger(__name__)


class ScriptUnit(BaseUnit):
    """A tool installed by ``curl ... | sh`` style installers.

    The unit is probed either through its binary (located via the overlay
    PATH and checked with ``version_args``) or, for tools that are shell
    functions such as nvm, through the directory the installer creates.
    """

    spec: ScriptUnitConfig

    async def probe(self, env: EnvironmentOverlay) -> UnitState:
        scoped = self.scoped(env)

        if self.spec.binary:
            return await self.binary_state(self.spec.binary, scoped, self.spec.version_args)

        directory = self.expand(self.spec.directory)
        if not directory.exists():
            return UnitState.ABSENT
        if not directory.is_dir() or not any(directory.iterdir()):
            return UnitState.BROKEN
        return UnitState.HEALTHY

    def artifacts(self) -> list[Path]:
        paths = [self.expand(a) for a in self.spec.artifacts]
        if self.spec.directory:
            paths.append(self.expand(self.spec.directory))
        return paths

    async def install(self, env: EnvironmentOverlay) -> None:
        scoped = self.scoped(env)
        user = self.run_as(self.spec.as_user)

        await self.run_installer(
            self.spec.url,
            scoped,
            interpreter=self.spec.interpreter,
            args=self.spec.args,
            extra_env={k: self.expand_str(v) for k, v in self.spec.env.items()},
            user=user,
        )

        for step in self.spec.post_install:
            logger.info("Running post-install step", unit=self.name())
            await self.run_shell(step, scoped, user=user)
