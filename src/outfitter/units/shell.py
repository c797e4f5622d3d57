"""The real user's login shell."""

from outfitter.config.models import DefaultShellUnitConfig
from outfitter.core.environment import EnvironmentOverlay
from outfitter.core.errors import ProbeInconclusive
from outfitter.core.logging import get_logger
from outfitter.core.outcome import UnitState
from outfitter.system.accounts import login_shell
from outfitter.system.command import Command
from outfitter.units.base import BaseUnit

logger = get_logger(__name__)


class DefaultShellUnit(BaseUnit):
    """Sets the login shell of the real user with chsh."""

    spec: DefaultShellUnitConfig

    def resolve_shell(self, env: EnvironmentOverlay) -> str:
        """Resolve the configured shell to an absolute path.

        Raises:
            ProbeInconclusive: If the shell is not installed
        """
        path = self.system.which(self.spec.shell, self.scoped(env))
        if path is None:
            raise ProbeInconclusive(f"shell '{self.spec.shell}' is not installed")
        return path

    async def probe(self, env: EnvironmentOverlay) -> UnitState:
        current = await login_shell(self.system, self.system.username())
        if current == self.resolve_shell(env):
            return UnitState.HEALTHY
        return UnitState.ABSENT

    async def repair(self, env: EnvironmentOverlay) -> None:
        # Nothing to clean up; an unresolvable shell is fixed by installing it
        logger.debug("No repair for login shell", unit=self.name())

    async def install(self, env: EnvironmentOverlay) -> None:
        shell = self.resolve_shell(env)
        await self.system.run(
            Command(executable="chsh", args=["-s", shell, self.system.username()])
        )
        logger.info("Changed login shell", user=self.system.username(), shell=shell)
