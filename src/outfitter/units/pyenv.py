"""pyenv and a current CPython built with it."""

import os
from pathlib import Path

from outfitter.config.models import PyenvUnitConfig
from outfitter.core.environment import EnvironmentOverlay
from outfitter.core.errors import BuildFailed
from outfitter.core.logging import get_logger
from outfitter.core.outcome import UnitState
from outfitter.system.command import Command
from outfitter.system.worker import Worker
from outfitter.units.base import BaseUnit
from outfitter.units.resolver import latest_matching

logger = get_logger(__name__)


class PyenvPythonResolver:
    """Resolves the newest CPython release pyenv can build that matches a pattern."""

    def __init__(
        self,
        system: Worker,
        pyenv: Path,
        pattern: str,
        env: dict[str, str] | None = None,
        user: str = "",
    ) -> None:
        self.system = system
        self.pyenv = pyenv
        self.pattern = pattern
        self.env = env or {}
        self.user = user

    async def resolve(self) -> str:
        cmd = Command(
            executable=str(self.pyenv), args=["install", "-l"], env=self.env, user=self.user
        )
        output = await self.system.run(cmd)
        candidates = output.decode("utf-8", errors="replace").splitlines()
        return latest_matching(candidates, self.pattern)


class PyenvUnit(BaseUnit):
    """pyenv in the real user's home, with the latest matching CPython as global.

    Installations in root's home are treated as broken when the real user is
    not root, since they come from running the installer under plain sudo.
    """

    spec: PyenvUnitConfig

    @property
    def root(self) -> Path:
        return self.expand(self.spec.root)

    @property
    def binary(self) -> Path:
        return self.root / "bin" / "pyenv"

    def stray_roots(self) -> list[Path]:
        """Known-bad pyenv locations present on disk."""
        stray = []
        for candidate in self.spec.stray_roots:
            path = Path(candidate)
            if path == self.root:
                continue
            if path == Path("/root/.pyenv") and self.system.username() == "root":
                continue
            if path.exists():
                stray.append(path)
        return stray

    async def probe(self, env: EnvironmentOverlay) -> UnitState:
        if self.stray_roots():
            return UnitState.BROKEN

        if not self.root.exists():
            return UnitState.ABSENT

        binary = self.binary
        if not binary.is_file() or not os.access(binary, os.X_OK):
            return UnitState.BROKEN

        cmd = Command(executable=str(binary), args=["--version"], env=self.scoped(env).changes())
        if await self.system.succeeds(cmd):
            return UnitState.HEALTHY
        return UnitState.BROKEN

    def artifacts(self) -> list[Path]:
        return [*self.stray_roots(), self.root]

    async def repair(self, env: EnvironmentOverlay) -> None:
        # A healthy user installation survives when only stray roots are broken
        binary_ok = self.binary.is_file() and await self.system.succeeds(
            Command(executable=str(self.binary), args=["--version"])
        )
        if binary_ok:
            for path in self.stray_roots():
                await self.system.remove_path(path)
                logger.info("Removed stray pyenv root", path=str(path))
            return

        await super().repair(env)

    async def install(self, env: EnvironmentOverlay) -> None:
        scoped = self.scoped(env)
        user = self.run_as()
        pyenv_env = {**scoped.changes(), "PYENV_ROOT": str(self.root)}

        await self.context.apt.install(self.spec.build_packages)

        await self.run_installer(
            self.spec.installer_url,
            scoped,
            interpreter="bash",
            extra_env={"PYENV_ROOT": str(self.root)},
            user=user,
        )

        resolver = PyenvPythonResolver(
            self.system, self.binary, self.spec.python_pattern, env=pyenv_env, user=user
        )
        version = await resolver.resolve()
        if not version:
            raise BuildFailed(
                "resolve", f"no CPython release matches {self.spec.python_pattern}"
            )

        logger.info("Building Python with pyenv", version=version)
        for args in (["install", "-s", version], ["global", version]):
            await self.system.run(
                Command(executable=str(self.binary), args=args, env=pyenv_env, user=user)
            )
