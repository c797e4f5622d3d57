"""Common behaviour for installation units."""

import tempfile
from dataclasses import dataclass
from pathlib import Path

from outfitter.config.models import RunSettings, UnitConfig
from outfitter.core.environment import EnvironmentOverlay
from outfitter.core.errors import RepairFailed
from outfitter.core.logging import get_logger
from outfitter.core.outcome import UnitState
from outfitter.packages.apt import AptHandler
from outfitter.system.command import Command
from outfitter.system.fetch import Fetcher
from outfitter.system.process import ProcessController
from outfitter.system.worker import Worker

logger = get_logger(__name__)


@dataclass
class UnitContext:
    """Collaborators shared by every unit in a run.

    Attributes:
        system: System worker for commands and files
        fetcher: HTTP fetcher
        apt: Package manager handler (shared so index freshness is tracked once)
        processes: Process controller used by repairs
        settings: Run settings
    """

    system: Worker
    fetcher: Fetcher
    apt: AptHandler
    processes: ProcessController
    settings: RunSettings


class BaseUnit:
    """Base class implementing the Unit protocol's bookkeeping.

    Subclasses implement ``probe`` and ``install`` and list the paths that
    ``repair`` should delete via ``artifacts``.
    """

    def __init__(self, spec: UnitConfig, context: UnitContext) -> None:
        """Initialize the unit.

        Args:
            spec: Declared configuration of the unit
            context: Shared collaborators
        """
        self.spec = spec
        self.context = context
        self.system = context.system

    def name(self) -> str:
        return self.spec.name

    def section(self) -> str:
        return self.spec.section

    def required(self) -> bool:
        return self.spec.required

    def expand(self, path: str) -> Path:
        """Expand a leading ``~`` to the real user's home directory."""
        return Path(self.expand_str(path))

    def expand_str(self, value: str) -> str:
        if value == "~" or value.startswith("~/"):
            return str(self.system.home_dir()) + value[1:]
        return value

    def overlay(self) -> EnvironmentOverlay:
        return EnvironmentOverlay.of(
            [self.expand_str(p) for p in self.spec.path],
            {k: self.expand_str(v) for k, v in self.spec.variables.items()},
        )

    def scoped(self, env: EnvironmentOverlay) -> EnvironmentOverlay:
        """The run environment with this unit's own overlay applied."""
        return env.extend(self.overlay())

    def run_as(self, as_user: bool = True) -> str:
        """The user to run user-scoped commands as, or "" for the current user."""
        if not as_user or not self.system.is_root():
            return ""
        username = self.system.username()
        return "" if username == "root" else username

    async def applicable(self) -> bool:
        return True

    async def probe(self, env: EnvironmentOverlay) -> UnitState:
        raise NotImplementedError

    async def install(self, env: EnvironmentOverlay) -> None:
        raise NotImplementedError

    def artifacts(self) -> list[Path]:
        """Paths removed by the default repair."""
        return []

    async def repair(self, env: EnvironmentOverlay) -> None:
        """Remove every declared artifact, tolerating ones already gone.

        Raises:
            RepairFailed: If any artifact could not be removed
        """
        failures = []
        for path in self.artifacts():
            try:
                if await self.system.remove_path(path):
                    logger.info("Removed broken artifact", unit=self.name(), path=str(path))
            except OSError as e:
                failures.append(f"{path}: {e}")

        if failures:
            raise RepairFailed(self.name(), failures)

    async def binary_state(
        self,
        binary: str,
        env: EnvironmentOverlay,
        version_args: list[str] | None = None,
    ) -> UnitState:
        """Probe a tool by locating its binary and running a liveness check.

        Args:
            binary: Executable name or absolute path
            env: Overlay searched for the binary
            version_args: Arguments for the liveness check (empty to skip it)

        Returns:
            ABSENT if not found, HEALTHY if the check passes, BROKEN otherwise
        """
        path = self.system.which(binary, env)
        if path is None:
            return UnitState.ABSENT
        if not version_args:
            return UnitState.HEALTHY

        cmd = Command(executable=path, args=version_args, env=env.changes())
        if await self.system.succeeds(cmd):
            return UnitState.HEALTHY

        logger.debug("Liveness check failed", unit=self.name(), binary=path)
        return UnitState.BROKEN

    async def run_installer(
        self,
        url: str,
        env: EnvironmentOverlay,
        interpreter: str = "sh",
        args: list[str] | None = None,
        extra_env: dict[str, str] | None = None,
        user: str = "",
    ) -> None:
        """Fetch an installer script and run it with an interpreter.

        Raises:
            FetchFailed: If the script cannot be fetched
            CommandError: If the script fails
        """
        script = await self.context.fetcher.fetch(url)

        workdir = Path(tempfile.mkdtemp(prefix=f"outfitter-{self.name()}-"))
        try:
            # Readable by the real user when the script runs through sudo
            workdir.chmod(0o755)
            script_path = workdir / "install.sh"
            await self.system.write_file(script_path, script, mode=0o755)

            cmd = Command(
                executable=interpreter,
                args=[str(script_path), *(args or [])],
                env={**env.changes(), **(extra_env or {})},
                user=user,
            )
            logger.info("Running installer", unit=self.name(), url=url)
            await self.system.run(cmd)
        finally:
            await self.system.remove_path(workdir)

    async def run_shell(self, snippet: str, env: EnvironmentOverlay, user: str = "") -> bytes:
        """Run a shell snippet with the given overlay.

        Raises:
            CommandError: If the snippet fails
        """
        cmd = Command(executable="bash", args=["-c", snippet], env=env.changes(), user=user)
        return await self.system.run(cmd)
