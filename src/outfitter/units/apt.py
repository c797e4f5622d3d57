"""Units backed by apt: package sets and third-party repositories."""

from pathlib import Path

from outfitter.config.models import AptRepositoryUnitConfig, AptUnitConfig
from outfitter.core.environment import EnvironmentOverlay
from outfitter.core.errors import PackageManagerFailed, ProbeInconclusive
from outfitter.core.logging import get_logger
from outfitter.core.outcome import UnitState
from outfitter.packages.apt import PackageState
from outfitter.packages.repository import (
    RepositoryDescriptor,
    ensure_apt_repository,
    is_registered,
    remove_apt_repository,
)
from outfitter.system.command import Command, CommandError
from outfitter.units.base import BaseUnit, UnitContext

logger = get_logger(__name__)

OS_RELEASE = Path("/etc/os-release")


class AptPackagesUnit(BaseUnit):
    """A set of packages installed together.

    With ``individually`` set, packages are installed one by one and the unit
    is healthy once every package the apt sources can provide is present.
    Packages without an installation candidate are reported but do not fail
    the unit, unless none of its packages could be installed at all.
    """

    spec: AptUnitConfig

    async def probe(self, env: EnvironmentOverlay) -> UnitState:
        states = await self.context.apt.package_states(self.spec.packages)

        if any(s == PackageState.BROKEN for s in states.values()):
            return UnitState.BROKEN

        missing = [p for p in self.spec.packages if states[p] != PackageState.INSTALLED]
        if not missing:
            return UnitState.HEALTHY
        if not self.spec.individually or len(missing) == len(self.spec.packages):
            return UnitState.ABSENT

        for package in missing:
            if await self.context.apt.is_available(package):
                return UnitState.ABSENT

        logger.debug(
            "Remaining packages are unavailable", unit=self.name(), packages=",".join(missing)
        )
        return UnitState.HEALTHY

    async def repair(self, env: EnvironmentOverlay) -> None:
        states = await self.context.apt.package_states(self.spec.packages)
        broken = [p for p, s in states.items() if s == PackageState.BROKEN]
        await self.context.apt.purge(broken)

    async def install(self, env: EnvironmentOverlay) -> None:
        states = await self.context.apt.package_states(self.spec.packages)
        missing = [p for p, s in states.items() if s != PackageState.INSTALLED]

        if not self.spec.individually:
            await self.context.apt.install(missing)
            return

        unavailable = await self.context.apt.install_each(missing)
        if unavailable:
            logger.warning(
                "Some packages are unavailable",
                unit=self.name(),
                packages=",".join(unavailable),
            )
        if len(unavailable) == len(missing) and missing:
            raise PackageManagerFailed(missing, "no package could be installed")


class AptRepositoryUnit(BaseUnit):
    """A third-party apt repository registered with its signing key."""

    spec: AptRepositoryUnitConfig

    def __init__(self, spec: AptRepositoryUnitConfig, context: UnitContext) -> None:
        super().__init__(spec, context)
        self._descriptor: RepositoryDescriptor | None = None

    async def descriptor(self) -> RepositoryDescriptor:
        """Build the descriptor, resolving ``{arch}`` and ``{codename}`` once."""
        if self._descriptor is None:
            repo_line = self.spec.repo_line
            if "{arch}" in repo_line:
                repo_line = repo_line.replace("{arch}", await self._architecture())
            if "{codename}" in repo_line:
                repo_line = repo_line.replace("{codename}", await self._codename())

            self._descriptor = RepositoryDescriptor(
                target_file=Path(self.spec.target_file),
                keyring=Path(self.spec.keyring),
                key_url=self.spec.key_url,
                repo_line=repo_line,
            )
        return self._descriptor

    async def probe(self, env: EnvironmentOverlay) -> UnitState:
        target = Path(self.spec.target_file)
        if not target.exists():
            return UnitState.ABSENT
        if is_registered(await self.descriptor()):
            return UnitState.HEALTHY
        return UnitState.BROKEN

    async def repair(self, env: EnvironmentOverlay) -> None:
        await remove_apt_repository(self.system, await self.descriptor())

    async def install(self, env: EnvironmentOverlay) -> None:
        descriptor = await self.descriptor()
        if await ensure_apt_repository(self.system, self.context.fetcher, descriptor):
            self.context.apt.mark_stale()

    async def _architecture(self) -> str:
        try:
            output = await self.system.run(
                Command(executable="dpkg", args=["--print-architecture"])
            )
        except CommandError as e:
            raise ProbeInconclusive(f"cannot determine architecture: {e.tail(1)}") from e
        return output.decode().strip()

    async def _codename(self) -> str:
        try:
            output = await self.system.run(Command(executable="lsb_release", args=["-cs"]))
            codename = output.decode().strip()
            if codename:
                return codename
        except CommandError:
            logger.debug("lsb_release unavailable, reading os-release")

        return read_codename(OS_RELEASE)


def read_codename(os_release: Path) -> str:
    """Read VERSION_CODENAME from an os-release file.

    Raises:
        ProbeInconclusive: If the codename cannot be found
    """
    try:
        lines = os_release.read_text().splitlines()
    except OSError as e:
        raise ProbeInconclusive(f"cannot read {os_release}: {e}") from e

    for line in lines:
        key, _, value = line.partition("=")
        if key == "VERSION_CODENAME" and value:
            return value.strip().strip('"')

    raise ProbeInconclusive(f"no VERSION_CODENAME in {os_release}")
