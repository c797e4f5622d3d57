"""Units installed from downloaded release artifacts."""

import os
import tempfile
from pathlib import Path

from outfitter.config.models import ArchiveUnitConfig, DebUnitConfig, DownloadUnitConfig
from outfitter.core.environment import EnvironmentOverlay
from outfitter.core.errors import FetchFailed, PackageManagerFailed
from outfitter.core.logging import get_logger
from outfitter.core.outcome import UnitState
from outfitter.system.command import Command
from outfitter.units.base import BaseUnit, UnitContext
from outfitter.units.resolver import VersionResolver, create_resolver

logger = get_logger(__name__)


def versioned_url(template: str, version: str) -> str:
    """Substitute ``{version}`` in a URL template."""
    return template.replace("{version}", version)


class DownloadUnit(BaseUnit):
    """A single executable (or AppImage) downloaded to a fixed destination."""

    spec: DownloadUnitConfig

    def __init__(self, spec: DownloadUnitConfig, context: UnitContext) -> None:
        super().__init__(spec, context)
        self.resolver: VersionResolver | None = create_resolver(context.fetcher, spec.resolver)

    @property
    def destination(self) -> Path:
        return self.expand(self.spec.destination)

    async def probe(self, env: EnvironmentOverlay) -> UnitState:
        if self.spec.binary:
            return await self.binary_state(
                self.spec.binary, self.scoped(env), self.spec.version_args
            )

        destination = self.destination
        if not destination.exists():
            return UnitState.ABSENT
        if not destination.is_file() or not os.access(destination, os.X_OK):
            return UnitState.BROKEN
        if not self.spec.version_args:
            return UnitState.HEALTHY

        cmd = Command(
            executable=str(destination),
            args=self.spec.version_args,
            env=self.scoped(env).changes(),
        )
        if await self.system.succeeds(cmd):
            return UnitState.HEALTHY
        return UnitState.BROKEN

    def artifacts(self) -> list[Path]:
        return [self.destination]

    async def install(self, env: EnvironmentOverlay) -> None:
        url = await self.resolve_url()
        if self.spec.as_user:
            # Missing parents such as ~/.local/bin must belong to the user, not root
            await self.system.run(
                Command(
                    executable="mkdir",
                    args=["-p", str(self.destination.parent)],
                    user=self.run_as(),
                )
            )
        await self.context.fetcher.download(url, self.destination, mode=0o755)
        if self.spec.as_user:
            await self.system.chown_to_user(self.destination)
        logger.info("Downloaded executable", unit=self.name(), path=str(self.destination))

    async def resolve_url(self) -> str:
        """Build the download URL, falling back to the pinned version if needed.

        Raises:
            FetchFailed: If neither the resolved nor the fallback URL exists
        """
        if self.resolver is None:
            return self.spec.url

        version = await self.resolver.resolve()
        url = versioned_url(self.spec.url, version)
        if await self.context.fetcher.exists(url):
            return url

        fallback = self.spec.resolver.fallback if self.spec.resolver else ""
        if fallback and fallback != version:
            logger.warning(
                "Release artifact not found, using fallback version",
                unit=self.name(),
                version=version,
                fallback=fallback,
            )
            url = versioned_url(self.spec.url, fallback)
            if await self.context.fetcher.exists(url):
                return url

        raise FetchFailed(url, "release artifact not found")


class ArchiveUnit(BaseUnit):
    """A zip archive that carries its own installer script (e.g. the AWS CLI)."""

    spec: ArchiveUnitConfig

    async def probe(self, env: EnvironmentOverlay) -> UnitState:
        return await self.binary_state(self.spec.binary, self.scoped(env), ["--version"])

    def artifacts(self) -> list[Path]:
        return [self.expand(a) for a in self.spec.artifacts]

    async def install(self, env: EnvironmentOverlay) -> None:
        workdir = Path(tempfile.mkdtemp(prefix=f"outfitter-{self.name()}-"))
        try:
            archive = workdir / "archive.zip"
            await self.context.fetcher.download(self.spec.url, archive)

            await self.system.run(
                Command(executable="unzip", args=["-q", str(archive), "-d", str(workdir)])
            )

            installer = workdir / self.spec.installer
            await self.system.run(
                Command(executable=str(installer), args=self.spec.installer_args)
            )
        finally:
            await self.system.remove_path(workdir)


class DebUnit(BaseUnit):
    """A .deb package downloaded from a release page and installed with dpkg."""

    spec: DebUnitConfig

    def __init__(self, spec: DebUnitConfig, context: UnitContext) -> None:
        super().__init__(spec, context)
        self.resolver: VersionResolver | None = create_resolver(context.fetcher, spec.resolver)

    async def probe(self, env: EnvironmentOverlay) -> UnitState:
        return await self.binary_state(self.spec.binary, self.scoped(env))

    async def install(self, env: EnvironmentOverlay) -> None:
        if self.spec.apt_package:
            try:
                await self.context.apt.install([self.spec.apt_package])
                return
            except PackageManagerFailed as e:
                logger.info(
                    "Package not available from apt, using release download",
                    unit=self.name(),
                    reason=e.reason,
                )

        url = self.spec.url
        if self.resolver is not None:
            url = versioned_url(url, await self.resolver.resolve())

        workdir = Path(tempfile.mkdtemp(prefix=f"outfitter-{self.name()}-"))
        try:
            package = workdir / Path(url).name
            await self.context.fetcher.download(url, package)
            await self.context.apt.install_deb(package)
        finally:
            await self.system.remove_path(workdir)
