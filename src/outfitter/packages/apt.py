"""Debian package handler for installing and inspecting apt packages."""

from enum import Enum
from pathlib import Path

from outfitter.core.errors import PackageManagerFailed
from outfitter.core.logging import get_logger
from outfitter.system.command import Command, CommandError
from outfitter.system.worker import Worker

logger = get_logger(__name__)

APT_ENV = {"DEBIAN_FRONTEND": "noninteractive"}

# apt-get waits on the dpkg lock; give a concurrent unattended-upgrade time to finish
INDEX_RETRY_MS = 300_000


class PackageState(str, Enum):
    """Installation state of a single Debian package."""

    INSTALLED = "installed"
    ABSENT = "absent"
    BROKEN = "broken"


def classify_status(status: str) -> PackageState:
    """Classify a dpkg ``${Status}`` string ("want error state").

    Args:
        status: Status string such as "install ok installed"

    Returns:
        The package state
    """
    parts = status.split()
    if len(parts) != 3:
        return PackageState.ABSENT

    _, error, state = parts
    if state == "installed" and error == "ok":
        return PackageState.INSTALLED
    if state in ("not-installed", "config-files"):
        return PackageState.ABSENT
    return PackageState.BROKEN


def has_candidate(policy: str) -> bool:
    """Parse ``apt-cache policy`` output for an installation candidate."""
    for line in policy.splitlines():
        key, _, value = line.strip().partition(":")
        if key == "Candidate":
            return value.strip() not in ("", "(none)")
    return False


class AptHandler:
    """Handler for managing Debian packages via apt and dpkg.

    The handler remembers whether the package index is fresh, so units that
    add repositories only need to mark it stale and the next install refreshes
    it once.
    """

    def __init__(self, system: Worker) -> None:
        """Initialize the AptHandler.

        Args:
            system: System worker for executing commands
        """
        self.system = system
        self._index_stale = True

    def mark_stale(self) -> None:
        """Force an index refresh before the next install."""
        self._index_stale = True

    async def update_index(self) -> None:
        """Update the apt package index.

        Raises:
            PackageManagerFailed: If apt-get update fails
        """
        cmd = Command(executable="apt-get", args=["update"], env=APT_ENV)
        try:
            await self.system.run_with_retries(cmd, INDEX_RETRY_MS)
        except CommandError as e:
            raise PackageManagerFailed([], e.tail()) from e

        self._index_stale = False
        logger.debug("Updated apt index")

    async def install(self, packages: list[str]) -> None:
        """Install packages in a single transaction.

        Args:
            packages: Package names to install

        Raises:
            PackageManagerFailed: If installation fails
        """
        if not packages:
            return

        if self._index_stale:
            await self.update_index()

        cmd = Command(executable="apt-get", args=["install", "-y", *packages], env=APT_ENV)
        try:
            await self.system.run(cmd)
        except CommandError as e:
            raise PackageManagerFailed(packages, e.tail()) from e

        logger.info("Installed apt packages", packages=",".join(packages))

    async def install_each(self, packages: list[str]) -> list[str]:
        """Install packages one at a time so unavailable ones do not block the rest.

        Returns:
            Packages that failed to install
        """
        failed = []
        for package in packages:
            try:
                await self.install([package])
            except PackageManagerFailed as e:
                logger.warning("Package not installable", package=package, reason=e.reason)
                failed.append(package)
        return failed

    async def install_deb(self, path: Path) -> None:
        """Install a local .deb file, resolving missing dependencies.

        Raises:
            PackageManagerFailed: If the package cannot be installed
        """
        try:
            await self.system.run(Command(executable="dpkg", args=["-i", str(path)], env=APT_ENV))
        except CommandError:
            logger.debug("dpkg failed, fixing dependencies", path=str(path))
            fix = Command(executable="apt-get", args=["install", "-f", "-y"], env=APT_ENV)
            try:
                await self.system.run(fix)
            except CommandError as e:
                raise PackageManagerFailed([path.name], e.tail()) from e

    async def package_state(self, package: str) -> PackageState:
        """Query dpkg for the state of one package."""
        cmd = Command(executable="dpkg-query", args=["-W", "-f=${Status}", package])
        try:
            output = await self.system.run(cmd)
        except CommandError:
            return PackageState.ABSENT
        return classify_status(output.decode("utf-8", errors="replace").strip())

    async def package_states(self, packages: list[str]) -> dict[str, PackageState]:
        """Query dpkg for the state of several packages."""
        return {package: await self.package_state(package) for package in packages}

    async def is_available(self, package: str) -> bool:
        """Check whether the configured sources offer an installation candidate.

        This only reads the local package cache; unknown packages produce no
        policy output at all.
        """
        cmd = Command(executable="apt-cache", args=["policy", package])
        try:
            output = await self.system.run(cmd)
        except CommandError:
            return False
        return has_candidate(output.decode("utf-8", errors="replace"))

    async def purge(self, packages: list[str]) -> None:
        """Purge packages, including ones dpkg considers half-installed.

        Raises:
            PackageManagerFailed: If removal fails
        """
        if not packages:
            return

        cmd = Command(
            executable="dpkg",
            args=["--purge", "--force-remove-reinstreq", *packages],
            env=APT_ENV,
        )
        try:
            await self.system.run(cmd)
        except CommandError as e:
            raise PackageManagerFailed(packages, e.tail()) from e

        logger.info("Purged apt packages", packages=",".join(packages))
