"""Exception hierarchy for Outfitter.

Units raise these from probe, repair and install; the orchestrator catches
them at the unit boundary and turns them into outcomes.
"""


class OutfitterError(Exception):
    """Base class for all Outfitter errors."""


class UnitConfigError(OutfitterError):
    """Raised when the declared units or overrides are invalid."""


class ProbeInconclusive(OutfitterError):
    """Raised when a probe cannot decide a unit's state.

    The orchestrator treats this as a broken installation so the unit is
    repaired and reinstalled rather than silently skipped.
    """


class RepairFailed(OutfitterError):
    """Raised when cleanup of a broken installation could not complete.

    Attributes:
        failures: Descriptions of the individual cleanup steps that failed
    """

    def __init__(self, unit: str, failures: list[str]) -> None:
        self.unit = unit
        self.failures = failures
        super().__init__(f"Repair of '{unit}' failed: {'; '.join(failures)}")


class FetchFailed(OutfitterError):
    """Raised when a network fetch fails.

    Attributes:
        url: URL that could not be fetched
        reason: Short description of the failure
    """

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to fetch {url}: {reason}")


class PackageManagerFailed(OutfitterError):
    """Raised when an apt/dpkg transaction fails.

    Attributes:
        packages: Packages involved in the failed transaction
        reason: Short description of the failure
    """

    def __init__(self, packages: list[str], reason: str) -> None:
        self.packages = packages
        self.reason = reason
        names = ", ".join(packages) if packages else "<index>"
        super().__init__(f"Package manager failed for {names}: {reason}")


class BuildFailed(OutfitterError):
    """Raised when building a source tree fails.

    Attributes:
        step: Build step that failed (e.g. 'configure', 'compile')
        reason: Short description of the failure
    """

    def __init__(self, step: str, reason: str) -> None:
        self.step = step
        self.reason = reason
        super().__init__(f"Build step '{step}' failed: {reason}")
