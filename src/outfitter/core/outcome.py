"""States, outcomes and run reports for installation units."""

from dataclasses import dataclass, field
from enum import Enum


class UnitState(str, Enum):
    """Capability state of a unit as observed by a probe."""

    ABSENT = "absent"
    HEALTHY = "present-healthy"
    BROKEN = "present-broken"


class RepairOutcome(str, Enum):
    """Result of repairing a broken unit."""

    CLEANED = "cleaned"
    NOTHING_TO_DO = "nothing-to-do"
    FAILED = "repair-failed"


class InstallKind(str, Enum):
    """Kind of install outcome."""

    INSTALLED = "installed"
    SKIPPED_ALREADY_PRESENT = "skipped-already-present"
    FAILED = "install-failed"


@dataclass(frozen=True)
class InstallOutcome:
    """Result of installing a unit.

    Attributes:
        kind: What happened
        reason: Failure reason when ``kind`` is FAILED
    """

    kind: InstallKind
    reason: str = ""

    @classmethod
    def installed(cls) -> "InstallOutcome":
        return cls(InstallKind.INSTALLED)

    @classmethod
    def already_present(cls) -> "InstallOutcome":
        return cls(InstallKind.SKIPPED_ALREADY_PRESENT)

    @classmethod
    def failed(cls, reason: str) -> "InstallOutcome":
        return cls(InstallKind.FAILED, reason)


class UnitStatus(str, Enum):
    """Terminal status of a unit within one run."""

    SKIPPED = "skipped"
    INSTALLED = "installed"
    FAILED = "failed"
    PLANNED = "planned"
    NOT_RUN = "not-run"


@dataclass
class UnitResult:
    """Reported outcome of a single unit.

    Attributes:
        name: Unit name
        status: Terminal status
        required: Whether the unit's failure aborts the run
        state: State observed by the first probe (None if never probed)
        reason: Failure reason, skip reason or planned action
    """

    name: str
    status: UnitStatus
    required: bool = False
    state: UnitState | None = None
    reason: str = ""


@dataclass
class RunReport:
    """Ordered results of one orchestrator run."""

    results: list[UnitResult] = field(default_factory=list)
    dry_run: bool = False
    aborted_by: str = ""

    def add(self, result: UnitResult) -> None:
        self.results.append(result)

    def names(self, status: UnitStatus) -> list[str]:
        """Names of all units that ended with ``status``."""
        return [r.name for r in self.results if r.status == status]

    @property
    def skipped(self) -> list[str]:
        return self.names(UnitStatus.SKIPPED)

    @property
    def installed(self) -> list[str]:
        return self.names(UnitStatus.INSTALLED)

    @property
    def failed(self) -> list[str]:
        return self.names(UnitStatus.FAILED)

    @property
    def required_failed(self) -> list[str]:
        return [r.name for r in self.results if r.status == UnitStatus.FAILED and r.required]

    @property
    def exit_code(self) -> int:
        """0 when every required unit succeeded, 1 otherwise."""
        return 1 if self.required_failed else 0

    def get(self, name: str) -> UnitResult:
        """Look up the result for a unit by name.

        Raises:
            KeyError: If the unit is not part of this report
        """
        for result in self.results:
            if result.name == name:
                return result
        raise KeyError(name)


@dataclass
class UnitListing:
    """Current state of a unit, as shown by ``outfitter list``.

    Attributes:
        name: Unit name
        section: Section the unit is grouped under
        required: Whether the unit's failure aborts a run
        state: Probed state (None when the unit is not applicable)
    """

    name: str
    section: str
    required: bool
    state: UnitState | None
