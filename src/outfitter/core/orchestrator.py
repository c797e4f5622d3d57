"""Probe, repair and install units in declared order."""

from outfitter.core.environment import EnvironmentOverlay
from outfitter.core.errors import OutfitterError, RepairFailed
from outfitter.core.logging import get_logger
from outfitter.core.outcome import (
    InstallKind,
    InstallOutcome,
    RepairOutcome,
    RunReport,
    UnitResult,
    UnitState,
    UnitStatus,
)
from outfitter.core.reporter import Reporter
from outfitter.core.unit import Unit
from outfitter.system.command import CommandError

logger = get_logger(__name__)

# Errors a unit may raise while installing; anything else is a bug and propagates
INSTALL_ERRORS = (OutfitterError, CommandError, OSError)


async def probe_unit(unit: Unit, env: EnvironmentOverlay) -> UnitState:
    """Probe a unit, treating any probe error as a broken installation.

    Args:
        unit: Unit to probe
        env: Environment accumulated from earlier units

    Returns:
        Observed state of the unit
    """
    try:
        return await unit.probe(env)
    except Exception as e:
        logger.warning(
            "Probe was inconclusive, treating unit as broken",
            unit=unit.name(),
            error=str(e) or type(e).__name__,
        )
        return UnitState.BROKEN


async def repair_unit(unit: Unit, env: EnvironmentOverlay) -> RepairOutcome:
    """Clean up a broken unit and verify the result with a fresh probe.

    Args:
        unit: Unit previously probed as broken
        env: Environment accumulated from earlier units

    Returns:
        CLEANED if the unit is now absent, NOTHING_TO_DO if it turned out
        healthy, FAILED otherwise
    """
    log = get_logger(__name__, unit=unit.name())
    log.info("Repairing broken unit")

    try:
        await unit.repair(env)
    except RepairFailed as e:
        for failure in e.failures:
            log.error("Repair step failed", failure=failure)
        return RepairOutcome.FAILED
    except INSTALL_ERRORS as e:
        log.error("Repair failed", error=str(e))
        return RepairOutcome.FAILED

    state = await probe_unit(unit, env)
    if state == UnitState.ABSENT:
        log.info("Removed broken installation")
        return RepairOutcome.CLEANED
    if state == UnitState.HEALTHY:
        return RepairOutcome.NOTHING_TO_DO

    log.error("Unit is still broken after repair")
    return RepairOutcome.FAILED


async def install_unit(
    unit: Unit,
    env: EnvironmentOverlay,
    state: UnitState | None = None,
) -> InstallOutcome:
    """Install a unit and verify it with a post-install probe.

    Args:
        unit: Unit to install
        env: Environment accumulated from earlier units
        state: Already known state (probed when None)

    Returns:
        The install outcome
    """
    if state is None:
        state = await probe_unit(unit, env)
    if state == UnitState.HEALTHY:
        return InstallOutcome.already_present()

    log = get_logger(__name__, unit=unit.name())
    log.info("Installing unit")

    try:
        await unit.install(env)
    except CommandError as e:
        log.error("Install failed", error=str(e))
        return InstallOutcome.failed(e.tail(1) or str(e))
    except INSTALL_ERRORS as e:
        log.error("Install failed", error=str(e))
        return InstallOutcome.failed(str(e))

    if await probe_unit(unit, env.extend(unit.overlay())) != UnitState.HEALTHY:
        log.error("Unit is not healthy after install")
        return InstallOutcome.failed("not healthy after install")

    log.info("Installed unit")
    return InstallOutcome.installed()


class Orchestrator:
    """Reconciles units one after another with graduated severity.

    A failed optional unit is reported and the run continues. A failed
    required unit aborts the run; every unit after it is reported as
    not run. The environment overlay of each unit that did not fail is
    passed on to the units after it.
    """

    def __init__(
        self,
        units: list[Unit],
        reporter: Reporter,
        dry_run: bool = False,
        base_env: EnvironmentOverlay | None = None,
    ) -> None:
        """Initialize the Orchestrator.

        Args:
            units: Units in declared order
            reporter: Reporter for section headers, results and the summary
            dry_run: Only probe and report what would be done
            base_env: Environment to start from
        """
        self.units = units
        self.reporter = reporter
        self.dry_run = dry_run
        self.base_env = base_env or EnvironmentOverlay()

    async def run(self) -> RunReport:
        """Run every unit and print the summary.

        Returns:
            The run report
        """
        report = RunReport(dry_run=self.dry_run)
        env = self.base_env
        section = None

        for index, unit in enumerate(self.units):
            if unit.section() != section:
                section = unit.section()
                self.reporter.section(section)

            result = await self._reconcile(unit, env)
            report.add(result)
            self.reporter.unit_result(result)

            if result.status != UnitStatus.FAILED:
                env = env.extend(unit.overlay())
                continue

            if unit.required():
                logger.error("Required unit failed, aborting", unit=unit.name())
                report.aborted_by = unit.name()
                for remaining in self.units[index + 1 :]:
                    report.add(
                        UnitResult(
                            name=remaining.name(),
                            status=UnitStatus.NOT_RUN,
                            required=remaining.required(),
                            reason=f"aborted after {unit.name()}",
                        )
                    )
                break

        self.reporter.summary(report)
        return report

    async def _reconcile(self, unit: Unit, env: EnvironmentOverlay) -> UnitResult:
        """Drive one unit to a terminal status."""

        def result(status: UnitStatus, state: UnitState | None, reason: str = "") -> UnitResult:
            return UnitResult(
                name=unit.name(),
                status=status,
                required=unit.required(),
                state=state,
                reason=reason,
            )

        if not await unit.applicable():
            logger.debug("Unit not applicable", unit=unit.name())
            return result(UnitStatus.SKIPPED, None, "not applicable")

        state = await probe_unit(unit, env)
        logger.debug("Probed unit", unit=unit.name(), state=state.value)

        if state == UnitState.HEALTHY:
            return result(UnitStatus.SKIPPED, state, "already present")

        if self.dry_run:
            action = "repair, install" if state == UnitState.BROKEN else "install"
            return result(UnitStatus.PLANNED, state, action)

        if state == UnitState.BROKEN:
            repaired = await repair_unit(unit, env)
            if repaired == RepairOutcome.FAILED:
                return result(UnitStatus.FAILED, state, RepairOutcome.FAILED.value)
            if repaired == RepairOutcome.NOTHING_TO_DO:
                return result(UnitStatus.SKIPPED, state, "already present")

        outcome = await install_unit(unit, env, UnitState.ABSENT)
        if outcome.kind == InstallKind.INSTALLED:
            return result(UnitStatus.INSTALLED, state)
        if outcome.kind == InstallKind.SKIPPED_ALREADY_PRESENT:
            return result(UnitStatus.SKIPPED, state, "already present")
        return result(UnitStatus.FAILED, state, outcome.reason)
