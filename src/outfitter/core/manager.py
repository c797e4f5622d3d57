"""Manager for orchestrating Outfitter runs."""

from outfitter.config.models import OutfitterConfig
from outfitter.core.environment import EnvironmentOverlay
from outfitter.core.logging import get_logger
from outfitter.core.orchestrator import Orchestrator, probe_unit
from outfitter.core.outcome import RunReport, UnitListing
from outfitter.core.reporter import Reporter
from outfitter.packages.apt import AptHandler
from outfitter.system.fetch import Fetcher
from outfitter.system.process import PatternProcessController
from outfitter.system.runner import System
from outfitter.system.worker import Worker
from outfitter.units.base import UnitContext
from outfitter.units.factory import create_units

logger = get_logger(__name__)


class Manager:
    """Manager wires configuration, collaborators and units together.

    It builds the shared unit context from the run settings and hands the
    selected units to the orchestrator.
    """

    def __init__(
        self,
        config: OutfitterConfig,
        system: Worker | None = None,
        reporter: Reporter | None = None,
    ) -> None:
        """Initialize the Manager.

        Args:
            config: Outfitter configuration (overrides applied)
            system: System worker (a real System by default)
            reporter: Console reporter
        """
        self.config = config
        self.system = system or System(trace=config.trace)
        self.reporter = reporter or Reporter()

        settings = config.settings
        self.context = UnitContext(
            system=self.system,
            fetcher=Fetcher(attempts=settings.fetch_attempts, timeout=settings.fetch_timeout),
            apt=AptHandler(self.system),
            processes=PatternProcessController(self.system),
            settings=settings,
        )

    async def run(self) -> RunReport:
        """Reconcile every selected unit.

        Returns:
            The run report

        Raises:
            UnitConfigError: If overrides name unknown units
        """
        units = create_units(self.config, self.context)
        logger.debug("Selected units", count=len(units), dry_run=self.config.overrides.dry_run)

        orchestrator = Orchestrator(units, self.reporter, dry_run=self.config.overrides.dry_run)
        return await orchestrator.run()

    async def list_states(self) -> list[UnitListing]:
        """Probe every selected unit without changing anything.

        Returns:
            One listing per unit, in declared order

        Raises:
            UnitConfigError: If overrides name unknown units
        """
        env = EnvironmentOverlay()
        listings = []

        for unit in create_units(self.config, self.context):
            state = await probe_unit(unit, env) if await unit.applicable() else None
            listings.append(UnitListing(unit.name(), unit.section(), unit.required(), state))
            env = env.extend(unit.overlay())

        self.reporter.unit_listing(listings)
        return listings
