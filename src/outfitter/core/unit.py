"""Unit protocol for probe/repair/install operations.

This module defines the Unit protocol that every installation unit must
implement so the orchestrator can reconcile it.
"""

from typing import Protocol, runtime_checkable

from outfitter.core.environment import EnvironmentOverlay
from outfitter.core.outcome import UnitState


@runtime_checkable
class Unit(Protocol):
    """Protocol for a named, independently idempotent installation task.

    ``probe`` must never mutate state. ``repair`` must tolerate artifacts that
    are already gone. ``install`` is only called when the unit is absent.
    """

    def name(self) -> str:
        """Get the unit name used on the CLI and in the summary."""
        ...

    def section(self) -> str:
        """Get the human-readable section the unit is grouped under."""
        ...

    def required(self) -> bool:
        """Check whether a failure of this unit aborts the run."""
        ...

    def overlay(self) -> EnvironmentOverlay:
        """Get the environment this unit contributes to later units."""
        ...

    async def applicable(self) -> bool:
        """Check whether the unit applies to this machine at all."""
        ...

    async def probe(self, env: EnvironmentOverlay) -> UnitState:
        """Determine the current state of the unit.

        Raises:
            ProbeInconclusive: If the state cannot be determined
        """
        ...

    async def repair(self, env: EnvironmentOverlay) -> None:
        """Remove a broken installation and its collateral artifacts.

        Raises:
            RepairFailed: If cleanup could not complete
        """
        ...

    async def install(self, env: EnvironmentOverlay) -> None:
        """Perform the external install procedure.

        Raises:
            Exception: If installation fails
        """
        ...
