"""Supplementary group membership of the real user."""

from outfitter.config.models import GroupMembershipUnitConfig
from outfitter.core.environment import EnvironmentOverlay
from outfitter.core.errors import ProbeInconclusive
from outfitter.core.logging import get_logger
from outfitter.core.outcome import UnitState
from outfitter.system.accounts import add_to_group, group_exists, user_groups
from outfitter.units.base import BaseUnit

logger = get_logger(__name__)


class GroupMembershipUnit(BaseUnit):
    """Adds the real user to a group created by an earlier package, e.g. docker.

    Membership is read from the group database, so it is visible straight
    after ``usermod`` even though it only applies to new login sessions.
    """

    spec: GroupMembershipUnitConfig

    async def probe(self, env: EnvironmentOverlay) -> UnitState:
        group = self.spec.group
        if not await group_exists(self.system, group):
            raise ProbeInconclusive(f"group '{group}' does not exist")

        if group in await user_groups(self.system, self.system.username()):
            return UnitState.HEALTHY
        return UnitState.ABSENT

    async def repair(self, env: EnvironmentOverlay) -> None:
        # A missing group comes from a package that failed to install
        logger.debug("No repair for group membership", unit=self.name())

    async def install(self, env: EnvironmentOverlay) -> None:
        username = self.system.username()
        await add_to_group(self.system, username, self.spec.group)
        logger.info(
            "Added user to group; log in again to apply",
            user=username,
            group=self.spec.group,
        )
