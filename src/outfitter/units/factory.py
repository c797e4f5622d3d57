"""Factory for creating unit instances from their declarations."""

from outfitter.config.models import OutfitterConfig, UnitConfig
from outfitter.core.errors import UnitConfigError
from outfitter.units.apt import AptPackagesUnit, AptRepositoryUnit
from outfitter.units.base import BaseUnit, UnitContext
from outfitter.units.cuda import CudaUnit
from outfitter.units.download import ArchiveUnit, DebUnit, DownloadUnit
from outfitter.units.git import GitCloneUnit
from outfitter.units.groups import GroupMembershipUnit
from outfitter.units.links import SymlinkUnit
from outfitter.units.llama_cpp import LlamaCppUnit
from outfitter.units.nix import NixUnit
from outfitter.units.pip import PipUnit
from outfitter.units.pyenv import PyenvUnit
from outfitter.units.script import ScriptUnit
from outfitter.units.shell import DefaultShellUnit

UNIT_KINDS: dict[str, type[BaseUnit]] = {
    "apt": AptPackagesUnit,
    "apt-repository": AptRepositoryUnit,
    "script": ScriptUnit,
    "download": DownloadUnit,
    "archive": ArchiveUnit,
    "deb": DebUnit,
    "git": GitCloneUnit,
    "pip": PipUnit,
    "symlink": SymlinkUnit,
    "pyenv": PyenvUnit,
    "nix": NixUnit,
    "llama-cpp": LlamaCppUnit,
    "cuda": CudaUnit,
    "default-shell": DefaultShellUnit,
    "group-membership": GroupMembershipUnit,
}


def create_unit(spec: UnitConfig, context: UnitContext) -> BaseUnit:
    """Create a unit instance from its declaration.

    Args:
        spec: Unit declaration
        context: Shared collaborators

    Returns:
        Unit instance

    Raises:
        UnitConfigError: If the declaration has an unknown kind
    """
    kind = getattr(spec, "kind", "")
    unit_class = UNIT_KINDS.get(kind)
    if unit_class is None:
        raise UnitConfigError(f"Unit '{spec.name}' has unsupported kind '{kind}'")
    return unit_class(spec, context)


def create_units(config: OutfitterConfig, context: UnitContext) -> list[BaseUnit]:
    """Create the selected units in declared order.

    Args:
        config: Outfitter configuration (with overrides applied)
        context: Shared collaborators

    Returns:
        List of unit instances

    Raises:
        UnitConfigError: If overrides name unknown units
    """
    return [create_unit(spec, context) for spec in config.selected_units()]
