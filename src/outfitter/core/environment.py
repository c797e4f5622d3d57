"""Environment overlays threaded explicitly through a run."""

import os
from collections.abc import Mapping
from dataclasses import dataclass


@dataclass(frozen=True)
class EnvironmentOverlay:
    """Immutable set of PATH prefixes and variables contributed by units.

    Overlays never touch ``os.environ``. Each unit declares the overlay it
    needs, and the orchestrator composes them in declared order with
    :meth:`extend`. Prefixes from a later overlay take precedence over
    earlier ones, mirroring ``export PATH="new:$PATH"`` in a shell session.

    Attributes:
        path_prefixes: Directories to prepend to PATH, highest priority first
        variables: Environment variables as (name, value) pairs
    """

    path_prefixes: tuple[str, ...] = ()
    variables: tuple[tuple[str, str], ...] = ()

    @classmethod
    def of(
        cls,
        path_prefixes: list[str] | None = None,
        variables: Mapping[str, str] | None = None,
    ) -> "EnvironmentOverlay":
        """Build an overlay from plain lists and mappings."""
        return cls(
            path_prefixes=tuple(path_prefixes or ()),
            variables=tuple((variables or {}).items()),
        )

    def extend(self, other: "EnvironmentOverlay") -> "EnvironmentOverlay":
        """Compose this overlay with one declared after it.

        Args:
            other: Overlay of a later unit

        Returns:
            New overlay; ``other`` wins on PATH order and variable values
        """
        prefixes = list(other.path_prefixes)
        prefixes.extend(p for p in self.path_prefixes if p not in prefixes)

        merged = dict(self.variables)
        merged.update(other.variables)

        return EnvironmentOverlay(path_prefixes=tuple(prefixes), variables=tuple(merged.items()))

    def path(self, base: str | None = None) -> str:
        """Render PATH with this overlay's prefixes in front of ``base``."""
        if base is None:
            base = os.environ.get("PATH", os.defpath)
        parts = list(self.path_prefixes)
        parts.extend(p for p in base.split(os.pathsep) if p and p not in parts)
        return os.pathsep.join(parts)

    def changes(self) -> dict[str, str]:
        """Return only the variables this overlay sets, plus PATH if prefixed."""
        changed = dict(self.variables)
        if self.path_prefixes:
            changed["PATH"] = self.path()
        return changed

    def __bool__(self) -> bool:
        return bool(self.path_prefixes or self.variables)
