"""llama.cpp cloned and built from source, with CUDA when it is usable."""

import os
from pathlib import Path

from outfitter.config.models import LlamaCppUnitConfig
from outfitter.core.environment import EnvironmentOverlay
from outfitter.core.errors import BuildFailed
from outfitter.core.logging import get_logger
from outfitter.core.outcome import UnitState
from outfitter.packages.vcs import clone
from outfitter.system.command import Command, CommandError
from outfitter.system.gpu import find_nvcc, has_nvidia_gpu
from outfitter.units.base import BaseUnit

logger = get_logger(__name__)


class LlamaCppUnit(BaseUnit):
    """A llama.cpp checkout with a CMake build directory."""

    spec: LlamaCppUnitConfig

    @property
    def destination(self) -> Path:
        return self.expand(self.spec.destination)

    @property
    def build_dir(self) -> Path:
        return self.destination / "build"

    async def probe(self, env: EnvironmentOverlay) -> UnitState:
        if not self.destination.exists():
            return UnitState.ABSENT
        if not (self.destination / ".git").exists() or not self.build_dir.is_dir():
            return UnitState.BROKEN
        return UnitState.HEALTHY

    def artifacts(self) -> list[Path]:
        return [self.destination]

    async def install(self, env: EnvironmentOverlay) -> None:
        scoped = self.scoped(env)
        user = self.run_as()

        await clone(self.system, self.spec.url, self.destination, user=user)

        configure = ["-S", str(self.destination), "-B", str(self.build_dir)]
        gpu = await has_nvidia_gpu(self.system)
        nvcc = find_nvcc(self.system, scoped)
        if gpu and nvcc:
            logger.info("Building with CUDA support", unit=self.name(), nvcc=nvcc)
            configure.append(self.spec.cuda_flag)
            scoped = scoped.extend(EnvironmentOverlay.of([str(Path(nvcc).parent)]))
        elif gpu:
            logger.warning(
                "NVIDIA GPU found but no CUDA compiler, building CPU version",
                unit=self.name(),
            )

        jobs = str(os.cpu_count() or 4)
        build = ["--build", str(self.build_dir), "--config", "Release", "-j", jobs]

        for step, args in (("configure", configure), ("compile", build)):
            cmd = Command(
                executable="cmake",
                args=args,
                env=scoped.changes(),
                user=user,
                cwd=str(self.destination),
            )
            try:
                await self.system.run(cmd)
            except CommandError as e:
                raise BuildFailed(step, e.tail()) from e
