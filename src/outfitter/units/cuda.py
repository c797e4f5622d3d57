"""The CUDA toolkit for machines with an NVIDIA GPU."""

import tempfile
from pathlib import Path

from outfitter.config.models import CudaUnitConfig
from outfitter.core.environment import EnvironmentOverlay
from outfitter.core.logging import get_logger
from outfitter.core.outcome import UnitState
from outfitter.system.gpu import find_nvcc, has_nvidia_gpu
from outfitter.units.base import BaseUnit

logger = get_logger(__name__)


class CudaUnit(BaseUnit):
    """NVIDIA's apt keyring package followed by the toolkit packages."""

    spec: CudaUnitConfig

    async def applicable(self) -> bool:
        return await has_nvidia_gpu(self.system)

    async def probe(self, env: EnvironmentOverlay) -> UnitState:
        if find_nvcc(self.system, self.scoped(env)):
            return UnitState.HEALTHY
        return UnitState.ABSENT

    async def install(self, env: EnvironmentOverlay) -> None:
        apt = self.context.apt

        workdir = Path(tempfile.mkdtemp(prefix=f"outfitter-{self.name()}-"))
        try:
            keyring = workdir / "cuda-keyring.deb"
            await self.context.fetcher.download(self.spec.keyring_url, keyring)
            await apt.install_deb(keyring)
        finally:
            await self.system.remove_path(workdir)

        apt.mark_stale()
        await apt.install(self.spec.packages)

        unavailable = await apt.install_each(self.spec.extra_packages)
        if unavailable:
            logger.warning("Optional CUDA packages unavailable", packages=",".join(unavailable))
