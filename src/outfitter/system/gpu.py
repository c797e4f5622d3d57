"""NVIDIA GPU and CUDA toolkit detection."""

from pathlib import Path

from outfitter.core.environment import EnvironmentOverlay
from outfitter.core.logging import get_logger
from outfitter.system.command import Command, CommandError
from outfitter.system.worker import Worker

logger = get_logger(__name__)

NVIDIA_PROC_DIR = Path("/proc/driver/nvidia")
CUDA_BIN_DIRS = ["/usr/local/cuda/bin", "/opt/cuda/bin"]


async def has_nvidia_gpu(system: Worker, proc_dir: Path = NVIDIA_PROC_DIR) -> bool:
    """Detect an NVIDIA GPU via nvidia-smi, lspci or the kernel driver."""
    if system.which("nvidia-smi"):
        if await system.succeeds(Command(executable="nvidia-smi")):
            logger.debug("NVIDIA GPU detected", via="nvidia-smi")
            return True
        return False

    if system.which("lspci"):
        try:
            output = await system.run(Command(executable="lspci"))
        except CommandError:
            output = b""
        if b"nvidia" in output.lower():
            logger.debug("NVIDIA GPU detected", via="lspci")
            return True

    if proc_dir.is_dir():
        logger.debug("NVIDIA GPU detected", via=str(proc_dir))
        return True

    return False


def find_nvcc(system: Worker, env: EnvironmentOverlay | None = None) -> str | None:
    """Locate the CUDA compiler on PATH or in the usual toolkit locations."""
    path = system.which("nvcc", env)
    if path:
        return path

    for bin_dir in CUDA_BIN_DIRS:
        path = system.which("nvcc", EnvironmentOverlay.of([bin_dir]))
        if path:
            return path

    return None
