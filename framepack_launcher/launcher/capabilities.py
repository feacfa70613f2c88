"""Capability probing: Docker daemon, host GPU driver and in-container GPU access."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
import shutil
import subprocess

from framepack_launcher.utils.docker import DockerError, DockerRuntime
from framepack_launcher.utils.log_utils import logger

from .errors import GpuDeclinedError, RuntimeUnavailableError
from .models import EnvironmentCapabilities
from .prompts import Prompt


DOCKER_INSTALL_URL = "https://docs.docker.com/get-docker/"
NVIDIA_WSL_GUIDE_URL = "https://docs.nvidia.com/cuda/wsl-user-guide/index.html"
GPU_PROBE_COMMAND = ("nvidia-smi",)

WSL_GPU_CHECKLIST = (
    "1. Docker Desktop is running on Windows",
    "2. WSL Integration is enabled in Docker Desktop",
    "3. GPU settings are enabled in Docker Desktop Resources section",
)


def is_wsl(proc_version: Path = Path("/proc/version")) -> bool:
    """Return True when running inside a WSL2 guest."""
    try:
        return "microsoft" in proc_version.read_text(encoding="utf-8", errors="replace").lower()
    except OSError:
        return False


def query_gpu_driver(timeout: float = 15.0) -> bool:
    """Return True if ``nvidia-smi`` is installed and exits cleanly on the host."""
    if shutil.which("nvidia-smi") is None:
        return False
    try:
        result = subprocess.run(
            ["nvidia-smi"], capture_output=True, text=True, timeout=timeout, check=False
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug(f"nvidia-smi failed to run: {e}")
        return False
    return result.returncode == 0


def check_gpu_in_container(runtime: DockerRuntime, probe_image: str) -> bool:
    """Run ``nvidia-smi`` in a throwaway container with every GPU requested."""
    try:
        runtime.run_probe(probe_image, GPU_PROBE_COMMAND, gpus="all")
    except DockerError as e:
        logger.debug(f"GPU probe failed: {e}")
        return False
    return True


def _confirm_cpu_mode(prompt: Prompt, reason: str) -> None:
    if not prompt.ask("Continue without GPU support?", default=False):
        raise GpuDeclinedError(f"Exiting. {reason}", remediation=NVIDIA_WSL_GUIDE_URL)
    logger.warning("Continuing in CPU-only mode (slower performance).")


def probe_capabilities(
    connect: Callable[[], DockerRuntime],
    prompt: Prompt,
    *,
    probe_image: str,
    want_gpu: bool = True,
    driver_check: Callable[[], bool] = query_gpu_driver,
    wsl_check: Callable[[], bool] = is_wsl,
) -> tuple[EnvironmentCapabilities, DockerRuntime]:
    """Inspect the host and return its capabilities plus a connected runtime.

    Args:
        connect: Factory returning a connected runtime; ``DockerError`` means no daemon.
        prompt: Asked whether to fall back to CPU-only mode.
        probe_image: CUDA base image used for the functional GPU check.
        want_gpu: When False the GPU checks are skipped entirely.
        driver_check: Host driver query, injectable for tests.
        wsl_check: WSL detection, injectable for tests.

    Raises:
        RuntimeUnavailableError: Docker is not reachable.
        GpuDeclinedError: GPU is unusable and the operator declined CPU mode.
    """
    try:
        runtime = connect()
    except DockerError as e:
        logger.error("Docker not found or not reachable.")
        raise RuntimeUnavailableError(
            str(e), remediation=f"Install or start Docker. Visit: {DOCKER_INSTALL_URL}"
        ) from e
    logger.info("[green]Docker is available.[/green]")

    wsl = wsl_check()
    if not want_gpu:
        logger.info("GPU checks skipped; launching in CPU-only mode.")
        return EnvironmentCapabilities(True, False, False, wsl), runtime

    if not driver_check():
        logger.error("NVIDIA drivers not found. GPU acceleration requires NVIDIA drivers.")
        logger.warning(f"Visit: {NVIDIA_WSL_GUIDE_URL}")
        _confirm_cpu_mode(prompt, "Please install NVIDIA drivers and try again.")
        return EnvironmentCapabilities(True, False, False, wsl), runtime
    logger.info("[green]NVIDIA drivers are installed.[/green]")

    logger.info("Testing GPU access in Docker...")
    if check_gpu_in_container(runtime, probe_image):
        logger.info("[green]GPU is accessible to Docker.[/green]")
        return EnvironmentCapabilities(True, True, True, wsl), runtime

    logger.error("Docker cannot access GPU.")
    if wsl:
        logger.warning("Running in WSL2 environment. Please ensure:")
        for item in WSL_GPU_CHECKLIST:
            logger.warning(item)
    _confirm_cpu_mode(prompt, "Please fix GPU access issues and try again.")
    return EnvironmentCapabilities(True, True, False, wsl), runtime


__all__ = [
    "is_wsl",
    "query_gpu_driver",
    "check_gpu_in_container",
    "probe_capabilities",
]
