"""Ensure the application image exists locally, building it when missing."""

from __future__ import annotations

from pathlib import Path

from framepack_launcher.utils.docker import DockerError, DockerRuntime
from framepack_launcher.utils.log_utils import logger

from .errors import BuildDefinitionMissingError, ImageBuildError


BUILD_DEFINITION = "Dockerfile"


def ensure_image(runtime: DockerRuntime, name: str, build_context: Path) -> None:
    """Make sure ``name`` is available, building from ``build_context`` if absent.

    Raises:
        BuildDefinitionMissingError: No Dockerfile in ``build_context``.
        ImageBuildError: The build failed. Not retried.
    """
    if runtime.image_exists(name):
        logger.info(f"[green]Image '{name}' found.[/green]")
        return

    logger.info(f"Image '{name}' not found. Building...")
    dockerfile = build_context / BUILD_DEFINITION
    if not dockerfile.is_file():
        raise BuildDefinitionMissingError(
            f"{BUILD_DEFINITION} not found in {build_context}",
            remediation="Run the launcher from the repository checkout or set FRAMEPACK_BUILD_CONTEXT.",
        )

    logger.info("Building Docker image (this may take a while)...")
    try:
        runtime.build_image(name, build_context, log_prefix="[build]")
    except DockerError as e:
        raise ImageBuildError(
            f"Failed to build Docker image '{name}': {e}",
            remediation="Fix the build error above and re-run the launcher.",
        ) from e
    logger.info("[green]Docker image built successfully.[/green]")


__all__ = ["ensure_image", "BUILD_DEFINITION"]
