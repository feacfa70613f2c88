"""Error taxonomy for the launch flow.

Every fatal condition is a ``LauncherError`` carrying an optional remediation
hint; the orchestrator prints both and exits with status 1.
"""

from __future__ import annotations

from .models import ContainerHandle


class LauncherError(RuntimeError):
    """Base class for fatal launcher failures."""

    def __init__(self, message: str, *, remediation: str | None = None) -> None:
        super().__init__(message)
        self.remediation = remediation


class RuntimeUnavailableError(LauncherError):
    """The Docker daemon cannot be reached."""


class GpuDeclinedError(LauncherError):
    """GPU acceleration is unavailable and the operator refused CPU-only mode."""


class BuildDefinitionMissingError(LauncherError):
    """The image is absent and there is no Dockerfile to build it from."""


class ImageBuildError(LauncherError):
    """The image build failed."""


class NameConflictError(LauncherError):
    """A stopped container already holds the container name."""


class PortUnavailableError(LauncherError):
    """No free port was found within the search bound."""


class LaunchError(LauncherError):
    """The run request failed or the container died immediately."""

    def __init__(self, message: str, *, logs: str = "", remediation: str | None = None) -> None:
        super().__init__(message, remediation=remediation)
        self.logs = logs


class AttachToExisting(Exception):
    """Raised when an already-running container satisfies the request."""

    def __init__(self, handle: ContainerHandle) -> None:
        super().__init__(handle.name)
        self.handle = handle


__all__ = [
    "LauncherError",
    "RuntimeUnavailableError",
    "GpuDeclinedError",
    "BuildDefinitionMissingError",
    "ImageBuildError",
    "NameConflictError",
    "PortUnavailableError",
    "LaunchError",
    "AttachToExisting",
]
