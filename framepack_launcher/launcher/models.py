"""Value types threaded through the launch phases."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from framepack_launcher.config import LauncherSettings


@dataclass(frozen=True, slots=True)
class EnvironmentCapabilities:
    """What the host can do, computed once at start-up.

    Attributes:
        runtime_available: The Docker daemon answered a ping.
        gpu_driver_present: ``nvidia-smi`` is installed and succeeds on the host.
        gpu_functionally_accessible: A probe container could see the GPU.
        is_wsl: The host is a WSL2 guest.
    """

    runtime_available: bool
    gpu_driver_present: bool
    gpu_functionally_accessible: bool
    is_wsl: bool = False


@dataclass(frozen=True, slots=True)
class LaunchConfiguration:
    """Everything needed to issue the run request.

    Phases return modified copies (``dataclasses.replace``) rather than
    mutating a shared instance.
    """

    image_name: str
    container_name: str
    host_port: int
    container_port: int
    output_dir: Path
    container_output_dir: str
    use_gpu: bool = True
    env_vars: Mapping[str, str] = field(default_factory=dict)

    @property
    def access_url(self) -> str:
        return f"http://localhost:{self.host_port}"

    @classmethod
    def from_settings(cls, settings: LauncherSettings) -> LaunchConfiguration:
        return cls(
            image_name=settings.image_name,
            container_name=settings.container_name,
            host_port=settings.host_port,
            container_port=settings.container_port,
            output_dir=settings.output_dir,
            container_output_dir=settings.container_output_dir,
        )


@dataclass(frozen=True, slots=True)
class ContainerHandle:
    id: str
    name: str

    @property
    def short_id(self) -> str:
        return self.id[:12]


@dataclass(frozen=True, slots=True)
class Ready:
    url: str


@dataclass(frozen=True, slots=True)
class FailedToStart:
    exit_code: int | None
    logs: str


@dataclass(frozen=True, slots=True)
class TimedOut:
    url: str
    partial_logs: str


ReadinessOutcome = Ready | FailedToStart | TimedOut


__all__ = [
    "EnvironmentCapabilities",
    "LaunchConfiguration",
    "ContainerHandle",
    "Ready",
    "FailedToStart",
    "TimedOut",
    "ReadinessOutcome",
]
