"""SDK-independent views of containers and run requests."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class ContainerSummary:
    """One row of a container listing.

    Attributes:
        id: Full container ID.
        name: Container name without the leading slash.
        image: Image reference the container was created from.
        status: Docker status string (``running``, ``exited``, ``created`` ...).
    """

    id: str
    name: str
    image: str
    status: str

    @property
    def is_running(self) -> bool:
        return self.status == "running"


@dataclass(frozen=True, slots=True)
class ContainerState:
    """Result of inspecting a single container."""

    status: str
    exit_code: int | None


@dataclass(frozen=True, slots=True)
class RunRequest:
    """Fully resolved arguments for a detached ``docker run``.

    Attributes:
        image: Image reference to run.
        name: Container name.
        gpus: GPU selection string (``"all"``) or ``None`` for no GPU access.
        environment: Environment variables injected into the container.
        ports: Host port -> container port mappings (tcp).
        volumes: Host path -> container path bind mounts (rw).
    """

    image: str
    name: str
    gpus: str | None = None
    environment: Mapping[str, str] = field(default_factory=dict)
    ports: Mapping[int, int] = field(default_factory=dict)
    volumes: Mapping[str, str] = field(default_factory=dict)


__all__ = ["ContainerSummary", "ContainerState", "RunRequest"]
