"""Low-level Docker SDK access helpers (internal)."""

from __future__ import annotations

import docker
from docker import DockerClient
from docker.types import DeviceRequest

from .errors import DockerError


def ensure_docker_sdk() -> DockerClient:
    """Return connected Docker client or raise DockerError with guidance."""
    try:
        client = docker.from_env()
        client.ping()
        return client
    except FileNotFoundError as e:  # pragma: no cover
        raise DockerError(
            "Could not find the Docker socket. Is the Docker daemon running? "
            "Start it (e.g., 'systemctl start docker' or Docker Desktop) and retry."
        ) from e
    except PermissionError as e:  # pragma: no cover
        raise DockerError(
            "Permission denied accessing the Docker socket. Add your user to the 'docker' group or run with appropriate permissions."
        ) from e
    except Exception as e:  # pragma: no cover
        raise DockerError(
            "Failed to connect to Docker daemon via SDK. Ensure the daemon is running."
        ) from e


def make_device_requests(gpus: str | None) -> list[DeviceRequest] | None:
    """Translate ``"all"`` into an all-GPU device request; None/"" means no GPUs."""
    if not gpus:
        return None
    if gpus.strip().lower() != "all":
        raise ValueError(f"Unsupported GPU selection: {gpus!r}")
    return [DeviceRequest(count=-1, capabilities=[["gpu"]])]


def decode_output(data: bytes | bytearray | str | None) -> str:
    """Decode SDK log or exec output into text."""
    if data is None:
        return ""
    if isinstance(data, bytes | bytearray):
        return data.decode("utf-8", errors="replace")
    return str(data)


__all__ = ["ensure_docker_sdk", "make_device_requests", "decode_output"]
