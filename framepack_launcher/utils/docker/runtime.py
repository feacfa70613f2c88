"""Thin wrapper over the Docker SDK exposing the launcher's runtime surface.

Every method maps onto one engine operation (image lookup, build, list, run,
inspect, logs, stop, remove). Higher-level code only talks to this class so
tests can substitute an in-memory fake.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
import os
from pathlib import Path
from typing import Any

from docker import DockerClient
from docker.errors import DockerException, ImageNotFound, NotFound

from .errors import DockerError
from .logging_utils import log_multiline
from .sdk import decode_output, ensure_docker_sdk, make_device_requests
from .types import ContainerState, ContainerSummary, RunRequest


class DockerRuntime:
    """Blocking Docker operations used by the launcher phases."""

    def __init__(self, client: DockerClient | None = None) -> None:
        self._client = client if client is not None else ensure_docker_sdk()

    # Images

    def image_exists(self, name: str) -> bool:
        try:
            self._client.images.get(name)
        except ImageNotFound:
            return False
        except DockerException as e:
            raise DockerError(f"Failed to query image '{name}'.") from e
        return True

    def build_image(self, name: str, context: Path, *, log_prefix: str | None = None) -> None:
        """Build ``name`` from the Dockerfile in ``context``, relaying build output.

        Raises:
            DockerError: If the daemon reports a build error.
        """
        try:
            frames = self._client.api.build(path=str(context), tag=name, rm=True, decode=True)
            for frame in frames:
                if "error" in frame:
                    raise DockerError(str(frame["error"]).strip())
                text = frame.get("stream")
                if text and text.strip():
                    log_multiline(text.rstrip("\n"), log_prefix)
        except DockerException as e:
            raise DockerError(f"Failed to build image '{name}'.") from e

    # Containers

    def list_containers(
        self,
        *,
        name: str | None = None,
        published_port: int | None = None,
        ancestor: str | None = None,
        container_id: str | None = None,
        running_only: bool = True,
    ) -> list[ContainerSummary]:
        """List containers matching every given filter.

        ``name`` matches exactly (Docker's own name filter is a substring regex).
        """
        filters: dict[str, Any] = {}
        if name is not None:
            filters["name"] = name
        if published_port is not None:
            filters["publish"] = str(published_port)
        if ancestor is not None:
            filters["ancestor"] = ancestor
        if container_id is not None:
            filters["id"] = container_id
        try:
            containers = self._client.containers.list(all=not running_only, filters=filters)
        except DockerException as e:
            raise DockerError("Failed to list containers.") from e

        summaries = [
            ContainerSummary(
                id=c.id,
                name=(c.name or "").lstrip("/"),
                image=c.attrs.get("Config", {}).get("Image", ""),
                status=c.status,
            )
            for c in containers
        ]
        if name is not None:
            summaries = [s for s in summaries if s.name == name]
        return summaries

    def published_ports(self) -> set[int]:
        """Host ports published by any running container."""
        try:
            containers = self._client.containers.list()
        except DockerException as e:
            raise DockerError("Failed to list containers.") from e
        ports: set[int] = set()
        for c in containers:
            bindings = c.attrs.get("NetworkSettings", {}).get("Ports") or {}
            for entries in bindings.values():
                for entry in entries or ():
                    host_port = str(entry.get("HostPort") or "")
                    if host_port.isdigit():
                        ports.add(int(host_port))
        return ports

    def run_detached(self, request: RunRequest) -> str:
        """Create and start a container in the background, returning its ID."""
        ports = {f"{container}/tcp": host for host, container in request.ports.items()}
        volumes = {
            os.path.expanduser(host): {"bind": container, "mode": "rw"}
            for host, container in request.volumes.items()
        }
        try:
            container = self._client.containers.run(
                image=request.image,
                name=request.name,
                environment=dict(request.environment) or None,
                ports=ports or None,
                volumes=volumes or None,
                device_requests=make_device_requests(request.gpus),
                detach=True,
                remove=False,
            )
        except DockerException as e:
            raise DockerError(f"Failed to start container '{request.name}': {e}") from e
        return getattr(container, "id", "") or ""

    def run_probe(self, image: str, command: Sequence[str], *, gpus: str | None = "all") -> str:
        """Run a short-lived container to completion and return its output.

        Raises:
            DockerError: On a non-zero exit or any engine error.
        """
        try:
            output = self._client.containers.run(
                image=image,
                command=list(command),
                device_requests=make_device_requests(gpus),
                remove=True,
                stdout=True,
                stderr=True,
            )
        except DockerException as e:
            raise DockerError(f"Probe container '{image}' failed: {e}") from e
        return decode_output(output)

    def inspect(self, container_id: str) -> ContainerState:
        try:
            attrs = self._client.api.inspect_container(container_id)
        except NotFound as e:
            raise DockerError(f"Container '{container_id}' not found.") from e
        except DockerException as e:
            raise DockerError(f"Failed to inspect container '{container_id}'.") from e
        state = attrs.get("State", {})
        exit_code = state.get("ExitCode")
        return ContainerState(
            status=state.get("Status", "unknown"),
            exit_code=int(exit_code) if exit_code is not None else None,
        )

    def logs(self, container_id: str, *, tail: int | None = None) -> str:
        """Return combined stdout/stderr logs as a text snapshot."""
        try:
            data = self._client.api.logs(
                container_id, stdout=True, stderr=True, tail=tail if tail is not None else "all"
            )
        except DockerException as e:
            raise DockerError(f"Failed to retrieve logs for '{container_id}'.") from e
        return decode_output(data)

    def follow_logs(self, container_id: str) -> Iterator[str]:
        """Yield log lines as they are produced until the container exits."""
        try:
            stream = self._client.api.logs(
                container_id, stdout=True, stderr=True, stream=True, follow=True
            )
            pending = ""
            for chunk in stream:
                pending += decode_output(chunk)
                *lines, pending = pending.split("\n")
                yield from lines
            if pending:
                yield pending
        except DockerException as e:
            raise DockerError(f"Log stream for '{container_id}' failed.") from e

    def stop(self, container_id: str, *, timeout: float = 10.0) -> None:
        """Stop a container; the engine kills it once ``timeout`` elapses."""
        try:
            self._client.api.stop(container_id, timeout=int(timeout))
        except DockerException as e:
            raise DockerError(f"Failed to stop container '{container_id}'.") from e

    def remove(self, container_id: str, *, force: bool = False) -> None:
        try:
            self._client.api.remove_container(container_id, force=force)
        except DockerException as e:
            raise DockerError(f"Failed to remove container '{container_id}'.") from e


__all__ = ["DockerRuntime"]
