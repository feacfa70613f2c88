"""Reconcile the launch configuration against containers that already exist.

Name and port checks happen before the run request, so another operator on
the same host can still grab the name or port in between. That race is
accepted for an interactive single-operator tool.
"""

from __future__ import annotations

from dataclasses import replace

from framepack_launcher.utils.docker import ContainerSummary, DockerError, DockerRuntime
from framepack_launcher.utils.log_utils import logger

from .errors import AttachToExisting, LauncherError, NameConflictError, PortUnavailableError
from .models import ContainerHandle, LaunchConfiguration
from .prompts import Prompt


DEFAULT_PORT_SEARCH_LIMIT = 1000


def _stop_and_remove(runtime: DockerRuntime, container: ContainerSummary) -> None:
    try:
        if container.is_running:
            runtime.stop(container.id)
        runtime.remove(container.id, force=True)
    except DockerError as e:
        raise LauncherError(
            f"Could not remove container '{container.name}': {e}",
            remediation=f"Remove it manually with: docker rm -f {container.name}",
        ) from e


def resolve_name_conflict(
    runtime: DockerRuntime, config: LaunchConfiguration, prompt: Prompt
) -> None:
    """Clear the container name or hand over to an already-running instance.

    Raises:
        AttachToExisting: A running container holds the name and was kept.
        NameConflictError: A stopped container holds the name and was kept.
    """
    existing = runtime.list_containers(name=config.container_name, running_only=False)
    if not existing:
        return
    container = existing[0]
    logger.info(f"Found existing container '{container.name}' ({container.status}).")

    if prompt.ask("Stop and remove it?", default=False):
        logger.info("Stopping and removing existing container...")
        _stop_and_remove(runtime, container)
        return

    if container.is_running:
        logger.info("[green]Container is already running.[/green]")
        raise AttachToExisting(ContainerHandle(id=container.id, name=container.name))

    raise NameConflictError(
        f"A stopped container named '{container.name}' already exists.",
        remediation=f"Remove it with 'docker rm {container.name}' or re-run and accept removal.",
    )


def find_free_port(runtime: DockerRuntime, start: int, *, max_attempts: int) -> int:
    """Return the smallest port >= ``start`` not published by a running container.

    Published ports are listed once up front. The scan never goes past 65535.

    Raises:
        PortUnavailableError: Every port in the scanned range is taken.
    """
    end = min(start + max_attempts, 65536)
    taken = runtime.published_ports()
    for port in range(start, end):
        if port not in taken:
            return port
    raise PortUnavailableError(
        f"No free port found in {start}-{end - 1}.",
        remediation="Stop some containers or choose another port with --port.",
    )


def resolve_port_conflict(
    runtime: DockerRuntime,
    config: LaunchConfiguration,
    prompt: Prompt,
    *,
    max_port_attempts: int = DEFAULT_PORT_SEARCH_LIMIT,
) -> LaunchConfiguration:
    """Keep ``config.host_port`` by stopping its holder, or move to a free port."""
    holders = runtime.list_containers(published_port=config.host_port)
    if not holders:
        return config

    port = config.host_port
    names = ", ".join(h.name for h in holders)
    logger.warning(f"Port {port} is already in use by another container.")
    logger.warning(f"Container '{names}' is using port {port}.")

    if prompt.ask(f"Stop that container and use port {port}?", default=False):
        logger.info("Stopping container...")
        for holder in holders:
            try:
                runtime.stop(holder.id)
            except DockerError as e:
                raise LauncherError(
                    f"Could not stop container '{holder.name}': {e}",
                    remediation=f"Stop it manually with: docker stop {holder.name}",
                ) from e
        return config

    new_port = find_free_port(runtime, port + 1, max_attempts=max_port_attempts)
    logger.info(f"[green]Using alternative port: {new_port}[/green]")
    return replace(config, host_port=new_port)


def warn_sibling_containers(
    runtime: DockerRuntime, config: LaunchConfiguration, prompt: Prompt
) -> None:
    """Offer to stop other running containers of the same image holding GPU memory."""
    siblings = [
        c
        for c in runtime.list_containers(ancestor=config.image_name)
        if c.name != config.container_name
    ]
    if not siblings:
        return
    names = ", ".join(c.name for c in siblings)
    logger.warning(f"Other containers running '{config.image_name}': {names}")
    if prompt.ask("Stop them before launching?", default=False):
        for sibling in siblings:
            try:
                runtime.stop(sibling.id)
            except DockerError as e:
                logger.error(f"Could not stop '{sibling.name}': {e}")


def reconcile(
    runtime: DockerRuntime,
    config: LaunchConfiguration,
    prompt: Prompt,
    *,
    max_port_attempts: int = DEFAULT_PORT_SEARCH_LIMIT,
) -> LaunchConfiguration:
    """Resolve name and port conflicts, returning the configuration to launch with."""
    resolve_name_conflict(runtime, config, prompt)
    config = resolve_port_conflict(runtime, config, prompt, max_port_attempts=max_port_attempts)
    warn_sibling_containers(runtime, config, prompt)
    return config


__all__ = [
    "reconcile",
    "resolve_name_conflict",
    "resolve_port_conflict",
    "find_free_port",
    "warn_sibling_containers",
]
