"""Build the run request and start the application container."""

from __future__ import annotations

import contextlib

from framepack_launcher.utils.docker import DockerError, DockerRuntime, RunRequest
from framepack_launcher.utils.log_utils import logger

from .errors import LaunchError
from .models import ContainerHandle, LaunchConfiguration


GPU_ENVIRONMENT: dict[str, str] = {
    "NVIDIA_VISIBLE_DEVICES": "all",
    "NVIDIA_DRIVER_CAPABILITIES": "all",
}


def build_run_request(config: LaunchConfiguration) -> RunRequest:
    """Translate a launch configuration into a detached run request.

    GPU device requests and the NVIDIA environment are added together or not
    at all.
    """
    environment = dict(config.env_vars)
    if config.use_gpu:
        environment.update(GPU_ENVIRONMENT)
    else:
        for key in GPU_ENVIRONMENT:
            environment.pop(key, None)
    return RunRequest(
        image=config.image_name,
        name=config.container_name,
        gpus="all" if config.use_gpu else None,
        environment=environment,
        ports={config.host_port: config.container_port},
        volumes={str(config.output_dir): config.container_output_dir},
    )


def describe_request(request: RunRequest) -> str:
    """Render the equivalent ``docker run`` command line for the operator."""
    parts = ["docker run -d", f"--name {request.name}"]
    if request.gpus:
        parts.append(f"--gpus {request.gpus}")
    parts += [f"-e {k}={v}" for k, v in request.environment.items()]
    parts += [f"-p {host}:{container}" for host, container in request.ports.items()]
    parts += [f'-v "{host}:{container}"' for host, container in request.volumes.items()]
    parts.append(request.image)
    return " ".join(parts)


def _is_running(runtime: DockerRuntime, container_id: str) -> bool:
    return bool(runtime.list_containers(container_id=container_id))


def launch(runtime: DockerRuntime, config: LaunchConfiguration) -> ContainerHandle:
    """Start the container and verify it is actually running.

    Raises:
        LaunchError: The output directory cannot be created, the run request
            failed, or the container is not running
            right after creation. The dead container is removed and its logs
            are attached to the error.
    """
    try:
        config.output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise LaunchError(
            f"Cannot create output directory {config.output_dir}: {e}",
            remediation="Choose a writable --output-dir or set FRAMEPACK_OUTPUT_DIR.",
        ) from e
    request = build_run_request(config)
    if config.use_gpu:
        logger.info("[green]Starting with GPU acceleration...[/green]")
    else:
        logger.warning("Starting in CPU-only mode (slower performance)...")
    logger.info(f"Executing: {describe_request(request)}")

    try:
        container_id = runtime.run_detached(request)
    except DockerError as e:
        raise LaunchError(
            f"Failed to start container: {e}",
            remediation="Check the Docker error above, then re-run the launcher.",
        ) from e

    if not container_id:
        raise LaunchError("Failed to start container: no container ID was returned.")

    if not _is_running(runtime, container_id):
        logs = ""
        with contextlib.suppress(DockerError):
            logs = runtime.logs(container_id)
        try:
            runtime.remove(container_id, force=True)
        except DockerError as e:
            logger.warning(f"Could not remove dead container {container_id[:12]}: {e}")
        raise LaunchError(
            f"Container {container_id[:12]} exited right after starting.",
            logs=logs,
            remediation="Inspect the logs above; re-run once the cause is fixed.",
        )

    handle = ContainerHandle(id=container_id, name=config.container_name)
    logger.info(f"[green]Container started with ID: {handle.short_id}[/green]")
    return handle


__all__ = ["GPU_ENVIRONMENT", "build_run_request", "describe_request", "launch"]
