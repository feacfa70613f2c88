"""Top-level launch flow: probe, image, conflicts, launch, readiness, log tail."""

from __future__ import annotations

from collections.abc import Callable
import contextlib
from dataclasses import replace
import time

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from framepack_launcher.config import LauncherSettings
from framepack_launcher.utils.docker import DockerError, DockerRuntime
from framepack_launcher.utils.docker.logging_utils import (
    format_prefix,
    log_multiline,
    sanitize_line,
)
from framepack_launcher.utils.log_utils import logger

from .capabilities import probe_capabilities, query_gpu_driver
from .conflicts import reconcile
from .errors import AttachToExisting, LaunchError, LauncherError
from .images import ensure_image
from .launch import launch
from .models import ContainerHandle, FailedToStart, LaunchConfiguration, Ready, TimedOut
from .prompts import Prompt
from .readiness import LogMarkerDetector, ReadinessMonitor
from .session import LaunchSession


LOG_PREFIX = "[framepack]"


def follow_container_logs(runtime: DockerRuntime, handle: ContainerHandle) -> None:
    """Relay the live log stream until the container exits or the operator interrupts."""
    pf = format_prefix(LOG_PREFIX)
    for line in runtime.follow_logs(handle.id):
        logger.info(f"{pf}{sanitize_line(line)}")
    logger.info(f"Container {handle.name} stopped.")


def _report(error: LauncherError) -> None:
    logger.error(f"[red]{escape(str(error))}[/red]")
    if isinstance(error, LaunchError) and error.logs:
        logger.warning("Container logs:")
        log_multiline(error.logs, LOG_PREFIX, level="error")
    if error.remediation:
        logger.warning(escape(error.remediation))


def _print_ready_banner(
    console: Console, config: LaunchConfiguration, url: str, *, ready: bool
) -> None:
    mode = (
        "[green]Running with GPU acceleration[/green]"
        if config.use_gpu
        else "[yellow]Running in CPU-only mode (slower performance)[/yellow]"
    )
    body = "\n".join(
        [
            mode,
            f"Access the web interface at: [bold]{url}[/bold]",
            f"Generated outputs will be saved to: {config.output_dir}",
            "Press Ctrl+C to stop the container",
        ]
    )
    title = "FRAMEPACK IS READY" if ready else "FRAMEPACK MAY STILL BE STARTING"
    console.print(Panel(body, title=title, border_style="green" if ready else "yellow"))


def _launch_flow(
    settings: LauncherSettings,
    prompt: Prompt,
    session: LaunchSession,
    *,
    connect: Callable[[], DockerRuntime],
    want_gpu: bool,
    driver_check: Callable[[], bool],
    sleep: Callable[[float], None],
    console: Console,
) -> int:
    logger.info("[yellow]Step 1: Checking prerequisites...[/yellow]")
    capabilities, runtime = probe_capabilities(
        connect,
        prompt,
        probe_image=settings.gpu_probe_image,
        want_gpu=want_gpu,
        driver_check=driver_check,
    )
    config = replace(
        LaunchConfiguration.from_settings(settings),
        use_gpu=capabilities.gpu_functionally_accessible,
    )

    logger.info("[yellow]Step 2: Checking Docker image...[/yellow]")
    ensure_image(runtime, config.image_name, settings.build_context)

    logger.info("[yellow]Step 3: Managing containers...[/yellow]")
    try:
        config = reconcile(
            runtime, config, prompt, max_port_attempts=settings.port_search_limit
        )
    except AttachToExisting as existing:
        logger.info(f"[green]Access it at: {config.access_url}[/green]")
        follow_container_logs(runtime, existing.handle)
        return 0

    logger.info("[yellow]Step 4: Launching FramePack...[/yellow]")
    handle = launch(runtime, config)
    session.track(runtime, handle)

    logger.info("[yellow]Step 5: Monitoring startup...[/yellow]")
    logger.info("This may take a few minutes as models are downloaded...")
    monitor = ReadinessMonitor(
        runtime,
        LogMarkerDetector(settings.ready_marker),
        poll_interval=settings.poll_interval,
        failure_log_lines=settings.failure_log_lines,
        sleep=sleep,
        console=console,
    )
    outcome = monitor.await_ready(handle, config.access_url, settings.ready_timeout)

    if isinstance(outcome, FailedToStart):
        session.release()
        logger.error(f"[red]Container stopped unexpectedly! (exit code: {outcome.exit_code})[/red]")
        logger.warning("Container logs:")
        log_multiline(outcome.logs, LOG_PREFIX, level="error")
        with contextlib.suppress(DockerError):
            runtime.remove(handle.id, force=True)
        logger.warning(f"Fix the error above and re-run. Image: {config.image_name}")
        return 1

    if isinstance(outcome, Ready):
        _print_ready_banner(console, config, outcome.url, ready=True)
    elif isinstance(outcome, TimedOut):
        logger.warning("Container is still running but startup message not detected.")
        logger.warning("This could mean models are still downloading or initializing.")
        log_multiline(outcome.partial_logs, LOG_PREFIX)
        _print_ready_banner(console, config, outcome.url, ready=False)

    follow_container_logs(runtime, handle)
    session.release()
    return 0


def run_launcher(
    settings: LauncherSettings,
    prompt: Prompt,
    *,
    connect: Callable[[], DockerRuntime] = DockerRuntime,
    want_gpu: bool = True,
    driver_check: Callable[[], bool] = query_gpu_driver,
    sleep: Callable[[float], None] = time.sleep,
    console: Console | None = None,
) -> int:
    """Run the whole launch flow and return the process exit status.

    Returns:
        0 on normal completion, attachment to an existing container, or an
        operator interrupt whose cleanup succeeded; 1 on any fatal failure.
        A fatal failure after launch stops the tracked container first.
    """
    session = LaunchSession(stop_timeout=settings.stop_timeout)
    with session.interrupts():
        try:
            return _launch_flow(
                settings,
                prompt,
                session,
                connect=connect,
                want_gpu=want_gpu,
                driver_check=driver_check,
                sleep=sleep,
                console=console or Console(),
            )
        except KeyboardInterrupt:
            logger.warning("Interrupted. Cleaning up...")
            return 0 if session.cleanup() else 1
        except LauncherError as e:
            _report(e)
            session.cleanup()
            return 1
        except DockerError as e:
            logger.error(f"[red]{escape(str(e))}[/red]")
            logger.warning("Check that the Docker daemon is healthy and re-run the launcher.")
            session.cleanup()
            return 1


__all__ = ["run_launcher", "follow_container_logs"]
