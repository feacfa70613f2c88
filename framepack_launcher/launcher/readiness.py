"""Poll a launched container until it reports readiness, exits, or times out."""

from __future__ import annotations

from collections.abc import Callable
import contextlib
import time
from typing import Protocol

from rich.console import Console

from framepack_launcher.utils.docker import DockerError, DockerRuntime
from framepack_launcher.utils.docker.logging_utils import strip_ansi

from .models import ContainerHandle, FailedToStart, Ready, ReadinessOutcome, TimedOut


class ReadinessDetector(Protocol):
    """Decides from the accumulated container logs whether the app is serving."""

    def is_ready(self, logs: str) -> bool: ...


class LogMarkerDetector:
    """Ready once ``marker`` appears anywhere in the logs."""

    def __init__(self, marker: str) -> None:
        if not marker:
            raise ValueError("Readiness marker must not be empty.")
        self.marker = marker

    def is_ready(self, logs: str) -> bool:
        return self.marker in strip_ansi(logs)


def _tail(text: str, lines: int) -> str:
    return "\n".join(text.splitlines()[-lines:]) if lines > 0 else text


class ReadinessMonitor:
    """Fixed-period polling loop over container liveness and logs.

    Args:
        runtime: Runtime used to list, inspect and read logs.
        detector: Readiness decision over the accumulated logs.
        poll_interval: Seconds between ticks.
        failure_log_lines: Number of trailing log lines kept in outcomes.
        sleep: Sleep function, injectable for tests.
        console: Console that renders the waiting spinner.
    """

    def __init__(
        self,
        runtime: DockerRuntime,
        detector: ReadinessDetector,
        *,
        poll_interval: float = 1.0,
        failure_log_lines: int = 30,
        sleep: Callable[[float], None] = time.sleep,
        console: Console | None = None,
    ) -> None:
        self.runtime = runtime
        self.detector = detector
        self.poll_interval = poll_interval
        self.failure_log_lines = failure_log_lines
        self._sleep = sleep
        self._console = console or Console()

    def _failed(self, handle: ContainerHandle) -> FailedToStart:
        exit_code: int | None = None
        logs = ""
        with contextlib.suppress(DockerError):
            exit_code = self.runtime.inspect(handle.id).exit_code
        with contextlib.suppress(DockerError):
            logs = self.runtime.logs(handle.id, tail=self.failure_log_lines)
        return FailedToStart(exit_code=exit_code, logs=logs)

    def poll_once(self, handle: ContainerHandle, url: str) -> ReadinessOutcome | None:
        """Run one tick; return an outcome or None to keep waiting."""
        if not self.runtime.list_containers(container_id=handle.id):
            return self._failed(handle)
        if self.detector.is_ready(self.runtime.logs(handle.id)):
            return Ready(url=url)
        return None

    def await_ready(self, handle: ContainerHandle, url: str, timeout: float) -> ReadinessOutcome:
        """Block until ``handle`` is ready, has exited, or ``timeout`` seconds pass.

        A timeout leaves the container running; slow first-run model downloads
        are the usual cause.
        """
        ticks = max(1, int(timeout / self.poll_interval)) if self.poll_interval > 0 else 1
        message = "Initializing FramePack... (this may take several minutes for model downloads)"
        with self._console.status(message, spinner="dots"):
            for _ in range(ticks):
                outcome = self.poll_once(handle, url)
                if outcome is not None:
                    return outcome
                self._sleep(self.poll_interval)

        partial = ""
        with contextlib.suppress(DockerError):
            partial = self.runtime.logs(handle.id, tail=self.failure_log_lines)
        return TimedOut(url=url, partial_logs=_tail(partial, self.failure_log_lines))


__all__ = ["ReadinessDetector", "LogMarkerDetector", "ReadinessMonitor"]
