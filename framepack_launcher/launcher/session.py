"""Track the launched container so an interrupt can stop it."""

from __future__ import annotations

from collections.abc import Iterator
import contextlib
import signal
import threading
from types import FrameType

from framepack_launcher.utils.docker import DockerError, DockerRuntime
from framepack_launcher.utils.log_utils import logger

from .models import ContainerHandle


class LaunchSession:
    """Owns the tracked container handle between launch and process exit.

    ``cleanup`` is idempotent and a no-op when nothing is tracked.
    """

    def __init__(self, *, stop_timeout: float = 10.0) -> None:
        self.stop_timeout = stop_timeout
        self.runtime: DockerRuntime | None = None
        self.handle: ContainerHandle | None = None

    def track(self, runtime: DockerRuntime, handle: ContainerHandle) -> None:
        self.runtime = runtime
        self.handle = handle

    def release(self) -> None:
        """Stop tracking without touching the container."""
        self.runtime = None
        self.handle = None

    def cleanup(self) -> bool:
        """Stop the tracked container. Return False if the stop request failed."""
        runtime, handle = self.runtime, self.handle
        self.release()
        if runtime is None or handle is None:
            return True
        logger.warning(f"Stopping container {handle.short_id}...")
        try:
            runtime.stop(handle.id, timeout=self.stop_timeout)
        except DockerError as e:
            logger.error(f"Failed to stop container {handle.short_id}: {e}")
            logger.warning(f"Stop it manually with: docker stop {handle.name}")
            return False
        return True

    @contextlib.contextmanager
    def interrupts(self) -> Iterator[None]:
        """Route SIGTERM to ``KeyboardInterrupt`` like SIGINT while active."""
        if threading.current_thread() is not threading.main_thread():
            yield
            return

        def _raise_interrupt(signum: int, frame: FrameType | None) -> None:
            raise KeyboardInterrupt

        previous = signal.signal(signal.SIGTERM, _raise_interrupt)
        try:
            yield
        finally:
            signal.signal(signal.SIGTERM, previous)


__all__ = ["LaunchSession"]
