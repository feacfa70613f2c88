"""End-to-end tests of the launch flow against the in-memory runtime."""

from __future__ import annotations

from collections.abc import Iterator
from io import StringIO
from pathlib import Path

from rich.console import Console

from framepack_launcher.config import LauncherSettings
from framepack_launcher.launcher import run_launcher
from framepack_launcher.launcher.prompts import ScriptedPrompt
from framepack_launcher.utils.docker import DockerError
from tests.fakes import READY_MARKER, FakeContainer, FakeRuntime, make_settings


def _run(
    runtime: FakeRuntime,
    settings: LauncherSettings,
    prompt: ScriptedPrompt | None = None,
    *,
    driver: bool = True,
    sleep=None,
    console: Console | None = None,
) -> int:
    return run_launcher(
        settings,
        prompt or ScriptedPrompt(),
        connect=lambda: runtime,
        driver_check=lambda: driver,
        sleep=sleep or (lambda _: None),
        console=console or Console(quiet=True),
    )


def _ready_at_tick(tick: int):
    def on_run(container: FakeContainer) -> None:
        container.scripted_lines.extend([None] * (tick - 1) + [READY_MARKER])

    return on_run


def test_fresh_host_builds_launches_and_reports_ready(tmp_path: Path) -> None:
    runtime = FakeRuntime(images=())
    runtime.on_run = _ready_at_tick(12)
    (tmp_path / "Dockerfile").write_text("FROM scratch\n", encoding="utf-8")
    settings = make_settings(tmp_path)
    sleeps: list[float] = []
    output = StringIO()

    code = _run(
        runtime,
        settings,
        sleep=sleeps.append,
        console=Console(file=output, width=120, color_system=None),
    )

    assert code == 0
    assert runtime.built == [("framepack:latest", tmp_path)]
    assert len(runtime.run_requests) == 1
    assert runtime.run_requests[0].gpus == "all"
    assert len(sleeps) == 11
    assert "FRAMEPACK IS READY" in output.getvalue()
    assert "http://localhost:7860" in output.getvalue()
    (container_id,) = runtime.containers
    assert runtime.followed == [container_id]
    assert runtime.stopped == []


def test_stopped_namesake_replaced_with_default_port(
    runtime: FakeRuntime, settings: LauncherSettings
) -> None:
    old = runtime.add_container("framepack-gpu", status="exited", exit_code=0)
    runtime.on_run = _ready_at_tick(1)
    prompt = ScriptedPrompt([True])

    code = _run(runtime, settings, prompt)

    assert code == 0
    assert runtime.removed == [old.id]
    assert len(runtime.run_requests) == 1
    assert runtime.run_requests[0].ports == {7860: 7860}
    assert prompt.questions == ["Stop and remove it?"]


def test_second_invocation_attaches_to_running_container(
    runtime: FakeRuntime, settings: LauncherSettings
) -> None:
    existing = runtime.add_container("framepack-gpu", ports=(7860,))

    code = _run(runtime, settings, ScriptedPrompt([False]))

    assert code == 0
    assert runtime.run_requests == []
    assert runtime.followed == [existing.id]
    assert runtime.stopped == []


def test_cpu_fallback_request_has_no_gpu_settings(
    runtime: FakeRuntime, settings: LauncherSettings
) -> None:
    runtime.probe_error = "could not select device driver with capabilities: [[gpu]]"
    runtime.on_run = _ready_at_tick(1)

    code = _run(runtime, settings, ScriptedPrompt([True]))

    assert code == 0
    (request,) = runtime.run_requests
    assert request.gpus is None
    assert not any(key.startswith("NVIDIA_") for key in request.environment)


def test_container_crash_exits_nonzero_and_removes_container(
    runtime: FakeRuntime, settings: LauncherSettings
) -> None:
    def crash(container: FakeContainer) -> None:
        container.logs.extend(["Loading models", "torch.cuda.OutOfMemoryError"])
        container.exit_code = 1
        container.exit_after_reads = 1

    runtime.on_run = crash

    code = _run(runtime, settings)

    assert code == 1
    assert runtime.containers == {}
    assert runtime.followed == []


def test_interrupt_after_launch_stops_tracked_container(
    runtime: FakeRuntime, settings: LauncherSettings
) -> None:
    runtime.add_container("unrelated", image="nginx:latest", ports=(8080,))
    calls: list[float] = []

    def interrupt_on_second_tick(seconds: float) -> None:
        calls.append(seconds)
        if len(calls) == 2:
            raise KeyboardInterrupt

    code = _run(runtime, settings, sleep=interrupt_on_second_tick)

    (request,) = runtime.run_requests
    (launched,) = [c for c in runtime.containers.values() if c.name == request.name]
    assert code == 0
    assert runtime.stopped == [launched.id]


def test_interrupt_with_failing_stop_exits_nonzero(
    runtime: FakeRuntime, settings: LauncherSettings
) -> None:
    runtime.stop_error = "container did not stop"

    def interrupt(seconds: float) -> None:
        raise KeyboardInterrupt

    code = _run(runtime, settings, sleep=interrupt)

    assert code == 1
    assert len(runtime.stopped) == 1


def test_interrupt_before_launch_stops_nothing(
    runtime: FakeRuntime, settings: LauncherSettings
) -> None:
    def interrupted_driver_check() -> bool:
        raise KeyboardInterrupt

    code = run_launcher(
        settings,
        ScriptedPrompt(),
        connect=lambda: runtime,
        driver_check=interrupted_driver_check,
        console=Console(quiet=True),
    )

    assert code == 0
    assert runtime.stopped == []
    assert runtime.run_requests == []


def test_timeout_still_tails_logs(runtime: FakeRuntime, tmp_path: Path) -> None:
    settings = make_settings(tmp_path, ready_timeout=3.0)

    code = _run(runtime, settings)

    assert code == 0
    assert len(runtime.followed) == 1
    assert runtime.stopped == []


def test_missing_dockerfile_fails_before_launch(tmp_path: Path) -> None:
    runtime = FakeRuntime(images=())

    code = _run(runtime, make_settings(tmp_path))

    assert code == 1
    assert runtime.run_requests == []


def test_declined_stopped_namesake_fails_without_launch(
    runtime: FakeRuntime, settings: LauncherSettings
) -> None:
    runtime.add_container("framepack-gpu", status="exited", exit_code=0)

    code = _run(runtime, settings, ScriptedPrompt([False]))

    assert code == 1
    assert runtime.run_requests == []


def test_declining_cpu_mode_exits_nonzero(
    runtime: FakeRuntime, settings: LauncherSettings
) -> None:
    code = _run(runtime, settings, ScriptedPrompt([False]), driver=False)

    assert code == 1
    assert runtime.run_requests == []


class _LogsFailRuntime(FakeRuntime):
    """Readiness polls fail with a daemon error once the container is up."""

    def logs(self, container_id: str, *, tail: int | None = None) -> str:
        if tail is None:
            raise DockerError("daemon hiccup")
        return super().logs(container_id, tail=tail)


class _StreamFailRuntime(FakeRuntime):
    def follow_logs(self, container_id: str) -> Iterator[str]:
        self.followed.append(container_id)
        raise DockerError("log stream closed")
        yield  # pragma: no cover


def test_docker_error_while_waiting_stops_launched_container(tmp_path: Path) -> None:
    runtime = _LogsFailRuntime()

    code = _run(runtime, make_settings(tmp_path))

    (launched,) = runtime.containers.values()
    assert code == 1
    assert runtime.stopped == [launched.id]
    assert launched.status == "exited"


def test_log_stream_error_after_ready_stops_launched_container(tmp_path: Path) -> None:
    runtime = _StreamFailRuntime()
    runtime.on_run = _ready_at_tick(1)

    code = _run(runtime, make_settings(tmp_path))

    (launched,) = runtime.containers.values()
    assert code == 1
    assert runtime.followed == [launched.id]
    assert runtime.stopped == [launched.id]


def test_unwritable_output_dir_exits_nonzero(runtime: FakeRuntime, tmp_path: Path) -> None:
    blocker = tmp_path / "file"
    blocker.write_text("not a directory", encoding="utf-8")

    code = _run(runtime, make_settings(tmp_path, output_dir=blocker / "outputs"))

    assert code == 1
    assert runtime.run_requests == []
    assert runtime.stopped == []
