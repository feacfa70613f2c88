"""Tests for environment capability probing."""

from __future__ import annotations

from pathlib import Path

import pytest

from framepack_launcher.launcher.capabilities import is_wsl, probe_capabilities
from framepack_launcher.launcher.errors import GpuDeclinedError, RuntimeUnavailableError
from framepack_launcher.launcher.models import EnvironmentCapabilities
from framepack_launcher.launcher.prompts import ScriptedPrompt
from framepack_launcher.utils.docker import DockerError
from tests.fakes import FakeRuntime


PROBE_IMAGE = "nvidia/cuda:12.1.1-base-ubuntu22.04"


def _probe(
    runtime: FakeRuntime,
    prompt: ScriptedPrompt,
    *,
    driver: bool,
    wsl: bool = False,
    want_gpu: bool = True,
) -> tuple[EnvironmentCapabilities, FakeRuntime]:
    return probe_capabilities(  # type: ignore[return-value]
        lambda: runtime,
        prompt,
        probe_image=PROBE_IMAGE,
        want_gpu=want_gpu,
        driver_check=lambda: driver,
        wsl_check=lambda: wsl,
    )


def test_missing_runtime_is_fatal() -> None:
    def no_docker() -> FakeRuntime:
        raise DockerError("socket not found")

    with pytest.raises(RuntimeUnavailableError) as excinfo:
        probe_capabilities(no_docker, ScriptedPrompt(), probe_image=PROBE_IMAGE)
    assert "docs.docker.com" in (excinfo.value.remediation or "")


def test_gpu_passes_functional_check(runtime: FakeRuntime) -> None:
    prompt = ScriptedPrompt()
    caps, connected = _probe(runtime, prompt, driver=True)

    assert connected is runtime
    assert caps.runtime_available
    assert caps.gpu_driver_present
    assert caps.gpu_functionally_accessible
    assert runtime.probes == [(PROBE_IMAGE, ("nvidia-smi",), "all")]
    assert prompt.questions == []


def test_missing_driver_accepting_cpu_mode(runtime: FakeRuntime) -> None:
    prompt = ScriptedPrompt([True])
    caps, _ = _probe(runtime, prompt, driver=False)

    assert not caps.gpu_driver_present
    assert not caps.gpu_functionally_accessible
    assert runtime.probes == []
    assert prompt.questions == ["Continue without GPU support?"]


def test_missing_driver_declining_cpu_mode(runtime: FakeRuntime) -> None:
    with pytest.raises(GpuDeclinedError):
        _probe(runtime, ScriptedPrompt([False]), driver=False)


def test_inaccessible_gpu_downgrades_on_wsl(runtime: FakeRuntime) -> None:
    runtime.probe_error = "could not select device driver"
    prompt = ScriptedPrompt([True])
    caps, _ = _probe(runtime, prompt, driver=True, wsl=True)

    assert caps.gpu_driver_present
    assert not caps.gpu_functionally_accessible
    assert caps.is_wsl
    assert len(prompt.questions) == 1


def test_inaccessible_gpu_default_answer_aborts(runtime: FakeRuntime) -> None:
    runtime.probe_error = "could not select device driver"
    with pytest.raises(GpuDeclinedError):
        _probe(runtime, ScriptedPrompt(), driver=True)


def test_cpu_request_skips_gpu_checks(runtime: FakeRuntime) -> None:
    prompt = ScriptedPrompt()
    caps, _ = _probe(runtime, prompt, driver=True, want_gpu=False)

    assert not caps.gpu_functionally_accessible
    assert runtime.probes == []
    assert prompt.questions == []


def test_is_wsl_reads_proc_version(tmp_path: Path) -> None:
    wsl_version = tmp_path / "wsl"
    wsl_version.write_text("Linux version 5.15.90.1-microsoft-standard-WSL2", encoding="utf-8")
    native_version = tmp_path / "native"
    native_version.write_text("Linux version 6.8.0-generic", encoding="utf-8")

    assert is_wsl(wsl_version)
    assert not is_wsl(native_version)
    assert not is_wsl(tmp_path / "missing")
