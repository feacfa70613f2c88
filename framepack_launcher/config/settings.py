"""Centralised environment configuration for the launcher.

This module ensures `.env` loading happens in one place and exposes a
typed snapshot of image, container, port and readiness settings.
Downstream modules call `get_settings()` instead of touching `os.environ`
directly, making it easier to validate values and override behaviour in
tests.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
import os
from pathlib import Path

from dotenv import load_dotenv


_REPO_ROOT = Path(__file__).resolve().parents[2]
_DEFAULT_ENV_PATH = _REPO_ROOT / ".env"

DEFAULT_IMAGE = "framepack:latest"
DEFAULT_CONTAINER_NAME = "framepack-gpu"
DEFAULT_PORT = 7860
DEFAULT_CONTAINER_OUTPUT_DIR = "/app/outputs"
DEFAULT_READY_MARKER = "Running on local URL:  http://0.0.0.0:7860"
DEFAULT_READY_TIMEOUT = 300.0
DEFAULT_POLL_INTERVAL = 1.0
DEFAULT_GPU_PROBE_IMAGE = "nvidia/cuda:12.1.1-base-ubuntu22.04"
DEFAULT_PORT_SEARCH_LIMIT = 1000
DEFAULT_STOP_TIMEOUT = 10.0
DEFAULT_FAILURE_LOG_LINES = 30


def _coerce_int(value: str | None, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _coerce_float(value: str | None, default: float) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _coerce_path(value: str | None, default: Path) -> Path:
    if not value:
        return default
    return Path(value).expanduser().resolve()


@dataclass(frozen=True)
class LauncherSettings:
    """Snapshot of launcher configuration values."""

    env_file: Path
    image_name: str
    container_name: str
    host_port: int
    container_port: int
    output_dir: Path
    container_output_dir: str
    build_context: Path
    ready_marker: str
    ready_timeout: float
    poll_interval: float
    gpu_probe_image: str
    port_search_limit: int
    stop_timeout: float
    failure_log_lines: int


def _resolve_env_path(env_file: os.PathLike[str] | str | None) -> Path:
    if env_file is None:
        return _DEFAULT_ENV_PATH
    return Path(env_file).resolve()


@lru_cache(maxsize=4)
def _load_settings(env_path: Path) -> LauncherSettings:
    # Existing environment variables take precedence over `.env` defaults.
    load_dotenv(dotenv_path=env_path, override=False)

    return LauncherSettings(
        env_file=env_path,
        image_name=os.getenv("FRAMEPACK_IMAGE") or DEFAULT_IMAGE,
        container_name=os.getenv("FRAMEPACK_CONTAINER_NAME") or DEFAULT_CONTAINER_NAME,
        host_port=_coerce_int(os.getenv("FRAMEPACK_HOST_PORT"), DEFAULT_PORT),
        container_port=_coerce_int(os.getenv("FRAMEPACK_CONTAINER_PORT"), DEFAULT_PORT),
        output_dir=_coerce_path(os.getenv("FRAMEPACK_OUTPUT_DIR"), _REPO_ROOT / "outputs"),
        container_output_dir=os.getenv("FRAMEPACK_CONTAINER_OUTPUT_DIR")
        or DEFAULT_CONTAINER_OUTPUT_DIR,
        build_context=_coerce_path(os.getenv("FRAMEPACK_BUILD_CONTEXT"), _REPO_ROOT),
        ready_marker=os.getenv("FRAMEPACK_READY_MARKER") or DEFAULT_READY_MARKER,
        ready_timeout=_coerce_float(os.getenv("FRAMEPACK_READY_TIMEOUT"), DEFAULT_READY_TIMEOUT),
        poll_interval=_coerce_float(os.getenv("FRAMEPACK_POLL_INTERVAL"), DEFAULT_POLL_INTERVAL),
        gpu_probe_image=os.getenv("FRAMEPACK_GPU_PROBE_IMAGE") or DEFAULT_GPU_PROBE_IMAGE,
        port_search_limit=_coerce_int(
            os.getenv("FRAMEPACK_PORT_SEARCH_LIMIT"), DEFAULT_PORT_SEARCH_LIMIT
        ),
        stop_timeout=_coerce_float(os.getenv("FRAMEPACK_STOP_TIMEOUT"), DEFAULT_STOP_TIMEOUT),
        failure_log_lines=_coerce_int(
            os.getenv("FRAMEPACK_FAILURE_LOG_LINES"), DEFAULT_FAILURE_LOG_LINES
        ),
    )


def get_settings(
    env_file: os.PathLike[str] | str | None = None,
    *,
    reload: bool = False,
) -> LauncherSettings:
    """Return the cached settings snapshot.

    Args:
        env_file: Optional explicit path to a `.env` file. When omitted the repo
            root `.env` file is used.
        reload: When True the cached snapshot is cleared before loading.
    """
    env_path = _resolve_env_path(env_file)
    if reload:
        _load_settings.cache_clear()
    return _load_settings(env_path)
