"""High-level Docker utilities package.

This package provides structured helpers for:
    * Connecting to the Docker daemon through the Python SDK
      (``ensure_docker_sdk``)
    * Running, inspecting, listing and stopping containers behind a single
      ``DockerRuntime`` facade
    * Relaying container log output through the shared logger

Principles:
    * Keep low-level SDK usage encapsulated (see ``sdk.py``) so higher-level
        code can be easily mocked in tests.
    * Avoid side effects at import time (no client construction until needed).

Public API (re-exported):
        - DockerError
        - DockerRuntime
        - ContainerSummary
        - ContainerState
        - RunRequest
"""

from .errors import DockerError
from .runtime import DockerRuntime
from .types import ContainerState, ContainerSummary, RunRequest


__all__ = [
    "DockerError",
    "DockerRuntime",
    "ContainerSummary",
    "ContainerState",
    "RunRequest",
]
