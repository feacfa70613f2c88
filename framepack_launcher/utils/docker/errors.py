"""Custom exception types for Docker helpers."""

from __future__ import annotations


class DockerError(RuntimeError):
    """Raised when Docker-related operations fail.

    This includes SDK import issues, daemon connectivity, failed builds and
    API errors returned while creating, inspecting or stopping containers.
    """

    pass


__all__ = ["DockerError"]
