"""Shared fixtures: an in-memory Docker runtime and default settings."""

from __future__ import annotations

from pathlib import Path

import pytest

from framepack_launcher.config import LauncherSettings
from tests.fakes import FakeRuntime, make_settings


@pytest.fixture
def runtime() -> FakeRuntime:
    return FakeRuntime()


@pytest.fixture
def settings(tmp_path: Path) -> LauncherSettings:
    return make_settings(tmp_path)
