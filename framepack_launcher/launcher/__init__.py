"""Container lifecycle phases for the FramePack launcher.

Public API (re-exported):
        - run_launcher
        - LaunchConfiguration
        - EnvironmentCapabilities
        - ContainerHandle
        - Ready / FailedToStart / TimedOut
        - ConsolePrompt / FixedPrompt / ScriptedPrompt
        - LauncherError
"""

from .errors import LauncherError
from .models import (
    ContainerHandle,
    EnvironmentCapabilities,
    FailedToStart,
    LaunchConfiguration,
    Ready,
    TimedOut,
)
from .orchestrator import run_launcher
from .prompts import ConsolePrompt, FixedPrompt, ScriptedPrompt


__all__ = [
    "run_launcher",
    "LaunchConfiguration",
    "EnvironmentCapabilities",
    "ContainerHandle",
    "Ready",
    "FailedToStart",
    "TimedOut",
    "ConsolePrompt",
    "FixedPrompt",
    "ScriptedPrompt",
    "LauncherError",
]
