"""Configuration helpers for the launcher.

Expose `get_settings` as the canonical accessor for environment-driven
configuration. Modules should avoid loading `.env` directly and instead
import from this package to retrieve typed snapshots.
"""

from .settings import LauncherSettings, get_settings


__all__ = ["LauncherSettings", "get_settings"]
