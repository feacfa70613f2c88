"""Internal logging helpers for Docker utilities.

Separated to keep concerns modular. Not part of the public API.
"""

from __future__ import annotations

import re
from re import Pattern

from rich.markup import escape

from framepack_launcher.utils.log_utils import logger


ANSI_ESCAPE_RE: Pattern[str] = re.compile(r"\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])")


def format_prefix(prefix: str | None) -> str:
    """Return a logging prefix safe for Rich markup.

    Args:
        prefix: Optional raw prefix.

    Returns:
        Escaped prefix ending with a space if non-empty.
    """
    if not prefix:
        return ""
    p = escape(prefix.rstrip())
    return p + (" " if not p.endswith(" ") else "")


def strip_ansi(text: str) -> str:
    """Remove ANSI escape sequences from text."""
    return ANSI_ESCAPE_RE.sub("", text)


def sanitize_line(raw_line: str) -> str:
    """Strip ANSI codes and carriage-return progress frames from a log line."""
    return escape(strip_ansi(raw_line.split("\r")[-1]))


def log_multiline(text: str, log_prefix: str | None, level: str = "info") -> None:
    """Log multiline output line-by-line with optional prefix."""
    if not text:
        return
    pf = format_prefix(log_prefix)
    log_fn = getattr(logger, level, logger.info)
    for raw_line in text.splitlines():
        log_fn(f"{pf}{sanitize_line(raw_line)}")


__all__ = ["format_prefix", "strip_ansi", "sanitize_line", "log_multiline", "ANSI_ESCAPE_RE"]
