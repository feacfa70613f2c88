"""Yes/no operator prompts.

Phases receive a ``Prompt`` instead of reading stdin directly so scripted
answers can replace the console in tests and non-interactive runs.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable
from typing import Protocol

from rich.console import Console
from rich.prompt import Confirm

from framepack_launcher.utils.log_utils import logger


class Prompt(Protocol):
    def ask(self, question: str, *, default: bool = False) -> bool: ...


class ConsolePrompt:
    """Ask on the terminal; EOF or an empty answer yields the default."""

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console()

    def ask(self, question: str, *, default: bool = False) -> bool:
        try:
            return Confirm.ask(question, default=default, console=self._console)
        except EOFError:
            return default


class FixedPrompt:
    """Answer every question the same way (``--yes`` / ``--no``)."""

    def __init__(self, answer: bool) -> None:
        self.answer = answer

    def ask(self, question: str, *, default: bool = False) -> bool:
        logger.info(f"{question} -> {'yes' if self.answer else 'no'}")
        return self.answer


class ScriptedPrompt:
    """Replay a fixed sequence of answers, recording the questions asked.

    Once the script runs out the question's default is returned.
    """

    def __init__(self, answers: Iterable[bool] = ()) -> None:
        self._answers = deque(answers)
        self.questions: list[str] = []

    def ask(self, question: str, *, default: bool = False) -> bool:
        self.questions.append(question)
        if self._answers:
            return self._answers.popleft()
        return default


__all__ = ["Prompt", "ConsolePrompt", "FixedPrompt", "ScriptedPrompt"]
