"""
Answer sources for the runner's interactive suspension points.

The runner never reads stdin directly. It asks an ``AnswerSource`` for
confirmations (fallback offers) and secrets (service-account tokens).
``InteractiveAnswers`` prompts in the terminal; ``PresetAnswers`` hands
back fixed answers for unattended runs and tests.
"""

from __future__ import annotations

from typing import Optional, Protocol

import click

from .errors import UserCancelled


class AnswerSource(Protocol):
    """Where the runner gets answers when a step needs user input."""

    interactive: bool

    def confirm(self, question: str, default: bool = False) -> bool:
        """Yes/no answer to ``question``."""

    def secret(self, prompt: str) -> Optional[str]:
        """A hidden value, or None if none was supplied."""


class InteractiveAnswers:
    """Prompt the user in the terminal via Click."""

    interactive = True

    def confirm(self, question: str, default: bool = False) -> bool:
        try:
            return click.confirm(question, default=default)
        except click.Abort as exc:
            raise UserCancelled("cancelled at prompt") from exc

    def secret(self, prompt: str) -> Optional[str]:
        try:
            value = click.prompt(prompt, hide_input=True, default="", show_default=False)
        except click.Abort as exc:
            raise UserCancelled("cancelled at prompt") from exc
        return value.strip() or None


class PresetAnswers:
    """Fixed answers for non-interactive runs.

    Args:
        accept_fallback: Answer to every fallback offer.
        secrets: Prompt text to secret value.
    """

    interactive = False

    def __init__(self, accept_fallback: bool = False, secrets: Optional[dict[str, str]] = None):
        self.accept_fallback = accept_fallback
        self.secrets = dict(secrets or {})
        self.questions: list[str] = []

    def confirm(self, question: str, default: bool = False) -> bool:
        self.questions.append(question)
        return self.accept_fallback

    def secret(self, prompt: str) -> Optional[str]:
        return self.secrets.get(prompt)
