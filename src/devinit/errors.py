"""Error taxonomy for the bootstrap run.

Only ``FatalBootstrapFailure`` and ``UserCancelled`` stop a run. Every
other error is caught by the runner at step granularity and recorded
as a warning.
"""

from __future__ import annotations


class DevInitError(Exception):
    """Base class for all devinit errors."""


class ConfigError(DevInitError):
    """The configuration file could not be read or validated."""


class PreconditionMissing(DevInitError):
    """A binary required by a step is not on PATH."""

    def __init__(self, tool: str, message: str = ""):
        self.tool = tool
        super().__init__(message or f"{tool} not found")


class ActionFailed(DevInitError):
    """An external action returned non-success."""

    def __init__(self, action: str, cause: str = ""):
        self.action = action
        self.cause = cause
        detail = f"{action} failed"
        if cause:
            detail += f": {cause}"
        super().__init__(detail)


class CredentialUnavailable(DevInitError):
    """A secret could not be fetched from the credential source.

    Attributes:
        reference: The secret reference that was requested.
        reason: One of ``not_found``, ``empty`` or ``unreachable``.
    """

    REASONS = ("not_found", "empty", "unreachable")

    def __init__(self, reference: str, reason: str, detail: str = ""):
        if reason not in self.REASONS:
            raise ValueError(f"unknown credential failure reason: {reason}")
        self.reference = reference
        self.reason = reason
        msg = f"could not read {reference} ({reason.replace('_', ' ')})"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


class FatalBootstrapFailure(DevInitError):
    """No package manager could be acquired. Aborts the run."""


class UserCancelled(DevInitError):
    """The user aborted before or during the run."""


class RestartRequired(DevInitError):
    """Devbox was installed but is not usable until the shell is reloaded."""
