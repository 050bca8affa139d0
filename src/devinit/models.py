"""
Pydantic models for the bootstrap session.

Everything here lives for a single run: probe facts gathered at
startup, the checklist options the user toggles, and the frozen
selection handed to the plan builder.
"""

from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import Iterator, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field


class OptionKey(str, Enum):
    """Stable identifiers for every checklist option."""

    INSTALL_DEVBOX = "install_devbox"
    INSTALL_GIT = "install_git"
    INSTALL_GH = "install_gh"
    INSTALL_1PASSWORD = "install_1password"
    INSTALL_CHEZMOI = "install_chezmoi"
    INSTALL_TAILSCALE = "install_tailscale"
    LOGIN_1PASSWORD = "login_1password"
    SETUP_GITHUB = "setup_github"
    INIT_CHEZMOI = "init_chezmoi"
    SETUP_TAILSCALE = "setup_tailscale"


class DependencyStatus(BaseModel):
    """Presence of one external tool, computed once at startup."""

    model_config = ConfigDict(frozen=True)

    name: str
    command: str
    available: bool
    icon: str = ""


class Option(BaseModel):
    """A toggleable checklist row."""

    model_config = ConfigDict(frozen=True)

    key: OptionKey
    label: str
    description: str
    enabled: bool = False


class ProbeSnapshot(BaseModel):
    """Point-in-time view of the host, used to compute defaults and plans.

    Attributes:
        tools: Binary name to presence.
        in_container: Whether we run inside a container.
        package_manager: Name of the detected package manager, if any.
        tailscale_connected: Whether ``tailscale status`` reports a live node.
    """

    model_config = ConfigDict(frozen=True)

    tools: dict[str, bool] = Field(default_factory=dict)
    in_container: bool = False
    package_manager: Optional[str] = None
    tailscale_connected: bool = False

    def has(self, tool: str) -> bool:
        """Whether ``tool`` was on PATH when the snapshot was taken."""
        return self.tools.get(tool, False)


class SelectionResult(Mapping[str, bool]):
    """Immutable mapping from option key to the user's final choice.

    Only produced when the checklist is confirmed.
    """

    __slots__ = ("_choices",)

    def __init__(self, choices: Mapping[str, bool]):
        normalized = {}
        for key, value in choices.items():
            normalized[OptionKey(key).value] = bool(value)
        self._choices = MappingProxyType(normalized)

    def __getitem__(self, key: str) -> bool:
        if isinstance(key, OptionKey):
            key = key.value
        return self._choices[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._choices)

    def __len__(self) -> int:
        return len(self._choices)

    def __repr__(self) -> str:
        return f"SelectionResult({dict(self._choices)!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Mapping):
            return dict(self._choices) == dict(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(frozenset(self._choices.items()))

    def enabled(self, key: OptionKey) -> bool:
        """Whether ``key`` was selected. Missing keys count as disabled."""
        return self._choices.get(OptionKey(key).value, False)

    @property
    def any_enabled(self) -> bool:
        """True when at least one option was selected."""
        return any(self._choices.values())
