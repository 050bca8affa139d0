"""
Selection model — the checklist state machine.

States::

    BROWSING --confirm--> CONFIRMED
        |
        +------quit-----> CANCELLED

The model is immutable: ``handle_input()`` returns a new model plus a
command for the UI loop. Both terminal states ignore further input.
Rendering to the terminal lives in ``checklist.py``; this module only
knows about state.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Optional, Union

from .models import DependencyStatus, Option, OptionKey, ProbeSnapshot, SelectionResult


class SelectionState(str, Enum):
    BROWSING = "browsing"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class Event(str, Enum):
    MOVE_UP = "move_up"
    MOVE_DOWN = "move_down"
    TOGGLE = "toggle"
    CONFIRM = "confirm"
    QUIT = "quit"
    RESIZE = "resize"


class Command(str, Enum):
    """What the UI loop should do after a transition."""

    NONE = "none"
    RENDER = "render"
    EXIT = "exit"


@dataclass(frozen=True)
class Resize:
    """Resize event carrying the new terminal geometry."""

    width: int
    height: int


InputEvent = Union[Event, Resize]

CONTAINER_DEVBOX_WARNING = "⚠️  NOT recommended in containers (requires Nix daemon)"


def default_options(snapshot: ProbeSnapshot) -> list[Option]:
    """Checklist options with defaults derived from live probe facts.

    Install options default on when the tool is missing. Devbox is forced
    off inside containers, with a warning in its description.
    """
    devbox_description = "Install devbox package manager (recommended for Linux)"
    devbox_enabled = not snapshot.has("devbox")
    if snapshot.in_container:
        devbox_description = CONTAINER_DEVBOX_WARNING
        devbox_enabled = False

    return [
        Option(key=OptionKey.INSTALL_DEVBOX, label="Install Devbox",
               description=devbox_description, enabled=devbox_enabled),
        Option(key=OptionKey.INSTALL_GIT, label="Install Git",
               description="Install git version control system",
               enabled=not snapshot.has("git")),
        Option(key=OptionKey.INSTALL_GH, label="Install GitHub CLI",
               description="Install gh command-line tool",
               enabled=not snapshot.has("gh")),
        Option(key=OptionKey.INSTALL_1PASSWORD, label="Install 1Password CLI",
               description="Install 1Password command-line tool",
               enabled=not snapshot.has("op")),
        Option(key=OptionKey.INSTALL_CHEZMOI, label="Install Chezmoi",
               description="Install chezmoi dotfile manager",
               enabled=not snapshot.has("chezmoi")),
        Option(key=OptionKey.INSTALL_TAILSCALE, label="Install Tailscale",
               description="Install Tailscale VPN client",
               enabled=not snapshot.has("tailscale")),
        Option(key=OptionKey.LOGIN_1PASSWORD, label="Login to 1Password",
               description="Authenticate with 1Password", enabled=True),
        Option(key=OptionKey.SETUP_GITHUB, label="Setup GitHub Authentication",
               description="Configure GitHub CLI with 1Password token", enabled=True),
        Option(key=OptionKey.INIT_CHEZMOI, label="Initialize Chezmoi",
               description="Clone and apply dotfiles with chezmoi", enabled=True),
        Option(key=OptionKey.SETUP_TAILSCALE, label="Setup Tailscale",
               description="Configure and connect to Tailscale network",
               enabled=snapshot.has("tailscale") and not snapshot.tailscale_connected),
    ]


@dataclass(frozen=True)
class SelectionModel:
    """Checklist state: status rows, options, cursor and lifecycle state."""

    dependencies: tuple[DependencyStatus, ...]
    options: tuple[Option, ...]
    cursor: int = 0
    state: SelectionState = SelectionState.BROWSING
    width: int = 0
    height: int = 0

    @classmethod
    def initialize(
        cls,
        dependencies: list[DependencyStatus],
        snapshot: ProbeSnapshot,
    ) -> "SelectionModel":
        """Build the initial BROWSING model from probe results."""
        return cls(dependencies=tuple(dependencies), options=tuple(default_options(snapshot)))

    @property
    def finished(self) -> bool:
        return self.state != SelectionState.BROWSING

    def handle_input(self, event: Any) -> tuple["SelectionModel", Command]:
        """Apply one input event.

        Unknown events, and any event after a terminal state, leave the
        model unchanged.

        Returns:
            The new model and the command for the UI loop.
        """
        if self.finished:
            return self, Command.NONE

        if isinstance(event, Resize):
            return replace(self, width=event.width, height=event.height), Command.RENDER

        if event == Event.MOVE_UP:
            return replace(self, cursor=max(self.cursor - 1, 0)), Command.RENDER
        if event == Event.MOVE_DOWN:
            last = max(len(self.options) - 1, 0)
            return replace(self, cursor=min(self.cursor + 1, last)), Command.RENDER
        if event == Event.TOGGLE:
            if not self.options:
                return self, Command.NONE
            return replace(self, options=self._toggled(self.cursor)), Command.RENDER
        if event == Event.CONFIRM:
            return replace(self, state=SelectionState.CONFIRMED), Command.EXIT
        if event == Event.QUIT:
            return replace(self, state=SelectionState.CANCELLED), Command.EXIT
        if event == Event.RESIZE:
            return self, Command.RENDER

        return self, Command.NONE

    def _toggled(self, index: int) -> tuple[Option, ...]:
        assert 0 <= index < len(self.options), "cursor out of range"
        target = self.options[index]
        flipped = target.model_copy(update={"enabled": not target.enabled})
        return self.options[:index] + (flipped,) + self.options[index + 1:]

    def with_overrides(self, overrides: dict[str, bool]) -> "SelectionModel":
        """Set options by key without going through the cursor.

        Used by the non-interactive path (``--enable`` / ``--disable``).
        A confirmed or cancelled model is returned unchanged.

        Raises:
            ValueError: If a key does not name an option.
        """
        if self.finished:
            return self
        known = {opt.key.value for opt in self.options}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise ValueError(f"unknown option(s): {', '.join(unknown)}")
        options = tuple(
            opt.model_copy(update={"enabled": overrides[opt.key.value]})
            if opt.key.value in overrides else opt
            for opt in self.options
        )
        return replace(self, options=options)

    def result(self) -> Optional[SelectionResult]:
        """The final choices, or None unless the user confirmed."""
        if self.state != SelectionState.CONFIRMED:
            return None
        return SelectionResult({opt.key.value: opt.enabled for opt in self.options})

    def render(self) -> str:
        """Plain-text view of the checklist.

        Every option line carries ``[x]`` or ``[ ]`` so the selection can be
        read back from the buffer.
        """
        lines = ["devinit - Interactive Setup", "", "System Dependencies Status"]
        for dep in self.dependencies:
            mark = "✓ Available" if dep.available else "✗ Missing"
            lines.append(f"  {dep.icon} {dep.name} {mark}")

        lines += ["", "Configuration Options"]
        for i, opt in enumerate(self.options):
            checkbox = "[x]" if opt.enabled else "[ ]"
            pointer = ">" if i == self.cursor else " "
            lines.append(f"{pointer} {checkbox} {opt.label}")
            if i == self.cursor:
                lines.append(f"      {opt.description}")

        lines += ["", HELP_TEXT]
        return "\n".join(lines)


HELP_TEXT = "↑/↓: navigate • space: toggle • enter: confirm • q: quit"
