"""
Plan builder — confirmed selection in, ordered execution plan out.

The order never depends on the selection mapping:

  1. ensure-package-manager   (only if something must be installed)
  2. install-packages         (one batch for every selected package)
  3. login-1password, setup-github, init-chezmoi, setup-tailscale

Packages are kept as logical ids here; the runner resolves them to
manager-specific names when it knows which manager is active.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Optional

from .config import InitConfig, PackageNameMap
from .models import OptionKey, ProbeSnapshot, SelectionResult

DEVBOX_MANUAL_INSTALL = "curl -fsSL https://get.jetify.com/devbox | bash"


class StepId(str, Enum):
    ENSURE_PACKAGE_MANAGER = "ensure-package-manager"
    INSTALL_PACKAGES = "install-packages"
    LOGIN_1PASSWORD = "login-1password"
    SETUP_GITHUB = "setup-github"
    INIT_CHEZMOI = "init-chezmoi"
    SETUP_TAILSCALE = "setup-tailscale"


class StepKind(str, Enum):
    BOOTSTRAP = "bootstrap"
    INSTALL = "install"
    CONFIGURE = "configure"


class FailurePolicy(str, Enum):
    ABORT = "abort"
    WARN = "warn"


class Fallback(str, Enum):
    """Alternate paths a step may take after its primary action fails."""

    SYSTEM_PACKAGE_MANAGER = "system-package-manager"


@dataclass(frozen=True)
class Step:
    """One unit of the plan.

    Attributes:
        id: Which action the runner performs.
        kind: Bootstrap, install or configure.
        title: Human-readable label.
        requires: Binaries that must be on PATH before the action runs.
        packages: Logical package ids (install step only).
        install_devbox: Bootstrap should install devbox first.
        fallback: Alternate path offered after a failure.
        on_failure: Abort the run or warn and continue.
        requires_interactive_input: The action blocks on user input.
        remediation: Manual command the user can run instead.
    """

    id: StepId
    kind: StepKind
    title: str
    requires: tuple[str, ...] = ()
    packages: tuple[str, ...] = ()
    install_devbox: bool = False
    fallback: Optional[Fallback] = None
    on_failure: FailurePolicy = FailurePolicy.WARN
    requires_interactive_input: bool = False
    remediation: str = ""


@dataclass(frozen=True)
class ExecutionPlan:
    """Ordered, immutable sequence of steps."""

    steps: tuple[Step, ...] = ()
    name_map: PackageNameMap = field(default_factory=PackageNameMap)

    def __iter__(self) -> Iterator[Step]:
        return iter(self.steps)

    def __len__(self) -> int:
        return len(self.steps)

    @property
    def is_empty(self) -> bool:
        return not self.steps

    @property
    def step_ids(self) -> list[StepId]:
        return [s.id for s in self.steps]

    def get(self, step_id: StepId) -> Optional[Step]:
        """The step with ``step_id``, if planned."""
        for step in self.steps:
            if step.id == step_id:
                return step
        return None


# (install option, logical package id) in install order
PACKAGE_OPTIONS: tuple[tuple[OptionKey, str], ...] = (
    (OptionKey.INSTALL_GIT, "git"),
    (OptionKey.INSTALL_GH, "gh"),
    (OptionKey.INSTALL_1PASSWORD, "1password-cli"),
    (OptionKey.INSTALL_CHEZMOI, "chezmoi"),
    (OptionKey.INSTALL_TAILSCALE, "tailscale"),
)


def selected_packages(selection: SelectionResult) -> tuple[str, ...]:
    """Logical package ids for every enabled install option, in fixed order."""
    return tuple(pkg for key, pkg in PACKAGE_OPTIONS if selection.enabled(key))


def _configure_steps(selection: SelectionResult, config: InitConfig) -> list[Step]:
    steps = []
    service = config.use_service_account

    if selection.enabled(OptionKey.LOGIN_1PASSWORD):
        steps.append(Step(
            id=StepId.LOGIN_1PASSWORD,
            kind=StepKind.CONFIGURE,
            title="Log in to 1Password",
            requires=("op",),
            requires_interactive_input=not service,
            remediation=(
                "export OP_SERVICE_ACCOUNT_TOKEN=<token>" if service
                else 'eval "$(op signin)"'
            ),
        ))
    if selection.enabled(OptionKey.SETUP_GITHUB):
        steps.append(Step(
            id=StepId.SETUP_GITHUB,
            kind=StepKind.CONFIGURE,
            title="Set up GitHub authentication",
            requires=("gh", "op"),
            remediation="gh auth login && gh auth setup-git",
        ))
    if selection.enabled(OptionKey.INIT_CHEZMOI):
        steps.append(Step(
            id=StepId.INIT_CHEZMOI,
            kind=StepKind.CONFIGURE,
            title="Initialize chezmoi",
            requires=("chezmoi",),
            requires_interactive_input=not service,
            remediation=f"chezmoi init --apply {config.dotfiles_user}",
        ))
    if selection.enabled(OptionKey.SETUP_TAILSCALE):
        steps.append(Step(
            id=StepId.SETUP_TAILSCALE,
            kind=StepKind.CONFIGURE,
            title="Connect to Tailscale",
            requires=("tailscale", "op"),
            remediation="sudo tailscale up",
        ))
    return steps


def build(
    selection: SelectionResult,
    snapshot: ProbeSnapshot,
    config: Optional[InitConfig] = None,
) -> ExecutionPlan:
    """Turn a confirmed selection into an ordered plan.

    Pure: the same inputs always give an equal plan.

    Args:
        selection: The user's confirmed choices.
        snapshot: Probe facts at confirmation time.
        config: Run configuration (defaults if omitted).

    Returns:
        ExecutionPlan, empty when nothing was selected.
    """
    config = config or InitConfig()
    steps: list[Step] = []

    packages = selected_packages(selection)
    want_devbox = selection.enabled(OptionKey.INSTALL_DEVBOX)

    if want_devbox or packages:
        needs_devbox_install = want_devbox and not snapshot.has("devbox")
        steps.append(Step(
            id=StepId.ENSURE_PACKAGE_MANAGER,
            kind=StepKind.BOOTSTRAP,
            title="Set up package manager",
            install_devbox=needs_devbox_install,
            fallback=Fallback.SYSTEM_PACKAGE_MANAGER if needs_devbox_install else None,
            on_failure=FailurePolicy.ABORT,
            remediation=DEVBOX_MANUAL_INSTALL,
        ))

    if packages:
        steps.append(Step(
            id=StepId.INSTALL_PACKAGES,
            kind=StepKind.INSTALL,
            title="Install packages",
            packages=packages,
            fallback=Fallback.SYSTEM_PACKAGE_MANAGER,
        ))

    steps.extend(_configure_steps(selection, config))
    return ExecutionPlan(steps=tuple(steps), name_map=config.name_map)


# binary -> logical package that provides it
TOOL_PACKAGES: dict[str, str] = {
    "git": "git",
    "gh": "gh",
    "op": "1password-cli",
    "chezmoi": "chezmoi",
    "tailscale": "tailscale",
}
