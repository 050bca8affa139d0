"""
Execution runner — walks an ExecutionPlan one step at a time.

Run states::

    NOT_STARTED -> RUNNING(step_index) -> COMPLETED | ABORTED

Each step goes through the same phases:

  1. CHECK     required binaries present? (missing -> skip with warning)
  2. PRIMARY   run the action
  3. FALLBACK  on failure, offer the step's fallback once; if accepted,
               apply it and RETRY the same logical action exactly once
  4. DONE      succeeded, failed or skipped

Failures are recorded as warnings and the run moves on, except for the
package-manager bootstrap step: without a package manager there is
nothing to install with, so its failure aborts the run.
An interrupt inside a step also aborts, with reason ``cancelled``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from rich.console import Console
from rich.markup import escape

from .auth import ChezmoiInitializer, GitHubAuthenticator, OnePasswordLogin, TailscaleConnector
from .config import InitConfig
from .credentials import CredentialSource
from .errors import (
    ActionFailed,
    CredentialUnavailable,
    FatalBootstrapFailure,
    PreconditionMissing,
    RestartRequired,
    UserCancelled,
)
from .package_managers import (
    DEVBOX_SHELLENV_HINT,
    DevboxManager,
    PackageManager,
    install_devbox,
)
from .plan import TOOL_PACKAGES, ExecutionPlan, Fallback, FailurePolicy, Step, StepId, StepKind
from .probe import CapabilityProber
from .prompts import AnswerSource

logger = logging.getLogger("devinit.runner")


class RunState(str, Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"


class StepPhase(str, Enum):
    CHECK = "check"
    PRIMARY = "primary"
    FALLBACK = "fallback"
    RETRY = "retry"
    DONE = "done"


class StepStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


class AbortReason(str, Enum):
    BOOTSTRAP_FAILED = "bootstrap_failed"
    RESTART_REQUIRED = "restart_required"
    CANCELLED = "cancelled"


@dataclass
class StepReport:
    """What happened to one step.

    Attributes:
        step_id: The step.
        title: Human-readable label.
        status: Succeeded, failed or skipped.
        message: Short explanation for the user.
        cause: Underlying error text, if any.
        remediation: Manual command to do the step by hand.
        used_fallback: The fallback path was taken.
    """

    step_id: StepId
    title: str
    status: StepStatus
    message: str = ""
    cause: str = ""
    remediation: str = ""
    used_fallback: bool = False

    @property
    def is_warning(self) -> bool:
        return self.status != StepStatus.SUCCEEDED


@dataclass
class RunReport:
    """Outcome of a whole run."""

    state: RunState = RunState.NOT_STARTED
    steps: list[StepReport] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)
    abort_reason: Optional[AbortReason] = None
    package_manager: Optional[str] = None

    @property
    def warnings(self) -> list[StepReport]:
        """Steps that were skipped or failed."""
        return [r for r in self.steps if r.is_warning]

    @property
    def outcome(self) -> str:
        """``success``, ``partial`` or ``aborted``."""
        if self.state == RunState.ABORTED:
            return "aborted"
        return "partial" if self.warnings else "success"

    @property
    def exit_code(self) -> int:
        if self.state == RunState.COMPLETED:
            return 0
        if self.abort_reason == AbortReason.RESTART_REQUIRED:
            return 2
        if self.abort_reason == AbortReason.CANCELLED:
            return 130
        return 1

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "outcome": self.outcome,
            "abort_reason": self.abort_reason.value if self.abort_reason else None,
            "package_manager": self.package_manager,
            "notes": list(self.notes),
            "steps": [
                {
                    "id": r.step_id.value,
                    "title": r.title,
                    "status": r.status.value,
                    "message": r.message,
                    "cause": r.cause,
                    "remediation": r.remediation,
                    "used_fallback": r.used_fallback,
                }
                for r in self.steps
            ],
        }


@dataclass
class Collaborators:
    """External collaborators the runner delegates to."""

    credentials: CredentialSource
    onepassword: OnePasswordLogin
    github: GitHubAuthenticator
    chezmoi: ChezmoiInitializer
    tailscale: TailscaleConnector
    devbox_installer: Callable[[], None] = install_devbox

    @classmethod
    def default(cls, config: InitConfig, answers: AnswerSource) -> "Collaborators":
        return cls(
            credentials=CredentialSource(config),
            onepassword=OnePasswordLogin(config, answers),
            github=GitHubAuthenticator(),
            chezmoi=ChezmoiInitializer(config),
            tailscale=TailscaleConnector(),
        )


StepAction = Callable[[Step], None]

STEP_FAILURES = (ActionFailed, CredentialUnavailable)


class ExecutionRunner:
    """Sequential interpreter over an ExecutionPlan.

    Args:
        plan: The plan to run.
        prober: Capability prober used for preconditions and detection.
        answers: Source of confirmations and secrets.
        config: Run configuration.
        collaborators: External collaborators (defaults built from config).
        console: Rich console for progress output.
        actions: Per-step action overrides, keyed by step id.
    """

    def __init__(
        self,
        plan: ExecutionPlan,
        prober: CapabilityProber,
        answers: AnswerSource,
        config: Optional[InitConfig] = None,
        collaborators: Optional[Collaborators] = None,
        console: Optional[Console] = None,
        actions: Optional[dict[StepId, StepAction]] = None,
    ):
        self.plan = plan
        self.prober = prober
        self.answers = answers
        self.config = config or InitConfig()
        self.collaborators = collaborators or Collaborators.default(self.config, answers)
        self.console = console or Console()

        self.state = RunState.NOT_STARTED
        self.step_index: Optional[int] = None
        self.handle: Optional[PackageManager] = None
        self.handle_replaced = False
        self.report = RunReport()

        self.actions: dict[StepId, StepAction] = {
            StepId.ENSURE_PACKAGE_MANAGER: self._ensure_package_manager,
            StepId.INSTALL_PACKAGES: self._install_packages,
            StepId.LOGIN_1PASSWORD: self._login_1password,
            StepId.SETUP_GITHUB: self._setup_github,
            StepId.INIT_CHEZMOI: self._init_chezmoi,
            StepId.SETUP_TAILSCALE: self._setup_tailscale,
        }
        self.actions.update(actions or {})

    # ------------------------------------------------------------------
    # Run loop
    # ------------------------------------------------------------------

    def run(self) -> RunReport:
        """Execute every step in order and return the report.

        Raises:
            RuntimeError: If the runner was already used.
        """
        if self.state != RunState.NOT_STARTED:
            raise RuntimeError(f"runner already {self.state.value}")

        self.state = RunState.RUNNING
        total = len(self.plan)
        logger.info("Starting run with %d step(s)", total)

        for index, step in enumerate(self.plan):
            self.step_index = index
            self.console.print(f"  [bold]Step {index + 1}/{total}[/]  {step.title}...")

            try:
                step_report = self._execute_step(step)
            except RestartRequired as exc:
                self._record(StepReport(
                    step_id=step.id, title=step.title, status=StepStatus.FAILED,
                    message="Devbox installed; reload your shell and rerun devinit",
                    cause=str(exc), remediation=DEVBOX_SHELLENV_HINT,
                ))
                return self._abort(AbortReason.RESTART_REQUIRED)
            except (KeyboardInterrupt, UserCancelled) as exc:
                self._record(StepReport(
                    step_id=step.id, title=step.title, status=StepStatus.FAILED,
                    message="cancelled", cause=str(exc), remediation=step.remediation,
                ))
                return self._abort(AbortReason.CANCELLED)
            except FatalBootstrapFailure as exc:
                self._record(StepReport(
                    step_id=step.id, title=step.title, status=StepStatus.FAILED,
                    message="No package manager available", cause=str(exc),
                    remediation=step.remediation,
                ))
                return self._abort(AbortReason.BOOTSTRAP_FAILED)

            self._record(step_report)

            if step.kind == StepKind.INSTALL:
                self.prober.refresh()

            if step_report.status == StepStatus.FAILED and step.on_failure == FailurePolicy.ABORT:
                return self._abort(AbortReason.BOOTSTRAP_FAILED)

        self.state = RunState.COMPLETED
        self.report.state = self.state
        logger.info("Run completed with %d warning(s)", len(self.report.warnings))
        return self.report

    def _abort(self, reason: AbortReason) -> RunReport:
        self.state = RunState.ABORTED
        self.report.state = self.state
        self.report.abort_reason = reason
        logger.error("Run aborted at step %s: %s", self.step_index, reason.value)
        return self.report

    def _record(self, step_report: StepReport) -> None:
        self.report.steps.append(step_report)
        self.report.package_manager = self.handle.name if self.handle else None

        if step_report.status == StepStatus.SUCCEEDED:
            suffix = " (fallback)" if step_report.used_fallback else ""
            self.console.print(f"    [green]done{suffix}[/]")
            return

        logger.warning(
            "Step %s %s: %s%s",
            step_report.step_id.value, step_report.status.value, step_report.message,
            f" ({step_report.cause})" if step_report.cause else "",
        )
        color = "yellow" if step_report.status == StepStatus.SKIPPED else "red"
        self.console.print(f"    [{color}]{step_report.status.value}: {escape(step_report.message)}[/]")

    # ------------------------------------------------------------------
    # Per-step state machine
    # ------------------------------------------------------------------

    def _execute_step(self, step: Step) -> StepReport:
        """Drive one step through CHECK, PRIMARY, FALLBACK/RETRY to DONE."""
        phase = StepPhase.CHECK
        used_fallback = False
        failure: Optional[Exception] = None
        action = self.actions[step.id]

        while phase != StepPhase.DONE:
            if phase == StepPhase.CHECK:
                try:
                    self._check_precondition(step)
                except PreconditionMissing as exc:
                    return StepReport(
                        step_id=step.id, title=step.title, status=StepStatus.SKIPPED,
                        message=str(exc), remediation=self._precondition_remediation(step, exc),
                    )
                phase = StepPhase.PRIMARY

            elif phase == StepPhase.PRIMARY:
                try:
                    action(step)
                    phase = StepPhase.DONE
                except STEP_FAILURES as exc:
                    failure = exc
                    phase = StepPhase.FALLBACK

            elif phase == StepPhase.FALLBACK:
                if not self._offer_fallback(step, failure):
                    break
                try:
                    self._apply_fallback(step)
                except STEP_FAILURES as exc:
                    failure = exc
                    break
                used_fallback = True
                phase = StepPhase.RETRY

            elif phase == StepPhase.RETRY:
                try:
                    self._retry(step, action)
                    failure = None
                except STEP_FAILURES as exc:
                    failure = exc
                phase = StepPhase.DONE

        if failure is None:
            return StepReport(
                step_id=step.id, title=step.title, status=StepStatus.SUCCEEDED,
                used_fallback=used_fallback,
            )
        return StepReport(
            step_id=step.id, title=step.title, status=StepStatus.FAILED,
            message=self._failure_message(step, failure, used_fallback),
            cause=str(failure),
            remediation=self._failure_remediation(step),
            used_fallback=used_fallback,
        )

    def _check_precondition(self, step: Step) -> None:
        for tool in step.requires:
            if not self.prober.probe(tool):
                raise PreconditionMissing(tool)
        if step.requires_interactive_input and not self.answers.interactive:
            raise PreconditionMissing("terminal", "interactive input required")

    def _fallback_applicable(self, step: Step) -> bool:
        if step.fallback != Fallback.SYSTEM_PACKAGE_MANAGER or self.handle_replaced:
            return False
        if step.kind == StepKind.BOOTSTRAP:
            return True
        return self.handle is not None and self.handle.name == DevboxManager.name

    def _offer_fallback(self, step: Step, failure: Optional[Exception]) -> bool:
        if not self._fallback_applicable(step):
            return False
        self.console.print(f"    [red]{escape(str(failure))}[/]")
        if step.kind == StepKind.INSTALL:
            self.console.print(
                "    [yellow]Devbox package installation failed "
                "(this is common in containers).[/]"
            )
            question = "Would you like to try with the system package manager instead?"
        else:
            question = "Would you like to use the system package manager instead?"
        accepted = self.answers.confirm(question, default=True)
        logger.info("Fallback for %s %s", step.id.value, "accepted" if accepted else "declined")
        return accepted

    def _apply_fallback(self, step: Step) -> None:
        """Replace the package-manager handle with the system manager.

        This is the only place the handle changes after bootstrap, and it
        happens at most once per run.
        """
        detection = self.prober.detect_system_package_manager()
        if not detection.found:
            if step.kind == StepKind.BOOTSTRAP:
                raise FatalBootstrapFailure("no system package manager found")
            raise ActionFailed("switch package manager", "no system package manager found")
        previous = self.handle.name if self.handle else "none"
        self.handle = detection.handle
        self.handle_replaced = True
        logger.info("Package manager replaced: %s -> %s", previous, self.handle.name)
        self.console.print(f"    Using package manager: [bold]{self.handle.name}[/]")

    def _retry(self, step: Step, action: StepAction) -> None:
        # Bootstrap's fallback already produced the handle it was after.
        if step.kind == StepKind.BOOTSTRAP:
            return
        self.console.print("    Retrying with the new package manager...")
        action(step)

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def _failure_message(self, step: Step, failure: Exception, used_fallback: bool) -> str:
        if isinstance(failure, CredentialUnavailable):
            return f"credential unavailable ({failure.reason.replace('_', ' ')})"
        if step.kind == StepKind.BOOTSTRAP:
            return "package manager setup failed"
        if used_fallback:
            return "failed again after fallback"
        return "action failed"

    def _failure_remediation(self, step: Step) -> str:
        if step.kind == StepKind.INSTALL and self.handle is not None:
            names = self.plan.name_map.resolve_all(list(step.packages), self.handle.name)
            return self.handle.manual_command(names)
        return step.remediation

    def _precondition_remediation(self, step: Step, exc: PreconditionMissing) -> str:
        package = TOOL_PACKAGES.get(exc.tool)
        if package is None:
            return step.remediation
        if self.handle is not None:
            name = self.plan.name_map.resolve(package, self.handle.name)
            install = self.handle.manual_command([name])
        else:
            install = f"install {package}"
        return f"{install} && {step.remediation}" if step.remediation else install

    # ------------------------------------------------------------------
    # Step actions
    # ------------------------------------------------------------------

    def _ensure_package_manager(self, step: Step) -> None:
        if step.install_devbox:
            self.console.print("    Installing devbox...")
            self.collaborators.devbox_installer()
            self.prober.refresh()
            if not self.prober.probe("devbox"):
                raise RestartRequired("devbox is not on PATH yet")
            self.handle = DevboxManager()
        else:
            detection = self.prober.probe_package_manager()
            if not detection.found:
                raise FatalBootstrapFailure("no supported package manager found")
            self.handle = detection.handle
        self.console.print(f"    Using package manager: [bold]{self.handle.name}[/]")

    def _install_packages(self, step: Step) -> None:
        if self.handle is None:
            raise ActionFailed("install packages", "no package manager selected")
        names = self.plan.name_map.resolve_all(list(step.packages), self.handle.name)
        self.console.print(f"    Installing: {', '.join(names)}")
        self.handle.install(names)
        if self.handle.name == DevboxManager.name:
            note = f"Initialize the devbox shell: {DEVBOX_SHELLENV_HINT}"
            if note not in self.report.notes:
                self.report.notes.append(note)

    def _login_1password(self, step: Step) -> None:
        self.collaborators.onepassword.authenticate()

    def _setup_github(self, step: Step) -> None:
        token = self.collaborators.credentials.github_token()
        self.collaborators.github.authenticate(token)

    def _init_chezmoi(self, step: Step) -> None:
        self.collaborators.chezmoi.authenticate()

    def _setup_tailscale(self, step: Step) -> None:
        authkey = self.collaborators.credentials.tailscale_authkey()
        self.collaborators.tailscale.authenticate(authkey)
