"""The setup command: checklist, plan, run, report."""

from __future__ import annotations

import sys
from typing import Optional

import click

from ._common import (
    config_overrides,
    console,
    load_config_or_exit,
    selection_overrides,
    setup_options,
)
from ..checklist import run_checklist
from ..log import setup_logging
from ..plan import build
from ..probe import CapabilityProber
from ..prompts import InteractiveAnswers, PresetAnswers
from ..report import render_report
from ..runner import ExecutionRunner
from ..selection import Event, SelectionModel


def _has_terminal() -> bool:
    return sys.stdin.isatty() and sys.stdout.isatty()


def run_setup(
    config_path: Optional[str] = None,
    github_token: Optional[str] = None,
    tailscale_authkey: Optional[str] = None,
    use_service_account: bool = False,
    dotfiles_user: Optional[str] = None,
    enable: tuple[str, ...] = (),
    disable: tuple[str, ...] = (),
    yes: bool = False,
    accept_fallback: bool = False,
    verbose: bool = False,
    debug: bool = False,
) -> None:
    """Run the whole bootstrap and exit with the run's exit code.

    Exit codes: 0 completed or cancelled before the run, 1 aborted or
    bad config, 2 shell restart required, 130 interrupted mid-run.
    """
    setup_logging(verbose=verbose, debug=debug)
    overrides = config_overrides(github_token, tailscale_authkey, use_service_account,
                                 dotfiles_user)
    config = load_config_or_exit(config_path, overrides)
    choices = selection_overrides(enable, disable)

    prober = CapabilityProber()
    snapshot = prober.snapshot()
    model = SelectionModel.initialize(prober.dependency_statuses(), snapshot)
    model = model.with_overrides(choices)

    if yes:
        model, _ = model.handle_input(Event.CONFIRM)
        answers = PresetAnswers(accept_fallback=accept_fallback)
    else:
        if not _has_terminal():
            console.print(
                "[bold red]No terminal available.[/] "
                "Run [bold]devinit --yes[/] to accept the defaults."
            )
            sys.exit(1)
        model = run_checklist(model, console=console)
        answers = InteractiveAnswers()

    selection = model.result()
    if selection is None:
        console.print("[yellow]Setup cancelled.[/]")
        return

    plan = build(selection, snapshot, config)
    if plan.is_empty:
        console.print("[dim]Nothing selected.[/]")

    console.print()
    runner = ExecutionRunner(plan, prober, answers, config=config, console=console)
    report = runner.run()
    render_report(report, console)
    if report.exit_code:
        sys.exit(report.exit_code)


def register_setup_commands(main: click.Group) -> None:
    """Register the setup command on the main CLI group."""

    @main.command()
    @setup_options
    def setup(**options):
        """Choose what to set up, then install and configure it."""
        run_setup(**options)
