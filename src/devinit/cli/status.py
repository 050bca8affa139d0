"""Read-only commands: status, plan."""

from __future__ import annotations

import click
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from ._common import (
    config_options,
    config_overrides,
    console,
    load_config_or_exit,
    selection_options,
    selection_overrides,
)
from ..models import DependencyStatus, Option
from ..plan import ExecutionPlan, StepKind, build
from ..probe import CapabilityProber
from ..selection import Event, SelectionModel


def dependency_table(dependencies: list[DependencyStatus]) -> Table:
    table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
    table.add_column("Tool", style="bold")
    table.add_column("Command", style="cyan")
    table.add_column("Status")
    for dep in dependencies:
        status = "[green]✓ Available[/]" if dep.available else "[red]✗ Missing[/]"
        table.add_row(f"{dep.icon} {dep.name}", dep.command, status)
    return table


def options_table(options: list[Option]) -> Table:
    table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
    table.add_column("Default")
    table.add_column("Key", style="cyan", no_wrap=True)
    table.add_column("Option", style="bold")
    table.add_column("Description", style="dim")
    for opt in options:
        mark = f"[green]{escape('[x]')}[/]" if opt.enabled else f"[dim]{escape('[ ]')}[/]"
        table.add_row(mark, opt.key.value, opt.label, escape(opt.description))
    return table


def plan_table(plan: ExecutionPlan, manager: str) -> Table:
    """Steps in order, with packages resolved for ``manager``."""
    table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
    table.add_column("#", style="dim")
    table.add_column("Step", style="bold")
    table.add_column("Kind", style="cyan")
    table.add_column("Detail")
    for i, step in enumerate(plan, 1):
        if step.kind == StepKind.INSTALL:
            names = plan.name_map.resolve_all(list(step.packages), manager)
            detail = f"{manager}: {', '.join(names)}"
        elif step.kind == StepKind.BOOTSTRAP:
            detail = "install devbox" if step.install_devbox else f"use {manager}"
        else:
            detail = f"needs {', '.join(step.requires)}"
        table.add_row(str(i), step.title, step.kind.value, escape(detail))
    return table


def register_status_commands(main: click.Group) -> None:
    """Register the read-only status/plan commands on the main CLI group."""

    @main.command()
    def status():
        """Show installed tools and the default checklist choices."""
        prober = CapabilityProber()
        snapshot = prober.snapshot()
        model = SelectionModel.initialize(prober.dependency_statuses(), snapshot)

        console.print()
        console.print(
            Panel(
                dependency_table(list(model.dependencies)),
                title="System Dependencies Status",
                border_style="bright_magenta",
            )
        )
        if snapshot.in_container:
            console.print("  [yellow]Running inside a container.[/]")
        console.print()
        console.print("  [bold]Default options:[/]")
        console.print(options_table(list(model.options)))
        console.print()

    @main.command()
    @config_options
    @selection_options
    def plan(config_path, github_token, tailscale_authkey, use_service_account,
             dotfiles_user, enable, disable):
        """Show the steps setup would run with the defaults, without running them."""
        overrides = config_overrides(github_token, tailscale_authkey, use_service_account,
                                     dotfiles_user)
        config = load_config_or_exit(config_path, overrides)
        choices = selection_overrides(enable, disable)

        prober = CapabilityProber()
        snapshot = prober.snapshot()
        model = SelectionModel.initialize(prober.dependency_statuses(), snapshot)
        model, _ = model.with_overrides(choices).handle_input(Event.CONFIRM)
        execution_plan = build(model.result(), snapshot, config)

        if execution_plan.is_empty:
            console.print("[dim]Nothing to do.[/]")
            return

        bootstrap = execution_plan.steps[0]
        if bootstrap.kind == StepKind.BOOTSTRAP and bootstrap.install_devbox:
            manager = "devbox"
        else:
            manager = snapshot.package_manager or "none"

        console.print()
        console.print(plan_table(execution_plan, manager))
        console.print()
