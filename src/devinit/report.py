"""
Final summary of a run, with the commands to finish skipped steps by hand.

Three outcomes:
  - complete                    every step succeeded
  - complete with N warning(s)  the run finished but steps were skipped/failed
  - aborted                     bootstrap failed or a shell restart is needed
"""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .runner import AbortReason, RunReport, StepStatus

STATUS_LABELS = {
    StepStatus.SUCCEEDED: "[green]done[/]",
    StepStatus.FAILED: "[red]failed[/]",
    StepStatus.SKIPPED: "[yellow]skipped[/]",
}


def headline(report: RunReport) -> str:
    """One-line verdict for the run."""
    if report.outcome == "aborted":
        if report.abort_reason == AbortReason.RESTART_REQUIRED:
            return "Setup aborted: restart your shell and run devinit again"
        if report.abort_reason == AbortReason.CANCELLED:
            return "Setup cancelled"
        return "Setup aborted"
    count = len(report.warnings)
    if count:
        return f"Setup complete with {count} warning{'s' if count != 1 else ''}"
    return "Setup complete"


def steps_table(report: RunReport) -> Table:
    table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
    table.add_column("Step", style="bold")
    table.add_column("Status")
    table.add_column("Detail", style="dim")
    for step in report.steps:
        detail = step.message
        if step.used_fallback:
            detail = f"{detail} (fallback)".strip()
        table.add_row(escape(step.title), STATUS_LABELS[step.status], escape(detail))
    return table


def render_report(report: RunReport, console: Console) -> None:
    """Print the summary panel, the step table and any manual commands."""
    outcome = report.outcome
    border = {"success": "green", "partial": "yellow", "aborted": "red"}[outcome]

    lines = [f"[bold]{headline(report)}[/]"]
    if report.package_manager:
        lines.append(f"Package manager: [cyan]{report.package_manager}[/]")
    for note in report.notes:
        lines.append(f"[dim]{escape(note)}[/]")

    console.print()
    console.print(Panel("\n".join(lines), title="devinit", border_style=border, padding=(1, 3)))

    if report.steps:
        console.print()
        console.print(steps_table(report))

    manual = [s for s in report.warnings if s.remediation]
    if manual:
        console.print()
        console.print("  [bold]Finish these by hand:[/]")
        for step in manual:
            console.print(f"    {step.title}: [cyan]{escape(step.remediation)}[/]")
    console.print()
