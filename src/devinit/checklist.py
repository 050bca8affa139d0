"""
Terminal checklist — draws a SelectionModel with Rich and feeds it keys.

Top half: read-only dependency status. Bottom half: the options, with
the row under the cursor highlighted and its description expanded.
"""

from __future__ import annotations

from typing import Callable, Optional

import readchar
from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .selection import HELP_TEXT, Command, Event, Resize, SelectionModel

KEY_BINDINGS: dict[str, Event] = {
    readchar.key.UP: Event.MOVE_UP,
    "k": Event.MOVE_UP,
    readchar.key.DOWN: Event.MOVE_DOWN,
    "j": Event.MOVE_DOWN,
    readchar.key.SPACE: Event.TOGGLE,
    readchar.key.ENTER: Event.CONFIRM,
    readchar.key.LF: Event.CONFIRM,
    "q": Event.QUIT,
    readchar.key.ESC: Event.QUIT,
    readchar.key.CTRL_C: Event.QUIT,
}


def key_to_event(key: str) -> Optional[Event]:
    """Map a raw keypress to a checklist event, or None if unbound."""
    return KEY_BINDINGS.get(key)


def build_view(model: SelectionModel) -> Group:
    """Rich renderable for the current checklist state."""
    deps = Table(show_header=False, box=None, padding=(0, 2))
    deps.add_column("Tool")
    deps.add_column("Status")
    for dep in model.dependencies:
        status = "[green]✓ Available[/]" if dep.available else "[red]✗ Missing[/]"
        deps.add_row(f"{dep.icon} {dep.name}", status)

    options = Table(show_header=False, box=None, padding=(0, 1))
    options.add_column("Row")
    for i, opt in enumerate(model.options):
        checkbox = "[x]" if opt.enabled else "[ ]"
        if i == model.cursor:
            options.add_row(Text(f"▶ {checkbox} {opt.label}", style="bold bright_magenta"))
            options.add_row(Text(f"      {opt.description}", style="dim italic"))
        else:
            options.add_row(Text(f"  {checkbox} {opt.label}"))

    return Group(
        Text("🚀 devinit - Interactive Setup", style="bold bright_magenta"),
        Text(),
        Panel(deps, title="📊 System Dependencies Status", border_style="bright_magenta",
              padding=(1, 2)),
        Panel(options, title="⚙️  Configuration Options", border_style="cyan",
              padding=(1, 2)),
        Text(HELP_TEXT, style="dim"),
    )


def run_checklist(
    model: SelectionModel,
    console: Optional[Console] = None,
    read_key: Callable[[], str] = readchar.readkey,
) -> SelectionModel:
    """Drive the checklist until the user confirms or quits.

    Args:
        model: Initial BROWSING model.
        console: Rich console to draw on.
        read_key: Blocking single-key reader.

    Returns:
        The final model, CONFIRMED or CANCELLED.
    """
    console = console or Console()
    size = console.size
    model, _ = model.handle_input(Resize(size.width, size.height))

    with Live(build_view(model), console=console, transient=True,
              auto_refresh=False) as live:
        while not model.finished:
            try:
                key = read_key()
            except KeyboardInterrupt:
                key = readchar.key.CTRL_C

            commands = []
            size = console.size
            if (size.width, size.height) != (model.width, model.height):
                model, command = model.handle_input(Resize(size.width, size.height))
                commands.append(command)

            event = key_to_event(key)
            if event is not None:
                model, command = model.handle_input(event)
                commands.append(command)

            if Command.RENDER in commands:
                live.update(build_view(model), refresh=True)

    return model
