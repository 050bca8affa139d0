"""
devinit CLI — bootstrap a development machine.

The main Click group is defined here and all subcommands are
registered via register functions. Running ``devinit`` with no
subcommand behaves like ``devinit setup``.

Entry point: devinit.cli:main
"""

from __future__ import annotations

import click

from .. import __version__
from ._common import setup_options


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="devinit")
@setup_options
@click.pass_context
def main(ctx: click.Context, **options):
    """devinit — pick your tools, then install and sign in to them."""
    if ctx.invoked_subcommand is None:
        from .setup import run_setup

        run_setup(**options)


# ---------------------------------------------------------------------------
# Register all commands from modular files
# ---------------------------------------------------------------------------

from .setup import register_setup_commands
from .status import register_status_commands

register_setup_commands(main)
register_status_commands(main)
