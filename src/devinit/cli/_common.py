"""Shared utilities for all CLI command modules.

Provides the Rich console instance, the option set shared by the
group and ``setup``, and small helpers for config and selection flags.
"""

from __future__ import annotations

import sys
from typing import Any, Callable, Iterable, Optional

import click
from rich.console import Console
from rich.markup import escape

from ..config import InitConfig, load_config
from ..errors import ConfigError
from ..models import OptionKey

console = Console()

OPTION_KEYS = [key.value for key in OptionKey]


def config_options(func: Callable) -> Callable:
    """Flags that feed ``InitConfig``."""
    decorators = [
        click.option("--config", "config_path", type=click.Path(dir_okay=False),
                     default=None, help="Config file (default: $DEVINIT_CONFIG or "
                     "~/.config/devinit/config.yaml)."),
        click.option("--github-token", "github_token", metavar="REF", default=None,
                     help="1Password reference for the GitHub token."),
        click.option("--tailscale-authkey", "tailscale_authkey", metavar="REF", default=None,
                     help="1Password reference for the Tailscale auth key."),
        click.option("--use-service-account", is_flag=True, default=False,
                     help="Authenticate 1Password with OP_SERVICE_ACCOUNT_TOKEN."),
        click.option("--dotfiles-user", metavar="USER", default=None,
                     help="GitHub user whose dotfiles chezmoi applies."),
    ]
    for decorator in reversed(decorators):
        func = decorator(func)
    return func


def selection_options(func: Callable) -> Callable:
    """``--enable`` / ``--disable`` overrides for the checklist defaults."""
    decorators = [
        click.option("--enable", multiple=True, type=click.Choice(OPTION_KEYS),
                     metavar="KEY", help="Turn an option on (repeatable)."),
        click.option("--disable", multiple=True, type=click.Choice(OPTION_KEYS),
                     metavar="KEY", help="Turn an option off (repeatable)."),
    ]
    for decorator in reversed(decorators):
        func = decorator(func)
    return func


def setup_options(func: Callable) -> Callable:
    """Every flag accepted by ``devinit`` and ``devinit setup``."""
    decorators = [
        click.option("--yes", "-y", is_flag=True, default=False,
                     help="Accept the defaults without showing the checklist."),
        click.option("--accept-fallback/--decline-fallback", default=False,
                     help="Answer to fallback offers in --yes mode."),
        click.option("--verbose", "-v", is_flag=True, default=False, help="Log at INFO."),
        click.option("--debug", is_flag=True, default=False, help="Log at DEBUG."),
    ]
    func = selection_options(config_options(func))
    for decorator in reversed(decorators):
        func = decorator(func)
    return func


def config_overrides(
    github_token: Optional[str] = None,
    tailscale_authkey: Optional[str] = None,
    use_service_account: bool = False,
    dotfiles_user: Optional[str] = None,
) -> dict[str, Any]:
    """CLI flag values keyed by ``InitConfig`` field; unset flags are None."""
    return {
        "github_token_ref": github_token,
        "tailscale_authkey_ref": tailscale_authkey,
        "use_service_account": True if use_service_account else None,
        "dotfiles_user": dotfiles_user,
    }


def load_config_or_exit(config_path: Optional[str], overrides: dict[str, Any]) -> InitConfig:
    """Load config, printing the error and exiting 1 if it is invalid."""
    try:
        return load_config(config_path, overrides)
    except ConfigError as exc:
        console.print(f"[bold red]Configuration error:[/] {escape(str(exc))}")
        sys.exit(1)


def selection_overrides(enable: Iterable[str], disable: Iterable[str]) -> dict[str, bool]:
    """Merge ``--enable`` / ``--disable`` into one mapping.

    Raises:
        click.BadParameter: If a key is both enabled and disabled.
    """
    enable, disable = set(enable), set(disable)
    both = sorted(enable & disable)
    if both:
        raise click.BadParameter(
            f"{', '.join(both)} given to both --enable and --disable",
            param_hint="--enable/--disable",
        )
    overrides = {key: True for key in enable}
    overrides.update({key: False for key in disable})
    return overrides
