"""Thin subprocess helpers shared by package managers and authenticators."""

from __future__ import annotations

import logging
import shlex
import shutil
import subprocess
from typing import Optional, Sequence

from .errors import ActionFailed

logger = logging.getLogger("devinit.commands")


def is_command_available(name: str) -> bool:
    """Check if a binary is on PATH."""
    return shutil.which(name) is not None


def format_command(cmd: Sequence[str]) -> str:
    """Render a command the way a user would type it."""
    return shlex.join(cmd)


def run_command(
    cmd: Sequence[str],
    input: Optional[str] = None,
    interactive: bool = False,
    env: Optional[dict[str, str]] = None,
    display: Optional[str] = None,
) -> None:
    """Run an external command, streaming its output to the terminal.

    Args:
        cmd: Command and arguments.
        input: Text fed to the command's stdin.
        interactive: Leave stdin attached to the terminal.
        env: Full environment for the child, or None to inherit.
        display: Text used for logs and errors instead of the command line
            (keeps secrets out of both).

    Raises:
        ActionFailed: If the command cannot start or exits non-zero.
    """
    display = display or format_command(cmd)
    logger.info("Running: %s", display)
    try:
        result = subprocess.run(
            list(cmd),
            input=input,
            stdin=None if interactive or input is not None else subprocess.DEVNULL,
            text=True,
            env=env,
        )
    except OSError as exc:
        raise ActionFailed(display, str(exc)) from exc
    if result.returncode != 0:
        raise ActionFailed(display, f"exit code {result.returncode}")


def capture_command(cmd: Sequence[str], timeout: int = 10) -> subprocess.CompletedProcess:
    """Run a short read-only command and capture its output.

    Args:
        cmd: Command and arguments.
        timeout: Seconds before giving up.

    Returns:
        CompletedProcess with stdout/stderr as text.

    Raises:
        OSError: If the binary cannot be executed.
        subprocess.TimeoutExpired: If the command hangs.
    """
    return subprocess.run(
        list(cmd), capture_output=True, text=True, timeout=timeout,
    )
