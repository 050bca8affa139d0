"""Shared test fixtures for devinit."""

from __future__ import annotations

import io
import logging
from typing import Optional, Sequence

import pytest
from rich.console import Console

from devinit.errors import ActionFailed
from devinit.models import ProbeSnapshot
from devinit.package_managers import Detection, PackageManager
from devinit.probe import CapabilityProber


class FakeManager(PackageManager):
    """Package manager that records installs instead of running them.

    Args:
        name: Manager name reported to the runner.
        fail: Raise ActionFailed on every install.
        provides: Set to add installed binaries to (simulates PATH changes).
    """

    def __init__(self, name: str = "apt", fail: bool = False, provides: Optional[set] = None):
        self.name = name
        self.binary = name
        self.fail = fail
        self.provides = provides
        self.installed: list[list[str]] = []

    def install_command(self, packages: Sequence[str]) -> list[str]:
        return [self.name, "install", *packages]

    def install(self, packages: Sequence[str]) -> None:
        self.installed.append(list(packages))
        if self.fail:
            raise ActionFailed(f"{self.name} install", "exit code 1")
        if self.provides is not None:
            self.provides.update(packages)


class FakeHost:
    """Mutable host state behind a real CapabilityProber."""

    def __init__(self, tools=(), primary: Optional[PackageManager] = None,
                 system: Optional[PackageManager] = None, in_container: bool = False,
                 tailscale_connected: bool = False):
        self.tools = set(tools)
        self.primary = primary
        self.system = system
        self.in_container = in_container
        self.tailscale = tailscale_connected
        self.detect_calls: list[bool] = []

    def detect(self, include_devbox: bool = True) -> Detection:
        self.detect_calls.append(include_devbox)
        if include_devbox and self.primary is not None:
            return Detection(self.primary)
        return Detection(self.system)

    def prober(self) -> CapabilityProber:
        return CapabilityProber(
            which=lambda tool: tool in self.tools,
            container_check=lambda: self.in_container,
            detector=self.detect,
            tailscale_check=lambda: self.tailscale,
        )


@pytest.fixture
def console() -> Console:
    """Rich console writing to a buffer."""
    return Console(file=io.StringIO(), width=120, force_terminal=False)


@pytest.fixture
def bare_snapshot() -> ProbeSnapshot:
    """A host with nothing installed, outside a container."""
    return ProbeSnapshot(
        tools={t: False for t in ("git", "gh", "op", "chezmoi", "devbox", "tailscale")},
    )


@pytest.fixture
def host() -> FakeHost:
    """Fresh fake host with an apt system manager and no tools."""
    return FakeHost(system=FakeManager("apt"))


@pytest.fixture(autouse=True)
def _reset_devinit_logging():
    """Drop handlers installed by setup_logging so streams don't leak between tests."""
    yield
    logger = logging.getLogger("devinit")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
