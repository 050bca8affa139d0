"""
Read-only facts about the host.

Checks for:
  - the tools devinit can install (git, gh, op, chezmoi, devbox, tailscale)
  - whether we run inside a container
  - which package manager is available
  - whether Tailscale is already connected

Answers are cached for the run so the same question gets the same answer.
Call ``refresh()`` after something was installed to see the new state.
"""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path
from typing import Callable, Optional

from .commands import capture_command, is_command_available
from .models import DependencyStatus, ProbeSnapshot
from .package_managers import Detection, detect_package_manager

logger = logging.getLogger("devinit.probe")

# (display name, binary, icon)
TRACKED_TOOLS: tuple[tuple[str, str, str], ...] = (
    ("Git", "git", "🔧"),
    ("GitHub CLI", "gh", "🐙"),
    ("1Password CLI", "op", "🔐"),
    ("Chezmoi", "chezmoi", "🏠"),
    ("Devbox", "devbox", "📦"),
    ("Tailscale", "tailscale", "🔗"),
)

CONTAINER_ENV_VARS = ("DOCKER_CONTAINER", "KUBERNETES_SERVICE_HOST", "container")
CONTAINER_CGROUP_MARKERS = ("docker", "lxc", "containerd")


def detect_container(root: Path = Path("/")) -> bool:
    """Best-effort check for running inside a container.

    Args:
        root: Filesystem root to inspect (for tests).

    Returns:
        True if any container marker is present.
    """
    if (root / ".dockerenv").exists():
        return True

    try:
        cgroup = (root / "proc" / "1" / "cgroup").read_text()
    except OSError:
        cgroup = ""
    if any(marker in cgroup for marker in CONTAINER_CGROUP_MARKERS):
        return True

    return any(os.environ.get(var) for var in CONTAINER_ENV_VARS)


def tailscale_connected() -> bool:
    """Whether ``tailscale status`` reports a configured, logged-in node."""
    if not is_command_available("tailscale"):
        return False
    try:
        result = capture_command(["tailscale", "status"], timeout=5)
    except (OSError, subprocess.TimeoutExpired):
        return False
    if result.returncode != 0:
        return False
    output = (result.stdout + result.stderr).strip()
    return bool(output) and "Logged out" not in output


class CapabilityProber:
    """Cached, read-only view of what is installed on this host.

    Args:
        which: Presence check for a binary. Defaults to PATH lookup.
        container_check: Container detector.
        detector: Package-manager detector.
        tailscale_check: Tailscale connection check.
    """

    def __init__(
        self,
        which: Callable[[str], bool] = is_command_available,
        container_check: Callable[[], bool] = detect_container,
        detector: Callable[..., Detection] = detect_package_manager,
        tailscale_check: Callable[[], bool] = tailscale_connected,
    ):
        self._which = which
        self._container_check = container_check
        self._detector = detector
        self._tailscale_check = tailscale_check
        self._tools: dict[str, bool] = {}
        self._container: Optional[bool] = None
        self._detection: Optional[Detection] = None
        self._tailscale: Optional[bool] = None

    def probe(self, tool: str) -> bool:
        """Whether ``tool`` is on PATH."""
        if tool not in self._tools:
            self._tools[tool] = bool(self._which(tool))
            logger.debug("probe %s -> %s", tool, self._tools[tool])
        return self._tools[tool]

    def probe_container(self) -> bool:
        """Whether we are running inside a container."""
        if self._container is None:
            self._container = bool(self._container_check())
        return self._container

    def probe_package_manager(self) -> Detection:
        """Detected package manager (devbox preferred)."""
        if self._detection is None:
            self._detection = self._detector()
        return self._detection

    def detect_system_package_manager(self) -> Detection:
        """System package manager, ignoring devbox. Never cached."""
        return self._detector(include_devbox=False)

    def probe_tailscale_connected(self) -> bool:
        """Whether Tailscale is already set up."""
        if self._tailscale is None:
            self._tailscale = bool(self._tailscale_check())
        return self._tailscale

    def refresh(self) -> None:
        """Forget cached answers so the next probes hit the host again."""
        logger.debug("Refreshing probe cache")
        self._tools.clear()
        self._detection = None
        self._tailscale = None

    def dependency_statuses(self) -> list[DependencyStatus]:
        """Status rows for the checklist's read-only panel."""
        rows = [
            DependencyStatus(name=name, command=binary, available=self.probe(binary), icon=icon)
            for name, binary, icon in TRACKED_TOOLS
        ]
        detection = self.probe_package_manager()
        rows.append(DependencyStatus(
            name=f"Package Manager ({detection.name})",
            command=detection.name,
            available=detection.found,
            icon="📦",
        ))
        return rows

    def snapshot(self) -> ProbeSnapshot:
        """Freeze the current answers into a ProbeSnapshot."""
        tools = {binary: self.probe(binary) for _, binary, _ in TRACKED_TOOLS}
        detection = self.probe_package_manager()
        return ProbeSnapshot(
            tools=tools,
            in_container=self.probe_container(),
            package_manager=detection.handle.name if detection.found else None,
            tailscale_connected=self.probe_tailscale_connected(),
        )
