"""
Package-manager handles, one variant per supported manager.

The runner only talks to the ``PackageManager`` interface. Which variant
it gets is decided once by ``detect_package_manager()``:

  - devbox first (when allowed and on PATH)
  - macOS: brew
  - Linux: apt-get, pacman, dnf, yum (in that order)

Apt needs extra work for tools that are not in the stock archive
(GitHub CLI and 1Password CLI need their vendor repositories, chezmoi
uses its official installer).
"""

from __future__ import annotations

import logging
import platform
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Sequence

import requests

from .commands import format_command, is_command_available, run_command
from .errors import ActionFailed

logger = logging.getLogger("devinit.package_managers")

DEVBOX_INSTALLER_URL = "https://get.jetify.com/devbox"
DEVBOX_SHELLENV_HINT = 'eval "$(devbox global shellenv --init-hook)"'


class PackageManager(ABC):
    """Install capability backed by one system package manager."""

    name: str = ""
    binary: str = ""

    def is_available(self) -> bool:
        """Whether the manager's binary is on PATH."""
        return is_command_available(self.binary)

    @abstractmethod
    def install_command(self, packages: Sequence[str]) -> list[str]:
        """The command that installs ``packages`` in one invocation."""

    def install(self, packages: Sequence[str]) -> None:
        """Install all ``packages`` in a single invocation.

        Raises:
            ActionFailed: If the manager exits non-zero.
        """
        if not packages:
            return
        run_command(self.install_command(packages))

    def manual_command(self, packages: Sequence[str]) -> str:
        """Command line a user can run by hand to do the same thing."""
        return format_command(self.install_command(packages))

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


class DevboxManager(PackageManager):
    name = "devbox"
    binary = "devbox"

    def install_command(self, packages: Sequence[str]) -> list[str]:
        return ["devbox", "global", "add", *packages]


class BrewManager(PackageManager):
    name = "brew"
    binary = "brew"

    def install_command(self, packages: Sequence[str]) -> list[str]:
        return ["brew", "install", *packages]


class PacmanManager(PackageManager):
    name = "pacman"
    binary = "pacman"

    def install_command(self, packages: Sequence[str]) -> list[str]:
        return ["sudo", "pacman", "-S", "--noconfirm", *packages]


class DnfManager(PackageManager):
    name = "dnf"
    binary = "dnf"

    def install_command(self, packages: Sequence[str]) -> list[str]:
        return ["sudo", "dnf", "install", "-y", *packages]


class YumManager(PackageManager):
    name = "yum"
    binary = "yum"

    def install_command(self, packages: Sequence[str]) -> list[str]:
        return ["sudo", "yum", "install", "-y", *packages]


# ---------------------------------------------------------------------------
# Apt: stock archive plus vendor repositories
# ---------------------------------------------------------------------------

GH_KEYRING = "/usr/share/keyrings/githubcli-archive-keyring.gpg"
OP_KEYRING = "/usr/share/keyrings/1password-archive-keyring.gpg"

APT_REPO_SETUP = {
    "gh": [
        f"curl -fsSL https://cli.github.com/packages/githubcli-archive-keyring.gpg"
        f" | sudo dd of={GH_KEYRING}",
        f'echo "deb [arch=$(dpkg --print-architecture) signed-by={GH_KEYRING}]'
        f' https://cli.github.com/packages stable main"'
        f" | sudo tee /etc/apt/sources.list.d/github-cli.list",
    ],
    "1password-cli": [
        f"curl -sS https://downloads.1password.com/linux/keys/1password.asc"
        f" | sudo gpg --batch --yes --dearmor --output {OP_KEYRING}",
        f'echo "deb [arch=$(dpkg --print-architecture) signed-by={OP_KEYRING}]'
        f' https://downloads.1password.com/linux/debian/$(dpkg --print-architecture) stable main"'
        f" | sudo tee /etc/apt/sources.list.d/1password.list",
    ],
}

CHEZMOI_INSTALL = "curl -fsLS get.chezmoi.io | sudo sh -s -- -b /usr/local/bin"


class AptManager(PackageManager):
    """Debian/Ubuntu apt with vendor repository setup."""

    name = "apt"
    binary = "apt-get"

    def install_command(self, packages: Sequence[str]) -> list[str]:
        return ["sudo", "apt-get", "install", "-y", *packages]

    def install(self, packages: Sequence[str]) -> None:
        """Install stock packages in one batch, then the vendor-hosted ones.

        Every package is attempted; failures are collected and raised
        together at the end.

        Raises:
            ActionFailed: If any package failed to install.
        """
        standard = [p for p in packages if p not in APT_REPO_SETUP and p != "chezmoi"]
        vendored = [p for p in packages if p in APT_REPO_SETUP]
        failures: list[str] = []

        if standard:
            try:
                run_command(["sudo", "apt-get", "update"])
                run_command(self.install_command(standard))
            except ActionFailed as exc:
                failures.append(str(exc))

        if vendored or "chezmoi" in packages:
            try:
                self._ensure_prerequisites()
            except ActionFailed as exc:
                failures.append(str(exc))
                vendored = []

        for package in vendored:
            logger.info("Setting up apt repository for %s", package)
            try:
                for script in APT_REPO_SETUP[package]:
                    run_command(["bash", "-c", script])
                run_command(["sudo", "apt-get", "update"])
                run_command(self.install_command([package]))
            except ActionFailed as exc:
                failures.append(str(exc))

        if "chezmoi" in packages:
            try:
                run_command(["sh", "-c", CHEZMOI_INSTALL])
            except ActionFailed as exc:
                failures.append(str(exc))

        if failures:
            raise ActionFailed("apt install", "; ".join(failures))

    def manual_command(self, packages: Sequence[str]) -> str:
        """Hand-run equivalent of ``install``, vendor repositories included."""
        standard = [p for p in packages if p not in APT_REPO_SETUP and p != "chezmoi"]
        parts: list[str] = []
        if standard:
            parts.append(format_command(self.install_command(standard)))
        for package in packages:
            if package in APT_REPO_SETUP:
                parts.extend(APT_REPO_SETUP[package])
                parts.append("sudo apt-get update")
                parts.append(format_command(self.install_command([package])))
        if "chezmoi" in packages:
            parts.append(CHEZMOI_INSTALL)
        return " && ".join(parts)

    def _ensure_prerequisites(self) -> None:
        """Install curl/gnupg if the vendor setup scripts need them."""
        missing = []
        if not is_command_available("curl"):
            missing.append("curl")
        if not is_command_available("gpg"):
            missing.append("gnupg")
        if missing:
            run_command(["sudo", "apt-get", "update", "-qq"])
            run_command(self.install_command(missing))


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------

SYSTEM_MANAGERS: dict[str, tuple[type[PackageManager], ...]] = {
    "Darwin": (BrewManager,),
    "Linux": (AptManager, PacmanManager, DnfManager, YumManager),
}


@dataclass(frozen=True)
class Detection:
    """Outcome of package-manager detection: found(handle) or not found."""

    handle: Optional[PackageManager] = None

    @property
    def found(self) -> bool:
        return self.handle is not None

    @property
    def name(self) -> str:
        return self.handle.name if self.handle else "none"


def detect_package_manager(
    include_devbox: bool = True,
    system: Optional[str] = None,
) -> Detection:
    """Pick the package manager for this host.

    Args:
        include_devbox: Consider devbox before the system manager.
        system: Override ``platform.system()`` (for tests).

    Returns:
        Detection with the first available manager, or an empty one.
    """
    if include_devbox:
        devbox = DevboxManager()
        if devbox.is_available():
            return Detection(devbox)

    for manager_cls in SYSTEM_MANAGERS.get(system or platform.system(), ()):
        manager = manager_cls()
        if manager.is_available():
            return Detection(manager)

    logger.info("No supported package manager found")
    return Detection()


def install_devbox(timeout: int = 60) -> None:
    """Download the devbox installer and run it with bash.

    Raises:
        ActionFailed: If the download or the installer fails.
    """
    logger.info("Downloading devbox installer from %s", DEVBOX_INSTALLER_URL)
    try:
        resp = requests.get(DEVBOX_INSTALLER_URL, timeout=timeout)
        resp.raise_for_status()
    except requests.RequestException as exc:
        raise ActionFailed("download devbox installer", str(exc)) from exc
    run_command(["bash", "-s"], input=resp.text)
