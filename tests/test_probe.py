"""Tests for capability probing."""

from __future__ import annotations

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from conftest import FakeHost, FakeManager
from devinit.probe import CapabilityProber, TRACKED_TOOLS, detect_container, tailscale_connected


class TestDetectContainer:
    """Tests for detect_container()."""

    @pytest.fixture(autouse=True)
    def _clean_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for var in ("DOCKER_CONTAINER", "KUBERNETES_SERVICE_HOST", "container"):
            monkeypatch.delenv(var, raising=False)

    def test_plain_host(self, tmp_path: Path) -> None:
        """No markers: not a container."""
        assert detect_container(tmp_path) is False

    def test_dockerenv(self, tmp_path: Path) -> None:
        """/.dockerenv marks a container."""
        (tmp_path / ".dockerenv").touch()
        assert detect_container(tmp_path) is True

    @pytest.mark.parametrize("marker", ["docker", "lxc", "containerd"])
    def test_cgroup_markers(self, tmp_path: Path, marker: str) -> None:
        """Container runtimes in /proc/1/cgroup are detected."""
        cgroup = tmp_path / "proc" / "1" / "cgroup"
        cgroup.parent.mkdir(parents=True)
        cgroup.write_text(f"0::/{marker}/abc123\n")
        assert detect_container(tmp_path) is True

    def test_env_var(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Kubernetes env var marks a container."""
        monkeypatch.setenv("KUBERNETES_SERVICE_HOST", "10.0.0.1")
        assert detect_container(tmp_path) is True


class TestTailscaleConnected:
    """Tests for tailscale_connected()."""

    @patch("devinit.probe.is_command_available", return_value=False)
    def test_not_installed(self, mock_avail: MagicMock) -> None:
        """No binary, not connected."""
        assert tailscale_connected() is False

    @patch("devinit.probe.is_command_available", return_value=True)
    @patch("devinit.probe.capture_command")
    def test_logged_out(self, mock_cap: MagicMock, mock_avail: MagicMock) -> None:
        """'Logged out' means not connected."""
        mock_cap.return_value = subprocess.CompletedProcess([], 0, "Logged out.\n", "")
        assert tailscale_connected() is False

    @patch("devinit.probe.is_command_available", return_value=True)
    @patch("devinit.probe.capture_command")
    def test_connected(self, mock_cap: MagicMock, mock_avail: MagicMock) -> None:
        """A peer listing means connected."""
        mock_cap.return_value = subprocess.CompletedProcess(
            [], 0, "100.64.0.1  laptop  user@  linux  -\n", "")
        assert tailscale_connected() is True

    @patch("devinit.probe.is_command_available", return_value=True)
    @patch("devinit.probe.capture_command", side_effect=subprocess.TimeoutExpired("tailscale", 5))
    def test_timeout(self, mock_cap: MagicMock, mock_avail: MagicMock) -> None:
        """A hanging status call counts as not connected."""
        assert tailscale_connected() is False


class TestCapabilityProber:
    """Tests for CapabilityProber caching and snapshots."""

    def test_probe_is_cached(self) -> None:
        """Repeated probes hit the host once."""
        which = MagicMock(return_value=True)
        prober = CapabilityProber(which=which)
        assert prober.probe("git") is True
        assert prober.probe("git") is True
        which.assert_called_once_with("git")

    def test_refresh_clears_cache(self) -> None:
        """After refresh the host is asked again."""
        host = FakeHost(system=FakeManager("apt"))
        prober = host.prober()
        assert prober.probe("gh") is False
        host.tools.add("gh")
        assert prober.probe("gh") is False
        prober.refresh()
        assert prober.probe("gh") is True

    def test_system_detection_excludes_devbox(self) -> None:
        """detect_system_package_manager never returns devbox."""
        host = FakeHost(primary=FakeManager("devbox"), system=FakeManager("apt"))
        prober = host.prober()
        assert prober.probe_package_manager().name == "devbox"
        assert prober.detect_system_package_manager().name == "apt"
        assert host.detect_calls == [True, False]

    def test_snapshot(self) -> None:
        """Snapshot freezes tools, container, manager and tailscale state."""
        host = FakeHost(tools={"git", "tailscale"}, system=FakeManager("pacman"),
                        in_container=True, tailscale_connected=True)
        snap = host.prober().snapshot()
        assert snap.has("git") is True
        assert snap.has("gh") is False
        assert snap.in_container is True
        assert snap.package_manager == "pacman"
        assert snap.tailscale_connected is True

    def test_dependency_statuses(self) -> None:
        """One row per tracked tool plus the package manager."""
        host = FakeHost(tools={"git"})
        rows = host.prober().dependency_statuses()
        assert len(rows) == len(TRACKED_TOOLS) + 1
        assert rows[0].available is True
        assert rows[-1].name == "Package Manager (none)"
        assert rows[-1].available is False
