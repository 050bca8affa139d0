"""Tests for the 1Password credential source."""

from __future__ import annotations

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from devinit.config import InitConfig
from devinit.credentials import CredentialSource
from devinit.errors import CredentialUnavailable

REF = "op://Developer/GitHub Personal Access Token/token"


def _completed(returncode=0, stdout="", stderr="") -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess(["op"], returncode, stdout, stderr)


@pytest.fixture
def source() -> CredentialSource:
    return CredentialSource(InitConfig())


class TestReadSecret:
    """Tests for read_secret()."""

    @patch("devinit.credentials.is_command_available", return_value=True)
    @patch("devinit.credentials.subprocess.run")
    def test_returns_stripped_value(self, mock_run, mock_avail, source) -> None:
        """The secret is returned without trailing newline."""
        mock_run.return_value = _completed(stdout="ghp_abc\n")
        assert source.read_secret(REF) == "ghp_abc"
        assert mock_run.call_args.args[0] == ["op", "read", REF]

    @patch("devinit.credentials.is_command_available", return_value=False)
    def test_no_op_binary(self, mock_avail, source) -> None:
        """Missing op CLI is unreachable."""
        with pytest.raises(CredentialUnavailable) as exc:
            source.read_secret(REF)
        assert exc.value.reason == "unreachable"

    @patch("devinit.credentials.is_command_available", return_value=True)
    @patch("devinit.credentials.subprocess.run")
    def test_not_found(self, mock_run, mock_avail, source) -> None:
        """Unknown item maps to not_found."""
        mock_run.return_value = _completed(
            1, stderr='[ERROR] "GitHub Personal Access Token" isn\'t an item in the vault')
        with pytest.raises(CredentialUnavailable) as exc:
            source.read_secret(REF)
        assert exc.value.reason == "not_found"
        assert exc.value.reference == REF

    @patch("devinit.credentials.is_command_available", return_value=True)
    @patch("devinit.credentials.subprocess.run")
    def test_not_signed_in(self, mock_run, mock_avail, source) -> None:
        """Other op errors are unreachable."""
        mock_run.return_value = _completed(1, stderr="[ERROR] You are not currently signed in.")
        with pytest.raises(CredentialUnavailable) as exc:
            source.read_secret(REF)
        assert exc.value.reason == "unreachable"

    @patch("devinit.credentials.is_command_available", return_value=True)
    @patch("devinit.credentials.subprocess.run")
    def test_empty(self, mock_run, mock_avail, source) -> None:
        """Blank output is empty."""
        mock_run.return_value = _completed(stdout="  \n")
        with pytest.raises(CredentialUnavailable) as exc:
            source.read_secret(REF)
        assert exc.value.reason == "empty"

    @patch("devinit.credentials.is_command_available", return_value=True)
    @patch("devinit.credentials.subprocess.run",
           side_effect=subprocess.TimeoutExpired(["op"], 60))
    def test_timeout(self, mock_run, mock_avail, source) -> None:
        """A hung op call is unreachable."""
        with pytest.raises(CredentialUnavailable) as exc:
            source.read_secret(REF)
        assert exc.value.reason == "unreachable"


class TestConfiguredReferences:
    """Tests for the convenience readers."""

    def test_uses_configured_refs(self) -> None:
        """github_token/tailscale_authkey read the configured references."""
        cfg = InitConfig(github_token_ref="op://a/b/c", tailscale_authkey_ref="op://d/e/f")
        source = CredentialSource(cfg)
        with patch.object(source, "read_secret", return_value="x") as mock_read:
            source.github_token()
            source.tailscale_authkey()
        assert [c.args[0] for c in mock_read.call_args_list] == ["op://a/b/c", "op://d/e/f"]


class TestCredentialUnavailable:
    """Tests for the error type itself."""

    def test_rejects_unknown_reason(self) -> None:
        """Only the three documented reasons are allowed."""
        with pytest.raises(ValueError):
            CredentialUnavailable(REF, "expired")
