"""
Reads secrets from 1Password via ``op read``.

Failures are reported as ``CredentialUnavailable`` with one of three
reasons so the runner can explain what went wrong:

  - ``unreachable``: the ``op`` CLI is missing, not signed in, or offline
  - ``not_found``:   the reference does not resolve to an item/field
  - ``empty``:       the field exists but holds nothing
"""

from __future__ import annotations

import logging
import subprocess

from .commands import is_command_available
from .config import InitConfig
from .errors import CredentialUnavailable

logger = logging.getLogger("devinit.credentials")

NOT_FOUND_MARKERS = ("isn't an item", "not found", "no item", "could not find")


class CredentialSource:
    """1Password-backed secret reader.

    Args:
        config: Run configuration (for the configured references).
        timeout: Seconds to wait for ``op read``.
    """

    def __init__(self, config: InitConfig, timeout: int = 60):
        self.config = config
        self.timeout = timeout

    def read_secret(self, reference: str) -> str:
        """Fetch one secret by its ``op://`` reference.

        Raises:
            CredentialUnavailable: If the secret cannot be read.
        """
        if not is_command_available("op"):
            raise CredentialUnavailable(reference, "unreachable", "op CLI not found")

        logger.info("Reading secret %s", reference)
        try:
            result = subprocess.run(
                ["op", "read", reference],
                capture_output=True, text=True, timeout=self.timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            raise CredentialUnavailable(reference, "unreachable", str(exc)) from exc

        if result.returncode != 0:
            stderr = result.stderr.strip()
            reason = (
                "not_found"
                if any(m in stderr.lower() for m in NOT_FOUND_MARKERS)
                else "unreachable"
            )
            raise CredentialUnavailable(reference, reason, stderr)

        value = result.stdout.strip()
        if not value:
            raise CredentialUnavailable(reference, "empty")
        return value

    def github_token(self) -> str:
        """GitHub personal access token from the configured reference."""
        return self.read_secret(self.config.github_token_ref)

    def tailscale_authkey(self) -> str:
        """Tailscale auth key from the configured reference."""
        return self.read_secret(self.config.tailscale_authkey_ref)
