"""
Authenticators, one per tool that needs a login or first-run setup.

Each ``authenticate()`` either returns normally or raises
``ActionFailed`` / ``CredentialUnavailable``. None of them decide
whether they should run; the runner gates them on tool presence.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from .config import InitConfig
from .errors import CredentialUnavailable
from .commands import run_command
from .prompts import AnswerSource

logger = logging.getLogger("devinit.auth")

SERVICE_ACCOUNT_ENV = "OP_SERVICE_ACCOUNT_TOKEN"

CHEZMOI_SERVICE_CONFIG = '[onepassword]\nmode = "service"\n'


class OnePasswordLogin:
    """Sign in to 1Password, interactively or with a service account."""

    def __init__(self, config: InitConfig, answers: AnswerSource):
        self.config = config
        self.answers = answers

    def authenticate(self) -> None:
        if self.config.use_service_account:
            self._ensure_service_account_token()
            return
        run_command(["op", "signin", "--force"], interactive=True)

    def _ensure_service_account_token(self) -> None:
        """Make sure OP_SERVICE_ACCOUNT_TOKEN is set for us and our children.

        Raises:
            CredentialUnavailable: If no token is in the environment and
                none was entered.
        """
        if os.environ.get(SERVICE_ACCOUNT_ENV):
            logger.info("Using 1Password service account token from environment")
            return

        token = self.answers.secret("1Password service account token")
        if not token:
            raise CredentialUnavailable(SERVICE_ACCOUNT_ENV, "empty", "no token provided")
        os.environ[SERVICE_ACCOUNT_ENV] = token
        logger.info("Service account token set for this run")


class GitHubAuthenticator:
    """Log the GitHub CLI in with a token and wire it into git."""

    def authenticate(self, token: str) -> None:
        run_command(["gh", "auth", "login", "--with-token"], input=token)
        run_command(["gh", "auth", "setup-git"])


class ChezmoiInitializer:
    """Clone and apply the user's dotfiles with chezmoi.

    Args:
        config: Run configuration.
        home: Home directory override (for tests).
    """

    def __init__(self, config: InitConfig, home: Optional[Path] = None):
        self.config = config
        self.home = home or Path.home()

    @property
    def config_file(self) -> Path:
        return self.home / ".config" / "chezmoi" / "chezmoi.toml"

    def authenticate(self) -> None:
        if self.config.use_service_account:
            self.write_service_config()
        run_command(
            ["chezmoi", "init", "--apply", self.config.dotfiles_user],
            interactive=True,
        )

    def write_service_config(self) -> Path:
        """Point chezmoi's 1Password integration at service-account mode."""
        self.config_file.parent.mkdir(parents=True, exist_ok=True)
        self.config_file.write_text(CHEZMOI_SERVICE_CONFIG)
        logger.info("Wrote %s", self.config_file)
        return self.config_file


class TailscaleConnector:
    """Join the tailnet with a pre-issued auth key."""

    def authenticate(self, authkey: str) -> None:
        run_command(
            ["tailscale", "up", "--authkey", authkey],
            interactive=True,
            display="tailscale up --authkey ****",
        )
