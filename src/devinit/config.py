"""
Run configuration: credential references and package-name overrides.

Loaded once at startup from YAML (if a file exists), then overridden by
CLI flags. The resulting ``InitConfig`` is passed explicitly to the plan
builder, the credential source and the authenticators.

Example ``~/.config/devinit/config.yaml``::

    github_token_ref: "op://Work/GitHub/token"
    use_service_account: true
    package_names:
      1password-cli:
        devbox: _1password-cli
        pacman: 1password-cli-bin
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from . import CONFIG_ENV_VAR, DEFAULT_CONFIG_PATH
from .errors import ConfigError

logger = logging.getLogger("devinit.config")

DEFAULT_GITHUB_TOKEN_REF = "op://Developer/GitHub Personal Access Token/token"
DEFAULT_TAILSCALE_AUTHKEY_REF = "op://Developer/tailscale auth key/credential"

# logical package id -> {manager name -> package name on that manager}
BUILTIN_PACKAGE_NAMES: dict[str, dict[str, str]] = {
    "1password-cli": {"devbox": "_1password-cli"},
}


class PackageNameMap(BaseModel):
    """Per-manager package name remapping.

    A logical package keeps its own id unless an override exists for the
    manager that will install it.
    """

    overrides: dict[str, dict[str, str]] = Field(default_factory=dict)

    @classmethod
    def with_defaults(cls, extra: Optional[dict[str, dict[str, str]]] = None) -> "PackageNameMap":
        """Built-in table merged with ``extra`` (extra wins)."""
        merged = {pkg: dict(names) for pkg, names in BUILTIN_PACKAGE_NAMES.items()}
        for pkg, names in (extra or {}).items():
            merged.setdefault(pkg, {}).update(names)
        return cls(overrides=merged)

    def resolve(self, package: str, manager: str) -> str:
        """Name of ``package`` on ``manager``."""
        return self.overrides.get(package, {}).get(manager, package)

    def resolve_all(self, packages: list[str], manager: str) -> list[str]:
        """Resolve a whole batch, preserving order."""
        return [self.resolve(p, manager) for p in packages]


class InitConfig(BaseModel):
    """Everything a run needs to know that is not a probe fact."""

    github_token_ref: str = DEFAULT_GITHUB_TOKEN_REF
    tailscale_authkey_ref: str = DEFAULT_TAILSCALE_AUTHKEY_REF
    use_service_account: bool = False
    dotfiles_user: str = "whexy"
    package_names: dict[str, dict[str, str]] = Field(default_factory=dict)

    @property
    def name_map(self) -> PackageNameMap:
        """Built-in remapping table merged with configured overrides."""
        return PackageNameMap.with_defaults(self.package_names)


def load_config(
    path: Optional[Path] = None,
    overrides: Optional[dict[str, Any]] = None,
) -> InitConfig:
    """Load configuration from YAML and apply CLI overrides.

    Without an explicit path, ``$DEVINIT_CONFIG`` is used, then the
    default location. A missing file there is fine and yields defaults.
    A file given explicitly (argument or environment) must exist.

    Args:
        path: Explicit config file, or None for the default location.
        overrides: Values from CLI flags. ``None`` values are ignored.

    Returns:
        InitConfig: The merged configuration.

    Raises:
        ConfigError: If the file is unreadable, not a mapping, or invalid.
    """
    if path is None and os.environ.get(CONFIG_ENV_VAR):
        path = Path(os.environ[CONFIG_ENV_VAR])
    explicit = path is not None
    config_file = Path(path or DEFAULT_CONFIG_PATH).expanduser()

    data: dict[str, Any] = {}
    if config_file.exists():
        try:
            raw = yaml.safe_load(config_file.read_text()) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigError(f"cannot read {config_file}: {exc}") from exc
        if not isinstance(raw, dict):
            raise ConfigError(f"{config_file} must contain a mapping")
        data.update(raw)
        logger.info("Loaded config from %s", config_file)
    elif explicit:
        raise ConfigError(f"config file not found: {config_file}")

    for key, value in (overrides or {}).items():
        if value is not None:
            data[key] = value

    try:
        return InitConfig(**data)
    except ValidationError as exc:
        raise ConfigError(f"invalid configuration: {exc}") from exc
