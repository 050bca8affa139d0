"""
devinit — interactive development-environment bootstrap.

Pick what to install from a checklist, then let the runner set up
the package manager, install the tools, and sign you in.
"""

__version__ = "0.1.0"

CONFIG_ENV_VAR = "DEVINIT_CONFIG"
DEFAULT_CONFIG_PATH = "~/.config/devinit/config.yaml"
