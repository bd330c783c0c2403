"""XDG Base Directory Specification utilities."""

import os
from pathlib import Path


def get_xdg_config_home() -> Path:
    """Get the XDG_CONFIG_HOME directory.

    Returns:
        Path to the XDG config directory. Falls back to ~/.config if not set.
    """
    xdg_config_home = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config_home:
        return Path(xdg_config_home)
    return Path.home() / ".config"


def get_keyman_config_dir() -> Path:
    """Get the keyman configuration directory.

    This is also where the key record lives unless configured otherwise.
    """
    return get_xdg_config_home() / "keyman"
