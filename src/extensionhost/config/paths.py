"""Platform-aware configuration path resolution.

Handles config file locations for:
- Windows: %PROGRAMDATA% (system), %APPDATA% (user)
- Unix: /etc/ (system), ~/.config/extensionhost/ or ~/.extensionhost/ (user)
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

CONFIG_FILENAME = "config.yaml"
SHARED_STATE_FILENAME = "shared-state.yaml"
APP_NAME = "extensionhost"
SHORT_NAME = ".extensionhost"


def get_system_config_path() -> Path | None:
    """Get system-level config path.

    Returns:
        Path to system config file, or None if not determinable.
        The file may not exist.
    """
    if sys.platform == "win32":
        program_data = os.environ.get("PROGRAMDATA")
        if program_data:
            return Path(program_data) / APP_NAME / CONFIG_FILENAME
        return None
    return Path("/etc") / APP_NAME / CONFIG_FILENAME


def get_user_config_dir() -> Path | None:
    """Get the directory holding per-user configuration and state."""
    if sys.platform == "win32":
        app_data = os.environ.get("APPDATA")
        if app_data:
            return Path(app_data) / APP_NAME
        return None

    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        return Path(xdg_config) / APP_NAME

    home = Path.home()
    xdg_default = home / ".config"
    if xdg_default.exists():
        return xdg_default / APP_NAME

    return home / SHORT_NAME


def get_user_config_path() -> Path | None:
    """Get user-level config path (may not exist)."""
    user_dir = get_user_config_dir()
    if user_dir is None:
        return None
    return user_dir / CONFIG_FILENAME


def get_shared_state_path() -> Path | None:
    """Get the default file used to share desired state between processes."""
    user_dir = get_user_config_dir()
    if user_dir is None:
        return None
    return user_dir / SHARED_STATE_FILENAME


def get_config_paths(config_path: str | Path | None = None) -> list[Path]:
    """Get all config paths in priority order (lowest to highest).

    Args:
        config_path: Optional explicit config file, merged last.

    Returns:
        List of config paths in order: system, user, explicit.
    """
    paths: list[Path] = []

    system_path = get_system_config_path()
    if system_path:
        paths.append(system_path)

    user_path = get_user_config_path()
    if user_path:
        paths.append(user_path)

    if config_path:
        paths.append(Path(config_path))

    return paths
