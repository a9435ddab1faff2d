"""Configuration management for the extension host.

Provides hierarchical YAML-based configuration with:
- System-level config (/etc/extensionhost/ or %PROGRAMDATA%)
- User-level config (~/.config/extensionhost/ or %APPDATA%)
- An explicit config file given on the command line
- Environment variable overrides (highest priority)

Example usage:
    from extensionhost.config import ConfigDatabase, load_config

    config = load_config("my-config.yaml")
    print(config.extensions.paths)

    database = ConfigDatabase("my-config.yaml")
    general = database.get_general_config_copy()
    general.active_extensions["autolink"] = False
    database.set_general_config(general)
"""

from extensionhost.config.database import ConfigDatabase
from extensionhost.config.loader import (
    get_config,
    load_config,
    on_config_reload,
    reload_config,
    reset_config,
)
from extensionhost.config.paths import (
    get_config_paths,
    get_shared_state_path,
    get_system_config_path,
    get_user_config_path,
)
from extensionhost.config.schema import (
    Config,
    ExtensionsConfig,
    GeneralConfig,
    LoggingConfig,
)

__all__ = [
    # Main API
    "Config",
    "ConfigDatabase",
    "load_config",
    "get_config",
    "reload_config",
    "reset_config",
    "on_config_reload",
    # Schema types
    "ExtensionsConfig",
    "GeneralConfig",
    "LoggingConfig",
    # Path utilities
    "get_config_paths",
    "get_shared_state_path",
    "get_system_config_path",
    "get_user_config_path",
]
