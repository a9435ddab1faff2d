"""Configuration file loading and caching.

Handles:
- YAML file parsing
- Environment variable overrides
- Config caching with reload support
- Conversion from dict to typed Config dataclass
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from pathlib import Path
from typing import Any

import yaml

from extensionhost.config.merge import merge_configs
from extensionhost.config.paths import get_config_paths
from extensionhost.config.schema import (
    Config,
    ExtensionsConfig,
    GeneralConfig,
    LoggingConfig,
)

# Module logger (may not be configured yet at import time)
_log = logging.getLogger("extensionhost.config")

_cached_config: Config | None = None

_reload_callbacks: list[Callable[[Config], None]] = []

_KNOWN_SECTIONS = {"logging", "extensions", "general"}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file, returning empty dict if not found or invalid.

    Args:
        path: Path to the YAML file.

    Returns:
        Parsed YAML as dict, or empty dict on error.
    """
    if not path.exists():
        return {}

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
            return data if isinstance(data, dict) else {}
    except yaml.YAMLError as e:
        _log.warning("Invalid YAML in %s: %s", path, e)
        return {}
    except PermissionError:
        _log.debug("Permission denied reading %s", path)
        return {}
    except OSError as e:
        _log.warning("Error reading %s: %s", path, e)
        return {}


def env_overrides() -> dict[str, Any]:
    """Build config dict from environment variables.

    EXTHOST_LOG sets the log file. EXTHOST_EXTENSIONS_PATH is a
    os.pathsep separated list of extension root directories.
    """
    overrides: dict[str, Any] = {}

    log_path = os.environ.get("EXTHOST_LOG")
    if log_path:
        overrides.setdefault("logging", {})["file"] = log_path

    extension_paths = os.environ.get("EXTHOST_EXTENSIONS_PATH")
    if extension_paths:
        overrides.setdefault("extensions", {})["paths"] = [
            p for p in extension_paths.split(os.pathsep) if p
        ]

    return overrides


def dict_to_config(data: dict[str, Any]) -> Config:
    """Convert merged dict to typed Config dataclass.

    Args:
        data: Merged configuration dictionary.

    Returns:
        Typed Config object.
    """
    log_data = data.get("logging") or {}
    verbose = log_data.get("verbose")
    logging_config = LoggingConfig(
        level=log_data.get("level"),
        verbose=int(verbose) if verbose is not None else None,
        file=log_data.get("file"),
    )

    ext_data = data.get("extensions") or {}
    paths = ext_data.get("paths") or []
    extensions = ExtensionsConfig(
        paths=[os.path.expanduser(str(p)) for p in paths if isinstance(p, (str, Path))],
        start_by_default=bool(ext_data.get("start_by_default", True)),
        shared_state_file=ext_data.get("shared_state_file"),
    )

    general_data = data.get("general") or {}
    general = GeneralConfig.from_dict(general_data if isinstance(general_data, dict) else {})

    extra = {k: v for k, v in data.items() if k not in _KNOWN_SECTIONS}

    return Config(
        logging=logging_config,
        extensions=extensions,
        general=general,
        extra=extra,
    )


def load_config(config_path: str | Path | None = None, reload: bool = False) -> Config:
    """Load and merge config from all sources.

    Priority order (highest to lowest):
    1. Environment variables
    2. Explicit config file (``config_path``)
    3. User config
    4. System config

    Args:
        config_path: Optional explicit config file.
        reload: Force reload even if cached.

    Returns:
        Merged Config object.
    """
    global _cached_config

    if _cached_config is not None and not reload and config_path is None:
        return _cached_config

    layers: list[dict[str, Any]] = []
    for path in get_config_paths(config_path):
        layer = load_yaml_file(path)
        if layer:
            _log.debug("Loaded config from %s", path)
            layers.append(layer)

    env_layer = env_overrides()
    if env_layer:
        layers.append(env_layer)

    config = dict_to_config(merge_configs(*layers))

    if config_path is None:
        _cached_config = config

    return config


def get_config() -> Config:
    """Get the cached global config, loading it on first use."""
    if _cached_config is None:
        return load_config()
    return _cached_config


def reset_config() -> None:
    """Reset cached config.

    Useful for testing or forcing a reload.
    """
    global _cached_config
    _cached_config = None


def reload_config(config_path: str | Path | None = None) -> Config:
    """Reload config from files and notify callbacks."""
    config = load_config(config_path=config_path, reload=True)

    for callback in list(_reload_callbacks):
        try:
            callback(config)
        except Exception as e:
            _log.warning("Config reload callback error: %s", e)

    return config


def on_config_reload(callback: Callable[[Config], None]) -> Callable[[], None]:
    """Register a callback to be called when config is reloaded.

    Returns:
        A function to unregister the callback.
    """
    _reload_callbacks.append(callback)

    def unregister() -> None:
        if callback in _reload_callbacks:
            _reload_callbacks.remove(callback)

    return unregister
