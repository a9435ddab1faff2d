"""Persisted user configuration.

The ConfigDatabase owns one YAML file and the ``general`` section inside
it. The extension manager reads ``general.active_extensions`` at startup
and writes it back on every enable/disable. Other sections of the file
are preserved untouched.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

import yaml
from filelock import FileLock

from extensionhost.config.loader import load_yaml_file
from extensionhost.config.schema import GeneralConfig

_log = logging.getLogger(__name__)


class ConfigDatabase:
    """Read/write access to the persisted general configuration.

    Pass ``path=None`` for a purely in-memory database (nothing touches
    disk), which is what tests and embedders without a config file use.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        self._path = Path(path) if path is not None else None
        self._listeners: list[Callable[[GeneralConfig], None]] = []
        self._general = self._read_general()

    @property
    def path(self) -> Path | None:
        return self._path

    @staticmethod
    def _lock(path: Path) -> FileLock:
        return FileLock(str(path) + ".lock", timeout=10)

    @staticmethod
    def _general_from(data: dict[str, Any]) -> GeneralConfig:
        general = data.get("general")
        return GeneralConfig.from_dict(general if isinstance(general, dict) else {})

    def _read_general(self) -> GeneralConfig:
        if self._path is None:
            return GeneralConfig()
        return self._general_from(load_yaml_file(self._path))

    def _update_general(self, update: Callable[[GeneralConfig], GeneralConfig]) -> GeneralConfig:
        """Apply ``update`` to the stored general config and persist the result.

        ``update`` receives the latest stored config. For file-backed
        databases that is re-read from the file while holding the lock.
        """
        if self._path is None:
            return update(self._general.copy())

        path = self._path
        path.parent.mkdir(parents=True, exist_ok=True)
        with self._lock(path):
            data: dict[str, Any] = load_yaml_file(path)
            general = update(self._general_from(data))
            data["general"] = general.to_dict()
            with open(path, "w", encoding="utf-8") as f:
                yaml.safe_dump(data, f, default_flow_style=False, sort_keys=True)
        _log.debug("Wrote general config to %s", path)
        return general

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._general.copy())
            except Exception as e:
                _log.warning("General config listener error: %s", e)

    def get_general_config_copy(self) -> GeneralConfig:
        """Return a deep copy that callers may mutate freely."""
        return self._general.copy()

    def set_general_config(self, general: GeneralConfig) -> None:
        """Replace the general config, persist it, and notify listeners."""
        replacement = general.copy()
        self._general = self._update_general(lambda _: replacement)
        self._notify()

    def set_active_extension(self, name: str, enabled: bool) -> None:
        """Record one extension's enabled flag, keeping every other entry.

        Entries written by other processes since this database was loaded
        are preserved, unlike ``set_general_config`` which replaces them.
        """

        def update(general: GeneralConfig) -> GeneralConfig:
            general.active_extensions[name] = enabled
            return general

        self._general = self._update_general(update)
        self._notify()

    def reload(self) -> GeneralConfig:
        """Re-read the file, picking up edits made by other processes."""
        self._general = self._read_general()
        return self._general.copy()

    def on_change(self, callback: Callable[[GeneralConfig], None]) -> Callable[[], None]:
        """Register a listener for general config changes.

        Returns:
            A function to unregister the listener.
        """
        self._listeners.append(callback)

        def unregister() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unregister
