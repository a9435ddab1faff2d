"""SharedMap backed by a YAML file, for several host processes on one machine.

Writes are read-modify-write cycles under a file lock. Changes made by
other processes are picked up by ``poll()``, which compares the file's
modification time and fires listeners for keys whose values differ.
"""

from __future__ import annotations

import contextlib
import copy
import logging
from pathlib import Path
from typing import Any

import yaml
from filelock import FileLock

from extensionhost.shared_map.base import InMemorySharedMap

_log = logging.getLogger(__name__)


class FileSharedMap(InMemorySharedMap):
    """Shared key/value store persisted in a YAML file."""

    def __init__(self, path: str | Path, lock_timeout: float = 10.0) -> None:
        super().__init__()
        self._path = Path(path)
        self._lock_path = self._path.with_suffix(self._path.suffix + ".lock")
        self._lock_timeout = lock_timeout
        self._mtime: float | None = None
        self._data = self._load()
        self._mtime = self._current_mtime()

    @property
    def path(self) -> Path:
        return self._path

    def _current_mtime(self) -> float | None:
        with contextlib.suppress(OSError):
            return self._path.stat().st_mtime
        return None

    def _load(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            with open(self._path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
            return data if isinstance(data, dict) else {}
        except (OSError, yaml.YAMLError) as e:
            _log.warning("Unable to read shared state %s: %s", self._path, e)
            return {}

    def _save(self, data: dict[str, Any]) -> None:
        with open(self._path, "w", encoding="utf-8") as f:
            yaml.safe_dump(data, f, default_flow_style=False)

    def set(self, key: str, value: Any) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with FileLock(str(self._lock_path), timeout=self._lock_timeout):
            data = self._load()
            data[key] = copy.deepcopy(value)
            self._save(data)
            self._data = data
            self._mtime = self._current_mtime()
        self._notify(key, value)

    def poll(self) -> list[str]:
        """Pick up changes written by other processes.

        Returns:
            Keys whose values changed since the last read.
        """
        mtime = self._current_mtime()
        if mtime == self._mtime:
            return []

        with FileLock(str(self._lock_path), timeout=self._lock_timeout):
            fresh = self._load()
            self._mtime = self._current_mtime()

        changed = [
            key
            for key in sorted(set(fresh) | set(self._data))
            if fresh.get(key) != self._data.get(key)
        ]
        self._data = fresh
        for key in changed:
            self._notify(key, fresh.get(key))
        return changed
