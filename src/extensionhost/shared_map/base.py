"""Key/value state shared between host processes."""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable
from typing import Any, Protocol

_log = logging.getLogger(__name__)

ChangeListener = Callable[[str, Any], None]


class SharedMap(Protocol):
    """Minimal interface the extension manager needs from shared state.

    Values must be plain data (dicts, lists, str, int, float, bool, None).
    ``on_change`` listeners fire for local ``set`` calls and for changes
    made by other processes.
    """

    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...

    def on_change(self, listener: ChangeListener) -> Callable[[], None]: ...


class InMemorySharedMap:
    """SharedMap for a single process. Values are copied on the way in and out."""

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}
        self._listeners: list[ChangeListener] = []

    def get(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        return copy.deepcopy(self._data[key])

    def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)
        self._notify(key, value)

    def keys(self) -> list[str]:
        return list(self._data)

    def on_change(self, listener: ChangeListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unregister() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unregister

    def _notify(self, key: str, value: Any) -> None:
        for listener in list(self._listeners):
            try:
                listener(key, copy.deepcopy(value))
            except Exception as e:
                _log.warning("Shared map listener error for key '%s': %s", key, e)
