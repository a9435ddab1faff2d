"""Extension manager state published through a SharedMap.

Publishes the list of discovered extensions and the desired state so
every process sees the same picture, and carries enable/disable requests
from other processes to the process that runs the extensions.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from typing import Any

from extensionhost.extensions.metadata import ExtensionDesiredState, ExtensionMetadata
from extensionhost.shared_map.base import SharedMap

_log = logging.getLogger(__name__)

METADATA_KEY = "extension_manager.metadata"
DESIRED_STATE_KEY = "extension_manager.desired_state"
ENABLE_REQUEST_KEY = "extension_manager.enable_request"
DISABLE_REQUEST_KEY = "extension_manager.disable_request"

NameCallback = Callable[[str], None]


class ExtensionManagerIpc:
    """Typed view of the extension manager's keys in a SharedMap."""

    def __init__(self, shared_map: SharedMap) -> None:
        self._shared_map = shared_map
        self._metadata: list[ExtensionMetadata] | None = None
        self._enable_callbacks: list[NameCallback] = []
        self._disable_callbacks: list[NameCallback] = []
        # Each request key holds one request at a time; remember the last one seen.
        self._last_request_ids: dict[str, str] = {}
        self._unsubscribe = shared_map.on_change(self._handle_change)

    def close(self) -> None:
        """Stop listening to the shared map."""
        self._unsubscribe()

    def poll(self) -> None:
        """Pick up changes from other processes when the map supports polling."""
        poll = getattr(self._shared_map, "poll", None)
        if poll is not None:
            poll()

    # -- Extension metadata --

    def set_extension_metadata(self, metadata: list[ExtensionMetadata]) -> None:
        self._shared_map.set(METADATA_KEY, [m.to_dict() for m in metadata])
        self._metadata = list(metadata)

    def get_extension_metadata(self) -> list[ExtensionMetadata]:
        if self._metadata is None:
            raw = self._shared_map.get(METADATA_KEY, []) or []
            self._metadata = [ExtensionMetadata.from_dict(d) for d in raw]
        return list(self._metadata)

    # -- Desired state --

    def get_desired_state(self) -> ExtensionDesiredState:
        raw = self._shared_map.get(DESIRED_STATE_KEY, {}) or {}
        return {str(k): bool(v) for k, v in raw.items()}

    def set_desired_state(self, desired_state: ExtensionDesiredState) -> None:
        self._shared_map.set(DESIRED_STATE_KEY, dict(desired_state))

    # -- Requests from other processes --

    def enable_extension(self, name: str) -> None:
        """Ask the process running extensions to enable ``name``."""
        self._shared_map.set(ENABLE_REQUEST_KEY, {"name": name, "id": uuid.uuid4().hex})

    def disable_extension(self, name: str) -> None:
        """Ask the process running extensions to disable ``name``."""
        self._shared_map.set(DISABLE_REQUEST_KEY, {"name": name, "id": uuid.uuid4().hex})

    def on_enable_extension(self, callback: NameCallback) -> Callable[[], None]:
        return self._subscribe(self._enable_callbacks, callback)

    def on_disable_extension(self, callback: NameCallback) -> Callable[[], None]:
        return self._subscribe(self._disable_callbacks, callback)

    @staticmethod
    def _subscribe(callbacks: list[NameCallback], callback: NameCallback) -> Callable[[], None]:
        callbacks.append(callback)

        def unregister() -> None:
            if callback in callbacks:
                callbacks.remove(callback)

        return unregister

    def _handle_change(self, key: str, value: Any) -> None:
        if key == METADATA_KEY:
            self._metadata = None
            return
        if key == ENABLE_REQUEST_KEY:
            callbacks = self._enable_callbacks
        elif key == DISABLE_REQUEST_KEY:
            callbacks = self._disable_callbacks
        else:
            return

        if not isinstance(value, dict) or not value.get("name"):
            _log.warning("Ignoring malformed extension request under '%s': %r", key, value)
            return
        request_id = str(value.get("id", ""))
        if self._last_request_ids.get(key) == request_id:
            return
        self._last_request_ids[key] = request_id

        for callback in list(callbacks):
            callback(str(value["name"]))
