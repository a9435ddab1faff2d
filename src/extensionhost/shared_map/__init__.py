"""Shared key/value state used to keep host processes in agreement."""

from extensionhost.shared_map.base import ChangeListener, InMemorySharedMap, SharedMap
from extensionhost.shared_map.file_map import FileSharedMap

__all__ = [
    "ChangeListener",
    "FileSharedMap",
    "InMemorySharedMap",
    "SharedMap",
]
