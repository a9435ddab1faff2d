"""Tests for shared state and cross-process enable/disable requests."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml

from extensionhost.extensions.ipc import (
    DESIRED_STATE_KEY,
    ENABLE_REQUEST_KEY,
    ExtensionManagerIpc,
)
from extensionhost.extensions.manager import ExtensionManager
from extensionhost.extensions.metadata import ExtensionMetadata
from extensionhost.shared_map import FileSharedMap, InMemorySharedMap


class TestInMemorySharedMap:
    """Test the single-process store."""

    def test_get_set_and_default(self) -> None:
        shared = InMemorySharedMap()
        assert shared.get("missing", 5) == 5
        shared.set("key", {"a": 1})
        assert shared.get("key") == {"a": 1}
        assert shared.keys() == ["key"]

    def test_values_are_copied(self) -> None:
        shared = InMemorySharedMap()
        value = {"a": [1]}
        shared.set("key", value)
        value["a"].append(2)
        shared.get("key")["a"].append(3)
        assert shared.get("key") == {"a": [1]}

    def test_listeners(self) -> None:
        shared = InMemorySharedMap()
        seen: list[tuple[str, Any]] = []
        unregister = shared.on_change(lambda key, value: seen.append((key, value)))

        shared.set("a", 1)
        unregister()
        shared.set("b", 2)

        assert seen == [("a", 1)]

    def test_listener_errors_are_contained(self) -> None:
        shared = InMemorySharedMap()
        seen: list[str] = []

        def broken(key: str, value: Any) -> None:
            raise RuntimeError("listener")

        shared.on_change(broken)
        shared.on_change(lambda key, value: seen.append(key))
        shared.set("a", 1)

        assert seen == ["a"]


class TestFileSharedMap:
    """Test the YAML file backed store."""

    def test_persists(self, tmp_path: Path) -> None:
        path = tmp_path / "state" / "shared.yaml"
        FileSharedMap(path).set("key", {"a": 1})

        assert yaml.safe_load(path.read_text()) == {"key": {"a": 1}}
        assert FileSharedMap(path).get("key") == {"a": 1}

    def test_set_keeps_other_writers_keys(self, tmp_path: Path) -> None:
        path = tmp_path / "shared.yaml"
        first = FileSharedMap(path)
        second = FileSharedMap(path)

        first.set("a", 1)
        second.set("b", 2)

        assert yaml.safe_load(path.read_text()) == {"a": 1, "b": 2}

    def test_poll_reports_changes(self, tmp_path: Path) -> None:
        path = tmp_path / "shared.yaml"
        writer = FileSharedMap(path)
        reader = FileSharedMap(path)
        seen: list[tuple[str, Any]] = []
        reader.on_change(lambda key, value: seen.append((key, value)))

        writer.set("a", 1)
        writer.set("b", 2)
        # Make sure the change is visible even on coarse mtime filesystems
        stat = path.stat()
        os.utime(path, (stat.st_atime, stat.st_mtime + 5))

        assert reader.poll() == ["a", "b"]
        assert seen == [("a", 1), ("b", 2)]
        assert reader.get("b") == 2
        assert reader.poll() == []

    def test_corrupt_file_reads_empty(self, tmp_path: Path) -> None:
        path = tmp_path / "shared.yaml"
        path.write_text("key: [unclosed\n")
        assert FileSharedMap(path).get("key") is None


class TestExtensionManagerIpc:
    """Test the typed view over the shared map."""

    def test_metadata_round_trip(self) -> None:
        shared = InMemorySharedMap()
        publisher = ExtensionManagerIpc(shared)
        observer = ExtensionManagerIpc(shared)

        assert observer.get_extension_metadata() == []
        publisher.set_extension_metadata([ExtensionMetadata(name="a", path="/ext/a")])

        assert [m.name for m in observer.get_extension_metadata()] == ["a"]
        assert [m.name for m in publisher.get_extension_metadata()] == ["a"]

    def test_desired_state(self) -> None:
        shared = InMemorySharedMap()
        ipc = ExtensionManagerIpc(shared)
        ipc.set_desired_state({"a": True})
        assert ExtensionManagerIpc(shared).get_desired_state() == {"a": True}
        assert shared.get(DESIRED_STATE_KEY) == {"a": True}

    def test_requests_delivered_once(self) -> None:
        shared = InMemorySharedMap()
        receiver = ExtensionManagerIpc(shared)
        enabled: list[str] = []
        disabled: list[str] = []
        receiver.on_enable_extension(enabled.append)
        receiver.on_disable_extension(disabled.append)

        sender = ExtensionManagerIpc(shared)
        sender.enable_extension("a")
        sender.disable_extension("b")
        # Same request seen again, e.g. after a poll
        shared.set(ENABLE_REQUEST_KEY, shared.get(ENABLE_REQUEST_KEY))

        assert enabled == ["a"]
        assert disabled == ["b"]

    def test_every_new_request_is_delivered(self) -> None:
        shared = InMemorySharedMap()
        receiver = ExtensionManagerIpc(shared)
        enabled: list[str] = []
        receiver.on_enable_extension(enabled.append)
        sender = ExtensionManagerIpc(shared)

        for _ in range(50):
            sender.enable_extension("a")

        assert enabled == ["a"] * 50
        assert list(receiver._last_request_ids) == [ENABLE_REQUEST_KEY]

    def test_malformed_request_ignored(self) -> None:
        shared = InMemorySharedMap()
        receiver = ExtensionManagerIpc(shared)
        enabled: list[str] = []
        receiver.on_enable_extension(enabled.append)

        shared.set(ENABLE_REQUEST_KEY, "not a request")

        assert enabled == []

    def test_close_stops_delivery(self) -> None:
        shared = InMemorySharedMap()
        receiver = ExtensionManagerIpc(shared)
        enabled: list[str] = []
        receiver.on_enable_extension(enabled.append)

        receiver.close()
        ExtensionManagerIpc(shared).enable_extension("a")

        assert enabled == []


class TestRemoteRequests:
    """Test a second process driving the manager through shared state."""

    def test_remote_disable_and_enable(self, greeter: Path, extensions_dir: Path) -> None:
        shared = InMemorySharedMap()
        manager = ExtensionManager(shared_map=shared, extension_paths=[extensions_dir])
        manager.start_up_extensions(None)
        remote = ExtensionManagerIpc(shared)

        remote.disable_extension("greeter")
        assert not manager.is_active("greeter")
        assert remote.get_desired_state() == {"greeter": False}

        remote.enable_extension("greeter")
        assert manager.is_active("greeter")
        assert remote.get_desired_state() == {"greeter": True}
        manager.shutdown()

    def test_remote_request_through_file(
        self, greeter: Path, extensions_dir: Path, tmp_path: Path
    ) -> None:
        path = tmp_path / "shared.yaml"
        manager = ExtensionManager(
            shared_map=FileSharedMap(path), extension_paths=[extensions_dir]
        )
        manager.start_up_extensions(None)

        ExtensionManagerIpc(FileSharedMap(path)).disable_extension("greeter")
        stat = path.stat()
        os.utime(path, (stat.st_atime, stat.st_mtime + 5))
        manager.ipc.poll()

        assert not manager.is_active("greeter")
        assert FileSharedMap(path).get(DESIRED_STATE_KEY) == {"greeter": False}
        manager.shutdown()

    def test_observer_sees_metadata(self, greeter: Path, extensions_dir: Path) -> None:
        shared = InMemorySharedMap()
        manager = ExtensionManager(shared_map=shared, extension_paths=[extensions_dir])

        observer = ExtensionManagerIpc(shared)

        assert [m.name for m in observer.get_extension_metadata()] == ["greeter"]
        manager.shutdown()
