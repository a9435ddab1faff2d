"""Tests for extension discovery."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from extensionhost.extensions.metadata import ExtensionMetadata
from extensionhost.extensions.registry import ExtensionRegistry
from tests.utils import write_extension


class TestScan:
    """Test scanning extension root directories."""

    def test_discovers_in_alphabetical_order(self, extensions_dir: Path) -> None:
        for name in ["zeta", "alpha", "mid"]:
            write_extension(extensions_dir, name)

        registry = ExtensionRegistry()
        found = registry.scan([extensions_dir])

        assert [m.name for m in found] == ["alpha", "mid", "zeta"]
        assert [m.name for m in registry] == ["alpha", "mid", "zeta"]
        assert len(registry) == 3
        assert "mid" in registry

    def test_lookup(self, extensions_dir: Path) -> None:
        write_extension(extensions_dir, "alpha")
        registry = ExtensionRegistry()
        registry.scan([extensions_dir])

        metadata = registry.lookup("alpha")
        assert metadata is not None
        assert metadata.path == str(extensions_dir / "alpha")
        assert registry.lookup("missing") is None

    def test_missing_root_is_skipped(
        self, tmp_path: Path, extensions_dir: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        write_extension(extensions_dir, "alpha")
        registry = ExtensionRegistry()

        with caplog.at_level(logging.WARNING, logger="extensionhost"):
            registry.scan([tmp_path / "nope", extensions_dir])

        assert [m.name for m in registry.list_extensions()] == ["alpha"]
        assert "doesn't exist" in caplog.text

    def test_directory_without_manifest_skipped(
        self, extensions_dir: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        (extensions_dir / "empty").mkdir()
        (extensions_dir / "loose-file.txt").write_text("x")
        write_extension(extensions_dir, "alpha")

        with caplog.at_level(logging.WARNING, logger="extensionhost"):
            registry = ExtensionRegistry()
            registry.scan([extensions_dir])

        assert [m.name for m in registry] == ["alpha"]
        assert "skipping" in caplog.text

    def test_broken_manifest_does_not_abort_scan(
        self, extensions_dir: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        write_extension(extensions_dir, "alpha")
        broken = extensions_dir / "broken"
        broken.mkdir()
        (broken / "package.json").write_text("{oops")
        write_extension(extensions_dir, "zeta")

        with caplog.at_level(logging.WARNING, logger="extensionhost"):
            registry = ExtensionRegistry()
            registry.scan([extensions_dir])

        assert [m.name for m in registry] == ["alpha", "zeta"]
        assert "broken" in caplog.text

    def test_duplicate_names_first_wins(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        first_root = tmp_path / "first"
        second_root = tmp_path / "second"
        write_extension(first_root, "same", description="first")
        write_extension(second_root, "same", description="second")

        with caplog.at_level(logging.WARNING, logger="extensionhost"):
            registry = ExtensionRegistry()
            registry.scan([first_root, second_root])

        metadata = registry.lookup("same")
        assert metadata is not None
        assert metadata.description == "first"
        assert len(registry) == 1
        assert "Duplicate extension" in caplog.text

    def test_custom_parser(self, extensions_dir: Path) -> None:
        write_extension(extensions_dir, "alpha")
        write_extension(extensions_dir, "beta")

        def parser(text: str, path: str) -> ExtensionMetadata:
            if path.endswith("beta"):
                raise RuntimeError("no betas")
            return ExtensionMetadata(name="custom-" + Path(path).name, path=path)

        registry = ExtensionRegistry(parser)
        registry.scan([extensions_dir])

        assert [m.name for m in registry] == ["custom-alpha"]
