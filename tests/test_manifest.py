"""Tests for package.json parsing and the metadata model."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from extensionhost.errors import ManifestError
from extensionhost.extensions.manifest import find_readme, parse_package_json
from extensionhost.extensions.metadata import (
    DEFAULT_COMMAND_ORDER,
    ExtensionCommandContribution,
    ExtensionMetadata,
    split_overrides,
)


def parse(data: Any, path: Path | str = "/ext/sample") -> ExtensionMetadata:
    return parse_package_json(json.dumps(data), path)


def with_commands(*commands: dict[str, Any]) -> dict[str, Any]:
    return {"name": "sample", "contributes": {"commands": list(commands)}}


class TestParsePackageJson:
    """Test manifest validation and conversion."""

    def test_minimal(self) -> None:
        metadata = parse({"name": "sample"})
        assert metadata.name == "sample"
        assert metadata.path == "/ext/sample"
        assert metadata.main is None
        assert metadata.contributes.commands == ()

    def test_full(self) -> None:
        metadata = parse(
            {
                "name": "sample",
                "version": "2.1.0",
                "description": "Does things",
                "displayName": "Sample",
                "main": "main.py",
                "contributes": {
                    "commands": [
                        {
                            "command": "sample:open",
                            "title": "Open",
                            "category": "hyperlink",
                            "order": 5,
                            "when": "isHyperlink",
                            "icon": "fa-link",
                        }
                    ],
                    "menus": {"contextMenu": [{"command": "sample:open", "show": True}]},
                    "sessionBackends": [{"name": "Local", "type": "local"}],
                    "terminalThemeProviders": [
                        {"name": "iterm", "humanFormatNames": ["iTerm2"]}
                    ],
                },
            }
        )

        assert metadata.version == "2.1.0"
        assert metadata.display_name == "Sample"
        assert metadata.main == "main.py"
        command = metadata.contributes.commands[0]
        assert command == ExtensionCommandContribution(
            command="sample:open",
            title="Open",
            category="hyperlink",
            order=5,
            when="isHyperlink",
            icon="fa-link",
        )
        assert metadata.contributes.menus.context_menu[0].command == "sample:open"
        assert metadata.contributes.session_backends[0].type == "local"
        assert metadata.contributes.terminal_theme_providers[0].human_format_names == ("iTerm2",)

    def test_command_defaults(self) -> None:
        metadata = parse(with_commands({"command": "sample:a", "title": "A"}))
        command = metadata.contributes.commands[0]
        assert command.category == "global"
        assert command.order == DEFAULT_COMMAND_ORDER
        assert command.when == ""

    def test_unknown_keys_ignored(self) -> None:
        metadata = parse({"name": "sample", "engines": {"extraterm": "*"}})
        assert metadata.name == "sample"

    @pytest.mark.parametrize(
        "data",
        [
            {},
            {"name": ""},
            {"name": "has:colon"},
            with_commands({"command": "other:a", "title": "A"}),
            with_commands({"command": "sample", "title": "A"}),
            with_commands({"command": "sample:a:b", "title": "A"}),
            with_commands({"command": "sample:a"}),
            with_commands({"command": "sample:a", "title": "A", "category": "x"}),
            with_commands(
                {"command": "sample:a", "title": "A"},
                {"command": "sample:a", "title": "A again"},
            ),
            {
                "name": "sample",
                "contributes": {"menus": {"commandPalette": [{"command": "sample:missing"}]}},
            },
        ],
    )
    def test_invalid_manifests(self, data: dict[str, Any]) -> None:
        with pytest.raises(ManifestError):
            parse(data)

    def test_invalid_json(self) -> None:
        with pytest.raises(ManifestError) as exc_info:
            parse_package_json("{not json", "/ext/broken")
        assert exc_info.value.path is not None
        assert "broken" in exc_info.value.path

    def test_top_level_must_be_object(self) -> None:
        with pytest.raises(ManifestError):
            parse_package_json("[1, 2]", "/ext/list")


class TestFindReadme:
    """Test readme detection."""

    def test_hint_wins(self, tmp_path: Path) -> None:
        (tmp_path / "README.md").write_text("x")
        assert find_readme(tmp_path, "docs/guide.md") == str(tmp_path / "docs/guide.md")

    def test_case_insensitive(self, tmp_path: Path) -> None:
        (tmp_path / "ReadMe.txt").write_text("x")
        assert find_readme(tmp_path) == str(tmp_path / "ReadMe.txt")

    def test_none_when_missing(self, tmp_path: Path) -> None:
        (tmp_path / "main.py").write_text("")
        assert find_readme(tmp_path) is None

    def test_recorded_in_metadata(self, tmp_path: Path) -> None:
        (tmp_path / "README.md").write_text("x")
        metadata = parse({"name": "sample"}, tmp_path)
        assert metadata.readme_path == str(tmp_path / "README.md")


class TestMetadataModel:
    """Test the immutable descriptors."""

    def test_with_overrides_applies_customizable_fields(self) -> None:
        base = ExtensionCommandContribution(command="a:b", title="Old")
        overrides = {"title": "New", "checked": True, "command": "x:y", "bogus": 1}
        result = base.with_overrides(overrides)
        assert result.title == "New"
        assert result.checked is True
        assert result.command == "a:b"
        assert base.title == "Old"

    def test_with_overrides_drops_bad_values(self) -> None:
        base = ExtensionCommandContribution(command="a:b", title="Old", order=7)
        overrides = {"title": None, "order": "5", "category": "nowhere", "checked": "yes"}
        assert base.with_overrides(overrides) is base

    def test_split_overrides(self) -> None:
        accepted, rejected = split_overrides(
            {"title": "T", "order": True, "icon": None, "category": "terminal", "x": 1}
        )
        assert accepted == {"title": "T", "icon": None, "category": "terminal"}
        assert rejected == ["order"]

    def test_with_overrides_empty_returns_same(self) -> None:
        base = ExtensionCommandContribution(command="a:b", title="T")
        assert base.with_overrides(None) is base
        assert base.with_overrides({}) is base

    def test_to_dict_from_dict(self) -> None:
        metadata = parse(
            {
                "name": "sample",
                "main": "main.py",
                "contributes": {
                    "commands": [{"command": "sample:a", "title": "A", "order": 3}],
                    "menus": {"windowMenu": [{"command": "sample:a"}]},
                },
            }
        )
        assert ExtensionMetadata.from_dict(json.loads(json.dumps(metadata.to_dict()))) == metadata
