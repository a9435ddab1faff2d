"""Root pytest configuration for all tests."""

from __future__ import annotations

import sys
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest

from extensionhost.config import reset_config
from extensionhost.extensions.loader import MODULE_PREFIX
from extensionhost.extensions.manager import ExtensionManager
from extensionhost.logging import reset_logging
from tests.utils import GREETER_SOURCE, ExtensionFactory, write_extension


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep config lookups and imported extension modules inside the test."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    monkeypatch.setenv("APPDATA", str(tmp_path / "appdata"))
    monkeypatch.delenv("EXTHOST_LOG", raising=False)
    monkeypatch.delenv("EXTHOST_EXTENSIONS_PATH", raising=False)
    reset_config()
    yield
    reset_config()
    reset_logging()
    for module_name in [n for n in sys.modules if n.startswith(MODULE_PREFIX)]:
        del sys.modules[module_name]


@pytest.fixture
def extensions_dir(tmp_path: Path) -> Path:
    path = tmp_path / "extensions"
    path.mkdir()
    return path


@pytest.fixture
def make_extension(extensions_dir: Path) -> ExtensionFactory:
    """Factory writing extensions under ``extensions_dir``."""

    def factory(name: str, **kwargs: Any) -> Path:
        return write_extension(extensions_dir, name, **kwargs)

    return factory


@pytest.fixture
def greeter(make_extension: ExtensionFactory) -> Path:
    """An extension with one global and one terminal-only command."""
    return make_extension(
        "greeter",
        commands=[
            {"command": "greeter:hello", "title": "Say Hello"},
            {
                "command": "greeter:terminalOnly",
                "title": "Terminal Only",
                "category": "terminal",
                "when": "terminalFocus",
            },
        ],
        source=GREETER_SOURCE,
    )


@pytest.fixture
def manager(extensions_dir: Path) -> Iterator[ExtensionManager]:
    """A manager over ``extensions_dir`` with in-memory config and shared state.

    Request extension fixtures before this one; the scan happens here.
    """
    extension_manager = ExtensionManager(extension_paths=[extensions_dir])
    yield extension_manager
    extension_manager.shutdown()
