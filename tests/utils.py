"""Shared test utilities for extension host tests."""

from __future__ import annotations

import json
import textwrap
from collections.abc import Callable
from pathlib import Path
from typing import Any

ExtensionFactory = Callable[..., Path]

GREETER_SOURCE = """
    calls = []

    def activate(context):
        def hello(args):
            return {"greeting": "hello " + args.get("name", "world")}

        context.commands.register_command("greeter:hello", hello)
        context.commands.register_command("terminalOnly", lambda args: "in terminal")
        return {"api": "greeter"}

    def deactivate(is_real_shutdown):
        calls.append(is_real_shutdown)
"""


def write_extension(
    root: Path,
    name: str,
    *,
    commands: list[dict[str, Any]] | None = None,
    menus: dict[str, Any] | None = None,
    source: str | None = None,
    main: str | None = "main.py",
    **manifest: Any,
) -> Path:
    """Write an extension directory with a package.json and optional entry point.

    Args:
        root: Extension root directory.
        name: Extension name (also the directory name).
        commands: ``contributes.commands`` entries.
        menus: ``contributes.menus`` mapping.
        source: Python source for ``main``; dedented. Omit for no file.
        main: Entry point path, or None for a manifest-only extension.
        **manifest: Extra top-level package.json keys.

    Returns:
        The extension directory.
    """
    extension_dir = root / name
    extension_dir.mkdir(parents=True, exist_ok=True)

    package: dict[str, Any] = {"name": name, "version": "1.0.0", **manifest}
    if main is not None:
        package["main"] = main
    contributes: dict[str, Any] = {}
    if commands is not None:
        contributes["commands"] = commands
    if menus is not None:
        contributes["menus"] = menus
    if contributes:
        package["contributes"] = contributes

    (extension_dir / "package.json").write_text(json.dumps(package), encoding="utf-8")

    if main is not None and source is not None:
        (extension_dir / main).write_text(textwrap.dedent(source), encoding="utf-8")
    return extension_dir


def command(name: str, title: str | None = None, **fields: Any) -> dict[str, Any]:
    """Build a ``contributes.commands`` entry."""
    return {"command": name, "title": title or name.split(":", 1)[1], **fields}
