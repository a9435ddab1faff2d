"""Data model for discovered extensions and their contributions.

Everything in this module is immutable once built. Descriptors are
created by the manifest parser at scan time and then shared, read-only,
between the registry, the lifecycle manager and the query engine. They
round-trip through plain dicts so they can be published to the shared
state store.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

Category = Literal["hyperlink", "terminal", "viewer", "window", "application", "global"]

# Display order of categories in menus and the command palette.
ALL_CATEGORIES: tuple[Category, ...] = (
    "hyperlink",
    "terminal",
    "viewer",
    "window",
    "application",
    "global",
)

DEFAULT_COMMAND_ORDER = 100000

# Contribution fields a customizer is allowed to override, with their value checks.
_CUSTOMIZABLE_FIELDS: dict[str, Callable[[Any], bool]] = {
    "title": lambda v: isinstance(v, str),
    "category": lambda v: v in ALL_CATEGORIES,
    "order": lambda v: isinstance(v, int) and not isinstance(v, bool),
    "when": lambda v: isinstance(v, str),
    "icon": lambda v: v is None or isinstance(v, str),
    "checked": lambda v: v is None or isinstance(v, bool),
}


def split_overrides(overrides: Mapping[str, Any]) -> tuple[dict[str, Any], list[str]]:
    """Separate usable customizer overrides from ones with bad values.

    Returns:
        The accepted ``{field: value}`` changes and the names of customizable
        fields whose values were rejected. Unknown keys are in neither.
    """
    accepted: dict[str, Any] = {}
    rejected: list[str] = []
    for key, value in overrides.items():
        check = _CUSTOMIZABLE_FIELDS.get(key)
        if check is None:
            continue
        if check(value):
            accepted[key] = value
        else:
            rejected.append(key)
    return accepted, rejected


@dataclass(frozen=True)
class ExtensionCommandContribution:
    """A command declared in an extension's manifest."""

    command: str  # "extensionName:commandId"
    title: str
    category: Category = "global"
    order: int = DEFAULT_COMMAND_ORDER
    when: str = ""
    icon: str | None = None
    checked: bool | None = None

    def with_overrides(self, overrides: Mapping[str, Any] | None) -> ExtensionCommandContribution:
        """Copy with the customizable fields in ``overrides`` applied.

        Keys that are not customizable (including ``command``) and values of
        the wrong type are ignored.
        """
        if not overrides:
            return self
        changes, _ = split_overrides(overrides)
        if not changes:
            return self
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExtensionCommandContribution:
        return cls(
            command=data["command"],
            title=data["title"],
            category=data.get("category", "global"),
            order=data.get("order", DEFAULT_COMMAND_ORDER),
            when=data.get("when", ""),
            icon=data.get("icon"),
            checked=data.get("checked"),
        )


@dataclass(frozen=True)
class MenuPlacement:
    """One entry of a ``contributes.menus`` list."""

    command: str
    show: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {"command": self.command, "show": self.show}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MenuPlacement:
        return cls(command=data["command"], show=data.get("show", True))


@dataclass(frozen=True)
class ExtensionMenusContribution:
    """Which menus a command appears in.

    Commands show up in the command palette unless listed here with
    ``show: false``; every other menu is opt-in.
    """

    command_palette: tuple[MenuPlacement, ...] = ()
    context_menu: tuple[MenuPlacement, ...] = ()
    new_terminal: tuple[MenuPlacement, ...] = ()
    terminal_tab: tuple[MenuPlacement, ...] = ()
    window_menu: tuple[MenuPlacement, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            f.name: [p.to_dict() for p in getattr(self, f.name)]
            for f in dataclasses.fields(self)
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExtensionMenusContribution:
        return cls(
            **{
                f.name: tuple(MenuPlacement.from_dict(p) for p in data.get(f.name, []))
                for f in dataclasses.fields(cls)
            }
        )


@dataclass(frozen=True)
class SessionBackendMetadata:
    name: str
    type: str


@dataclass(frozen=True)
class TerminalThemeProviderMetadata:
    name: str
    human_format_names: tuple[str, ...] = ()


@dataclass(frozen=True)
class ExtensionContributes:
    """Everything an extension declares in ``contributes``."""

    commands: tuple[ExtensionCommandContribution, ...] = ()
    menus: ExtensionMenusContribution = field(default_factory=ExtensionMenusContribution)
    session_backends: tuple[SessionBackendMetadata, ...] = ()
    terminal_theme_providers: tuple[TerminalThemeProviderMetadata, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "commands": [c.to_dict() for c in self.commands],
            "menus": self.menus.to_dict(),
            "session_backends": [dataclasses.asdict(b) for b in self.session_backends],
            "terminal_theme_providers": [
                {"name": p.name, "human_format_names": list(p.human_format_names)}
                for p in self.terminal_theme_providers
            ],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExtensionContributes:
        return cls(
            commands=tuple(
                ExtensionCommandContribution.from_dict(c) for c in data.get("commands", [])
            ),
            menus=ExtensionMenusContribution.from_dict(data.get("menus", {})),
            session_backends=tuple(
                SessionBackendMetadata(name=b["name"], type=b["type"])
                for b in data.get("session_backends", [])
            ),
            terminal_theme_providers=tuple(
                TerminalThemeProviderMetadata(
                    name=p["name"],
                    human_format_names=tuple(p.get("human_format_names", [])),
                )
                for p in data.get("terminal_theme_providers", [])
            ),
        )


@dataclass(frozen=True)
class ExtensionMetadata:
    """Descriptor for one discovered extension. Identity key is ``name``."""

    name: str
    path: str
    main: str | None = None
    version: str = ""
    description: str = ""
    display_name: str | None = None
    readme_path: str | None = None
    contributes: ExtensionContributes = field(default_factory=ExtensionContributes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "path": self.path,
            "main": self.main,
            "version": self.version,
            "description": self.description,
            "display_name": self.display_name,
            "readme_path": self.readme_path,
            "contributes": self.contributes.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExtensionMetadata:
        return cls(
            name=data["name"],
            path=data["path"],
            main=data.get("main"),
            version=data.get("version", ""),
            description=data.get("description", ""),
            display_name=data.get("display_name"),
            readme_path=data.get("readme_path"),
            contributes=ExtensionContributes.from_dict(data.get("contributes", {})),
        )


ExtensionDesiredState = dict[str, bool]


@dataclass
class WhenVariables:
    """Variables visible to "when" conditions.

    Field names match the identifiers used in manifest ``when`` strings.
    """

    true: bool = True
    false: bool = False
    terminalFocus: bool = False
    viewerFocus: bool = False
    isHyperlink: bool = False
    hyperlinkURL: str | None = None
    hyperlinkProtocol: str | None = None
    hyperlinkDomain: str | None = None
    hyperlinkFileExtension: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)
