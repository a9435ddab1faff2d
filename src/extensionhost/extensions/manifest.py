"""package.json parsing and validation.

Turns the text of an extension's ``package.json`` into an
ExtensionMetadata record. Validation is done with pydantic models that
mirror the JSON layout (camelCase aliases); any problem is reported as a
ManifestError so the registry can skip just that extension.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from extensionhost.errors import ManifestError
from extensionhost.extensions.metadata import (
    DEFAULT_COMMAND_ORDER,
    ExtensionCommandContribution,
    ExtensionContributes,
    ExtensionMenusContribution,
    ExtensionMetadata,
    MenuPlacement,
    SessionBackendMetadata,
    TerminalThemeProviderMetadata,
)

MANIFEST_FILENAME = "package.json"


class ManifestModel(BaseModel):
    """Base model with alias population and unknown keys ignored."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class CommandModel(ManifestModel):
    command: str
    title: str
    category: Literal["hyperlink", "terminal", "viewer", "window", "application", "global"] = (
        "global"
    )
    order: int = DEFAULT_COMMAND_ORDER
    when: str = ""
    icon: str | None = None
    checked: bool | None = None

    @field_validator("command")
    @classmethod
    def _one_colon(cls, value: str) -> str:
        if value.count(":") != 1 or value.startswith(":") or value.endswith(":"):
            raise ValueError(f"command '{value}' must have the form 'extension:command'")
        return value


class MenuPlacementModel(ManifestModel):
    command: str
    show: bool = True


class MenusModel(ManifestModel):
    command_palette: list[MenuPlacementModel] = Field(default_factory=list, alias="commandPalette")
    context_menu: list[MenuPlacementModel] = Field(default_factory=list, alias="contextMenu")
    new_terminal: list[MenuPlacementModel] = Field(default_factory=list, alias="newTerminal")
    terminal_tab: list[MenuPlacementModel] = Field(default_factory=list, alias="terminalTab")
    window_menu: list[MenuPlacementModel] = Field(default_factory=list, alias="windowMenu")


class SessionBackendModel(ManifestModel):
    name: str
    type: str


class TerminalThemeProviderModel(ManifestModel):
    name: str
    human_format_names: list[str] = Field(default_factory=list, alias="humanFormatNames")


class ContributesModel(ManifestModel):
    commands: list[CommandModel] = Field(default_factory=list)
    menus: MenusModel = Field(default_factory=MenusModel)
    session_backends: list[SessionBackendModel] = Field(
        default_factory=list, alias="sessionBackends"
    )
    terminal_theme_providers: list[TerminalThemeProviderModel] = Field(
        default_factory=list, alias="terminalThemeProviders"
    )


class PackageJsonModel(ManifestModel):
    name: str = Field(min_length=1)
    version: str = ""
    description: str = ""
    display_name: str | None = Field(default=None, alias="displayName")
    main: str | None = None
    extraterm_readme: str | None = Field(default=None, alias="extratermReadme")
    contributes: ContributesModel = Field(default_factory=ContributesModel)

    @field_validator("name")
    @classmethod
    def _no_colon(cls, value: str) -> str:
        if ":" in value:
            raise ValueError("extension name must not contain ':'")
        return value

    @model_validator(mode="after")
    def _check_commands(self) -> PackageJsonModel:
        declared: set[str] = set()
        for command in self.contributes.commands:
            prefix = command.command.split(":", 1)[0]
            if prefix != self.name:
                raise ValueError(
                    f"command '{command.command}' must be prefixed with '{self.name}:'"
                )
            if command.command in declared:
                raise ValueError(f"command '{command.command}' is declared twice")
            declared.add(command.command)

        menus = self.contributes.menus
        for menu_name in MenusModel.model_fields:
            for placement in getattr(menus, menu_name):
                if placement.command not in declared:
                    raise ValueError(
                        f"menu '{menu_name}' refers to undeclared command '{placement.command}'"
                    )
        return self


def find_readme(extension_path: str | Path, readme_hint: str | None = None) -> str | None:
    """Locate an extension's readme file.

    Uses the manifest's ``extratermReadme`` entry when present, otherwise
    the first directory entry named ``readme.*`` (any case).
    """
    if readme_hint:
        return os.path.join(extension_path, readme_hint)
    try:
        entries = sorted(os.listdir(extension_path))
    except OSError:
        return None
    for entry in entries:
        if entry.lower().startswith("readme."):
            return os.path.join(extension_path, entry)
    return None


def _to_metadata(model: PackageJsonModel, extension_path: str) -> ExtensionMetadata:
    menus = model.contributes.menus

    def placements(items: list[MenuPlacementModel]) -> tuple[MenuPlacement, ...]:
        return tuple(MenuPlacement(command=p.command, show=p.show) for p in items)

    contributes = ExtensionContributes(
        commands=tuple(
            ExtensionCommandContribution(
                command=c.command,
                title=c.title,
                category=c.category,
                order=c.order,
                when=c.when,
                icon=c.icon,
                checked=c.checked,
            )
            for c in model.contributes.commands
        ),
        menus=ExtensionMenusContribution(
            command_palette=placements(menus.command_palette),
            context_menu=placements(menus.context_menu),
            new_terminal=placements(menus.new_terminal),
            terminal_tab=placements(menus.terminal_tab),
            window_menu=placements(menus.window_menu),
        ),
        session_backends=tuple(
            SessionBackendMetadata(name=b.name, type=b.type)
            for b in model.contributes.session_backends
        ),
        terminal_theme_providers=tuple(
            TerminalThemeProviderMetadata(
                name=p.name, human_format_names=tuple(p.human_format_names)
            )
            for p in model.contributes.terminal_theme_providers
        ),
    )

    return ExtensionMetadata(
        name=model.name,
        path=extension_path,
        main=model.main,
        version=model.version,
        description=model.description,
        display_name=model.display_name,
        readme_path=find_readme(extension_path, model.extraterm_readme),
        contributes=contributes,
    )


def parse_package_json(text: str, extension_path: str | Path) -> ExtensionMetadata:
    """Parse and validate the text of a package.json.

    Args:
        text: Raw file content.
        extension_path: Directory the package.json was read from.

    Returns:
        The extension's metadata.

    Raises:
        ManifestError: If the text is not JSON or fails validation.
    """
    manifest_path = os.path.join(extension_path, MANIFEST_FILENAME)
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ManifestError(f"Invalid JSON: {e}", manifest_path) from e

    if not isinstance(data, dict):
        raise ManifestError("Top level of package.json must be an object", manifest_path)

    try:
        model = PackageJsonModel.model_validate(data)
    except ValidationError as e:
        raise ManifestError(str(e), manifest_path) from e

    return _to_metadata(model, str(extension_path))
