"""The capability object handed to an extension when it activates.

Through its ExtensionContext an extension registers command handlers,
title/icon customizers, session backends and terminal theme providers.
Everything registered lives until the lifecycle manager disposes the
context when the extension stops.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any

from extensionhost.errors import ContextDisposedError
from extensionhost.extensions.commands import NO_ARGS
from extensionhost.extensions.metadata import (
    ExtensionCommandContribution,
    ExtensionContributes,
    ExtensionMetadata,
    SessionBackendMetadata,
    TerminalThemeProviderMetadata,
)
from extensionhost.extensions.window_state import CommonExtensionWindowState
from extensionhost.logging import get_extension_logger

CommandHandler = Callable[[Any], Any]
CommandCustomizer = Callable[[], dict[str, Any]]


class Disposable:
    """Handle returned by registrations; ``dispose()`` undoes it once."""

    def __init__(self, on_dispose: Callable[[], None]) -> None:
        self._on_dispose: Callable[[], None] | None = on_dispose

    def dispose(self) -> None:
        if self._on_dispose is not None:
            on_dispose = self._on_dispose
            self._on_dispose = None
            on_dispose()


@dataclass(frozen=True)
class CommandMenuEntry:
    """A declared command together with the menus it appears in."""

    extension_name: str
    command_contribution: ExtensionCommandContribution
    command_palette: bool = True
    context_menu: bool = False
    new_terminal: bool = False
    terminal_tab: bool = False
    window_menu: bool = False


@dataclass(frozen=True)
class LoadedSessionBackendContribution:
    metadata: ExtensionMetadata
    session_backend_metadata: SessionBackendMetadata
    session_backend: Any


@dataclass(frozen=True)
class LoadedTerminalThemeProviderContribution:
    metadata: ExtensionMetadata
    terminal_theme_provider_metadata: TerminalThemeProviderMetadata
    terminal_theme_provider: Any


def _build_menu_entries(
    extension_name: str, contributes: ExtensionContributes
) -> dict[str, list[CommandMenuEntry]]:
    menus = contributes.menus

    def shown(placements: Any, command: str, default: bool) -> bool:
        for placement in placements:
            if placement.command == command:
                return placement.show
        return default

    entries: dict[str, list[CommandMenuEntry]] = {}
    for contribution in contributes.commands:
        command = contribution.command
        entry = CommandMenuEntry(
            extension_name=extension_name,
            command_contribution=contribution,
            command_palette=shown(menus.command_palette, command, True),
            context_menu=shown(menus.context_menu, command, False),
            new_terminal=shown(menus.new_terminal, command, False),
            terminal_tab=shown(menus.terminal_tab, command, False),
            window_menu=shown(menus.window_menu, command, False),
        )
        entries.setdefault(command, []).append(entry)
    return entries


class CommandsRegistry:
    """Per-extension table of command handlers, customizers and menu entries.

    Menu entries come from the manifest and exist from construction.
    Handlers and customizers are registered by the extension's code.
    """

    def __init__(
        self,
        extension_name: str,
        contributes: ExtensionContributes,
        log: logging.Logger,
    ) -> None:
        self._extension_name = extension_name
        self._log = log
        self._disposed = False
        self._command_to_menu_entries = _build_menu_entries(extension_name, contributes)
        self._command_functions: dict[str, CommandHandler] = {}
        self._customizers: dict[str, CommandCustomizer] = {}

    def _qualify(self, command: str) -> str:
        if ":" in command:
            return command
        return f"{self._extension_name}:{command}"

    def _check_alive(self) -> None:
        if self._disposed:
            raise ContextDisposedError(
                f"Extension '{self._extension_name}' has been stopped; its context is disposed."
            )

    def register_command(
        self,
        command: str,
        handler: CommandHandler,
        customizer: CommandCustomizer | None = None,
    ) -> Disposable:
        """Register the function that runs ``command``.

        Args:
            command: Full ``extension:command`` id, or just the part after
                the colon.
            handler: Called with the command's argument object.
            customizer: Optional, see ``register_customizer``.
        """
        self._check_alive()
        command = self._qualify(command)
        if command not in self._command_to_menu_entries:
            self._log.warning(
                "Command '%s' is registered but not declared in package.json.", command
            )
        self._command_functions[command] = handler
        customizer_disposable = (
            self.register_customizer(command, customizer) if customizer is not None else None
        )

        def unregister() -> None:
            if self._command_functions.get(command) is handler:
                del self._command_functions[command]
            if customizer_disposable is not None:
                customizer_disposable.dispose()

        return Disposable(unregister)

    def register_customizer(self, command: str, customizer: CommandCustomizer) -> Disposable:
        """Register a function that supplies dynamic fields for ``command``.

        The customizer is called with no arguments each time the command
        is listed by a query and returns a dict of contribution fields to
        override (``title``, ``icon``, ``checked`` and so on).
        """
        self._check_alive()
        command = self._qualify(command)
        self._customizers[command] = customizer

        def unregister() -> None:
            if self._customizers.get(command) is customizer:
                del self._customizers[command]

        return Disposable(unregister)

    def get_command_function(self, command: str) -> CommandHandler | None:
        return self._command_functions.get(command)

    def get_function_customizer(self, command: str) -> CommandCustomizer | None:
        return self._customizers.get(command)

    def get_menu_entries(self, command: str) -> list[CommandMenuEntry]:
        return list(self._command_to_menu_entries.get(command, []))

    def menu_entries(self) -> Iterator[CommandMenuEntry]:
        """All menu entries in manifest declaration order."""
        for entries in self._command_to_menu_entries.values():
            yield from entries

    def dispose(self) -> None:
        self._disposed = True
        self._command_functions.clear()
        self._customizers.clear()


class ExtensionContext:
    """Everything an extension may touch while it is active."""

    def __init__(
        self,
        metadata: ExtensionMetadata,
        window_state: CommonExtensionWindowState,
        application_version: str = "",
        command_executor: Callable[[str, Any], Any] | None = None,
    ) -> None:
        self._metadata = metadata
        self._window_state = window_state
        self._application_version = application_version
        self._command_executor = command_executor
        self._disposed = False
        self.logger = get_extension_logger(metadata.name)
        self.commands = CommandsRegistry(metadata.name, metadata.contributes, self.logger)
        self._session_backends: list[LoadedSessionBackendContribution] = []
        self._terminal_theme_providers: list[LoadedTerminalThemeProviderContribution] = []

    @property
    def name(self) -> str:
        return self._metadata.name

    @property
    def metadata(self) -> ExtensionMetadata:
        return self._metadata

    @property
    def extension_path(self) -> str:
        return self._metadata.path

    @property
    def application_version(self) -> str:
        return self._application_version

    @property
    def window_state(self) -> CommonExtensionWindowState:
        """The live focus state (temporarily substituted during customizer calls)."""
        return self._window_state

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    @property
    def session_backends(self) -> list[LoadedSessionBackendContribution]:
        return list(self._session_backends)

    @property
    def terminal_theme_providers(self) -> list[LoadedTerminalThemeProviderContribution]:
        return list(self._terminal_theme_providers)

    def _check_alive(self) -> None:
        if self._disposed:
            raise ContextDisposedError(
                f"Extension '{self.name}' has been stopped; its context is disposed."
            )

    def execute_command(self, command: str, args: Any = None) -> Any:
        """Run another command through the host's dispatcher."""
        self._check_alive()
        if self._command_executor is None:
            raise RuntimeError("This context has no command dispatcher attached.")
        return self._command_executor(command, NO_ARGS if args is None else args)

    def register_session_backend(self, name: str, backend: Any) -> Disposable:
        """Provide the implementation of a session backend declared in package.json."""
        self._check_alive()
        for backend_metadata in self._metadata.contributes.session_backends:
            if backend_metadata.name == name:
                contribution = LoadedSessionBackendContribution(
                    metadata=self._metadata,
                    session_backend_metadata=backend_metadata,
                    session_backend=backend,
                )
                self._session_backends.append(contribution)
                return Disposable(lambda: self._remove(self._session_backends, contribution))

        self.logger.warning(
            "Unknown session backend '%s' given to register_session_backend().", name
        )
        return Disposable(lambda: None)

    def register_terminal_theme_provider(self, name: str, provider: Any) -> Disposable:
        """Provide the implementation of a terminal theme provider declared in package.json."""
        self._check_alive()
        for provider_metadata in self._metadata.contributes.terminal_theme_providers:
            if provider_metadata.name == name:
                contribution = LoadedTerminalThemeProviderContribution(
                    metadata=self._metadata,
                    terminal_theme_provider_metadata=provider_metadata,
                    terminal_theme_provider=provider,
                )
                self._terminal_theme_providers.append(contribution)
                return Disposable(
                    lambda: self._remove(self._terminal_theme_providers, contribution)
                )

        self.logger.warning(
            "Unknown terminal theme provider '%s' given to register_terminal_theme_provider().",
            name,
        )
        return Disposable(lambda: None)

    @staticmethod
    def _remove(items: list[Any], item: Any) -> None:
        if item in items:
            items.remove(item)

    def dispose(self) -> None:
        """Tear down everything the extension registered. Safe to call twice."""
        if self._disposed:
            return
        self._disposed = True
        self.commands.dispose()
        self._session_backends.clear()
        self._terminal_theme_providers.clear()
