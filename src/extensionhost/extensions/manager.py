"""Extension lifecycle, command queries and command dispatch.

The ExtensionManager is the single owner of the set of running
extensions. It turns the desired state (defaults, user config, explicit
enable/disable calls and requests from other processes) into running or
stopped extensions, and answers "which commands apply right now"
against the current window state.

All methods are synchronous and expected to be called from one thread.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from types import ModuleType
from typing import TYPE_CHECKING, Any

from extensionhost.config.database import ConfigDatabase
from extensionhost.config.paths import get_shared_state_path, get_user_config_path
from extensionhost.errors import UnknownCommandError, UnknownExtensionError
from extensionhost.extensions.commands import (
    NO_ARGS,
    CommandFailure,
    parse_command_string,
    split_command_name,
)
from extensionhost.extensions.context import (
    CommandCustomizer,
    CommandHandler,
    ExtensionContext,
    LoadedSessionBackendContribution,
    LoadedTerminalThemeProviderContribution,
)
from extensionhost.extensions.ipc import ExtensionManagerIpc
from extensionhost.extensions.loader import load_extension_module, unload_extension_module
from extensionhost.extensions.metadata import (
    ExtensionCommandContribution,
    ExtensionDesiredState,
    ExtensionMetadata,
    split_overrides,
)
from extensionhost.extensions.query import (
    CommandQueryOptions,
    WhenEvaluator,
    create_entry_predicate,
    sort_commands_in_place,
)
from extensionhost.extensions.registry import ExtensionRegistry, ManifestParser
from extensionhost.extensions.window_state import (
    CommonExtensionWindowState,
    create_when_variables,
    substituted_window_state,
)
from extensionhost.shared_map.base import InMemorySharedMap, SharedMap
from extensionhost.shared_map.file_map import FileSharedMap
from extensionhost.when.evaluator import BooleanExpressionEvaluator

if TYPE_CHECKING:
    from extensionhost.config.schema import Config

_log = logging.getLogger(__name__)

EvaluatorFactory = Callable[[Mapping[str, Any]], WhenEvaluator]


@dataclass
class ActiveExtension:
    """A running extension."""

    metadata: ExtensionMetadata
    public_api: Any
    context: ExtensionContext
    module: ModuleType | None


class ExtensionManager:
    """Starts, stops and queries extensions.

    Args:
        config_database: Persisted user configuration. Written on every
            enable/disable.
        shared_map: State shared with other processes.
        extension_paths: Root directories to scan for extensions.
        application_version: Exposed to extensions through their context.
        manifest_parser: Replaces the default package.json parser.
        evaluator_factory: Builds a "when" evaluator from a variables mapping.
    """

    def __init__(
        self,
        config_database: ConfigDatabase | None = None,
        shared_map: SharedMap | None = None,
        extension_paths: Iterable[str | Path] = (),
        application_version: str = "",
        *,
        manifest_parser: ManifestParser | None = None,
        evaluator_factory: EvaluatorFactory | None = None,
    ) -> None:
        self._config_database = config_database or ConfigDatabase()
        self._application_version = application_version
        self._evaluator_factory: EvaluatorFactory = (
            evaluator_factory or BooleanExpressionEvaluator
        )
        self._active_extensions: list[ActiveExtension] = []
        self._desired_state_listeners: list[Callable[[], None]] = []
        self._window_state = CommonExtensionWindowState()

        self._extension_paths = [str(p) for p in extension_paths]
        self._registry = ExtensionRegistry(manifest_parser)
        self._registry.scan(self._extension_paths)

        if shared_map is None:
            shared_map = InMemorySharedMap()
        self._ipc = ExtensionManagerIpc(shared_map)
        self._ipc.on_enable_extension(self.enable_extension)
        self._ipc.on_disable_extension(self.disable_extension)
        self._ipc.set_extension_metadata(self._registry.list_extensions())

    @classmethod
    def from_config(
        cls,
        config: Config,
        config_path: str | Path | None = None,
        application_version: str = "",
    ) -> ExtensionManager:
        """Build a manager wired to the on-disk config and shared state files."""
        database_path = config_path or get_user_config_path()
        shared_path = config.extensions.shared_state_file or get_shared_state_path()
        shared_map: SharedMap = (
            FileSharedMap(Path(shared_path).expanduser())
            if shared_path is not None
            else InMemorySharedMap()
        )
        return cls(
            config_database=ConfigDatabase(database_path),
            shared_map=shared_map,
            extension_paths=config.extensions.paths,
            application_version=application_version,
        )

    @property
    def ipc(self) -> ExtensionManagerIpc:
        return self._ipc

    @property
    def config_database(self) -> ConfigDatabase:
        return self._config_database

    @property
    def registry(self) -> ExtensionRegistry:
        return self._registry

    # -- Startup and desired state --

    def start_up_extensions(
        self,
        active_extensions_config: Mapping[str, bool] | None,
        start_by_default: bool = True,
    ) -> None:
        """Compute the desired state and start every extension that should run.

        Args:
            active_extensions_config: Explicit per-name choices from the user
                config. Names of unknown extensions are ignored.
            start_by_default: Desired state of extensions not mentioned in
                ``active_extensions_config``.
        """
        desired_state: ExtensionDesiredState = {
            metadata.name: start_by_default for metadata in self._ipc.get_extension_metadata()
        }

        if active_extensions_config is not None:
            for name, enabled in active_extensions_config.items():
                if self._registry.lookup(name) is not None:
                    desired_state[name] = bool(enabled)

        for name, enabled in desired_state.items():
            if enabled:
                metadata = self._registry.lookup(name)
                if metadata is not None:
                    self._start_extension(metadata)

        self._ipc.set_desired_state(desired_state)

    def get_desired_state(self) -> ExtensionDesiredState:
        return self._ipc.get_desired_state()

    def on_desired_state_changed(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Register a listener fired after each successful enable or disable.

        Returns:
            A function to unregister the listener.
        """
        self._desired_state_listeners.append(callback)

        def unregister() -> None:
            if callback in self._desired_state_listeners:
                self._desired_state_listeners.remove(callback)

        return unregister

    def _fire_desired_state_changed(self) -> None:
        for listener in list(self._desired_state_listeners):
            try:
                listener()
            except Exception as e:
                _log.warning("Desired state listener error: %s", e)

    def _record_desired_state(self, name: str, enabled: bool) -> None:
        self._config_database.set_active_extension(name, enabled)

        desired_state = self._ipc.get_desired_state()
        desired_state[name] = enabled
        self._ipc.set_desired_state(desired_state)

    def enable_extension(self, name: str) -> None:
        """Start an extension and remember that it should run."""
        metadata = self._registry.lookup(name)
        if metadata is None:
            _log.warning("Unable to find extensions metadata for name '%s'.", name)
            return

        if self._get_active_extension(name) is not None:
            _log.warning("Tried to enable active extension '%s'.", name)
            return

        if self._start_extension(metadata) is None:
            _log.warning("Extension '%s' failed to start; desired state left unchanged.", name)
            return

        self._record_desired_state(name, True)
        self._fire_desired_state_changed()

    def disable_extension(self, name: str) -> None:
        """Stop an extension and remember that it should not run."""
        metadata = self._registry.lookup(name)
        if metadata is None:
            _log.warning("Unable to find extensions metadata for name '%s'.", name)
            return

        active_extension = self._get_active_extension(name)
        if active_extension is None:
            _log.warning("Tried to disable inactive extension '%s'.", name)
            return

        self._stop_extension(active_extension)

        self._record_desired_state(name, False)
        self._fire_desired_state_changed()

    def shutdown(self) -> None:
        """Stop every running extension, most recently started first.

        The desired state is left as it is so the next start-up restores it.
        """
        for active_extension in reversed(list(self._active_extensions)):
            self._stop_extension(active_extension)
        self._ipc.close()

    # -- Activation --

    def _start_extension(self, metadata: ExtensionMetadata) -> ActiveExtension | None:
        running = self._get_active_extension(metadata.name)
        if running is not None:
            _log.debug("Extension '%s' is already running", metadata.name)
            return running

        _log.info("Starting extension '%s'", metadata.name)

        context = ExtensionContext(
            metadata,
            self._window_state,
            application_version=self._application_version,
            command_executor=self.execute_command,
        )

        module: ModuleType | None = None
        public_api: Any = None
        if metadata.main is not None:
            module = load_extension_module(metadata)
            if module is None:
                context.dispose()
                return None
            try:
                public_api = module.activate(context)
            except Exception as e:
                _log.warning(
                    "Exception occurred while activating extension %s. %s",
                    metadata.name,
                    e,
                    exc_info=True,
                )
                context.dispose()
                unload_extension_module(metadata)
                return None

        active_extension = ActiveExtension(
            metadata=metadata, public_api=public_api, context=context, module=module
        )
        self._active_extensions.append(active_extension)
        return active_extension

    def _stop_extension(self, active_extension: ActiveExtension) -> None:
        name = active_extension.metadata.name
        _log.info("Stopping extension '%s'", name)

        module = active_extension.module
        if module is not None:
            deactivate = getattr(module, "deactivate", None)
            if deactivate is not None:
                try:
                    deactivate(True)
                except Exception as e:
                    _log.warning(
                        "Exception occurred while deactivating extension %s. %s",
                        name,
                        e,
                        exc_info=True,
                    )
            unload_extension_module(active_extension.metadata)

        active_extension.context.dispose()
        self._active_extensions = [
            ae for ae in self._active_extensions if ae is not active_extension
        ]

    def _get_active_extension(self, name: str) -> ActiveExtension | None:
        for active_extension in self._active_extensions:
            if active_extension.metadata.name == name:
                return active_extension
        return None

    # -- Introspection --

    def get_extension_metadata(self) -> list[ExtensionMetadata]:
        return self._ipc.get_extension_metadata()

    def get_active_extension_metadata(self) -> list[ExtensionMetadata]:
        return [ae.metadata for ae in self._active_extensions]

    def get_active_extensions(self) -> list[ActiveExtension]:
        return list(self._active_extensions)

    def get_extension_context_by_name(self, name: str) -> ExtensionContext | None:
        active_extension = self._get_active_extension(name)
        return active_extension.context if active_extension is not None else None

    def is_active(self, name: str) -> bool:
        return self._get_active_extension(name) is not None

    def get_session_backend_contributions(self) -> list[LoadedSessionBackendContribution]:
        return [
            contribution
            for ae in self._active_extensions
            for contribution in ae.context.session_backends
        ]

    def get_session_backend(self, backend_type: str) -> Any:
        for contribution in self.get_session_backend_contributions():
            if contribution.session_backend_metadata.type == backend_type:
                return contribution.session_backend
        return None

    def get_terminal_theme_provider_contributions(
        self,
    ) -> list[LoadedTerminalThemeProviderContribution]:
        return [
            contribution
            for ae in self._active_extensions
            for contribution in ae.context.terminal_theme_providers
        ]

    # -- Window state --

    def set_active_window(self, window: Any) -> None:
        self._window_state.active_window = window

    def set_active_terminal(self, terminal: Any) -> None:
        self._window_state.active_terminal = terminal

    def set_active_hyperlink_url(self, url: str | None) -> None:
        self._window_state.active_hyperlink_url = url

    def copy_extension_window_state(self) -> CommonExtensionWindowState:
        return self._window_state.copy()

    # -- Commands --

    def _get_command(self, command: str) -> CommandHandler | None:
        split = split_command_name(command)
        if split is None:
            _log.warning(
                "Command '%s' does not have the right form. (Wrong number of colons.)", command
            )
            return None
        extension_name, command_name = split
        active_extension = self._get_active_extension(extension_name)
        if active_extension is None:
            return None
        return active_extension.context.commands.get_command_function(command_name)

    def has_command(self, command: str) -> bool:
        return self._get_command(command) is not None

    def execute_command(self, command: str, args: Any = NO_ARGS) -> Any:
        """Run a command.

        Args:
            command: ``extension:command`` with an optional ``?`` and
                URL-encoded JSON arguments.
            args: Arguments for the handler; overrides any embedded payload.

        Returns:
            The handler's return value, or a CommandFailure if it raised.

        Raises:
            MalformedCommandError: The command string is malformed.
            UnknownExtensionError: No active extension has that name.
            UnknownCommandError: The extension has no handler for it.
        """
        invocation = parse_command_string(command, args)

        active_extension = self._get_active_extension(invocation.extension_name)
        if active_extension is None:
            raise UnknownExtensionError(invocation.extension_name, invocation.command)

        command_func = active_extension.context.commands.get_command_function(invocation.command)
        if command_func is None:
            raise UnknownCommandError(invocation.extension_name, invocation.command)

        return self._run_command_func(invocation.command, command_func, invocation.args)

    def _run_command_func(self, name: str, command_func: CommandHandler, args: Any) -> Any:
        try:
            return command_func(args)
        except Exception as e:
            _log.warning("Command '%s' threw an exception. %s", name, e, exc_info=True)
            return CommandFailure(command=name, error=e)

    def query_commands(self, options: CommandQueryOptions) -> list[ExtensionCommandContribution]:
        """Query commands against the current window state."""
        return self.query_commands_with_extension_window_state(options, self._window_state)

    def query_commands_with_extension_window_state(
        self,
        options: CommandQueryOptions,
        state: CommonExtensionWindowState,
    ) -> list[ExtensionCommandContribution]:
        """Query commands as if the window state were ``state``.

        Only commands of running extensions are considered. Customizers
        run while the live window state is temporarily replaced by
        ``state``.
        """
        evaluator = (
            self._evaluator_factory(create_when_variables(state).to_dict())
            if options.when
            else None
        )
        predicate = create_entry_predicate(options, evaluator)

        entries: list[ExtensionCommandContribution] = []
        for active_extension in list(self._active_extensions):
            commands = active_extension.context.commands
            for entry in commands.menu_entries():
                if not predicate(entry):
                    continue

                contribution = entry.command_contribution
                customizer = commands.get_function_customizer(contribution.command)
                if customizer is not None:
                    contribution = self._customize(contribution, customizer, state)
                entries.append(contribution)

        sort_commands_in_place(entries)
        return entries

    def _customize(
        self,
        contribution: ExtensionCommandContribution,
        customizer: CommandCustomizer,
        state: CommonExtensionWindowState,
    ) -> ExtensionCommandContribution:
        # Copy first: ``state`` may be the live state object itself
        with substituted_window_state(self._window_state, state.copy()):
            try:
                overrides = customizer()
            except Exception as e:
                _log.warning(
                    "Customizer for command '%s' threw an exception. %s",
                    contribution.command,
                    e,
                    exc_info=True,
                )
                return contribution
        if overrides is not None and not isinstance(overrides, Mapping):
            _log.warning(
                "Customizer for command '%s' returned %r instead of a dict.",
                contribution.command,
                type(overrides).__name__,
            )
            return contribution
        if not overrides:
            return contribution

        changes, rejected = split_overrides(overrides)
        if rejected:
            _log.warning(
                "Customizer for command '%s' returned invalid values for %s; ignored.",
                contribution.command,
                ", ".join(rejected),
            )
        return contribution.with_overrides(changes)
