"""Extension discovery, lifecycle and command handling.

Example usage:
    from extensionhost.extensions import CommandQueryOptions, ExtensionManager

    manager = ExtensionManager(extension_paths=["/path/to/extensions"])
    manager.start_up_extensions({"autolink": False})

    for command in manager.query_commands(CommandQueryOptions(command_palette=True)):
        print(command.command, command.title)

    manager.execute_command('terminal-tools:clear?%7B%22all%22%3Atrue%7D')
"""

from extensionhost.extensions.commands import (
    NO_ARGS,
    CommandFailure,
    CommandInvocation,
    parse_command_string,
)
from extensionhost.extensions.context import (
    CommandMenuEntry,
    CommandsRegistry,
    Disposable,
    ExtensionContext,
)
from extensionhost.extensions.ipc import ExtensionManagerIpc
from extensionhost.extensions.manager import ActiveExtension, ExtensionManager
from extensionhost.extensions.manifest import parse_package_json
from extensionhost.extensions.metadata import (
    ALL_CATEGORIES,
    Category,
    ExtensionCommandContribution,
    ExtensionMetadata,
    WhenVariables,
)
from extensionhost.extensions.query import CommandQueryOptions
from extensionhost.extensions.registry import ExtensionRegistry
from extensionhost.extensions.window_state import CommonExtensionWindowState

__all__ = [
    # Lifecycle
    "ActiveExtension",
    "ExtensionManager",
    "ExtensionManagerIpc",
    "ExtensionRegistry",
    # Extension side
    "CommandMenuEntry",
    "CommandsRegistry",
    "Disposable",
    "ExtensionContext",
    # Metadata
    "ALL_CATEGORIES",
    "Category",
    "ExtensionCommandContribution",
    "ExtensionMetadata",
    "WhenVariables",
    "parse_package_json",
    # Queries and dispatch
    "CommandFailure",
    "CommandInvocation",
    "CommandQueryOptions",
    "CommonExtensionWindowState",
    "NO_ARGS",
    "parse_command_string",
]
