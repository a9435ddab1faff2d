"""extension-host: discovers, runs and queries command-contributing extensions."""

__version__ = "0.1.0"

# Public API
from extensionhost.config import Config, ConfigDatabase, load_config
from extensionhost.errors import (
    CommandError,
    ExtensionHostError,
    MalformedCommandError,
    ManifestError,
    UnknownCommandError,
    UnknownExtensionError,
)
from extensionhost.extensions import (
    CommandFailure,
    CommandQueryOptions,
    CommonExtensionWindowState,
    ExtensionCommandContribution,
    ExtensionContext,
    ExtensionManager,
    ExtensionMetadata,
)
from extensionhost.shared_map import FileSharedMap, InMemorySharedMap, SharedMap

__all__ = [
    # Main entry point
    "ExtensionManager",
    "ExtensionContext",
    # Config
    "Config",
    "ConfigDatabase",
    "load_config",
    # Commands
    "CommandFailure",
    "CommandQueryOptions",
    "CommonExtensionWindowState",
    "ExtensionCommandContribution",
    "ExtensionMetadata",
    # Shared state
    "FileSharedMap",
    "InMemorySharedMap",
    "SharedMap",
    # Errors
    "CommandError",
    "ExtensionHostError",
    "MalformedCommandError",
    "ManifestError",
    "UnknownCommandError",
    "UnknownExtensionError",
]
