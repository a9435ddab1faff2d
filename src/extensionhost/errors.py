"""Exception types raised by the extension host."""

from __future__ import annotations


class ExtensionHostError(Exception):
    """Base class for all extension host errors."""


class ManifestError(ExtensionHostError):
    """A package.json could not be read or failed validation."""

    def __init__(self, message: str, path: str | None = None) -> None:
        self.path = path
        super().__init__(f"{path}: {message}" if path else message)


class ExtensionLoadError(ExtensionHostError):
    """An extension's entry point could not be imported or activated."""

    def __init__(self, extension_name: str, message: str) -> None:
        self.extension_name = extension_name
        super().__init__(f"Extension '{extension_name}': {message}")


class ContextDisposedError(ExtensionHostError):
    """Something was registered on a context after its extension stopped."""


class WhenExpressionError(ExtensionHostError):
    """A "when" condition string could not be parsed."""


class CommandError(ExtensionHostError):
    """Base class for command dispatch failures."""


class MalformedCommandError(CommandError):
    """The command string is not of the form ``extension:command[?args]``."""


class UnknownExtensionError(CommandError):
    """No active extension matches the command's extension name."""

    def __init__(self, extension_name: str, command: str) -> None:
        self.extension_name = extension_name
        self.command = command
        super().__init__(
            f"Unable to find extension with name '{extension_name}' for command '{command}'."
        )


class UnknownCommandError(CommandError):
    """The extension is active but has no handler for the command."""

    def __init__(self, extension_name: str, command: str) -> None:
        self.extension_name = extension_name
        self.command = command
        super().__init__(f"Unable to find command '{command}' in extension '{extension_name}'.")
