"""Interactive shell for the extension host."""

from extensionhost.interactive.commands import CommandHandler
from extensionhost.interactive.repl import InteractiveRepl

__all__ = [
    "InteractiveRepl",
    "CommandHandler",
]
