"""Interactive shell for poking at a running extension manager."""

from __future__ import annotations

from typing import TYPE_CHECKING

from prompt_toolkit import PromptSession
from prompt_toolkit.auto_suggest import AutoSuggestFromHistory
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.history import FileHistory
from rich.console import Console

from extensionhost import __version__
from extensionhost.extensions.query import CommandQueryOptions
from extensionhost.interactive.commands import CommandHandler

if TYPE_CHECKING:
    from pathlib import Path

    from extensionhost.extensions.manager import ExtensionManager

console = Console()

SLASH_COMMANDS = [
    "/help",
    "/extensions",
    "/enable",
    "/disable",
    "/commands",
    "/state",
    "/terminal",
    "/hyperlink",
    "/quit",
]


class InteractiveRepl:
    """Prompt loop that feeds lines to a CommandHandler."""

    def __init__(
        self,
        manager: ExtensionManager,
        history_file: Path | None = None,
    ) -> None:
        self.manager = manager
        self.commands = CommandHandler(manager)

        history = FileHistory(str(history_file)) if history_file else None
        self.session: PromptSession[str] = PromptSession(
            history=history,
            auto_suggest=AutoSuggestFromHistory(),
        )

    def completion_words(self) -> list[str]:
        """Slash commands plus the ids of all known commands."""
        words = list(SLASH_COMMANDS)
        words.extend(
            c.command for c in self.manager.query_commands(CommandQueryOptions(when=False))
        )
        words.extend(m.name for m in self.manager.get_extension_metadata())
        return words

    def run(self) -> None:
        """Run until /quit or end of input."""
        console.print(f"[bold]Extension Host[/bold] v{__version__} - Interactive Mode")
        console.print("Type [bold]/help[/bold] for commands, [bold]/quit[/bold] to exit.\n")

        while self.commands.running:
            try:
                line = self.session.prompt(
                    "ext> ",
                    completer=WordCompleter(self.completion_words(), sentence=True),
                )
            except KeyboardInterrupt:
                continue
            except EOFError:
                break

            self.manager.ipc.poll()
            self.commands.handle(line)

    def stop(self) -> None:
        """Stop the loop after the current line."""
        self.commands.running = False
