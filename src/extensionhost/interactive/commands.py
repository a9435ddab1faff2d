"""Slash command handlers for the interactive shell."""

from __future__ import annotations

import json
import shlex
from typing import TYPE_CHECKING, Any

from rich.console import Console
from rich.table import Table

from extensionhost.errors import CommandError
from extensionhost.extensions.commands import CommandFailure
from extensionhost.extensions.query import CommandQueryOptions

if TYPE_CHECKING:
    from extensionhost.extensions.manager import ExtensionManager
    from extensionhost.extensions.metadata import ExtensionCommandContribution

console = Console()


def format_result(result: Any) -> str:
    """Render a command's return value for display."""
    if result is None:
        return ""
    try:
        return json.dumps(result, indent=2, default=str)
    except (TypeError, ValueError):
        return repr(result)


def extensions_table(manager: ExtensionManager) -> Table:
    desired = manager.get_desired_state()
    table = Table(title="Extensions")
    table.add_column("Name", style="bold")
    table.add_column("Version")
    table.add_column("Desired")
    table.add_column("Active")
    table.add_column("Description")

    for metadata in manager.get_extension_metadata():
        wanted = desired.get(metadata.name)
        table.add_row(
            metadata.name,
            metadata.version or "-",
            "-" if wanted is None else ("on" if wanted else "off"),
            "[green]yes[/green]" if manager.is_active(metadata.name) else "[dim]no[/dim]",
            metadata.description or "",
        )
    return table


def commands_table(commands: list[ExtensionCommandContribution], title: str = "Commands") -> Table:
    table = Table(title=title)
    table.add_column("Command", style="bold")
    table.add_column("Title")
    table.add_column("Category")
    table.add_column("Order", justify="right")
    table.add_column("When", style="dim")

    for command in commands:
        table.add_row(
            command.command,
            command.title,
            command.category,
            str(command.order),
            command.when,
        )
    return table


class CommandHandler:
    """Handles slash commands and command strings typed into the shell."""

    def __init__(self, manager: ExtensionManager) -> None:
        self.manager = manager
        self.running = True

    def handle(self, line: str) -> None:
        """Handle one line of input."""
        line = line.strip()
        if not line:
            return
        if not line.startswith("/"):
            self.run_command(line)
            return

        try:
            parts = shlex.split(line)
        except ValueError as e:
            console.print(f"[red]{e}[/red]")
            return

        cmd = parts[0].lower()
        args = parts[1:]

        handlers = {
            "/help": self._cmd_help,
            "/extensions": self._cmd_extensions,
            "/enable": self._cmd_enable,
            "/disable": self._cmd_disable,
            "/commands": self._cmd_commands,
            "/state": self._cmd_state,
            "/terminal": self._cmd_terminal,
            "/hyperlink": self._cmd_hyperlink,
            "/quit": self._cmd_quit,
        }

        handler = handlers.get(cmd)
        if handler:
            handler(args)
        else:
            console.print(f"[red]Unknown command: {cmd}[/red]")
            console.print("Type [bold]/help[/bold] for available commands.")

    def run_command(self, command: str) -> None:
        """Execute a command string and print its result."""
        try:
            result = self.manager.execute_command(command)
        except CommandError as e:
            console.print(f"[red]{e}[/red]")
            return

        if isinstance(result, CommandFailure):
            console.print(f"[red]{result}[/red]")
            return

        text = format_result(result)
        if text:
            console.print(text, markup=False)

    def _cmd_help(self, args: list[str]) -> None:
        """Show available commands."""
        table = Table(title="Available Commands")
        table.add_column("Command", style="bold")
        table.add_column("Description")

        commands = [
            ("/help", "Show this help message"),
            ("/extensions", "List discovered extensions"),
            ("/enable <name>", "Start an extension and keep it enabled"),
            ("/disable <name>", "Stop an extension and keep it disabled"),
            ("/commands \\[all]", "List applicable commands (all: skip 'when' filtering)"),
            ("/state", "Show the current window state"),
            ("/terminal <id>|off", "Set or clear the focused terminal"),
            ("/hyperlink <url>|off", "Set or clear the hovered hyperlink"),
            ("/quit", "Exit the shell"),
            ("ext:command[?json]", "Anything else runs as a command"),
        ]

        for cmd, desc in commands:
            table.add_row(cmd, desc)

        console.print(table)

    def _cmd_extensions(self, args: list[str]) -> None:
        console.print(extensions_table(self.manager))

    def _cmd_enable(self, args: list[str]) -> None:
        if not args:
            console.print("[red]Usage: /enable <name>[/red]")
            return
        name = args[0]
        self.manager.enable_extension(name)
        if self.manager.is_active(name):
            console.print(f"[green]Enabled {name}[/green]")
        else:
            console.print(f"[yellow]{name} is not running (see log for details)[/yellow]")

    def _cmd_disable(self, args: list[str]) -> None:
        if not args:
            console.print("[red]Usage: /disable <name>[/red]")
            return
        name = args[0]
        self.manager.disable_extension(name)
        if self.manager.is_active(name):
            console.print(f"[yellow]{name} is still running (see log for details)[/yellow]")
        else:
            console.print(f"[green]Disabled {name}[/green]")

    def _cmd_commands(self, args: list[str]) -> None:
        use_when = not (args and args[0] == "all")
        options = CommandQueryOptions(command_palette=True, when=use_when)
        commands = self.manager.query_commands(options)
        if not commands:
            console.print("[dim]No commands[/dim]")
            return
        console.print(commands_table(commands))

    def _cmd_state(self, args: list[str]) -> None:
        state = self.manager.copy_extension_window_state()
        console.print("[bold]Window state:[/bold]")
        console.print(f"  Window: {state.active_window or '-'}")
        console.print(f"  Terminal: {state.active_terminal or '-'}")
        console.print(f"  Hyperlink: {state.active_hyperlink_url or '-'}")

    def _cmd_terminal(self, args: list[str]) -> None:
        if not args:
            console.print("[red]Usage: /terminal <id>|off[/red]")
            return
        self.manager.set_active_terminal(None if args[0] == "off" else args[0])
        self._cmd_state([])

    def _cmd_hyperlink(self, args: list[str]) -> None:
        if not args:
            console.print("[red]Usage: /hyperlink <url>|off[/red]")
            return
        self.manager.set_active_hyperlink_url(None if args[0] == "off" else args[0])
        self._cmd_state([])

    def _cmd_quit(self, args: list[str]) -> None:
        self.running = False
