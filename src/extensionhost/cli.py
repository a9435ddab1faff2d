"""Command-line interface for extension-host."""

from __future__ import annotations

import argparse
import json
from collections.abc import Sequence
from pathlib import Path

from rich.console import Console

from extensionhost import __version__
from extensionhost.config import Config, load_config
from extensionhost.errors import CommandError
from extensionhost.extensions.commands import NO_ARGS, CommandFailure
from extensionhost.extensions.manager import ExtensionManager
from extensionhost.extensions.metadata import ALL_CATEGORIES
from extensionhost.extensions.query import CommandQueryOptions
from extensionhost.extensions.window_state import CommonExtensionWindowState
from extensionhost.interactive.commands import (
    commands_table,
    extensions_table,
    format_result,
)
from extensionhost.logging import setup_logging

console = Console()


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="extension-host",
        description="Discover, run and query command-contributing extensions",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=None,
        help="Increase verbosity (can be repeated)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Config file path (also where enable/disable choices are saved)",
    )
    parser.add_argument(
        "--extensions-path",
        action="append",
        type=Path,
        default=[],
        help="Directory to scan for extensions (can be repeated)",
    )

    subparsers = parser.add_subparsers(dest="mode", help="Operation")

    subparsers.add_parser("list", help="List discovered extensions")

    enable_parser = subparsers.add_parser("enable", help="Start an extension and keep it enabled")
    enable_parser.add_argument("name", help="Extension name")

    disable_parser = subparsers.add_parser(
        "disable", help="Stop an extension and keep it disabled"
    )
    disable_parser.add_argument("name", help="Extension name")

    commands_parser = subparsers.add_parser("commands", help="Query commands")
    commands_parser.add_argument(
        "--palette",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Only commands shown (or hidden) in the command palette",
    )
    commands_parser.add_argument(
        "--context-menu",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Only commands shown (or hidden) in the context menu",
    )
    commands_parser.add_argument(
        "--window-menu",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Only commands shown (or hidden) in the window menu",
    )
    commands_parser.add_argument(
        "--new-terminal-menu",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Only commands shown (or hidden) in the new terminal menu",
    )
    commands_parser.add_argument(
        "--terminal-tab-menu",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Only commands shown (or hidden) in the terminal tab menu",
    )
    commands_parser.add_argument(
        "--category",
        nargs="+",
        choices=ALL_CATEGORIES,
        help="Only commands in these categories",
    )
    commands_parser.add_argument(
        "--when",
        action="store_true",
        help="Apply each command's 'when' condition",
    )
    commands_parser.add_argument("--terminal", help="Pretend this terminal has focus")
    commands_parser.add_argument("--hyperlink", help="Pretend this URL is under the pointer")

    run_parser = subparsers.add_parser("run", help="Execute a command")
    run_parser.add_argument("command", help="ext:command, optionally with ?<url-encoded json>")
    run_parser.add_argument("--args", help="JSON arguments (overrides any embedded payload)")

    shell_parser = subparsers.add_parser("shell", help="Interactive shell")
    shell_parser.add_argument("--history", type=Path, help="History file")

    return parser


def apply_cli_overrides(config: Config, parsed: argparse.Namespace) -> Config:
    """Fold command-line options into the loaded config."""
    if parsed.extensions_path:
        config.extensions.paths = [str(p.expanduser()) for p in parsed.extensions_path]
    if parsed.verbose is not None:
        config.logging.verbose = parsed.verbose
    return config


def build_manager(config: Config, config_path: Path | None) -> ExtensionManager:
    """Create a manager from config and start the extensions that should run."""
    manager = ExtensionManager.from_config(config, config_path, application_version=__version__)

    active_extensions = dict(config.general.active_extensions)
    active_extensions.update(manager.config_database.get_general_config_copy().active_extensions)
    manager.start_up_extensions(active_extensions, config.extensions.start_by_default)
    return manager


def _cmd_list(manager: ExtensionManager, parsed: argparse.Namespace) -> int:
    console.print(extensions_table(manager))
    return 0


def _cmd_enable(manager: ExtensionManager, parsed: argparse.Namespace) -> int:
    if manager.registry.lookup(parsed.name) is None:
        console.print(f"[red]Unknown extension: {parsed.name}[/red]")
        return 1
    manager.enable_extension(parsed.name)
    if not manager.is_active(parsed.name):
        console.print(f"[red]{parsed.name} failed to start[/red]")
        return 1
    console.print(f"[green]Enabled {parsed.name}[/green]")
    return 0


def _cmd_disable(manager: ExtensionManager, parsed: argparse.Namespace) -> int:
    if manager.registry.lookup(parsed.name) is None:
        console.print(f"[red]Unknown extension: {parsed.name}[/red]")
        return 1
    manager.disable_extension(parsed.name)
    console.print(f"[green]Disabled {parsed.name}[/green]")
    return 0


def _cmd_commands(manager: ExtensionManager, parsed: argparse.Namespace) -> int:
    options = CommandQueryOptions(
        command_palette=parsed.palette,
        context_menu=parsed.context_menu,
        new_terminal_menu=parsed.new_terminal_menu,
        terminal_title_menu=parsed.terminal_tab_menu,
        window_menu=parsed.window_menu,
        categories=parsed.category,
        when=parsed.when,
    )
    state = CommonExtensionWindowState(
        active_terminal=parsed.terminal,
        active_hyperlink_url=parsed.hyperlink,
    )
    commands = manager.query_commands_with_extension_window_state(options, state)
    console.print(commands_table(commands))
    return 0


def _cmd_run(manager: ExtensionManager, parsed: argparse.Namespace) -> int:
    args = NO_ARGS
    if parsed.args is not None:
        try:
            args = json.loads(parsed.args)
        except json.JSONDecodeError as e:
            console.print(f"[red]Invalid --args JSON: {e}[/red]")
            return 1

    try:
        result = manager.execute_command(parsed.command, args)
    except CommandError as e:
        console.print(f"[red]{e}[/red]")
        return 1

    if isinstance(result, CommandFailure):
        console.print(f"[red]{result}[/red]")
        return 1

    text = format_result(result)
    if text:
        console.print(text, markup=False)
    return 0


def _cmd_shell(manager: ExtensionManager, parsed: argparse.Namespace) -> int:
    from extensionhost.interactive import InteractiveRepl

    InteractiveRepl(manager, history_file=parsed.history).run()
    return 0


_MODES = {
    "list": _cmd_list,
    "enable": _cmd_enable,
    "disable": _cmd_disable,
    "commands": _cmd_commands,
    "run": _cmd_run,
    "shell": _cmd_shell,
}


def run_cli(args: Sequence[str]) -> int:
    """Run the CLI with the given arguments."""
    parser = create_parser()
    parsed = parser.parse_args(args)

    if parsed.mode is None:
        parser.print_help()
        return 1

    config = apply_cli_overrides(load_config(config_path=parsed.config, reload=True), parsed)
    setup_logging(config.logging)

    manager = build_manager(config, parsed.config)
    try:
        return _MODES[parsed.mode](manager, parsed)
    finally:
        manager.shutdown()


def main() -> int:
    """Console script entry point."""
    import sys

    return run_cli(sys.argv[1:])
