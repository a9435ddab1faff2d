"""Command strings and invocation results.

The external form of a command is ``extension:command`` optionally
followed by ``?`` and a URL-encoded JSON payload holding its arguments,
e.g. ``autolink:open?%7B%22x%22%3A1%7D``. Inside the host a command is
handled as a CommandInvocation.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import unquote

from extensionhost.errors import MalformedCommandError

INTERNAL_COMMANDS_EXTENSION = "internal-commands"

# Extension names that resolve to another extension.
EXTENSION_ALIASES = {"extraterm": INTERNAL_COMMANDS_EXTENSION}


class _NoArgs:
    """Sentinel type: the caller passed no arguments."""

    def __repr__(self) -> str:
        return "NO_ARGS"


NO_ARGS: Any = _NoArgs()


@dataclass(frozen=True)
class CommandInvocation:
    """A parsed command string.

    ``command`` keeps the text the caller used (``extraterm:foo`` stays as
    is) while ``extension_name`` is the extension that will run it.
    """

    extension_name: str
    command: str
    args: Any = field(default_factory=dict)


@dataclass(frozen=True)
class CommandFailure:
    """Result of a command whose handler raised."""

    command: str
    error: BaseException

    def __bool__(self) -> bool:
        return False

    def __str__(self) -> str:
        return f"Command '{self.command}' failed: {self.error}"


def split_command_name(command: str) -> tuple[str, str] | None:
    """Split ``ext:cmd`` into (extension name, command) with aliases applied.

    Returns None when the text does not contain exactly one colon.
    """
    parts = command.split(":")
    if len(parts) != 2:
        return None
    extension_name = EXTENSION_ALIASES.get(parts[0], parts[0])
    return extension_name, command


def parse_command_string(command: str, args: Any = NO_ARGS) -> CommandInvocation:
    """Parse an external command string.

    Args:
        command: ``extension:command[?urlEncodedJson]``.
        args: Arguments from the caller. When given they win over any
            payload embedded in the string.

    Raises:
        MalformedCommandError: Wrong number of colons or bad JSON payload.
    """
    command_name = command
    args_string: str | None = None

    q_index = command.find("?")
    if q_index != -1:
        command_name = command[:q_index]
        args_string = command[q_index + 1 :]

    split = split_command_name(command_name)
    if split is None:
        raise MalformedCommandError(
            f"Command '{command}' does not have the right form. (Wrong number of colons.)"
        )
    extension_name, command_name = split

    if args is NO_ARGS:
        if args_string is not None:
            try:
                args = json.loads(unquote(args_string))
            except json.JSONDecodeError as e:
                raise MalformedCommandError(
                    f"Command '{command}' has an invalid argument payload: {e}"
                ) from e
        else:
            args = {}

    return CommandInvocation(extension_name=extension_name, command=command_name, args=args)
