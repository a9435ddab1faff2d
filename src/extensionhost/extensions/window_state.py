"""Process-wide UI focus state shared with extensions.

UI code updates the live CommonExtensionWindowState as focus moves.
Command queries read it to build WhenVariables, and customizers read it
to compute dynamic titles. A query for a hypothetical context swaps the
state temporarily with ``substituted_window_state``.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlsplit

from extensionhost.extensions.metadata import WhenVariables


@dataclass
class CommonExtensionWindowState:
    active_window: Any = None
    active_terminal: Any = None
    active_hyperlink_url: str | None = None

    def copy(self) -> CommonExtensionWindowState:
        return dataclasses.replace(self)

    def assign(self, other: CommonExtensionWindowState) -> None:
        """Overwrite every field in place with the values from ``other``."""
        for f in dataclasses.fields(self):
            setattr(self, f.name, getattr(other, f.name))


@contextmanager
def substituted_window_state(
    state: CommonExtensionWindowState, temporary: CommonExtensionWindowState
) -> Iterator[CommonExtensionWindowState]:
    """Make ``state`` look like ``temporary`` for the duration of the block.

    The original values are restored on every exit path, including
    exceptions raised inside the block.
    """
    saved = state.copy()
    state.assign(temporary)
    try:
        yield state
    finally:
        state.assign(saved)


def _extension_from_path(path: str) -> str:
    last_part = path.split("/")[-1]
    if "." in last_part:
        return last_part[last_part.rindex(".") + 1 :]
    return ""


def create_when_variables(state: CommonExtensionWindowState) -> WhenVariables:
    """Derive the "when" environment from a window state snapshot."""
    variables = WhenVariables()

    if state.active_terminal is not None:
        variables.terminalFocus = True

    url = state.active_hyperlink_url
    if url is not None:
        variables.isHyperlink = True
        variables.hyperlinkURL = url
        try:
            parts = urlsplit(url)
        except ValueError:
            parts = None

        if parts is not None and parts.scheme:
            variables.hyperlinkProtocol = parts.scheme + ":"
            variables.hyperlinkDomain = parts.hostname or ""
            variables.hyperlinkFileExtension = _extension_from_path(parts.path)
        else:
            # Not an absolute URL
            variables.hyperlinkProtocol = ""
            variables.hyperlinkDomain = ""
            variables.hyperlinkFileExtension = _extension_from_path(url)

    return variables
