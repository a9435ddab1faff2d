"""Filtering and ordering of command contributions."""

from __future__ import annotations

import logging
from collections.abc import Callable, Collection
from dataclasses import dataclass
from typing import Protocol

from extensionhost.errors import WhenExpressionError
from extensionhost.extensions.context import CommandMenuEntry
from extensionhost.extensions.metadata import ALL_CATEGORIES, ExtensionCommandContribution

_log = logging.getLogger(__name__)

EntryPredicate = Callable[[CommandMenuEntry], bool]

_CATEGORY_INDEX = {category: index for index, category in enumerate(ALL_CATEGORIES)}


class WhenEvaluator(Protocol):
    def evaluate(self, expression: str) -> bool: ...


@dataclass
class CommandQueryOptions:
    """What to look for in a command query.

    Every field left as None does not filter. ``when=True`` additionally
    drops entries whose "when" condition is false for the queried state.
    """

    command_palette: bool | None = None
    context_menu: bool | None = None
    new_terminal_menu: bool | None = None
    terminal_title_menu: bool | None = None
    window_menu: bool | None = None
    categories: Collection[str] | None = None
    commands: Collection[str] | None = None
    when: bool = False


def _true_predicate(entry: CommandMenuEntry) -> bool:
    return True


def _flag_predicate(attribute: str, wanted: bool | None) -> EntryPredicate:
    if wanted is None:
        return _true_predicate
    return lambda entry: getattr(entry, attribute) == wanted


def create_when_predicate(evaluator: WhenEvaluator) -> EntryPredicate:
    """Predicate that evaluates each entry's "when" condition.

    An empty condition always passes. A condition that fails to parse is
    logged and the entry is left out.
    """

    def predicate(entry: CommandMenuEntry) -> bool:
        when = entry.command_contribution.when
        if when == "":
            return True
        try:
            return evaluator.evaluate(when)
        except WhenExpressionError as e:
            _log.warning(
                "Bad 'when' condition on command '%s': %s",
                entry.command_contribution.command,
                e,
            )
            return False

    return predicate


def create_entry_predicate(
    options: CommandQueryOptions, evaluator: WhenEvaluator | None = None
) -> EntryPredicate:
    """Combine all requested filters into one conjunctive predicate."""
    predicates: list[EntryPredicate] = [
        _flag_predicate("command_palette", options.command_palette),
        _flag_predicate("context_menu", options.context_menu),
        _flag_predicate("new_terminal", options.new_terminal_menu),
        _flag_predicate("terminal_tab", options.terminal_title_menu),
        _flag_predicate("window_menu", options.window_menu),
    ]

    if options.categories is not None:
        categories = frozenset(options.categories)
        predicates.append(lambda entry: entry.command_contribution.category in categories)

    if options.commands is not None:
        commands = frozenset(options.commands)
        predicates.append(lambda entry: entry.command_contribution.command in commands)

    if options.when and evaluator is not None:
        predicates.append(create_when_predicate(evaluator))

    active = [p for p in predicates if p is not _true_predicate]
    if not active:
        return _true_predicate
    return lambda entry: all(p(entry) for p in active)


def command_sort_key(contribution: ExtensionCommandContribution) -> tuple[int, int, str]:
    """Category position, then order, then title."""
    return (
        _CATEGORY_INDEX.get(contribution.category, len(ALL_CATEGORIES)),
        contribution.order,
        contribution.title,
    )


def sort_commands_in_place(entries: list[ExtensionCommandContribution]) -> None:
    # list.sort is stable: ties keep extension and registration order
    entries.sort(key=command_sort_key)
