"""Boolean "when" expressions.

Conditions in manifests look like::

    terminalFocus && !isHyperlink
    isHyperlink && (hyperlinkProtocol == 'https:' || hyperlinkProtocol == 'http:')

Supported: ``||``, ``&&``, prefix ``!``, ``==``, ``!=``, parentheses,
identifiers (looked up in the variable mapping, missing names are None)
and single or double quoted string literals. Precedence from loosest to
tightest: ``||``, ``&&``, ``!``, comparison.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from functools import lru_cache
from typing import Any

from extensionhost.errors import WhenExpressionError

Variables = Mapping[str, Any]
_Node = Callable[[Variables], Any]

_TOKEN_PATTERN = re.compile(
    r"""
    \s*(?:
        (?P<op>\|\||&&|==|!=|!|\(|\))
      | '(?P<sq>[^']*)'
      | "(?P<dq>[^"]*)"
      | (?P<ident>[A-Za-z_][A-Za-z0-9_.]*)
    )
    """,
    re.VERBOSE,
)


def _tokenize(expression: str) -> list[tuple[str, str]]:
    tokens: list[tuple[str, str]] = []
    pos = 0
    end = len(expression.rstrip())
    while pos < end:
        match = _TOKEN_PATTERN.match(expression, pos)
        if match is None or match.end() == pos:
            raise WhenExpressionError(
                f"Unexpected character at position {pos} in '{expression}'"
            )
        pos = match.end()
        if match.group("op") is not None:
            tokens.append(("op", match.group("op")))
        elif match.group("sq") is not None:
            tokens.append(("str", match.group("sq")))
        elif match.group("dq") is not None:
            tokens.append(("str", match.group("dq")))
        else:
            tokens.append(("ident", match.group("ident")))
    return tokens


class _Parser:
    """Recursive descent parser producing a tree of closures."""

    def __init__(self, expression: str) -> None:
        self._expression = expression
        self._tokens = _tokenize(expression)
        self._pos = 0

    def _peek(self) -> tuple[str, str] | None:
        if self._pos < len(self._tokens):
            return self._tokens[self._pos]
        return None

    def _accept_op(self, op: str) -> bool:
        token = self._peek()
        if token == ("op", op):
            self._pos += 1
            return True
        return False

    def _error(self, message: str) -> WhenExpressionError:
        return WhenExpressionError(f"{message} in '{self._expression}'")

    def parse(self) -> _Node:
        if not self._tokens:
            raise self._error("Empty expression")
        node = self._or()
        if self._peek() is not None:
            raise self._error(f"Unexpected token '{self._peek()[1]}'")  # type: ignore[index]
        return node

    def _or(self) -> _Node:
        left = self._and()
        while self._accept_op("||"):
            right = self._and()
            left = (lambda a, b: lambda v: bool(a(v)) or bool(b(v)))(left, right)
        return left

    def _and(self) -> _Node:
        left = self._unary()
        while self._accept_op("&&"):
            right = self._unary()
            left = (lambda a, b: lambda v: bool(a(v)) and bool(b(v)))(left, right)
        return left

    def _unary(self) -> _Node:
        if self._accept_op("!"):
            operand = self._unary()
            return lambda v: not operand(v)
        return self._comparison()

    def _comparison(self) -> _Node:
        left = self._primary()
        if self._accept_op("=="):
            right = self._primary()
            return lambda v: left(v) == right(v)
        if self._accept_op("!="):
            right = self._primary()
            return lambda v: left(v) != right(v)
        return left

    def _primary(self) -> _Node:
        token = self._peek()
        if token is None:
            raise self._error("Unexpected end of expression")
        kind, text = token
        self._pos += 1

        if kind == "op" and text == "(":
            node = self._or()
            if not self._accept_op(")"):
                raise self._error("Missing ')'")
            return node
        if kind == "str":
            return lambda v: text
        if kind == "ident":
            return _identifier(text)
        raise self._error(f"Unexpected token '{text}'")


def _identifier(name: str) -> _Node:
    def lookup(variables: Variables) -> Any:
        if name in variables:
            return variables[name]
        if name == "true":
            return True
        if name == "false":
            return False
        return None

    return lookup


@lru_cache(maxsize=512)
def compile_when(expression: str) -> _Node:
    """Parse an expression once; the result can be applied to many environments.

    Raises:
        WhenExpressionError: On a syntax error.
    """
    return _Parser(expression).parse()


class BooleanExpressionEvaluator:
    """Evaluates "when" expressions against one fixed set of variables."""

    def __init__(self, variables: Variables) -> None:
        self._variables = dict(variables)

    @property
    def variables(self) -> dict[str, Any]:
        return dict(self._variables)

    def evaluate(self, expression: str) -> bool:
        """Evaluate ``expression``.

        Raises:
            WhenExpressionError: If the expression does not parse.
        """
        return bool(compile_when(expression)(self._variables))
