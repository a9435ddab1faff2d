"""Tests for "when" condition evaluation."""

from __future__ import annotations

import pytest

from extensionhost.errors import WhenExpressionError
from extensionhost.extensions.metadata import WhenVariables
from extensionhost.when import BooleanExpressionEvaluator, compile_when


@pytest.fixture
def evaluator() -> BooleanExpressionEvaluator:
    variables = WhenVariables(
        terminalFocus=True,
        isHyperlink=True,
        hyperlinkURL="https://example.com/a.png",
        hyperlinkProtocol="https:",
        hyperlinkDomain="example.com",
        hyperlinkFileExtension="png",
    )
    return BooleanExpressionEvaluator(variables.to_dict())


class TestBooleanExpressionEvaluator:
    """Test expression parsing and evaluation."""

    @pytest.mark.parametrize(
        ("expression", "expected"),
        [
            ("true", True),
            ("false", False),
            ("terminalFocus", True),
            ("viewerFocus", False),
            ("!viewerFocus", True),
            ("!!terminalFocus", True),
            ("terminalFocus && viewerFocus", False),
            ("terminalFocus || viewerFocus", True),
            ("viewerFocus || false || isHyperlink", True),
            ("hyperlinkProtocol == 'https:'", True),
            ('hyperlinkDomain != "example.com"', False),
            ("hyperlinkFileExtension == 'png' && isHyperlink", True),
            ("!(terminalFocus && isHyperlink)", False),
            ("viewerFocus && terminalFocus || isHyperlink", True),
            ("viewerFocus && (terminalFocus || isHyperlink)", False),
            ("  terminalFocus  ", True),
        ],
    )
    def test_evaluate(
        self, evaluator: BooleanExpressionEvaluator, expression: str, expected: bool
    ) -> None:
        assert evaluator.evaluate(expression) is expected

    def test_unknown_identifier_is_falsy(self, evaluator: BooleanExpressionEvaluator) -> None:
        assert evaluator.evaluate("someFutureVariable") is False
        assert evaluator.evaluate("!someFutureVariable") is True

    def test_variables_are_copied(self) -> None:
        variables = {"flag": True}
        evaluator = BooleanExpressionEvaluator(variables)
        variables["flag"] = False
        assert evaluator.evaluate("flag") is True

    @pytest.mark.parametrize(
        "expression",
        [
            "",
            "&&",
            "terminalFocus &&",
            "(terminalFocus",
            "terminalFocus)",
            "a = b",
            "'open",
            "a b",
        ],
    )
    def test_syntax_errors(self, evaluator: BooleanExpressionEvaluator, expression: str) -> None:
        with pytest.raises(WhenExpressionError):
            evaluator.evaluate(expression)

    def test_compiled_expressions_are_cached(self) -> None:
        assert compile_when("a && b") is compile_when("a && b")
