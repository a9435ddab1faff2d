"""Evaluation of "when" conditions attached to command contributions."""

from extensionhost.when.evaluator import BooleanExpressionEvaluator, compile_when

__all__ = [
    "BooleanExpressionEvaluator",
    "compile_when",
]
