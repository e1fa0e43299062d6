"""Expression engine interface.

The rule engine never interprets expression text itself. It asks an
``ExpressionEngine`` to compile each expression once into a ``Program`` and
evaluates programs against a context mapping.

Contract:
- ``compile`` raises ``ExpressionCompileError`` on invalid text
- ``Program.evaluate`` returns a plain Python value (``bool`` for boolean
  expressions) or raises ``ExpressionEvaluationError``
- a compiled ``Program`` may be evaluated any number of times, with any context
"""
from __future__ import annotations

from typing import Any, Mapping, Protocol, runtime_checkable


@runtime_checkable
class Program(Protocol):
    """A compiled, reusable expression."""

    source: str

    def evaluate(self, context: Mapping[str, Any]) -> Any: ...


@runtime_checkable
class ExpressionEngine(Protocol):
    """Compiles expression text into programs."""

    def compile(self, expression: str) -> Program: ...


__all__ = ["Program", "ExpressionEngine"]
