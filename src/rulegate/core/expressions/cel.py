"""CEL expression engine backed by cel-python (``celpy``).

Expressions are parsed once by :meth:`CelExpressionEngine.compile`. At
evaluation time the context is split in two:

- data bindings (mappings, lists, scalars, datetimes) are converted to CEL
  values (scalars through ``celpy.json_to_cel``) and become CEL variables
- callable bindings (the ``now`` / ``timestamp`` accessors) become CEL
  functions; their Python return values are converted back to CEL values

Only the interpreter runner is rebuilt when callables are present; the parsed
AST is shared.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

import celpy
from celpy import celtypes

from rulegate.core.exceptions import ExpressionCompileError, ExpressionEvaluationError


def to_cel(value: Any) -> Any:
    """Convert a Python value into its CEL representation."""
    if isinstance(value, celtypes.TimestampType):
        return value
    if isinstance(value, datetime):
        return celtypes.TimestampType(value)
    if isinstance(value, Mapping):
        return celtypes.MapType({to_cel(k): to_cel(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return celtypes.ListType([to_cel(v) for v in value])
    return celpy.json_to_cel(value)


def from_cel(value: Any) -> Any:
    """Convert a CEL result into a plain Python value where one exists."""
    if isinstance(value, celtypes.BoolType):
        return bool(value)
    if isinstance(value, (celtypes.IntType, celtypes.UintType)):
        return int(value)
    if isinstance(value, celtypes.DoubleType):
        return float(value)
    if isinstance(value, celtypes.StringType):
        return str(value)
    if isinstance(value, celtypes.NullType):
        return None
    if isinstance(value, celtypes.ListType):
        return [from_cel(v) for v in value]
    if isinstance(value, celtypes.MapType):
        return {from_cel(k): from_cel(v) for k, v in value.items()}
    return value


def _cel_function(fn: Callable[..., Any]) -> Callable[..., Any]:
    def call(*args: Any) -> Any:
        return to_cel(fn(*args))

    call.__name__ = getattr(fn, "__name__", "cel_function")
    return call


class CelProgram:
    """A parsed CEL expression, reusable across contexts."""

    def __init__(self, environment: celpy.Environment, ast: Any, source: str) -> None:
        self._environment = environment
        self._ast = ast
        self.source = source
        self._runner = environment.program(ast)

    def _split_context(
        self, context: Mapping[str, Any]
    ) -> Tuple[Dict[str, Any], Dict[str, Callable[..., Any]]]:
        data: Dict[str, Any] = {}
        functions: Dict[str, Callable[..., Any]] = {}
        for name, value in context.items():
            if callable(value):
                functions[name] = _cel_function(value)
            else:
                data[name] = value
        return data, functions

    def evaluate(self, context: Mapping[str, Any]) -> Any:
        """Evaluate against ``context``.

        Raises:
            ExpressionEvaluationError: If the expression cannot be evaluated
                (missing keys, type mismatches, failing accessor calls).
        """
        data, functions = self._split_context(context)
        runner = self._environment.program(self._ast, functions=functions) if functions else self._runner
        try:
            activation = {name: to_cel(value) for name, value in data.items()}
            result = runner.evaluate(activation)
        except (celpy.CELEvalError, KeyError, TypeError, ValueError, ZeroDivisionError) as exc:
            raise ExpressionEvaluationError(
                f"failed to evaluate expression: {exc}", context={"expression": self.source}
            ) from exc

        if isinstance(result, celpy.CELEvalError):
            raise ExpressionEvaluationError(
                f"failed to evaluate expression: {result}", context={"expression": self.source}
            )
        return from_cel(result)

    def __repr__(self) -> str:
        return f"CelProgram({self.source!r})"


class CelExpressionEngine:
    """Compile CEL expression text into :class:`CelProgram` objects."""

    def __init__(self, environment: Optional[celpy.Environment] = None) -> None:
        self._environment = environment or celpy.Environment()

    def compile(self, expression: str) -> CelProgram:
        """Parse ``expression``.

        Raises:
            ExpressionCompileError: If the text is not valid CEL.
        """
        text = (expression or "").strip()
        if not text:
            raise ExpressionCompileError("empty expression", expression=expression)
        try:
            ast = self._environment.compile(text)
        except celpy.CELParseError as exc:
            raise ExpressionCompileError(f"invalid expression: {exc}", expression=text) from exc
        return CelProgram(self._environment, ast, text)


__all__ = ["CelExpressionEngine", "CelProgram", "to_cel", "from_cel"]
