"""Expression engines used to compile and evaluate rule expressions."""
from __future__ import annotations

from .base import ExpressionEngine, Program
from .cel import CelExpressionEngine, CelProgram

__all__ = [
    "ExpressionEngine",
    "Program",
    "CelExpressionEngine",
    "CelProgram",
]
