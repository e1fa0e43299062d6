"""Rule evaluation engine."""
from __future__ import annotations

from .compiler import ProgramCache, inheritance_chain
from .context import RESERVED_KEYS, build_evaluation_context
from .engine import RuleEngine
from .results import RuleResult, RulesetResult

__all__ = [
    "ProgramCache",
    "inheritance_chain",
    "RESERVED_KEYS",
    "build_evaluation_context",
    "RuleEngine",
    "RuleResult",
    "RulesetResult",
]
