"""Evaluation result value objects."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from rulegate.core.exceptions import ExpressionEvaluationError, RulegateError


@dataclass
class RuleResult:
    """Outcome of evaluating one rule (including its inheritance chain).

    Attributes:
        rule_name: Name the rule was evaluated under (possibly qualified)
        passed: True only if every program in the chain returned boolean true
        value: Value returned by the last program evaluated
        error: Runtime error (verbatim) or business failure; None when passed
        duration_ms: Wall-clock time spent evaluating
    """

    rule_name: str
    passed: bool
    value: Any = None
    error: Optional[RulegateError] = None
    duration_ms: float = 0.0

    @property
    def is_runtime_error(self) -> bool:
        return isinstance(self.error, ExpressionEvaluationError)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rule": self.rule_name,
            "passed": self.passed,
            "value": self.value,
            "error": str(self.error) if self.error is not None else None,
            "error_type": type(self.error).__name__ if self.error is not None else None,
            "duration_ms": round(self.duration_ms, 3),
        }


@dataclass
class RulesetResult:
    """Outcome of evaluating a ruleset.

    ``rule_results`` preserves effective-list order. ``error`` is set only when
    ``passed`` is false and carries the ruleset-level message, never an
    aggregate of member errors.
    """

    ruleset_name: str
    passed: bool = False
    rule_results: Dict[str, RuleResult] = field(default_factory=dict)
    error: Optional[RulegateError] = None
    duration_ms: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ruleset": self.ruleset_name,
            "passed": self.passed,
            "error": str(self.error) if self.error is not None else None,
            "duration_ms": round(self.duration_ms, 3),
            "rules": [r.to_dict() for r in self.rule_results.values()],
        }


__all__ = ["RuleResult", "RulesetResult"]
