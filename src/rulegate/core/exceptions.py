from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from rulegate.core.engine.results import RulesetResult


class RulegateError(Exception):
    """Base exception for rulegate."""

    context: Dict[str, Any]

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        if context is not None:
            # Store a shallow copy to avoid accidental mutation.
            self.context = dict(context)
        else:
            self.context = {}

    def to_json_error(self) -> Dict[str, Any]:
        """Return a JSON-serializable error payload."""
        return {
            "message": str(self),
            "code": self.__class__.__name__,
            "context": self.context,
        }


# ---------------------------------------------------------------------------
# Construction errors: the engine is never returned half-built.
# ---------------------------------------------------------------------------


class ConfigurationError(RulegateError):
    """Raised when a configuration cannot be turned into an engine."""


class ConfigLoadError(ConfigurationError):
    """Raised when a configuration document cannot be read or validated."""

    def __init__(self, message: str, *, path: str | None = None, context: Mapping[str, Any] | None = None) -> None:
        ctx = dict(context or {})
        if path:
            ctx["path"] = path
        super().__init__(message, context=ctx)


class PolicyNotFoundError(ConfigurationError):
    """Raised when the active execution policy is not declared."""

    def __init__(self, policy_name: str) -> None:
        super().__init__(
            f"execution policy '{policy_name}' not found in config",
            context={"policy": policy_name},
        )
        self.policy_name = policy_name


class InvalidDurationError(ConfigurationError, ValueError):
    """Raised when a duration string cannot be parsed."""

    def __init__(self, value: str, *, policy_name: str | None = None) -> None:
        ctx: Dict[str, Any] = {"value": value}
        if policy_name:
            ctx["policy"] = policy_name
            message = f"invalid max_execution_time {value!r} in execution policy '{policy_name}'"
        else:
            message = f"invalid duration {value!r}"
        ConfigurationError.__init__(self, message, context=ctx)
        ValueError.__init__(self, message)
        self.value = value


class ExpressionCompileError(ConfigurationError):
    """Raised when an expression fails to compile."""

    def __init__(self, message: str, *, name: str | None = None, expression: str | None = None) -> None:
        ctx: Dict[str, Any] = {}
        if name:
            ctx["name"] = name
        if expression is not None:
            ctx["expression"] = expression
        super().__init__(message, context=ctx)
        self.name = name


class InheritanceCycleError(ConfigurationError):
    """Raised when rule ``extends`` links form a cycle."""

    def __init__(self, rule_name: str, chain: list[str]) -> None:
        path = " -> ".join([rule_name, *chain])
        super().__init__(
            f"inheritance cycle detected for rule '{rule_name}': {path}",
            context={"rule": rule_name, "chain": list(chain)},
        )
        self.rule_name = rule_name


class DanglingExtendsError(ConfigurationError):
    """Raised when a rule extends a rule that does not exist."""

    def __init__(self, rule_name: str, missing: str) -> None:
        super().__init__(
            f"rule '{rule_name}' extends unknown rule '{missing}'",
            context={"rule": rule_name, "extends": missing},
        )
        self.rule_name = rule_name
        self.missing = missing


class DuplicateProgramError(ConfigurationError):
    """Raised when two expressions resolve to the same qualified name."""

    def __init__(self, name: str, first: str, second: str) -> None:
        super().__init__(
            f"program name '{name}' is used by both {first} and {second}",
            context={"name": name, "sources": [first, second]},
        )
        self.name = name


class MissingExpressionEngineError(ConfigurationError):
    """Raised when no expression engine was supplied to the rule engine."""


# ---------------------------------------------------------------------------
# Lookup errors: caller asked for something the configuration does not have.
# ---------------------------------------------------------------------------


class LookupFailure(RulegateError, KeyError):
    """Raised when an unknown rule or ruleset is requested."""

    def __init__(self, message: str, *, context: Mapping[str, Any] | None = None) -> None:
        RulegateError.__init__(self, message, context=context)
        KeyError.__init__(self, message)

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message.
        return str(self.args[0]) if self.args else ""


class RuleNotFoundError(LookupFailure):
    def __init__(self, rule_name: str) -> None:
        super().__init__(f"rule '{rule_name}' not found", context={"rule": rule_name})
        self.rule_name = rule_name


class RulesetNotFoundError(LookupFailure):
    def __init__(self, ruleset_name: str) -> None:
        super().__init__(f"ruleset '{ruleset_name}' not found", context={"ruleset": ruleset_name})
        self.ruleset_name = ruleset_name


# ---------------------------------------------------------------------------
# Evaluation outcomes embedded in results (never raised by the engine).
# ---------------------------------------------------------------------------


class ExpressionEvaluationError(RulegateError):
    """An expression could not be evaluated against the current context."""


class UnresolvedRuleError(ExpressionEvaluationError):
    """A ruleset member has no compiled program."""

    def __init__(self, rule_name: str, ruleset_name: str) -> None:
        super().__init__(
            f"rule '{rule_name}' referenced by ruleset '{ruleset_name}' is unresolved",
            context={"rule": rule_name, "ruleset": ruleset_name},
        )


class RuleFailure(RulegateError):
    """A rule evaluated cleanly but did not pass."""


class RulesetFailure(RulegateError):
    """A ruleset's aggregate outcome did not pass."""


# ---------------------------------------------------------------------------
# Batch errors: carry whatever results were collected before the abort.
# ---------------------------------------------------------------------------


class BatchEvaluationError(RulegateError):
    """Raised when evaluating all rulesets stops early."""

    def __init__(
        self,
        message: str,
        *,
        results: Optional[Dict[str, "RulesetResult"]] = None,
        context: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(message, context=context)
        self.results: Dict[str, "RulesetResult"] = dict(results or {})


class EvaluationTimeoutError(BatchEvaluationError):
    """Raised when the execution policy deadline elapses mid-batch."""

    def __init__(
        self,
        ruleset_name: str,
        *,
        max_execution_time: float,
        results: Optional[Dict[str, "RulesetResult"]] = None,
    ) -> None:
        message = (
            f"evaluation timed out after {max_execution_time:g}s "
            f"before ruleset '{ruleset_name}'"
        )
        super().__init__(
            message,
            results=results,
            context={"ruleset": ruleset_name, "max_execution_time": max_execution_time},
        )
        self.ruleset_name = ruleset_name


__all__ = [
    "RulegateError",
    "ConfigurationError",
    "ConfigLoadError",
    "PolicyNotFoundError",
    "InvalidDurationError",
    "ExpressionCompileError",
    "InheritanceCycleError",
    "DanglingExtendsError",
    "DuplicateProgramError",
    "MissingExpressionEngineError",
    "LookupFailure",
    "RuleNotFoundError",
    "RulesetNotFoundError",
    "ExpressionEvaluationError",
    "UnresolvedRuleError",
    "RuleFailure",
    "RulesetFailure",
    "BatchEvaluationError",
    "EvaluationTimeoutError",
]
