"""Rule engine: rule, ruleset and batch evaluation.

Construction runs overlay, policy resolution and compilation in that order
and either returns a ready engine or raises; a half-built engine is never
returned. Afterwards the resolved configuration and compiled programs are
read-only. The evaluation context is the only mutable state and is shared by
every call on the engine; callers evaluating concurrently on one engine must
serialize :meth:`RuleEngine.set_context` themselves.
"""
from __future__ import annotations

import logging
from pathlib import Path
from time import perf_counter
from typing import Any, Dict, List, Mapping, Optional, Union

from rulegate.core.config.environment import apply_environment, resolve_environment_name
from rulegate.core.config.loader import load_config
from rulegate.core.config.models import RulesetConfig, Selector
from rulegate.core.config.policy import ExecutionPolicy, resolve_policy
from rulegate.core.exceptions import (
    BatchEvaluationError,
    EvaluationTimeoutError,
    ExpressionEvaluationError,
    LookupFailure,
    MissingExpressionEngineError,
    RuleFailure,
    RuleNotFoundError,
    RulesetFailure,
    RulesetNotFoundError,
    UnresolvedRuleError,
)
from rulegate.core.expressions.base import ExpressionEngine
from rulegate.core.utils.profiling import span

from .compiler import ProgramCache
from .context import build_evaluation_context
from .results import RuleResult, RulesetResult

logger = logging.getLogger(__name__)


def _elapsed_ms(start: float) -> float:
    return (perf_counter() - start) * 1000.0


class RuleEngine:
    """Evaluate rules and rulesets from a :class:`RulesetConfig`.

    Args:
        config: Base configuration; never mutated
        expression_engine: Compiles expression text into programs
        environment: Name of the environment overlay to apply (empty for none)

    Raises:
        MissingExpressionEngineError: If ``expression_engine`` is None.
        PolicyNotFoundError: If the active execution policy is not declared.
        InvalidDurationError: If the policy's time budget cannot be parsed.
        ExpressionCompileError: If any expression fails to compile.
        DuplicateProgramError: If two expressions share a qualified name.
        InheritanceCycleError: If rule ``extends`` links form a cycle.
        DanglingExtendsError: If a rule extends an unknown rule.
    """

    def __init__(
        self,
        config: RulesetConfig,
        expression_engine: Optional[ExpressionEngine],
        *,
        environment: Optional[str] = None,
    ) -> None:
        if expression_engine is None:
            raise MissingExpressionEngineError("an expression engine is required to build a rule engine")

        self._environment = environment or ""
        with span("engine.overlay", environment=self._environment):
            self._config = apply_environment(config, self._environment)
        with span("engine.policy"):
            self._policy = resolve_policy(self._config)
        with span("engine.compile"):
            self._programs = ProgramCache.build(self._config, expression_engine)
        self._context: Dict[str, Any] = build_evaluation_context({}, self._config.globals)

        for ruleset in self._config.rulesets.values():
            if ruleset.extends and ruleset.extends not in self._config.rules:
                logger.warning(
                    "Ruleset '%s' extends unknown rule '%s'; nothing will be folded in",
                    ruleset.id,
                    ruleset.extends,
                )

        logger.info(
            "Rule engine ready (environment=%s, policy=%s, stop_on_failure=%s, "
            "max_execution_time=%gs, programs=%d)",
            self._environment or "<none>",
            self._policy.name,
            self._policy.stop_on_failure,
            self._policy.max_execution_time,
            len(self._programs),
        )

    @classmethod
    def from_file(
        cls,
        path: Union[str, Path],
        environment: Optional[str] = None,
        expression_engine: Optional[ExpressionEngine] = None,
    ) -> "RuleEngine":
        """Load ``path`` and build an engine.

        ``environment`` defaults to ``RULEGATE_ENV``; the expression engine
        defaults to CEL.
        """
        with span("engine.load", path=str(path)):
            config = load_config(path)
        if expression_engine is None:
            from rulegate.core.expressions.cel import CelExpressionEngine

            expression_engine = CelExpressionEngine()
        return cls(config, expression_engine, environment=resolve_environment_name(environment))

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def config(self) -> RulesetConfig:
        """The resolved (overlaid) configuration."""
        return self._config

    @property
    def policy(self) -> ExecutionPolicy:
        return self._policy

    @property
    def environment(self) -> str:
        return self._environment

    @property
    def program_names(self) -> List[str]:
        return self._programs.names

    @property
    def context(self) -> Dict[str, Any]:
        """Copy of the current evaluation context."""
        return dict(self._context)

    def set_context(self, context: Optional[Mapping[str, Any]]) -> None:
        """Replace the evaluation context.

        ``globals``, ``now`` and ``timestamp`` are injected on top of
        ``context``, overwriting any values supplied under those keys.
        """
        self._context = build_evaluation_context(context, self._config.globals)

    def effective_rules(self, ruleset_name: str) -> List[str]:
        """Member names of a ruleset in evaluation order.

        Order: the rule named by ``extends`` (when it is a known rule), custom
        rules in declaration order, the inline expression, then the listed
        rules.
        """
        ruleset = self._config.rulesets.get(ruleset_name)
        if ruleset is None:
            raise RulesetNotFoundError(ruleset_name)

        members: List[str] = []
        if ruleset.extends and ruleset.extends in self._config.rules:
            members.append(ruleset.extends)
        members.extend(ruleset.qualified_name(custom) for custom in ruleset.custom_rules)
        if ruleset.expression:
            members.append(ruleset.inline_name)
        members.extend(ruleset.rules)
        return members

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def evaluate_rule(self, rule_name: str) -> RuleResult:
        """Evaluate a rule and its ancestors against the current context.

        Raises:
            RuleNotFoundError: If ``rule_name`` has no compiled program.
        """
        if rule_name not in self._programs:
            raise RuleNotFoundError(rule_name)
        return self._run_rule(rule_name)

    def _run_rule(self, rule_name: str) -> RuleResult:
        start = perf_counter()
        value: Any = None
        for step in (*self._programs.chain(rule_name), rule_name):
            program = self._programs.get(step)
            try:
                value = program.evaluate(self._context)
            except ExpressionEvaluationError as exc:
                logger.debug("Rule '%s' errored at '%s': %s", rule_name, step, exc)
                return RuleResult(rule_name, False, None, exc, _elapsed_ms(start))
            if value is not True:
                break

        passed = value is True
        error = None
        if not passed:
            message = self._config.error_handling.custom_error_messages.get(
                rule_name, f"rule '{rule_name}' did not pass evaluation"
            )
            error = RuleFailure(message, context={"rule": rule_name})
        logger.debug("Rule '%s' passed=%s value=%r", rule_name, passed, value)
        return RuleResult(rule_name, passed, value, error, _elapsed_ms(start))

    def evaluate_ruleset(self, ruleset_name: str) -> RulesetResult:
        """Evaluate every effective member and combine them by selector.

        With an AND selector and ``stop_on_failure`` set, evaluation stops at
        the first failing member and later members are absent from
        ``rule_results``. OR rulesets always evaluate every member.

        Raises:
            RulesetNotFoundError: If ``ruleset_name`` is not configured.
        """
        members = self.effective_rules(ruleset_name)
        ruleset = self._config.rulesets[ruleset_name]
        start = perf_counter()

        fail_fast = ruleset.selector is not Selector.OR and self._policy.stop_on_failure
        result = RulesetResult(ruleset_name)
        for member in members:
            if member in self._programs:
                rule_result = self._run_rule(member)
            else:
                rule_result = RuleResult(member, False, error=UnresolvedRuleError(member, ruleset_name))
            result.rule_results[member] = rule_result
            if fail_fast and not rule_result.passed:
                break

        outcomes = [r.passed for r in result.rule_results.values()]
        result.passed = any(outcomes) if ruleset.selector is Selector.OR else all(outcomes)
        if not result.passed:
            message = self._config.error_handling.custom_error_messages.get(
                ruleset_name, f"ruleset '{ruleset_name}' did not pass evaluation"
            )
            result.error = RulesetFailure(message, context={"ruleset": ruleset_name})
        result.duration_ms = _elapsed_ms(start)

        logger.debug(
            "Ruleset '%s' (%s) passed=%s after %d/%d members",
            ruleset_name,
            ruleset.selector.value,
            result.passed,
            len(result.rule_results),
            len(members),
        )
        return result

    def evaluate_all(self) -> Dict[str, RulesetResult]:
        """Evaluate every configured ruleset under the policy's time budget.

        The deadline is checked before each ruleset starts; a slow ruleset is
        never interrupted.

        Raises:
            EvaluationTimeoutError: When the deadline has passed before a
                ruleset starts; ``results`` holds what finished in time.
            BatchEvaluationError: When a ruleset lookup fails mid-batch.
        """
        deadline = perf_counter() + self._policy.max_execution_time
        results: Dict[str, RulesetResult] = {}
        for ruleset_name in self._config.rulesets:
            if perf_counter() >= deadline:
                logger.warning(
                    "Evaluation deadline of %gs reached before ruleset '%s' (%d/%d done)",
                    self._policy.max_execution_time,
                    ruleset_name,
                    len(results),
                    len(self._config.rulesets),
                )
                raise EvaluationTimeoutError(
                    ruleset_name,
                    max_execution_time=self._policy.max_execution_time,
                    results=results,
                )
            try:
                results[ruleset_name] = self.evaluate_ruleset(ruleset_name)
            except LookupFailure as exc:
                raise BatchEvaluationError(str(exc), results=results, context=exc.context) from exc
        return results


__all__ = ["RuleEngine"]
