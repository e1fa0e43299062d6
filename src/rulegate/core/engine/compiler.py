"""Compiled-program cache.

Every expression in a configuration is compiled exactly once, under a stable
name:

- top-level rules under their id
- ruleset custom rules under ``<ruleset>.<custom>``
- ruleset inline expressions under ``ruleset.<ruleset>``

Alongside the programs, each rule with an ``extends`` link gets its ancestor
chain (immediate parent first). Parents are always looked up among the
top-level rules. Cycles and dangling links are rejected here so they can never
surface at evaluation time.
"""
from __future__ import annotations

import logging
from typing import Dict, Iterator, List, Mapping, Optional, Tuple

from rulegate.core.config.models import Rule, RulesetConfig
from rulegate.core.exceptions import (
    DanglingExtendsError,
    DuplicateProgramError,
    ExpressionCompileError,
    InheritanceCycleError,
)
from rulegate.core.expressions.base import ExpressionEngine, Program

logger = logging.getLogger(__name__)


def inheritance_chain(rule_name: str, parent: Optional[str], rules: Mapping[str, Rule]) -> Tuple[str, ...]:
    """Walk ``extends`` links starting at ``parent``.

    Raises:
        InheritanceCycleError: If the walk revisits ``rule_name`` or an ancestor.
        DanglingExtendsError: If a link names a rule absent from ``rules``.
    """
    chain: List[str] = []
    seen = {rule_name}
    owner = rule_name
    current = parent
    while current:
        if current in seen:
            raise InheritanceCycleError(rule_name, chain + [current])
        target = rules.get(current)
        if target is None:
            raise DanglingExtendsError(owner, current)
        chain.append(current)
        seen.add(current)
        owner = current
        current = target.extends
    return tuple(chain)


class ProgramCache:
    """Read-only mapping of qualified name to compiled program."""

    def __init__(self, programs: Dict[str, Program], chains: Dict[str, Tuple[str, ...]]) -> None:
        self._programs = dict(programs)
        self._chains = dict(chains)

    @classmethod
    def build(cls, config: RulesetConfig, engine: ExpressionEngine) -> "ProgramCache":
        """Compile everything in ``config``.

        Raises:
            ExpressionCompileError: Naming the first expression that failed.
            DuplicateProgramError: If two expressions share a qualified name.
            InheritanceCycleError: If rule ``extends`` links loop.
            DanglingExtendsError: If a rule extends an unknown rule.
        """
        programs: Dict[str, Program] = {}
        sources: Dict[str, str] = {}
        chains: Dict[str, Tuple[str, ...]] = {}

        for name, source, expression in _expressions(config):
            if name in programs:
                raise DuplicateProgramError(name, sources[name], source)
            programs[name] = _compile(engine, name, expression)
            sources[name] = source

        for rule_id, rule in config.rules.items():
            if rule.extends:
                chains[rule_id] = inheritance_chain(rule_id, rule.extends, config.rules)
        for ruleset in config.rulesets.values():
            for custom_name, rule in ruleset.custom_rules.items():
                if rule.extends:
                    qualified = ruleset.qualified_name(custom_name)
                    chains[qualified] = inheritance_chain(qualified, rule.extends, config.rules)

        logger.debug("Compiled %d programs (%d with inheritance chains)", len(programs), len(chains))
        return cls(programs, chains)

    def get(self, name: str) -> Optional[Program]:
        return self._programs.get(name)

    def chain(self, name: str) -> Tuple[str, ...]:
        """Ancestors of ``name``, immediate parent first (empty if none)."""
        return self._chains.get(name, ())

    @property
    def names(self) -> List[str]:
        return list(self._programs)

    def __contains__(self, name: object) -> bool:
        return name in self._programs

    def __iter__(self) -> Iterator[str]:
        return iter(self._programs)

    def __len__(self) -> int:
        return len(self._programs)


def _expressions(config: RulesetConfig) -> Iterator[Tuple[str, str, str]]:
    """Yield ``(qualified name, human-readable source, expression)``."""
    for rule_id, rule in config.rules.items():
        yield rule_id, f"rule '{rule_id}'", rule.expression
    for ruleset in config.rulesets.values():
        for custom_name, rule in ruleset.custom_rules.items():
            yield (
                ruleset.qualified_name(custom_name),
                f"custom rule '{custom_name}' of ruleset '{ruleset.id}'",
                rule.expression,
            )
        if ruleset.expression:
            yield ruleset.inline_name, f"inline expression of ruleset '{ruleset.id}'", ruleset.expression


def _compile(engine: ExpressionEngine, name: str, expression: str) -> Program:
    try:
        return engine.compile(expression)
    except ExpressionCompileError as exc:
        raise ExpressionCompileError(
            f"failed to compile '{name}': {exc}",
            name=name,
            expression=expression,
        ) from exc


__all__ = ["ProgramCache", "inheritance_chain"]
