"""
Data models for ruleset configuration documents.

This module defines the in-memory shape of a configuration document:
- Rule: a named boolean expression, optionally extending another rule
- Ruleset: an ordered collection of rules combined by a selector
- ExecutionPolicyConfig: a declared stop-on-failure / time budget pair
- ErrorHandling: active policy name and custom failure messages
- Environment: overrides merged onto the base document
- RulesetConfig: the whole document
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional


class Selector(str, Enum):
    """Logical combinator for a ruleset's member results."""

    AND = "AND"
    OR = "OR"

    @classmethod
    def parse(cls, raw: Any) -> "Selector":
        """Anything other than ``OR`` (case-insensitive) means ``AND``."""
        if raw is not None and str(raw).strip().upper() == cls.OR.value:
            return cls.OR
        return cls.AND


def _str(value: Any) -> str:
    return "" if value is None else str(value)


def _str_map(raw: Any) -> Dict[str, str]:
    return {str(k): _str(v) for k, v in (raw or {}).items()}


@dataclass
class Metadata:
    name: str = ""
    description: str = ""

    @classmethod
    def from_dict(cls, raw: Optional[Mapping[str, Any]]) -> "Metadata":
        raw = raw or {}
        return cls(name=_str(raw.get("name")), description=_str(raw.get("description")))

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "description": self.description}


@dataclass
class Rule:
    """A single named boolean expression.

    Attributes:
        id: Key the rule is registered under (used in results and messages)
        expression: Boolean-valued expression text
        name: Display name
        description: Human-readable description
        extends: Optional id of a parent rule that must also pass
    """

    id: str
    expression: str
    name: str = ""
    description: str = ""
    extends: Optional[str] = None

    def __post_init__(self) -> None:
        if self.extends == "":
            self.extends = None

    @classmethod
    def from_dict(cls, rule_id: str, raw: Optional[Mapping[str, Any]]) -> "Rule":
        raw = raw or {}
        return cls(
            id=rule_id,
            expression=_str(raw.get("expression")),
            name=_str(raw.get("name")),
            description=_str(raw.get("description")),
            extends=raw.get("extends") or None,
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "name": self.name,
            "description": self.description,
            "expression": self.expression,
        }
        if self.extends:
            out["extends"] = self.extends
        return out


@dataclass
class Ruleset:
    """A collection of rules combined by a selector.

    Attributes:
        id: Key the ruleset is registered under
        selector: AND (every member passes) or OR (any member passes)
        rules: Explicit member rule ids, in evaluation order
        custom_rules: Rules scoped to this ruleset, keyed by local name
        expression: Optional inline expression evaluated as an extra member
        extends: Optional id of a rule folded in ahead of the other members
    """

    id: str
    name: str = ""
    description: str = ""
    selector: Selector = Selector.AND
    rules: List[str] = field(default_factory=list)
    custom_rules: Dict[str, Rule] = field(default_factory=dict)
    expression: Optional[str] = None
    extends: Optional[str] = None

    def __post_init__(self) -> None:
        if self.expression is not None and not self.expression.strip():
            self.expression = None
        if self.extends == "":
            self.extends = None

    @classmethod
    def from_dict(cls, ruleset_id: str, raw: Optional[Mapping[str, Any]]) -> "Ruleset":
        raw = raw or {}
        # `combination_type` is the older spelling of `selector`.
        selector_raw = raw.get("selector", raw.get("combination_type"))
        custom_raw = raw.get("custom_rules") or {}
        return cls(
            id=ruleset_id,
            name=_str(raw.get("name")),
            description=_str(raw.get("description")),
            selector=Selector.parse(selector_raw),
            rules=[str(r) for r in (raw.get("rules") or [])],
            custom_rules={
                str(name): Rule.from_dict(str(name), body)
                for name, body in custom_raw.items()
            },
            expression=raw.get("expression") or None,
            extends=raw.get("extends") or None,
        )

    def qualified_name(self, custom_name: str) -> str:
        """Name a ruleset-scoped custom rule is compiled under."""
        return f"{self.id}.{custom_name}"

    @property
    def inline_name(self) -> str:
        """Name the inline expression is compiled under."""
        return f"ruleset.{self.id}"

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "name": self.name,
            "description": self.description,
            "selector": self.selector.value,
            "rules": list(self.rules),
        }
        if self.custom_rules:
            out["custom_rules"] = {k: r.to_dict() for k, r in self.custom_rules.items()}
        if self.expression:
            out["expression"] = self.expression
        if self.extends:
            out["extends"] = self.extends
        return out


@dataclass
class ExecutionPolicyConfig:
    """Declared execution policy; ``max_execution_time`` is parsed lazily."""

    name: str = ""
    description: str = ""
    stop_on_failure: bool = False
    max_execution_time: str = ""

    @classmethod
    def from_dict(cls, raw: Optional[Mapping[str, Any]]) -> "ExecutionPolicyConfig":
        raw = raw or {}
        return cls(
            name=_str(raw.get("name")),
            description=_str(raw.get("description")),
            stop_on_failure=bool(raw.get("stop_on_failure", False)),
            max_execution_time=_str(raw.get("max_execution_time")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "stop_on_failure": self.stop_on_failure,
            "max_execution_time": self.max_execution_time,
        }


@dataclass
class ErrorHandling:
    execution_policy: str = ""
    custom_error_messages: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: Optional[Mapping[str, Any]]) -> "ErrorHandling":
        raw = raw or {}
        return cls(
            execution_policy=_str(raw.get("execution_policy")),
            custom_error_messages=_str_map(raw.get("custom_error_messages")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "execution_policy": self.execution_policy,
            "custom_error_messages": dict(self.custom_error_messages),
        }


@dataclass
class Environment:
    """Overrides applied onto the base document when the environment is selected.

    Attributes:
        globals: Keys merged over the base globals
        execution_policy: Replaces the active policy name when non-empty
        custom_error_messages: Keys merged over the base messages
    """

    globals: Dict[str, Any] = field(default_factory=dict)
    execution_policy: str = ""
    custom_error_messages: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: Optional[Mapping[str, Any]]) -> "Environment":
        raw = raw or {}
        # Overrides may be flat or nested under `error_handling`; a non-empty flat key wins.
        nested = raw.get("error_handling") or {}
        policy = raw.get("execution_policy") or nested.get("execution_policy")
        messages = dict(_str_map(nested.get("custom_error_messages")))
        messages.update(_str_map(raw.get("custom_error_messages")))
        return cls(
            globals=dict(raw.get("globals") or {}),
            execution_policy=_str(policy),
            custom_error_messages=messages,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "globals": dict(self.globals),
            "execution_policy": self.execution_policy,
            "custom_error_messages": dict(self.custom_error_messages),
        }


@dataclass
class RulesetConfig:
    """A complete configuration document."""

    api_version: str = ""
    kind: str = ""
    metadata: Metadata = field(default_factory=Metadata)
    globals: Dict[str, Any] = field(default_factory=dict)
    rules: Dict[str, Rule] = field(default_factory=dict)
    rulesets: Dict[str, Ruleset] = field(default_factory=dict)
    execution_policies: Dict[str, ExecutionPolicyConfig] = field(default_factory=dict)
    error_handling: ErrorHandling = field(default_factory=ErrorHandling)
    environments: Dict[str, Environment] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: Optional[Mapping[str, Any]]) -> "RulesetConfig":
        raw = raw or {}
        return cls(
            api_version=_str(raw.get("apiVersion")),
            kind=_str(raw.get("kind")),
            metadata=Metadata.from_dict(raw.get("metadata")),
            globals=dict(raw.get("globals") or {}),
            rules={
                str(k): Rule.from_dict(str(k), v) for k, v in (raw.get("rules") or {}).items()
            },
            rulesets={
                str(k): Ruleset.from_dict(str(k), v)
                for k, v in (raw.get("rulesets") or {}).items()
            },
            execution_policies={
                str(k): ExecutionPolicyConfig.from_dict(v)
                for k, v in (raw.get("execution_policies") or {}).items()
            },
            error_handling=ErrorHandling.from_dict(raw.get("error_handling")),
            environments={
                str(k): Environment.from_dict(v)
                for k, v in (raw.get("environments") or {}).items()
            },
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize back to the document shape accepted by ``from_dict``."""
        return {
            "apiVersion": self.api_version,
            "kind": self.kind,
            "metadata": self.metadata.to_dict(),
            "globals": dict(self.globals),
            "rules": {k: r.to_dict() for k, r in self.rules.items()},
            "rulesets": {k: rs.to_dict() for k, rs in self.rulesets.items()},
            "execution_policies": {k: p.to_dict() for k, p in self.execution_policies.items()},
            "error_handling": self.error_handling.to_dict(),
            "environments": {k: e.to_dict() for k, e in self.environments.items()},
        }


__all__ = [
    "Selector",
    "Metadata",
    "Rule",
    "Ruleset",
    "ExecutionPolicyConfig",
    "ErrorHandling",
    "Environment",
    "RulesetConfig",
]
