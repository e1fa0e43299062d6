"""Ruleset configuration: document model, loading, environment overlays, policy.

Usage:
    from rulegate.core.config import load_config, apply_environment, resolve_policy

    config = load_config("rules.yml")
    config = apply_environment(config, "production")
    policy = resolve_policy(config)
"""
from __future__ import annotations

from .models import (
    Selector,
    Metadata,
    Rule,
    Ruleset,
    ExecutionPolicyConfig,
    ErrorHandling,
    Environment,
    RulesetConfig,
)
from .loader import load_config, load_context, parse_config, read_document, schema_errors
from .environment import ENVIRONMENT_VAR, apply_environment, merge_overrides, resolve_environment_name
from .policy import ExecutionPolicy, parse_duration, resolve_policy

__all__ = [
    # Models
    "Selector",
    "Metadata",
    "Rule",
    "Ruleset",
    "ExecutionPolicyConfig",
    "ErrorHandling",
    "Environment",
    "RulesetConfig",
    # Loading
    "load_config",
    "load_context",
    "parse_config",
    "read_document",
    "schema_errors",
    # Overlays
    "ENVIRONMENT_VAR",
    "apply_environment",
    "merge_overrides",
    "resolve_environment_name",
    # Policy
    "ExecutionPolicy",
    "parse_duration",
    "resolve_policy",
]
