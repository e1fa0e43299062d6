"""Environment overlays.

An environment is a named set of overrides declared in the document's
``environments`` table. Applying one yields a new configuration:

- globals are merged key by key (overlay wins, untouched keys survive)
- a non-empty ``execution_policy`` replaces the active policy name
- custom error messages are merged key by key, like globals

Unknown or empty environment names leave the configuration unchanged.
"""
from __future__ import annotations

import copy
import logging
import os
from dataclasses import replace
from typing import Any, Dict, Mapping, Optional

from .models import ErrorHandling, RulesetConfig

logger = logging.getLogger(__name__)

ENVIRONMENT_VAR = "RULEGATE_ENV"


def merge_overrides(base: Mapping[str, Any], override: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Shallow, key-by-key merge without mutating inputs."""
    result: Dict[str, Any] = dict(base)
    for key, value in (override or {}).items():
        result[key] = value
    return result


def apply_environment(config: RulesetConfig, environment: Optional[str]) -> RulesetConfig:
    """Return ``config`` with the named environment's overrides applied.

    The input is never mutated. Re-applying the same environment to the
    result produces an equal configuration.
    """
    env = config.environments.get(environment or "")
    if env is None:
        if environment:
            logger.debug("Environment '%s' not declared; using base configuration", environment)
        return copy.deepcopy(config)

    base = copy.deepcopy(config)
    policy_name = env.execution_policy or base.error_handling.execution_policy
    error_handling = ErrorHandling(
        execution_policy=policy_name,
        custom_error_messages=merge_overrides(
            base.error_handling.custom_error_messages, env.custom_error_messages
        ),
    )
    logger.debug(
        "Applied environment '%s' (globals=%s, policy=%s)",
        environment,
        sorted(env.globals),
        policy_name,
    )
    return replace(
        base,
        globals=merge_overrides(base.globals, copy.deepcopy(env.globals)),
        error_handling=error_handling,
    )


def resolve_environment_name(explicit: Optional[str] = None) -> str:
    """Pick the environment to apply.

    An explicit name wins; otherwise ``RULEGATE_ENV`` is consulted. An empty
    result means "no overlay".
    """
    if explicit is not None:
        return explicit.strip()
    return os.environ.get(ENVIRONMENT_VAR, "").strip()


__all__ = [
    "ENVIRONMENT_VAR",
    "merge_overrides",
    "apply_environment",
    "resolve_environment_name",
]
