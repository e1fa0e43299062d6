"""Execution policy resolution.

The active policy name (``error_handling.execution_policy``) is looked up in
``execution_policies``. Defaults before lookup are ``stop_on_failure=True``
and a 5 second budget; a found policy always sets ``stop_on_failure`` and
overrides the budget when ``max_execution_time`` is non-empty.

Durations use the compact ``<number><unit>`` notation, with units chained
(``1h30m``, ``250ms``, ``1.5s``, ``1ns``). Supported units: ``ns``, ``us``
(``µs``/``μs``), ``ms``, ``s``, ``m``, ``h``. A bare ``0`` is accepted.
"""
from __future__ import annotations

import re
from dataclasses import dataclass

from rulegate.core.exceptions import InvalidDurationError, PolicyNotFoundError

from .models import RulesetConfig

DEFAULT_STOP_ON_FAILURE = True
DEFAULT_MAX_EXECUTION_TIME = 5.0  # seconds

_UNIT_SECONDS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,  # U+00B5 micro sign
    "μs": 1e-6,  # U+03BC greek mu
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

_COMPONENT = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")


def parse_duration(value: str) -> float:
    """Parse a duration string into seconds.

    Raises:
        InvalidDurationError: If ``value`` is not a valid duration.
    """
    text = (value or "").strip()
    if not text:
        raise InvalidDurationError(value)

    sign = 1.0
    if text[0] in "+-":
        sign = -1.0 if text[0] == "-" else 1.0
        text = text[1:]

    if text == "0":
        return 0.0

    pos = 0
    total = 0.0
    while pos < len(text):
        match = _COMPONENT.match(text, pos)
        if match is None:
            raise InvalidDurationError(value)
        number, unit = match.groups()
        total += float(number) * _UNIT_SECONDS[unit]
        pos = match.end()

    if pos == 0:
        raise InvalidDurationError(value)
    return sign * total


@dataclass(frozen=True)
class ExecutionPolicy:
    """Effective policy derived from configuration.

    Attributes:
        stop_on_failure: Stop AND rulesets at the first failing member
        max_execution_time: Budget for a whole batch evaluation, in seconds
        name: Policy name the values came from
    """

    stop_on_failure: bool = DEFAULT_STOP_ON_FAILURE
    max_execution_time: float = DEFAULT_MAX_EXECUTION_TIME
    name: str = ""

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "stop_on_failure": self.stop_on_failure,
            "max_execution_time": self.max_execution_time,
        }


def resolve_policy(config: RulesetConfig) -> ExecutionPolicy:
    """Derive the effective execution policy for ``config``.

    Raises:
        PolicyNotFoundError: If the active policy name is not declared.
        InvalidDurationError: If the policy's ``max_execution_time`` is invalid.
    """
    name = config.error_handling.execution_policy
    declared = config.execution_policies.get(name)
    if declared is None:
        raise PolicyNotFoundError(name)

    max_execution_time = DEFAULT_MAX_EXECUTION_TIME
    if declared.max_execution_time:
        try:
            max_execution_time = parse_duration(declared.max_execution_time)
        except InvalidDurationError as exc:
            raise InvalidDurationError(declared.max_execution_time, policy_name=name) from exc

    return ExecutionPolicy(
        stop_on_failure=declared.stop_on_failure,
        max_execution_time=max_execution_time,
        name=name,
    )


__all__ = [
    "DEFAULT_STOP_ON_FAILURE",
    "DEFAULT_MAX_EXECUTION_TIME",
    "ExecutionPolicy",
    "parse_duration",
    "resolve_policy",
]
