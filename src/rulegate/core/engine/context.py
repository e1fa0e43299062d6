"""Evaluation context assembly.

Setting a context is a wholesale replacement, with three reserved bindings
always (re-)injected on top of the caller's mapping:

- ``globals``: the resolved configuration globals
- ``now``: accessor returning the current UTC time
- ``timestamp``: accessor parsing an RFC 3339 string into a datetime

Caller-supplied values under those keys are overwritten.
"""
from __future__ import annotations

import copy
import re
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

GLOBALS_KEY = "globals"
NOW_KEY = "now"
TIMESTAMP_KEY = "timestamp"
RESERVED_KEYS = (GLOBALS_KEY, NOW_KEY, TIMESTAMP_KEY)

_FRACTION = re.compile(r"(?<=:\d\d)\.(\d+)")


def now() -> datetime:
    return datetime.now(timezone.utc)


def _six_digit_fraction(match: "re.Match[str]") -> str:
    return "." + match.group(1)[:6].ljust(6, "0")


def timestamp(value: Any) -> datetime:
    """Parse an RFC 3339 timestamp; datetimes pass through unchanged.

    Fractional seconds of any length are accepted and truncated to
    microseconds.

    Raises:
        ValueError: If ``value`` is not a valid timestamp.
    """
    if isinstance(value, datetime):
        return value
    text = str(value).strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    # datetime.fromisoformat only takes 3 or 6 fraction digits before 3.11.
    text = _FRACTION.sub(_six_digit_fraction, text, count=1)
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        raise ValueError(f"timestamp {value!r} has no UTC offset")
    return parsed


def build_evaluation_context(
    user_context: Optional[Mapping[str, Any]],
    globals_: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """Return a fresh context: ``user_context`` plus the reserved bindings.

    Neither argument is mutated; globals are deep-copied so expressions cannot
    observe later changes to the configuration.
    """
    context: Dict[str, Any] = dict(user_context or {})
    context[GLOBALS_KEY] = copy.deepcopy(dict(globals_ or {}))
    context[NOW_KEY] = now
    context[TIMESTAMP_KEY] = timestamp
    return context


__all__ = [
    "GLOBALS_KEY",
    "NOW_KEY",
    "TIMESTAMP_KEY",
    "RESERVED_KEYS",
    "now",
    "timestamp",
    "build_evaluation_context",
]
