from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Optional, Union

LOG_LEVEL_VAR = "RULEGATE_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_CONFIGURED_TARGET: str | None = None
_RULEGATE_HANDLER: logging.Handler | None = None


def level_from_name(name: Optional[str]) -> int:
    """Map a level name to its numeric value, defaulting to WARNING."""
    if not name:
        return logging.WARNING
    value = getattr(logging, str(name).upper(), None)
    return value if isinstance(value, int) else logging.WARNING


def default_level_name() -> str:
    return os.environ.get(LOG_LEVEL_VAR, "WARNING")


def configure_logging(level: Optional[str] = None, log_path: Union[str, Path, None] = None) -> logging.Handler:
    """Install the rulegate handler on the ``rulegate`` logger.

    Writes to ``log_path`` when given, otherwise to stderr. Idempotent per
    process: calling again with the same target only adjusts the level.
    """
    global _CONFIGURED_TARGET, _RULEGATE_HANDLER

    numeric = level_from_name(level or default_level_name())
    target = str(Path(log_path).resolve()) if log_path else "<stderr>"
    logger = logging.getLogger("rulegate")
    logger.setLevel(numeric)

    if _RULEGATE_HANDLER is not None and _CONFIGURED_TARGET == target:
        _RULEGATE_HANDLER.setLevel(numeric)
        return _RULEGATE_HANDLER

    if _RULEGATE_HANDLER is not None:
        logger.removeHandler(_RULEGATE_HANDLER)
        _RULEGATE_HANDLER.close()

    handler: logging.Handler
    if log_path:
        Path(target).parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(target, encoding="utf-8")
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(numeric)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)

    _RULEGATE_HANDLER = handler
    _CONFIGURED_TARGET = target
    return handler


def reset_logging_for_tests() -> None:
    """Test-only: remove the handler installed by :func:`configure_logging`."""
    global _CONFIGURED_TARGET, _RULEGATE_HANDLER
    if _RULEGATE_HANDLER is not None:
        logger = logging.getLogger("rulegate")
        logger.removeHandler(_RULEGATE_HANDLER)
        _RULEGATE_HANDLER.close()
        logger.setLevel(logging.NOTSET)
    _CONFIGURED_TARGET = None
    _RULEGATE_HANDLER = None


__all__ = ["LOG_LEVEL_VAR", "configure_logging", "reset_logging_for_tests", "level_from_name", "default_level_name"]
