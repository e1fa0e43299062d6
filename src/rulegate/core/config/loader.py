"""Configuration source: read ruleset documents from YAML.

Documents are parsed with PyYAML and validated against the bundled JSON
Schema (``data/schemas/ruleset-config.schema.yaml``) before being turned into
a :class:`RulesetConfig`. Loading fails closed: a missing file, invalid YAML,
a non-mapping document or a schema violation all raise ``ConfigLoadError``.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from jsonschema import Draft202012Validator

from rulegate.core.exceptions import ConfigLoadError
from rulegate.data import read_yaml as read_bundled_yaml

from .models import RulesetConfig

logger = logging.getLogger(__name__)

SCHEMA_FILE = "ruleset-config.schema.yaml"

PathLike = Union[str, Path]


def load_schema() -> Dict[str, Any]:
    """Return the bundled configuration schema."""
    schema = read_bundled_yaml("schemas", SCHEMA_FILE)
    if not isinstance(schema, dict):
        raise ValueError(f"Schema must be a YAML mapping, got {type(schema).__name__}")
    return schema


def schema_errors(document: Any) -> List[str]:
    """Validate ``document`` and return readable error messages (empty if valid)."""
    validator = Draft202012Validator(load_schema())
    errors: List[str] = []
    for error in sorted(validator.iter_errors(document), key=lambda e: [str(p) for p in e.path]):
        if error.path:
            path_str = ".".join(str(p) for p in error.path)
            errors.append(f"{path_str}: {error.message}")
        else:
            errors.append(error.message)
    return errors


def read_document(path: PathLike) -> Dict[str, Any]:
    """Read a YAML document from ``path``.

    Raises:
        ConfigLoadError: If the file is missing, unparsable or not a mapping.
    """
    p = Path(path)
    if not p.exists():
        raise ConfigLoadError(f"configuration file not found: {p}", path=str(p))
    try:
        with open(p, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigLoadError(f"failed to read configuration {p}: {exc}", path=str(p)) from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigLoadError(
            f"configuration {p} must be a YAML mapping, got {type(data).__name__}",
            path=str(p),
        )
    return data


def parse_config(document: Dict[str, Any], *, source: Optional[str] = None, validate: bool = True) -> RulesetConfig:
    """Build a :class:`RulesetConfig` from an already-parsed document."""
    if validate:
        errors = schema_errors(document)
        if errors:
            where = source or "<document>"
            details = "\n".join(f"  - {e}" for e in errors)
            raise ConfigLoadError(
                f"configuration {where} failed schema validation:\n{details}",
                path=source,
                context={"errors": errors},
            )
    return RulesetConfig.from_dict(document)


def load_config(path: PathLike, *, validate: bool = True) -> RulesetConfig:
    """Load and validate the configuration document at ``path``."""
    document = read_document(path)
    config = parse_config(document, source=str(path), validate=validate)
    logger.debug(
        "Loaded configuration %s (%d rules, %d rulesets)",
        path,
        len(config.rules),
        len(config.rulesets),
    )
    return config


def load_context(path: PathLike) -> Dict[str, Any]:
    """Load an evaluation context mapping from a YAML or JSON file."""
    p = Path(path)
    try:
        data = yaml.safe_load(p.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigLoadError(f"failed to read context {p}: {exc}", path=str(p)) from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigLoadError(
            f"context {p} must be a mapping, got {type(data).__name__}", path=str(p)
        )
    return data


__all__ = [
    "load_schema",
    "schema_errors",
    "read_document",
    "parse_config",
    "load_config",
    "load_context",
]
