"""Tests for reading configuration documents from YAML."""
from __future__ import annotations

from pathlib import Path

import pytest

from rulegate.core.config import (
    RulesetConfig,
    Selector,
    load_config,
    load_context,
    parse_config,
    schema_errors,
)
from rulegate.core.exceptions import ConfigLoadError, ConfigurationError

from helpers.configs import base_document
from helpers.io_utils import write_json, write_text


def test_loads_bundled_example(example_config_path: Path) -> None:
    config = load_config(example_config_path)

    assert config.api_version == "v1"
    assert config.kind == "RulesetConfig"
    assert config.globals["min_age"] == 13
    assert config.rules["age_validation"].expression == "user.age >= globals.min_age"
    assert config.rules["adult_user"].extends == "user_status"
    assert config.rulesets["request_throttling"].selector is Selector.OR
    assert config.rulesets["domain_whitelist"].extends == "email_format"
    assert config.rulesets["domain_whitelist"].expression
    assert config.execution_policies["fail_fast"].max_execution_time == "1ns"
    assert config.error_handling.execution_policy == "collect_all"
    assert config.environments["production"].execution_policy == "fail_fast"


def test_rule_id_comes_from_mapping_key(write_config) -> None:
    config = load_config(write_config(base_document()))
    rule = config.rules["age_validation"]
    assert rule.id == "age_validation"
    assert rule.name == "Age Validation"


def test_missing_file_raises_load_error(tmp_path: Path) -> None:
    missing = tmp_path / "nope.yml"
    with pytest.raises(ConfigLoadError) as exc_info:
        load_config(missing)
    assert exc_info.value.context["path"] == str(missing)
    assert isinstance(exc_info.value, ConfigurationError)


def test_invalid_yaml_raises_load_error(tmp_path: Path) -> None:
    path = tmp_path / "broken.yml"
    write_text(path, "rules: [unclosed\n")
    with pytest.raises(ConfigLoadError):
        load_config(path)


def test_non_mapping_document_raises_load_error(tmp_path: Path) -> None:
    path = tmp_path / "list.yml"
    write_text(path, "- a\n- b\n")
    with pytest.raises(ConfigLoadError, match="must be a YAML mapping"):
        load_config(path)


def test_schema_violation_lists_offending_path(write_config) -> None:
    doc = base_document()
    del doc["rules"]["user_status"]["expression"]
    with pytest.raises(ConfigLoadError) as exc_info:
        load_config(write_config(doc))
    errors = exc_info.value.context["errors"]
    assert any(e.startswith("rules.user_status") for e in errors)


def test_schema_errors_empty_for_valid_document() -> None:
    assert schema_errors(base_document()) == []


def test_schema_rejects_wrong_types() -> None:
    doc = base_document()
    doc["rulesets"]["user_registration"]["rules"] = "age_validation"
    doc["execution_policies"]["strict"]["stop_on_failure"] = "yes"
    errors = schema_errors(doc)
    assert len(errors) == 2


def test_validation_can_be_skipped() -> None:
    doc = base_document()
    doc["rules"]["user_status"]["expression"] = 42
    config = parse_config(doc, validate=False)
    assert config.rules["user_status"].expression == "42"


def test_combination_type_is_accepted_as_selector_alias() -> None:
    doc = base_document()
    doc["rulesets"]["request_throttling"] = {
        "combination_type": "or",
        "rules": ["rate_limiting"],
    }
    config = parse_config(doc)
    assert config.rulesets["request_throttling"].selector is Selector.OR


@pytest.mark.parametrize("raw", [None, "AND", "and", "xor", ""])
def test_anything_but_or_means_and(raw) -> None:
    assert Selector.parse(raw) is Selector.AND


def test_custom_rules_and_inline_expression_are_parsed() -> None:
    doc = base_document()
    doc["rulesets"]["user_registration"]["custom_rules"] = {
        "has_email": {"expression": "has(user.email)"},
    }
    doc["rulesets"]["user_registration"]["expression"] = "user.age < 150"
    ruleset = parse_config(doc).rulesets["user_registration"]

    assert ruleset.custom_rules["has_email"].expression == "has(user.email)"
    assert ruleset.qualified_name("has_email") == "user_registration.has_email"
    assert ruleset.inline_name == "ruleset.user_registration"


def test_blank_inline_expression_and_extends_are_treated_as_absent() -> None:
    doc = base_document()
    doc["rulesets"]["user_registration"]["expression"] = "   "
    doc["rulesets"]["user_registration"]["extends"] = ""
    ruleset = parse_config(doc).rulesets["user_registration"]
    assert ruleset.expression is None
    assert ruleset.extends is None


def test_environment_accepts_flat_and_nested_overrides() -> None:
    doc = base_document()
    doc["environments"]["staging"] = {
        "execution_policy": "strict",
        "custom_error_messages": {"user_status": "flat"},
        "error_handling": {
            "execution_policy": "fail_fast",
            "custom_error_messages": {"user_status": "nested", "user_tier": "nested"},
        },
    }
    env = parse_config(doc).environments["staging"]
    assert env.execution_policy == "strict"
    assert env.custom_error_messages == {"user_status": "flat", "user_tier": "nested"}


def test_to_dict_round_trips() -> None:
    config = parse_config(base_document())
    again = RulesetConfig.from_dict(config.to_dict())
    assert again == config


def test_load_context_reads_yaml_and_json(tmp_path: Path) -> None:
    yaml_path = tmp_path / "ctx.yml"
    write_text(yaml_path, "user:\n  age: 20\n")
    json_path = tmp_path / "ctx.json"
    write_json(json_path, {"request": {"attempt": 2}})

    assert load_context(yaml_path) == {"user": {"age": 20}}
    assert load_context(json_path) == {"request": {"attempt": 2}}


def test_load_context_rejects_non_mapping(tmp_path: Path) -> None:
    path = tmp_path / "ctx.yml"
    write_text(path, "- 1\n")
    with pytest.raises(ConfigLoadError):
        load_context(path)
