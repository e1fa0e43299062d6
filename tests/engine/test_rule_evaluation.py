"""Tests for single-rule evaluation, inheritance chains and failure messages."""
from __future__ import annotations

import pytest

from rulegate.core.exceptions import (
    ExpressionEvaluationError,
    LookupFailure,
    RuleFailure,
    RuleNotFoundError,
)

from helpers.configs import base_document, passing_context


def _chain_doc():
    doc = base_document()
    doc["rules"].update(
        {
            "c": {"expression": "user.c"},
            "b": {"expression": "user.b", "extends": "c"},
            "a": {"expression": "user.a", "extends": "b"},
        }
    )
    doc["error_handling"]["custom_error_messages"]["a"] = "a and its ancestors must hold"
    return doc


@pytest.mark.parametrize("age,expected", [(12, False), (13, True), (40, True)])
def test_rule_without_extends_matches_its_expression(build_engine, age: int, expected: bool) -> None:
    engine = build_engine(base_document())
    engine.set_context({"user": {"age": age}})

    result = engine.evaluate_rule("age_validation")

    assert result.rule_name == "age_validation"
    assert result.passed is expected
    assert result.value is expected
    assert result.duration_ms >= 0.0


def test_passing_rule_has_no_error(build_engine) -> None:
    engine = build_engine(base_document())
    engine.set_context(passing_context())
    result = engine.evaluate_rule("user_status")
    assert result.passed is True
    assert result.error is None
    assert result.is_runtime_error is False


def test_chain_passes_only_when_every_link_holds(build_engine, recording_engine) -> None:
    engine = build_engine(_chain_doc())
    engine.set_context({"user": {"a": True, "b": True, "c": True}})

    result = engine.evaluate_rule("a")

    assert result.passed is True
    # Immediate parent first, then up the chain, then the rule itself.
    assert recording_engine.evaluated == ["user.b", "user.c", "user.a"]


@pytest.mark.parametrize(
    "flags,evaluated",
    [
        ({"a": True, "b": False, "c": True}, ["user.b"]),
        ({"a": True, "b": True, "c": False}, ["user.b", "user.c"]),
        ({"a": False, "b": True, "c": True}, ["user.b", "user.c", "user.a"]),
    ],
)
def test_chain_stops_at_first_false_link(build_engine, recording_engine, flags, evaluated) -> None:
    engine = build_engine(_chain_doc())
    engine.set_context({"user": flags})

    result = engine.evaluate_rule("a")

    assert result.passed is False
    assert recording_engine.evaluated == evaluated
    assert isinstance(result.error, RuleFailure)
    assert str(result.error) == "a and its ancestors must hold"


def test_chain_stops_at_first_erroring_link(build_engine, recording_engine) -> None:
    engine = build_engine(_chain_doc())
    engine.set_context({"user": {"a": True, "c": True}})

    result = engine.evaluate_rule("a")

    assert result.passed is False
    assert recording_engine.evaluated == ["user.b"]
    assert isinstance(result.error, ExpressionEvaluationError)
    assert result.is_runtime_error is True


def test_custom_message_replaces_generic_on_business_failure(build_engine) -> None:
    engine = build_engine(base_document())
    engine.set_context({"user": {"age": 5}})
    result = engine.evaluate_rule("age_validation")
    assert str(result.error) == "user must be at least 18 years old"
    assert result.is_runtime_error is False


def test_generic_message_without_custom_entry(build_engine) -> None:
    engine = build_engine(base_document())
    engine.set_context({"user": {"status": "banned"}})
    result = engine.evaluate_rule("user_status")
    assert str(result.error) == "rule 'user_status' did not pass evaluation"


def test_runtime_error_is_passed_through_verbatim(build_engine) -> None:
    engine = build_engine(base_document())
    engine.set_context({"request": {"attempt": 1}})

    result = engine.evaluate_rule("age_validation")

    assert result.passed is False
    assert isinstance(result.error, ExpressionEvaluationError)
    assert str(result.error) != "user must be at least 18 years old"
    assert result.value is None


def test_non_boolean_result_is_a_business_failure(build_engine) -> None:
    doc = base_document()
    doc["rules"]["age_only"] = {"expression": "user.age"}
    engine = build_engine(doc)
    engine.set_context({"user": {"age": 30}})

    result = engine.evaluate_rule("age_only")

    assert result.passed is False
    assert result.value == 30
    assert isinstance(result.error, RuleFailure)


def test_unknown_rule_is_a_lookup_error(build_engine) -> None:
    engine = build_engine(base_document())
    with pytest.raises(RuleNotFoundError) as exc_info:
        engine.evaluate_rule("nope")
    assert isinstance(exc_info.value, LookupFailure)
    assert isinstance(exc_info.value, KeyError)
    assert str(exc_info.value) == "rule 'nope' not found"


def test_qualified_custom_rule_can_be_evaluated_directly(build_engine) -> None:
    doc = base_document()
    doc["rulesets"]["user_registration"]["custom_rules"] = {
        "premium": {"expression": "user.tier == 'premium'"},
    }
    engine = build_engine(doc)
    engine.set_context(passing_context())
    assert engine.evaluate_rule("user_registration.premium").passed is True


def test_evaluation_is_idempotent(build_engine) -> None:
    engine = build_engine(base_document())
    engine.set_context({"user": {"age": 5}})
    first = engine.evaluate_rule("age_validation")
    second = engine.evaluate_rule("age_validation")
    assert (first.passed, str(first.error)) == (second.passed, str(second.error))


def test_production_overlay_raises_minimum_age(build_engine) -> None:
    engine = build_engine(base_document(), environment="production")
    engine.set_context({"user": {"age": 15}})

    result = engine.evaluate_rule("age_validation")

    assert result.passed is False
    assert str(result.error) == "user must be at least 18 years old"


def test_same_context_passes_without_overlay(build_engine) -> None:
    engine = build_engine(base_document(), environment="development")
    engine.set_context({"user": {"age": 15}})
    assert engine.evaluate_rule("age_validation").passed is True


def test_to_dict_describes_result(build_engine) -> None:
    engine = build_engine(base_document())
    engine.set_context({"user": {"age": 5}})
    payload = engine.evaluate_rule("age_validation").to_dict()
    assert payload["rule"] == "age_validation"
    assert payload["passed"] is False
    assert payload["error_type"] == "RuleFailure"
    assert payload["error"] == "user must be at least 18 years old"
