"""Tests for the rulegate command-line interface."""
from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml

from rulegate.cli._dispatcher import build_parser, discover_commands, main as cli_main

from helpers.configs import base_document, passing_context
from helpers.io_utils import write_yaml


@pytest.fixture
def config_path(write_config) -> Path:
    return write_config(base_document())


@pytest.fixture
def context_path(tmp_path: Path):
    def _write(ctx) -> Path:
        path = tmp_path / "context.yml"
        write_yaml(path, ctx)
        return path

    return _write


def test_commands_are_discovered() -> None:
    assert set(discover_commands()) == {"evaluate", "show", "validate"}
    assert build_parser().prog == "rulegate"


def test_no_command_prints_help(capsys: pytest.CaptureFixture[str]) -> None:
    assert cli_main([]) == 0
    assert "usage: rulegate" in capsys.readouterr().out


def test_validate_reports_summary(config_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code = cli_main(["validate", str(config_path), "--env", "production", "--json"])
    payload = json.loads(capsys.readouterr().out)

    assert code == 0
    assert payload["ok"] is True
    assert payload["environment"] == "production"
    assert payload["policy"]["name"] == "fail_fast"
    assert payload["programs"] == 4


def test_validate_text_mode(config_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert cli_main(["validate", str(config_path)]) == 0
    assert "valid" in capsys.readouterr().out


def test_validate_fails_on_cycle(write_config, capsys: pytest.CaptureFixture[str]) -> None:
    doc = base_document()
    doc["rules"]["a"] = {"expression": "true", "extends": "b"}
    doc["rules"]["b"] = {"expression": "true", "extends": "a"}

    code = cli_main(["validate", str(write_config(doc)), "--json"])
    payload = json.loads(capsys.readouterr().out)

    assert code == 1
    assert payload["ok"] is False
    assert payload["code"] == "InheritanceCycleError"


def test_evaluate_all_passing(config_path: Path, context_path, capsys: pytest.CaptureFixture[str]) -> None:
    code = cli_main(
        ["evaluate", str(config_path), "--context", str(context_path(passing_context())), "--json"]
    )
    payload = json.loads(capsys.readouterr().out)

    assert code == 0
    assert payload["passed"] is True
    assert {r["ruleset"] for r in payload["rulesets"]} == {"user_registration", "request_throttling"}


def test_evaluate_business_failure_exits_one(config_path: Path, context_path, capsys) -> None:
    ctx = passing_context()
    ctx["user"]["age"] = 15
    code = cli_main(
        [
            "evaluate",
            str(config_path),
            "--env",
            "production",
            "--context",
            str(context_path(ctx)),
            "--rule",
            "age_validation",
        ]
    )
    out = capsys.readouterr().out

    assert code == 1
    assert "age_validation: FAIL" in out
    assert "user must be at least 18 years old" in out


def test_evaluate_named_ruleset(config_path: Path, context_path, capsys) -> None:
    ctx = {"user": {"tier": "premium"}, "request": {"attempt": 10}}
    code = cli_main(
        [
            "evaluate",
            str(config_path),
            "--context",
            str(context_path(ctx)),
            "--ruleset",
            "request_throttling",
            "--json",
        ]
    )
    payload = json.loads(capsys.readouterr().out)

    assert code == 0
    assert [r["rule"] for r in payload["rulesets"][0]["rules"]] == ["rate_limiting", "user_tier"]


def test_evaluate_unknown_name_exits_two(config_path: Path, capsys) -> None:
    assert cli_main(["evaluate", str(config_path), "--ruleset", "unknown_ruleset"]) == 2
    assert "unknown_ruleset" in capsys.readouterr().err


def test_evaluate_timeout_exits_two_with_partial_results(config_path: Path, context_path, capsys) -> None:
    code = cli_main(
        [
            "evaluate",
            str(config_path),
            "--env",
            "production",
            "--context",
            str(context_path(passing_context())),
            "--json",
        ]
    )
    payload = json.loads(capsys.readouterr().out)

    assert code == 2
    assert payload["passed"] is False
    assert payload["error"]["code"] == "EvaluationTimeoutError"


def test_evaluate_missing_config_exits_two(tmp_path: Path, capsys) -> None:
    assert cli_main(["evaluate", str(tmp_path / "missing.yml")]) == 2
    assert "not found" in capsys.readouterr().err


def test_show_prints_overlaid_configuration(config_path: Path, capsys) -> None:
    assert cli_main(["show", str(config_path), "--env", "production"]) == 0
    document = yaml.safe_load(capsys.readouterr().out)

    assert document["globals"]["min_age"] == 18
    assert document["error_handling"]["execution_policy"] == "fail_fast"
    assert "environments" not in document


def test_show_uses_env_var(config_path: Path, capsys, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RULEGATE_ENV", "production")
    assert cli_main(["show", str(config_path), "--json"]) == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["environment"] == "production"
    assert payload["config"]["globals"]["min_age"] == 18


def test_profile_flag_reports_phases(config_path: Path, capsys) -> None:
    assert cli_main(["--profile", "validate", str(config_path)]) == 0
    err = capsys.readouterr().err
    assert "engine.compile" in err
    assert "cli.command.exec" in err


def test_log_file_flag(config_path: Path, tmp_path: Path, capsys) -> None:
    log_path = tmp_path / "cli.log"
    assert cli_main(["--log-level", "INFO", "--log-file", str(log_path), "validate", str(config_path)]) == 0
    assert "Rule engine ready" in log_path.read_text(encoding="utf-8")
