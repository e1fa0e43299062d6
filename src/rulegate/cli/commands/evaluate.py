"""rulegate evaluate command.

SUMMARY: Evaluate rules or rulesets against a context file.

Exit codes:
    0  everything evaluated passed
    1  at least one rule or ruleset did not pass
    2  the engine could not be built, a name was unknown, or the batch
       evaluation was aborted (timeout)
"""

from __future__ import annotations

import argparse
from typing import Any, Dict, List, Optional

from rulegate.cli import OutputFormatter, add_config_arg, add_env_flag, add_json_flag
from rulegate.core.config import load_context
from rulegate.core.engine import RuleEngine, RuleResult, RulesetResult
from rulegate.core.exceptions import BatchEvaluationError, RulegateError

SUMMARY = "Evaluate rules/rulesets against a YAML or JSON context"

EXIT_PASSED = 0
EXIT_FAILED = 1
EXIT_ERROR = 2


def register_args(parser: argparse.ArgumentParser) -> None:
    add_config_arg(parser)
    add_env_flag(parser)
    parser.add_argument(
        "--context",
        dest="context_file",
        default=None,
        help="YAML/JSON file with the evaluation context (e.g. user, request)",
    )
    parser.add_argument(
        "--rule",
        dest="rules",
        action="append",
        default=[],
        help="Rule to evaluate (repeatable)",
    )
    parser.add_argument(
        "--ruleset",
        dest="rulesets",
        action="append",
        default=[],
        help="Ruleset to evaluate (repeatable); all rulesets when no --rule/--ruleset is given",
    )
    add_json_flag(parser)


def _print_rule(formatter: OutputFormatter, result: RuleResult, indent: str = "") -> None:
    line = f"{indent}{result.rule_name}: {'PASS' if result.passed else 'FAIL'} ({result.duration_ms:.2f}ms)"
    if result.error is not None:
        line += f" - {result.error}"
    formatter.text(line)


def _print_ruleset(formatter: OutputFormatter, result: RulesetResult) -> None:
    formatter.text(f"Ruleset: {result.ruleset_name}")
    formatter.text_kv("passed", result.passed)
    formatter.text_kv("duration", f"{result.duration_ms:.2f}ms")
    if result.error is not None:
        formatter.text_kv("error", result.error)
    formatter.text("  rules:")
    for rule_result in result.rule_results.values():
        _print_rule(formatter, rule_result, indent="    ")


def _report(
    formatter: OutputFormatter,
    rules: List[RuleResult],
    rulesets: List[RulesetResult],
    error: Optional[RulegateError] = None,
) -> None:
    if formatter.json_mode:
        payload: Dict[str, Any] = {
            "passed": error is None and all(r.passed for r in [*rules, *rulesets]),
            "rules": [r.to_dict() for r in rules],
            "rulesets": [r.to_dict() for r in rulesets],
        }
        if error is not None:
            payload["error"] = error.to_json_error()
        formatter.json_output(payload)
        return

    for rule_result in rules:
        _print_rule(formatter, rule_result)
    for ruleset_result in rulesets:
        _print_ruleset(formatter, ruleset_result)
    if error is not None:
        formatter.error(error)


def main(args: argparse.Namespace) -> int:
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))

    try:
        engine = RuleEngine.from_file(args.config, environment=args.environment)
        context = load_context(args.context_file) if args.context_file else {}
    except RulegateError as exc:
        formatter.error(exc, error_code=type(exc).__name__)
        return EXIT_ERROR

    engine.set_context(context)

    rule_results: List[RuleResult] = []
    ruleset_results: List[RulesetResult] = []
    try:
        if args.rules or args.rulesets:
            rule_results = [engine.evaluate_rule(name) for name in args.rules]
            ruleset_results = [engine.evaluate_ruleset(name) for name in args.rulesets]
        else:
            ruleset_results = list(engine.evaluate_all().values())
    except BatchEvaluationError as exc:
        _report(formatter, rule_results, list(exc.results.values()), exc)
        return EXIT_ERROR
    except RulegateError as exc:
        formatter.error(exc, error_code=type(exc).__name__)
        return EXIT_ERROR

    _report(formatter, rule_results, ruleset_results)
    if all(r.passed for r in [*rule_results, *ruleset_results]):
        return EXIT_PASSED
    return EXIT_FAILED
