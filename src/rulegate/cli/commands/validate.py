"""rulegate validate command.

SUMMARY: Check that a configuration builds a rule engine.

Runs the full construction pipeline (load, schema validation, environment
overlay, policy resolution, compilation) and reports the first failure.
"""

from __future__ import annotations

import argparse

from rulegate.cli import OutputFormatter, add_config_arg, add_env_flag, add_json_flag
from rulegate.core.engine import RuleEngine
from rulegate.core.exceptions import RulegateError

SUMMARY = "Validate a ruleset configuration (schema, policy, expressions)"


def register_args(parser: argparse.ArgumentParser) -> None:
    add_config_arg(parser)
    add_env_flag(parser)
    add_json_flag(parser)


def main(args: argparse.Namespace) -> int:
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))

    try:
        engine = RuleEngine.from_file(args.config, environment=args.environment)
    except RulegateError as exc:
        if formatter.json_mode:
            formatter.json_output({"ok": False, "config": str(args.config), **exc.to_json_error()})
        else:
            formatter.error(exc, error_code=type(exc).__name__)
        return 1

    policy = engine.policy
    summary = {
        "ok": True,
        "config": str(args.config),
        "environment": engine.environment,
        "policy": policy.to_dict(),
        "rules": len(engine.config.rules),
        "rulesets": len(engine.config.rulesets),
        "programs": len(engine.program_names),
    }
    if formatter.json_mode:
        formatter.json_output(summary)
    else:
        formatter.text(f"{args.config}: valid")
        formatter.text_kv("environment", engine.environment or "<none>")
        formatter.text_kv("policy", f"{policy.name} (stop_on_failure={policy.stop_on_failure}, "
                                    f"max_execution_time={policy.max_execution_time:g}s)")
        formatter.text_kv("rules", summary["rules"])
        formatter.text_kv("rulesets", summary["rulesets"])
        formatter.text_kv("compiled programs", summary["programs"])
    return 0
