"""rulegate show command.

SUMMARY: Print the effective configuration after the environment overlay.
"""

from __future__ import annotations

import argparse

import yaml

from rulegate.cli import OutputFormatter, add_config_arg, add_env_flag, add_json_flag
from rulegate.core.config import apply_environment, load_config, resolve_environment_name
from rulegate.core.exceptions import RulegateError

SUMMARY = "Show the effective configuration for an environment"


def register_args(parser: argparse.ArgumentParser) -> None:
    add_config_arg(parser)
    add_env_flag(parser)
    add_json_flag(parser)


def main(args: argparse.Namespace) -> int:
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))

    try:
        config = load_config(args.config)
    except RulegateError as exc:
        formatter.error(exc, error_code=type(exc).__name__)
        return 1

    environment = resolve_environment_name(args.environment)
    document = apply_environment(config, environment).to_dict()
    # Overlays are already applied; listing them again would be misleading.
    document.pop("environments", None)

    if formatter.json_mode:
        formatter.json_output({"environment": environment, "config": document})
    else:
        formatter.text(yaml.safe_dump(document, sort_keys=False, allow_unicode=True).rstrip())
    return 0
