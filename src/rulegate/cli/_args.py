"""Common CLI argument registration utilities."""
from __future__ import annotations

import argparse


def add_json_flag(parser: argparse.ArgumentParser) -> None:
    """Add --json flag for JSON output mode."""
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output as JSON",
    )


def add_config_arg(parser: argparse.ArgumentParser) -> None:
    """Add the positional configuration path."""
    parser.add_argument("config", help="Path to the ruleset configuration (YAML)")


def add_env_flag(parser: argparse.ArgumentParser) -> None:
    """Add --env; when omitted, RULEGATE_ENV is consulted."""
    parser.add_argument(
        "--env",
        dest="environment",
        default=None,
        help="Environment overlay to apply (default: $RULEGATE_ENV)",
    )


__all__ = ["add_json_flag", "add_config_arg", "add_env_flag"]
