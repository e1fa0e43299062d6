"""
rulegate - declarative rule and policy evaluation

Business conditions are written as CEL expressions, grouped into rulesets
combined with AND/OR selectors, and evaluated under execution policies that
environments (development, production, ...) can override.
"""

__version__ = "0.3.0"

from rulegate.core.config import RulesetConfig, load_config
from rulegate.core.engine import RuleEngine, RuleResult, RulesetResult
from rulegate.core.exceptions import RulegateError
from rulegate.core.expressions import CelExpressionEngine

__all__ = [
    "__version__",
    "RulesetConfig",
    "load_config",
    "RuleEngine",
    "RuleResult",
    "RulesetResult",
    "RulegateError",
    "CelExpressionEngine",
]
