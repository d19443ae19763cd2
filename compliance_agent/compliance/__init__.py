"""
Compliance rule definitions, evaluators and risk scoring.

Modules under this package check company snapshots against IT Park
reporting rules and turn findings into a bounded risk score.
"""

from .rules import DEFAULT_RULES, ComplianceRule, evaluate_rule, evaluate_rules, parse_rule_definition
from .scoring import risk_level, score

__all__ = [
    "ComplianceRule",
    "DEFAULT_RULES",
    "evaluate_rule",
    "evaluate_rules",
    "parse_rule_definition",
    "risk_level",
    "score",
]
