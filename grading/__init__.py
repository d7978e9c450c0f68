from __future__ import annotations  # Re-export grading public API

from .console import render_console, render_failure
from .engine import NO_RULES_MESSAGE, TestOutcome, grade, grade_variant
from .rules import (
    BugRule,
    Challenge,
    Check,
    Region,
    RuleTable,
    RuleTableError,
    Variant,
    load_rule_table,
    reset_rule_table,
    rule_table,
)

__all__ = [
    "BugRule",
    "Challenge",
    "Check",
    "NO_RULES_MESSAGE",
    "Region",
    "RuleTable",
    "RuleTableError",
    "TestOutcome",
    "Variant",
    "grade",
    "grade_variant",
    "load_rule_table",
    "render_console",
    "render_failure",
    "reset_rule_table",
    "rule_table",
]
