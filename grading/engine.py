"""Static rule-based grading of submitted source text.

Submissions are never compiled or executed. Each bug rule scopes the source
to a method body by pattern and checks literal or regex presence/absence in
it, so the same text always grades the same way.
"""
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel

from .rules import RuleTable, Variant

NO_RULES_NAME = "Unknown Test"
NO_RULES_MESSAGE = "Select a debugging challenge to see test results"


class TestOutcome(BaseModel):
    __test__ = False  # keep pytest from collecting this model

    ordinal: int
    name: str
    passed: bool
    message: str


def _no_rules() -> List[TestOutcome]:
    return [TestOutcome(ordinal=1, name=NO_RULES_NAME, passed=False, message=NO_RULES_MESSAGE)]


def grade_variant(variant: Optional[Variant], source: str) -> List[TestOutcome]:
    """Evaluate every rule of ``variant`` against ``source`` in ordinal order."""

    if variant is None or not variant.rules:
        return _no_rules()

    text = source or ""
    outcomes: List[TestOutcome] = []
    for ordinal, rule in enumerate(variant.rules, start=1):
        region = rule.scope(text)
        passed = rule.check.evaluate(region)
        outcomes.append(
            TestOutcome(
                ordinal=ordinal,
                name=rule.name,
                passed=passed,
                message=rule.pass_message if passed else rule.fail_message,
            )
        )
    return outcomes


def grade(table: RuleTable, variant_id: Optional[str], source: str) -> List[TestOutcome]:
    """Grade ``source`` against the rules configured for ``variant_id``."""

    return grade_variant(table.variant(variant_id), source)


__all__ = ["NO_RULES_MESSAGE", "NO_RULES_NAME", "TestOutcome", "grade", "grade_variant"]
