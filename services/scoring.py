"""Score aggregation across graded challenge variants."""
from __future__ import annotations

import math
from typing import List, Mapping, Optional, Sequence

from grading.engine import TestOutcome
from grading.rules import RuleTable

from .models import ScoreCard, Session


def _round1(value: float) -> float:
    """Round a float to one decimal place with stable formatting."""
    return float(f"{value:.1f}")


def _percent(score: float, max_score: float) -> int:
    if max_score <= 0:
        return 0
    return int(math.floor(score / max_score * 100 + 0.5))


def flatten(outcomes_by_variant: Mapping[str, Sequence[TestOutcome]]) -> List[TestOutcome]:
    flat: List[TestOutcome] = []
    for outcomes in outcomes_by_variant.values():
        flat.extend(outcomes)
    return flat


def aggregate(
    outcomes_by_variant: Mapping[str, Sequence[TestOutcome]],
    *,
    point_value: float,
    max_score: float,
    point_values: Optional[Mapping[str, float]] = None,
) -> ScoreCard:
    """Fold per-variant outcomes into a score capped at ``max_score``.

    Passes in a variant listed in ``point_values`` earn that variant's points;
    any other variant earns ``point_value``.
    """

    point_values = point_values or {}
    flat = flatten(outcomes_by_variant)
    passed = sum(1 for outcome in flat if outcome.passed)
    raw = 0.0
    for variant_id, outcomes in outcomes_by_variant.items():
        hits = sum(1 for outcome in outcomes if outcome.passed)
        raw += hits * point_values.get(variant_id, point_value)
    score = min(_round1(raw), max_score)
    return ScoreCard(
        score=score,
        max_score=max_score,
        percentage=_percent(score, max_score),
        bugs_passed=passed,
        total_bugs=len(flat),
        point_value=point_value,
    )


def point_value_for(table: RuleTable, variant_id: Optional[str], max_score: float, fallback_count: int = 0) -> float:
    """Per-bug points for ``variant_id``: the maximum divided by its rule count."""

    variant = table.variant(variant_id)
    if variant is not None and variant.rules:
        return variant.point_value(max_score)
    if fallback_count > 0:
        return max_score / fallback_count
    return 0.0


def score_outcomes(
    table: RuleTable,
    variant_id: Optional[str],
    outcomes_by_variant: Mapping[str, Sequence[TestOutcome]],
    max_score: float,
) -> ScoreCard:
    """Score graded outcomes, each variant at its own per-bug point value.

    ``variant_id`` only picks the point value reported on the card.
    """

    per_variant = {
        graded: point_value_for(table, graded, max_score, len(outcomes))
        for graded, outcomes in outcomes_by_variant.items()
    }
    points = per_variant.get(variant_id)
    if points is None:
        points = point_value_for(table, variant_id, max_score, len(flatten(outcomes_by_variant)))
    return aggregate(outcomes_by_variant, point_value=points, max_score=max_score, point_values=per_variant)


def score_session(session: Session, table: RuleTable, max_score: float) -> ScoreCard:
    """Score card for everything graded so far in ``session``."""

    return score_outcomes(table, session.variant, session.variant_outcomes, max_score)


__all__ = [
    "aggregate",
    "flatten",
    "point_value_for",
    "score_outcomes",
    "score_session",
]
