from __future__ import annotations  # Test-suite console text shared by both parties

from typing import Sequence, Tuple

from .engine import TestOutcome

RULE_LINE = "=" * 60


def _points(value: float) -> str:  # Format a per-bug point value
    label = "point" if round(value, 1) == 1.0 else "points"
    return f"{value:.1f} {label}"


def render_console(variant_id: str, outcomes: Sequence[TestOutcome], point_value: float) -> Tuple[str, bool]:  # Render outcomes as console text plus overall success
    lines = [f"🧪 Running Test Suite for {variant_id}...", RULE_LINE, ""]
    for outcome in outcomes:
        mark = "✅" if outcome.passed else "❌"
        verdict = "PASS" if outcome.passed else "FAIL"
        earned = point_value if outcome.passed else 0.0
        lines.append(f"Test {outcome.ordinal}: {outcome.name}")
        lines.append(f"  {mark} BUG {outcome.ordinal}: {verdict} [{_points(earned)}]")
        lines.append(f"  {outcome.message}")
        lines.append("")

    passed = sum(1 for outcome in outcomes if outcome.passed)
    total = len(outcomes)
    success = total > 0 and passed == total
    lines.append(RULE_LINE)
    lines.append(f"📊 Test Summary: {passed}/{total} tests passed")
    lines.append("")
    if success:
        lines.append("🎉 All tests passed! Great job fixing the bugs!")
    else:
        lines.append("⚠️  Some tests failed. Review the bugs and try again.")
    return "\n".join(lines) + "\n", success


def render_failure(error: BaseException) -> str:  # Console text for an aborted grading pass
    return f"Test execution failed: {error}"


__all__ = ["render_console", "render_failure"]
