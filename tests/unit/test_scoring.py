import pytest

import services.scoring as scoring
from grading.engine import TestOutcome


def _run(*flags):
    return [
        TestOutcome(ordinal=i, name=f"BUG {i}", passed=flag, message="")
        for i, flag in enumerate(flags, start=1)
    ]


def test_one_of_three_earns_one_point_value():
    card = scoring.aggregate({"selenium-pageobject": _run(True, False, False)}, point_value=10 / 3, max_score=10.0)
    assert card.score == pytest.approx(3.3)
    assert card.percentage == 33
    assert (card.bugs_passed, card.total_bugs) == (1, 3)


def test_score_is_capped_at_max():
    outcomes = {"a": _run(True, True, True), "b": _run(True, True)}
    card = scoring.aggregate(outcomes, point_value=2.5, max_score=10.0)
    assert card.score == 10.0
    assert card.percentage == 100
    assert card.bugs_passed == 5


def test_more_passes_never_lower_the_score():
    previous = -1.0
    for passed in range(0, 11):
        flags = [True] * passed + [False] * (10 - passed)
        card = scoring.aggregate({"selenium-senior": _run(*flags)}, point_value=1.0, max_score=10.0)
        assert card.score >= previous
        previous = card.score
    assert previous == 10.0


def test_percentage_rounds_half_up():
    assert scoring._percent(1.25, 10.0) == 13
    assert scoring._percent(0.0, 10.0) == 0
    assert scoring._percent(5.0, 0.0) == 0


def test_point_value_for_known_and_unknown_variants(table):
    assert scoring.point_value_for(table, "selenium-senior", 10.0) == pytest.approx(1.0)
    assert scoring.point_value_for(table, "mystery", 10.0, fallback_count=4) == pytest.approx(2.5)
    assert scoring.point_value_for(table, "mystery", 10.0) == 0.0


def test_score_session_uses_active_variant(store, table):
    session = store.create("Ada", "Selenium Debugging")
    store.record_grading(session.id, "selenium-pageobject", _run(True, True, False), "out")
    card = scoring.score_session(store.get(session.id), table, 10.0)
    assert card.point_value == pytest.approx(10 / 3)
    assert card.score == pytest.approx(6.7)
    assert card.percentage == 67



def test_each_variant_scores_at_its_own_point_value(table):
    graded = {
        "selenium-pageobject": _run(True, False, False),
        "selenium-senior": _run(True, True, False, False, False, False, False, False, False, False),
    }
    card = scoring.score_outcomes(table, "selenium-senior", graded, 10.0)
    assert card.score == pytest.approx(5.3)
    assert card.point_value == pytest.approx(1.0)
    assert card.bugs_passed == 3


def test_switching_variant_leaves_the_score_alone(store, table):
    session = store.create("Ada", "Selenium Debugging")
    store.record_grading(session.id, "selenium-pageobject", _run(True, True, True), "out")
    before = scoring.score_session(store.get(session.id), table, 10.0)
    store.update_variant(session.id, "selenium-waits")
    after = scoring.score_session(store.get(session.id), table, 10.0)
    assert before.score == after.score == 10.0
    assert after.percentage == 100
