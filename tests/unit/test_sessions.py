import pytest

from grading.engine import TestOutcome
from services.errors import EXPIRED_MESSAGE, SessionExpiredError, SessionNotFoundError
from services.models import SubmissionRecord, TimerSnapshot


def _coding(remaining: int) -> TimerSnapshot:
    return TimerSnapshot(
        is_instruction_phase=False,
        instruction_seconds_remaining=0,
        coding_seconds_remaining=remaining,
    )


def test_create_uses_challenge_defaults(store, table):
    session = store.create("Ada", "SpringBoot Testing")
    assert session.status == "waiting"
    assert session.variant == "springboot-test"
    assert session.code == table.starter_code("springboot-test")
    assert session.timer.is_instruction_phase is True
    assert session.timer.instruction_seconds_remaining == 60
    assert session.timer.coding_seconds_remaining == 900
    assert session.timer.last_reconciled_at is None
    assert session.id in store


def test_create_with_unknown_challenge_falls_back(store):
    session = store.create("Ada", "Haskell Katas")
    assert session.challenge_id == "Selenium Debugging"
    assert session.variant == "selenium-pageobject"


def test_ids_are_unique(store):
    ids = {store.create(f"c{i}", None).id for i in range(50)}
    assert len(ids) == 50


def test_reads_are_detached_copies(store):
    session = store.create("Ada", None)
    copy = store.get(session.id)
    copy.code = "tampered"
    assert store.get(session.id).code == session.code
    assert store.get("missing") is None


def test_join_activates_and_restamps(store, clock):
    session = store.create("Ada", None)
    joined = store.join(session.id)
    assert joined.status == "active"
    assert joined.timer.last_reconciled_at == clock()
    assert store.join(session.id).status == "active"


def test_join_missing_and_completed(store):
    with pytest.raises(SessionNotFoundError):
        store.join("nope")

    session = store.create("Ada", None)
    store.complete(session.id)
    with pytest.raises(SessionExpiredError) as excinfo:
        store.join(session.id)
    assert str(excinfo.value) == EXPIRED_MESSAGE


def test_rejoin_after_47_seconds(store, clock):
    session = store.create("Ada", None)
    store.join(session.id)
    store.update_timer(session.id, _coding(120))
    clock.advance(47)
    rejoined = store.join(session.id)
    assert rejoined.timer.coding_seconds_remaining == 73
    clock.advance(3)
    assert store.join(session.id).timer.coding_seconds_remaining == 70


def test_frequent_rejoins_do_not_drift(store, clock):
    session = store.create("Ada", None)
    store.join(session.id)
    store.update_timer(session.id, _coding(120))
    for _ in range(10):
        clock.advance(1.9)
        rejoined = store.join(session.id)
    assert rejoined.timer.coding_seconds_remaining == 120 - 19


def test_listing_reconciles_without_restamp(store, clock):
    session = store.create("Ada", None)
    store.update_timer(session.id, _coding(120))
    clock.advance(47)
    assert store.list_sessions()[0].timer.coding_seconds_remaining == 73
    clock.advance(10)
    assert store.list_sessions()[0].timer.coding_seconds_remaining == 63
    assert store.get(session.id).timer.coding_seconds_remaining == 120


def test_get_reconciled_leaves_the_stamp_alone(store, clock):
    session = store.create("Ada", None)
    store.update_timer(session.id, _coding(120))
    clock.advance(47.5)
    assert store.get_reconciled(session.id).timer.coding_seconds_remaining == 73
    clock.advance(0.5)
    assert store.get_reconciled(session.id).timer.coding_seconds_remaining == 72
    assert store.get(session.id).timer.coding_seconds_remaining == 120
    assert store.get_reconciled("nope") is None


def test_writes_return_the_updated_session(store):
    session = store.create("Ada", None)
    updated = store.update_code(session.id, "edited", "selenium-waits")
    assert updated.code == "edited"
    assert updated.variant == "selenium-waits"
    updated.code = "tampered"
    assert store.get(session.id).code == "edited"


def test_listing_keeps_creation_order(store):
    names = ["first", "second", "third"]
    for name in names:
        store.create(name, None)
    assert [s.subject_name for s in store.list_sessions()] == names


def test_last_writer_wins(store):
    session = store.create("Ada", None)
    assert store.update_code(session.id, "from observer")
    assert store.update_code(session.id, "from subject", "selenium-waits")
    stored = store.get(session.id)
    assert stored.code == "from subject"
    assert stored.variant == "selenium-waits"


def test_writes_to_missing_session_are_noops(store):
    assert store.update_code("nope", "x") is None
    assert store.update_variant("nope", "selenium-waits") is None
    assert store.update_timer("nope", _coding(10)) is None
    assert store.record_paste("nope") is None
    assert store.complete("nope") is None
    assert len(store) == 0


def test_completed_session_is_frozen(store, clock):
    session = store.create("Ada", None)
    record = SubmissionRecord(submitted_at=clock(), is_auto_submit=True, seconds_used=900)
    assert store.complete(session.id, record)

    assert store.update_code(session.id, "late edit") is None
    assert store.update_variant(session.id, "selenium-waits") is None
    assert store.update_timer(session.id, _coding(5)) is None
    assert store.record_grading(session.id, "selenium-pageobject", [], "late") is None
    assert store.complete(session.id) is None

    frozen = store.get(session.id)
    assert frozen.status == "completed"
    assert frozen.code == session.code
    assert frozen.submission.is_auto_submit is True


def test_record_grading_keeps_latest_per_variant(store):
    session = store.create("Ada", None)
    first = [TestOutcome(ordinal=1, name="a", passed=False, message="")]
    second = [TestOutcome(ordinal=1, name="a", passed=True, message="")]
    store.record_grading(session.id, "selenium-pageobject", first, "run 1", [{"span": "grade", "ms": 1.0}])
    store.record_grading(session.id, "selenium-pageobject", second, "run 2")
    stored = store.get(session.id)
    assert stored.variant_outcomes["selenium-pageobject"][0].passed is True
    assert stored.output == "run 2"
    assert stored.events == [{"span": "grade", "ms": 1.0}]


def test_record_paste_appends_timestamps(store, clock):
    session = store.create("Ada", None)
    first = clock()
    store.record_paste(session.id)
    clock.advance(5)
    updated = store.record_paste(session.id)
    assert updated.paste_attempts == [first, clock()]
    assert store.get(session.id).paste_attempts == updated.paste_attempts
