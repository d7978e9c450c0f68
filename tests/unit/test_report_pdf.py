from grading import grade
from services.models import SubmissionRecord
from services.scoring import score_session
from session_reports import generate_results_pdf


def test_results_pdf_for_graded_session(store, table, clock, pageobject_wait_fixed):
    session = store.create("Zoë Ångström", "Selenium Debugging")
    outcomes = grade(table, "selenium-pageobject", pageobject_wait_fixed)
    store.record_grading(session.id, "selenium-pageobject", outcomes, "🧪 Running Test Suite...\n✅ BUG 1")
    store.record_paste(session.id)
    store.complete(session.id, SubmissionRecord(submitted_at=clock(), seconds_used=412))

    stored = store.get(session.id)
    payload = generate_results_pdf(stored, score_session(stored, table, 10.0))
    assert isinstance(payload, bytes)
    assert payload.startswith(b"%PDF")


def test_results_pdf_for_untouched_session(store, table):
    session = store.create("Ada", None)
    payload = generate_results_pdf(session, score_session(session, table, 10.0))
    assert payload.startswith(b"%PDF")
