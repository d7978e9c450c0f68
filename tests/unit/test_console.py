from grading.console import render_console, render_failure
from grading.engine import TestOutcome


def _outcomes(*flags):
    return [
        TestOutcome(ordinal=i, name=f"BUG {i}", passed=flag, message=f"message {i}")
        for i, flag in enumerate(flags, start=1)
    ]


def test_partial_run_reports_summary():
    text, success = render_console("selenium-pageobject", _outcomes(True, False, False), 10 / 3)
    assert success is False
    assert text.startswith("🧪 Running Test Suite for selenium-pageobject...")
    assert "BUG 1: PASS [3.3 points]" in text
    assert "BUG 2: FAIL [0.0 points]" in text
    assert "📊 Test Summary: 1/3 tests passed" in text
    assert "Some tests failed" in text


def test_clean_run_reports_success():
    text, success = render_console("selenium-senior", _outcomes(True, True), 1.0)
    assert success is True
    assert "[1.0 point]" in text
    assert "All tests passed" in text


def test_empty_run_is_not_a_success():
    _, success = render_console("x", [], 0.0)
    assert success is False


def test_failure_text():
    assert render_failure(RuntimeError("boom")) == "Test execution failed: boom"
