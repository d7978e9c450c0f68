"""Event handlers for live assessment sessions.

The coordinator is the only component that talks to both the session store
and the broadcast router. Every inbound event runs to completion
synchronously; transports hand frames to :meth:`SessionCoordinator.dispatch`
and never touch session state themselves.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from api.schemas import (
    CodeChangeReq,
    CodeUpdate,
    CreateSessionReq,
    EventError,
    ExecuteCodeReq,
    ExecutionResult,
    JoinSessionReq,
    LanguageChangeReq,
    LanguageUpdate,
    Notice,
    PasteAlert,
    PasteAttemptReq,
    ScoreView,
    SessionView,
    SubmissionResult,
    SubmitReq,
    TimerUpdate,
    TimerUpdateReq,
)
from grading import RuleTable, grade, render_console, render_failure
from observability import log_event, span
from realtime import BroadcastRouter, Connection

from .errors import SessionExpiredError, SessionNotFoundError
from .models import ScoreCard, Session, SubmissionRecord
from .scoring import point_value_for, score_outcomes, score_session
from .sessions import SessionStore

logger = logging.getLogger(__name__)

Handler = Callable[[Connection, Any], None]


def _describe(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ())) or "payload"
        parts.append(f"{location}: {error.get('msg', 'invalid')}")
    return "; ".join(parts) or "invalid payload"


class SessionCoordinator:
    """Routes inbound session events to the store, grader and router."""

    def __init__(
        self,
        store: SessionStore,
        router: BroadcastRouter,
        table: RuleTable,
        *,
        max_score: float,
    ) -> None:
        self.store = store
        self.router = router
        self.table = table
        self.max_score = max_score
        self._handlers: Dict[str, Handler] = {
            "get-sessions": self.get_sessions,
            "create-session": self.create_session,
            "join-session": self.join_session,
            "code-change": self.code_change,
            "language-change": self.language_change,
            "timer-update": self.timer_update,
            "execute-code": self.execute_code,
            "paste-attempt": self.paste_attempt,
            "test-submitted": self.test_submitted,
        }

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------
    def connect(self, connection: Connection) -> None:
        self.router.register(connection)
        logger.debug("Connection %s registered (%d live)", connection.connection_id, len(self.router))

    def disconnect(self, connection: Connection) -> None:
        self.router.unregister(connection)
        logger.debug("Connection %s dropped (%d live)", connection.connection_id, len(self.router))

    def dispatch(self, connection: Connection, event: Optional[str], data: Any = None) -> None:
        """Run the handler for ``event``; bad input is answered with ``event-error``."""

        handler = self._handlers.get(event or "")
        if handler is None:
            self.reject(connection, event, f"Unknown event: {event}")
            return
        try:
            handler(connection, data)
        except ValidationError as exc:
            self.reject(connection, event, _describe(exc))
        except Exception as exc:  # noqa: BLE001
            logger.exception("Handler for %s failed on %s", event, connection.connection_id)
            self.reject(connection, event, f"Failed to handle {event}: {exc}")

    def reject(self, connection: Connection, event: Optional[str], message: str) -> None:
        logger.warning("Rejected %s from %s: %s", event, connection.connection_id, message)
        self.router.reply(connection, "event-error", EventError(event=event, message=message))

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------
    def score(self, session: Session) -> ScoreCard:
        return score_session(session, self.table, self.max_score)

    def view(self, session: Session) -> SessionView:
        card = self.score(session) if session.variant_outcomes else None
        return SessionView.from_session(session, card)

    def session_views(self) -> List[SessionView]:
        return [self.view(session) for session in self.store.list_sessions()]

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------
    def get_sessions(self, connection: Connection, data: Any = None) -> None:
        self.router.reply(connection, "sessions-list", self.session_views())

    def create_session(self, connection: Connection, data: Any) -> None:
        req = CreateSessionReq.model_validate(data)
        session = self.store.create(req.subject_name, req.challenge_id)
        log_event("created", session.id, subject=session.subject_name, variant=session.variant)
        self.router.publish("session-created", self.view(session), origin=connection)

    def join_session(self, connection: Connection, data: Any) -> None:
        if isinstance(data, str):
            data = {"sessionId": data}
        req = JoinSessionReq.model_validate(data)
        try:
            session = self.store.join(req.session_id)
        except SessionNotFoundError as exc:
            log_event("join_missing", req.session_id, level=logging.WARNING)
            self.router.reply(connection, "session-not-found", Notice(message=str(exc)))
            return
        except SessionExpiredError as exc:
            log_event("join_expired", req.session_id, level=logging.WARNING)
            self.router.reply(connection, "session-expired", Notice(message=str(exc)))
            return

        log_event("joined", session.id, status=session.status)
        self.router.reply(connection, "session-data", self.view(session))
        self.router.publish("sessions-list", self.session_views(), origin=connection)

    def code_change(self, connection: Connection, data: Any) -> None:
        req = CodeChangeReq.model_validate(data)
        session = self.store.update_code(req.session_id, req.code, req.variant)
        if session is None:
            return
        update = CodeUpdate(session_id=session.id, code=session.code, variant=session.variant)
        self.router.publish("code-update", update, origin=connection)

    def language_change(self, connection: Connection, data: Any) -> None:
        req = LanguageChangeReq.model_validate(data)
        session = self.store.update_variant(req.session_id, req.variant)
        if session is None:
            return
        self.router.publish(
            "language-update", LanguageUpdate(session_id=session.id, variant=session.variant), origin=connection
        )

    def timer_update(self, connection: Connection, data: Any) -> None:
        req = TimerUpdateReq.model_validate(data)
        if self.store.update_timer(req.session_id, req.snapshot()) is None:
            return
        update = TimerUpdate(
            session_id=req.session_id,
            is_instruction_phase=req.is_instruction_phase,
            instruction_seconds_remaining=req.instruction_seconds_remaining,
            coding_seconds_remaining=req.coding_seconds_remaining,
        )
        self.router.publish("timer-update", update, origin=connection)

    def execute_code(self, connection: Connection, data: Any) -> None:
        req = ExecuteCodeReq.model_validate(data)
        current = self.store.get(req.session_id)
        live = current is not None and not current.completed

        events: List[Dict[str, Any]] = []
        try:
            with span(events, "grade", variant=req.variant):
                outcomes = grade(self.table, req.variant, req.code)
            points = point_value_for(self.table, req.variant, self.max_score, len(outcomes))
            output, success = render_console(req.variant, outcomes, points)
            graded = self.store.record_grading(req.session_id, req.variant, outcomes, output, events) if live else None
            if graded is not None:
                card = self.score(graded)
            else:
                live = False
                card = score_outcomes(self.table, req.variant, {req.variant: outcomes}, self.max_score)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Grading failed for session %s (%s)", req.session_id, req.variant)
            log_event("grade_failed", req.session_id, level=logging.ERROR, variant=req.variant, reason=str(exc))
            self.router.reply(
                connection,
                "execution-result",
                ExecutionResult(
                    session_id=req.session_id, variant=req.variant, output=render_failure(exc), success=False
                ),
            )
            if live:
                self.router.publish(
                    "execution-update",
                    ExecutionResult(
                        session_id=req.session_id, variant=req.variant, output=f"Error: {exc}", success=False
                    ),
                    origin=connection,
                )
            return

        result = ExecutionResult(
            session_id=req.session_id,
            variant=req.variant,
            output=output,
            success=success,
            outcomes=outcomes,
            score=ScoreView.from_card(card),
        )
        self.router.reply(connection, "execution-result", result)
        if not live:
            return
        passed = sum(1 for outcome in outcomes if outcome.passed)
        log_event("graded", req.session_id, variant=req.variant, passed=f"{passed}/{len(outcomes)}", score=card.score)
        self.router.publish("execution-update", result, origin=connection)

    def paste_attempt(self, connection: Connection, data: Any) -> None:
        req = PasteAttemptReq.model_validate(data)
        session = self.store.record_paste(req.session_id)
        if session is None:
            return
        at = session.paste_attempts[-1]
        log_event("paste", session.id, level=logging.WARNING, subject=session.subject_name)
        alert = PasteAlert(session_id=session.id, subject_name=session.subject_name, timestamp=at)
        self.router.publish("paste-detected", alert, origin=connection)

    def test_submitted(self, connection: Connection, data: Any) -> None:
        req = SubmitReq.model_validate(data)
        session = self.store.get(req.session_id)
        if session is None or session.completed:
            log_event("submit_ignored", req.session_id, level=logging.WARNING, auto=req.is_auto_submit)
            return

        card = self.score(session)
        record = SubmissionRecord(
            submitted_at=self.store.now(),
            is_auto_submit=req.is_auto_submit,
            seconds_used=req.seconds_used,
            reported_score=req.score,
            reported_percentage=round(req.percentage),
            reported_bugs_passed=req.bugs_passed,
            reported_total_bugs=req.total_bugs,
            server_score=card,
        )
        if self.store.complete(session.id, record) is None:
            return

        log_event(
            "submitted",
            session.id,
            subject=session.subject_name,
            auto=req.is_auto_submit,
            score=card.score,
            passed=f"{card.bugs_passed}/{card.total_bugs}",
        )
        result = SubmissionResult(
            session_id=session.id,
            subject_name=session.subject_name,
            score=req.score,
            percentage=req.percentage,
            bugs_passed=req.bugs_passed,
            total_bugs=req.total_bugs,
            per_variant_outcomes=req.per_variant_outcomes,
            seconds_used=req.seconds_used,
            is_auto_submit=req.is_auto_submit,
            submitted_at=record.submitted_at,
            server_score=ScoreView.from_card(card),
        )
        recipients = self.router.publish("candidate-test-results", result, origin=connection)
        logger.debug("Submission for %s delivered to %d connection(s)", session.id, recipients)


__all__ = ["SessionCoordinator"]
