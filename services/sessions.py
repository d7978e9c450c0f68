"""In-memory store owning every assessment session of the process."""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from grading.engine import TestOutcome
from grading.rules import RuleTable

from .errors import SessionExpiredError, SessionNotFoundError
from .models import Session, SubmissionRecord, TimerSnapshot
from .timer import reconcile, restamp, utc_now

Clock = Callable[[], datetime]


class SessionStore:
    """Single writer for session state.

    Reads hand out detached copies so callers can never mutate a stored
    session behind the store's back. Writes addressed to a missing or
    completed session are ignored and return ``None``; otherwise they return
    a detached copy of the updated session.
    """

    def __init__(
        self,
        table: RuleTable,
        *,
        instruction_seconds: int,
        coding_seconds: int,
        clock: Clock = utc_now,
    ) -> None:
        self._table = table
        self._instruction_seconds = instruction_seconds
        self._coding_seconds = coding_seconds
        self._clock = clock
        self._sessions: Dict[str, Session] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def now(self) -> datetime:
        return self._clock()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def get(self, session_id: str) -> Optional[Session]:
        session = self._sessions.get(session_id)
        if session is None:
            return None
        return session.model_copy(deep=True)

    def get_reconciled(self, session_id: str) -> Optional[Session]:
        """Like :meth:`get`, with the timer reconciled for display but not re-stamped."""

        session = self._sessions.get(session_id)
        if session is None:
            return None
        return self._display(session, self._clock())

    def list_sessions(self) -> List[Session]:
        """All sessions in creation order with their timers reconciled for display."""

        now = self._clock()
        return [self._display(session, now) for session in self._sessions.values()]

    def _display(self, session: Session, now: datetime) -> Session:
        view = session.model_copy(deep=True)
        if not view.completed:
            view.timer = reconcile(view.timer, now)
        return view

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def create(self, subject_name: str, challenge_id: Optional[str]) -> Session:
        challenge = self._table.challenge(challenge_id)
        session_id = uuid.uuid4().hex
        while session_id in self._sessions:
            session_id = uuid.uuid4().hex
        session = Session(
            id=session_id,
            subject_name=subject_name,
            challenge_id=challenge.title,
            challenge_description=challenge.description,
            variant=challenge.default_variant,
            code=self._table.starter_code(challenge.default_variant),
            timer=TimerSnapshot(
                is_instruction_phase=True,
                instruction_seconds_remaining=self._instruction_seconds,
                coding_seconds_remaining=self._coding_seconds,
            ),
            created_at=self._clock(),
        )
        self._sessions[session_id] = session
        return session.model_copy(deep=True)

    def join(self, session_id: str) -> Session:
        """Activate ``session_id`` and return it with a freshly reconciled timer."""

        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        if session.completed:
            raise SessionExpiredError(session_id)
        session.status = "active"
        session.timer = restamp(session.timer, self._clock())
        return session.model_copy(deep=True)

    def complete(self, session_id: str, submission: Optional[SubmissionRecord] = None) -> Optional[Session]:
        session = self._writable(session_id)
        if session is None:
            return None
        session.status = "completed"
        session.submission = submission
        return session.model_copy(deep=True)

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------
    def update_code(self, session_id: str, code: str, variant: Optional[str] = None) -> Optional[Session]:
        session = self._writable(session_id)
        if session is None:
            return None
        session.code = code
        if variant:
            session.variant = variant
        return session.model_copy(deep=True)

    def update_variant(self, session_id: str, variant: str) -> Optional[Session]:
        session = self._writable(session_id)
        if session is None:
            return None
        session.variant = variant
        return session.model_copy(deep=True)

    def update_timer(self, session_id: str, snapshot: TimerSnapshot) -> Optional[Session]:
        session = self._writable(session_id)
        if session is None:
            return None
        session.timer = snapshot.model_copy(update={"last_reconciled_at": self._clock()})
        return session.model_copy(deep=True)

    def record_grading(
        self,
        session_id: str,
        variant: str,
        outcomes: Sequence[TestOutcome],
        output: str,
        events: Iterable[Dict[str, Any]] = (),
    ) -> Optional[Session]:
        session = self._writable(session_id)
        if session is None:
            return None
        session.variant_outcomes[variant] = [outcome.model_copy() for outcome in outcomes]
        session.output = output
        session.events.extend(events)
        return session.model_copy(deep=True)

    # ------------------------------------------------------------------
    # Audit
    # ------------------------------------------------------------------
    def record_paste(self, session_id: str) -> Optional[Session]:
        """Append a paste timestamp; the new entry is ``paste_attempts[-1]``."""

        session = self._writable(session_id)
        if session is None:
            return None
        session.paste_attempts.append(self._clock())
        return session.model_copy(deep=True)

    def _writable(self, session_id: str) -> Optional[Session]:
        session = self._sessions.get(session_id)
        if session is None or session.completed:
            return None
        return session


__all__ = ["Clock", "SessionStore"]
