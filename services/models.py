"""Session state owned by the session store."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from grading.engine import TestOutcome

SessionStatus = Literal["waiting", "active", "completed"]


class TimerSnapshot(BaseModel):
    """Last reported two-phase countdown plus the instant it was stamped."""

    is_instruction_phase: bool = True
    instruction_seconds_remaining: int = Field(default=0, ge=0)
    coding_seconds_remaining: int = Field(default=0, ge=0)
    last_reconciled_at: Optional[datetime] = None


class ScoreCard(BaseModel):
    score: float
    max_score: float
    percentage: int
    bugs_passed: int
    total_bugs: int
    point_value: float


class SubmissionRecord(BaseModel):
    """Audit trail for the final submission of a session."""

    submitted_at: datetime
    is_auto_submit: bool = False
    seconds_used: Optional[int] = None
    reported_score: Optional[float] = None
    reported_percentage: Optional[int] = None
    reported_bugs_passed: Optional[int] = None
    reported_total_bugs: Optional[int] = None
    server_score: Optional[ScoreCard] = None


class Session(BaseModel):
    """One live assessment instance."""

    id: str
    subject_name: str
    challenge_id: str
    challenge_description: str = ""
    variant: str
    code: str = ""
    output: Optional[str] = None
    status: SessionStatus = "waiting"
    timer: TimerSnapshot = Field(default_factory=TimerSnapshot)
    created_at: datetime

    variant_outcomes: Dict[str, List[TestOutcome]] = Field(default_factory=dict)

    paste_attempts: List[datetime] = Field(default_factory=list)
    submission: Optional[SubmissionRecord] = None
    events: List[Dict[str, Any]] = Field(default_factory=list)

    @property
    def completed(self) -> bool:
        return self.status == "completed"
