"""Pydantic schemas for the session event protocol.

Payloads travel in camelCase. Inbound models also accept the field names
used by earlier clients (``candidateName``, ``problemTitle``, ``language``,
``timeUsed``, ``bugResults``...).
"""
from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from grading.engine import TestOutcome
from services.models import ScoreCard, Session, TimerSnapshot


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


def _aliases(*names: str) -> AliasChoices:
    return AliasChoices(*names)


# ----------------------------------------------------------------------
# Inbound
# ----------------------------------------------------------------------
class SessionRef(WireModel):
    session_id: str = Field(min_length=1, validation_alias=_aliases("sessionId", "session_id"))


class CreateSessionReq(WireModel):
    subject_name: str = Field(
        min_length=1, validation_alias=_aliases("subjectName", "candidateName", "subject_name")
    )
    challenge_id: Optional[str] = Field(
        default=None, validation_alias=_aliases("challengeId", "problemTitle", "challenge_id")
    )


class JoinSessionReq(SessionRef):
    pass


class CodeChangeReq(SessionRef):
    code: str
    variant: Optional[str] = Field(default=None, validation_alias=_aliases("variant", "language"))


class LanguageChangeReq(SessionRef):
    variant: str = Field(min_length=1, validation_alias=_aliases("variant", "language"))


class TimerUpdateReq(SessionRef):
    is_instruction_phase: bool = Field(validation_alias=_aliases("isInstructionPhase", "is_instruction_phase"))
    instruction_seconds_remaining: int = Field(
        ge=0,
        validation_alias=_aliases(
            "instructionSecondsRemaining", "instructionTimeRemaining", "instruction_seconds_remaining"
        ),
    )
    coding_seconds_remaining: int = Field(
        ge=0,
        validation_alias=_aliases("codingSecondsRemaining", "codingTimeRemaining", "coding_seconds_remaining"),
    )

    def snapshot(self) -> TimerSnapshot:
        return TimerSnapshot(
            is_instruction_phase=self.is_instruction_phase,
            instruction_seconds_remaining=self.instruction_seconds_remaining,
            coding_seconds_remaining=self.coding_seconds_remaining,
        )


class ExecuteCodeReq(SessionRef):
    code: str
    variant: str = Field(min_length=1, validation_alias=_aliases("variant", "language"))


class PasteAttemptReq(SessionRef):
    pass


class ReportedOutcome(WireModel):
    ordinal: int = Field(validation_alias=_aliases("ordinal", "bugNumber"))
    passed: bool
    name: str = ""
    message: str = ""


class SubmitReq(SessionRef):
    score: float = Field(default=0.0, allow_inf_nan=False)
    percentage: float = Field(default=0.0, allow_inf_nan=False)
    bugs_passed: int = Field(default=0, validation_alias=_aliases("bugsPassed", "bugs_passed"))
    total_bugs: int = Field(default=0, validation_alias=_aliases("totalBugs", "total_bugs"))
    per_variant_outcomes: Dict[str, List[ReportedOutcome]] = Field(
        default_factory=dict,
        validation_alias=_aliases("perVariantOutcomes", "bugResults", "per_variant_outcomes"),
    )
    seconds_used: Optional[int] = Field(
        default=None, ge=0, validation_alias=_aliases("secondsUsed", "timeUsed", "seconds_used")
    )
    is_auto_submit: bool = Field(default=False, validation_alias=_aliases("isAutoSubmit", "is_auto_submit"))


# ----------------------------------------------------------------------
# Outbound
# ----------------------------------------------------------------------
class ScoreView(WireModel):
    score: float
    max_score: float
    percentage: int
    bugs_passed: int
    total_bugs: int
    point_value: float

    @classmethod
    def from_card(cls, card: ScoreCard) -> "ScoreView":
        return cls.model_validate(card.model_dump())


class SessionView(WireModel):
    id: str
    subject_name: str
    challenge_id: str
    challenge_description: str
    variant: str
    code: str
    output: Optional[str] = None
    status: str
    created_at: datetime
    is_instruction_phase: bool
    instruction_seconds_remaining: int
    coding_seconds_remaining: int
    paste_attempts: int = 0
    score: Optional[ScoreView] = None

    @classmethod
    def from_session(cls, session: Session, card: Optional[ScoreCard] = None) -> "SessionView":
        return cls(
            id=session.id,
            subject_name=session.subject_name,
            challenge_id=session.challenge_id,
            challenge_description=session.challenge_description,
            variant=session.variant,
            code=session.code,
            output=session.output,
            status=session.status,
            created_at=session.created_at,
            is_instruction_phase=session.timer.is_instruction_phase,
            instruction_seconds_remaining=session.timer.instruction_seconds_remaining,
            coding_seconds_remaining=session.timer.coding_seconds_remaining,
            paste_attempts=len(session.paste_attempts),
            score=ScoreView.from_card(card) if card is not None else None,
        )


class CodeUpdate(WireModel):
    session_id: str
    code: str
    variant: str


class LanguageUpdate(WireModel):
    session_id: str
    variant: str


class TimerUpdate(WireModel):
    session_id: str
    is_instruction_phase: bool
    instruction_seconds_remaining: int
    coding_seconds_remaining: int


class ExecutionResult(WireModel):
    session_id: str
    variant: str
    output: str
    success: bool
    outcomes: List[TestOutcome] = Field(default_factory=list)
    score: Optional[ScoreView] = None


class PasteAlert(WireModel):
    session_id: str
    subject_name: str
    timestamp: datetime


class SubmissionResult(WireModel):
    session_id: str
    subject_name: str
    score: float
    percentage: float
    bugs_passed: int
    total_bugs: int
    per_variant_outcomes: Dict[str, List[ReportedOutcome]] = Field(default_factory=dict)
    seconds_used: Optional[int] = None
    is_auto_submit: bool = False
    submitted_at: datetime
    server_score: ScoreView


class Notice(WireModel):
    message: str


class EventError(WireModel):
    event: Optional[str] = None
    message: str


class ChallengeView(WireModel):
    title: str
    description: str
    default_variant: str
    variants: List[str]
