"""Attempt & Answer Schemas: Pydantic models with field-level validation for API boundaries.

Invariants:
    - AttemptCreate: attempt_number >= 1, max_attempts 1..20, time_spent_seconds >= 0
    - is_correct and abandoned are mutually exclusive
    - Responses are built from core records (from_outcome / from_result), never ORM rows

Design Decisions:
    - model_validator for cross-field rules: keeps the gate free of HTTP concerns
"""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from rebuzzle.core.domain_types import (
    AttemptData, AttemptOutcome, MatchResult, TodayStatus,
)


class AttemptCreate(BaseModel):
    puzzle_id: str = Field(min_length=1, max_length=64)
    attempted_answer: str = Field(max_length=500)
    is_correct: bool = False
    abandoned: bool = False
    attempt_number: int = Field(ge=1)
    max_attempts: int = Field(ge=1, le=20)
    time_spent_seconds: int = Field(0, ge=0)

    @field_validator("puzzle_id")
    @classmethod
    def strip_puzzle_id(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("puzzle_id cannot be empty or whitespace")
        return v

    @model_validator(mode="after")
    def check_terminal_flags(self) -> "AttemptCreate":
        if self.is_correct and self.abandoned:
            raise ValueError("an attempt cannot be both correct and abandoned")
        return self

    def to_attempt_data(self) -> AttemptData:
        return AttemptData(
            attempted_answer=self.attempted_answer,
            is_correct=self.is_correct,
            abandoned=self.abandoned,
            attempt_number=self.attempt_number,
            max_attempts=self.max_attempts,
            time_spent_seconds=self.time_spent_seconds,
        )


class AttemptOut(BaseModel):
    id: UUID
    puzzle_id: str
    is_correct: bool
    abandoned: bool
    attempt_number: int
    max_attempts: int
    day_key: date
    attempted_at: datetime
    completed_at: datetime | None = None


class AttemptResponse(BaseModel):
    success: bool
    reason: str | None = None
    attempt: AttemptOut | None = None

    @classmethod
    def from_outcome(cls, outcome: AttemptOutcome) -> "AttemptResponse":
        if not outcome.success:
            return cls(success=False, reason=outcome.reason.value)
        a = outcome.attempt
        return cls(success=True, attempt=AttemptOut(
            id=a.id, puzzle_id=a.puzzle_id, is_correct=a.is_correct,
            abandoned=a.abandoned, attempt_number=a.attempt_number,
            max_attempts=a.max_attempts, day_key=a.day_key,
            attempted_at=a.attempted_at, completed_at=a.completed_at,
        ))


class TodayStatusResponse(BaseModel):
    has_attempt: bool
    was_successful: bool
    puzzle_id: str | None = None

    @classmethod
    def from_status(cls, status: TodayStatus) -> "TodayStatusResponse":
        return cls(
            has_attempt=status.has_final_attempt,
            was_successful=status.was_successful,
            puzzle_id=status.puzzle_id,
        )


class AnswerCheckRequest(BaseModel):
    guess: str = Field(max_length=500)
    answer: str = Field(max_length=500)


class AnswerCheckResponse(BaseModel):
    is_correct: bool
    classification: str
    similarity: float
    confidence: float
    normalized_guess: str
    normalized_answer: str
    reasoning: str

    @classmethod
    def from_result(cls, result: MatchResult) -> "AnswerCheckResponse":
        return cls(
            is_correct=result.is_correct,
            classification=result.classification.value,
            similarity=result.similarity,
            confidence=result.confidence,
            normalized_guess=result.normalized_guess,
            normalized_answer=result.normalized_answer,
            reasoning=result.reasoning,
        )
