"""Daily Attempt Rules: day keys, payload validation and attempt construction.

Invariants:
    - day_key is the UTC calendar date of `now` (naive datetimes are treated as UTC)
    - validate_attempt_data raises AttemptValidationError, never returns a partial verdict
    - build_attempt is PURE: the gate decides whether the record is ever written

Design Decisions:
    - Separated from services/attempt_gate.py: the store race lives in the shell,
      the arithmetic lives here (ADR: functional core, imperative shell)
"""

from datetime import date, datetime, timezone

from rebuzzle.core.domain_types import (
    AttemptData, DailyAttempt, PuzzleId, UserId,
)
from rebuzzle.core.errors import AttemptValidationError, ErrorContext


def day_key(now: datetime) -> date:
    """UTC-midnight truncation of `now`."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc).date()


def validate_attempt_data(data: AttemptData, context: ErrorContext | None = None) -> None:
    if data.attempt_number < 1:
        raise AttemptValidationError(
            "attempt_number must be at least 1", "attempt_number", context,
        )
    if data.max_attempts < 1:
        raise AttemptValidationError(
            "max_attempts must be at least 1", "max_attempts", context,
        )
    if data.time_spent_seconds < 0:
        raise AttemptValidationError(
            "time_spent_seconds cannot be negative", "time_spent_seconds", context,
        )


def exceeds_allowance(data: AttemptData) -> bool:
    """In-progress guesses beyond max_attempts are refused."""
    is_final = data.is_correct or data.abandoned
    return not is_final and data.attempt_number > data.max_attempts


def build_attempt(
    user_id: UserId, puzzle_id: PuzzleId, data: AttemptData, now: datetime,
) -> DailyAttempt:
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    is_final = data.is_correct or data.abandoned
    return DailyAttempt(
        user_id=user_id,
        puzzle_id=puzzle_id,
        attempted_answer=data.attempted_answer,
        is_correct=data.is_correct,
        abandoned=data.abandoned,
        attempt_number=data.attempt_number,
        max_attempts=data.max_attempts,
        time_spent_seconds=data.time_spent_seconds,
        attempted_at=now,
        completed_at=now if is_final else None,
        day_key=day_key(now),
    )
