"""Attempt Gate: at most one final attempt per user per UTC day.

Invariants:
    - Final writes (correct or abandoned) are ONE atomic conditional insert, never
      read-then-write; the loser gets ALREADY_ATTEMPTED_TODAY, not an overwrite
    - In-progress writes are also conditional: once a day is final, nothing else lands
    - Refusals are structured outcomes, never retried, never raised
    - day_key is computed from the injected clock, so tests control "today"

Design Decisions:
    - Clock injection over datetime.now(): midnight rollover is testable
    - Payload validation raises (caller bug); refusals return (expected race outcome)
"""

import logging
from collections.abc import Callable
from datetime import datetime, timezone

from rebuzzle.core.daily_attempts import (
    build_attempt, day_key, exceeds_allowance, validate_attempt_data,
)
from rebuzzle.core.domain_types import (
    AttemptData, AttemptOutcome, AttemptRefusal, PuzzleId, TodayStatus, UserId,
)
from rebuzzle.core.errors import ErrorContext
from rebuzzle.core.repository_protocols import AttemptStore

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AttemptGate:

    def __init__(
        self, attempts: AttemptStore, clock: Callable[[], datetime] = utc_now,
    ):
        self.attempts = attempts
        self.clock = clock

    async def record_attempt(
        self, user_id: UserId, puzzle_id: PuzzleId, data: AttemptData,
    ) -> AttemptOutcome:
        validate_attempt_data(
            data, ErrorContext(user_id=str(user_id), puzzle_id=puzzle_id),
        )
        attempt = build_attempt(user_id, puzzle_id, data, self.clock())
        log_extra = {
            "user_id": str(user_id),
            "puzzle_id": puzzle_id,
            "day_key": attempt.day_key.isoformat(),
            "attempt": attempt.attempt_number,
        }

        if attempt.is_final:
            accepted = await self.attempts.insert_final_if_absent(attempt)
        elif exceeds_allowance(data):
            logger.info("Attempt refused: allowance used up", extra=log_extra)
            return AttemptOutcome(
                success=False, reason=AttemptRefusal.ATTEMPTS_EXHAUSTED,
            )
        else:
            accepted = await self.attempts.insert_in_progress_if_open(attempt)

        if not accepted:
            logger.info("Attempt refused: day already final", extra=log_extra)
            return AttemptOutcome(
                success=False, reason=AttemptRefusal.ALREADY_ATTEMPTED_TODAY,
            )
        logger.info(f"Attempt recorded ({attempt.state.value})", extra=log_extra)
        return AttemptOutcome(success=True, attempt=attempt)

    async def today_status(self, user_id: UserId) -> TodayStatus:
        final = await self.attempts.find_final(user_id, day_key(self.clock()))
        if final is None:
            return TodayStatus(has_final_attempt=False)
        return TodayStatus(
            has_final_attempt=True,
            was_successful=final.is_correct,
            puzzle_id=final.puzzle_id,
        )
