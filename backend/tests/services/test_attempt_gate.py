"""Attempt Gate: exactly one final attempt per user per UTC day.

Invariants:
    - A second final attempt on the same day is refused with already-attempted-today
    - Concurrent final attempts land exactly one row
    - In-progress guesses are refused once the day is final, and beyond max_attempts
    - A new UTC day opens a new slot
"""

import asyncio
from datetime import date, datetime, timezone
from uuid import uuid4

import pytest

from rebuzzle.core.domain_types import (
    AttemptData, AttemptRefusal, AttemptState, PuzzleId, UserId,
)
from rebuzzle.core.errors import AttemptValidationError
from rebuzzle.infrastructure.sql_stores import SqlAttemptStore
from rebuzzle.services.attempt_gate import AttemptGate

PUZZLE = PuzzleId("puzzle-2026-10-18")
NOON = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


class _Clock:
    """Settable clock for midnight rollover tests."""

    def __init__(self, now=NOON):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def user_id():
    return UserId(uuid4())


@pytest.fixture
def gate(attempt_store):
    return AttemptGate(attempt_store, clock=_Clock())


async def test_first_final_attempt_is_recorded(gate, user_id):
    outcome = await gate.record_attempt(
        user_id, PUZZLE, AttemptData("sunflower", is_correct=True),
    )

    assert outcome.success
    assert outcome.attempt.state is AttemptState.FINAL_CORRECT
    assert outcome.attempt.day_key == date(2026, 10, 18)
    assert outcome.reason is None


async def test_second_final_attempt_is_refused(gate, user_id, attempt_store):
    await gate.record_attempt(user_id, PUZZLE, AttemptData("sunflower", is_correct=True))
    outcome = await gate.record_attempt(
        user_id, PUZZLE, AttemptData("", abandoned=True, attempt_number=2),
    )

    assert not outcome.success
    assert outcome.reason is AttemptRefusal.ALREADY_ATTEMPTED_TODAY
    assert len(attempt_store.attempts) == 1
    assert attempt_store.attempts[0].is_correct


async def test_concurrent_final_attempts_record_exactly_one(gate, user_id, attempt_store):
    outcomes = await asyncio.gather(*(
        gate.record_attempt(user_id, PUZZLE, AttemptData("sunflower", is_correct=True))
        for _ in range(5)
    ))

    assert sum(o.success for o in outcomes) == 1
    refused = [o for o in outcomes if not o.success]
    assert all(o.reason is AttemptRefusal.ALREADY_ATTEMPTED_TODAY for o in refused)
    assert len(attempt_store.attempts) == 1


async def test_in_progress_guesses_accumulate(gate, user_id, attempt_store):
    for n in (1, 2):
        outcome = await gate.record_attempt(
            user_id, PUZZLE, AttemptData(f"guess-{n}", attempt_number=n),
        )
        assert outcome.success
        assert outcome.attempt.state is AttemptState.IN_PROGRESS

    final = await gate.record_attempt(
        user_id, PUZZLE, AttemptData("sunflower", is_correct=True, attempt_number=3),
    )

    assert final.success
    assert len(attempt_store.attempts) == 3


async def test_in_progress_after_final_is_refused(gate, user_id, attempt_store):
    await gate.record_attempt(user_id, PUZZLE, AttemptData("", abandoned=True))
    outcome = await gate.record_attempt(
        user_id, PUZZLE, AttemptData("late guess", attempt_number=2),
    )

    assert not outcome.success
    assert outcome.reason is AttemptRefusal.ALREADY_ATTEMPTED_TODAY
    assert len(attempt_store.attempts) == 1


async def test_guess_beyond_allowance_is_refused(gate, user_id, attempt_store):
    outcome = await gate.record_attempt(
        user_id, PUZZLE, AttemptData("guess", attempt_number=4, max_attempts=3),
    )

    assert not outcome.success
    assert outcome.reason is AttemptRefusal.ATTEMPTS_EXHAUSTED
    assert attempt_store.attempts == []


async def test_invalid_payload_raises(gate, user_id):
    with pytest.raises(AttemptValidationError):
        await gate.record_attempt(
            user_id, PUZZLE, AttemptData("x", time_spent_seconds=-5),
        )


async def test_midnight_rollover_opens_new_slot(attempt_store, user_id):
    clock = _Clock(datetime(2026, 10, 18, 23, 59, 59, tzinfo=timezone.utc))
    gate = AttemptGate(attempt_store, clock=clock)
    await gate.record_attempt(user_id, PUZZLE, AttemptData("a", is_correct=True))

    clock.now = datetime(2026, 10, 19, 0, 0, 1, tzinfo=timezone.utc)
    outcome = await gate.record_attempt(
        user_id, PuzzleId("puzzle-2026-10-19"), AttemptData("b", is_correct=True),
    )

    assert outcome.success
    assert outcome.attempt.day_key == date(2026, 10, 19)


async def test_users_do_not_share_a_slot(gate):
    first = await gate.record_attempt(
        UserId(uuid4()), PUZZLE, AttemptData("a", is_correct=True),
    )
    second = await gate.record_attempt(
        UserId(uuid4()), PUZZLE, AttemptData("a", is_correct=True),
    )
    assert first.success and second.success


async def test_today_status(gate, user_id):
    assert not (await gate.today_status(user_id)).has_final_attempt

    await gate.record_attempt(user_id, PUZZLE, AttemptData("guess"))
    assert not (await gate.today_status(user_id)).has_final_attempt

    await gate.record_attempt(
        user_id, PUZZLE, AttemptData("sunflower", is_correct=True, attempt_number=2),
    )
    status = await gate.today_status(user_id)
    assert status.has_final_attempt
    assert status.was_successful
    assert status.puzzle_id == PUZZLE


async def test_today_status_after_give_up(gate, user_id):
    await gate.record_attempt(user_id, PUZZLE, AttemptData("", abandoned=True))
    status = await gate.today_status(user_id)
    assert status.has_final_attempt
    assert not status.was_successful


# ==============================================================================
# SQL store
# ==============================================================================


async def test_sql_second_final_is_refused(test_db, user_id):
    gate = AttemptGate(SqlAttemptStore(test_db), clock=_Clock())

    first = await gate.record_attempt(
        user_id, PUZZLE, AttemptData("sunflower", is_correct=True),
    )
    second = await gate.record_attempt(
        user_id, PUZZLE, AttemptData("", abandoned=True, attempt_number=2),
    )

    assert first.success
    assert not second.success
    assert second.reason is AttemptRefusal.ALREADY_ATTEMPTED_TODAY
    status = await gate.today_status(user_id)
    assert status.was_successful


async def test_sql_in_progress_then_final_then_closed(test_db, user_id):
    gate = AttemptGate(SqlAttemptStore(test_db), clock=_Clock())

    guess = await gate.record_attempt(user_id, PUZZLE, AttemptData("sunfower"))
    final = await gate.record_attempt(
        user_id, PUZZLE, AttemptData("sunflower", is_correct=True, attempt_number=2),
    )
    late = await gate.record_attempt(
        user_id, PUZZLE, AttemptData("again", attempt_number=3),
    )

    assert guess.success
    assert final.success
    assert not late.success
    assert late.reason is AttemptRefusal.ALREADY_ATTEMPTED_TODAY
