"""Daily Attempts: records guesses through the AttemptGate and reports today's status.

Invariants:
    - Caller identity comes only from the session credential, never from the body
    - A refused attempt returns 409 with {success: false, reason}
"""

from fastapi import APIRouter, Depends, Response, status

from rebuzzle.api.dependencies import get_attempt_gate, get_current_user_id
from rebuzzle.core.domain_types import PuzzleId, UserId
from rebuzzle.schemas.attempt import (
    AttemptCreate, AttemptResponse, TodayStatusResponse,
)
from rebuzzle.services.attempt_gate import AttemptGate

router = APIRouter(prefix="/api/v1/attempts", tags=["attempts"])


@router.post(
    "", response_model=AttemptResponse, status_code=status.HTTP_201_CREATED,
)
async def record_attempt(
    body: AttemptCreate,
    response: Response,
    user_id: UserId = Depends(get_current_user_id),
    gate: AttemptGate = Depends(get_attempt_gate),
):
    outcome = await gate.record_attempt(
        user_id, PuzzleId(body.puzzle_id), body.to_attempt_data(),
    )
    if not outcome.success:
        response.status_code = status.HTTP_409_CONFLICT
    return AttemptResponse.from_outcome(outcome)


@router.get("/today", response_model=TodayStatusResponse)
async def today_status(
    user_id: UserId = Depends(get_current_user_id),
    gate: AttemptGate = Depends(get_attempt_gate),
):
    """Whether today's puzzle is locked (solved or given up)."""
    return TodayStatusResponse.from_status(await gate.today_status(user_id))
