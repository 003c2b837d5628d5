"""Attempt Schemas: boundary validation for attempts and answer checks."""

import pytest
from pydantic import ValidationError

from rebuzzle.schemas.attempt import AnswerCheckRequest, AttemptCreate
from rebuzzle.schemas.identity import GuestSessionRequest


def _valid(**overrides):
    data = {
        "puzzle_id": "  puzzle-1  ",
        "attempted_answer": "sunflower",
        "attempt_number": 1,
        "max_attempts": 3,
    }
    data.update(overrides)
    return data


def test_puzzle_id_is_stripped():
    assert AttemptCreate(**_valid()).puzzle_id == "puzzle-1"


def test_blank_puzzle_id_rejected():
    with pytest.raises(ValidationError):
        AttemptCreate(**_valid(puzzle_id="   "))


def test_correct_and_abandoned_rejected():
    with pytest.raises(ValidationError, match="both correct and abandoned"):
        AttemptCreate(**_valid(is_correct=True, abandoned=True))


@pytest.mark.parametrize("field,value", [
    ("attempt_number", 0),
    ("max_attempts", 0),
    ("max_attempts", 21),
    ("time_spent_seconds", -1),
])
def test_numeric_bounds(field, value):
    with pytest.raises(ValidationError):
        AttemptCreate(**_valid(**{field: value}))


def test_to_attempt_data_maps_fields():
    data = AttemptCreate(**_valid(abandoned=True, time_spent_seconds=30)).to_attempt_data()
    assert data.abandoned is True
    assert data.is_correct is False
    assert data.time_spent_seconds == 30
    assert data.max_attempts == 3


def test_answer_length_capped():
    with pytest.raises(ValidationError):
        AnswerCheckRequest(guess="ok", answer="x" * 501)


def test_local_fallback_id_optional():
    assert GuestSessionRequest().local_fallback_id is None
