"""Answer Checking: semantic fallback rules around the pure matcher.

Invariants:
    - The judge runs only for REJECTs with similarity >= min_similarity and
      non-empty normalized strings
    - A positive judgment gives FUZZY_AI with the judge's confidence unchanged
    - Judge timeouts and errors fall back to the character-level verdict
"""

import asyncio

import pytest

from rebuzzle.core.answer_matcher import check
from rebuzzle.core.domain_types import MatchClassification, SemanticJudgment
from rebuzzle.core.errors import AnthropicAPIError
from rebuzzle.services.answer_checker import AnswerChecker, should_consult_judge


class _FakeJudge:

    def __init__(self, judgment=None, error=None, delay=0.0):
        self.judgment = judgment
        self.error = error
        self.delay = delay
        self.calls = []

    async def judge(self, guess, answer):
        self.calls.append((guess, answer))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.judgment


async def test_no_judge_returns_pure_result():
    result = await AnswerChecker().check("sunfower", "sunflower")
    assert result.classification is MatchClassification.REJECT


async def test_exact_match_never_consults_judge():
    judge = _FakeJudge(SemanticJudgment(equivalent=False, confidence=0.1))
    result = await AnswerChecker(judge).check("Sun-Flower!", "sunflower")

    assert result.classification is MatchClassification.EXACT
    assert judge.calls == []


async def test_positive_judgment_is_fuzzy_ai_with_judge_confidence():
    judge = _FakeJudge(SemanticJudgment(True, 0.9, "one letter missing"))
    result = await AnswerChecker(judge).check("sunfower", "sunflower")

    assert result.classification is MatchClassification.FUZZY_AI
    assert result.confidence == 0.9
    assert result.similarity == pytest.approx(8 / 9)
    assert result.reasoning == "one letter missing"
    assert result.is_correct
    assert judge.calls == [("sunfower", "sunflower")]


async def test_negative_judgment_keeps_reject():
    judge = _FakeJudge(SemanticJudgment(False, 0.95, "different flower"))
    result = await AnswerChecker(judge).check("sunfower", "sunflower")

    assert result.classification is MatchClassification.REJECT
    assert result.reasoning == "different flower"
    assert result.confidence == result.similarity


async def test_low_similarity_skips_judge():
    judge = _FakeJudge(SemanticJudgment(True, 1.0))
    result = await AnswerChecker(judge, min_similarity=0.3).check("cat", "elephant")

    assert result.classification is MatchClassification.REJECT
    assert judge.calls == []


async def test_empty_guess_skips_judge():
    judge = _FakeJudge(SemanticJudgment(True, 1.0))
    result = await AnswerChecker(judge).check("", "cat")

    assert result.classification is MatchClassification.REJECT
    assert judge.calls == []


async def test_judge_timeout_falls_back():
    judge = _FakeJudge(SemanticJudgment(True, 1.0), delay=1.0)
    result = await AnswerChecker(judge, timeout_seconds=0.01).check("sunfower", "sunflower")

    assert result.classification is MatchClassification.REJECT
    assert len(judge.calls) == 1


async def test_judge_error_falls_back():
    judge = _FakeJudge(error=AnthropicAPIError("down", "connection_error"))
    result = await AnswerChecker(judge).check("sunfower", "sunflower")

    assert result.classification is MatchClassification.REJECT


def test_should_consult_judge_rule():
    assert should_consult_judge(check("sunfower", "sunflower"), 0.3)
    assert not should_consult_judge(check("sunflower", "sunflower"), 0.3)
    assert not should_consult_judge(check("cat", "elephant"), 0.3)
    assert not should_consult_judge(check("!!", "cat"), 0.0)
