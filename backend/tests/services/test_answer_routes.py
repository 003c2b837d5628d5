"""Answer Check Route: classification over HTTP, with and without a semantic judge."""

from rebuzzle.core.domain_types import SemanticJudgment
from rebuzzle.services.answer_checker import AnswerChecker
from rebuzzle.main import app

CHECK_URL = "/api/v1/answers/check"


class _AlwaysEquivalent:

    async def judge(self, guess, answer):
        return SemanticJudgment(equivalent=True, confidence=0.8, reasoning="close enough")


async def test_exact_answer(client):
    res = await client.post(CHECK_URL, json={"guess": "Sun-Flower!", "answer": "sunflower"})

    assert res.status_code == 200
    data = res.json()
    assert data["is_correct"] is True
    assert data["classification"] == "exact"
    assert data["similarity"] == 1.0


async def test_short_typo_rejected_without_judge(client):
    res = await client.post(CHECK_URL, json={"guess": "sunfower", "answer": "sunflower"})

    data = res.json()
    assert data["classification"] == "reject"
    assert data["is_correct"] is False
    assert 0.88 < data["similarity"] < 0.89


async def test_empty_guess_rejected(client):
    res = await client.post(CHECK_URL, json={"guess": "", "answer": "cat"})

    assert res.status_code == 200
    assert res.json()["classification"] == "reject"
    assert res.json()["similarity"] == 0.0


async def test_judge_upgrades_borderline_guess(client):
    app.state.answer_checker = AnswerChecker(_AlwaysEquivalent())

    res = await client.post(CHECK_URL, json={"guess": "sunfower", "answer": "sunflower"})

    data = res.json()
    assert data["classification"] == "fuzzy-ai"
    assert data["confidence"] == 0.8
    assert data["is_correct"] is True


async def test_oversized_guess_is_400(client):
    res = await client.post(CHECK_URL, json={"guess": "x" * 501, "answer": "cat"})
    assert res.status_code == 400
