"""Semantic Judge: prompt construction and verdict extraction from tool calls.

Invariants:
    - The model is forced onto the record_verdict tool
    - Verdict confidence is returned unchanged
    - Missing or malformed verdicts raise AnthropicAPIError(invalid_response)
"""

import pytest

from rebuzzle.core.errors import AnthropicAPIError
from rebuzzle.infrastructure.semantic_judge import (
    AnthropicSemanticJudge, VERDICT_TOOL, build_user_prompt,
)

from tests.services.mock_anthropic import (
    MockAnthropicClient, text_response, tool_response, verdict_response,
)


async def test_judge_returns_verdict():
    client = MockAnthropicClient([verdict_response(True, 0.87, "typo")])
    judgment = await AnthropicSemanticJudge(client, "test-model").judge("sunfower", "sunflower")

    assert judgment.equivalent
    assert judgment.confidence == 0.87
    assert judgment.reasoning == "typo"


async def test_judge_forces_verdict_tool():
    client = MockAnthropicClient([verdict_response(False, 0.2)])
    await AnthropicSemanticJudge(client, "test-model", max_tokens=123).judge("a", "b")

    call = client.calls[0]
    assert call["model"] == "test-model"
    assert call["max_tokens"] == 123
    assert call["tools"] == [VERDICT_TOOL]
    assert call["tool_choice"] == {"type": "tool", "name": "record_verdict"}
    assert '"b"' in call["messages"][0]["content"]


async def test_text_only_response_is_invalid():
    client = MockAnthropicClient([text_response("ACCEPTED")])
    with pytest.raises(AnthropicAPIError) as exc:
        await AnthropicSemanticJudge(client, "m").judge("a", "b")
    assert exc.value.api_error_type == "invalid_response"


async def test_out_of_range_confidence_is_invalid():
    client = MockAnthropicClient([
        tool_response("record_verdict", {"equivalent": True, "confidence": 7}),
    ])
    with pytest.raises(AnthropicAPIError) as exc:
        await AnthropicSemanticJudge(client, "m").judge("a", "b")
    assert exc.value.api_error_type == "invalid_response"


async def test_client_errors_propagate():
    client = MockAnthropicClient([AnthropicAPIError("down", "connection_error")])
    with pytest.raises(AnthropicAPIError):
        await AnthropicSemanticJudge(client, "m").judge("a", "b")


def test_user_prompt_names_both_sides():
    prompt = build_user_prompt("you are", "you're")
    assert 'CORRECT ANSWER: "you\'re"' in prompt
    assert 'PLAYER\'S GUESS: "you are"' in prompt
