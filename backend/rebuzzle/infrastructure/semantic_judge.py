"""Semantic Judge: Anthropic-backed SemanticEquivalenceService for borderline guesses.

Invariants:
    - The model is forced to answer through the record_verdict tool (structured output)
    - A verdict that fails schema validation is an AnthropicAPIError, never a silent accept
    - confidence is returned exactly as the model reported it (bounded 0..1 by schema)

Design Decisions:
    - Tool-use over free-text JSON: the SDK hands back parsed input, no regex scraping
    - Lenient rubric (contractions, word order, articles, small typos): character-level
      matching already handles punctuation and case
"""

import logging

from pydantic import BaseModel, Field, ValidationError

from rebuzzle.core.domain_types import SemanticJudgment
from rebuzzle.core.errors import AnthropicAPIError, ErrorContext
from rebuzzle.infrastructure.anthropic_client import ResilientAnthropicClient

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You validate puzzle answers with LENIENT semantic matching.

Accept answers that are semantically equivalent to the correct answer:
1. Contractions: "you're" = "you are", "don't" = "do not".
2. Word order: accept if all words are present and meaning is preserved.
3. Minor typos of one or two characters.
4. Punctuation and capitalization never matter.
5. Articles (a, an, the) can usually be ignored.

Only reject when the meaning is fundamentally different or clearly wrong.
Always answer by calling the record_verdict tool."""

VERDICT_TOOL = {
    "name": "record_verdict",
    "description": "Record whether the player's guess is equivalent to the answer.",
    "input_schema": {
        "type": "object",
        "properties": {
            "equivalent": {"type": "boolean"},
            "confidence": {"type": "number", "minimum": 0, "maximum": 1},
            "reasoning": {"type": "string"},
        },
        "required": ["equivalent", "confidence", "reasoning"],
    },
}


class SemanticVerdict(BaseModel):
    equivalent: bool
    confidence: float = Field(ge=0.0, le=1.0)
    reasoning: str = ""


def build_user_prompt(guess: str, answer: str) -> str:
    return (
        "Validate if this puzzle answer is semantically correct.\n\n"
        f'CORRECT ANSWER: "{answer}"\n'
        f'PLAYER\'S GUESS: "{guess}"\n\n'
        "Should this answer be ACCEPTED or REJECTED?"
    )


class AnthropicSemanticJudge:
    """SemanticEquivalenceService backed by a small, fast Claude model."""

    def __init__(
        self, client: ResilientAnthropicClient, model: str, max_tokens: int = 300,
    ):
        self.client = client
        self.model = model
        self.max_tokens = max_tokens

    async def judge(self, guess: str, answer: str) -> SemanticJudgment:
        context = ErrorContext(operation="semantic_judge")
        response = await self.client.create_message(
            model=self.model,
            max_tokens=self.max_tokens,
            system=SYSTEM_PROMPT,
            messages=[{"role": "user", "content": build_user_prompt(guess, answer)}],
            tools=[VERDICT_TOOL],
            tool_choice={"type": "tool", "name": VERDICT_TOOL["name"]},
            context=context,
        )
        verdict = _extract_verdict(response, context)
        return SemanticJudgment(
            equivalent=verdict.equivalent,
            confidence=verdict.confidence,
            reasoning=verdict.reasoning,
        )


def _extract_verdict(response, context: ErrorContext) -> SemanticVerdict:
    for block in getattr(response, "content", None) or []:
        if getattr(block, "type", None) == "tool_use" and block.name == VERDICT_TOOL["name"]:
            try:
                return SemanticVerdict.model_validate(block.input)
            except ValidationError as e:
                raise AnthropicAPIError(
                    f"Malformed verdict: {e.error_count()} validation error(s)",
                    "invalid_response", context=context,
                )
    raise AnthropicAPIError(
        "Response contained no record_verdict call", "invalid_response",
        context=context,
    )
