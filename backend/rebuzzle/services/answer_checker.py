"""Answer Checking: character-level match plus optional semantic fallback.

Invariants:
    - check() NEVER raises: judge errors and timeouts fall back to the pure result
    - The judge is consulted only for REJECT results whose normalized strings are both
      non-empty and whose similarity >= min_similarity (one rule, one threshold)
    - A positive judgment yields FUZZY_AI with the judge's confidence passed through as-is;
      similarity always stays the character-level score

Design Decisions:
    - asyncio.wait_for around the judge: a slow model must not stall a guess
    - Judge is optional (None): deployments without an API key still work
"""

import asyncio
import logging
from dataclasses import replace

from rebuzzle.core.answer_matcher import check
from rebuzzle.core.domain_types import MatchClassification, MatchResult
from rebuzzle.core.errors import RebuzzleError
from rebuzzle.core.repository_protocols import SemanticEquivalenceService

logger = logging.getLogger(__name__)

DEFAULT_MIN_SIMILARITY: float = 0.3
DEFAULT_TIMEOUT_SECONDS: float = 5.0


def should_consult_judge(result: MatchResult, min_similarity: float) -> bool:
    return (
        result.classification is MatchClassification.REJECT
        and bool(result.normalized_guess)
        and bool(result.normalized_answer)
        and result.similarity >= min_similarity
    )


class AnswerChecker:

    def __init__(
        self,
        judge: SemanticEquivalenceService | None = None,
        min_similarity: float = DEFAULT_MIN_SIMILARITY,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.judge = judge
        self.min_similarity = min_similarity
        self.timeout_seconds = timeout_seconds

    async def check(self, guess: str, answer: str) -> MatchResult:
        result = check(guess, answer)
        if self.judge is None or not should_consult_judge(result, self.min_similarity):
            return result

        try:
            judgment = await asyncio.wait_for(
                self.judge.judge(guess, answer), timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Semantic judge timed out; keeping character-level verdict",
                extra={"similarity": result.similarity},
            )
            return result
        except RebuzzleError as e:
            logger.warning(
                f"Semantic judge failed; keeping character-level verdict: {e.message}",
                extra={"error_code": e.code, "similarity": result.similarity},
            )
            return result

        if not judgment.equivalent:
            return replace(result, reasoning=judgment.reasoning or result.reasoning)

        logger.info(
            "Guess accepted by semantic judge",
            extra={
                "classification": MatchClassification.FUZZY_AI.value,
                "similarity": result.similarity,
            },
        )
        return replace(
            result,
            classification=MatchClassification.FUZZY_AI,
            confidence=judgment.confidence,
            reasoning=judgment.reasoning or "Semantically equivalent",
        )
