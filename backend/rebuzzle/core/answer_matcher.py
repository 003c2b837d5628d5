"""Answer Matching: normalization and Levenshtein similarity for free-text guesses.

Invariants:
    - check() is PURE and never raises: degenerate inputs resolve to REJECT
    - ACCEPT_THRESHOLD (0.95) is the single source of truth for typo tolerance
    - similarity(a, b) is in [0, 1]; two empty strings are defined as 1.0
    - Equal non-empty normalized strings are EXACT regardless of raw form

Design Decisions:
    - Normalization strips everything outside [a-z0-9] (spaces included): "Sun-Flower!"
      and "sunflower" compare equal (ADR: puzzle answers are single phrases)
    - Rolling-row Levenshtein: O(len(a) * len(b)) time, O(min) extra space
    - Semantic fallback lives in services/answer_checker.py: core stays sync and IO-free
"""

import re
import unicodedata

from rebuzzle.core.domain_types import MatchClassification, MatchResult


ACCEPT_THRESHOLD: float = 0.95

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def normalize_answer(text: str) -> str:
    """lowercase -> NFD -> drop combining marks -> keep [a-z0-9] -> trim."""
    decomposed = unicodedata.normalize("NFD", text.lower())
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return _NON_ALNUM.sub("", stripped).strip()


def levenshtein(a: str, b: str) -> int:
    """Unit-cost edit distance (insert, delete, substitute)."""
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)
    # Keep the row as short as possible
    if len(b) > len(a):
        a, b = b, a

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            current.append(min(
                previous[j] + 1,                  # deletion
                current[j - 1] + 1,               # insertion
                previous[j - 1] + (ca != cb),     # substitution
            ))
        previous = current
    return previous[-1]


def similarity(a: str, b: str) -> float:
    """(maxLen - distance) / maxLen over already-normalized strings."""
    max_len = max(len(a), len(b))
    if max_len == 0:
        return 1.0
    return (max_len - levenshtein(a, b)) / max_len


def check(guess: str, answer: str) -> MatchResult:
    """Classify a guess against the canonical answer without any IO."""
    norm_guess = normalize_answer(guess or "")
    norm_answer = normalize_answer(answer or "")
    score = similarity(norm_guess, norm_answer)

    def _result(classification: MatchClassification, reasoning: str) -> MatchResult:
        return MatchResult(
            guess=guess, answer=answer,
            normalized_guess=norm_guess, normalized_answer=norm_answer,
            similarity=score, confidence=score,
            classification=classification, reasoning=reasoning,
        )

    if not norm_guess or not norm_answer:
        return _result(
            MatchClassification.REJECT,
            "Nothing left to compare after normalization",
        )
    if norm_guess == norm_answer:
        return _result(MatchClassification.EXACT, "Exact match after normalization")
    if score >= ACCEPT_THRESHOLD:
        return _result(
            MatchClassification.NORMALIZED,
            f"Close enough to the answer (similarity {score:.3f} >= {ACCEPT_THRESHOLD})",
        )
    return _result(
        MatchClassification.REJECT,
        f"Similarity {score:.3f} below {ACCEPT_THRESHOLD}",
    )
