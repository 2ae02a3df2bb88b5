"""String similarity primitives used to match names found in scraped text.

All functions are pure.  Scores are in ``[0.0, 1.0]``.

Blended name confidence
-----------------------
``0.7 * levenshtein_similarity + 0.3 * word_match_score`` per candidate,
maximum over all candidates.  An empty candidate list yields ``0.1``:
a name missing from one source is weak negative evidence, not proof
that the stored name is wrong.
"""

from __future__ import annotations

from typing import Iterable, Sequence

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

EMPTY_EVIDENCE_CONFIDENCE = 0.1
WORD_MATCH_THRESHOLD = 0.8
NAME_MATCH_THRESHOLD = 0.6

_LEVENSHTEIN_WEIGHT = 0.7
_WORD_MATCH_WEIGHT = 0.3


# ---------------------------------------------------------------------------
# Primitives
# ---------------------------------------------------------------------------


def levenshtein_distance(a: str, b: str) -> int:
    """Minimum number of single-character edits turning *a* into *b*."""
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    # Two-row dynamic programme over the shorter string.
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            cost = 0 if char_a == char_b else 1
            current.append(
                min(
                    previous[j] + 1,  # deletion
                    current[j - 1] + 1,  # insertion
                    previous[j - 1] + cost,  # substitution
                )
            )
        previous = current
    return previous[-1]


def levenshtein_similarity(a: str, b: str) -> float:
    """``1 - distance / max(len(a), len(b))``; two empty strings are identical."""
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1.0 - levenshtein_distance(a, b) / longest


def word_match_score(words1: Sequence[str], words2: Sequence[str]) -> float:
    """Share of word pairs that are near-identical (similarity above 0.8).

    Counts every pair ``(w1, w2)`` whose similarity exceeds
    :data:`WORD_MATCH_THRESHOLD` and divides by the length of the longer
    list.  The result is clamped to 1.0 since repeated words can match
    more than once.
    """
    longest = max(len(words1), len(words2))
    if longest == 0:
        return 0.0
    matches = sum(
        1
        for w1 in words1
        for w2 in words2
        if levenshtein_similarity(w1, w2) > WORD_MATCH_THRESHOLD
    )
    return min(1.0, matches / longest)


# ---------------------------------------------------------------------------
# Name matching
# ---------------------------------------------------------------------------


def _blended_score(target: str, candidate: str) -> float:
    target_norm = target.lower().strip()
    candidate_norm = candidate.lower().strip()
    return _LEVENSHTEIN_WEIGHT * levenshtein_similarity(
        target_norm, candidate_norm
    ) + _WORD_MATCH_WEIGHT * word_match_score(target_norm.split(), candidate_norm.split())


def name_match_confidence(target: str, candidates: Iterable[str]) -> float:
    """Best blended score of *target* against *candidates*, capped at 1.0."""
    scores = [_blended_score(target, candidate) for candidate in candidates]
    if not scores:
        return EMPTY_EVIDENCE_CONFIDENCE
    return min(1.0, max(scores))


def find_best_name_match(
    target: str,
    candidates: Iterable[str],
    threshold: float = NAME_MATCH_THRESHOLD,
) -> str | None:
    """Return the highest-scoring candidate, or ``None`` if it is not close enough.

    The candidate is only returned when its Levenshtein similarity on its
    own exceeds *threshold*, which is stricter than the blended score so
    that loosely related names are never suggested as corrections.
    """
    best: str | None = None
    best_score = -1.0
    for candidate in candidates:
        score = _blended_score(target, candidate)
        if score > best_score:
            best, best_score = candidate, score

    if best is None:
        return None
    if levenshtein_similarity(target.lower().strip(), best.lower().strip()) > threshold:
        return best
    return None
