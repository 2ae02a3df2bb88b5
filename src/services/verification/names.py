"""Extraction of candidate names and relevant sentences from page text."""

from __future__ import annotations

import re

# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

_UPPER = "A-ZÀ-ÖØ-Þ"
_LOWER = "a-zß-öø-ÿ"
_WORD = rf"[{_UPPER}][{_LOWER}'’-]+"

# Honorific followed by one or more capitalised words ("Hon. Cavaye Yeguie Djibril").
_HONORIFIC_NAME_RE = re.compile(
    rf"(?:\b(?:Dr|Prof|Hon|Mrs|Mr|M)\.|\bMme\b)\s+{_WORD}(?:\s+{_WORD})*"
)
# Two or three capitalised words in a row ("Paul Biya", "Marcel Niat Njifenji").
_BARE_NAME_RE = re.compile(rf"\b{_WORD}(?:\s+{_WORD}){{1,2}}\b")

_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")
_WHITESPACE_RE = re.compile(r"\s+")

MIN_NAME_LENGTH = 5
MAX_NAME_LENGTH = 50
DEFAULT_SENTENCE_LIMIT = 10


def extract_names(text: str) -> list[str]:
    """Return de-duplicated name-like sequences found in *text*.

    Order is first occurrence, honorific matches before bare ones.
    """
    seen: dict[str, None] = {}
    for pattern in (_HONORIFIC_NAME_RE, _BARE_NAME_RE):
        for match in pattern.finditer(text):
            name = _WHITESPACE_RE.sub(" ", match.group(0)).strip()
            if MIN_NAME_LENGTH <= len(name) <= MAX_NAME_LENGTH:
                seen.setdefault(name, None)
    return list(seen)


def query_tokens(query: str) -> list[str]:
    return [token for token in query.lower().split() if token]


def extract_relevant_sentences(
    text: str,
    query: str,
    limit: int = DEFAULT_SENTENCE_LIMIT,
) -> list[str]:
    """Sentences of *text* containing at least one token of *query*.

    Sentences are kept in document order and capped at *limit*; there is
    no ranking beyond the token filter.
    """
    tokens = query_tokens(query)
    if not tokens or limit <= 0:
        return []

    relevant: list[str] = []
    for raw in _SENTENCE_SPLIT_RE.split(text):
        sentence = _WHITESPACE_RE.sub(" ", raw).strip()
        if not sentence:
            continue
        lowered = sentence.lower()
        if any(token in lowered for token in tokens):
            relevant.append(sentence)
            if len(relevant) >= limit:
                break
    return relevant
