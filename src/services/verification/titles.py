"""Normalisation of official titles (French/English) to canonical English.

The transformation is table-driven:

1. **Term map** -- French or English fragments are replaced by their
   canonical English form.  All terms are matched as whole words in a
   single pass, longest term first, so ``premier ministre`` wins over
   ``ministre`` regardless of where either appears in the table.
2. **Title case** -- every whitespace-separated word gets an upper-case
   first letter and lower-case remainder.
3. **Connecting words** -- ``of``, ``and`` and ``the`` are lower-cased
   unless they open the title.

French connectives such as ``de`` and ``la`` are deliberately not in the
connecting-word table: ``"ministre de la santé"`` becomes
``"Minister De La Santé"``.
"""

from __future__ import annotations

import re
from typing import Final

TITLE_TERMS: Final[dict[str, str]] = {
    "premier ministre": "Prime Minister",
    "ministre délégué": "Minister Delegate",
    "ministre d'état": "Minister of State",
    "secrétaire général": "Secretary General",
    "secrétaire d'état": "Secretary of State",
    "vice-président": "Vice President",
    "ministre": "Minister",
    "directeur": "Director",
    "directrice": "Director",
    "président": "President",
    "presidente": "President",
    "présidente": "President",
    "secrétaire": "Secretary",
    "gouverneur": "Governor",
    "député": "Deputy",
    "sénateur": "Senator",
    "sénatrice": "Senator",
    "maire": "Mayor",
    "délégué": "Delegate",
    "préfet": "Prefect",
    "ambassadeur": "Ambassador",
    "ancien": "Former",
    "ancienne": "Former",
}

CONNECTING_WORDS: Final[frozenset[str]] = frozenset({"of", "and", "the"})

FORMER_MARKERS: Final[tuple[str, ...]] = ("former", "ancien")


def _build_term_pattern(terms: dict[str, str]) -> re.Pattern[str]:
    ordered = sorted(terms, key=len, reverse=True)
    alternation = "|".join(re.escape(term) for term in ordered)
    return re.compile(rf"(?<![\w-])(?:{alternation})(?![\w-])", re.IGNORECASE)


_TERM_RE = _build_term_pattern(TITLE_TERMS)
_LOOKUP = {term.lower(): canonical for term, canonical in TITLE_TERMS.items()}


def translate_terms(title: str) -> str:
    """Replace every known title fragment with its canonical English form."""
    return _TERM_RE.sub(lambda match: _LOOKUP[match.group(0).lower()], title)


def title_case(title: str) -> str:
    """Capitalise each word, keeping connecting words lower-case after the first."""
    words = title.split()
    cased: list[str] = []
    for index, word in enumerate(words):
        lowered = word.lower()
        if index > 0 and lowered in CONNECTING_WORDS:
            cased.append(lowered)
        else:
            cased.append(lowered[:1].upper() + lowered[1:])
    return " ".join(cased)


def format_official_title(title: str) -> str:
    """Canonical English form of an official title."""
    return title_case(translate_terms(title.strip()))


def has_former_marker(title: str) -> bool:
    lowered = title.lower()
    return any(marker in lowered for marker in FORMER_MARKERS)
