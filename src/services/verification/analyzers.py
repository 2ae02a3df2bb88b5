"""Field analyzers: per-attribute confidence scoring over scraped sentences.

Every analyzer turns the evidence gathered for one field into a
:class:`FieldAnalysis` -- a confidence in ``[0, 1]``, an optional
suggested value and a ``needs_update`` flag.

Co-occurrence scoring
---------------------
A sentence that contains a token of the entity's name is a *mention*.
A mention that also satisfies the analyzer's required term list (if any)
and contains one of the field's keywords is a *hit*.

+-----------------------------+-------------------------------------+
| Evidence                    | Confidence                          |
+-----------------------------+-------------------------------------+
| no mention                  | weak prior of the field             |
| mentions, no hit            | half the weak prior                 |
| ``n`` hits                  | ``min(0.95, 0.5 + 0.15 * n)``       |
+-----------------------------+-------------------------------------+

Missing evidence is inconclusive, so it never drops a field to zero and
never flags it for update.  Only mentions that fail to corroborate the
field flag it, and always below the auto-apply threshold: such fields
surface as *disputed* for human review.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable, Final, Iterable, Sequence
from urllib.parse import urlsplit

from src.models.verification import PersonStatus, Politician, VerificationTarget
from src.services.verification.fetcher import SearchResults
from src.services.verification.similarity import (
    NAME_MATCH_THRESHOLD,
    find_best_name_match,
    name_match_confidence,
)
from src.services.verification.titles import format_official_title, has_former_marker

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

MAX_CONFIDENCE = 0.95
HIT_BASE = 0.5
HIT_STEP = 0.15

WEAK_PRIORS: Final[dict[str, float]] = {
    "role_title": 0.4,
    "party": 0.4,
    "birth_date": 0.3,
    "profile_image_url": 0.5,
    "education": 0.3,
    "bio": 0.3,
    "term_status": 0.4,
    "founding_date": 0.3,
    "headquarters_address": 0.4,
    "party_president": 0.4,
}

# Position corrections are only proposed above this confidence.
POSITION_UPDATE_CONFIDENCE = 0.5
# Status classification needed before a title is marked "Former".
RETIRED_TITLE_CONFIDENCE = 0.6

TRUSTED_IMAGE_CONFIDENCE = 0.9
INSECURE_IMAGE_CONFIDENCE = 0.3

BIO_KEYWORD_LIMIT = 12

ACTIVE_TERMS: Final[tuple[str, ...]] = (
    "current", "currently", "serves", "serving", "minister", "deputy",
    "senator", "mayor", "incumbent", "actuel", "actuelle",
)
RETIRED_TERMS: Final[tuple[str, ...]] = (
    "former", "ex-", "retired", "ancien", "ancienne", "formerly",
)
DECEASED_TERMS: Final[tuple[str, ...]] = (
    "died", "deceased", "death", "mort", "décédé", "décédée",
)
BIRTH_TERMS: Final[tuple[str, ...]] = ("born", "birth", "né", "née", "naissance")
FOUNDING_TERMS: Final[tuple[str, ...]] = (
    "founded", "created", "established", "formed", "fondé", "fondée", "créé", "créée",
)
LEADERSHIP_TERMS: Final[tuple[str, ...]] = (
    "president", "chairman", "leader", "head", "président", "dirigeant",
)

_STOPWORDS: Final[frozenset[str]] = frozenset({
    "the", "and", "for", "with", "from", "that", "this", "of", "in", "at",
    "les", "des", "une", "dans", "pour", "avec", "sur", "par", "aux", "du",
})

_TOKEN_RE = re.compile(r"[\w'’-]+", re.UNICODE)
_YEAR_RE = re.compile(r"\b(1[89]\d{2}|20\d{2})\b")


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass
class FieldAnalysis:
    """Outcome of analysing one field."""

    confidence: float
    suggested_value: str | None = None
    needs_update: bool = False
    mentions: int = 0
    hits: int = 0

    @property
    def has_evidence(self) -> bool:
        return self.mentions > 0


@dataclass
class StatusClassification:
    status: PersonStatus
    confidence: float
    scores: dict[PersonStatus, int] = field(default_factory=dict)

    @property
    def has_evidence(self) -> bool:
        return any(self.scores.values())


@dataclass
class AnalysisContext:
    """Evidence and settings an analyzer works from."""

    search: SearchResults
    trusted_domains: frozenset[str] = frozenset()
    name_match_threshold: float = NAME_MATCH_THRESHOLD


# ---------------------------------------------------------------------------
# Tokenisation and scoring helpers
# ---------------------------------------------------------------------------


def keywords(text: str | None, min_length: int = 3) -> list[str]:
    """Lower-cased distinct tokens longer than *min_length*, stopwords removed."""
    if not text:
        return []
    seen: dict[str, None] = {}
    for token in _TOKEN_RE.findall(text.lower()):
        token = token.strip("'’-")
        if len(token) > min_length and token not in _STOPWORDS:
            seen.setdefault(token, None)
    return list(seen)


def entity_tokens(entity_name: str) -> list[str]:
    return keywords(entity_name, min_length=2) or keywords(entity_name, min_length=0)


def years(text: str | None) -> list[str]:
    return _YEAR_RE.findall(text or "")


def hit_confidence(hits: int) -> float:
    return min(MAX_CONFIDENCE, HIT_BASE + HIT_STEP * hits)


def score_cooccurrence(
    entity_name: str,
    field_keywords: Sequence[str],
    texts: Iterable[str],
    prior: float,
    required_terms: Sequence[str] = (),
) -> FieldAnalysis:
    """Score how often *field_keywords* appear alongside the entity in *texts*."""
    names = entity_tokens(entity_name)
    mentions = 0
    hits = 0
    for sentence in texts:
        lowered = sentence.lower()
        if names and not any(token in lowered for token in names):
            continue
        mentions += 1
        if required_terms and not any(term in lowered for term in required_terms):
            continue
        if field_keywords and any(keyword in lowered for keyword in field_keywords):
            hits += 1

    if mentions == 0:
        confidence = prior
    elif hits == 0:
        confidence = prior / 2
    else:
        confidence = hit_confidence(hits)

    return FieldAnalysis(
        confidence=round(confidence, 4),
        needs_update=mentions > 0 and hits == 0,
        mentions=mentions,
        hits=hits,
    )


def _echo(analysis: FieldAnalysis, current_value: str | None) -> FieldAnalysis:
    analysis.suggested_value = current_value
    return analysis


# ---------------------------------------------------------------------------
# Person analyzers
# ---------------------------------------------------------------------------


def analyze_name(
    current_name: str,
    found_names: Sequence[str],
    threshold: float = NAME_MATCH_THRESHOLD,
) -> FieldAnalysis:
    """Match the stored name against names extracted from the sources."""
    confidence = name_match_confidence(current_name, found_names)
    best = find_best_name_match(current_name, found_names, threshold=threshold)
    needs_update = best is not None and best.casefold() != current_name.casefold()
    return FieldAnalysis(
        confidence=round(confidence, 4),
        suggested_value=best or current_name,
        needs_update=needs_update,
        mentions=len(found_names),
        hits=1 if best is not None else 0,
    )


def classify_person_status(entity_name: str, texts: Iterable[str]) -> StatusClassification:
    """Classify a politician as Active, Retired or Deceased.

    Each class scores one point per term found in a sentence mentioning
    the entity.  The highest score wins; ties go to Active, then Retired.
    """
    names = entity_tokens(entity_name)
    scores = {status: 0 for status in PersonStatus}
    term_lists = {
        PersonStatus.ACTIVE: ACTIVE_TERMS,
        PersonStatus.RETIRED: RETIRED_TERMS,
        PersonStatus.DECEASED: DECEASED_TERMS,
    }
    for sentence in texts:
        lowered = sentence.lower()
        if names and not any(token in lowered for token in names):
            continue
        for status, terms in term_lists.items():
            scores[status] += sum(1 for term in terms if term in lowered)

    total = sum(scores.values())
    if total == 0:
        return StatusClassification(
            status=PersonStatus.ACTIVE,
            confidence=WEAK_PRIORS["term_status"],
            scores=scores,
        )

    # PersonStatus iterates Active, Retired, Deceased: max() keeps the first on ties.
    winner = max(PersonStatus, key=lambda status: scores[status])
    return StatusClassification(
        status=winner,
        confidence=round(scores[winner] / total, 4),
        scores=scores,
    )


def analyze_status(current_status: str | None, entity_name: str, texts: Sequence[str]) -> FieldAnalysis:
    classification = classify_person_status(entity_name, texts)
    current = current_status or PersonStatus.ACTIVE.value
    needs_update = classification.has_evidence and classification.status.value.casefold() != current.casefold()
    return FieldAnalysis(
        confidence=classification.confidence,
        suggested_value=classification.status.value,
        needs_update=needs_update,
        mentions=sum(classification.scores.values()),
        hits=classification.scores[classification.status],
    )


def analyze_position(current_title: str, entity_name: str, texts: Sequence[str]) -> FieldAnalysis:
    """Score the role title and propose a normalised form.

    Titles of people classified as Retired (with confidence above 0.6)
    gain a ``Former`` prefix; every title is then passed through
    :func:`format_official_title`.
    """
    analysis = score_cooccurrence(
        entity_name,
        keywords(current_title),
        texts,
        prior=WEAK_PRIORS["role_title"],
    )

    corrected = current_title
    status = classify_person_status(entity_name, texts)
    # Retired alone is not enough: a tie or narrow Retired plurality keeps the title as is.
    if (
        status.status == PersonStatus.RETIRED
        and status.confidence > RETIRED_TITLE_CONFIDENCE
        and not has_former_marker(corrected)
    ):
        corrected = f"Former {corrected}"
    corrected = format_official_title(corrected)

    analysis.suggested_value = corrected
    analysis.needs_update = corrected != current_title and analysis.confidence > POSITION_UPDATE_CONFIDENCE
    return analysis


def analyze_party(current_party: str, entity_name: str, texts: Sequence[str]) -> FieldAnalysis:
    # Party acronyms (RDPC, SDF, UNDP) are short, so keep three-letter tokens.
    return _echo(
        score_cooccurrence(entity_name, keywords(current_party, min_length=2), texts, WEAK_PRIORS["party"]),
        current_party,
    )


def analyze_birth_date(current_date: str, entity_name: str, texts: Sequence[str]) -> FieldAnalysis:
    return _echo(
        score_cooccurrence(
            entity_name, years(current_date), texts, WEAK_PRIORS["birth_date"], required_terms=BIRTH_TERMS
        ),
        current_date,
    )


def analyze_image(image_url: str, trusted_domains: Iterable[str]) -> FieldAnalysis:
    """Score where the profile image is hosted; no network call is made."""
    parts = urlsplit(image_url)
    host = (parts.hostname or "").lower()
    trusted = bool(host) and any(host == d or host.endswith(f".{d}") for d in trusted_domains)
    if trusted:
        confidence = TRUSTED_IMAGE_CONFIDENCE
    elif parts.scheme == "https":
        confidence = WEAK_PRIORS["profile_image_url"]
    else:
        confidence = INSECURE_IMAGE_CONFIDENCE
    return FieldAnalysis(confidence=confidence, suggested_value=image_url)


def analyze_education(current_education: str, entity_name: str, texts: Sequence[str]) -> FieldAnalysis:
    return _echo(
        score_cooccurrence(entity_name, keywords(current_education), texts, WEAK_PRIORS["education"]),
        current_education,
    )


def analyze_bio(current_bio: str, entity_name: str, texts: Sequence[str]) -> FieldAnalysis:
    bio_keywords = [k for k in keywords(current_bio) if k not in entity_tokens(entity_name)]
    return _echo(
        score_cooccurrence(entity_name, bio_keywords[:BIO_KEYWORD_LIMIT], texts, WEAK_PRIORS["bio"]),
        current_bio,
    )


# ---------------------------------------------------------------------------
# Party analyzers
# ---------------------------------------------------------------------------


def analyze_founding_date(current_date: str, party_name: str, texts: Sequence[str]) -> FieldAnalysis:
    return _echo(
        score_cooccurrence(
            party_name, years(current_date), texts, WEAK_PRIORS["founding_date"], required_terms=FOUNDING_TERMS
        ),
        current_date,
    )


def analyze_headquarters(current_address: str, party_name: str, texts: Sequence[str]) -> FieldAnalysis:
    return _echo(
        score_cooccurrence(party_name, keywords(current_address), texts, WEAK_PRIORS["headquarters_address"]),
        current_address,
    )


def analyze_leadership(current_leader: str, party_name: str, texts: Sequence[str]) -> FieldAnalysis:
    return _echo(
        score_cooccurrence(
            party_name,
            keywords(current_leader, min_length=2),
            texts,
            WEAK_PRIORS["party_president"],
            required_terms=LEADERSHIP_TERMS,
        ),
        current_leader,
    )


# ---------------------------------------------------------------------------
# Analyzer registry
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FieldAnalyzer:
    """Binds a record field to its search query and analysis function.

    ``always`` analyzers run even when the field is empty; the others are
    skipped for records that do not populate the field.  ``searches`` is
    false for analyzers that work from the record alone.
    """

    field: str
    query: Callable[[VerificationTarget], str]
    analyze: Callable[[VerificationTarget, AnalysisContext], FieldAnalysis]
    always: bool = False
    searches: bool = True

    def applies_to(self, target: VerificationTarget) -> bool:
        if self.always:
            return True
        value = getattr(target, self.field, None)
        return bool(value and str(value).strip())


def _text(ctx: AnalysisContext) -> list[str]:
    return ctx.search.relevant_text


POLITICIAN_ANALYZERS: Final[tuple[FieldAnalyzer, ...]] = (
    FieldAnalyzer(
        field="name",
        query=lambda p: p.name,
        analyze=lambda p, ctx: analyze_name(p.name, ctx.search.found_names, ctx.name_match_threshold),
        always=True,
    ),
    FieldAnalyzer(
        field="term_status",
        query=lambda p: p.name,
        analyze=lambda p, ctx: analyze_status(p.term_status, p.name, _text(ctx)),
        always=True,
    ),
    FieldAnalyzer(
        field="role_title",
        query=lambda p: f"{p.name} {p.role_title}",
        analyze=lambda p, ctx: analyze_position(p.role_title, p.name, _text(ctx)),
    ),
    FieldAnalyzer(
        field="party",
        query=lambda p: f"{p.name} {p.party}",
        analyze=lambda p, ctx: analyze_party(p.party, p.name, _text(ctx)),
    ),
    FieldAnalyzer(
        field="birth_date",
        query=lambda p: f"{p.name} born",
        analyze=lambda p, ctx: analyze_birth_date(p.birth_date, p.name, _text(ctx)),
    ),
    FieldAnalyzer(
        field="profile_image_url",
        query=lambda p: p.name,
        analyze=lambda p, ctx: analyze_image(p.profile_image_url, ctx.trusted_domains),
        searches=False,
    ),
    FieldAnalyzer(
        field="education",
        query=lambda p: f"{p.name} {p.education}",
        analyze=lambda p, ctx: analyze_education(p.education, p.name, _text(ctx)),
    ),
    FieldAnalyzer(
        field="bio",
        query=lambda p: p.name,
        analyze=lambda p, ctx: analyze_bio(p.bio, p.name, _text(ctx)),
    ),
)

PARTY_ANALYZERS: Final[tuple[FieldAnalyzer, ...]] = (
    FieldAnalyzer(
        field="name",
        query=lambda party: party.name,
        analyze=lambda party, ctx: analyze_name(party.name, ctx.search.found_names, ctx.name_match_threshold),
        always=True,
    ),
    FieldAnalyzer(
        field="founding_date",
        query=lambda party: f"{party.name} founded",
        analyze=lambda party, ctx: analyze_founding_date(party.founding_date, party.name, _text(ctx)),
    ),
    FieldAnalyzer(
        field="headquarters_address",
        query=lambda party: f"{party.name} {party.headquarters_address}",
        analyze=lambda party, ctx: analyze_headquarters(party.headquarters_address, party.name, _text(ctx)),
    ),
    FieldAnalyzer(
        field="party_president",
        query=lambda party: f"{party.name} {party.party_president}",
        analyze=lambda party, ctx: analyze_leadership(party.party_president, party.name, _text(ctx)),
    ),
)


def analyzers_for(target: VerificationTarget) -> list[FieldAnalyzer]:
    """Analyzers that apply to *target*, in registry order."""
    registry = POLITICIAN_ANALYZERS if isinstance(target, Politician) else PARTY_ANALYZERS
    return [analyzer for analyzer in registry if analyzer.applies_to(target)]
