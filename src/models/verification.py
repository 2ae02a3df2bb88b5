"""Verification data models for the Politica AI scanner.

Defines the target records (politicians and political parties), the
transient per-scan structures produced by the field analyzers, and the
two persisted audit records: the per-target verification ledger row and
the append-only scan log entry.

Confidence values are heuristic scores in ``[0, 1]``; they are not
calibrated probabilities.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class TargetType(StrEnum):
    """Kind of record a scan verifies."""

    __slots__ = ()

    POLITICIAN = "politician"
    POLITICAL_PARTY = "political_party"


class VerificationStatus(StrEnum):
    """Outcome of a scan, derived from the field verifications."""

    __slots__ = ()

    VERIFIED = "verified"
    DISPUTED = "disputed"
    UNVERIFIED = "unverified"


class ScanStatus(StrEnum):
    """Lifecycle of a scan log entry: ``pending`` then ``completed`` or ``failed``."""

    __slots__ = ()

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class ScanAction(StrEnum):
    __slots__ = ()

    AUTO_SCAN = "auto_scan"
    MANUAL_SCAN = "manual_scan"


class PersonStatus(StrEnum):
    """Career status a politician can be classified into."""

    __slots__ = ()

    ACTIVE = "Active"
    RETIRED = "Retired"
    DECEASED = "Deceased"


# ---------------------------------------------------------------------------
# Targets
# ---------------------------------------------------------------------------


class Politician(BaseModel):
    """A politician row. Columns not listed here are ignored."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    role_title: str | None = None
    region: str | None = None
    party: str | None = None
    birth_date: str | None = None
    profile_image_url: str | None = None
    education: str | None = None
    bio: str | None = None
    term_status: str | None = None


class PoliticalParty(BaseModel):
    """A political party row. Columns not listed here are ignored."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    party_president: str | None = None
    founding_date: str | None = None
    headquarters_address: str | None = None


VerificationTarget = Politician | PoliticalParty


# ---------------------------------------------------------------------------
# Transient scan structures
# ---------------------------------------------------------------------------


class FieldVerification(BaseModel):
    """Verification of one attribute of the target during one scan."""

    field: str
    current_value: str | None = None
    found_value: str | None = None
    source_url: str | None = None
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    needs_update: bool = False


class AnalyzerOutcome(BaseModel):
    """Result of running one field analyzer: a verification or the error it raised."""

    field: str
    verification: FieldVerification | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.verification is not None


class ScanResult(BaseModel):
    """Aggregated outcome of one scan.

    ``status`` is derived from ``verifications`` and
    ``overall_confidence`` by :func:`derive_status`; the orchestrator is
    the only component that constructs this model.
    """

    target_id: str
    target_type: TargetType
    verifications: list[FieldVerification] = Field(default_factory=list)
    overall_confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    sources_checked: list[str] = Field(default_factory=list)
    status: VerificationStatus = VerificationStatus.UNVERIFIED
    failed_analyzers: list[str] = Field(default_factory=list)


def aggregate_confidence(verifications: list[FieldVerification]) -> float:
    """Mean confidence over *verifications*; exactly 0 when there are none."""
    if not verifications:
        return 0.0
    return sum(v.confidence for v in verifications) / len(verifications)


def derive_status(
    verifications: list[FieldVerification],
    overall_confidence: float,
    *,
    dispute_threshold: float = 0.5,
    verified_threshold: float = 0.8,
) -> VerificationStatus:
    """Disputed beats verified; anything else is unverified."""
    if any(v.needs_update and v.confidence < dispute_threshold for v in verifications):
        return VerificationStatus.DISPUTED
    if overall_confidence >= verified_threshold:
        return VerificationStatus.VERIFIED
    return VerificationStatus.UNVERIFIED


class AppliedChange(BaseModel):
    """A single field update written to the target record."""

    field: str
    old_value: str | None = None
    new_value: str
    confidence: float = Field(ge=0.0, le=1.0)


# ---------------------------------------------------------------------------
# Persisted audit records
# ---------------------------------------------------------------------------


class SourceCheck(BaseModel):
    url: str
    checked_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class VerificationLedgerEntry(BaseModel):
    """Verification state of one target; exactly one row per target id."""

    target_id: str
    target_type: TargetType
    last_verified_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    verification_status: VerificationStatus
    verification_score: float = Field(ge=0.0, le=1.0)
    sources_count: int = 0
    last_sources_checked: list[SourceCheck] = Field(default_factory=list)
    outdated_fields: list[str] = Field(default_factory=list)
    disputed_fields: list[str] = Field(default_factory=list)


class ScanLogEntry(BaseModel):
    """Append-only audit entry, created ``pending`` at scan start."""

    id: str
    target_type: TargetType
    target_id: str
    action_type: ScanAction = ScanAction.AUTO_SCAN
    status: ScanStatus = ScanStatus.PENDING
    ai_confidence_score: float | None = None
    sources_verified: list[str] = Field(default_factory=list)
    changes_made: list[AppliedChange] = Field(default_factory=list)
    proof_urls: list[str] = Field(default_factory=list)
    error_message: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    completed_at: datetime | None = None
