from src.models.verification import (
    AnalyzerOutcome,
    AppliedChange,
    FieldVerification,
    PersonStatus,
    Politician,
    PoliticalParty,
    ScanAction,
    ScanLogEntry,
    ScanResult,
    ScanStatus,
    SourceCheck,
    TargetType,
    VerificationLedgerEntry,
    VerificationStatus,
)

__all__ = [
    "AnalyzerOutcome",
    "AppliedChange",
    "FieldVerification",
    "PersonStatus",
    "PoliticalParty",
    "Politician",
    "ScanAction",
    "ScanLogEntry",
    "ScanResult",
    "ScanStatus",
    "SourceCheck",
    "TargetType",
    "VerificationLedgerEntry",
    "VerificationStatus",
]
