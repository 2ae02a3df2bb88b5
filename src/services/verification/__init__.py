"""Politician and party verification against trusted government sources.

Trusted sources are government and official media domains (ELECAM,
the National Assembly, the Senate, the Presidency, ministries and
Cameroon Tribune).  Pages from any other host are never fetched.

Pipeline: fetch pages -> extract names and sentences -> score each
field -> aggregate -> apply confident corrections -> record the ledger.
"""

from src.services.verification.applier import UpdateApplier
from src.services.verification.engine import ScanOrchestrator, ScanOutcome, ScanThresholds
from src.services.verification.errors import PersistenceError, ScanError, TargetNotFoundError
from src.services.verification.fetcher import DocumentFetcher, FetchResult, SearchResults
from src.services.verification.ledger import VerificationLedger

__all__ = [
    "DocumentFetcher",
    "FetchResult",
    "PersistenceError",
    "ScanError",
    "ScanOrchestrator",
    "ScanOutcome",
    "ScanThresholds",
    "SearchResults",
    "TargetNotFoundError",
    "UpdateApplier",
    "VerificationLedger",
]
