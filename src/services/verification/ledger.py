"""Verification ledger: per-target status row and scan log bookkeeping.

Owns both persisted audit records:

  - the verification row (one per target, upserted on the target id);
  - the scan log entry (created ``pending`` by :meth:`open_log`,
    finalised ``completed`` by :meth:`record`).

A scan that raises between the two leaves its log entry ``pending``.
There is no timeout that fails such entries automatically; operators
should treat long-pending entries as failed scans.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog

from src.models.verification import (
    AppliedChange,
    ScanAction,
    ScanLogEntry,
    ScanResult,
    ScanStatus,
    SourceCheck,
    TargetType,
    VerificationLedgerEntry,
)
from src.services.verification.applier import AUTO_APPLY_THRESHOLD, is_auto_applicable
from src.services.verification.errors import PersistenceError

if TYPE_CHECKING:
    from src.services.store import VerificationStore

logger = structlog.get_logger(__name__)

def outdated_fields(result: ScanResult, threshold: float = AUTO_APPLY_THRESHOLD) -> list[str]:
    """Flagged fields that were (or would have been) auto-applied."""
    return [v.field for v in result.verifications if is_auto_applicable(v, threshold)]


def disputed_fields(result: ScanResult, threshold: float = AUTO_APPLY_THRESHOLD) -> list[str]:
    """Flagged fields left for human review."""
    return [v.field for v in result.verifications if v.needs_update and not is_auto_applicable(v, threshold)]


class VerificationLedger:
    """Writes the verification row and the scan log for each scan."""

    def __init__(self, store: VerificationStore, apply_threshold: float = AUTO_APPLY_THRESHOLD) -> None:
        self._store = store
        self._apply_threshold = apply_threshold

    async def open_log(
        self,
        target_type: TargetType,
        target_id: str,
        manual_scan: bool = False,
    ) -> str:
        """Insert a ``pending`` log entry and return its id."""
        entry = ScanLogEntry(
            id=str(uuid.uuid4()),
            target_type=target_type,
            target_id=target_id,
            action_type=ScanAction.MANUAL_SCAN if manual_scan else ScanAction.AUTO_SCAN,
        )
        try:
            log_id = await self._store.create_log(
                entry.model_dump(mode="json", exclude={"completed_at", "ai_confidence_score"})
            )
        except Exception as exc:
            raise PersistenceError(f"Failed to create scan log: {exc}") from exc
        logger.info("ledger.log_opened", log_id=log_id, target_id=target_id, action=entry.action_type)
        return log_id

    def build_entry(self, result: ScanResult, checked_at: datetime | None = None) -> VerificationLedgerEntry:
        now = checked_at or datetime.now(UTC)
        return VerificationLedgerEntry(
            target_id=result.target_id,
            target_type=result.target_type,
            last_verified_at=now,
            verification_status=result.status,
            verification_score=round(result.overall_confidence, 4),
            sources_count=len(result.sources_checked),
            last_sources_checked=[SourceCheck(url=url, checked_at=now) for url in result.sources_checked],
            outdated_fields=outdated_fields(result, self._apply_threshold),
            disputed_fields=disputed_fields(result, self._apply_threshold),
        )

    async def record(
        self,
        result: ScanResult,
        log_id: str,
        changes: list[AppliedChange],
    ) -> VerificationLedgerEntry:
        """Upsert the verification row, then mark the log entry completed."""
        entry = self.build_entry(result)
        row = entry.model_dump(mode="json", exclude={"target_id", "target_type"})

        try:
            await self._store.upsert_verification(result.target_type, result.target_id, row)
        except Exception as exc:
            raise PersistenceError(
                f"Failed to upsert verification for {result.target_id}: {exc}",
                details={"log_id": log_id},
            ) from exc
        logger.info(
            "ledger.upserted",
            target_id=result.target_id,
            status=entry.verification_status,
            score=entry.verification_score,
            outdated=entry.outdated_fields,
            disputed=entry.disputed_fields,
        )

        completion = {
            "status": ScanStatus.COMPLETED.value,
            "completed_at": datetime.now(UTC).isoformat(),
            "ai_confidence_score": entry.verification_score,
            "sources_verified": list(result.sources_checked),
            "proof_urls": list(result.sources_checked),
            "changes_made": [change.model_dump(mode="json") for change in changes],
        }
        try:
            await self._store.update_log(log_id, completion)
        except Exception as exc:
            raise PersistenceError(f"Failed to finalise scan log {log_id}: {exc}") from exc
        logger.info("ledger.log_completed", log_id=log_id, changes=len(changes))
        return entry
