"""Applies high-confidence field corrections to the scanned record.

A verification is applied only when all of the following hold:

  - the analyzer flagged it (``needs_update``);
  - its confidence reaches the auto-apply threshold;
  - the found value is non-empty and differs from the current value.

The last rule keeps an analyzer's echo of the current value from ever
being written back.  All selected fields go out in a single partial
update; nothing is written when no field qualifies.  Write failures are
raised, never swallowed.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from src.models.verification import AppliedChange, FieldVerification, ScanResult
from src.services.verification.errors import PersistenceError

if TYPE_CHECKING:
    from src.services.store import VerificationStore

logger = structlog.get_logger(__name__)

AUTO_APPLY_THRESHOLD = 0.5


def is_auto_applicable(verification: FieldVerification, threshold: float = AUTO_APPLY_THRESHOLD) -> bool:
    """True when *verification* qualifies for an automatic write.

    The ledger splits flagged fields into outdated and disputed with this
    same rule, so the audit row always agrees with what was written.
    """
    found = verification.found_value
    if not verification.needs_update or verification.confidence < threshold:
        return False
    if found is None or not found.strip():
        return False
    return found != verification.current_value


class UpdateApplier:
    """Sole writer of target records during a scan."""

    def __init__(self, store: VerificationStore, threshold: float = AUTO_APPLY_THRESHOLD) -> None:
        self._store = store
        self._threshold = threshold

    def is_applicable(self, verification: FieldVerification) -> bool:
        return is_auto_applicable(verification, self._threshold)

    def select(self, result: ScanResult) -> list[AppliedChange]:
        """Changes that would be written for *result*, in verification order."""
        return [
            AppliedChange(
                field=v.field,
                old_value=v.current_value,
                new_value=v.found_value,
                confidence=v.confidence,
            )
            for v in result.verifications
            if self.is_applicable(v)
        ]

    async def apply(self, result: ScanResult) -> list[AppliedChange]:
        """Write the selected changes as one partial update and return them."""
        changes = self.select(result)
        if not changes:
            logger.info("applier.no_changes", target_id=result.target_id)
            return []

        update = {change.field: change.new_value for change in changes}
        try:
            await self._store.update_target(result.target_type, result.target_id, update)
        except Exception as exc:
            logger.error(
                "applier.update_failed",
                target_id=result.target_id,
                fields=sorted(update),
                error=str(exc),
            )
            raise PersistenceError(
                f"Failed to update {result.target_type} {result.target_id}: {exc}",
                details={"fields": sorted(update)},
            ) from exc

        logger.info(
            "applier.update_applied",
            target_id=result.target_id,
            target_type=result.target_type,
            fields=sorted(update),
        )
        return changes
