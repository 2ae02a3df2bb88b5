"""Scan orchestrator for politician and political-party records.

One scan verifies one target record against trusted government sources:

1. Open a ``pending`` scan log entry.
2. Load the target; a missing target aborts the scan.
3. Pick the applicable field analyzers.  Name (and, for politicians,
   person status) always run; every other analyzer runs only when its
   field is populated, so sparse records do not produce spurious
   low-confidence verifications.
4. Run the analyzers concurrently with :func:`asyncio.gather`.  An
   analyzer that raises is reported as a failed :class:`AnalyzerOutcome`
   -- logged and counted, then left out of aggregation.  Failures are not
   retried.
5. Aggregate: ``overall_confidence`` is the mean confidence of the
   successful verifications (0 when there are none).
6. Derive the status:

   - **disputed**: some verification needs an update with confidence
     below the dispute threshold (0.5).
   - **verified**: otherwise, ``overall_confidence >= 0.8``.
   - **unverified**: everything else.

7. Apply eligible corrections, then write the ledger row and complete
   the log entry.

The target row is read once and written at most once per scan.  The
entity update and the ledger upsert are separate writes; no transaction
spans them.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog

from src.models.verification import (
    AnalyzerOutcome,
    AppliedChange,
    FieldVerification,
    Politician,
    PoliticalParty,
    ScanResult,
    TargetType,
    VerificationTarget,
    aggregate_confidence,
    derive_status,
)
from src.services.verification.analyzers import AnalysisContext, FieldAnalyzer, analyzers_for
from src.services.verification.applier import UpdateApplier
from src.services.verification.errors import PersistenceError, TargetNotFoundError
from src.services.verification.fetcher import SearchResults
from src.services.verification.ledger import VerificationLedger
from src.services.verification.similarity import NAME_MATCH_THRESHOLD

if TYPE_CHECKING:
    from src.services.store import VerificationStore
    from src.services.verification.fetcher import DocumentFetcher

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Thresholds
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ScanThresholds:
    """Named confidence thresholds used across one scan."""

    auto_apply: float = 0.5
    dispute: float = 0.5
    verified: float = 0.8
    name_match: float = NAME_MATCH_THRESHOLD


@dataclass
class ScanOutcome:
    result: ScanResult
    log_id: str
    changes: list[AppliedChange] = field(default_factory=list)


_TARGET_MODELS: dict[TargetType, type[Politician] | type[PoliticalParty]] = {
    TargetType.POLITICIAN: Politician,
    TargetType.POLITICAL_PARTY: PoliticalParty,
}


# ---------------------------------------------------------------------------
# ScanOrchestrator
# ---------------------------------------------------------------------------


class ScanOrchestrator:
    """Runs end-to-end verification scans.

    Parameters
    ----------
    store:
        Persistence backend for targets, ledger rows and scan logs.
    fetcher:
        Document fetcher restricted to the trusted domains.
    thresholds:
        Confidence thresholds; defaults match the documented policy.
    """

    def __init__(
        self,
        store: VerificationStore,
        fetcher: DocumentFetcher,
        thresholds: ScanThresholds | None = None,
    ) -> None:
        self._store = store
        self._fetcher = fetcher
        self._thresholds = thresholds or ScanThresholds()
        self._applier = UpdateApplier(store, threshold=self._thresholds.auto_apply)
        self._ledger = VerificationLedger(store, apply_threshold=self._thresholds.auto_apply)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def scan(
        self,
        target_type: TargetType | str,
        target_id: str,
        manual_scan: bool = False,
    ) -> ScanOutcome:
        """Run one scan and return its result, log id and applied changes.

        Raises
        ------
        TargetNotFoundError
            No record with *target_id* exists.  The log entry stays
            ``pending``.
        PersistenceError
            Writing the update, ledger row or log entry failed.
        """
        target_type = TargetType(target_type)
        start = time.monotonic()
        structlog.contextvars.bind_contextvars(target_type=target_type.value, target_id=target_id)
        try:
            log_id = await self._ledger.open_log(target_type, target_id, manual_scan=manual_scan)
            logger.info("scan.start", log_id=log_id, manual_scan=manual_scan)

            target = await self.load_target(target_type, target_id)
            result = await self.analyze(target_type, target)

            changes = await self._applier.apply(result)
            try:
                await self._ledger.record(result, log_id, changes)
            except PersistenceError:
                if changes:
                    # The entity update is already committed; keep a record of it.
                    logger.error(
                        "scan.ledger_failed_after_update",
                        log_id=log_id,
                        changes=[change.model_dump(mode="json") for change in changes],
                    )
                raise

            logger.info(
                "scan.complete",
                log_id=log_id,
                status=result.status,
                overall_confidence=round(result.overall_confidence, 4),
                verifications=len(result.verifications),
                failed_analyzers=result.failed_analyzers,
                changes=[change.field for change in changes],
                duration_s=round(time.monotonic() - start, 2),
            )
            return ScanOutcome(result=result, log_id=log_id, changes=changes)
        finally:
            structlog.contextvars.unbind_contextvars("target_type", "target_id")

    async def load_target(self, target_type: TargetType, target_id: str) -> VerificationTarget:
        row = await self._store.get_target(target_type, target_id)
        if row is None:
            logger.warning("scan.target_not_found")
            raise TargetNotFoundError(
                f"{target_type.value} {target_id} not found",
                details={"target_type": target_type.value, "target_id": target_id},
            )
        return _TARGET_MODELS[target_type].model_validate(row)

    async def analyze(self, target_type: TargetType, target: VerificationTarget) -> ScanResult:
        """Run every applicable analyzer on *target* and aggregate the results."""
        analyzers = analyzers_for(target)
        logger.info("scan.analyzers_planned", fields=[a.field for a in analyzers])

        raw = await asyncio.gather(
            *(self._run_analyzer(analyzer, target) for analyzer in analyzers),
            return_exceptions=True,
        )

        outcomes: list[AnalyzerOutcome] = []
        sources_checked: dict[str, None] = {}
        for analyzer, item in zip(analyzers, raw):
            if isinstance(item, BaseException):
                if not isinstance(item, Exception):
                    raise item
                logger.error(
                    "scan.analyzer_failed",
                    field=analyzer.field,
                    error=str(item),
                    error_type=type(item).__name__,
                )
                outcomes.append(AnalyzerOutcome(field=analyzer.field, error=str(item)))
                continue
            verification, sources = item
            for url in sources:
                sources_checked.setdefault(url, None)
            outcomes.append(AnalyzerOutcome(field=analyzer.field, verification=verification))

        verifications = [o.verification for o in outcomes if o.verification is not None]
        failed = [o.field for o in outcomes if not o.ok]
        if failed:
            logger.warning("scan.analyzers_dropped", count=len(failed), fields=failed)

        overall = aggregate_confidence(verifications)
        status = derive_status(
            verifications,
            overall,
            dispute_threshold=self._thresholds.dispute,
            verified_threshold=self._thresholds.verified,
        )
        return ScanResult(
            target_id=target.id,
            target_type=target_type,
            verifications=verifications,
            overall_confidence=overall,
            sources_checked=list(sources_checked),
            status=status,
            failed_analyzers=failed,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _run_analyzer(
        self,
        analyzer: FieldAnalyzer,
        target: VerificationTarget,
    ) -> tuple[FieldVerification, list[str]]:
        """Search the trusted sources for one field and analyse the evidence."""
        query = analyzer.query(target)
        if analyzer.searches:
            search = await self._fetcher.search(query)
        else:
            search = SearchResults(query=query)

        context = AnalysisContext(
            search=search,
            trusted_domains=self._fetcher.trusted_domains,
            name_match_threshold=self._thresholds.name_match,
        )
        analysis = analyzer.analyze(target, context)
        current = getattr(target, analyzer.field, None)
        verification = FieldVerification(
            field=analyzer.field,
            current_value=current,
            found_value=analysis.suggested_value,
            source_url=search.source_url,
            confidence=max(0.0, min(1.0, analysis.confidence)),
            needs_update=analysis.needs_update,
        )
        logger.debug(
            "scan.field_analyzed",
            field=analyzer.field,
            confidence=verification.confidence,
            needs_update=verification.needs_update,
            mentions=analysis.mentions,
            hits=analysis.hits,
        )
        return verification, search.sources_checked
