"""Estimate Persistence - writes an orchestrated estimate onto a work item.

The version bump on the item and the history append happen in one store
transaction. Usage telemetry is written afterwards and may fail on its own.
"""

import logging
from typing import List, Optional, Union

from contracts import (
    EstimateFailure,
    EstimateHistoryRecord,
    EstimateSource,
    ItemKind,
    PersistedEstimate,
)
from orchestrator import EstimateOrchestrator, UsageTracker
from store import EffortStore, EstimateWrite

logger = logging.getLogger(__name__)


class EstimatePersistence:
    """Generates, versions and records AI estimates for stored work items."""

    def __init__(
        self,
        store: EffortStore,
        orchestrator: Optional[EstimateOrchestrator] = None,
        usage_tracker: Optional[UsageTracker] = None,
    ):
        self.store = store
        self.orchestrator = orchestrator or EstimateOrchestrator()
        self.usage_tracker = usage_tracker or UsageTracker(store)

    def generate_estimate_from_item(
        self,
        item_kind: ItemKind,
        item_id: int,
        user_id: Optional[int] = None,
        source: EstimateSource = EstimateSource.MANUAL_REGENERATE,
    ) -> Union[PersistedEstimate, EstimateFailure]:
        """Estimate a stored item and record the result as its next version.

        A soft failure from the orchestrator is returned unchanged and nothing
        is written.

        Raises:
            NotFound: If the item does not exist
            InvalidInput: If the item's title is too short to estimate
            PersistenceFailed: If the version/history write was rolled back
        """
        kind = ItemKind(item_kind)
        item = self.store.get_item(kind, item_id)

        estimate = self.orchestrator.generate_effort_estimate(
            title=item.title,
            description=item.description,
            item_kind=kind,
            user_id=user_id,
            project_id=item.project_id,
        )
        if not estimate.success:
            logger.info("[Estimate] No estimate written for %s %s: %s", kind.value, item_id, estimate.error)
            return estimate

        record = self.store.record_estimate(kind, item_id, EstimateWrite(
            estimate_hours=estimate.total_hours,
            confidence=estimate.confidence,
            breakdown=estimate.breakdown,
            assumptions=estimate.assumptions,
            risks=estimate.risks,
            reasoning=estimate.confidence_reasoning,
            source=EstimateSource(source),
            created_by=user_id,
        ))
        logger.info(
            "[Estimate] Saved %s %s version %d: %.1fh",
            kind.value, item_id, record.version, record.estimate_hours,
        )

        self.usage_tracker.track_estimate(
            estimate,
            user_id=user_id,
            project_id=item.project_id,
            metadata={
                "item_type": kind.value,
                "item_id": item_id,
                "version": record.version,
                "confidence": estimate.confidence.value,
            },
        )

        return PersistedEstimate(
            **estimate.model_dump(),
            version=record.version,
            item_id=item_id,
            item_type=kind.value,
        )

    def get_estimate_breakdown(
        self, item_kind: ItemKind, item_id: int, version: Optional[int] = None
    ) -> Optional[EstimateHistoryRecord]:
        """One version of an item's estimate (latest by default), or None."""
        return self.store.get_history_version(ItemKind(item_kind), item_id, version)

    def get_estimate_history(self, item_kind: ItemKind, item_id: int) -> List[EstimateHistoryRecord]:
        """Every estimate version of an item, newest first."""
        return self.store.get_history(ItemKind(item_kind), item_id)
