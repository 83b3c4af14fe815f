"""Dependency Buffer Estimator - pads an item's effort for unfinished prerequisites.

Deterministic: no LLM call is made.
"""

import logging
from typing import List, Optional

from config import settings
from contracts import (
    DependencyEstimate,
    DependencyInfo,
    EffortBreakdown,
    ItemKind,
)
from store import EffortStore

logger = logging.getLogger(__name__)


class DependencyBufferEstimator:
    """Adds buffer_percent of the base effort per incomplete prerequisite."""

    def __init__(
        self,
        store: EffortStore,
        buffer_percent: Optional[float] = None,
        closed_statuses: Optional[List[str]] = None,
    ):
        self.store = store
        self.buffer_percent = settings.dependency_buffer_percent if buffer_percent is None else buffer_percent
        self.closed_statuses = set(settings.closed_statuses if closed_statuses is None else closed_statuses)

    def is_incomplete(self, status: Optional[str]) -> bool:
        # A prerequisite that no longer exists has no status and adds no buffer.
        return bool(status) and status not in self.closed_statuses

    def estimate_with_dependencies(
        self, item_id: int, item_kind: ItemKind = ItemKind.ISSUE
    ) -> DependencyEstimate:
        """Base effort adjusted for incomplete prerequisite edges.

        Raises:
            NotFound: If the item does not exist
        """
        kind = ItemKind(item_kind)
        item = self.store.get_item(kind, item_id)
        base = item.effective_effort
        logger.info("[Dependency Estimate] Base effort for %s %s: %s hours", kind.value, item_id, base)

        edges = self.store.get_prerequisites(kind, item_id)
        logger.info("[Dependency Estimate] Found %d prerequisite(s) for %s %s", len(edges), kind.value, item_id)

        incomplete = [e for e in edges if self.is_incomplete(e.prerequisite_status)]
        buffer_percentage = len(incomplete) * self.buffer_percent
        buffer_hours = base * buffer_percentage / 100
        adjusted = base + buffer_hours

        if edges:
            logger.info(
                "[Dependency Estimate] Buffer: %d incomplete deps = %s%% (+%.1fh)",
                len(incomplete), buffer_percentage, buffer_hours,
            )

        return DependencyEstimate(
            item_id=item_id,
            item_type=kind,
            base_effort=round(base, 1),
            adjusted_effort=round(adjusted, 1),
            buffer_hours=round(buffer_hours, 1),
            buffer_percentage=buffer_percentage,
            dependencies=[
                DependencyInfo(
                    id=e.id,
                    prerequisite_id=e.prerequisite_id,
                    prerequisite_title=e.prerequisite_title,
                    prerequisite_status=e.prerequisite_status,
                    prerequisite_effort=e.prerequisite_effort or 0.0,
                    type=e.dependency_type,
                    is_complete=e.prerequisite_status in self.closed_statuses,
                )
                for e in edges
            ],
            breakdown=EffortBreakdown(
                base_effort=round(base, 1),
                dependency_buffer=round(buffer_hours, 1),
                total=round(adjusted, 1),
            ),
        )
