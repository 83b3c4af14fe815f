"""Usage telemetry sink.

Tracking is fire-and-log: a failed write is logged at WARNING and never
reaches the caller.
"""

import logging
from typing import Any, Dict, Optional

from contracts import EstimateResult, UsageRecord
from store import EffortStore

logger = logging.getLogger(__name__)

EFFORT_ESTIMATION_FEATURE = "effort_estimation"


class UsageTracker:
    """Writes AI usage/cost records to the store."""

    def __init__(self, store: EffortStore):
        self.store = store

    def track(self, record: UsageRecord) -> bool:
        """Record one usage entry. Returns False if the write failed."""
        try:
            self.store.record_usage(record)
        except Exception as e:
            logger.warning(
                "[Usage] Failed to track %s/%s for project %s: %s",
                record.feature, record.operation_type, record.project_id, e,
            )
            return False
        logger.debug(
            "[Usage] %s/%s: %d tokens, $%.4f",
            record.feature, record.operation_type, record.total_tokens, record.cost_usd,
        )
        return True

    def track_estimate(
        self,
        estimate: EstimateResult,
        user_id: Optional[int] = None,
        project_id: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """Record the token and cost totals of one orchestrated estimate."""
        tokens = estimate.metadata.tokens
        return self.track(UsageRecord(
            user_id=user_id,
            project_id=project_id,
            feature=EFFORT_ESTIMATION_FEATURE,
            operation_type="generate_estimate",
            prompt_tokens=tokens.prompt,
            completion_tokens=tokens.completion,
            total_tokens=tokens.total,
            cost_usd=estimate.metadata.cost_usd,
            model=estimate.metadata.model,
            metadata=metadata or {},
        ))
