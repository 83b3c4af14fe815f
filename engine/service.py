"""EffortEstimationService - one entry point over a single injected store."""

from typing import List, Optional, Union

from contracts import (
    DependencyEstimate,
    EstimateFailure,
    EstimateHistoryRecord,
    EstimateResult,
    EstimateSource,
    HierarchicalBreakdown,
    ItemKind,
    PersistedEstimate,
    ProjectRollupSummary,
    RollupResult,
    UsageSummary,
)
from engine.dependencies import DependencyBufferEstimator
from engine.hierarchy import HierarchyBuilder
from engine.persistence import EstimatePersistence
from engine.rollup import RollupAggregator
from orchestrator import EstimateOrchestrator, UsageTracker
from providers import LLMProvider
from store import EffortStore, get_store


class EffortEstimationService:
    """Wires the estimate, rollup, dependency and hierarchy components.

    The four entry points share the store but never call each other.
    """

    def __init__(
        self,
        store: Optional[EffortStore] = None,
        orchestrator: Optional[EstimateOrchestrator] = None,
        llm_provider: Optional[LLMProvider] = None,
        model: Optional[str] = None,
    ):
        """Initialize the service.

        Args:
            store: Work item store (settings.database_url if omitted)
            orchestrator: Estimate orchestrator (built from llm_provider/model if omitted)
            llm_provider: Provider for the default orchestrator
            model: Model for the default orchestrator
        """
        self.store = store or get_store()
        self.orchestrator = orchestrator or EstimateOrchestrator(llm_provider=llm_provider, model=model)
        self.usage_tracker = UsageTracker(self.store)
        self.persistence = EstimatePersistence(self.store, self.orchestrator, self.usage_tracker)
        self.rollup = RollupAggregator(self.store)
        self.dependencies = DependencyBufferEstimator(self.store)
        self.hierarchy = HierarchyBuilder(self.store)

    # Estimates

    def generate_effort_estimate(
        self,
        title: str,
        description: Optional[str],
        item_kind: ItemKind = ItemKind.ISSUE,
        user_id: Optional[int] = None,
        project_id: Optional[int] = None,
    ) -> Union[EstimateResult, EstimateFailure]:
        return self.orchestrator.generate_effort_estimate(title, description, item_kind, user_id, project_id)

    def generate_estimate_from_item(
        self,
        item_kind: ItemKind,
        item_id: int,
        user_id: Optional[int] = None,
        source: EstimateSource = EstimateSource.MANUAL_REGENERATE,
    ) -> Union[PersistedEstimate, EstimateFailure]:
        return self.persistence.generate_estimate_from_item(item_kind, item_id, user_id, source)

    def get_estimate_breakdown(
        self, item_kind: ItemKind, item_id: int, version: Optional[int] = None
    ) -> Optional[EstimateHistoryRecord]:
        return self.persistence.get_estimate_breakdown(item_kind, item_id, version)

    def get_estimate_history(self, item_kind: ItemKind, item_id: int) -> List[EstimateHistoryRecord]:
        return self.persistence.get_estimate_history(item_kind, item_id)

    # Rollup

    def calculate_rollup_effort(
        self, parent_id: int, update_parent: bool = True, item_kind: ItemKind = ItemKind.ISSUE
    ) -> RollupResult:
        return self.rollup.calculate_rollup_effort(parent_id, update_parent, item_kind)

    def update_all_parent_efforts(
        self, project_id: int, item_kind: ItemKind = ItemKind.ISSUE
    ) -> ProjectRollupSummary:
        return self.rollup.update_all_parent_efforts(project_id, item_kind)

    # Dependencies & hierarchy

    def estimate_with_dependencies(
        self, item_id: int, item_kind: ItemKind = ItemKind.ISSUE
    ) -> DependencyEstimate:
        return self.dependencies.estimate_with_dependencies(item_id, item_kind)

    def get_hierarchical_breakdown(
        self, item_id: int, item_kind: ItemKind = ItemKind.ISSUE
    ) -> HierarchicalBreakdown:
        return self.hierarchy.get_hierarchical_breakdown(item_id, item_kind)

    # Telemetry

    def get_project_usage(self, project_id: int, feature: Optional[str] = None) -> List[UsageSummary]:
        return self.store.get_project_usage(project_id, feature)
