"""Pydantic contracts for the effort estimation engine.

Every value crossing a component boundary is typed through these contracts.
"""

from .estimation_contracts import (
    Confidence,
    Complexity,
    DecomposedTask,
    DecompositionResult,
    TaskEstimate,
    TaskEstimationResult,
    BreakdownItem,
    TokenTotals,
    EstimateMetadata,
    EstimateResult,
    EstimateFailure,
    PersistedEstimate,
)

from .work_item_contracts import (
    ItemKind,
    EstimateSource,
    WorkItem,
    EstimateHistoryRecord,
    DependencyEdge,
    UsageRecord,
    UsageSummary,
)

from .rollup_contracts import (
    RollupChild,
    AssigneeTask,
    AssigneeRollup,
    RollupMetadata,
    RollupResult,
    ParentRollupOutcome,
    ProjectRollupSummary,
    DependencyInfo,
    EffortBreakdown,
    DependencyEstimate,
)

from .hierarchy_contracts import (
    FlatHierarchyEntry,
    HierarchyNode,
    HierarchicalBreakdown,
)

__all__ = [
    # Estimation
    "Confidence",
    "Complexity",
    "DecomposedTask",
    "DecompositionResult",
    "TaskEstimate",
    "TaskEstimationResult",
    "BreakdownItem",
    "TokenTotals",
    "EstimateMetadata",
    "EstimateResult",
    "EstimateFailure",
    "PersistedEstimate",
    # Work items
    "ItemKind",
    "EstimateSource",
    "WorkItem",
    "EstimateHistoryRecord",
    "DependencyEdge",
    "UsageRecord",
    "UsageSummary",
    # Rollup & dependencies
    "RollupChild",
    "AssigneeTask",
    "AssigneeRollup",
    "RollupMetadata",
    "RollupResult",
    "ParentRollupOutcome",
    "ProjectRollupSummary",
    "DependencyInfo",
    "EffortBreakdown",
    "DependencyEstimate",
    # Hierarchy
    "FlatHierarchyEntry",
    "HierarchyNode",
    "HierarchicalBreakdown",
]
