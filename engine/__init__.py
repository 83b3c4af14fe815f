"""Effort estimation engine: persistence, rollup, dependency buffer and hierarchy."""

from .persistence import EstimatePersistence
from .rollup import RollupAggregator, UNASSIGNED
from .dependencies import DependencyBufferEstimator
from .hierarchy import HierarchyBuilder, level_description
from .service import EffortEstimationService

__all__ = [
    "EstimatePersistence",
    "RollupAggregator",
    "UNASSIGNED",
    "DependencyBufferEstimator",
    "HierarchyBuilder",
    "level_description",
    "EffortEstimationService",
]
