"""Orchestration of the two-phase estimate and its usage telemetry."""

from .estimate_orchestrator import (
    EstimateOrchestrator,
    join_breakdown,
    INSUFFICIENT_DESCRIPTION,
    DECOMPOSITION_FAILED,
    ESTIMATION_FAILED,
)
from .telemetry import UsageTracker, EFFORT_ESTIMATION_FEATURE

__all__ = [
    "EstimateOrchestrator",
    "join_breakdown",
    "INSUFFICIENT_DESCRIPTION",
    "DECOMPOSITION_FAILED",
    "ESTIMATION_FAILED",
    "UsageTracker",
    "EFFORT_ESTIMATION_FEATURE",
]
