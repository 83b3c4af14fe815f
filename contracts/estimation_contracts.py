"""Estimation contracts for the two-phase decompose/estimate workflow."""

from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator


class Confidence(str, Enum):
    """Coarse reliability label for an estimate."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Complexity(str, Enum):
    """Relative complexity of a decomposed task."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class DecomposedTask(BaseModel):
    """A concrete sub-task produced by the decomposition phase."""
    name: str = Field(..., min_length=1, description="Task description")
    complexity: Complexity = Field(Complexity.MEDIUM, description="low, medium or high")
    category: str = Field("development", description="design, backend, frontend, testing, devops, documentation")

    @field_validator("complexity", mode="before")
    @classmethod
    def normalise_complexity(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value


class DecompositionResult(BaseModel):
    """Output of the Task Decomposer.

    The prompt asks for 3-8 tasks but only a non-empty list is enforced: a
    short or long decomposition is still estimated rather than failing the phase.
    """
    tasks: List[DecomposedTask] = Field(..., min_length=1, description="Ordered sub-tasks (3-8 requested, not enforced)")
    assumptions: List[str] = Field(default_factory=list, description="Assumptions the model surfaced")
    risks: List[str] = Field(default_factory=list, description="Risks the model surfaced")


class TaskEstimate(BaseModel):
    """Hours estimate for one decomposed task."""
    task: str = Field(..., description="Original task name")
    hours: float = Field(..., ge=0, description="Estimated hours")
    reasoning: str = Field("", description="Brief justification")


class TaskEstimationResult(BaseModel):
    """Output of the Task Estimator."""
    estimates: List[TaskEstimate] = Field(..., min_length=1)
    confidence: Confidence = Field(Confidence.MEDIUM)
    confidence_reasoning: str = Field("No reasoning provided", description="Why this confidence level")

    @field_validator("confidence", mode="before")
    @classmethod
    def normalise_confidence(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @property
    def total_hours(self) -> float:
        """Exact sum of task hours, rounded once to one decimal place."""
        return round(sum(e.hours for e in self.estimates), 1)


class BreakdownItem(BaseModel):
    """One line of an estimate breakdown: estimated hours joined with task metadata."""
    task: str
    hours: float = Field(..., ge=0)
    complexity: Complexity = Complexity.MEDIUM
    category: str = "development"
    reasoning: str = ""


class TokenTotals(BaseModel):
    """Token counts summed across both LLM phases."""
    prompt: int = 0
    completion: int = 0
    total: int = 0


class EstimateMetadata(BaseModel):
    """Cost and telemetry attached to an estimate."""
    model: str
    tokens: TokenTotals = Field(default_factory=TokenTotals)
    cost_usd: float = Field(0.0, ge=0)
    execution_time_ms: int = Field(0, ge=0)
    user_id: Optional[int] = None
    project_id: Optional[int] = None


class EstimateResult(BaseModel):
    """Successful orchestrated estimate."""
    success: Literal[True] = True
    total_hours: float = Field(..., ge=0)
    confidence: Confidence
    confidence_reasoning: str = ""
    breakdown: List[BreakdownItem] = Field(default_factory=list)
    assumptions: List[str] = Field(default_factory=list)
    risks: List[str] = Field(default_factory=list)
    metadata: EstimateMetadata


class EstimateFailure(BaseModel):
    """Structured, non-exceptional estimate failure."""
    success: Literal[False] = False
    error: str = Field(..., description="insufficient_description, decomposition_failed or estimation_failed")
    message: str
    confidence: Confidence = Confidence.LOW


class PersistedEstimate(EstimateResult):
    """Estimate after it was written onto a work item as a new version."""
    version: int = Field(..., ge=1)
    item_id: int
    item_type: str
