"""Work item, estimate history, dependency and usage contracts.

These mirror the rows the store hands to the engine. Issues and action items
share one shape and are told apart by ItemKind.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .estimation_contracts import BreakdownItem, Confidence


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ItemKind(str, Enum):
    """Collection a work item lives in."""
    ISSUE = "issue"
    ACTION_ITEM = "action-item"


class EstimateSource(str, Enum):
    """Provenance of an estimate history record."""
    INITIAL_ANALYSIS = "initial_analysis"
    TRANSCRIPT_UPDATE = "transcript_update"
    MANUAL_REGENERATE = "manual_regenerate"
    MANUAL_EDIT = "manual_edit"


class WorkItem(BaseModel):
    """An issue or action item as read from the store."""
    id: int
    project_id: int
    title: str
    description: Optional[str] = None
    parent_id: Optional[int] = Field(None, description="Parent item id; None marks a root")
    status: str = "To Do"
    assignee: Optional[str] = None
    estimated_hours: Optional[float] = Field(None, ge=0, description="Base effort set on the item itself")
    rolled_up_hours: Optional[float] = Field(None, ge=0, description="Sum of descendant effort written by rollup")
    is_epic: bool = False
    ai_estimate_hours: Optional[float] = Field(None, ge=0, description="Mirror of the latest history version's hours")
    ai_estimate_confidence: Optional[Confidence] = None
    ai_estimate_version: int = Field(0, ge=0, description="Latest history version; 0 means never estimated")
    ai_estimate_updated_at: Optional[datetime] = None

    @property
    def base_effort(self) -> float:
        """Own effort only, never the rolled-up value."""
        return self.estimated_hours or 0.0

    @property
    def effective_effort(self) -> float:
        """Own effort, falling back to the rolled-up value for grouping items."""
        return self.estimated_hours or self.rolled_up_hours or 0.0


class EstimateHistoryRecord(BaseModel):
    """Immutable, append-only record of one estimate version."""
    model_config = ConfigDict(frozen=True)

    item_type: ItemKind
    item_id: int
    version: int = Field(..., ge=1)
    estimate_hours: float = Field(..., ge=0)
    confidence: Confidence
    breakdown: List[BreakdownItem] = Field(default_factory=list)
    assumptions: List[str] = Field(default_factory=list)
    risks: List[str] = Field(default_factory=list)
    reasoning: str = ""
    source: EstimateSource = EstimateSource.MANUAL_REGENERATE
    created_by: Optional[int] = None
    created_at: datetime = Field(default_factory=utcnow)


class DependencyEdge(BaseModel):
    """Prerequisite edge joined with the prerequisite item's current state.

    The prerequisite fields are None when the prerequisite item no longer exists.
    """
    id: int
    prerequisite_id: int
    dependent_id: int
    item_type: ItemKind
    dependency_type: str = "blocks"
    prerequisite_title: Optional[str] = None
    prerequisite_status: Optional[str] = None
    prerequisite_effort: Optional[float] = None


class UsageRecord(BaseModel):
    """AI usage/cost telemetry for one operation."""
    user_id: Optional[int] = None
    project_id: Optional[int] = None
    feature: str
    operation_type: str = "generate"
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    cost_usd: float = 0.0
    model: str = "unknown"
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utcnow)


class UsageSummary(BaseModel):
    """Aggregated usage for one feature/operation pair in a project."""
    feature: str
    operation_type: str
    operation_count: int
    total_tokens: int
    total_cost: float
    avg_cost: float
    last_used: Optional[datetime] = None
