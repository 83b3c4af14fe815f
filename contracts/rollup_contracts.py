"""Rollup and dependency-buffer contracts."""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .work_item_contracts import ItemKind, utcnow


class RollupChild(BaseModel):
    """A descendant that contributed to a rollup."""
    id: int
    title: str
    depth: int = Field(..., ge=1, description="1 for direct children")
    effort: float = Field(..., ge=0)
    assignee: Optional[str] = None
    status: str
    is_leaf: bool


class AssigneeTask(BaseModel):
    id: int
    title: str
    hours: float


class AssigneeRollup(BaseModel):
    """Descendant effort grouped under one assignee."""
    assignee: str
    total_hours: float = 0.0
    task_count: int = 0
    tasks: List[AssigneeTask] = Field(default_factory=list)


class RollupMetadata(BaseModel):
    is_leaf_node: bool
    updated_parent: bool = False
    calculated_at: datetime = Field(default_factory=utcnow)


class RollupResult(BaseModel):
    """Effort summed over every transitive descendant of a parent."""
    parent_id: int
    item_type: ItemKind = ItemKind.ISSUE
    total_hours: float = 0.0
    child_count: int = 0
    breakdown: List[RollupChild] = Field(default_factory=list)
    by_assignee: Dict[str, AssigneeRollup] = Field(default_factory=dict)
    metadata: RollupMetadata

    @property
    def is_leaf_node(self) -> bool:
        return self.metadata.is_leaf_node


class ParentRollupOutcome(BaseModel):
    """Per-parent entry of a project-wide rollup."""
    parent_id: int
    depth: int = 0
    total_hours: float = 0.0
    child_count: int = 0
    error: Optional[str] = None


class ProjectRollupSummary(BaseModel):
    project_id: int
    updated_count: int = 0
    total_hours: float = 0.0
    parents: List[ParentRollupOutcome] = Field(default_factory=list)
    message: str = ""


class DependencyInfo(BaseModel):
    """A prerequisite of the estimated item."""
    id: int
    prerequisite_id: int
    prerequisite_title: Optional[str] = None
    prerequisite_status: Optional[str] = None
    prerequisite_effort: float = 0.0
    type: str
    is_complete: bool


class EffortBreakdown(BaseModel):
    base_effort: float
    dependency_buffer: float
    total: float


class DependencyEstimate(BaseModel):
    """Base effort adjusted by a buffer for incomplete prerequisites."""
    item_id: int
    item_type: ItemKind
    base_effort: float
    adjusted_effort: float
    buffer_hours: float = 0.0
    buffer_percentage: float = 0.0
    dependencies: List[DependencyInfo] = Field(default_factory=list)
    breakdown: EffortBreakdown
