"""Hierarchy view contracts. Built per request, never persisted."""

from typing import List, Optional

from pydantic import BaseModel, Field


class FlatHierarchyEntry(BaseModel):
    """A hierarchy node without children, annotated for list display."""
    id: int
    title: str
    parent_id: Optional[int] = None
    depth: int = Field(..., ge=1, description="1 for the hierarchy root")
    path: str = Field(..., description="Dot-joined ids from the root down to this node")
    full_path: str = Field(..., description="Titles from the root joined with ' → '")
    level_description: str
    effort: float = 0.0
    status: str
    assignee: Optional[str] = None
    is_epic: bool = False


class HierarchyNode(FlatHierarchyEntry):
    """A hierarchy node with its subtree and subtree total."""
    total_effort: float = 0.0
    children: List["HierarchyNode"] = Field(default_factory=list)

    @property
    def path_ids(self) -> List[int]:
        return [int(part) for part in self.path.split(".")]


class HierarchicalBreakdown(BaseModel):
    """Nested tree plus flattened list for one connected hierarchy."""
    item_id: int
    tree: HierarchyNode
    flat_list: List[FlatHierarchyEntry] = Field(default_factory=list)
    total_effort: float = 0.0


HierarchyNode.model_rebuild()
