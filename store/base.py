"""Work item store interface shared by the memory and SQL implementations.

Every operation is keyed by an explicit (ItemKind, item_id) pair: issues and
action items live in separate collections with their own id sequences.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from contracts import (
    BreakdownItem,
    Confidence,
    DependencyEdge,
    EstimateHistoryRecord,
    EstimateSource,
    ItemKind,
    UsageRecord,
    UsageSummary,
    WorkItem,
)
from errors import InvalidInput

#: WorkItem fields update_item may overwrite
MUTABLE_FIELDS = frozenset(WorkItem.model_fields) - {"id", "project_id"}


@dataclass
class Descendant:
    """A descendant of some parent, with its position below that parent."""
    item: WorkItem
    depth: int
    path: List[int] = field(default_factory=list)
    is_leaf: bool = True


@dataclass
class EstimateWrite:
    """Values written atomically by EffortStore.record_estimate."""
    estimate_hours: float
    confidence: Confidence
    breakdown: List[BreakdownItem] = field(default_factory=list)
    assumptions: List[str] = field(default_factory=list)
    risks: List[str] = field(default_factory=list)
    reasoning: str = ""
    source: EstimateSource = EstimateSource.MANUAL_REGENERATE
    created_by: Optional[int] = None


class EffortStore(ABC):
    """Repository for work items, estimate history, dependencies and usage."""

    # -- work items ---------------------------------------------------------

    @abstractmethod
    def add_item(
        self,
        kind: ItemKind,
        project_id: int,
        title: str,
        description: Optional[str] = None,
        parent_id: Optional[int] = None,
        status: str = "To Do",
        assignee: Optional[str] = None,
        estimated_hours: Optional[float] = None,
        is_epic: bool = False,
    ) -> WorkItem:
        """Create a work item. The parent must exist in the same project."""

    @abstractmethod
    def get_item(self, kind: ItemKind, item_id: int) -> WorkItem:
        """Load one item.

        Raises:
            NotFound: If the id is unknown for this kind
        """

    @abstractmethod
    def update_item(self, kind: ItemKind, item_id: int, **changes: Any) -> WorkItem:
        """Overwrite plain fields (status, assignee, estimated_hours, ...)."""

    @abstractmethod
    def get_children(self, kind: ItemKind, parent_id: int) -> List[WorkItem]:
        """Direct children ordered by id."""

    @abstractmethod
    def list_parent_ids(self, kind: ItemKind, project_id: int) -> List[int]:
        """Distinct parent ids referenced by items in the project, ascending."""

    @abstractmethod
    def set_rolled_up_hours(self, kind: ItemKind, item_id: int, hours: float) -> None:
        """Write the rolled-up effort field of one item."""

    def get_descendants(self, kind: ItemKind, parent_id: int, max_depth: int = 10) -> List[Descendant]:
        """All transitive descendants in pre-order, at most max_depth levels down."""
        found: List[Descendant] = []
        seen = {parent_id}

        def walk(node_id: int, depth: int, path: List[int]) -> bool:
            children = self.get_children(kind, node_id)
            if depth > max_depth:
                return bool(children)
            for child in children:
                if child.id in seen:
                    continue
                seen.add(child.id)
                entry = Descendant(item=child, depth=depth, path=path + [child.id])
                found.append(entry)
                entry.is_leaf = not walk(child.id, depth + 1, entry.path)
            return bool(children)

        walk(parent_id, 1, [])
        return found

    def get_ancestors(self, kind: ItemKind, item_id: int, max_depth: int = 10) -> List[WorkItem]:
        """Ancestors of an item ordered root first."""
        chain: List[WorkItem] = []
        seen = {item_id}
        current = self.get_item(kind, item_id)
        while current.parent_id is not None and len(chain) < max_depth:
            if current.parent_id in seen:
                break
            seen.add(current.parent_id)
            current = self.get_item(kind, current.parent_id)
            chain.append(current)
        chain.reverse()
        return chain

    # -- estimate history ---------------------------------------------------

    @abstractmethod
    def record_estimate(self, kind: ItemKind, item_id: int, write: EstimateWrite) -> EstimateHistoryRecord:
        """Bump the item's version, mirror the estimate onto it and append history.

        Both writes commit or neither does. Concurrent calls for the same item
        serialise, so each receives a distinct version.

        Raises:
            NotFound: If the item is unknown
            PersistenceFailed: If the write was rolled back
        """

    @abstractmethod
    def get_history(self, kind: ItemKind, item_id: int) -> List[EstimateHistoryRecord]:
        """All history records of an item, newest version first."""

    def get_history_version(
        self, kind: ItemKind, item_id: int, version: Optional[int] = None
    ) -> Optional[EstimateHistoryRecord]:
        """One history record; the latest when version is None."""
        history = self.get_history(kind, item_id)
        if not history:
            return None
        if version is None:
            return history[0]
        return next((h for h in history if h.version == version), None)

    # -- dependencies -------------------------------------------------------

    @abstractmethod
    def add_dependency(
        self,
        kind: ItemKind,
        prerequisite_id: int,
        dependent_id: int,
        dependency_type: str = "blocks",
        project_id: Optional[int] = None,
    ) -> DependencyEdge:
        """Record that dependent_id waits on prerequisite_id."""

    @abstractmethod
    def get_prerequisites(self, kind: ItemKind, dependent_id: int) -> List[DependencyEdge]:
        """Edges into dependent_id joined with each prerequisite's current state."""

    # -- usage telemetry ----------------------------------------------------

    @abstractmethod
    def record_usage(self, record: UsageRecord) -> None:
        """Append one usage record."""

    @abstractmethod
    def list_usage(self, project_id: int) -> List[UsageRecord]:
        """Usage records of a project, oldest first."""

    def get_project_usage(self, project_id: int, feature: Optional[str] = None) -> List[UsageSummary]:
        """Usage grouped by feature and operation, most expensive first."""
        groups: Dict[tuple, List[UsageRecord]] = {}
        for record in self.list_usage(project_id):
            if feature and record.feature != feature:
                continue
            groups.setdefault((record.feature, record.operation_type), []).append(record)

        summaries = []
        for (feat, operation), records in groups.items():
            total_cost = sum(r.cost_usd for r in records)
            summaries.append(UsageSummary(
                feature=feat,
                operation_type=operation,
                operation_count=len(records),
                total_tokens=sum(r.total_tokens for r in records),
                total_cost=total_cost,
                avg_cost=total_cost / len(records),
                last_used=max(r.created_at for r in records),
            ))
        summaries.sort(key=lambda s: s.total_cost, reverse=True)
        return summaries

    # -- helpers ------------------------------------------------------------

    def _check_parent(self, kind: ItemKind, project_id: int, parent_id: Optional[int]) -> None:
        if parent_id is None:
            return
        parent = self.get_item(kind, parent_id)
        if parent.project_id != project_id:
            raise InvalidInput(
                f"Parent {kind.value} {parent_id} belongs to project {parent.project_id}, not {project_id}"
            )

    def _check_not_descendant(
        self,
        kind: ItemKind,
        item_id: int,
        parent_id: Optional[int],
        parent_of: Optional[Callable[[int], Optional[int]]] = None,
    ) -> None:
        """Reject moving item_id under itself or under one of its descendants.

        Walks up from the proposed parent; parent_of lets a store resolve
        parents inside its own open transaction.
        """
        if parent_of is None:
            def parent_of(node_id: int) -> Optional[int]:
                return self.get_item(kind, node_id).parent_id
        seen = set()
        node_id = parent_id
        while node_id is not None and node_id not in seen:
            if node_id == item_id:
                raise InvalidInput(
                    f"Cannot move {kind.value} {item_id} under {parent_id}: "
                    "the new parent is the item itself or one of its descendants"
                )
            seen.add(node_id)
            node_id = parent_of(node_id)
