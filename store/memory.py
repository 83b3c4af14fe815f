"""In-memory store. Thread-safe; used by tests and the memory:// URL."""

import threading
from collections import defaultdict
from typing import Any, Dict, List, Optional, Tuple

from contracts import (
    DependencyEdge,
    EstimateHistoryRecord,
    ItemKind,
    UsageRecord,
    WorkItem,
)
from errors import InvalidInput, NotFound
from store.base import MUTABLE_FIELDS, EffortStore, EstimateWrite


class MemoryEffortStore(EffortStore):
    """Keeps every collection in dicts guarded by one re-entrant lock."""

    def __init__(self):
        self._lock = threading.RLock()
        self._items: Dict[ItemKind, Dict[int, WorkItem]] = {kind: {} for kind in ItemKind}
        self._next_id: Dict[ItemKind, int] = {kind: 1 for kind in ItemKind}
        self._history: Dict[Tuple[ItemKind, int], List[EstimateHistoryRecord]] = defaultdict(list)
        self._edges: List[dict] = []
        self._usage: List[UsageRecord] = []

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
        kind = ItemKind(kind)
        with self._lock:
            self._check_parent(kind, project_id, parent_id)
            item = WorkItem(
                id=self._next_id[kind],
                project_id=project_id,
                title=title,
                description=description,
                parent_id=parent_id,
                status=status,
                assignee=assignee,
                estimated_hours=estimated_hours,
                is_epic=is_epic,
            )
            self._items[kind][item.id] = item
            self._next_id[kind] += 1
            return item

    def get_item(self, kind: ItemKind, item_id: int) -> WorkItem:
        kind = ItemKind(kind)
        with self._lock:
            try:
                return self._items[kind][item_id]
            except KeyError:
                raise NotFound(kind, item_id) from None

    def update_item(self, kind: ItemKind, item_id: int, **changes: Any) -> WorkItem:
        kind = ItemKind(kind)
        unknown = set(changes) - MUTABLE_FIELDS
        if unknown:
            raise InvalidInput(f"Cannot update fields: {sorted(unknown)}")
        with self._lock:
            current = self.get_item(kind, item_id)
            if "parent_id" in changes:
                self._check_parent(kind, current.project_id, changes["parent_id"])
                self._check_not_descendant(kind, item_id, changes["parent_id"])
            updated = current.model_copy(update=changes)
            self._items[kind][item_id] = updated
            return updated

    def get_children(self, kind: ItemKind, parent_id: int) -> List[WorkItem]:
        kind = ItemKind(kind)
        with self._lock:
            return sorted(
                (item for item in self._items[kind].values() if item.parent_id == parent_id),
                key=lambda item: item.id,
            )

    def list_parent_ids(self, kind: ItemKind, project_id: int) -> List[int]:
        kind = ItemKind(kind)
        with self._lock:
            return sorted({
                item.parent_id
                for item in self._items[kind].values()
                if item.project_id == project_id and item.parent_id is not None
            })

    def set_rolled_up_hours(self, kind: ItemKind, item_id: int, hours: float) -> None:
        self.update_item(kind, item_id, rolled_up_hours=hours)

    def record_estimate(self, kind: ItemKind, item_id: int, write: EstimateWrite) -> EstimateHistoryRecord:
        kind = ItemKind(kind)
        with self._lock:
            item = self.get_item(kind, item_id)
            version = item.ai_estimate_version + 1
            record = EstimateHistoryRecord(
                item_type=kind,
                item_id=item_id,
                version=version,
                estimate_hours=write.estimate_hours,
                confidence=write.confidence,
                breakdown=write.breakdown,
                assumptions=write.assumptions,
                risks=write.risks,
                reasoning=write.reasoning,
                source=write.source,
                created_by=write.created_by,
            )
            mirrored = item.model_copy(update={
                "ai_estimate_hours": write.estimate_hours,
                "ai_estimate_confidence": write.confidence,
                "ai_estimate_version": version,
                "ai_estimate_updated_at": record.created_at,
            })
            # Both objects are built before either is published.
            self._items[kind][item_id] = mirrored
            self._history[(kind, item_id)].append(record)
            return record

    def get_history(self, kind: ItemKind, item_id: int) -> List[EstimateHistoryRecord]:
        kind = ItemKind(kind)
        with self._lock:
            return sorted(self._history[(kind, item_id)], key=lambda r: r.version, reverse=True)

    def add_dependency(
        self,
        kind: ItemKind,
        prerequisite_id: int,
        dependent_id: int,
        dependency_type: str = "blocks",
        project_id: Optional[int] = None,
    ) -> DependencyEdge:
        kind = ItemKind(kind)
        with self._lock:
            dependent = self.get_item(kind, dependent_id)
            edge = {
                "id": len(self._edges) + 1,
                "item_type": kind,
                "prerequisite_id": prerequisite_id,
                "dependent_id": dependent_id,
                "dependency_type": dependency_type,
                "project_id": project_id if project_id is not None else dependent.project_id,
            }
            self._edges.append(edge)
            return self._join(edge)

    def get_prerequisites(self, kind: ItemKind, dependent_id: int) -> List[DependencyEdge]:
        kind = ItemKind(kind)
        with self._lock:
            return [
                self._join(edge)
                for edge in self._edges
                if edge["item_type"] == kind and edge["dependent_id"] == dependent_id
            ]

    def _join(self, edge: dict) -> DependencyEdge:
        prerequisite = self._items[edge["item_type"]].get(edge["prerequisite_id"])
        return DependencyEdge(
            id=edge["id"],
            prerequisite_id=edge["prerequisite_id"],
            dependent_id=edge["dependent_id"],
            item_type=edge["item_type"],
            dependency_type=edge["dependency_type"],
            prerequisite_title=prerequisite.title if prerequisite else None,
            prerequisite_status=prerequisite.status if prerequisite else None,
            prerequisite_effort=prerequisite.estimated_hours if prerequisite else None,
        )

    def record_usage(self, record: UsageRecord) -> None:
        with self._lock:
            self._usage.append(record)

    def list_usage(self, project_id: int) -> List[UsageRecord]:
        with self._lock:
            return [r for r in self._usage if r.project_id == project_id]
