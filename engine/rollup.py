"""Rollup Aggregator - sums descendant effort onto a parent work item.

Each descendant contributes its own base effort only, never its rolled-up
value, so nested parents are not counted twice. A rollup racing a concurrent
re-parenting may under- or over-count; callers get best-effort consistency.
"""

import logging
from typing import Dict, List, Optional

from config import settings
from contracts import (
    AssigneeRollup,
    AssigneeTask,
    ItemKind,
    ParentRollupOutcome,
    ProjectRollupSummary,
    RollupChild,
    RollupMetadata,
    RollupResult,
)
from errors import EffortEngineError
from store import EffortStore

logger = logging.getLogger(__name__)

UNASSIGNED = "Unassigned"


class RollupAggregator:
    """Computes and optionally persists rolled-up effort."""

    def __init__(self, store: EffortStore, max_depth: Optional[int] = None):
        self.store = store
        self.max_depth = max_depth or settings.max_hierarchy_depth

    def calculate_rollup_effort(
        self,
        parent_id: int,
        update_parent: bool = True,
        item_kind: ItemKind = ItemKind.ISSUE,
    ) -> RollupResult:
        """Sum the base effort of every transitive descendant of parent_id.

        The sum is written onto the parent's rolled-up field only when
        update_parent is set and the sum is greater than zero; a zero sum
        leaves a manually set value in place.

        Raises:
            NotFound: If the parent does not exist
            PersistenceFailed: If the write-back failed
        """
        kind = ItemKind(item_kind)
        self.store.get_item(kind, parent_id)
        logger.info("[Rollup] Calculating effort for parent %s %s", kind.value, parent_id)

        descendants = self.store.get_descendants(kind, parent_id, self.max_depth)
        if not descendants:
            logger.info("[Rollup] No children found - %s %s is a leaf node", kind.value, parent_id)
            return RollupResult(
                parent_id=parent_id,
                item_type=kind,
                metadata=RollupMetadata(is_leaf_node=True),
            )

        total = 0.0
        breakdown: List[RollupChild] = []
        groups: Dict[str, dict] = {}
        for entry in descendants:
            child = entry.item
            effort = child.base_effort
            total += effort
            breakdown.append(RollupChild(
                id=child.id,
                title=child.title,
                depth=entry.depth,
                effort=round(effort, 1),
                assignee=child.assignee,
                status=child.status,
                is_leaf=entry.is_leaf,
            ))
            group = groups.setdefault(child.assignee or UNASSIGNED, {"hours": 0.0, "tasks": []})
            group["hours"] += effort
            group["tasks"].append(AssigneeTask(id=child.id, title=child.title, hours=round(effort, 1)))

        by_assignee = {
            name: AssigneeRollup(
                assignee=name,
                total_hours=round(group["hours"], 1),
                task_count=len(group["tasks"]),
                tasks=group["tasks"],
            )
            for name, group in groups.items()
        }
        total_hours = round(total, 1)
        logger.info(
            "[Rollup] Total effort for %s %s: %.1f hours from %d children",
            kind.value, parent_id, total_hours, len(descendants),
        )

        updated = False
        if update_parent and total_hours > 0:
            self.store.set_rolled_up_hours(kind, parent_id, total_hours)
            updated = True
            logger.info("[Rollup] Updated parent %s %s with rolled-up effort: %.1f hours", kind.value, parent_id, total_hours)

        return RollupResult(
            parent_id=parent_id,
            item_type=kind,
            total_hours=total_hours,
            child_count=len(descendants),
            breakdown=breakdown,
            by_assignee=by_assignee,
            metadata=RollupMetadata(is_leaf_node=False, updated_parent=updated),
        )

    def update_all_parent_efforts(
        self, project_id: int, item_kind: ItemKind = ItemKind.ISSUE
    ) -> ProjectRollupSummary:
        """Recompute every parent in a project, deepest parents first.

        A failure on one parent is recorded in its outcome and the batch
        continues.
        """
        kind = ItemKind(item_kind)
        parent_ids = self.store.list_parent_ids(kind, project_id)
        logger.info("[Rollup] Found %d parent(s) to update in project %s", len(parent_ids), project_id)

        if not parent_ids:
            return ProjectRollupSummary(project_id=project_id, message="No parent issues found in project")

        depths = {
            pid: len(self.store.get_ancestors(kind, pid, self.max_depth))
            for pid in parent_ids
        }
        ordered = sorted(parent_ids, key=lambda pid: (-depths[pid], pid))

        outcomes: List[ParentRollupOutcome] = []
        total = 0.0
        for pid in ordered:
            try:
                rollup = self.calculate_rollup_effort(pid, update_parent=True, item_kind=kind)
            except EffortEngineError as e:
                logger.error("[Rollup] Error updating parent %s: %s", pid, e)
                outcomes.append(ParentRollupOutcome(parent_id=pid, depth=depths[pid], error=str(e)))
                continue
            outcomes.append(ParentRollupOutcome(
                parent_id=pid,
                depth=depths[pid],
                total_hours=rollup.total_hours,
                child_count=rollup.child_count,
            ))
            total += rollup.total_hours

        updated_count = sum(1 for o in outcomes if o.error is None)
        logger.info("[Rollup] Updated %d/%d parent(s) in project %s", updated_count, len(ordered), project_id)
        return ProjectRollupSummary(
            project_id=project_id,
            updated_count=updated_count,
            total_hours=round(total, 1),
            parents=outcomes,
            message=f"Updated {updated_count} parent issue(s)",
        )
