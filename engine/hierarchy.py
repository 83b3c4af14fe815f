"""Hierarchy Builder - display view of the tree containing a work item.

The tree is rooted at the item's topmost ancestor and holds the ancestor
chain, the item and the item's whole subtree. It is rebuilt on every request.
"""

import logging
from typing import Dict, List, Optional, Tuple

from config import settings
from contracts import (
    FlatHierarchyEntry,
    HierarchicalBreakdown,
    HierarchyNode,
    ItemKind,
    WorkItem,
)
from store import EffortStore

logger = logging.getLogger(__name__)

PATH_SEPARATOR = "."
TITLE_SEPARATOR = " → "


def level_description(depth: int) -> str:
    if depth == 1:
        return "Root"
    if depth == 2:
        return "Epic/Parent"
    if depth == 3:
        return "Task"
    return f"Subtask (Level {depth})"


def _subtree_total(node: HierarchyNode, efforts: Dict[int, float]) -> float:
    """Leaf: own effort. Otherwise the sum of the children's totals."""
    if not node.children:
        exact = efforts[node.id]
    else:
        exact = sum(_subtree_total(child, efforts) for child in node.children)
    node.total_effort = round(exact, 1)
    return exact


class HierarchyBuilder:
    """Builds the nested tree and flattened path list for one item."""

    def __init__(self, store: EffortStore, max_depth: Optional[int] = None):
        self.store = store
        self.max_depth = max_depth or settings.max_hierarchy_depth

    def _ordered_items(self, kind: ItemKind, item_id: int) -> List[Tuple[WorkItem, List[int]]]:
        """(item, path ids) pairs in pre-order from the topmost ancestor."""
        item = self.store.get_item(kind, item_id)
        chain = self.store.get_ancestors(kind, item_id, self.max_depth) + [item]

        ordered = []
        path: List[int] = []
        for link in chain:
            path = path + [link.id]
            ordered.append((link, path))
        for entry in self.store.get_descendants(kind, item_id, self.max_depth):
            ordered.append((entry.item, path + entry.path))
        return ordered

    def get_hierarchical_breakdown(
        self, item_id: int, item_kind: ItemKind = ItemKind.ISSUE
    ) -> HierarchicalBreakdown:
        """Nested tree plus flat list for the hierarchy containing item_id.

        Raises:
            NotFound: If the item does not exist
        """
        kind = ItemKind(item_kind)
        logger.info("[Hierarchical Breakdown] Building tree for %s %s", kind.value, item_id)

        ordered = self._ordered_items(kind, item_id)
        titles = {item.id: item.title for item, _ in ordered}
        efforts = {item.id: item.effective_effort for item, _ in ordered}

        nodes: Dict[int, HierarchyNode] = {}
        flat_list: List[FlatHierarchyEntry] = []
        root: Optional[HierarchyNode] = None
        for item, path in ordered:
            depth = len(path)
            node = HierarchyNode(
                id=item.id,
                title=item.title,
                parent_id=item.parent_id if depth > 1 else None,
                depth=depth,
                path=PATH_SEPARATOR.join(str(i) for i in path),
                full_path=TITLE_SEPARATOR.join(titles[i] for i in path),
                level_description=level_description(depth),
                effort=round(item.effective_effort, 1),
                status=item.status,
                assignee=item.assignee,
                is_epic=item.is_epic,
            )
            nodes[item.id] = node
            if root is None:
                root = node
            else:
                nodes[path[-2]].children.append(node)
            flat_list.append(FlatHierarchyEntry(**node.model_dump(include=set(FlatHierarchyEntry.model_fields))))

        total = _subtree_total(root, efforts)
        logger.info(
            "[Hierarchical Breakdown] Built tree with %d nodes, total effort: %.1fh",
            len(flat_list), total,
        )
        return HierarchicalBreakdown(
            item_id=item_id,
            tree=root,
            flat_list=flat_list,
            total_effort=round(total, 1),
        )
