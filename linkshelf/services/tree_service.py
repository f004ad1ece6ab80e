"""Build the drag-and-drop tree state from an accessible-collection list.

Pure functions only, no database access. Display state that used to live
in the UI (sort mode, previous expansion, active collection, root order)
arrives through ``TreeOptions``.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Set

from ..schemas.collection import AccessibleCollectionView
from ..schemas.tree import ROOT_ID, SortMode, TreeItem, TreeItemData, TreeOptions, TreeState

logger = logging.getLogger(__name__)


def _timestamp(value: Optional[datetime]) -> float:
    """Sortable timestamp. Missing dates sort as the epoch, naive ones as UTC."""
    if value is None:
        return 0.0
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp()


def _sort_group(
    ids: List[int],
    by_id: Dict[int, AccessibleCollectionView],
    mode: SortMode,
    root_order: Optional[List[int]] = None,
) -> List[int]:
    """Order one group of siblings. Every sort is stable."""
    if mode == SortMode.NAME_ASC:
        return sorted(ids, key=lambda i: by_id[i].name.casefold())
    if mode == SortMode.NAME_DESC:
        return sorted(ids, key=lambda i: by_id[i].name.casefold(), reverse=True)
    if mode == SortMode.DATE_NEWEST:
        return sorted(ids, key=lambda i: _timestamp(by_id[i].created_at), reverse=True)
    if mode == SortMode.DATE_OLDEST:
        return sorted(ids, key=lambda i: _timestamp(by_id[i].created_at))

    if root_order is None:
        return list(ids)

    position: Dict[int, int] = {}
    for index, cid in enumerate(root_order):
        position.setdefault(cid, index)
    ordered = sorted((i for i in ids if i in position), key=position.__getitem__)
    unordered = [i for i in ids if i not in position]
    return ordered + unordered


def _ancestors(start_id: Optional[int], parents: Dict[int, Optional[int]]) -> Set[int]:
    """Ancestor ids of *start_id* within the tree, nearest first until the root."""
    found: Set[int] = set()
    if start_id is None or start_id not in parents:
        return found
    current = parents[start_id]
    while current is not None and current not in found and current != start_id:
        found.add(current)
        current = parents.get(current)
    return found


def _aggregate_link_counts(
    by_id: Dict[int, AccessibleCollectionView],
    children: Dict[int, List[int]],
) -> Dict[int, int]:
    """Own link count plus every descendant's, computed post-order without recursion."""
    totals: Dict[int, int] = {}

    for start in by_id:
        if start in totals:
            continue
        on_path: Set[int] = set()
        stack = [(start, False)]
        while stack:
            node, finished = stack.pop()
            if finished:
                totals[node] = by_id[node].link_count + sum(
                    totals.get(child, 0) for child in children.get(node, [])
                )
                on_path.discard(node)
                continue
            if node in totals or node in on_path:
                continue
            on_path.add(node)
            stack.append((node, True))
            for child in children.get(node, []):
                if child not in totals and child not in on_path:
                    stack.append((child, False))

    return totals


def build_tree(
    collections: Sequence[AccessibleCollectionView],
    options: Optional[TreeOptions] = None,
) -> TreeState:
    """Turn a flat collection list into a ``TreeState`` rooted at ``"root"``.

    Duplicate ids are collapsed (last one wins). Collections whose parent is
    missing from the list are shown at the top level. In ``default`` sort
    mode the top level follows ``options.root_order``; deeper levels keep
    input order.
    """
    options = options or TreeOptions()

    by_id: Dict[int, AccessibleCollectionView] = {}
    for collection in collections:
        if collection.id in by_id:
            logger.warning(
                "Duplicate collection in tree input, keeping the last one",
                extra={"collection_id": collection.id},
            )
        by_id[collection.id] = collection

    parents: Dict[int, Optional[int]] = {}
    root_group: List[int] = []
    groups: Dict[int, List[int]] = {}
    for cid, collection in by_id.items():
        parent_id = collection.parent_id
        if parent_id is None or parent_id == cid or parent_id not in by_id:
            parents[cid] = None
            root_group.append(cid)
        else:
            parents[cid] = parent_id
            groups.setdefault(parent_id, []).append(cid)

    mode = options.sort_mode
    root_children = _sort_group(root_group, by_id, mode, root_order=options.root_order)
    children = {pid: _sort_group(ids, by_id, mode) for pid, ids in groups.items()}

    expanded: Set[int] = set()
    if options.previous is not None:
        for key, item in options.previous.items.items():
            if key != ROOT_ID and item.is_expanded and key.isdigit():
                expanded.add(int(key))
    expanded |= _ancestors(options.active_collection_id, parents)

    totals = _aggregate_link_counts(by_id, children)

    items: Dict[str, TreeItem] = {
        ROOT_ID: TreeItem(
            id=ROOT_ID,
            children=root_children,
            has_children=bool(root_children),
            is_expanded=True,
        )
    }
    for cid, collection in by_id.items():
        kids = children.get(cid, [])
        items[str(cid)] = TreeItem(
            id=cid,
            children=kids,
            has_children=bool(kids),
            is_expanded=cid in expanded,
            data=TreeItemData(
                id=cid,
                parent_id=collection.parent_id,
                name=collection.name,
                description=collection.description,
                color=collection.color,
                icon=collection.icon,
                icon_weight=collection.icon_weight,
                is_public=collection.is_public,
                owner_id=collection.owner_id,
                created_at=collection.created_at,
                updated_at=collection.updated_at,
                own_link_count=collection.link_count,
                link_count=totals.get(cid, collection.link_count),
            ),
        )

    return TreeState(root_id=ROOT_ID, items=items)
