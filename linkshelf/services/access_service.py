"""Accessible-set expansion: every collection a user may read, with merged members.

A user reaches collections *directly* (owner or direct member; these are the
accessibility roots, which need not be top-level) and *by inheritance* (any
descendant of an accessibility root). Expansion materializes each collection
id exactly once, however many roots reach it, and annotates every collection
with the members it inherits from ancestors in the accessible set.
"""

import logging
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..exceptions import InvariantViolation
from ..models.collection import Collection
from ..repositories.collection_repository import CollectionRepository
from ..repositories.link_repository import LinkRepository
from ..schemas.collection import AccessibleCollectionView, MemberView
from .permission_service import walk_parent_chain

logger = logging.getLogger(__name__)


def _direct_members(collection: Collection) -> List[MemberView]:
    return [
        MemberView(
            user_id=m.user_id,
            username=m.user.username if m.user is not None else None,
            name=m.user.name if m.user is not None else None,
            can_create=bool(m.can_create),
            can_update=bool(m.can_update),
            can_delete=bool(m.can_delete),
        )
        for m in collection.members
    ]


def merge_members(
    collection: Collection,
    parent: Optional[Collection],
    parent_members: List[MemberView],
) -> List[MemberView]:
    """Direct members of *collection* plus inherited ones from its parent's merged list.

    *parent_members* is already unique by user with nearest-first precedence,
    so one level of merging gives nearest-ancestor-wins over the whole chain.
    A direct record always wins, even one granting nothing.
    """
    merged = _direct_members(collection)
    taken = {m.user_id for m in merged}

    for pm in parent_members:
        if pm.user_id in taken:
            continue
        taken.add(pm.user_id)
        if pm.inherited:
            merged.append(pm)
        else:
            merged.append(pm.model_copy(update={
                "inherited": True,
                "source_collection_id": parent.id,
                "source_collection_name": parent.name,
            }))
    return merged


def _has_direct_access(collection: Collection, user_id: int) -> bool:
    return collection.owner_id == user_id or any(
        m.user_id == user_id for m in collection.members
    )


class AccessService:
    """Read-side view of the collection forest for one user.

    Public methods:
        expand              -- all readable collections, roots first, then level order
        get_collection_view -- one readable collection, or None
    """

    def __init__(self, db: Session, max_depth: Optional[int] = None):
        self.db = db
        self.collection_repo = CollectionRepository(db)
        self.link_repo = LinkRepository(db)
        self.max_depth = max_depth or settings.max_collection_depth

    def expand(self, user_id: int) -> List[AccessibleCollectionView]:
        roots = self.collection_repo.get_by_owner_or_member(user_id)

        # Insertion order is output order. Shared across all roots so a
        # collection reachable from several roots is materialized once.
        processed: Dict[int, Collection] = {}
        for collection in roots:
            processed.setdefault(collection.id, collection)

        frontier = list(processed)
        depth = 0
        while frontier:
            if depth >= self.max_depth:
                logger.warning(
                    "Expansion stopped at depth limit",
                    extra={"user_id": user_id, "max_depth": self.max_depth},
                )
                break
            next_frontier: List[int] = []
            for child in self.collection_repo.get_children_of_many(frontier):
                if child.id in processed:
                    logger.debug("Collection %s already materialized, skipping", child.id)
                    continue
                processed[child.id] = child
                next_frontier.append(child.id)
            frontier = next_frontier
            depth += 1

        members = self._merge_all(processed)
        counts = self.collection_repo.link_counts(processed.keys())

        logger.debug(
            "Expanded accessible collections",
            extra={"user_id": user_id, "roots": len(roots), "total": len(processed)},
        )
        return [
            self._to_view(c, members[c.id], counts.get(c.id, 0))
            for c in processed.values()
        ]

    def get_collection_view(self, user_id: int, collection_id: int) -> Optional[AccessibleCollectionView]:
        """A single collection with members merged from its readable ancestors.

        Returns None both when the collection does not exist and when the
        user cannot read it.
        """
        chain: List[Collection] = []
        try:
            for collection in walk_parent_chain(
                collection_id, self.collection_repo.get_by_id_optional, self.max_depth
            ):
                chain.append(collection)
        except InvariantViolation as e:
            logger.warning(
                "Collection view aborted: %s", e,
                extra={"user_id": user_id, "collection_id": collection_id},
            )
            return None

        # Readability flows downwards, so the readable part of the chain runs
        # from the collection up to the top-most collection reached directly.
        top = max(
            (i for i, c in enumerate(chain) if _has_direct_access(c, user_id)),
            default=None,
        )
        if top is None:
            return None
        readable = chain[: top + 1]

        members: List[MemberView] = []
        parent: Optional[Collection] = None
        for collection in reversed(readable):
            members = merge_members(collection, parent, members)
            parent = collection

        count = self.link_repo.count_by_collection(collection_id)
        return self._to_view(readable[0], members, count)

    # ------------------------------------------------------------------

    def _merge_all(self, collections: Dict[int, Collection]) -> Dict[int, List[MemberView]]:
        """Merged member lists for every collection, parents before children."""
        merged: Dict[int, List[MemberView]] = {}

        for cid in collections:
            if cid in merged:
                continue

            # Climb until a parent outside the set, an already merged one, or a cycle.
            path: List[int] = []
            seen = set()
            current: Optional[int] = cid
            while current is not None and current in collections and current not in merged:
                if current in seen:
                    logger.warning(
                        "Parent cycle among accessible collections",
                        extra={"collection_id": current},
                    )
                    break
                seen.add(current)
                path.append(current)
                current = collections[current].parent_id

            for node_id in reversed(path):
                node = collections[node_id]
                parent = collections.get(node.parent_id) if node.parent_id is not None else None
                parent_members = merged.get(node.parent_id, []) if parent is not None else []
                merged[node_id] = merge_members(node, parent, parent_members)

        return merged

    @staticmethod
    def _to_view(
        collection: Collection, members: List[MemberView], link_count: int
    ) -> AccessibleCollectionView:
        return AccessibleCollectionView(
            id=collection.id,
            name=collection.name,
            description=collection.description,
            color=collection.color,
            icon=collection.icon,
            icon_weight=collection.icon_weight,
            is_public=bool(collection.is_public),
            owner_id=collection.owner_id,
            parent_id=collection.parent_id,
            created_at=collection.created_at,
            updated_at=collection.updated_at,
            link_count=link_count,
            members=members,
            has_inherited_members=any(m.inherited for m in members),
        )
