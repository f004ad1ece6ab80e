"""Repository for collections and their direct memberships.

This is the only place that reads or writes the ``collections`` and
``collection_members`` tables. It exposes direct grants only; inherited
grants are a service-layer concern.
"""

from typing import Dict, Iterable, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import selectinload

from ..exceptions import CollectionNotFoundError
from ..models.collection import Collection, CollectionMember
from ..models.link import Link
from ..schemas.collection import MemberIn
from .base import BaseRepository


class CollectionRepository(BaseRepository[Collection]):
    """Data access layer for collections."""

    model_class = Collection
    not_found_error = CollectionNotFoundError

    def _base_query(self):
        return self.db.query(Collection).options(
            selectinload(Collection.members).selectinload(CollectionMember.user)
        )

    # --- Reads ---

    def get_by_owner_or_member(self, user_id: int) -> List[Collection]:
        """Collections the user owns or holds a direct membership on."""
        member_of = (
            self.db.query(CollectionMember.collection_id)
            .filter(CollectionMember.user_id == user_id)
        )
        return (
            self._base_query()
            .filter(or_(Collection.owner_id == user_id, Collection.id.in_(member_of)))
            .order_by(Collection.id)
            .all()
        )

    def get_children_of_many(self, parent_ids: Iterable[int]) -> List[Collection]:
        """Direct children of any of *parent_ids*, in id order."""
        ids = list(parent_ids)
        if not ids:
            return []
        return (
            self._base_query()
            .filter(Collection.parent_id.in_(ids))
            .order_by(Collection.id)
            .all()
        )

    def link_counts(self, collection_ids: Iterable[int]) -> Dict[int, int]:
        """Number of links stored directly in each collection."""
        ids = list(collection_ids)
        if not ids:
            return {}

        rows = (
            self.db.query(Link.collection_id, func.count(Link.id))
            .filter(Link.collection_id.in_(ids))
            .group_by(Link.collection_id)
            .all()
        )
        counts = {cid: 0 for cid in ids}
        counts.update({cid: n for cid, n in rows})
        return counts

    # --- Writes ---

    def create(
        self,
        owner_id: int,
        name: str,
        parent_id: Optional[int] = None,
        description: Optional[str] = None,
        color: Optional[str] = None,
        icon: Optional[str] = None,
        icon_weight: Optional[str] = None,
        is_public: bool = False,
    ) -> Collection:
        collection = Collection(
            owner_id=owner_id,
            name=name,
            parent_id=parent_id,
            description=description or "",
            color=color,
            icon=icon,
            icon_weight=icon_weight,
            is_public=is_public,
        )
        self.db.add(collection)
        self.db.flush()
        self.db.refresh(collection)
        return collection

    def update_parent(self, collection: Collection, parent_id: Optional[int]) -> Collection:
        collection.parent_id = parent_id
        self.db.flush()
        return collection

    def update_parent_and_members(
        self,
        collection: Collection,
        parent_id: Optional[int],
        members: List[MemberIn],
    ) -> Collection:
        """Reassign the parent and replace the whole direct-membership set."""
        collection.parent_id = parent_id
        collection.members.clear()
        # Flush the removals first so re-adding a user does not trip the unique constraint.
        self.db.flush()
        for m in members:
            collection.members.append(
                CollectionMember(
                    user_id=m.user_id,
                    can_create=m.can_create,
                    can_update=m.can_update,
                    can_delete=m.can_delete,
                )
            )
        self.db.flush()
        self.db.refresh(collection)
        return collection

    def add_member(
        self,
        collection_id: int,
        user_id: int,
        can_create: bool = False,
        can_update: bool = False,
        can_delete: bool = False,
    ) -> CollectionMember:
        collection = self.get_by_id(collection_id)
        member = CollectionMember(
            user_id=user_id,
            can_create=can_create,
            can_update=can_update,
            can_delete=can_delete,
        )
        collection.members.append(member)
        self.db.flush()
        return member

    def delete(self, collection: Collection) -> None:
        """Delete a collection. The database cascades to its subtree, members and links."""
        self.db.delete(collection)
        self.db.flush()
