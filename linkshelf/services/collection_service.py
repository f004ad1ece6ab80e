"""Collection lifecycle, links, root order upkeep and tree assembly."""

import logging
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..exceptions import CollectionNotFoundError, ForbiddenError, ValidationError
from ..models.collection import Collection
from ..models.link import Link
from ..repositories.collection_repository import CollectionRepository
from ..repositories.link_repository import LinkRepository
from ..repositories.user_repository import UserRepository
from ..schemas.collection import (
    AccessibleCollectionView,
    CollectionCreate,
    CollectionUpdate,
    LinkCreate,
    MemberIn,
    PermissionResponse,
)
from ..schemas.tree import SortMode, TreeOptions, TreeState
from .access_service import AccessService
from .move_service import MoveService, reorder_root
from .permission_service import (
    EffectivePermission,
    Grant,
    NoAccess,
    Owner,
    PermissionResolver,
    check_permission,
)
from .tree_service import build_tree

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = ("name", "description", "color", "icon", "icon_weight", "is_public")


def permission_to_response(permission: EffectivePermission) -> PermissionResponse:
    if isinstance(permission, Owner):
        return PermissionResponse(
            kind="owner",
            can_create=True,
            can_update=True,
            can_delete=True,
            source_collection_id=permission.collection_id,
        )
    if isinstance(permission, Grant):
        return PermissionResponse(
            kind="grant",
            can_create=permission.can_create,
            can_update=permission.can_update,
            can_delete=permission.can_delete,
            inherited=permission.inherited,
            source_collection_id=permission.source_collection_id,
            source_collection_name=permission.source_collection_name,
        )
    return PermissionResponse(kind="none")


class CollectionService:
    """Business logic for collections as one user sees and changes them.

    Public methods:
        list_accessible    -- expanded accessible views
        get_collection     -- one view, CollectionNotFoundError without access
        get_permission     -- effective permission on a collection or link
        create_collection  -- create at the top level or under a parent
        update_collection  -- fields, reparent, full member replacement
        delete_collection  -- delete a collection and its subtree
        create_link        -- add a link to a collection
        root_order         -- reconcile and return the user's root order
        get_tree           -- expanded views shaped into a TreeState
    """

    def __init__(self, db: Session, max_depth: Optional[int] = None):
        self.db = db
        max_depth = max_depth or settings.max_collection_depth
        self.collection_repo = CollectionRepository(db)
        self.user_repo = UserRepository(db)
        self.link_repo = LinkRepository(db)
        self.resolver = PermissionResolver(db, max_depth=max_depth)
        self.access = AccessService(db, max_depth=max_depth)
        self.mover = MoveService(db, max_depth=max_depth)

    # --- Reads ---

    def list_accessible(self, user_id: int) -> List[AccessibleCollectionView]:
        return self.access.expand(user_id)

    def get_collection(self, user_id: int, collection_id: int) -> AccessibleCollectionView:
        view = self.access.get_collection_view(user_id, collection_id)
        if view is None:
            raise CollectionNotFoundError(collection_id)
        return view

    def get_permission(
        self,
        user_id: int,
        collection_id: Optional[int] = None,
        link_id: Optional[int] = None,
    ) -> PermissionResponse:
        return permission_to_response(
            self.resolver.resolve(user_id, collection_id=collection_id, link_id=link_id)
        )

    # --- Writes ---

    def create_collection(self, user_id: int, data: CollectionCreate) -> Collection:
        if data.parent_id is not None and not self.resolver.check(
            user_id, "contribute", collection_id=data.parent_id
        ):
            raise ForbiddenError("You don't have permission to create collections here")

        collection = self.collection_repo.create(
            owner_id=user_id,
            name=data.name,
            parent_id=data.parent_id,
            description=data.description,
            color=data.color,
            icon=data.icon,
            icon_weight=data.icon_weight,
        )
        if data.parent_id is None:
            order = self.user_repo.get_root_order(user_id)
            if collection.id not in order:
                self.user_repo.update_root_order(user_id, order + [collection.id])

        self.db.commit()
        self.db.refresh(collection)
        logger.info(
            "Collection created",
            extra={"user_id": user_id, "collection_id": collection.id, "parent_id": data.parent_id},
        )
        return collection

    def update_collection(self, user_id: int, collection_id: int, data: CollectionUpdate) -> Collection:
        collection = self._get_editable(user_id, collection_id, "edit")

        old_parent_id = self.mover.visible_parent_id(user_id, collection)
        new_parent_id = old_parent_id
        if data.parent_id is not None:
            new_parent_id = None if data.parent_id == "root" else data.parent_id
            if new_parent_id != old_parent_id:
                self.mover.ensure_can_place_in(user_id, new_parent_id)
                self.mover.ensure_not_circular(collection.id, new_parent_id)

        for field in _EDITABLE_FIELDS:
            value = getattr(data, field)
            if value is not None:
                setattr(collection, field, value)

        reparent = new_parent_id != old_parent_id
        if data.members is not None:
            members = self._clean_members(collection, data.members)
            self.collection_repo.update_parent_and_members(
                collection, new_parent_id if reparent else collection.parent_id, members
            )
        elif reparent:
            self.collection_repo.update_parent(collection, new_parent_id)

        if reparent:
            order = self.user_repo.get_root_order(user_id)
            new_order = reorder_root(
                order,
                collection.id,
                source_is_root=old_parent_id is None,
                destination_is_root=new_parent_id is None,
            )
            if new_order != order:
                self.user_repo.update_root_order(user_id, new_order)

        self.db.commit()
        self.db.refresh(collection)
        logger.info(
            "Collection updated",
            extra={
                "user_id": user_id,
                "collection_id": collection.id,
                "reparented": reparent,
                "members_replaced": data.members is not None,
            },
        )
        return collection

    def delete_collection(self, user_id: int, collection_id: int) -> None:
        collection = self._get_editable(user_id, collection_id, "remove")

        self.collection_repo.delete(collection)
        order = self.user_repo.get_root_order(user_id)
        if collection_id in order:
            self.user_repo.update_root_order(user_id, [cid for cid in order if cid != collection_id])

        self.db.commit()
        logger.info("Collection deleted", extra={"user_id": user_id, "collection_id": collection_id})

    def create_link(self, user_id: int, data: LinkCreate) -> Link:
        permission = self.resolver.resolve(user_id, collection_id=data.collection_id)
        if isinstance(permission, NoAccess):
            raise CollectionNotFoundError(data.collection_id)
        if not check_permission(permission, "contribute"):
            raise ForbiddenError("You don't have permission to add links to this collection")

        link = self.link_repo.create(
            collection_id=data.collection_id,
            name=data.name or data.url or "",
            url=data.url,
            description=data.description,
            created_by_id=user_id,
        )
        self.db.commit()
        self.db.refresh(link)
        logger.info(
            "Link created",
            extra={"user_id": user_id, "collection_id": data.collection_id, "link_id": link.id},
        )
        return link

    # --- Root order & tree ---

    def root_order(self, user_id: int, views: List[AccessibleCollectionView]) -> List[int]:
        """The user's root order, reconciled against what they can see now.

        Ids that are no longer accessible are dropped; top-level ids missing
        from the list are appended in fetch order. Written back only when it
        changed.
        """
        accessible = {v.id for v in views}
        order = self.user_repo.get_root_order(user_id)

        reconciled: List[int] = []
        for cid in order:
            if cid in accessible and cid not in reconciled:
                reconciled.append(cid)
        for view in views:
            is_root = view.parent_id is None or view.parent_id not in accessible
            if is_root and view.id not in reconciled:
                reconciled.append(view.id)

        if reconciled != order:
            self.user_repo.update_root_order(user_id, reconciled)
            self.db.commit()
            logger.debug(
                "Root order reconciled",
                extra={"user_id": user_id, "before": len(order), "after": len(reconciled)},
            )
        return reconciled

    def get_tree(
        self,
        user_id: int,
        sort_mode: SortMode = SortMode.DEFAULT,
        active_collection_id: Optional[int] = None,
        previous: Optional[TreeState] = None,
    ) -> TreeState:
        views = self.access.expand(user_id)
        options = TreeOptions(
            previous=previous,
            root_order=self.root_order(user_id, views),
            sort_mode=sort_mode,
            active_collection_id=active_collection_id,
        )
        return build_tree(views, options)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _get_editable(self, user_id: int, collection_id: int, action: str) -> Collection:
        """Load a collection the user may perform *action* on.

        Unreadable and missing collections both raise CollectionNotFoundError.
        """
        collection = self.collection_repo.get_by_id_optional(collection_id)
        permission = self.resolver.resolve(user_id, collection_id=collection_id)
        if collection is None or isinstance(permission, NoAccess):
            raise CollectionNotFoundError(collection_id)
        if not check_permission(permission, action):
            raise ForbiddenError()
        return collection

    def _clean_members(self, collection: Collection, members: List[MemberIn]) -> List[MemberIn]:
        """One grant per user, first occurrence wins, never the owner."""
        cleaned: Dict[int, MemberIn] = {}
        for member in members:
            if member.user_id == collection.owner_id or member.user_id in cleaned:
                continue
            if self.user_repo.get_by_id_optional(member.user_id) is None:
                raise ValidationError(f"Unknown user: {member.user_id}", field="members")
            cleaned[member.user_id] = member
        return list(cleaned.values())
