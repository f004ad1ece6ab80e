"""Move/reorder coordinator for drag-and-drop on the collection tree.

A move changes at most two things: the collection's ``parent_id`` and the
acting user's root order. Both are written in one transaction after every
check has passed, so a rejected or failed move leaves both untouched.
"""

import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..exceptions import (
    CircularMoveError,
    DatabaseError,
    InvariantViolation,
    NoCreateInDestinationError,
    NotOwnerOfSourceError,
)
from ..repositories.collection_repository import CollectionRepository
from ..repositories.user_repository import UserRepository
from ..schemas.collection import MoveIntent, MoveResult
from .permission_service import PermissionResolver, check_permission, walk_parent_chain

logger = logging.getLogger(__name__)


def reorder_root(
    order: List[int],
    collection_id: int,
    source_is_root: bool,
    destination_is_root: bool,
    destination_index: Optional[int] = None,
) -> List[int]:
    """Root order after moving *collection_id*. Returns a new list.

    Into the root: remove any existing entry, insert at *destination_index*
    (append when None or past the end). Out of the root: remove only.
    Between two non-root parents the root order is untouched.
    """
    if not source_is_root and not destination_is_root:
        return list(order)

    new_order = [cid for cid in order if cid != collection_id]
    if destination_is_root:
        if destination_index is None or destination_index >= len(new_order):
            new_order.append(collection_id)
        else:
            new_order.insert(destination_index, collection_id)
    return new_order


class MoveService:
    """Validates and applies tree moves.

    Public methods:
        move_collection      -- full drag-and-drop move
        ensure_can_place_in  -- destination authorization, shared with updates
        ensure_not_circular  -- subtree check, shared with updates
        visible_parent_id    -- parent as placed in the user's tree
    """

    def __init__(self, db: Session, max_depth: Optional[int] = None):
        self.db = db
        self.max_depth = max_depth or settings.max_collection_depth
        self.collection_repo = CollectionRepository(db)
        self.user_repo = UserRepository(db)
        self.resolver = PermissionResolver(db, max_depth=self.max_depth)

    def move_collection(self, user_id: int, intent: MoveIntent) -> MoveResult:
        if (
            intent.source_parent_id == intent.destination_parent_id
            and intent.source_index == intent.destination_index
        ):
            logger.debug("Move is a no-op", extra={"collection_id": intent.collection_id})
            return MoveResult(
                collection_id=intent.collection_id,
                moved=False,
                parent_id=intent.source_parent_id,
                root_order=self.user_repo.get_root_order(user_id),
            )

        collection = self.collection_repo.get_by_id_optional(intent.collection_id)
        permission = self.resolver.resolve(user_id, collection_id=intent.collection_id)
        if collection is None or not check_permission(permission, "relocate"):
            raise NotOwnerOfSourceError(intent.collection_id)

        destination_id = intent.destination_parent_id
        self.ensure_can_place_in(user_id, destination_id)
        self.ensure_not_circular(collection.id, destination_id)

        # Where the user sees the collection: a parent they cannot read puts it at their top level.
        source_parent_id = self.visible_parent_id(user_id, collection)
        if source_parent_id != intent.source_parent_id:
            logger.info(
                "Move intent has a stale source parent",
                extra={
                    "collection_id": collection.id,
                    "visible_parent_id": source_parent_id,
                    "intent_parent_id": intent.source_parent_id,
                },
            )

        try:
            if source_parent_id != destination_id:
                self.collection_repo.update_parent(collection, destination_id)

            order = self.user_repo.get_root_order(user_id)
            new_order = reorder_root(
                order,
                collection.id,
                source_is_root=source_parent_id is None,
                destination_is_root=destination_id is None,
                destination_index=intent.destination_index,
            )
            if new_order != order:
                self.user_repo.update_root_order(user_id, new_order)

            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(
                "Move failed, rolled back",
                extra={"collection_id": intent.collection_id, "error": str(e)},
            )
            raise DatabaseError("Failed to move collection", original_error=e)

        logger.info(
            "Collection moved",
            extra={
                "user_id": user_id,
                "collection_id": collection.id,
                "from_parent_id": source_parent_id,
                "to_parent_id": destination_id,
                "index": intent.destination_index,
            },
        )
        return MoveResult(
            collection_id=collection.id,
            moved=True,
            parent_id=collection.parent_id,
            root_order=new_order,
        )

    def visible_parent_id(self, user_id: int, collection) -> Optional[int]:
        """The collection's parent as shown in *user_id*'s tree, None for the top level."""
        parent_id = collection.parent_id
        if parent_id is None:
            return None
        if not self.resolver.check(user_id, "read", collection_id=parent_id):
            return None
        return parent_id

    def ensure_can_place_in(self, user_id: int, destination_id: Optional[int]) -> None:
        """Raise unless the user may put a collection under *destination_id*.

        The top level (None) is open to everyone. A missing destination is
        indistinguishable from one the user cannot contribute to.
        """
        if destination_id is None:
            return
        if not self.resolver.check(user_id, "contribute", collection_id=destination_id):
            raise NoCreateInDestinationError(destination_id)

    def ensure_not_circular(self, collection_id: int, destination_id: Optional[int]) -> None:
        """Raise if *destination_id* is *collection_id* or lies in its subtree."""
        if destination_id is None:
            return
        try:
            for ancestor in walk_parent_chain(
                destination_id, self.collection_repo.get_by_id_optional, self.max_depth
            ):
                if ancestor.id == collection_id:
                    raise CircularMoveError(collection_id, destination_id)
        except InvariantViolation as e:
            logger.warning(
                "Destination chain is corrupt, refusing move: %s", e,
                extra={"collection_id": collection_id, "destination_id": destination_id},
            )
            raise CircularMoveError(collection_id, destination_id)
