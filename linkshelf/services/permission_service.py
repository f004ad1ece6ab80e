"""Effective-permission resolution.

This is the ONE place where access rules are defined. Every mutating
operation asks the resolver first; nothing else inspects memberships to make
an authorization decision.

Design:
    - Result is a tagged union: ``Owner | Grant | NoAccess``
    - Walk from the collection towards the root; the first collection that
      either is owned by the user or holds a direct membership record for
      the user decides. Nothing is merged across levels.
    - A direct record with every flag false still decides (it revokes
      what would otherwise be inherited)
    - The walk is an explicit loop with a visited set and a depth cap, so
      corrupted parent cycles resolve to ``NoAccess`` instead of hanging
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, ClassVar, Iterator, Optional, Union

from sqlalchemy.orm import Session

from ..core.config import settings
from ..exceptions import InvariantViolation
from ..repositories.collection_repository import CollectionRepository
from ..repositories.link_repository import LinkRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Owner:
    """The user owns the collection (or one of its ancestors). Full rights."""
    collection_id: int
    kind: ClassVar[str] = "owner"


@dataclass(frozen=True)
class Grant:
    """The nearest membership record for the user in the parent chain."""
    can_create: bool
    can_update: bool
    can_delete: bool
    source_collection_id: int
    source_collection_name: str
    inherited: bool = False
    kind: ClassVar[str] = "grant"

    @property
    def has_rights(self) -> bool:
        return self.can_create or self.can_update or self.can_delete


@dataclass(frozen=True)
class NoAccess:
    kind: ClassVar[str] = "none"


NO_ACCESS = NoAccess()

EffectivePermission = Union[Owner, Grant, NoAccess]

# Action -> predicate over a Grant. Owners pass every action, NoAccess none.
_GRANT_RULES: dict[str, Callable[[Grant], bool]] = {
    "read": lambda g: True,
    # add links, add sub-collections, receive a moved collection
    "contribute": lambda g: g.can_create or g.can_update or g.can_delete,
    # change a collection's own fields and members
    "edit": lambda g: g.can_update,
    # move a collection somewhere else
    "relocate": lambda g: g.can_update or g.can_delete,
    "remove": lambda g: g.can_delete,
}


def check_permission(permission: EffectivePermission, action: str) -> bool:
    """Whether *permission* allows *action*.

    Args:
        permission: Result of ``PermissionResolver.resolve``.
        action: One of ``"read"``, ``"contribute"``, ``"edit"``,
            ``"relocate"``, ``"remove"``.
    """
    rule = _GRANT_RULES.get(action)
    if rule is None:
        raise ValueError(f"Unknown action: {action}")
    if isinstance(permission, Owner):
        return True
    if isinstance(permission, Grant):
        return rule(permission)
    return False


def walk_parent_chain(start_id: int, load: Callable[[int], Optional[object]], max_depth: int) -> Iterator[object]:
    """Yield the collection *start_id* and then each ancestor, nearest first.

    Stops silently at a missing collection (dangling parent id). Raises
    ``InvariantViolation`` when the chain revisits an id or exceeds *max_depth*.
    """
    visited: set[int] = set()
    current_id: Optional[int] = start_id
    while current_id is not None:
        if current_id in visited:
            raise InvariantViolation(
                f"Parent cycle detected at collection {current_id}", collection_id=current_id
            )
        if len(visited) >= max_depth:
            raise InvariantViolation(
                f"Parent chain from {start_id} exceeds {max_depth} levels", collection_id=start_id
            )
        visited.add(current_id)

        collection = load(current_id)
        if collection is None:
            return
        yield collection
        current_id = collection.parent_id


def resolve_chain(
    user_id: int,
    collection_id: int,
    load: Callable[[int], Optional[object]],
    max_depth: int,
) -> EffectivePermission:
    """Resolve against any loader returning objects with ``id``, ``name``,
    ``owner_id``, ``parent_id`` and ``members``.

    Used with the repository for authorization and with in-memory maps
    for read-side views.
    """
    try:
        for collection in walk_parent_chain(collection_id, load, max_depth):
            if collection.owner_id == user_id:
                return Owner(collection_id=collection.id)

            member = next((m for m in collection.members if m.user_id == user_id), None)
            if member is not None:
                return Grant(
                    can_create=bool(member.can_create),
                    can_update=bool(member.can_update),
                    can_delete=bool(member.can_delete),
                    source_collection_id=collection.id,
                    source_collection_name=collection.name,
                    inherited=collection.id != collection_id,
                )
    except InvariantViolation as e:
        logger.warning(
            "Permission walk aborted: %s", e,
            extra={"user_id": user_id, "collection_id": collection_id},
        )
        return NO_ACCESS
    return NO_ACCESS


class PermissionResolver:
    """Resolves effective permissions against the collection store.

    Public methods:
        resolve -- Owner | Grant | NoAccess for a collection or a link
        check   -- resolve + check_permission in one call
    """

    def __init__(self, db: Session, max_depth: Optional[int] = None):
        self.collection_repo = CollectionRepository(db)
        self.link_repo = LinkRepository(db)
        self.max_depth = max_depth or settings.max_collection_depth

    def resolve(
        self,
        user_id: int,
        collection_id: Optional[int] = None,
        link_id: Optional[int] = None,
    ) -> EffectivePermission:
        """Effective permission of *user_id* on a collection, or on the collection holding a link."""
        if link_id is not None:
            collection_id = self.link_repo.get_collection_id(link_id)
            if collection_id is None:
                logger.debug("Link %s not found, no access", link_id)
                return NO_ACCESS
        if collection_id is None:
            return NO_ACCESS

        permission = resolve_chain(
            user_id, collection_id, self.collection_repo.get_by_id_optional, self.max_depth
        )
        logger.debug(
            "Resolved permission",
            extra={"user_id": user_id, "collection_id": collection_id, "permission": permission.kind},
        )
        return permission

    def check(
        self,
        user_id: int,
        action: str,
        collection_id: Optional[int] = None,
        link_id: Optional[int] = None,
    ) -> bool:
        return check_permission(self.resolve(user_id, collection_id=collection_id, link_id=link_id), action)
