"""Business logic services."""

from .access_service import AccessService
from .collection_service import CollectionService
from .move_service import MoveService
from .permission_service import PermissionResolver
from .tree_service import build_tree

__all__ = ["AccessService", "CollectionService", "MoveService", "PermissionResolver", "build_tree"]
