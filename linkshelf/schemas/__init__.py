"""Pydantic schemas for API validation."""

from .collection import (
    AccessibleCollectionView,
    CollectionCreate,
    CollectionResponse,
    CollectionUpdate,
    LinkCreate,
    LinkResponse,
    MemberIn,
    MemberView,
    MoveIntent,
    MoveResult,
    PermissionResponse,
)
from .tree import ROOT_ID, SortMode, TreeItem, TreeItemData, TreeOptions, TreeState

__all__ = [
    "AccessibleCollectionView",
    "CollectionCreate",
    "CollectionResponse",
    "CollectionUpdate",
    "LinkCreate",
    "LinkResponse",
    "MemberIn",
    "MemberView",
    "MoveIntent",
    "MoveResult",
    "PermissionResponse",
    "ROOT_ID",
    "SortMode",
    "TreeItem",
    "TreeItemData",
    "TreeOptions",
    "TreeState",
]
