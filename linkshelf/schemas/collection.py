"""Collection, membership and link schemas."""

from datetime import datetime
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _clean_name(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("Name cannot be empty")
    return v


# --- Members ---

class MemberIn(BaseModel):
    """A direct grant as submitted by a client."""
    model_config = ConfigDict(from_attributes=True)

    user_id: int
    can_create: bool = False
    can_update: bool = False
    can_delete: bool = False


class MemberView(BaseModel):
    """A member as shown on a collection: either direct or inherited."""
    user_id: int
    username: Optional[str] = None
    name: Optional[str] = None
    can_create: bool = False
    can_update: bool = False
    can_delete: bool = False
    inherited: bool = False
    # Set on inherited members only: the ancestor holding the direct grant.
    source_collection_id: Optional[int] = None
    source_collection_name: Optional[str] = None


# --- Collections ---

class CollectionCreate(BaseModel):
    """Create a collection, optionally as a sub-collection."""
    name: str
    description: Optional[str] = ""
    color: Optional[str] = None
    icon: Optional[str] = None
    icon_weight: Optional[str] = None
    parent_id: Optional[int] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _clean_name(v)


class CollectionUpdate(BaseModel):
    """Update a collection.

    ``parent_id``: omitted or null keeps the current parent, ``"root"`` moves
    the collection to the top level, an id moves it under that collection.
    ``members``: omitted keeps the current grants, a list replaces them all.
    """
    name: Optional[str] = None
    description: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None
    icon_weight: Optional[str] = None
    is_public: Optional[bool] = None
    parent_id: Union[int, Literal["root"], None] = None
    members: Optional[List[MemberIn]] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else _clean_name(v)


class AccessibleCollectionView(BaseModel):
    """A collection as seen by one user: its fields plus merged members."""
    id: int
    name: str
    description: Optional[str] = ""
    color: Optional[str] = None
    icon: Optional[str] = None
    icon_weight: Optional[str] = None
    is_public: bool = False
    owner_id: int
    parent_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    link_count: int = 0
    members: List[MemberView] = []
    has_inherited_members: bool = False

    def direct_members(self) -> List[MemberView]:
        return [m for m in self.members if not m.inherited]

    def inherited_members(self) -> List[MemberView]:
        return [m for m in self.members if m.inherited]


class CollectionResponse(BaseModel):
    """Collection row in API responses (direct members only)."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = ""
    color: Optional[str] = None
    icon: Optional[str] = None
    icon_weight: Optional[str] = None
    is_public: bool = False
    owner_id: int
    parent_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    members: List[MemberIn] = []


# --- Permissions ---

class PermissionResponse(BaseModel):
    """Effective permission of the caller on a collection."""
    kind: Literal["owner", "grant", "none"]
    can_create: bool = False
    can_update: bool = False
    can_delete: bool = False
    inherited: bool = False
    source_collection_id: Optional[int] = None
    source_collection_name: Optional[str] = None


# --- Links ---

class LinkCreate(BaseModel):
    """Add a link to a collection."""
    collection_id: int
    name: str = ""
    url: Optional[str] = None
    description: Optional[str] = ""

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if v and not v.startswith(("http://", "https://")):
            raise ValueError("URL must start with http:// or https://")
        return v or None


class LinkResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    url: Optional[str] = None
    description: Optional[str] = ""
    collection_id: int
    created_at: Optional[datetime] = None


# --- Move ---

class MoveIntent(BaseModel):
    """One drag-and-drop move: where the collection was and where it goes.

    A ``None`` parent means the top level (the synthetic root).
    """
    collection_id: int
    source_parent_id: Optional[int] = None
    source_index: Optional[int] = Field(default=None, ge=0)
    destination_parent_id: Optional[int] = None
    destination_index: Optional[int] = Field(default=None, ge=0)


class MoveResult(BaseModel):
    """Outcome of an accepted move."""
    collection_id: int
    moved: bool
    parent_id: Optional[int] = None
    root_order: List[int] = []
