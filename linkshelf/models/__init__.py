"""Database models."""

from .user import User
from .collection import Collection, CollectionMember
from .link import Link

__all__ = ["User", "Collection", "CollectionMember", "Link"]
