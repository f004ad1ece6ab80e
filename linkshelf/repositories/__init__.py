"""Data access repositories."""

from .base import BaseRepository
from .collection_repository import CollectionRepository
from .link_repository import LinkRepository
from .user_repository import UserRepository

__all__ = [
    "BaseRepository",
    "CollectionRepository",
    "LinkRepository",
    "UserRepository",
]
