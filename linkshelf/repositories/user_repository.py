"""Repository for user records and their root order."""

from typing import List, Optional

from ..exceptions import UserNotFoundError
from ..models.user import User
from .base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Data access layer for users."""

    model_class = User
    not_found_error = UserNotFoundError

    def create(self, username: str, name: Optional[str] = None) -> User:
        user = User(username=username, name=name, collection_order=[])
        self.db.add(user)
        self.db.flush()
        self.db.refresh(user)
        return user

    def get_root_order(self, user_id: int) -> List[int]:
        user = self.get_by_id(user_id)
        return list(user.collection_order or [])

    def update_root_order(self, user_id: int, order: List[int]) -> User:
        """Replace the user's root order.

        Assigns a fresh list so the JSON column is detected as changed.
        """
        user = self.get_by_id(user_id)
        user.collection_order = list(order)
        self.db.flush()
        return user
