"""Repository for links."""

from typing import Optional

from ..exceptions import LinkNotFoundError
from ..models.link import Link
from .base import BaseRepository


class LinkRepository(BaseRepository[Link]):
    """Data access layer for links."""

    model_class = Link
    not_found_error = LinkNotFoundError

    def get_collection_id(self, link_id: int) -> Optional[int]:
        """Id of the collection holding *link_id*, or None if the link does not exist."""
        row = self.db.query(Link.collection_id).filter(Link.id == link_id).first()
        return row[0] if row else None

    def create(
        self,
        collection_id: int,
        name: str,
        url: Optional[str] = None,
        description: Optional[str] = None,
        created_by_id: Optional[int] = None,
    ) -> Link:
        link = Link(
            collection_id=collection_id,
            name=name,
            url=url,
            description=description or "",
            created_by_id=created_by_id,
        )
        self.db.add(link)
        self.db.flush()
        self.db.refresh(link)
        return link

    def count_by_collection(self, collection_id: int) -> int:
        return self.db.query(Link).filter(Link.collection_id == collection_id).count()
