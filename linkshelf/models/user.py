"""User model.

A user owns collections and keeps the display order of their top-level
collections in ``collection_order``.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ..database import Base


class User(Base):
    """Account that owns collections and may be granted access to others."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(100), unique=True, nullable=False)
    name = Column(String(255), nullable=True)

    # Root order: ids of top-level collections, in the user's chosen order.
    # May contain stale ids; readers prune them.
    collection_order = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    collections = relationship(
        "Collection",
        back_populates="owner",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
