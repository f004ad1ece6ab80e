"""Collection and membership models.

Collections form a forest through ``parent_id``. Memberships are *direct*
grants only; inherited grants are computed on read and never stored.
"""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ..database import Base


class Collection(Base):
    """A folder of links, optionally nested under another collection."""

    __tablename__ = "collections"
    __table_args__ = (
        Index("ix_collections_owner_id", "owner_id"),
        Index("ix_collections_parent_id", "parent_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True, default="")
    color = Column(String(20), nullable=True, default="#0ea5e9")
    icon = Column(String(50), nullable=True)
    icon_weight = Column(String(20), nullable=True)
    is_public = Column(Boolean, nullable=False, default=False)

    owner_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    # NULL = top-level. Deleting a parent deletes its whole subtree.
    parent_id = Column(Integer, ForeignKey("collections.id", ondelete="CASCADE"), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    owner = relationship("User", back_populates="collections")
    members = relationship(
        "CollectionMember",
        back_populates="collection",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="CollectionMember.user_id",
    )
    links = relationship(
        "Link",
        back_populates="collection",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class CollectionMember(Base):
    """Direct grant of create/update/delete rights on one collection to one user.

    A record with every flag false is still meaningful: it overrides (revokes)
    anything the user would otherwise inherit from an ancestor.
    """

    __tablename__ = "collection_members"
    __table_args__ = (
        UniqueConstraint("collection_id", "user_id", name="uq_collection_member"),
        Index("ix_collection_members_user_id", "user_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    collection_id = Column(
        Integer, ForeignKey("collections.id", ondelete="CASCADE"), nullable=False
    )
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    can_create = Column(Boolean, nullable=False, default=False)
    can_update = Column(Boolean, nullable=False, default=False)
    can_delete = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    collection = relationship("Collection", back_populates="members")
    user = relationship("User")
