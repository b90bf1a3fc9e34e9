"""
Mosaic Backend — Collection SQLAlchemy Model
==============================================

What:  ORM model representing the `collections` table.
Why:   A collection is a named, user-owned grouping of contributed images.
Who:   Used by CollectionService (CRUD) and ContributionService (existence check).

Table Design Rationale:
    - created_by: Owning user; only the owner may delete the collection
    - created_at: UTC with timezone; listings are ordered newest first
    - Index on created_at DESC: the list endpoints always sort on it
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from mosaic.database import Base


class Collection(Base):
    """
    Represents a collection that users contribute images to.

    Lifecycle:
        1. Created by a user via POST /collections
        2. Receives contributions from any authenticated user
        3. Deleted only by its owner; its contributions go with it
    """

    __tablename__ = "collections"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True, default=None)

    created_by: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        comment="Owning user",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        Index("idx_collections_created_at", created_at.desc()),
        Index("idx_collections_created_by", "created_by"),
    )

    def __repr__(self) -> str:
        return f"<Collection(id={self.id}, name='{self.name}', created_by={self.created_by})>"
