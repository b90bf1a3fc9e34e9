"""
Mosaic Backend — Contribution SQLAlchemy Model
================================================

What:  ORM model representing the `contributions` table.
Why:   Each row ties one stored image (by file reference) to a collection and
       to the user who uploaded it.
Who:   Written and read by ContributionService; read by the zip export.

Table Design Rationale:
    - file_url: Opaque file reference returned by the storage backend
      (absolute local path or fully-qualified object URL)
    - Integer primary key: export order is primary-key (insertion) order
    - Rows are immutable; there is no update path
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from mosaic.database import Base


class Contribution(Base):
    """One uploaded image associated with a collection and a contributing user."""

    __tablename__ = "contributions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    collection_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("collections.id", ondelete="CASCADE"),
        nullable=False,
    )

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    file_url: Mapped[str] = mapped_column(
        String(1024),
        nullable=False,
        comment="Storage backend file reference (path or URL)",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        Index("idx_contributions_collection_id", "collection_id", "id"),
    )

    def __repr__(self) -> str:
        return (
            f"<Contribution(id={self.id}, collection_id={self.collection_id}, "
            f"user_id={self.user_id})>"
        )
