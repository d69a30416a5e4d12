"""Bookmark ORM — owner-scoped bookmark rows.

Invariants:
    - id is UUID primary key (server-assigned)
    - title and url are non-nullable text
    - owner_id references identities.id (cascade delete)
    - (owner_id, created_at) indexed for newest-first listing
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Text, DateTime, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from smart_bookmark.core.domain_types import (
    Bookmark as BookmarkEntity, BookmarkId, IdentityId,
)
from smart_bookmark.core.session_policy import as_utc
from smart_bookmark.db.base import Base


class Bookmark(Base):
    """Bookmark row owned by exactly one identity."""
    __tablename__ = "bookmarks"
    __table_args__ = (
        Index("ix_bookmarks_owner_created", "owner_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    owner_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("identities.id", ondelete="CASCADE"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def to_entity(self) -> BookmarkEntity:
        return BookmarkEntity(
            id=BookmarkId(self.id),
            title=self.title,
            url=self.url,
            owner_id=IdentityId(self.owner_id),
            created_at=as_utc(self.created_at),
        )
