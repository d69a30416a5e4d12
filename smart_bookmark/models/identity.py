"""Identity ORM — authenticated principals that own bookmarks.

Invariants:
    - id is UUID primary key
    - email is unique and non-nullable
    - Deleting an identity cascades (FK ondelete) to its sessions, codes, and bookmarks
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from smart_bookmark.core.domain_types import Identity as IdentityEntity, IdentityId
from smart_bookmark.db.base import Base


class Identity(Base):
    """Identity row — read-only for the gate and reconciler."""
    __tablename__ = "identities"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    display_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def to_entity(self) -> IdentityEntity:
        return IdentityEntity(
            id=IdentityId(self.id),
            email=self.email,
            display_name=self.display_name,
            avatar_url=self.avatar_url,
        )
