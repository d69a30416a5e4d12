"""SQL Record Store — owner-scoped bookmark persistence that feeds the change feed.

Invariants:
    - Every query filters by owner_id; a bookmark of another owner is "not found"
    - Change events are published only after the commit succeeds
    - SQLAlchemy failures are rolled back and surfaced as StoreError
    - list_by_owner returns newest first (created_at desc)
"""

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from smart_bookmark.core.domain_types import (
    Bookmark, BookmarkId, ChangeEvent, IdentityId,
)
from smart_bookmark.core.errors import BookmarkNotFoundError, StoreError
from smart_bookmark.core.repository_protocols import ChangeFeed
from smart_bookmark.models.bookmark import Bookmark as BookmarkModel

logger = logging.getLogger(__name__)


class SqlRecordStore:
    """Bookmark store on the bookmarks table, publishing to a ChangeFeed."""

    def __init__(self, db: AsyncSession, feed: ChangeFeed):
        self.db = db
        self.feed = feed

    async def insert(self, owner_id: IdentityId, title: str, url: str) -> Bookmark:
        row = BookmarkModel(owner_id=owner_id, title=title, url=url)
        try:
            self.db.add(row)
            await self.db.commit()
            await self.db.refresh(row)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(
                f"Bookmark insert failed: {e}", extra={"owner_id": str(owner_id)},
            )
            raise StoreError("could not save bookmark", "insert")
        bookmark = row.to_entity()
        self.feed.publish(ChangeEvent.insert(bookmark))
        logger.info(
            "Bookmark inserted",
            extra={"owner_id": str(owner_id), "bookmark_id": str(bookmark.id)},
        )
        return bookmark

    async def delete(self, bookmark_id: BookmarkId, owner_id: IdentityId) -> None:
        try:
            result = await self.db.execute(
                select(BookmarkModel).where(
                    BookmarkModel.id == bookmark_id,
                    BookmarkModel.owner_id == owner_id,
                ),
            )
            row = result.scalar_one_or_none()
            if row is None:
                raise BookmarkNotFoundError(str(bookmark_id))
            await self.db.delete(row)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(
                f"Bookmark delete failed: {e}",
                extra={"owner_id": str(owner_id), "bookmark_id": str(bookmark_id)},
            )
            raise StoreError("could not delete bookmark", "delete")
        self.feed.publish(ChangeEvent.delete(bookmark_id, owner_id))
        logger.info(
            "Bookmark deleted",
            extra={"owner_id": str(owner_id), "bookmark_id": str(bookmark_id)},
        )

    async def list_by_owner(self, owner_id: IdentityId) -> list[Bookmark]:
        try:
            result = await self.db.execute(
                select(BookmarkModel)
                .where(BookmarkModel.owner_id == owner_id)
                .order_by(BookmarkModel.created_at.desc()),
            )
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(
                f"Bookmark list failed: {e}", extra={"owner_id": str(owner_id)},
            )
            raise StoreError("could not load bookmarks", "list")
        return [row.to_entity() for row in result.scalars().all()]
