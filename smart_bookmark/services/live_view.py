"""Live Bookmark View — one view session: subscriber + reconciler for one identity.

Invariants:
    - activate() subscribes BEFORE fetching the snapshot, so no mutation between
      snapshot and subscription is lost (idempotent handlers absorb overlap)
    - changes() yields only events that actually changed the view state
    - switch_identity() never reuses the previous identity's subscription
    - teardown() is idempotent and releases the subscription exactly once

Design Decisions:
    - Feed events applied one at a time from a single async iterator, so two
      events for the same view are never folded concurrently
    - add/remove are the in-process API for long-lived views (one reconciler per
      view, so its double-submit guard spans the view); HTTP routes bind a
      request-scoped reconciler instead
"""

import logging
from collections.abc import AsyncIterator

from smart_bookmark.core.domain_types import (
    Bookmark, BookmarkId, ChangeEvent, Identity,
)
from smart_bookmark.core.list_reconciler import ListReconciler
from smart_bookmark.core.repository_protocols import ChangeFeed, RecordStore
from smart_bookmark.services.feed_subscriber import ChangeFeedSubscriber

logger = logging.getLogger(__name__)


class LiveBookmarkView:
    """Keeps a bookmark list for one identity current with the change feed."""

    def __init__(self, feed: ChangeFeed):
        self._subscriber = ChangeFeedSubscriber(feed)
        self._reconciler: ListReconciler | None = None
        self.identity: Identity | None = None

    @property
    def reconciler(self) -> ListReconciler:
        if self._reconciler is None:
            raise RuntimeError("View is not active")
        return self._reconciler

    @property
    def bookmarks(self) -> tuple[Bookmark, ...]:
        return self.reconciler.bookmarks

    @property
    def active(self) -> bool:
        return self._subscriber.active

    async def activate(self, identity: Identity, store: RecordStore) -> None:
        self._subscriber.open(identity.id)
        reconciler = ListReconciler(identity.id, store)
        try:
            reconciler.seed(await store.list_by_owner(identity.id))
        except Exception:
            self._subscriber.close()
            raise
        self.identity = identity
        self._reconciler = reconciler
        logger.info(
            "View activated",
            extra={"identity_id": str(identity.id)},
        )

    async def switch_identity(self, identity: Identity, store: RecordStore) -> None:
        self.teardown()
        await self.activate(identity, store)

    async def changes(self) -> AsyncIterator[ChangeEvent]:
        async for event in self._subscriber.events():
            if self._reconciler is not None and self._reconciler.apply(event):
                yield event

    async def add(self, title: str, url: str) -> Bookmark:
        return await self.reconciler.local_insert(title, url)

    async def remove(self, bookmark_id: BookmarkId) -> bool:
        return await self.reconciler.local_delete(bookmark_id)

    def teardown(self) -> None:
        if self._reconciler is None and not self._subscriber.active:
            return
        self._subscriber.close()
        self._reconciler = None
        if self.identity is not None:
            logger.info(
                "View torn down",
                extra={"identity_id": str(self.identity.id)},
            )
        self.identity = None
