"""List Reconciler — merges a server snapshot with live feed events into one view.

Invariants:
    - View state never holds two entries with the same id
    - View state never holds an entry owned by anyone but the active owner
    - Feed inserts are prepended (treated as newest), never re-sorted by timestamp
    - Feed handlers are synchronous: each read-modify-write completes without
      yielding to the event loop
    - Local mutations never touch view state; the feed echo is the only writer
      besides seed()
    - A bookmark id being deleted cannot be submitted for deletion again

Design Decisions:
    - Optimistic-free: a local insert shows up when its feed echo arrives, and
      the id duplicate guard absorbs redelivery of that echo
    - Delete failures re-raised as StoreError so the caller can show them inline
"""

import logging
from collections.abc import Iterable

from smart_bookmark.core.bookmark_input import clean_bookmark_input
from smart_bookmark.core.domain_types import (
    Bookmark, BookmarkId, ChangeEvent, ChangeKind, IdentityId,
)
from smart_bookmark.core.errors import StoreError
from smart_bookmark.core.repository_protocols import RecordStore

logger = logging.getLogger(__name__)


class ListReconciler:
    """Owns the view state of one bookmark list for one identity."""

    def __init__(self, owner_id: IdentityId, store: RecordStore):
        self.owner_id = owner_id
        self._store = store
        self._items: list[Bookmark] = []
        self._ids: set[BookmarkId] = set()
        self._deleting: set[BookmarkId] = set()

    # -- View state -------------------------------------------------------------

    @property
    def bookmarks(self) -> tuple[Bookmark, ...]:
        return tuple(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, bookmark_id: object) -> bool:
        return bookmark_id in self._ids

    def is_deleting(self, bookmark_id: BookmarkId) -> bool:
        return bookmark_id in self._deleting

    def _owned(self, owner_id: IdentityId, bookmark_id: BookmarkId) -> bool:
        if owner_id == self.owner_id:
            return True
        logger.warning(
            "Ignored change for foreign owner",
            extra={"owner_id": str(owner_id), "bookmark_id": str(bookmark_id)},
        )
        return False

    def seed(self, initial: Iterable[Bookmark]) -> None:
        """Replace view state wholesale from a server snapshot (newest first)."""
        items: list[Bookmark] = []
        ids: set[BookmarkId] = set()
        for bookmark in initial:
            if bookmark.id in ids or not self._owned(bookmark.owner_id, bookmark.id):
                continue
            items.append(bookmark)
            ids.add(bookmark.id)
        self._items = items
        self._ids = ids

    # -- Feed handlers ----------------------------------------------------------

    def on_feed_insert(self, bookmark: Bookmark) -> bool:
        if not self._owned(bookmark.owner_id, bookmark.id):
            return False
        if bookmark.id in self._ids:
            return False
        self._items.insert(0, bookmark)
        self._ids.add(bookmark.id)
        return True

    def on_feed_delete(
        self, bookmark_id: BookmarkId, owner_id: IdentityId | None = None,
    ) -> bool:
        if owner_id is not None and not self._owned(owner_id, bookmark_id):
            return False
        if bookmark_id not in self._ids:
            return False
        self._items = [b for b in self._items if b.id != bookmark_id]
        self._ids.discard(bookmark_id)
        return True

    def apply(self, event: ChangeEvent) -> bool:
        """Fold one change event into view state. Returns True if it changed."""
        match event.kind:
            case ChangeKind.INSERT if event.bookmark is not None:
                return self.on_feed_insert(event.bookmark)
            case ChangeKind.DELETE:
                return self.on_feed_delete(event.bookmark_id, event.owner_id)
            case _:
                logger.warning(
                    "Dropped malformed change event",
                    extra={"event_kind": event.kind.value},
                )
                return False

    # -- Local mutations --------------------------------------------------------

    async def local_insert(self, title: str, url: str) -> Bookmark:
        """Validate, normalize, and hand the bookmark to the record store."""
        title, url = clean_bookmark_input(title, url)
        return await self._store.insert(self.owner_id, title, url)

    async def local_delete(self, bookmark_id: BookmarkId) -> bool:
        """Request deletion; the feed Delete event removes the entry.

        Returns False without a store call when the id is already being deleted.
        """
        if bookmark_id in self._deleting:
            return False
        self._deleting.add(bookmark_id)
        try:
            await self._store.delete(bookmark_id, self.owner_id)
        except StoreError as e:
            logger.error(
                f"Failed to delete bookmark: {e.message}",
                extra={"bookmark_id": str(bookmark_id), "error_code": e.code},
            )
            raise
        finally:
            self._deleting.discard(bookmark_id)
        return True
