"""Bookmark Routes — owner-scoped list, create, delete, and live change stream.

Invariants:
    - Every operation is scoped to the gate-resolved identity
    - Create/delete go through the identity's ListReconciler and never touch a
      view directly; subscribers see the feed echo
    - Deleting a bookmark the identity does not own is a 404
    - The event stream holds no DB connection: the snapshot is read in a
      short-lived session that closes before streaming starts
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status
from fastapi.responses import Response, StreamingResponse

from smart_bookmark.api.dependencies import (
    get_current_identity, get_reconciler, get_record_store,
)
from smart_bookmark.api.routes.bookmark_stream_helpers import (
    SSE_HEADERS, bookmark_event_stream,
)
from smart_bookmark.core.domain_types import BookmarkId, Identity
from smart_bookmark.core.list_reconciler import ListReconciler
from smart_bookmark.infrastructure import database
from smart_bookmark.infrastructure.change_feed import get_feed
from smart_bookmark.infrastructure.record_store import SqlRecordStore
from smart_bookmark.schemas.bookmark import BookmarkCreate, BookmarkResponse
from smart_bookmark.services.live_view import LiveBookmarkView

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/bookmarks", tags=["bookmarks"])


@router.get("", response_model=list[BookmarkResponse])
async def list_bookmarks(
    identity: Identity = Depends(get_current_identity),
    store: SqlRecordStore = Depends(get_record_store),
):
    """List the identity's bookmarks, newest first."""
    bookmarks = await store.list_by_owner(identity.id)
    return [BookmarkResponse.from_entity(b) for b in bookmarks]


@router.post(
    "", response_model=BookmarkResponse, status_code=status.HTTP_201_CREATED,
)
async def create_bookmark(
    body: BookmarkCreate,
    reconciler: ListReconciler = Depends(get_reconciler),
):
    """Store a bookmark; open views receive it through the change feed."""
    bookmark = await reconciler.local_insert(body.title, body.url)
    return BookmarkResponse.from_entity(bookmark)


@router.delete("/{bookmark_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_bookmark(
    bookmark_id: UUID,
    reconciler: ListReconciler = Depends(get_reconciler),
):
    """Delete a bookmark; open views drop it on the feed Delete event."""
    await reconciler.local_delete(BookmarkId(bookmark_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/events")
async def stream_bookmark_events(
    identity: Identity = Depends(get_current_identity),
):
    """SSE stream — snapshot, then live inserts/deletes for this identity."""
    feed = get_feed()
    view = LiveBookmarkView(feed)
    async with database.get_db_manager().session() as db:
        await view.activate(identity, SqlRecordStore(db, feed))
    return StreamingResponse(
        bookmark_event_stream(view),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
