"""Bookmark Stream — SSE framing and the snapshot-then-changes loop."""

import json
from datetime import datetime, timezone
from uuid import uuid4

from smart_bookmark.api.routes.bookmark_stream_helpers import (
    bookmark_event_stream, sse_line,
)
from smart_bookmark.core.domain_types import (
    Bookmark, BookmarkId, ChangeEvent, Identity, IdentityId,
)
from smart_bookmark.core.errors import FeedError
from smart_bookmark.infrastructure.change_feed import ChangeFeedBroker
from smart_bookmark.services.live_view import LiveBookmarkView

ADA = Identity(id=IdentityId(uuid4()), email="ada@example.com")


def _bookmark(title: str) -> Bookmark:
    return Bookmark(
        id=BookmarkId(uuid4()), title=title, url=f"https://{title}.example.com",
        owner_id=ADA.id, created_at=datetime(2026, 4, 1, tzinfo=timezone.utc),
    )


class ListOnlyStore:
    def __init__(self, rows):
        self.rows = rows

    async def list_by_owner(self, owner_id):
        return list(self.rows)


def _decode(line: str) -> dict:
    assert line.startswith("data: ") and line.endswith("\n\n")
    return json.loads(line[len("data: "):])


def test_sse_line_format():
    assert sse_line({"type": "x"}) == 'data: {"type": "x"}\n\n'


async def test_stream_starts_with_snapshot_then_forwards_changes():
    broker = ChangeFeedBroker(queue_size=8)
    existing = _bookmark("existing")
    view = LiveBookmarkView(broker)
    await view.activate(ADA, ListOnlyStore([existing]))
    stream = bookmark_event_stream(view)

    snapshot = _decode(await stream.__anext__())
    assert snapshot["type"] == "snapshot"
    assert [b["id"] for b in snapshot["data"]] == [str(existing.id)]

    fresh = _bookmark("fresh")
    broker.publish(ChangeEvent.insert(fresh))
    broker.publish(ChangeEvent.insert(fresh))
    broker.publish(ChangeEvent.delete(existing.id, ADA.id))

    inserted = _decode(await stream.__anext__())
    assert inserted["type"] == "insert"
    assert inserted["data"]["id"] == str(fresh.id)
    deleted = _decode(await stream.__anext__())
    assert deleted == {"type": "delete", "data": {"id": str(existing.id)}}

    await stream.aclose()
    assert broker.subscriber_count(ADA.id) == 0
    assert not view.active


async def test_stream_ends_with_error_event_on_domain_error():
    class FailingView:
        bookmarks = ()
        torn_down = False

        async def changes(self):
            raise FeedError("feed went away")
            yield  # pragma: no cover

        def teardown(self):
            self.torn_down = True

    view = FailingView()
    lines = [line async for line in bookmark_event_stream(view)]

    assert _decode(lines[0]) == {"type": "snapshot", "data": []}
    error = _decode(lines[1])
    assert error["type"] == "error"
    assert error["data"]["code"] == "FEED_ERROR"
    assert view.torn_down
