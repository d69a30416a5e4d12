"""Bookmark Stream Helpers — SSE formatting and the per-connection live view loop.

Invariants:
    - First event on every stream is the reconciled snapshot
    - Only events that changed the view are forwarded (duplicates and foreign
      owners are filtered by the reconciler)
    - The view is torn down when the stream ends, including client disconnects
    - A SmartBookmarkError ends the stream with one error event
"""

import json
import logging
from collections.abc import AsyncIterator

from smart_bookmark.core.errors import SmartBookmarkError
from smart_bookmark.services.live_view import LiveBookmarkView

logger = logging.getLogger(__name__)

# SSE headers prevent proxy/browser buffering of streamed events.
SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
    "Connection": "keep-alive",
}


def sse_line(event: dict) -> str:
    """Format event as SSE data line."""
    return f"data: {json.dumps(event, ensure_ascii=False)}\n\n"


def snapshot_event(view: LiveBookmarkView) -> dict:
    return {
        "type": "snapshot",
        "data": [b.to_dict() for b in view.bookmarks],
    }


async def bookmark_event_stream(view: LiveBookmarkView) -> AsyncIterator[str]:
    """Yield the snapshot, then every effective change, until the view closes."""
    try:
        yield sse_line(snapshot_event(view))
        async for event in view.changes():
            yield sse_line(event.to_sse_event())
    except SmartBookmarkError as e:
        logger.warning(f"Bookmark stream ended on error: {e.message}")
        yield sse_line(e.to_sse_event())
    finally:
        view.teardown()
