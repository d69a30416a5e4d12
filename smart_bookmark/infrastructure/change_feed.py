"""Change Feed Broker — in-process push channel of owner-scoped bookmark mutations.

Invariants:
    - publish() delivers only to subscriptions whose owner_id matches the event
    - Each subscription has its own bounded queue; overflow drops the event (logged)
    - Subscription.close() is idempotent and detaches from the broker immediately
    - A closed subscription ends iteration once its queued events are drained
    - Delivery is at-least-once from the consumer's point of view: callers may
      publish the same mutation twice and consumers must dedupe

Design Decisions:
    - asyncio.Queue per subscriber: single event loop, no locks needed
    - Singleton broker initialized on startup like db_manager (lifespan owns it)
    - Sentinel object wakes a blocked iterator on close
"""

import asyncio
import logging

from smart_bookmark.core.domain_types import ChangeEvent, IdentityId
from smart_bookmark.core.errors import FeedError

logger = logging.getLogger(__name__)

_CLOSED = object()


class FeedSubscription:
    """One live owner-scoped event stream."""

    def __init__(
        self, broker: "ChangeFeedBroker", owner_id: IdentityId, maxsize: int,
    ):
        self.owner_id = owner_id
        self._broker = broker
        # +1 leaves room for the close sentinel on a full queue
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize + 1)
        self._maxsize = maxsize
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _offer(self, event: ChangeEvent) -> bool:
        if self._closed:
            return False
        if self._queue.qsize() >= self._maxsize:
            logger.warning(
                "Feed queue full, dropping event",
                extra={
                    "owner_id": str(self.owner_id),
                    "bookmark_id": str(event.bookmark_id),
                    "event_kind": event.kind.value,
                },
            )
            return False
        self._queue.put_nowait(event)
        return True

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._broker._detach(self)
        self._queue.put_nowait(_CLOSED)

    def __aiter__(self):
        return self

    async def __anext__(self) -> ChangeEvent:
        if self._closed and self._queue.empty():
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        return item


class ChangeFeedBroker:
    """Fans out change events to the subscriptions of the owning identity."""

    def __init__(self, queue_size: int = 256):
        self.queue_size = queue_size
        self._subscriptions: dict[IdentityId, set[FeedSubscription]] = {}

    def subscribe(self, owner_id: IdentityId) -> FeedSubscription:
        subscription = FeedSubscription(self, owner_id, self.queue_size)
        self._subscriptions.setdefault(owner_id, set()).add(subscription)
        logger.info("Feed subscription opened", extra={"owner_id": str(owner_id)})
        return subscription

    def _detach(self, subscription: FeedSubscription) -> None:
        subs = self._subscriptions.get(subscription.owner_id)
        if subs is None:
            return
        subs.discard(subscription)
        if not subs:
            del self._subscriptions[subscription.owner_id]
        logger.info(
            "Feed subscription closed",
            extra={"owner_id": str(subscription.owner_id)},
        )

    def subscriber_count(self, owner_id: IdentityId) -> int:
        return len(self._subscriptions.get(owner_id, ()))

    def publish(self, event: ChangeEvent) -> int:
        """Deliver to every subscription of event.owner_id. Returns deliveries made."""
        if event.owner_id is None:
            raise FeedError("Change event published without an owner")
        delivered = 0
        for subscription in list(self._subscriptions.get(event.owner_id, ())):
            if subscription._offer(event):
                delivered += 1
        return delivered


# Singleton (initialized on startup)
feed_broker: ChangeFeedBroker | None = None


def init_feed(queue_size: int = 256) -> ChangeFeedBroker:
    global feed_broker
    feed_broker = ChangeFeedBroker(queue_size)
    return feed_broker


def get_feed() -> ChangeFeedBroker:
    if not feed_broker:
        raise RuntimeError("Change feed not initialized")
    return feed_broker
